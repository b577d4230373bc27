# app/workers/dispatcher.py
"""
One review cycle: fetch a bounded batch of pending submissions and run
``review_task`` for each with at most ``max_concurrency`` running at once.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Callable

from sqlalchemy.orm import Session

from app.core.config import settings
from app.services import submission_service
from app.services.review_workflow import ReviewOutcome, ReviewWorkflow
from app.workers.tasks import review_task

logger = logging.getLogger(__name__)


@dataclass
class CycleReport:
    fetched: int = 0
    reviewed: int = 0
    skipped: int = 0
    failed: int = 0
    failed_ids: list[int] = field(default_factory=list)

    def add(self, result: dict) -> None:
        if result.get("status") != "success":
            self.failed += 1
            self.failed_ids.append(result.get("submission_id"))
        elif result.get("outcome") == ReviewOutcome.REVIEWED:
            self.reviewed += 1
        else:
            self.skipped += 1


def run_cycle(
    session_factory: Callable[[], Session],
    workflow: ReviewWorkflow,
    *,
    batch_size: int | None = None,
    max_concurrency: int | None = None,
    max_attempts: int | None = None,
) -> CycleReport:
    """
    Returns once every fetched submission has been attempted. A failing
    submission never cancels the others; only a failure to fetch the batch
    propagates.
    """
    batch_size = batch_size or settings.REVIEW_BATCH_SIZE
    max_concurrency = max_concurrency or settings.REVIEW_MAX_CONCURRENCY
    if max_attempts is None:
        max_attempts = settings.REVIEW_MAX_ATTEMPTS

    db = session_factory()
    try:
        pending = submission_service.list_pending_submissions(
            db, limit=batch_size, max_attempts=max_attempts
        )
        submission_ids = [s.id for s in pending]
    finally:
        db.close()

    report = CycleReport(fetched=len(submission_ids))
    logger.info(f"Processing pending submissions: count={len(submission_ids)}")
    if not submission_ids:
        return report

    # admission gate: the (C+1)-th submission waits here for a free slot
    gate = threading.BoundedSemaphore(max_concurrency)

    def _run(submission_id: int) -> dict:
        try:
            return review_task(
                submission_id, session_factory=session_factory, workflow=workflow
            )
        finally:
            gate.release()

    futures = {}
    with ThreadPoolExecutor(
        max_workers=max_concurrency, thread_name_prefix="review-worker"
    ) as pool:
        for submission_id in submission_ids:
            gate.acquire()
            futures[pool.submit(_run, submission_id)] = submission_id

        for future in as_completed(futures):
            submission_id = futures[future]
            try:
                result = future.result()
            except Exception as e:
                logger.error(
                    f"Review job for submission {submission_id} crashed: {e}",
                    exc_info=True,
                )
                result = {"status": "error", "submission_id": submission_id, "error": str(e)}
            report.add(result)

    logger.info(
        f"Review cycle finished: fetched={report.fetched}, reviewed={report.reviewed}, "
        f"skipped={report.skipped}, failed={report.failed}"
    )
    return report
