# app/services/review_workflow.py
"""
Review workflow for a single submission:

    idempotency check -> context load -> review (inline code or repository)
    -> persist review + feedback -> status 'pending' -> 'ai_reviewed'

Any error leaves the submission in 'pending'.
"""
from __future__ import annotations

import logging
import re
from typing import Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.submission import Submission, SubmissionStatus, SubmissionType
from app.models.task import Task, TaskCriterion
from app.schemas.review import ReviewResult
from app.services import review_service, submission_service, task_service
from app.services.ai_reviewer import AIReviewer
from app.services.review_service import DuplicateReviewError
from app.services.source_fetcher import SourceFetcher, SourceFetchError

logger = logging.getLogger(__name__)


class ReviewError(Exception):
    pass


class InvalidSubmissionError(ReviewError):
    pass


class TaskNotFoundError(ReviewError):
    pass


class EmptySourceError(ReviewError):
    pass


class StatusUpdateError(ReviewError):
    pass


class ReviewOutcome:
    REVIEWED = "reviewed"
    # a review row existed before this run started
    ALREADY_REVIEWED = "already_reviewed"
    # a concurrent run stored its review first
    DUPLICATE = "duplicate"


def repository_url_pattern(host: str) -> re.Pattern:
    return re.compile(rf"https?://{re.escape(host)}/[\w-]+/[\w.-]+(?:\.git)?")


class ReviewWorkflow:
    def __init__(
        self,
        reviewer: AIReviewer,
        fetcher: SourceFetcher,
        *,
        repo_host: str | None = None,
    ):
        self.reviewer = reviewer
        self.fetcher = fetcher
        self.url_pattern = repository_url_pattern(repo_host or settings.REPO_HOST)

    def run(self, db: Session, submission: Submission) -> str:
        """
        Review one submission and return a ReviewOutcome value.

        Raises:
            ReviewError: validation, missing task, nothing to review, or the
                final status update failed
            AIReviewerError / SourceFetchError: collaborator failures
        """
        submission_id = submission.id
        logger.info(
            f"Processing submission {submission_id} (type={submission.submission_type})"
        )

        if review_service.get_review_by_submission_id(db, submission_id) is not None:
            logger.info(f"Submission {submission_id} already reviewed, nothing to do")
            return ReviewOutcome.ALREADY_REVIEWED

        task = task_service.get_task(db, submission.task_id)
        if task is None:
            raise TaskNotFoundError(
                f"task {submission.task_id} for submission {submission_id} not found"
            )
        criteria = task_service.list_criteria(db, task.id)

        if submission.submission_type == SubmissionType.CODE:
            result = self._review_inline(submission, task, criteria)
        elif submission.submission_type == SubmissionType.GITHUB_LINK:
            result = self._review_repository(submission, task, criteria)
        else:
            raise InvalidSubmissionError(
                f"unknown submission type: {submission.submission_type}"
            )

        return self._save(db, submission_id, result)

    def _review_inline(
        self,
        submission: Submission,
        task: Task,
        criteria: Sequence[TaskCriterion],
    ) -> ReviewResult:
        if not submission.code or not submission.code.strip():
            raise InvalidSubmissionError(
                f"submission {submission.id} has no code to review"
            )

        logger.info(f"Reviewing code submission {submission.id}")
        return self.reviewer.review_code(submission.code, task, criteria)

    def _review_repository(
        self,
        submission: Submission,
        task: Task,
        criteria: Sequence[TaskCriterion],
    ) -> ReviewResult:
        url = submission.github_url
        if not url or not url.strip():
            raise InvalidSubmissionError(
                f"submission {submission.id} has no repository URL to review"
            )
        if not self.url_pattern.fullmatch(url):
            raise InvalidSubmissionError(f"invalid repository URL format: {url}")

        logger.info(f"Reviewing repository submission {submission.id}: {url}")

        files: dict[str, str] = {}
        with self.fetcher.checkout(url) as handle:
            paths = self.fetcher.list_files(handle)
            if not paths:
                raise EmptySourceError(f"no source files found in {url}")

            for path in paths:
                try:
                    files[path] = self.fetcher.read_file(handle, path)
                except (SourceFetchError, OSError) as e:
                    logger.warning(f"Skipping unreadable file {path}: {e}")

        if not files:
            raise EmptySourceError(f"failed to read any source files from {url}")

        logger.info(f"Submission {submission.id}: sending {len(files)} files for review")
        return self.reviewer.review_project(files, task, criteria)

    def _save(self, db: Session, submission_id: int, result: ReviewResult) -> str:
        try:
            review = review_service.create_review(
                db,
                submission_id=submission_id,
                ai_model=self.reviewer.model_name,
                result=result,
            )
        except DuplicateReviewError:
            logger.info(
                f"Submission {submission_id} was reviewed concurrently, dropping this result"
            )
            return ReviewOutcome.DUPLICATE

        review_id = review.id
        saved = 0
        for item in result.feedbacks:
            try:
                review_service.create_feedback(db, review_id=review_id, item=item)
                saved += 1
            except SQLAlchemyError as e:
                logger.error(
                    f"Failed to create review feedback for review {review_id}: {e}"
                )

        db.commit()
        logger.info(
            f"Created code review {review_id} for submission {submission_id}: "
            f"status={result.overall_status}, feedbacks={saved}/{len(result.feedbacks)}"
        )

        try:
            submission_service.update_status(
                db, submission_id, SubmissionStatus.AI_REVIEWED
            )
        except (SQLAlchemyError, LookupError) as e:
            db.rollback()
            raise StatusUpdateError(
                f"review {review_id} stored but status update of submission "
                f"{submission_id} failed: {e}"
            ) from e

        logger.info(f"Successfully processed submission {submission_id}")
        return ReviewOutcome.REVIEWED
