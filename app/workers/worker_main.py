# app/workers/worker_main.py
import logging
import signal
import threading
from functools import partial

from sqlalchemy.orm import sessionmaker

from app.core.config import settings
from app.core.logging_config import setup_logging
from app.db.session import SessionLocal
from app.services.ai_reviewer import DeepSeekReviewer
from app.services.review_workflow import ReviewWorkflow
from app.services.source_fetcher import GitSourceFetcher
from app.workers.dispatcher import run_cycle
from app.workers.scheduler import ReviewScheduler

logger = logging.getLogger(__name__)


def build_scheduler(session_factory: sessionmaker = SessionLocal) -> ReviewScheduler:
    workflow = ReviewWorkflow(DeepSeekReviewer(), GitSourceFetcher())
    cycle = partial(
        run_cycle,
        session_factory,
        workflow,
        batch_size=settings.REVIEW_BATCH_SIZE,
        max_concurrency=settings.REVIEW_MAX_CONCURRENCY,
        max_attempts=settings.REVIEW_MAX_ATTEMPTS,
    )
    return ReviewScheduler(cycle, interval_seconds=settings.REVIEW_INTERVAL_SECONDS)


def main():
    setup_logging()

    scheduler = build_scheduler()
    shutdown = threading.Event()

    def _handle_signal(signum, frame):
        logger.info(f"Received signal {signum}, shutting down")
        shutdown.set()

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    scheduler.start()
    shutdown.wait()
    scheduler.stop()


if __name__ == "__main__":
    main()
