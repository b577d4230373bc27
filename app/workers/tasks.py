"""
Review Tasks for Worker
Unit of work the cycle dispatcher runs for each pending submission
"""

import logging
from typing import Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.services import submission_service
from app.services.ai_reviewer import AIReviewerError
from app.services.review_workflow import ReviewError, ReviewWorkflow
from app.services.source_fetcher import SourceFetchError

logger = logging.getLogger(__name__)


def review_task(
    submission_id: int,
    *,
    session_factory: Callable[[], Session],
    workflow: ReviewWorkflow,
) -> dict:
    """
    Worker task to review one submission with the AI reviewer.

    This task:
    1. Creates its own database session
    2. Runs the review workflow for the submission
    3. Records a failed attempt when the workflow raises
    4. Returns result summary

    Args:
        submission_id: ID of submission to review
        session_factory: Callable returning a new Session
        workflow: Shared ReviewWorkflow (collaborators are thread-safe)

    Returns:
        Dictionary with status "success" and the workflow outcome, or status
        "error" and the error message. Never raises.
    """
    db = session_factory()
    try:
        logger.info(f"Starting review task for submission {submission_id}")

        submission = submission_service.get_submission(db, submission_id)
        if submission is None:
            logger.warning(f"Submission {submission_id} disappeared before review")
            return {
                "status": "error",
                "submission_id": submission_id,
                "error": "submission not found",
            }

        outcome = workflow.run(db, submission)

        logger.info(f"Completed review task for submission {submission_id}: {outcome}")
        return {
            "status": "success",
            "submission_id": submission_id,
            "outcome": outcome,
        }

    except (ReviewError, AIReviewerError, SourceFetchError) as e:
        logger.error(f"Review failed for submission {submission_id}: {e}")
        _record_failure(db, submission_id, e)
        return {
            "status": "error",
            "submission_id": submission_id,
            "error": str(e),
        }

    except Exception as e:
        logger.error(
            f"Unexpected error during review task for submission {submission_id}: {e}",
            exc_info=True,
        )
        _record_failure(db, submission_id, e)
        return {
            "status": "error",
            "submission_id": submission_id,
            "error": str(e),
        }

    finally:
        db.close()


def _record_failure(db: Session, submission_id: int, error: Exception) -> None:
    try:
        db.rollback()
        submission_service.record_failed_attempt(
            db, submission_id, f"{type(error).__name__}: {error}"
        )
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Could not record failed attempt for submission {submission_id}: {e}")
