# app/services/review_service.py
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.review import CodeReview, ReviewFeedback
from app.schemas.review import FeedbackItem, ReviewResult


class DuplicateReviewError(Exception):
    """Another writer already stored the review for this submission."""

    def __init__(self, submission_id: int):
        super().__init__(f"submission {submission_id} already has a review")
        self.submission_id = submission_id


def get_review_by_submission_id(db: Session, submission_id: int) -> Optional[CodeReview]:
    return (
        db.query(CodeReview)
        .filter(CodeReview.submission_id == submission_id)
        .one_or_none()
    )


def create_review(
    db: Session,
    *,
    submission_id: int,
    ai_model: str,
    result: ReviewResult,
) -> CodeReview:
    """
    Insert the review row and flush it so it gets an id. The caller owns the
    transaction; on a uniqueness violation the session is rolled back and
    DuplicateReviewError is raised.
    """
    review = CodeReview(
        submission_id=submission_id,
        ai_model=ai_model,
        overall_status=result.overall_status,
        ai_confidence=Decimal(str(round(result.confidence, 2))),
        execution_time_ms=result.execution_time_ms,
    )
    db.add(review)
    try:
        db.flush()
    except IntegrityError as e:
        db.rollback()
        existing = get_review_by_submission_id(db, submission_id)
        if existing is not None:
            raise DuplicateReviewError(submission_id) from e
        raise
    return review


def create_feedback(db: Session, *, review_id: int, item: FeedbackItem) -> ReviewFeedback:
    """
    Insert one feedback item inside a savepoint so a rejected row does not
    poison the surrounding transaction.
    """
    feedback = ReviewFeedback(
        review_id=review_id,
        feedback_type=item.feedback_type,
        file_path=item.file_path,
        line_start=item.line_start,
        line_end=item.line_end,
        code_snippet=item.code_snippet,
        suggested_fix=item.suggested_fix,
        description=item.description,
        severity=item.severity,
        is_resolved=False,
    )
    with db.begin_nested():
        db.add(feedback)
    return feedback


def list_feedback(db: Session, review_id: int) -> List[ReviewFeedback]:
    return (
        db.query(ReviewFeedback)
        .filter(ReviewFeedback.review_id == review_id)
        .order_by(ReviewFeedback.severity.desc(), ReviewFeedback.line_start.asc())
        .all()
    )
