# app/services/submission_service.py
from typing import List, Optional

from sqlalchemy.orm import Session

from app.models.submission import Submission, SubmissionStatus
from app.schemas.submission import SubmissionCreate


def create_submission(
    db: Session,
    *,
    student_id: int,
    obj_in: SubmissionCreate,
) -> Submission:
    """
    Intake path: store a new submission in 'pending' so the next
    review cycle picks it up.
    """
    submission = Submission(
        student_id=student_id,
        task_id=obj_in.task_id,
        submission_type=obj_in.submission_type,
        code=obj_in.code,
        github_url=obj_in.github_url,
        status=SubmissionStatus.PENDING,
    )

    db.add(submission)
    db.commit()
    db.refresh(submission)
    return submission


def get_submission(db: Session, submission_id: int) -> Optional[Submission]:
    return db.get(Submission, submission_id)


def list_pending_submissions(
    db: Session,
    *,
    limit: int = 10,
    max_attempts: int | None = None,
) -> List[Submission]:
    """
    Oldest pending submissions first. With ``max_attempts`` set, submissions
    that already failed that many automated reviews are left out.
    """
    query = db.query(Submission).filter(Submission.status == SubmissionStatus.PENDING)
    if max_attempts is not None:
        query = query.filter(Submission.review_attempts < max_attempts)
    return (
        query.order_by(Submission.submitted_at.asc(), Submission.id.asc())
        .limit(limit)
        .all()
    )


def update_status(db: Session, submission_id: int, status: str) -> None:
    updated = (
        db.query(Submission)
        .filter(Submission.id == submission_id)
        .update({Submission.status: status}, synchronize_session="fetch")
    )
    if not updated:
        raise LookupError(f"submission {submission_id} not found")
    db.commit()


def record_failed_attempt(db: Session, submission_id: int, error: str) -> None:
    (
        db.query(Submission)
        .filter(Submission.id == submission_id)
        .update(
            {
                Submission.review_attempts: Submission.review_attempts + 1,
                Submission.last_review_error: error[:2000],
            },
            synchronize_session=False,
        )
    )
    db.commit()
