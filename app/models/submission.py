# app/models/submission.py
from sqlalchemy import (
    CheckConstraint,
    Column,
    Integer,
    String,
    Text,
    DateTime,
    Numeric,
    ForeignKey,
)
from sqlalchemy.sql import func
from app.db.base import Base


class SubmissionType:
    CODE = "code"
    GITHUB_LINK = "github_link"

    ALL = (CODE, GITHUB_LINK)


class SubmissionStatus:
    # pending -> ai_reviewed -> teacher_reviewed -> resubmitted -> accepted
    PENDING = "pending"
    AI_REVIEWED = "ai_reviewed"
    TEACHER_REVIEWED = "teacher_reviewed"
    RESUBMITTED = "resubmitted"
    ACCEPTED = "accepted"

    ALL = (PENDING, AI_REVIEWED, TEACHER_REVIEWED, RESUBMITTED, ACCEPTED)


class Submission(Base):
    __tablename__ = "submissions"
    __table_args__ = (
        CheckConstraint(
            "(submission_type = 'code' AND code IS NOT NULL AND github_url IS NULL) OR "
            "(submission_type = 'github_link' AND github_url IS NOT NULL AND code IS NULL)",
            name="ck_submissions_payload",
        ),
        CheckConstraint(
            "status IN ('pending', 'ai_reviewed', 'teacher_reviewed', 'resubmitted', 'accepted')",
            name="ck_submissions_status",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)

    student_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    task_id = Column(Integer, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)

    # exactly one of code / github_url, matching submission_type
    submission_type = Column(String(20), nullable=False, default=SubmissionType.CODE)
    code = Column(Text, nullable=True)
    github_url = Column(String(255), nullable=True)

    status = Column(String(20), nullable=False, default=SubmissionStatus.PENDING, index=True)
    score = Column(Numeric(5, 2), nullable=True)

    # bookkeeping for failed automated reviews; status stays pending
    review_attempts = Column(Integer, nullable=False, default=0)
    last_review_error = Column(Text, nullable=True)

    submitted_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
