# app/models/review.py
from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.sql import func
from app.db.base import Base


class OverallStatus:
    PASSED = "passed"
    FAILED = "failed"
    NEEDS_IMPROVEMENT = "needs_improvement"

    ALL = (PASSED, FAILED, NEEDS_IMPROVEMENT)


class FeedbackType:
    CRITICAL_ERROR = "critical_error"
    LOGIC_ERROR = "logic_error"
    STYLE_ISSUE = "style_issue"
    PERFORMANCE = "performance"
    SECURITY_RISK = "security_risk"
    IMPROVEMENT = "improvement"

    ALL = (CRITICAL_ERROR, LOGIC_ERROR, STYLE_ISSUE, PERFORMANCE, SECURITY_RISK, IMPROVEMENT)


class CodeReview(Base):
    __tablename__ = "code_reviews"
    __table_args__ = (
        CheckConstraint(
            "overall_status IN ('passed', 'failed', 'needs_improvement')",
            name="ck_code_reviews_overall_status",
        ),
        CheckConstraint(
            "ai_confidence BETWEEN 0 AND 1", name="ck_code_reviews_ai_confidence"
        ),
    )

    id = Column(Integer, primary_key=True, index=True)

    # one review per submission
    submission_id = Column(
        Integer,
        ForeignKey("submissions.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )

    ai_model = Column(String(50), nullable=False)
    overall_status = Column(String(20), nullable=False)
    ai_confidence = Column(Numeric(3, 2), nullable=True)
    execution_time_ms = Column(Integer, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())


class ReviewFeedback(Base):
    __tablename__ = "review_feedback"
    __table_args__ = (
        CheckConstraint(
            "feedback_type IN ('critical_error', 'logic_error', 'style_issue', "
            "'performance', 'security_risk', 'improvement')",
            name="ck_review_feedback_type",
        ),
        CheckConstraint("severity BETWEEN 1 AND 5", name="ck_review_feedback_severity"),
        CheckConstraint("line_start > 0", name="ck_review_feedback_line_start"),
        CheckConstraint(
            "line_end IS NULL OR line_end >= line_start", name="ck_review_feedback_line_end"
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    review_id = Column(
        Integer, ForeignKey("code_reviews.id", ondelete="CASCADE"), nullable=False, index=True
    )

    feedback_type = Column(String(20), nullable=False)
    file_path = Column(String(500), nullable=True)
    line_start = Column(Integer, nullable=False)
    line_end = Column(Integer, nullable=True)
    code_snippet = Column(Text, nullable=False)
    suggested_fix = Column(Text, nullable=True)
    description = Column(Text, nullable=False)
    severity = Column(Integer, nullable=False, default=3, index=True)

    is_resolved = Column(Boolean, nullable=False, default=False)

    # 老师评审（不由自动流程写入）
    teacher_comment = Column(Text, nullable=True)
    teacher_approved = Column(Boolean, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
