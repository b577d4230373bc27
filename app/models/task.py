# app/models/task.py
from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.sql import func
from app.db.base import Base


class Task(Base):
    __tablename__ = "tasks"
    __table_args__ = (CheckConstraint("max_score > 0", name="ck_tasks_max_score"),)

    id = Column(Integer, primary_key=True, index=True)
    course_id = Column(Integer, nullable=True, index=True)

    title = Column(String(100), nullable=False)
    description = Column(Text, nullable=False)
    deadline = Column(DateTime(timezone=True), nullable=True)
    max_score = Column(Integer, nullable=False, default=100)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=func.now())


class TaskCriterion(Base):
    """A named, weighted grading rule attached to a task."""

    __tablename__ = "task_criteria"
    __table_args__ = (
        CheckConstraint("weight BETWEEN 1 AND 100", name="ck_task_criteria_weight"),
    )

    id = Column(Integer, primary_key=True, index=True)
    task_id = Column(
        Integer, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True
    )

    criterion_name = Column(String(100), nullable=False)
    criterion_description = Column(Text, nullable=False)
    is_mandatory = Column(Boolean, nullable=False, default=True)
    weight = Column(Integer, nullable=False, default=10)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
