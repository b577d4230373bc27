import os

# Must be set before app.core.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("REVIEW_SCHEDULER_ENABLED", "false")
os.environ.setdefault("AI_API_KEY", "test-key")

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.orm import sessionmaker

from app import models  # noqa
from app.db.base import Base
from app.db.session import make_engine
from app.models.submission import Submission, SubmissionStatus, SubmissionType
from app.models.task import Task, TaskCriterion
from app.models.user import User

BASE_TIME = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def session_factory(tmp_path):
    """File-backed SQLite so worker threads get their own connections."""
    engine = make_engine(f"sqlite:///{tmp_path / 'test.db'}")
    Base.metadata.create_all(bind=engine)
    try:
        yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    finally:
        engine.dispose()


@pytest.fixture
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def test_student(db_session):
    student = User(
        email="student@test.com",
        password_hash="$2b$12$hashed_password_002",
        role="student",
        first_name="Test",
        last_name="Student",
    )
    db_session.add(student)
    db_session.commit()
    db_session.refresh(student)
    return student


@pytest.fixture
def test_task(db_session):
    task = Task(
        title="Counter widget",
        description="Implement a counter widget with increment and reset.",
        max_score=100,
    )
    db_session.add(task)
    db_session.commit()
    db_session.refresh(task)
    return task


@pytest.fixture
def test_criteria(db_session, test_task):
    criteria = [
        TaskCriterion(
            task_id=test_task.id,
            criterion_name="Uses StatefulWidget",
            criterion_description="Counter state lives in a StatefulWidget",
            is_mandatory=True,
            weight=40,
        ),
        TaskCriterion(
            task_id=test_task.id,
            criterion_name="Reset button",
            criterion_description="A reset button sets the counter to zero",
            is_mandatory=False,
            weight=20,
        ),
    ]
    # insertion order matters
    for c in criteria:
        db_session.add(c)
        db_session.flush()
    db_session.commit()
    return criteria


@pytest.fixture
def make_submission(db_session, test_student, test_task):
    counter = {"n": 0}

    def _make(
        *,
        code: str | None = "void main() {}",
        github_url: str | None = None,
        submission_type: str | None = None,
        status: str = SubmissionStatus.PENDING,
        task_id: int | None = None,
        submitted_at: datetime | None = None,
    ) -> Submission:
        counter["n"] += 1
        if submission_type is None:
            submission_type = SubmissionType.GITHUB_LINK if github_url else SubmissionType.CODE
        if submission_type == SubmissionType.GITHUB_LINK:
            code = None
        submission = Submission(
            student_id=test_student.id,
            task_id=task_id if task_id is not None else test_task.id,
            submission_type=submission_type,
            code=code,
            github_url=github_url,
            status=status,
            submitted_at=submitted_at or BASE_TIME + timedelta(minutes=counter["n"]),
        )
        db_session.add(submission)
        db_session.commit()
        db_session.refresh(submission)
        return submission

    return _make


