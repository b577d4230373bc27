from datetime import timedelta

import pytest
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError

from app.models.review import CodeReview, FeedbackType
from app.models.submission import Submission, SubmissionStatus, SubmissionType
from app.models.task import TaskCriterion
from app.schemas.submission import SubmissionCreate
from app.services import review_service, submission_service, task_service
from app.services.review_service import DuplicateReviewError
from tests.conftest import BASE_TIME
from tests.helpers import make_feedback, make_result, make_unchecked_feedback


class TestSubmissionCreate:
    def test_code_submission(self):
        obj = SubmissionCreate(task_id=1, code="void main() {}")
        assert obj.submission_type == "code"

    def test_link_submission(self):
        obj = SubmissionCreate(
            task_id=1, submission_type="github_link", github_url="https://github.com/a/b"
        )
        assert obj.code is None

    @pytest.mark.parametrize(
        "data",
        [
            {"task_id": 1, "code": "x", "github_url": "https://github.com/a/b"},
            {"task_id": 1, "submission_type": "code"},
            {"task_id": 1, "submission_type": "github_link", "code": "x"},
            {"task_id": 1, "submission_type": "zip", "code": "x"},
        ],
    )
    def test_invalid_payloads(self, data):
        with pytest.raises(ValidationError):
            SubmissionCreate(**data)


class TestSubmissionService:
    def test_create_submission_is_pending(self, db_session, test_student, test_task):
        submission = submission_service.create_submission(
            db_session,
            student_id=test_student.id,
            obj_in=SubmissionCreate(task_id=test_task.id, code="void main() {}"),
        )

        assert submission.id is not None
        assert submission.status == SubmissionStatus.PENDING
        assert submission.review_attempts == 0
        assert submission.submitted_at is not None

    def test_payload_check_constraint(self, db_session, test_student, test_task):
        db_session.add(
            Submission(
                student_id=test_student.id,
                task_id=test_task.id,
                submission_type=SubmissionType.CODE,
                code=None,
                github_url="https://github.com/a/b",
            )
        )
        with pytest.raises(IntegrityError):
            db_session.commit()
        db_session.rollback()

    def test_list_pending_orders_by_submission_time(self, db_session, make_submission):
        late = make_submission(submitted_at=BASE_TIME + timedelta(hours=2))
        early = make_submission(submitted_at=BASE_TIME)
        middle = make_submission(submitted_at=BASE_TIME + timedelta(hours=1))
        make_submission(status=SubmissionStatus.AI_REVIEWED, submitted_at=BASE_TIME - timedelta(hours=1))

        pending = submission_service.list_pending_submissions(db_session, limit=10)

        assert [s.id for s in pending] == [early.id, middle.id, late.id]

    def test_list_pending_respects_limit(self, db_session, make_submission):
        ids = [make_submission().id for _ in range(5)]

        pending = submission_service.list_pending_submissions(db_session, limit=3)

        assert [s.id for s in pending] == ids[:3]

    def test_list_pending_ties_break_on_id(self, db_session, make_submission):
        first = make_submission(submitted_at=BASE_TIME)
        second = make_submission(submitted_at=BASE_TIME)

        pending = submission_service.list_pending_submissions(db_session, limit=10)

        assert [s.id for s in pending] == [first.id, second.id]

    def test_list_pending_excludes_exhausted(self, db_session, make_submission):
        exhausted = make_submission()
        fresh = make_submission()
        for _ in range(3):
            submission_service.record_failed_attempt(db_session, exhausted.id, "boom")

        capped = submission_service.list_pending_submissions(db_session, limit=10, max_attempts=3)
        unlimited = submission_service.list_pending_submissions(db_session, limit=10)

        assert [s.id for s in capped] == [fresh.id]
        assert [s.id for s in unlimited] == [exhausted.id, fresh.id]

    def test_record_failed_attempt_truncates_error(self, db_session, make_submission):
        submission = make_submission()

        submission_service.record_failed_attempt(db_session, submission.id, "x" * 5000)

        db_session.refresh(submission)
        assert submission.review_attempts == 1
        assert len(submission.last_review_error) == 2000

    def test_update_status(self, db_session, make_submission):
        submission = make_submission()

        submission_service.update_status(db_session, submission.id, SubmissionStatus.AI_REVIEWED)

        db_session.refresh(submission)
        assert submission.status == SubmissionStatus.AI_REVIEWED

    def test_update_status_unknown_submission(self, db_session):
        with pytest.raises(LookupError):
            submission_service.update_status(db_session, 999, SubmissionStatus.AI_REVIEWED)


class TestTaskService:
    def test_get_task(self, db_session, test_task):
        assert task_service.get_task(db_session, test_task.id).title == "Counter widget"
        assert task_service.get_task(db_session, 999) is None

    def test_criteria_in_insertion_order(self, db_session, test_task, test_criteria):
        criteria = task_service.list_criteria(db_session, test_task.id)

        assert [c.criterion_name for c in criteria] == ["Uses StatefulWidget", "Reset button"]

    def test_criteria_of_other_tasks_excluded(self, db_session, test_task, test_criteria):
        assert task_service.list_criteria(db_session, test_task.id + 1) == []

    def test_criterion_weight_bounds(self, db_session, test_task):
        db_session.add(
            TaskCriterion(
                task_id=test_task.id,
                criterion_name="Too heavy",
                criterion_description="x",
                weight=150,
            )
        )
        with pytest.raises(IntegrityError):
            db_session.commit()
        db_session.rollback()


class TestReviewService:
    def test_create_review_and_feedback(self, db_session, make_submission):
        submission = make_submission()

        review = review_service.create_review(
            db_session,
            submission_id=submission.id,
            ai_model="deepseek-chat",
            result=make_result(confidence=0.876),
        )
        review_service.create_feedback(db_session, review_id=review.id, item=make_feedback(severity=2))
        review_service.create_feedback(
            db_session,
            review_id=review.id,
            item=make_feedback(type="critical_error", severity=5, line_start=1, line_end=1),
        )
        db_session.commit()

        stored = review_service.get_review_by_submission_id(db_session, submission.id)
        assert stored.id == review.id
        assert float(stored.ai_confidence) == pytest.approx(0.88)
        assert stored.execution_time_ms == 42
        feedback = review_service.list_feedback(db_session, review.id)
        assert [f.severity for f in feedback] == [5, 2]
        assert feedback[0].feedback_type == FeedbackType.CRITICAL_ERROR
        assert feedback[0].is_resolved is False

    def test_second_review_for_submission_is_duplicate(self, db_session, make_submission):
        submission = make_submission()
        review_service.create_review(
            db_session, submission_id=submission.id, ai_model="m", result=make_result()
        )
        db_session.commit()

        with pytest.raises(DuplicateReviewError) as exc_info:
            review_service.create_review(
                db_session, submission_id=submission.id, ai_model="m", result=make_result()
            )

        assert exc_info.value.submission_id == submission.id
        assert db_session.query(CodeReview).count() == 1

    def test_rejected_feedback_keeps_transaction(self, db_session, make_submission):
        submission = make_submission()
        review = review_service.create_review(
            db_session, submission_id=submission.id, ai_model="m", result=make_result()
        )

        with pytest.raises(IntegrityError):
            review_service.create_feedback(
                db_session, review_id=review.id, item=make_unchecked_feedback(line_start=5, line_end=2)
            )
        review_service.create_feedback(db_session, review_id=review.id, item=make_feedback())
        db_session.commit()

        assert review_service.get_review_by_submission_id(db_session, submission.id) is not None
        assert len(review_service.list_feedback(db_session, review.id)) == 1
