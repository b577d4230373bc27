# app/models/__init__.py
# Importing every model registers it on Base.metadata.
from app.models.user import User  # noqa
from app.models.task import Task, TaskCriterion  # noqa
from app.models.submission import (  # noqa
    Submission,
    SubmissionStatus,
    SubmissionType,
)
from app.models.review import (  # noqa
    CodeReview,
    FeedbackType,
    OverallStatus,
    ReviewFeedback,
)
