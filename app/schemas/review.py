# app/schemas/review.py
import logging
from typing import Literal

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

logger = logging.getLogger(__name__)

OverallStatusLiteral = Literal["passed", "failed", "needs_improvement"]
FeedbackTypeLiteral = Literal[
    "critical_error",
    "logic_error",
    "style_issue",
    "performance",
    "security_risk",
    "improvement",
]


class FeedbackItem(BaseModel):
    """One issue reported by the AI reviewer"""
    feedback_type: FeedbackTypeLiteral = Field(alias="type")
    file_path: str | None = None
    line_start: int = Field(ge=1)
    line_end: int | None = None
    code_snippet: str = ""
    suggested_fix: str | None = None
    description: str
    severity: int = Field(default=3, ge=1, le=5)

    model_config = {"populate_by_name": True}

    @field_validator("file_path", "suggested_fix", mode="before")
    @classmethod
    def _blank_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("line_end", mode="before")
    @classmethod
    def _zero_line_end_to_none(cls, value):
        return None if value == 0 else value

    @model_validator(mode="after")
    def _line_range_ordered(self) -> "FeedbackItem":
        if self.line_end is not None and self.line_end < self.line_start:
            raise ValueError("line_end must not be before line_start")
        return self


class AIReviewResponse(BaseModel):
    """JSON document the reviewer model is asked to answer with"""
    overall_status: OverallStatusLiteral
    confidence: float = Field(ge=0, le=1)
    feedbacks: list[FeedbackItem] = Field(default_factory=list)

    @field_validator("feedbacks", mode="before")
    @classmethod
    def _drop_invalid_feedbacks(cls, value):
        # a bad item costs only that item, never the whole review
        if not isinstance(value, list):
            return value
        kept = []
        for i, raw in enumerate(value):
            try:
                kept.append(FeedbackItem.model_validate(raw))
            except ValidationError as e:
                logger.warning(f"Dropping invalid feedback item {i}: {e.errors()[0]['msg']}")
        return kept


class ReviewResult(AIReviewResponse):
    execution_time_ms: int = Field(ge=0)
