# app/schemas/submission.py
from typing import Literal

from pydantic import BaseModel, model_validator


class SubmissionCreate(BaseModel):
    task_id: int
    submission_type: Literal["code", "github_link"] = "code"
    code: str | None = None
    github_url: str | None = None

    @model_validator(mode="after")
    def _payload_matches_type(self) -> "SubmissionCreate":
        if self.code is not None and self.github_url is not None:
            raise ValueError("code and github_url are mutually exclusive")
        if self.submission_type == "code" and self.code is None:
            raise ValueError("code submissions require code")
        if self.submission_type == "github_link" and self.github_url is None:
            raise ValueError("github_link submissions require github_url")
        return self
