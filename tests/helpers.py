"""Fake collaborators and builders shared by the tests."""

import threading
from pathlib import Path

from app.schemas.review import FeedbackItem, ReviewResult
from app.services.ai_reviewer import AIReviewer
from app.services.source_fetcher import SourceFetcher, SourceFetchError


class FakeReviewer(AIReviewer):
    """In-memory AIReviewer recording every call."""

    model_name = "fake-model"

    def __init__(self, result: ReviewResult | None = None, error: Exception | None = None, delay: float = 0.0):
        self.result = result or ReviewResult(
            overall_status="passed", confidence=0.9, feedbacks=[], execution_time_ms=5
        )
        self.error = error
        self.delay = delay
        self.calls = []
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def _enter(self, kind, payload, task, criteria):
        with self._lock:
            self.calls.append((kind, payload, task.id if task else None, [c.criterion_name for c in criteria]))
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                threading.Event().wait(self.delay)
            if self.error is not None:
                raise self.error
            return self.result
        finally:
            with self._lock:
                self.active -= 1

    def review_code(self, code, task, criteria):
        return self._enter("code", code, task, criteria)

    def review_project(self, files, task, criteria):
        return self._enter("project", dict(files), task, criteria)


class FakeFetcher(SourceFetcher):
    """SourceFetcher serving a fixed file tree; ``None`` content = unreadable."""

    def __init__(self, files: dict | None = None, fetch_error: Exception | None = None):
        self.files = files or {}
        self.fetch_error = fetch_error
        self.fetched = []
        self.released = []

    def fetch(self, reference):
        self.fetched.append(reference)
        if self.fetch_error is not None:
            raise self.fetch_error
        return Path(f"/fake/{len(self.fetched)}")

    def list_files(self, handle):
        return sorted(self.files)

    def read_file(self, handle, relative_path):
        content = self.files[relative_path]
        if content is None:
            raise SourceFetchError(f"failed to read {relative_path}")
        return content

    def release(self, handle):
        self.released.append(handle)



def make_result(overall_status="needs_improvement", confidence=0.7, feedbacks=None) -> ReviewResult:
    return ReviewResult(
        overall_status=overall_status,
        confidence=confidence,
        feedbacks=feedbacks or [],
        execution_time_ms=42,
    )


def make_feedback(**overrides) -> FeedbackItem:
    data = {
        "type": "logic_error",
        "line_start": 3,
        "line_end": 5,
        "code_snippet": "count--;",
        "suggested_fix": "count++;",
        "description": "Increment decrements the counter",
        "severity": 4,
    }
    data.update(overrides)
    return FeedbackItem.model_validate(data)


def make_unchecked_feedback(**overrides) -> FeedbackItem:
    """FeedbackItem that skips validation, for exercising database constraints."""
    data = make_feedback().model_dump(by_alias=True)
    data.update(overrides)
    return FeedbackItem.model_construct(**data)
