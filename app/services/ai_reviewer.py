"""
AI Reviewer
Sends submitted source code to a chat-completions model and turns its answer
into a validated ReviewResult.
"""

import json
import logging
import time
from abc import ABC, abstractmethod
from typing import Mapping, Sequence

import httpx
from pydantic import ValidationError

from app.core.config import settings
from app.models.task import Task, TaskCriterion
from app.schemas.review import AIReviewResponse, ReviewResult

logger = logging.getLogger(__name__)


class AIReviewerError(Exception):
    pass


class AIReviewer(ABC):
    """Capability interface the review workflow depends on."""

    model_name: str = "unknown"

    @abstractmethod
    def review_code(
        self,
        code: str,
        task: Task | None,
        criteria: Sequence[TaskCriterion],
    ) -> ReviewResult:
        """Review a single inline source text."""

    @abstractmethod
    def review_project(
        self,
        files: Mapping[str, str],
        task: Task | None,
        criteria: Sequence[TaskCriterion],
    ) -> ReviewResult:
        """Review a project given as relative path -> file content."""


_ANSWER_FORMAT = """Provide your response in the following JSON format:
{{
  "overall_status": "passed|failed|needs_improvement",
  "confidence": 0.95,
  "feedbacks": [
    {{
      "type": "critical_error|logic_error|style_issue|performance|security_risk|improvement",{file_path_line}
      "line_start": 10,
      "line_end": 15,
      "code_snippet": "problematic code here",
      "suggested_fix": "corrected code here",
      "description": "detailed explanation of the issue",
      "severity": 3
    }}
  ]
}}"""

_REVIEW_GUIDE = """Review categories:
1. critical_error: syntax errors, null safety violations, type mismatches
2. logic_error: incorrect business logic, potential runtime errors
3. style_issue: formatting, naming conventions, idiomatic usage
4. performance: inefficient algorithms, unnecessary work, memory leaks
5. security_risk: exposed sensitive data, insecure API calls
6. improvement: better patterns, code organization{extra_category}

Severity levels:
- 5: Critical (blocks functionality)
- 4: Major (significant impact)
- 3: Moderate (noticeable issue)
- 2: Minor (cosmetic or style)
- 1: Suggestion (optional improvement)

Overall status:
- "passed": production-ready with minor or no issues
- "needs_improvement": works but has moderate issues
- "failed": critical errors or major problems

Provide confidence as a decimal between 0 and 1.
Answer with the JSON document only."""


def format_criteria(criteria: Sequence[TaskCriterion]) -> str:
    """
    Render criteria as a numbered list, keeping their stored order.
    """
    if not criteria:
        return ""
    lines = ["Task-specific criteria to check:"]
    for i, c in enumerate(criteria, start=1):
        kind = "Mandatory" if c.is_mandatory else "Optional"
        lines.append(
            f"{i}. [{kind}, Weight: {c.weight}] {c.criterion_name}: {c.criterion_description}"
        )
    return "\n".join(lines)


def _context_sections(task: Task | None, criteria: Sequence[TaskCriterion]) -> list[str]:
    sections = []
    if task is not None and task.description:
        sections.append(f"Task description:\n{task.description}")
    criteria_text = format_criteria(criteria)
    if criteria_text:
        sections.append(criteria_text)
    return sections


def build_code_prompt(
    code: str,
    task: Task | None,
    criteria: Sequence[TaskCriterion],
    language: str = "Flutter/Dart",
) -> str:
    sections = [
        f"Analyze the following {language} code and provide a detailed code review.",
        *_context_sections(task, criteria),
        f"Code to review:\n{code}",
        _ANSWER_FORMAT.format(file_path_line=""),
        _REVIEW_GUIDE.format(extra_category=""),
    ]
    if criteria:
        sections.append(
            "IMPORTANT: Check whether the code meets the task-specific criteria "
            "above and report every unmet criterion as feedback."
        )
    return "\n\n".join(sections)


def build_project_prompt(
    files: Mapping[str, str],
    task: Task | None,
    criteria: Sequence[TaskCriterion],
    language: str = "Flutter/Dart",
) -> str:
    file_blocks = [f"{language} project files:"]
    for path in sorted(files):
        file_blocks.append(f"=== File: {path} ===\n{files[path]}")

    sections = [
        f"Analyze the following {language} project and provide a detailed code review.",
        *_context_sections(task, criteria),
        "\n\n".join(file_blocks),
        _ANSWER_FORMAT.format(file_path_line='\n      "file_path": "lib/main.dart",'),
        _REVIEW_GUIDE.format(
            extra_category="\n7. Project structure: file organization, separation of concerns"
            " (report these as improvement)"
        ),
        'IMPORTANT: Always include the "file_path" field in each feedback item '
        "to indicate which file the issue is in.",
    ]
    if criteria:
        sections.append(
            "IMPORTANT: Check whether the project meets the task-specific criteria "
            "above and report every unmet criterion as feedback."
        )
    return "\n\n".join(sections)


def strip_code_fence(content: str) -> str:
    """Remove a surrounding ```json ... ``` fence if the model added one."""
    content = content.strip()
    if content.startswith("```json"):
        content = content[len("```json"):]
    elif content.startswith("```"):
        content = content[len("```"):]
    if content.endswith("```"):
        content = content[: -len("```")]
    return content.strip()


def parse_review_response(content: str) -> AIReviewResponse:
    """
    Validate the model's answer.

    Raises:
        AIReviewerError: If the answer is not JSON or does not match the schema
    """
    try:
        return AIReviewResponse.model_validate_json(strip_code_fence(content))
    except ValidationError as e:
        raise AIReviewerError(f"failed to parse AI response: {e}") from e


class DeepSeekReviewer(AIReviewer):
    """
    AIReviewer backed by an OpenAI-compatible chat completions endpoint
    (DeepSeek by default).
    """

    def __init__(
        self,
        *,
        api_url: str | None = None,
        api_key: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
        language: str = "Flutter/Dart",
        client: httpx.Client | None = None,
    ):
        self.api_url = api_url or settings.AI_API_URL
        self.api_key = api_key if api_key is not None else settings.AI_API_KEY
        self.model_name = model or settings.AI_MODEL
        self.language = language
        # total deadline for one request; httpx timeouts only bound each read
        self.timeout = timeout if timeout is not None else settings.AI_REQUEST_TIMEOUT_SECONDS
        self._client = client or httpx.Client(timeout=self.timeout)

    def close(self) -> None:
        self._client.close()

    def review_code(self, code, task, criteria) -> ReviewResult:
        logger.info(
            f"Starting AI code review: code_length={len(code)}, criteria={len(criteria)}"
        )
        prompt = build_code_prompt(code, task, criteria, self.language)
        system = (
            f"You are an expert {self.language} code reviewer. Analyze code and "
            "provide structured feedback in JSON format."
        )
        return self._review(system, prompt)

    def review_project(self, files, task, criteria) -> ReviewResult:
        logger.info(
            f"Starting AI project review: files={len(files)}, criteria={len(criteria)}"
        )
        prompt = build_project_prompt(files, task, criteria, self.language)
        system = (
            f"You are an expert {self.language} code reviewer. Analyze projects and "
            "provide structured feedback in JSON format."
        )
        return self._review(system, prompt)

    def _review(self, system_prompt: str, user_prompt: str) -> ReviewResult:
        started = time.monotonic()
        content = self._complete(system_prompt, user_prompt)
        answer = parse_review_response(content)
        execution_time_ms = max(1, int((time.monotonic() - started) * 1000))

        logger.info(
            f"AI review completed: overall_status={answer.overall_status}, "
            f"confidence={answer.confidence:.2f}, feedbacks={len(answer.feedbacks)}, "
            f"execution_time_ms={execution_time_ms}"
        )
        return ReviewResult(
            overall_status=answer.overall_status,
            confidence=answer.confidence,
            feedbacks=answer.feedbacks,
            execution_time_ms=execution_time_ms,
        )

    def _complete(self, system_prompt: str, user_prompt: str) -> str:
        payload = {
            "model": self.model_name,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "stream": False,
        }
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        logger.info(f"Sending request to AI API: url={self.api_url}, model={self.model_name}")
        deadline = time.monotonic() + self.timeout
        body = bytearray()
        try:
            with self._client.stream(
                "POST", self.api_url, json=payload, headers=headers
            ) as resp:
                # the API may trickle keep-alive blank lines while generating
                for chunk in resp.iter_bytes():
                    body.extend(chunk)
                    if time.monotonic() > deadline:
                        raise AIReviewerError(
                            f"AI request timed out: no complete answer within {self.timeout}s"
                        )
                status_code = resp.status_code
        except httpx.TimeoutException as e:
            raise AIReviewerError(f"AI request timed out: {e}") from e
        except httpx.HTTPError as e:
            raise AIReviewerError(f"failed to send request: {e}") from e

        if status_code != 200:
            text = bytes(body[:500]).decode("utf-8", errors="replace")
            raise AIReviewerError(f"API request failed with status {status_code}: {text}")

        try:
            choices = json.loads(body)["choices"]
            content = choices[0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise AIReviewerError(f"unexpected AI API response: {e}") from e
        if not isinstance(content, str):
            raise AIReviewerError("no response from AI")
        return content
