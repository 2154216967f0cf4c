"""
Subtask suggestions: ask Claude to break a task title into short steps.

Each call is independent: one upstream request, no retries, no caching.
Accepted suggestions are persisted separately by accept_suggestion().
"""
import json
import logging
import uuid
from typing import Any, Optional

import anthropic

from database import create_subtask_db
from models import Subtask
from prompts import SUBTASK_SYSTEM_PROMPT, SUBTASK_USER_PROMPT

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-sonnet-4-5"
DEFAULT_TIMEOUT_SECONDS = 30.0
MAX_TOKENS = 2048
TEMPERATURE = 1.0


class SuggestionError(Exception):
    """Base class for failures surfaced by the suggestion endpoint."""
    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class MissingTaskTitleError(SuggestionError):
    status_code = 400


class ConfigurationError(SuggestionError):
    status_code = 500


class UpstreamError(SuggestionError):
    """The model API answered with a non-success status."""

    def __init__(self, status_code: int, reason: str = ""):
        self.reason = reason
        detail = f"{status_code} {reason}".strip()
        super().__init__(f"Anthropic API error: {detail}. Check server logs for details.", status_code)


class TransportError(SuggestionError):
    status_code = 500


def _decode_array(text: str) -> Optional[list[Any]]:
    """The decoded JSON array, or None if text is not one."""
    try:
        decoded = json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return None
    return decoded if isinstance(decoded, list) else None


def parse_suggestions(text: str) -> list:
    """
    Turn the model's reply into a list of suggestions.

    A JSON array is returned as-is (entries are not validated or trimmed).
    Anything else, including an empty array, becomes [text].
    """
    decoded = _decode_array(text)
    if decoded:
        return decoded
    return [text]


def _reply_text(response) -> str:
    """Concatenate the text blocks of a Messages API response."""
    return "".join(
        block.text for block in response.content
        if getattr(block, "type", "text") == "text"
    )


class SubtaskSuggestionService:
    """
    Generates candidate subtasks for a task title.

    The API key is passed in rather than read from the environment; a missing
    key is reported per call so the app can still start without one.
    """

    def __init__(
        self,
        api_key: Optional[str],
        model: str = DEFAULT_MODEL,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        client: Optional[anthropic.AsyncAnthropic] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self._client = client

    @property
    def client(self) -> anthropic.AsyncAnthropic:
        if self._client is None:
            # SDK retries are off: a failed call is reported, never repeated
            self._client = anthropic.AsyncAnthropic(
                api_key=self.api_key,
                timeout=self.timeout,
                max_retries=0,
            )
        return self._client

    async def generate(self, task_title: Optional[str]) -> list:
        if not task_title:
            raise MissingTaskTitleError("taskTitle is required")

        if not self.api_key:
            logger.error("ANTHROPIC_API_KEY is not configured")
            raise ConfigurationError(
                "Anthropic API key not configured. Set ANTHROPIC_API_KEY in the backend environment."
            )

        logger.info("Generating subtasks for task: %r", task_title)

        try:
            response = await self.client.messages.create(
                model=self.model,
                max_tokens=MAX_TOKENS,
                temperature=TEMPERATURE,
                system=SUBTASK_SYSTEM_PROMPT,
                messages=[
                    {"role": "user", "content": SUBTASK_USER_PROMPT.format(task_title=task_title)}
                ],
            )
        except anthropic.APIStatusError as e:
            reason = e.response.reason_phrase
            logger.error("Anthropic API error response (%s): %s", e.status_code, e.body)
            raise UpstreamError(e.status_code, reason) from e
        except anthropic.APIConnectionError as e:
            # Includes APITimeoutError
            logger.error("Could not reach Anthropic API: %s", e)
            raise TransportError(f"Could not reach the language model: {e}") from e

        subtasks = parse_suggestions(_reply_text(response))
        logger.info("Generated %d subtasks", len(subtasks))
        return subtasks


def accept_suggestion(
    candidates: list[str],
    suggestion: str,
    task_id: str,
    user_id: str,
) -> tuple[Subtask, list[str]]:
    """
    Save a suggestion as a pending subtask of task_id.

    Returns the new subtask and the candidates with the first exact match of
    suggestion removed; duplicates beyond that one stay in the list.
    Raises LookupError if the task does not exist for user_id.
    """
    subtask = create_subtask_db(str(uuid.uuid4()), task_id, user_id, suggestion)
    if subtask is None:
        raise LookupError(f"Task {task_id} not found")

    remaining = list(candidates)
    if suggestion in remaining:
        remaining.remove(suggestion)
    return subtask, remaining
