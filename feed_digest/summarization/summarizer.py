"""Bounded-length article summaries with retry and exponential backoff."""

import asyncio
import re
from typing import Awaitable, Callable, Optional

import structlog
from tenacity import AsyncRetrying, RetryCallState, stop_after_attempt

from .interfaces import SummarizationBackend, SummarizerInterface, SummaryRequest, SummaryResponse
from .llm_client import LLMClient
from ..config.settings import settings
from ..errors import SummarizationError

logger = structlog.get_logger()

ELLIPSIS = "…"
EMPTY_CONTENT_PLACEHOLDER = "(no content)"

_NEWLINES = re.compile(r"[\r\n]+")


def backoff_delay(attempt: int, unit: float = 1.0) -> float:
    """Seconds to wait after failed attempt number `attempt` (1-based)."""
    return unit * (2 ** attempt)


class EmptyResponseError(Exception):
    """Generation service returned nothing usable."""


class Summarizer(SummarizerInterface):
    """Summarizes articles through a generation backend."""

    PROMPT_TEMPLATE = """Summarize the following article the way a TV listings guide describes a programme:
state what it is about and what is worth noticing, concisely and without filler.
Never exceed {max_length} characters.
Do not use markdown emphasis such as **.
Do not add phrases like "see the article for details".

Title: {title}
Content: {content}

Summary and key points:"""

    def __init__(
        self,
        backend: SummarizationBackend = None,
        max_length: int = None,
        backoff_unit: float = None,
        sleep: Callable[[float], Awaitable[None]] = None,
    ):
        self.backend = backend or LLMClient()
        self.max_length = max_length or settings.summary_max_length
        if self.max_length < 2:
            raise ValueError("max_length must leave room for text and the ellipsis")

        if backoff_unit is None:
            backoff_unit = 0.0 if settings.is_test else settings.summary_backoff_seconds
        self.backoff_unit = backoff_unit
        self._sleep = sleep or asyncio.sleep

    def build_prompt(self, request: SummaryRequest) -> str:
        """Embed title and content in the fixed instruction prompt."""
        return self.PROMPT_TEMPLATE.format(
            max_length=self.max_length,
            title=request.title,
            content=request.content or EMPTY_CONTENT_PLACEHOLDER,
        )

    def validate_and_truncate(self, summary: Optional[str]) -> str:
        """Collapse newlines, trim, and cap at max_length characters.

        A truncated result is exactly max_length long, the last character
        being the ellipsis. Idempotent for text already within the cap.
        """
        if not summary:
            return ""

        cleaned = _NEWLINES.sub(" ", summary.strip())
        if len(cleaned) <= self.max_length:
            return cleaned
        return cleaned[:self.max_length - 1] + ELLIPSIS

    async def summarize(self, title: str, content: str, max_retries: int = None) -> SummaryResponse:
        """Generate a summary, retrying with exponential backoff.

        Raises SummarizationError once every attempt has failed.
        """
        max_retries = settings.summary_max_retries if max_retries is None else max_retries
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")

        prompt = self.build_prompt(SummaryRequest(title=title, content=content))
        retrying = AsyncRetrying(
            stop=stop_after_attempt(max_retries),
            wait=self._wait,
            sleep=self._sleep,
            before_sleep=self._log_retry,
            reraise=True,
        )

        attempts = 0
        try:
            async for attempt in retrying:
                with attempt:
                    attempts = attempt.retry_state.attempt_number
                    text = await self.backend.complete(prompt)
                    if not text or not text.strip():
                        raise EmptyResponseError("empty response from generation service")
                    return SummaryResponse(summary=self.validate_and_truncate(text))
        except Exception as e:
            if attempts > 1:
                message = f"failed to generate summary after {attempts} attempts: {e}"
            else:
                message = f"failed to generate summary: {e}"
            raise SummarizationError(message, attempts=attempts) from e

    async def test_connection(self) -> bool:
        """Check the backend answers by summarizing a throwaway article."""
        try:
            await self.summarize("Test", "This is a test.", max_retries=1)
            return True
        except SummarizationError as e:
            logger.warning("summarizer_connection_failed", error=str(e))
            return False

    def _wait(self, retry_state: RetryCallState) -> float:
        return backoff_delay(retry_state.attempt_number, self.backoff_unit)

    def _log_retry(self, retry_state: RetryCallState) -> None:
        outcome = retry_state.outcome
        logger.info(
            "summary_retry",
            attempt=retry_state.attempt_number,
            wait_seconds=retry_state.next_action.sleep if retry_state.next_action else None,
            error=str(outcome.exception()) if outcome else None,
        )
