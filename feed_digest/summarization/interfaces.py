"""Interface definitions for article summarization."""

from dataclasses import dataclass


@dataclass
class SummaryRequest:
    """Input to a summary: the article title and its (possibly empty) body."""
    title: str
    content: str = ""


@dataclass
class SummaryResponse:
    """Generated summary, already cleaned and length-capped."""
    summary: str


class SummarizationBackend:
    """Opaque, fallible text generation call."""

    async def complete(self, prompt: str) -> str:
        """Return generated text for a prompt."""
        raise NotImplementedError


class SummarizerInterface:
    """Interface for summary generation."""

    async def summarize(self, title: str, content: str, max_retries: int = 3) -> SummaryResponse:
        """Summarize one article, retrying on failure."""
        raise NotImplementedError
