"""Article summarization using a text generation service."""

from .interfaces import SummaryRequest, SummaryResponse, SummarizationBackend, SummarizerInterface
from .llm_client import LLMClient
from .summarizer import Summarizer, backoff_delay

__all__ = [
    "SummaryRequest", "SummaryResponse", "SummarizationBackend", "SummarizerInterface",
    "LLMClient", "Summarizer", "backoff_delay"
]
