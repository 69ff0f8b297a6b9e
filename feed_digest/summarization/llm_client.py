"""Single-shot completion calls against the configured summary model."""

import asyncio

import structlog

from .interfaces import SummarizationBackend
from ..config.settings import settings

logger = structlog.get_logger()


class LLMClient(SummarizationBackend):
    """Sends one summary prompt to the configured provider and returns its text.

    Each complete() is a single request with no retry; the Summarizer owns
    the retry budget and the empty-response check.
    """

    def __init__(self, provider: str = None, api_key: str = None, model: str = None):
        self.provider = provider or settings.llm_provider
        self.model = model or settings.llm_model
        self._api_key = api_key
        self._client = None

    def _get_client(self):
        """Provider SDK client, built on first use from the configured key."""
        if self._client is not None:
            return self._client

        if self.provider == "gemini":
            from google import genai
            api_key = self._api_key or settings.gemini_api_key
            if not api_key:
                raise ValueError("Gemini API key not configured. Set FD_GEMINI_API_KEY environment variable.")
            self._client = genai.Client(api_key=api_key)

        elif self.provider == "anthropic":
            import anthropic
            api_key = self._api_key or settings.anthropic_api_key
            if not api_key:
                raise ValueError("Anthropic API key not configured. Set FD_ANTHROPIC_API_KEY environment variable.")
            self._client = anthropic.AsyncAnthropic(api_key=api_key)

        elif self.provider == "openai":
            import openai
            api_key = self._api_key or settings.openai_api_key
            if not api_key:
                raise ValueError("OpenAI API key not configured. Set FD_OPENAI_API_KEY environment variable.")
            self._client = openai.AsyncOpenAI(api_key=api_key)

        else:
            raise ValueError(f"Unknown LLM provider: {self.provider}")

        return self._client

    async def complete(
        self,
        prompt: str,
        max_tokens: int = None,
        temperature: float = None
    ) -> str:
        """Return the model output for one summary prompt."""
        client = self._get_client()
        max_tokens = max_tokens or settings.llm_max_tokens
        temperature = temperature if temperature is not None else settings.llm_temperature

        try:
            if self.provider == "gemini":
                return await self._complete_gemini(client, prompt, max_tokens, temperature)
            elif self.provider == "anthropic":
                return await self._complete_anthropic(client, prompt, max_tokens, temperature)
            else:
                return await self._complete_openai(client, prompt, max_tokens, temperature)

        except Exception as e:
            logger.error("llm_call_failed", provider=self.provider, model=self.model, error=str(e))
            raise

    async def _complete_gemini(self, client, prompt: str, max_tokens: int, temperature: float) -> str:
        """google-genai request; the text may be None when output is blocked."""
        from google.genai import types

        # generate_content blocks, keep it off the event loop
        def _sync_call():
            response = client.models.generate_content(
                model=self.model,
                contents=prompt,
                config=types.GenerateContentConfig(
                    temperature=temperature,
                    max_output_tokens=max_tokens,
                ),
            )
            return response.text or ""

        return await asyncio.to_thread(_sync_call)

    async def _complete_anthropic(self, client, prompt: str, max_tokens: int, temperature: float) -> str:
        """Messages request; only text blocks count toward the summary."""
        response = await client.messages.create(
            model=self.model,
            max_tokens=max_tokens,
            temperature=temperature,
            messages=[{"role": "user", "content": prompt}]
        )
        return "".join(block.text for block in response.content if block.type == "text")

    async def _complete_openai(self, client, prompt: str, max_tokens: int, temperature: float) -> str:
        """Chat completions request on the first choice."""
        response = await client.chat.completions.create(
            model=self.model,
            max_tokens=max_tokens,
            temperature=temperature,
            messages=[{"role": "user", "content": prompt}]
        )
        return response.choices[0].message.content or ""
