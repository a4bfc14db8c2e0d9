"""
LLM Call Interface for react_orchestrator

The reasoning loop only depends on the ``ChatModel`` protocol: a list of
role-tagged messages in, either a full response or a lazy sequence of
text fragments out. ``LLMClient`` implements it against any
OpenAI-compatible endpoint (OpenAI, vLLM, DashScope compatible mode).
"""

import copy
import logging
from typing import AsyncIterator, Optional, Protocol

from openai import AsyncOpenAI

from .config import config

logger = logging.getLogger(__name__)


class LLMCallError(RuntimeError):
    """Raised when the language model cannot be reached or fails."""


class ChatModel(Protocol):
    """Contract the orchestration core depends on."""

    async def invoke(self, messages: list[dict]) -> str:
        ...

    def stream(self, messages: list[dict]) -> AsyncIterator[str]:
        ...


class LLMClient:
    """OpenAI-compatible chat model supporting single-shot and streaming calls."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        api_key: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        timeout: Optional[float] = None,
    ):
        self.base_url = base_url or config.llm.base_url
        self.model = model or config.llm.model
        self.temperature = (
            temperature if temperature is not None else config.llm.temperature
        )
        self.max_tokens = max_tokens if max_tokens is not None else config.llm.max_tokens
        self._client = AsyncOpenAI(
            base_url=self.base_url,
            api_key=api_key or config.llm.api_key or "not-needed",
            timeout=timeout if timeout is not None else config.llm.timeout,
        )

    def with_settings(
        self,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> "LLMClient":
        """Copy of this client with different sampling settings.

        The copy shares the underlying HTTP client.
        """
        clone = copy.copy(self)
        if model:
            clone.model = model
        if temperature is not None:
            clone.temperature = temperature
        if max_tokens is not None:
            clone.max_tokens = max_tokens
        return clone

    def _create_kwargs(self, messages: list[dict]) -> dict:
        return {
            "model": self.model,
            "messages": messages,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }

    async def invoke(self, messages: list[dict]) -> str:
        """Call the model and return the full response text.

        Raises:
            LLMCallError: If the request fails.
        """
        try:
            logger.debug(f"Calling {self.model} with {len(messages)} messages")
            response = await self._client.chat.completions.create(
                **self._create_kwargs(messages)
            )
            return response.choices[0].message.content or ""
        except Exception as e:
            logger.error(f"LLM call to {self.base_url} failed: {e}")
            raise LLMCallError(f"LLM call failed: {e}") from e

    async def stream(self, messages: list[dict]) -> AsyncIterator[str]:
        """Call the model in streaming mode, yielding text fragments.

        Each call opens a fresh stream; the iterator is not restartable.

        Raises:
            LLMCallError: If the request fails before or during streaming.
        """
        try:
            logger.debug(f"Streaming {self.model} with {len(messages)} messages")
            response = await self._client.chat.completions.create(
                **self._create_kwargs(messages), stream=True
            )
            async for chunk in response:
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta.content
                if delta:
                    yield delta
        except Exception as e:
            logger.error(f"LLM stream from {self.base_url} failed: {e}")
            raise LLMCallError(f"LLM stream failed: {e}") from e

    async def close(self) -> None:
        """Close the underlying OpenAI client."""
        try:
            await self._client.close()
        except Exception as e:
            logger.debug(f"Error closing OpenAI client: {e}")
