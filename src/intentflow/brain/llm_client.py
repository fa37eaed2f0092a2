"""
brain/llm_client.py — Abstract LLM Client + Retry

Provider implementations (Anthropic, OpenAI) subclass BaseLLMClient and
implement generate().

  - _call_with_retry() — exponential backoff on transient errors
  - ResilientLLMClient — wraps any client with retry
  - create_llm_client() — provider factory
"""

from __future__ import annotations

import asyncio
import random
from abc import ABC, abstractmethod
from typing import Optional

from intentflow.brain.types import LLMConfig, LLMResponse, Message, Provider
from intentflow.exceptions import (
    LLMConnectionError,
    LLMContextError,
    LLMError,
    LLMInvalidRequestError,
    LLMRateLimitError,
)
from intentflow.observability.logger import get_logger

log = get_logger(__name__)


class BaseLLMClient(ABC):
    """
    Abstract base for all LLM provider clients.

    Subclasses must implement:
      - generate()     -> call the LLM, return normalised LLMResponse
      - health_check() -> verify connectivity to the provider
    """

    def __init__(self, api_key: Optional[str] = None, base_url: Optional[str] = None):
        self.api_key = api_key
        self.base_url = base_url

    @abstractmethod
    async def generate(self, messages: list[Message], config: LLMConfig) -> LLMResponse:
        """Call the LLM and return a normalised response."""
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """Return True if the provider is reachable and the API key is valid."""
        ...

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}>"


# ─────────────────────────────────────────────────────────────────────────────
# Retry logic
# ─────────────────────────────────────────────────────────────────────────────


async def _call_with_retry(
    client: BaseLLMClient,
    messages: list[Message],
    config: LLMConfig,
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
) -> LLMResponse:
    """
    Call client.generate() with exponential backoff on transient errors.

    Retries on LLMConnectionError and LLMRateLimitError. Context and
    invalid-request errors are permanent and propagate immediately.

    Backoff: min(base_delay * 2^attempt + jitter, max_delay), or the
    provider's retry_after when it sends one.
    """
    last_error: Exception | None = None

    for attempt in range(max_attempts):
        try:
            return await client.generate(messages=messages, config=config)

        except (LLMConnectionError, LLMRateLimitError) as e:
            last_error = e

            if attempt == max_attempts - 1:
                break

            if isinstance(e, LLMRateLimitError) and e.retry_after:
                delay = min(e.retry_after, max_delay)
            else:
                jitter = random.uniform(0, 0.5)
                delay = min(base_delay * (2 ** attempt) + jitter, max_delay)

            log.warning(
                "llm.retrying",
                attempt=attempt + 1,
                max_attempts=max_attempts,
                delay_s=round(delay, 2),
                error=str(e),
                error_type=type(e).__name__,
            )
            await asyncio.sleep(delay)

        except (LLMContextError, LLMInvalidRequestError, LLMError):
            raise

    raise last_error  # type: ignore[misc]


class ResilientLLMClient(BaseLLMClient):
    """
    Wraps an LLM client with automatic retry on transient errors.

    Usage:
        client = ResilientLLMClient(create_llm_client(Provider.ANTHROPIC, key))
        response = await client.generate(messages, config)
    """

    def __init__(
        self,
        primary: BaseLLMClient,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
    ):
        super().__init__()
        self._primary = primary
        self._max_attempts = max_attempts
        self._base_delay = base_delay
        self._max_delay = max_delay

    @property
    def primary(self) -> BaseLLMClient:
        return self._primary

    async def generate(self, messages: list[Message], config: LLMConfig) -> LLMResponse:
        return await _call_with_retry(
            client=self._primary,
            messages=messages,
            config=config,
            max_attempts=self._max_attempts,
            base_delay=self._base_delay,
            max_delay=self._max_delay,
        )

    async def health_check(self) -> bool:
        return await self._primary.health_check()

    def __repr__(self) -> str:
        return f"<ResilientLLMClient primary={self._primary!r}>"


def create_llm_client(
    provider: Provider,
    api_key: Optional[str],
    base_url: Optional[str] = None,
) -> BaseLLMClient:
    """Central factory that returns the correct client instance."""
    if provider == Provider.ANTHROPIC:
        from intentflow.brain.anthropic_client import AnthropicClient
        return AnthropicClient(api_key=api_key, base_url=base_url)
    elif provider == Provider.OPENAI:
        from intentflow.brain.openai_client import OpenAIClient
        return OpenAIClient(api_key=api_key, base_url=base_url)
    else:
        raise ValueError(f"Unsupported LLM provider: {provider}")
