"""
brain/anthropic_client.py — Anthropic LLM Client

Handles Anthropic's separate system prompt, content-block responses and
error normalisation into the IntentFlow LLMError hierarchy.
"""

from __future__ import annotations

from typing import Optional

import anthropic
from anthropic import AsyncAnthropic

from intentflow.brain.llm_client import BaseLLMClient
from intentflow.brain.types import (
    FinishReason,
    LLMConfig,
    LLMResponse,
    Message,
    Provider,
    Role,
    TokenUsage,
)
from intentflow.exceptions import (
    LLMConnectionError,
    LLMContextError,
    LLMError,
    LLMInvalidRequestError,
    LLMRateLimitError,
)
from intentflow.observability.logger import get_logger

log = get_logger(__name__)

_FINISH_MAP = {
    "end_turn": FinishReason.STOP,
    "stop_sequence": FinishReason.STOP,
    "max_tokens": FinishReason.LENGTH,
}


class AnthropicClient(BaseLLMClient):
    """Anthropic Claude API client."""

    def __init__(self, api_key: Optional[str], base_url: Optional[str] = None):
        super().__init__(api_key=api_key, base_url=base_url)
        self._client = AsyncAnthropic(api_key=api_key, base_url=base_url)

    async def generate(self, messages: list[Message], config: LLMConfig) -> LLMResponse:
        system_prompt, ant_messages = self._to_provider_messages(messages)

        log.debug(
            "anthropic.generate.start",
            model=config.model,
            message_count=len(messages),
            has_system=bool(system_prompt),
        )

        try:
            response = await self._client.messages.create(
                model=config.model,
                system=system_prompt or anthropic.NOT_GIVEN,
                messages=ant_messages,
                temperature=config.temperature,
                max_tokens=config.max_tokens,
                top_p=config.top_p,
                timeout=config.timeout_seconds,
            )
        except anthropic.AuthenticationError as e:
            raise LLMConnectionError(str(e), provider="anthropic", status_code=401) from e
        except anthropic.RateLimitError as e:
            raise LLMRateLimitError(str(e), provider="anthropic") from e
        except anthropic.BadRequestError as e:
            msg_str = str(e)
            if "too long" in msg_str.lower() or "context" in msg_str.lower():
                raise LLMContextError(msg_str, provider="anthropic") from e
            raise LLMInvalidRequestError(msg_str, provider="anthropic") from e
        except anthropic.APIConnectionError as e:
            raise LLMConnectionError(str(e), provider="anthropic") from e
        except anthropic.APIError as e:
            raise LLMError(str(e), provider="anthropic", status_code=getattr(e, "status_code", None)) from e

        result = self._from_provider_response(response)
        log.debug(
            "anthropic.generate.complete",
            model=result.model,
            input_tokens=result.usage.input_tokens,
            output_tokens=result.usage.output_tokens,
            finish_reason=result.finish_reason.value,
        )
        return result

    async def health_check(self) -> bool:
        """Verify the API key via models.list() — no tokens consumed."""
        try:
            await self._client.models.list()
            return True
        except anthropic.AuthenticationError:
            return False
        except (anthropic.APIError, OSError) as e:
            log.warning("anthropic.health_check.failed", error=str(e), error_type=type(e).__name__)
            return False

    # ── Private helpers ───────────────────────────────────────────────────────

    def _to_provider_messages(self, messages: list[Message]) -> tuple[Optional[str], list[dict]]:
        """Split out the system prompt; Anthropic takes it as a top-level param."""
        system_prompt: Optional[str] = None
        result: list[dict] = []
        for msg in messages:
            if msg.role == Role.SYSTEM:
                system_prompt = (system_prompt + "\n\n" + msg.content) if system_prompt else msg.content
            else:
                result.append({"role": msg.role.value, "content": msg.content})
        return system_prompt, result

    def _from_provider_response(self, response) -> LLMResponse:
        text = "".join(
            block.text for block in response.content if getattr(block, "type", "") == "text"
        )
        return LLMResponse(
            content=text,
            finish_reason=_FINISH_MAP.get(response.stop_reason or "", FinishReason.STOP),
            usage=TokenUsage(
                input_tokens=response.usage.input_tokens,
                output_tokens=response.usage.output_tokens,
            ),
            model=response.model,
            provider=Provider.ANTHROPIC,
        )
