"""
tests/unit/test_llm_clients.py — LLM Client Tests

Covers:
  - retry on transient errors (connection, rate limit) with backoff
  - permanent errors propagate immediately
  - ResilientLLMClient delegates through retry
  - provider factory
  - Anthropic message/response mapping
"""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from intentflow.brain.anthropic_client import AnthropicClient
from intentflow.brain.llm_client import ResilientLLMClient, _call_with_retry, create_llm_client
from intentflow.brain.openai_client import OpenAIClient
from intentflow.brain.types import FinishReason, LLMConfig, LLMResponse, Message, Provider
from intentflow.exceptions import LLMConnectionError, LLMInvalidRequestError, LLMRateLimitError

CONFIG = LLMConfig(model="test-model")


def _make_client(side_effect):
    client = AsyncMock()
    client.generate = AsyncMock(side_effect=side_effect)
    return client


class TestRetry:
    @pytest.mark.asyncio
    async def test_retries_connection_error(self):
        ok = LLMResponse(content="hi")
        client = _make_client([LLMConnectionError("reset"), ok])
        result = await _call_with_retry(client, [Message.user("x")], CONFIG, base_delay=0, max_delay=0)
        assert result is ok
        assert client.generate.await_count == 2

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self):
        client = _make_client(LLMRateLimitError("slow down"))
        with pytest.raises(LLMRateLimitError):
            await _call_with_retry(client, [Message.user("x")], CONFIG, max_attempts=3,
                                   base_delay=0, max_delay=0)
        assert client.generate.await_count == 3

    @pytest.mark.asyncio
    async def test_permanent_error_not_retried(self):
        client = _make_client(LLMInvalidRequestError("bad"))
        with pytest.raises(LLMInvalidRequestError):
            await _call_with_retry(client, [Message.user("x")], CONFIG, base_delay=0)
        assert client.generate.await_count == 1

    @pytest.mark.asyncio
    async def test_resilient_client(self):
        ok = LLMResponse(content="hi")
        primary = _make_client([LLMConnectionError("reset"), ok])
        resilient = ResilientLLMClient(primary, max_attempts=2, base_delay=0, max_delay=0)
        assert await resilient.generate([Message.user("x")], CONFIG) is ok
        assert resilient.primary is primary


class TestFactory:
    def test_anthropic(self):
        assert isinstance(create_llm_client(Provider.ANTHROPIC, "sk-ant-test"), AnthropicClient)

    def test_openai(self):
        assert isinstance(create_llm_client(Provider.OPENAI, "sk-test"), OpenAIClient)


class TestAnthropicMapping:
    def test_system_prompt_split(self):
        client = AnthropicClient(api_key="sk-ant-test")
        system, messages = client._to_provider_messages([
            Message.system("be brief"),
            Message.user("hello"),
        ])
        assert system == "be brief"
        assert messages == [{"role": "user", "content": "hello"}]

    def test_response_mapping(self):
        client = AnthropicClient(api_key="sk-ant-test")
        response = SimpleNamespace(
            content=[
                SimpleNamespace(type="text", text='{"response": '),
                SimpleNamespace(type="text", text='"ok"}'),
            ],
            stop_reason="max_tokens",
            usage=SimpleNamespace(input_tokens=10, output_tokens=4),
            model="claude-test",
        )
        result = client._from_provider_response(response)
        assert result.content == '{"response": "ok"}'
        assert result.finish_reason == FinishReason.LENGTH
        assert result.usage.total_tokens == 14
        assert result.provider == Provider.ANTHROPIC
