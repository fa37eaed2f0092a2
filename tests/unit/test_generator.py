"""
tests/unit/test_generator.py — Text-Generation Boundary Tests

Covers:
  - prompt assembly: memory prefix, user input suffix, JSON-only instruction
  - as_json=False returns raw text, as_json=True returns StructuredOutput
  - fenced JSON is decoded; garbage degrades instead of raising
  - a slow LLM call is cancelled and raises LLMTimeoutError
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from intentflow.brain.generator import TextGenerator, decode_json
from intentflow.brain.types import GenerateOptions, LLMConfig, LLMResponse, StructuredOutput
from intentflow.exceptions import LLMTimeoutError
from intentflow.memory.store import MemoryStore


def _make_generator(tmp_path, content: str = "{}", llm=None):
    if llm is None:
        llm = AsyncMock()
        llm.generate = AsyncMock(return_value=LLMResponse(content=content))
    memory = MemoryStore(tmp_path / "memory.json")
    return TextGenerator(llm, LLMConfig(model="test-model"), memory), llm, memory


class TestBuildPrompt:
    def test_without_memory(self, tmp_path):
        gen, _, _ = _make_generator(tmp_path)
        assert gen.build_prompt("u1", "PROMPT", "hello", as_json=False) == "PROMPT\n\nUser input: hello"

    def test_with_memory_and_json(self, tmp_path):
        gen, _, memory = _make_generator(tmp_path)
        memory.add("u1", "User: earlier")
        memory.add("u1", "LLM: []")
        prompt = gen.build_prompt("u1", "PROMPT", "hello", as_json=True)
        assert prompt == (
            "Previous context:\nUser: earlier\nLLM: []\n\n"
            "PROMPT\n\nUser input: hello"
            "\n\nPlease respond with valid JSON only."
        )


class TestGenerate:
    @pytest.mark.asyncio
    async def test_text_mode_returns_raw(self, tmp_path):
        gen, llm, _ = _make_generator(tmp_path, content=" 1 ")
        out = await gen.generate("u1", "P", "hi", GenerateOptions(as_json=False))
        assert out == " 1 "
        messages = llm.generate.await_args.kwargs["messages"]
        assert messages[0].content == "P\n\nUser input: hi"

    @pytest.mark.asyncio
    async def test_json_mode_returns_structured(self, tmp_path):
        gen, _, _ = _make_generator(tmp_path, content='{"workflow": []}')
        out = await gen.generate("u1", "P", "hi")
        assert isinstance(out, StructuredOutput)
        assert out.ok and out.value == {"workflow": []}

    @pytest.mark.asyncio
    async def test_timeout_raises_and_cancels(self, tmp_path):
        cancelled = asyncio.Event()

        async def slow(messages, config):
            try:
                await asyncio.sleep(5)
            except asyncio.CancelledError:
                cancelled.set()
                raise

        llm = AsyncMock()
        llm.generate = slow
        gen, _, _ = _make_generator(tmp_path, llm=llm)
        with pytest.raises(LLMTimeoutError) as exc_info:
            await gen.generate("u1", "P", "hi", GenerateOptions(timeout_ms=50))
        assert str(exc_info.value) == "LLM call timed out after 50ms"
        assert cancelled.is_set()


class TestDecodeJson:
    def test_plain(self):
        assert decode_json('{"response": "ok"}').field("response") == "ok"

    def test_fenced(self):
        out = decode_json('```json\n{"response": "ok"}\n```')
        assert out.ok and out.value == {"response": "ok"}

    def test_garbage_degrades(self):
        out = decode_json("sure! here you go")
        assert not out.ok
        assert out.raw == "sure! here you go"
        assert out.error.startswith("invalid JSON")
        assert out.field("response", "default") == "default"

    def test_non_object_field_returns_default(self):
        out = decode_json("[1, 2]")
        assert out.ok
        assert out.field("workflow") is None
