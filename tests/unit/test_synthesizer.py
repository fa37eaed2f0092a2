"""
tests/unit/test_synthesizer.py — Response Synthesizer and Metrics Tests

Covers:
  - extracts the "response" string from the structured answer
  - falls back to the raw text for non-object / degraded answers
  - results are rendered into the prompt as indented JSON
  - metrics are reported per prompt variant, in the background
  - a broken metrics sink never affects the reply
  - boundary failures are reported as unsuccessful and re-raised
  - PromptMetrics aggregation
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from intentflow.agent.synthesizer import ResponseSynthesizer
from intentflow.brain.generator import decode_json
from intentflow.exceptions import LLMTimeoutError
from intentflow.observability.metrics import PromptMetrics
from intentflow.prompts.generator import PromptGenerator
from intentflow.prompts.library import PromptKind, PromptLibrary, PromptVariant
from intentflow.tools.registry import ToolRegistry
from intentflow.tools.types import ToolResult


def _make_synthesizer(output=None, side_effect=None, metrics=None, library=None):
    generator = AsyncMock()
    generator.generate = AsyncMock(return_value=output, side_effect=side_effect)
    prompts = PromptGenerator(ToolRegistry(), library)
    return ResponseSynthesizer(generator, prompts, metrics=metrics), generator


async def _drain_background() -> None:
    for _ in range(3):
        await asyncio.sleep(0)


RESULTS = [
    ToolResult.success("get_balance", data={"balance": 12}),
    ToolResult.failure("swap", "slippage too high", payload={"amount": 5}),
]


class TestSynthesize:
    @pytest.mark.asyncio
    async def test_extracts_response_field(self):
        synthesizer, generator = _make_synthesizer(decode_json('{"response": "You have 12 XLM."}'))
        reply = await synthesizer.synthesize(RESULTS, "u1", "balance and swap")

        assert reply == "You have 12 XLM."
        identity, prompt_text, user_input, options = generator.generate.await_args.args
        assert (identity, user_input) == ("u1", "balance and swap")
        assert options.as_json is True
        assert '"action": "get_balance"' in prompt_text
        assert '"error": "slippage too high"' in prompt_text

    @pytest.mark.asyncio
    async def test_falls_back_to_raw_text(self):
        synthesizer, _ = _make_synthesizer(decode_json("Your balance is 12 XLM."))
        assert await synthesizer.synthesize(RESULTS, "u1", "x") == "Your balance is 12 XLM."

    @pytest.mark.asyncio
    async def test_object_without_response_falls_back_to_raw(self):
        synthesizer, _ = _make_synthesizer(decode_json('{"message": "hi"}'))
        assert await synthesizer.synthesize(RESULTS, "u1", "x") == '{"message": "hi"}'

    @pytest.mark.asyncio
    async def test_reports_success_metric_for_variant(self):
        metrics = PromptMetrics()
        library = PromptLibrary([PromptVariant("resp-v2", PromptKind.RESPONSE, "{{WORKFLOW_RESULTS}}")])
        synthesizer, _ = _make_synthesizer(
            decode_json('{"response": "ok"}'), metrics=metrics, library=library,
        )
        await synthesizer.synthesize(RESULTS, "u1", "x")
        await _drain_background()

        [record] = metrics.records()
        assert record.variant_id == "resp-v2"
        assert record.success is True
        assert record.identity == "u1"
        assert record.elapsed_ms >= 0

    @pytest.mark.asyncio
    async def test_builtin_variant_id_when_unconfigured(self):
        metrics = PromptMetrics()
        synthesizer, _ = _make_synthesizer(decode_json('{"response": "ok"}'), metrics=metrics)
        await synthesizer.synthesize(RESULTS, "u1", "x")
        await _drain_background()
        assert metrics.variants() == ["builtin:response"]

    @pytest.mark.asyncio
    async def test_failing_metrics_sink_is_swallowed(self):
        sink = AsyncMock()
        sink.track = AsyncMock(side_effect=RuntimeError("db down"))
        synthesizer, _ = _make_synthesizer(decode_json('{"response": "ok"}'), metrics=sink)

        assert await synthesizer.synthesize(RESULTS, "u1", "x") == "ok"
        await _drain_background()
        sink.track.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_boundary_failure_reported_and_raised(self):
        metrics = PromptMetrics()
        synthesizer, _ = _make_synthesizer(side_effect=LLMTimeoutError(100), metrics=metrics)
        with pytest.raises(LLMTimeoutError):
            await synthesizer.synthesize(RESULTS, "u1", "x")
        await _drain_background()
        assert metrics.stats("builtin:response").successful == 0
        assert metrics.stats("builtin:response").total == 1


class TestPromptMetrics:
    @pytest.mark.asyncio
    async def test_stats(self):
        metrics = PromptMetrics()
        await metrics.track("a", True, "u1", 100)
        await metrics.track("a", False, "u2", 300)
        await metrics.track("b", True, "u1", 50)

        stats = metrics.stats("a")
        assert stats.total == 2
        assert stats.successful == 1
        assert stats.success_rate == 0.5
        assert stats.avg_response_ms == 200
        assert metrics.variants() == ["a", "b"]

    def test_unknown_variant_is_zero(self):
        stats = PromptMetrics().stats("nope")
        assert (stats.total, stats.success_rate, stats.avg_response_ms) == (0, 0.0, 0.0)

    @pytest.mark.asyncio
    async def test_bounded(self):
        metrics = PromptMetrics(max_records=3)
        for i in range(5):
            await metrics.track("a", True, "u1", i)
        assert len(metrics) == 3
        assert [r.elapsed_ms for r in metrics.records()] == [2, 3, 4]
