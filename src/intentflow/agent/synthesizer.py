"""
agent/synthesizer.py — Response Synthesizer

Turns the coordinator's ToolResults into the reply the user sees.

  - renders the response prompt with the full results (indented JSON), the
    user input and the identity
  - one JSON-mode call to the text-generation boundary
  - returns the "response" string from the answer; if the answer is not an
    object with a string "response", the raw model text is returned instead

Every call reports (variant_id, success, identity, elapsed_ms) to the metrics
sink in the background. A failing sink is logged and never affects the reply.
Failures of the LLM call itself are reported as unsuccessful and re-raised.
"""

from __future__ import annotations

import time
from typing import Optional

from intentflow.agent.utils import fire_and_forget
from intentflow.brain.generator import TextGenerator
from intentflow.brain.types import GenerateOptions, StructuredOutput
from intentflow.observability.logger import get_logger
from intentflow.observability.metrics import MetricsSink
from intentflow.prompts.generator import PromptGenerator
from intentflow.tools.types import ToolResult

log = get_logger(__name__)


class ResponseSynthesizer:
    def __init__(
        self,
        generator: TextGenerator,
        prompts: PromptGenerator,
        metrics: Optional[MetricsSink] = None,
        timeout_ms: Optional[float] = None,
    ) -> None:
        self._generator = generator
        self._prompts = prompts
        self._metrics = metrics
        self._timeout_ms = timeout_ms

    async def synthesize(
        self,
        results: list[ToolResult],
        identity: str,
        user_input: str,
        trace_id: str = "",
    ) -> str:
        prompt = self._prompts.response_prompt(
            [r.model_dump(mode="json", exclude_none=True) for r in results],
            identity,
            user_input,
        )
        t0 = time.monotonic()
        try:
            output = await self._generator.generate(
                identity,
                prompt.text,
                user_input,
                GenerateOptions(as_json=True, timeout_ms=self._timeout_ms, trace_id=trace_id),
            )
        except Exception:
            self._track(prompt.variant_id, False, identity, t0)
            raise

        self._track(prompt.variant_id, True, identity, t0)
        reply = _extract_response(output)
        log.info("synthesizer.done", identity=identity, variant_id=prompt.variant_id,
                 chars=len(reply))
        return reply

    def _track(self, variant_id: str, success: bool, identity: str, t0: float) -> None:
        if self._metrics is None:
            return
        elapsed_ms = (time.monotonic() - t0) * 1000
        try:
            fire_and_forget(
                self._metrics.track(variant_id, success, identity, elapsed_ms),
                label="prompt_metrics",
            )
        except Exception as e:
            log.warning("synthesizer.metrics_failed", variant_id=variant_id, error=str(e))


def _extract_response(output: object) -> str:
    if isinstance(output, StructuredOutput):
        response = output.field("response")
        if isinstance(response, str):
            return response
        return output.raw
    return str(output)
