"""
brain/generator.py — Text-Generation Boundary

The single place the agents talk to an LLM. One call = one prompt:

    [Previous context:\n<memory window>\n\n]<prompt>\n\nUser input: <input>
    [\n\nPlease respond with valid JSON only.]

as_json=True  → returns StructuredOutput (parsed, or degraded with raw text)
as_json=False → returns the raw text

The call is raced against options.timeout_ms with asyncio.wait_for, so a slow
provider call is cancelled, not merely ignored, and LLMTimeoutError is raised.
"""

from __future__ import annotations

import asyncio
import json
import time
from typing import Optional, Union

from intentflow.brain.llm_client import BaseLLMClient
from intentflow.brain.types import GenerateOptions, LLMConfig, Message, StructuredOutput
from intentflow.exceptions import LLMTimeoutError
from intentflow.memory.store import MemoryStore
from intentflow.observability.logger import get_logger

log = get_logger(__name__)

_JSON_SUFFIX = "\n\nPlease respond with valid JSON only."


class TextGenerator:
    """Wraps an LLM client with memory context, timeouts and JSON decoding."""

    def __init__(
        self,
        llm_client: BaseLLMClient,
        llm_config: LLMConfig,
        memory: MemoryStore,
        default_timeout_ms: float = 30_000,
    ) -> None:
        self._llm = llm_client
        self._config = llm_config
        self._memory = memory
        self._default_timeout_ms = default_timeout_ms

    async def generate(
        self,
        identity: str,
        prompt: str,
        user_input: str = "",
        options: Optional[GenerateOptions] = None,
    ) -> Union[StructuredOutput, str]:
        options = options or GenerateOptions()
        timeout_ms = options.timeout_ms or self._default_timeout_ms
        full_prompt = self.build_prompt(identity, prompt, user_input, options.as_json)

        log.debug(
            "generator.start",
            identity=identity,
            as_json=options.as_json,
            timeout_ms=timeout_ms,
            trace_id=options.trace_id,
            prompt_chars=len(full_prompt),
        )
        t0 = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._llm.generate(messages=[Message.user(full_prompt)], config=self._config),
                timeout=timeout_ms / 1000,
            )
        except asyncio.TimeoutError:
            log.error("generator.timeout", identity=identity, timeout_ms=timeout_ms,
                      trace_id=options.trace_id)
            raise LLMTimeoutError(timeout_ms) from None

        content = response.content or ""
        log.debug("generator.done", identity=identity,
                  ms=round((time.monotonic() - t0) * 1000), chars=len(content))

        if not options.as_json:
            return content
        return decode_json(content)

    def build_prompt(self, identity: str, prompt: str, user_input: str, as_json: bool) -> str:
        context = "\n".join(self._memory.get(identity))
        parts = []
        if context:
            parts.append(f"Previous context:\n{context}\n\n")
        parts.append(f"{prompt}\n\nUser input: {user_input}")
        if as_json:
            parts.append(_JSON_SUFFIX)
        return "".join(parts)


def decode_json(content: str) -> StructuredOutput:
    """Decode model output as JSON, tolerating ```json fences."""
    text = _strip_fences(content)
    try:
        return StructuredOutput.parsed(json.loads(text), raw=content)
    except json.JSONDecodeError as e:
        log.warning("generator.json_decode_failed", error=str(e), raw=content[:200])
        return StructuredOutput.degraded(raw=content, error=f"invalid JSON: {e.msg}")


def _strip_fences(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        lines = text.splitlines()
        end = len(lines) - 1 if lines[-1].strip() == "```" else len(lines)
        text = "\n".join(lines[1:end])
    return text.strip()
