"""
agent/gate.py — Query Admission Gate

Binary yes/no check that a request is in scope before any planning happens.

The identity's memory window is JSON-encoded into the validation prompt as
context (so "yes" after "shall I send it?" can be admitted), then the
text-generation boundary is asked for a plain-text answer. Exactly "1" after
trimming admits; anything else ("0", "", prose) rejects.

Boundary failures (timeouts, provider errors) propagate; they are not a
rejection. The gate never writes to memory.
"""

from __future__ import annotations

from typing import Optional

from intentflow.brain.generator import TextGenerator
from intentflow.brain.types import GenerateOptions
from intentflow.memory.store import MemoryStore
from intentflow.observability.logger import get_logger
from intentflow.prompts.generator import PromptGenerator

log = get_logger(__name__)

_ADMIT = "1"


class QueryGate:
    def __init__(
        self,
        generator: TextGenerator,
        prompts: PromptGenerator,
        memory: MemoryStore,
        timeout_ms: Optional[float] = None,
    ) -> None:
        self._generator = generator
        self._prompts = prompts
        self._memory = memory
        self._timeout_ms = timeout_ms

    async def admit(self, identity: str, raw_input: str, trace_id: str = "") -> bool:
        prompt = self._prompts.validation_prompt(self._memory.get(identity))
        answer = await self._generator.generate(
            identity,
            prompt.text,
            raw_input,
            GenerateOptions(as_json=False, timeout_ms=self._timeout_ms, trace_id=trace_id),
        )
        admitted = str(answer).strip() == _ADMIT
        log.info(
            "gate.decision",
            identity=identity,
            admitted=admitted,
            variant_id=prompt.variant_id,
            answer=str(answer)[:20],
        )
        return admitted
