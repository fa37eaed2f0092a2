"""
agent/planner.py — Intent Planner

Turns an admitted request into an ordered WorkflowPlan.

One JSON-mode call to the text-generation boundary with the intent prompt
(tool catalog, parameter schemas, examples, user input, identity). The answer
must look like {"workflow": [{"action": "...", "payload": {...}}, ...]}.

plan() never raises for planning problems:
  - output not valid JSON          → DEGRADED, empty
  - "workflow" missing / not list  → DEGRADED, empty
  - LLM call failed or timed out   → DEGRADED, empty
  - "workflow": []                 → EMPTY
Individual steps that are not objects with a string "action" (or whose
payload is not an object) are dropped and logged.

Every call records "User: <input>" in the identity's memory window, whatever
the outcome.
"""

from __future__ import annotations

from typing import Any, Optional

from intentflow.agent.types import WorkflowPlan, WorkflowStep
from intentflow.brain.generator import TextGenerator
from intentflow.brain.types import GenerateOptions, StructuredOutput
from intentflow.memory.store import MemoryStore
from intentflow.observability.logger import get_logger
from intentflow.prompts.generator import PromptGenerator

log = get_logger(__name__)


class IntentPlanner:
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

    async def plan(self, identity: str, user_input: str, trace_id: str = "") -> WorkflowPlan:
        prompt = self._prompts.intent_prompt(identity, user_input)
        try:
            output = await self._generator.generate(
                identity,
                prompt.text,
                "",
                GenerateOptions(as_json=True, timeout_ms=self._timeout_ms, trace_id=trace_id),
            )
            plan = _plan_from_output(output)
        except Exception as e:
            log.warning("planner.llm_failed", identity=identity, error=str(e),
                        error_type=type(e).__name__)
            plan = WorkflowPlan.degraded(reason=f"{type(e).__name__}: {e}")

        self._memory.add(identity, f"User: {user_input}")

        log.info(
            "planner.planned",
            identity=identity,
            status=plan.status.value,
            steps=len(plan),
            actions=[s.action for s in plan.steps],
            variant_id=prompt.variant_id,
            reason=plan.reason,
        )
        return plan


def _plan_from_output(output: Any) -> WorkflowPlan:
    if not isinstance(output, StructuredOutput):
        return WorkflowPlan.degraded(reason="expected a JSON answer", raw=str(output))
    if not output.ok:
        return WorkflowPlan.degraded(reason=output.error or "invalid JSON", raw=output.raw)

    workflow = output.field("workflow")
    if not isinstance(workflow, list):
        return WorkflowPlan.degraded(reason="'workflow' is missing or not a list", raw=output.raw)

    steps: list[WorkflowStep] = []
    for index, item in enumerate(workflow):
        step = _parse_step(item)
        if step is None:
            log.warning("planner.step_dropped", index=index, step=str(item)[:200])
            continue
        steps.append(step)
    return WorkflowPlan.of(steps, raw=output.raw)


def _parse_step(item: Any) -> Optional[WorkflowStep]:
    if not isinstance(item, dict):
        return None
    action = item.get("action")
    if not isinstance(action, str) or not action.strip():
        return None
    payload = item.get("payload")
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        return None
    return WorkflowStep(action=action, payload=payload)
