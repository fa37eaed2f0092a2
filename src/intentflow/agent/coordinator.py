"""
agent/coordinator.py — Execution Coordinator

Runs a WorkflowPlan step by step under one shared time budget, then hands the
results to the ResponseSynthesizer.

State machine per run:

    INITIALIZED → (check budget → dispatch → record)* → COMPLETED | TIMED_OUT

Deadline rules:
  - remaining = budget − elapsed, recomputed right before each step
  - remaining ≤ 0 → TIMED_OUT, no further dispatch
  - each step gets min(remaining, per_tool_cap_ms); the registry cancels the
    handler when that deadline passes
  - after each step the clock is checked again; once the budget is spent the
    run ends as TIMED_OUT with that step's result recorded

Failure isolation: any step error (unknown action, bad payload, handler raise,
per-tool timeout) becomes a ToolResult(status=error, data={"payload": ...})
and the next step still runs. Only the clock ends a run early; the type of a
step's error never does.

The whole run, synthesis included, is also wrapped in an outer wait_for equal
to the budget. If that fires the report says "Workflow execution timed out"
and carries the results gathered so far, plus an error result for the step
that was in flight. Synthesis failures propagate.

After the step loop, completed or not, a compact summary of the results is
appended to the identity's memory as "LLM: <json>".
"""

from __future__ import annotations

import asyncio
import json
import time
from typing import TYPE_CHECKING, Any, Callable, Optional

from intentflow.agent.types import ExecutionReport, RunState, RunStatus, WorkflowPlan, WorkflowStep
from intentflow.exceptions import ExecutionTimeoutError, ToolTimeoutError
from intentflow.memory.store import MemoryStore
from intentflow.observability.logger import get_logger
from intentflow.tools.registry import ToolRegistry
from intentflow.tools.types import ToolResult

if TYPE_CHECKING:
    from intentflow.agent.synthesizer import ResponseSynthesizer

log = get_logger(__name__)


class ExecutionCoordinator:
    def __init__(
        self,
        tools: ToolRegistry,
        memory: MemoryStore,
        synthesizer: "ResponseSynthesizer",
        per_tool_cap_ms: float = 10_000,
        payload_echo_chars: int = 80,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._tools = tools
        self._memory = memory
        self._synthesizer = synthesizer
        self._per_tool_cap_ms = per_tool_cap_ms
        self._payload_echo_chars = payload_echo_chars
        self._clock = clock

    async def execute(
        self,
        plan: WorkflowPlan,
        identity: str,
        user_input: str,
        total_budget_ms: float,
        trace_id: str = "",
    ) -> ExecutionReport:
        state = RunState(identity=identity, budget_ms=total_budget_ms, started_at=self._clock())
        log.info(
            "coordinator.start",
            identity=identity,
            steps=len(plan),
            budget_ms=total_budget_ms,
            trace_id=trace_id,
        )

        if total_budget_ms <= 0:
            return self._timed_out(state)

        try:
            return await asyncio.wait_for(
                self._run(plan, state, user_input),
                timeout=total_budget_ms / 1000,
            )
        except asyncio.TimeoutError:
            state.status = RunStatus.TIMED_OUT
            step = state.current_step
            if step is not None:
                state.results.append(ToolResult.failure(
                    step.action,
                    f"Tool '{step.action}' execution timed out after {total_budget_ms:.0f}ms",
                    payload=step.payload,
                ))
                state.current_step = None
            if not state.summarized:
                self._remember(state)
            log.error(
                "coordinator.run_timeout",
                identity=identity,
                budget_ms=total_budget_ms,
                completed_steps=len(state.results),
            )
            return ExecutionReport(
                success=False,
                results=tuple(state.results),
                error=f"Workflow execution timed out after {total_budget_ms:.0f}ms",
            )

    # ─────────────────────────────────────────────────────────────────────────
    # Run loop
    # ─────────────────────────────────────────────────────────────────────────

    async def _run(self, plan: WorkflowPlan, state: RunState, user_input: str) -> ExecutionReport:
        state.status = RunStatus.RUNNING

        for index, step in enumerate(plan.steps):
            remaining = state.budget_ms - self._elapsed_ms(state)
            if remaining <= 0:
                return self._timed_out(state)

            deadline_ms = min(remaining, self._per_tool_cap_ms)
            state.current_step = step
            result = await self._dispatch(step, state.identity, deadline_ms, index)
            state.results.append(result)
            state.current_step = None

            if state.budget_ms - self._elapsed_ms(state) <= 0:
                return self._timed_out(state)

        if state.budget_ms - self._elapsed_ms(state) <= 0:
            return self._timed_out(state)

        state.status = RunStatus.COMPLETED
        self._remember(state)
        log.info(
            "coordinator.completed",
            identity=state.identity,
            steps=len(state.results),
            failed=sum(1 for r in state.results if r.is_error),
            elapsed_ms=round(self._elapsed_ms(state), 1),
        )

        response = await self._synthesizer.synthesize(list(state.results), state.identity, user_input)
        return ExecutionReport(success=True, results=tuple(state.results), response=response)

    async def _dispatch(
        self,
        step: WorkflowStep,
        identity: str,
        deadline_ms: float,
        index: int,
    ) -> ToolResult:
        """Run one step; never raises for step errors."""
        log.debug("coordinator.dispatch", step=index, action=step.action,
                  deadline_ms=round(deadline_ms, 1))
        try:
            return await self._tools.execute_tool(step.action, step.payload, identity, deadline_ms)
        except ToolTimeoutError as e:
            log.warning("coordinator.step_timeout", step=index, action=step.action,
                        deadline_ms=round(deadline_ms, 1))
            return ToolResult.failure(step.action, str(e), payload=step.payload)
        except Exception as e:
            log.warning("coordinator.step_failed", step=index, action=step.action,
                        error=str(e), error_type=type(e).__name__)
            return ToolResult.failure(step.action, str(e), payload=step.payload)

    # ─────────────────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────────────────

    def _timed_out(self, state: RunState) -> ExecutionReport:
        elapsed = self._elapsed_ms(state)
        state.status = RunStatus.TIMED_OUT
        self._remember(state)
        error = ExecutionTimeoutError(state.budget_ms, elapsed)
        log.error(
            "coordinator.timed_out",
            identity=state.identity,
            budget_ms=state.budget_ms,
            elapsed_ms=round(elapsed, 1),
            completed_steps=len(state.results),
        )
        return ExecutionReport(success=False, results=tuple(state.results), error=str(error))

    def _remember(self, state: RunState) -> None:
        self._memory.add(
            state.identity,
            f"LLM: {json.dumps(summarize_results(state.results, self._payload_echo_chars), ensure_ascii=False)}",
        )
        state.summarized = True

    def _elapsed_ms(self, state: RunState) -> float:
        return (self._clock() - state.started_at) * 1000


def summarize_results(results: list[ToolResult], echo_chars: int = 80) -> list[dict[str, Any]]:
    """Compact view of results for memory: payload echo is truncated and marked with '...'."""
    summary: list[dict[str, Any]] = []
    for r in results:
        entry: dict[str, Any] = {
            "action": r.action,
            "status": r.status.value,
            "error": r.error,
        }
        payload: Optional[Any] = (r.data or {}).get("payload")
        if payload:
            entry["payload"] = json.dumps(payload, ensure_ascii=False, default=str)[:echo_chars] + "..."
        summary.append(entry)
    return summary
