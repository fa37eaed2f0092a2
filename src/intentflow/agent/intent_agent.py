"""
agent/intent_agent.py — Intent Agent (pipeline entry point)

One request, end to end:

    QueryGate.admit()          → rejected: "Invalid request format"
    IntentPlanner.plan()       → empty:    "Could not determine a workflow"
    ExecutionCoordinator.execute() → ExecutionReport (reply in report.response)

Gate and synthesis failures propagate to the caller; everything else is
reported through AgentReply.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Optional

from intentflow.agent.coordinator import ExecutionCoordinator
from intentflow.agent.gate import QueryGate
from intentflow.agent.planner import IntentPlanner
from intentflow.agent.types import ExecutionReport, WorkflowPlan
from intentflow.observability.logger import bind_identity, clear_identity, get_logger

log = get_logger(__name__)

REJECTED_MESSAGE = "Invalid request format"
NO_WORKFLOW_MESSAGE = "Could not determine a workflow"


@dataclass(frozen=True)
class AgentReply:
    success: bool
    message: str
    plan: Optional[WorkflowPlan] = None
    report: Optional[ExecutionReport] = None
    trace_id: str = ""


class IntentAgent:
    def __init__(
        self,
        gate: QueryGate,
        planner: IntentPlanner,
        coordinator: ExecutionCoordinator,
        total_budget_ms: float = 30_000,
    ) -> None:
        self._gate = gate
        self._planner = planner
        self._coordinator = coordinator
        self._total_budget_ms = total_budget_ms

    async def handle(self, identity: str, text: str) -> AgentReply:
        trace_id = uuid.uuid4().hex[:12]
        bind_identity(identity, trace_id)
        try:
            if not await self._gate.admit(identity, text, trace_id=trace_id):
                return AgentReply(success=False, message=REJECTED_MESSAGE, trace_id=trace_id)

            plan = await self._planner.plan(identity, text, trace_id=trace_id)
            if plan.is_empty:
                return AgentReply(success=False, message=NO_WORKFLOW_MESSAGE, plan=plan,
                                  trace_id=trace_id)

            report = await self._coordinator.execute(
                plan, identity, text, self._total_budget_ms, trace_id=trace_id
            )
            message = report.response if report.success else report.error
            return AgentReply(
                success=report.success,
                message=message or "",
                plan=plan,
                report=report,
                trace_id=trace_id,
            )
        finally:
            log.debug("intent_agent.handled", identity=identity, trace_id=trace_id)
            clear_identity()
