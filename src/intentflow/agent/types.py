"""
agent/types.py — Agent Data Models

Types that flow between the planner, the execution coordinator and the
caller. Steps and results are immutable once created.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from intentflow.tools.types import ToolResult


class WorkflowStep(BaseModel):
    """One tool invocation request produced by the planner."""
    model_config = ConfigDict(frozen=True)

    action: str
    payload: dict[str, Any] = Field(default_factory=dict)


class PlanStatus(str, Enum):
    PLANNED = "planned"     # one or more steps
    EMPTY = "empty"         # well-formed answer with no steps
    DEGRADED = "degraded"   # unparsable output, wrong shape, or the LLM call failed


@dataclass(frozen=True)
class WorkflowPlan:
    """
    Ordered steps for one request. An empty plan is a valid value meaning
    "no actionable workflow"; status/reason/raw say why it is empty.
    """
    steps: tuple[WorkflowStep, ...] = ()
    status: PlanStatus = PlanStatus.EMPTY
    reason: Optional[str] = None
    raw: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.steps

    def __len__(self) -> int:
        return len(self.steps)

    @classmethod
    def of(cls, steps: list[WorkflowStep], raw: str = "") -> "WorkflowPlan":
        return cls(
            steps=tuple(steps),
            status=PlanStatus.PLANNED if steps else PlanStatus.EMPTY,
            raw=raw,
        )

    @classmethod
    def degraded(cls, reason: str, raw: str = "") -> "WorkflowPlan":
        return cls(steps=(), status=PlanStatus.DEGRADED, reason=reason, raw=raw)


class RunStatus(str, Enum):
    INITIALIZED = "initialized"
    RUNNING = "running"
    COMPLETED = "completed"
    TIMED_OUT = "timed_out"


@dataclass
class RunState:
    """Mutable progress of one coordinator run; results survive an outer timeout."""
    identity: str
    budget_ms: float
    started_at: float
    status: RunStatus = RunStatus.INITIALIZED
    results: list[ToolResult] = field(default_factory=list)
    summarized: bool = False
    current_step: Optional[WorkflowStep] = None


@dataclass(frozen=True)
class ExecutionReport:
    """
    Outcome of one coordinator run.

    success=False, no results   → aborted before any step ran
    success=False, with results → aborted mid-sequence by the deadline
    A step error alone never makes success False.
    """
    success: bool
    results: tuple[ToolResult, ...] = ()
    error: Optional[str] = None
    response: Optional[str] = None

    @property
    def failed_steps(self) -> list[ToolResult]:
        return [r for r in self.results if r.is_error]
