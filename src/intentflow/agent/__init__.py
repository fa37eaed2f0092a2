from intentflow.agent.coordinator import ExecutionCoordinator, summarize_results
from intentflow.agent.gate import QueryGate
from intentflow.agent.intent_agent import (
    NO_WORKFLOW_MESSAGE,
    REJECTED_MESSAGE,
    AgentReply,
    IntentAgent,
)
from intentflow.agent.planner import IntentPlanner
from intentflow.agent.synthesizer import ResponseSynthesizer
from intentflow.agent.types import (
    ExecutionReport,
    PlanStatus,
    RunStatus,
    WorkflowPlan,
    WorkflowStep,
)

__all__ = [
    "ExecutionCoordinator",
    "summarize_results",
    "QueryGate",
    "IntentAgent",
    "AgentReply",
    "REJECTED_MESSAGE",
    "NO_WORKFLOW_MESSAGE",
    "IntentPlanner",
    "ResponseSynthesizer",
    "ExecutionReport",
    "PlanStatus",
    "RunStatus",
    "WorkflowPlan",
    "WorkflowStep",
]
