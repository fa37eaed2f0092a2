"""
intentflow — natural-language intent → deadline-bounded tool workflow.

Public API:
    from intentflow.kernel.bootstrap import build_agent
    from intentflow.agent import IntentAgent, ExecutionCoordinator
"""

__version__ = "1.0.0"
