from intentflow.kernel.bootstrap import AgentStack, build_agent

__all__ = ["AgentStack", "build_agent"]
