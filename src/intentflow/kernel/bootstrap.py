"""
kernel/bootstrap.py — Agent Stack Factory

Wires the whole pipeline from Settings. Every component is constructed here
and passed down by constructor; nothing in the package reaches for a global.

    MemoryStore ─┬─ TextGenerator ─┬─ QueryGate
                 │                 ├─ IntentPlanner
    ToolRegistry ┴─ PromptGenerator┴─ ResponseSynthesizer ─ ExecutionCoordinator
                                                                      │
                                                              IntentAgent

Usage:
    from intentflow.kernel.bootstrap import build_agent
    stack = build_agent(settings)
    reply = await stack.agent.handle("u1", "what time is it in Tokyo?")
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from intentflow.agent.coordinator import ExecutionCoordinator
from intentflow.agent.gate import QueryGate
from intentflow.agent.intent_agent import IntentAgent
from intentflow.agent.planner import IntentPlanner
from intentflow.agent.synthesizer import ResponseSynthesizer
from intentflow.brain.generator import TextGenerator
from intentflow.brain.llm_client import BaseLLMClient, ResilientLLMClient, create_llm_client
from intentflow.brain.types import LLMConfig, Provider
from intentflow.config.settings import Settings
from intentflow.memory.store import MemoryStore
from intentflow.observability.metrics import PromptMetrics
from intentflow.prompts.generator import PromptGenerator
from intentflow.prompts.library import PromptLibrary
from intentflow.tools.discovery import discover
from intentflow.tools.registry import ToolRegistry


@dataclass
class AgentStack:
    """All wired components returned by build_agent()."""
    agent: IntentAgent
    memory: MemoryStore
    tools: ToolRegistry
    prompts: PromptGenerator
    metrics: PromptMetrics
    generator: TextGenerator


def build_agent(
    settings: Settings,
    llm_client: Optional[BaseLLMClient] = None,
    *,
    memory: Optional[MemoryStore] = None,
    tools: Optional[ToolRegistry] = None,
) -> AgentStack:
    """
    Build the agent stack.

    Args:
        settings:   Loaded Settings.
        llm_client: Pre-built client (tests inject a fake). When None, one is
                    created for settings.llm.provider and wrapped with retry.
        memory:     Existing store; default opens settings.memory.path.
        tools:      Existing registry; default discovers settings.tools.modules.
    """
    agent_cfg = settings.agent

    if memory is None:
        memory = MemoryStore(settings.memory.path, max_entries=settings.memory.max_entries)

    if tools is None:
        tools = ToolRegistry(default_timeout_ms=agent_cfg.per_tool_cap_ms)
        discover(tools, settings.tools.modules, strict=settings.tools.strict)

    if llm_client is None:
        retry = settings.llm.retry
        llm_client = ResilientLLMClient(
            create_llm_client(
                Provider(settings.llm.provider),
                api_key=settings.api_key,
                base_url=settings.openai_base_url if settings.llm.provider == "openai" else None,
            ),
            max_attempts=retry.max_attempts,
            base_delay=retry.base_delay,
            max_delay=retry.max_delay,
        )

    generator = TextGenerator(
        llm_client,
        LLMConfig(
            model=settings.llm.model,
            temperature=settings.llm.temperature,
            max_tokens=settings.llm.max_tokens,
        ),
        memory,
        default_timeout_ms=agent_cfg.llm_timeout_ms,
    )
    prompts = PromptGenerator(tools, PromptLibrary.from_config(settings.prompts.variants))
    metrics = PromptMetrics()

    synthesizer = ResponseSynthesizer(generator, prompts, metrics=metrics)
    coordinator = ExecutionCoordinator(
        tools,
        memory,
        synthesizer,
        per_tool_cap_ms=agent_cfg.per_tool_cap_ms,
        payload_echo_chars=agent_cfg.payload_echo_chars,
    )
    agent = IntentAgent(
        gate=QueryGate(generator, prompts, memory),
        planner=IntentPlanner(generator, prompts, memory),
        coordinator=coordinator,
        total_budget_ms=agent_cfg.total_budget_ms,
    )
    return AgentStack(
        agent=agent,
        memory=memory,
        tools=tools,
        prompts=prompts,
        metrics=metrics,
        generator=generator,
    )
