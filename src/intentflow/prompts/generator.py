"""
prompts/generator.py — Prompt Rendering

Builds the three prompts the pipeline sends to the text-generation boundary:

  validation  → classifier that answers "1" (in scope) or "0"
  intent      → planner that answers {"workflow": [{"action", "payload"}, ...]}
  response    → writer that answers {"response": "<reply for the user>"}

Each is taken from the PromptLibrary when a variant is configured, otherwise
from the built-in template below. Built-in intent and validation templates
are generated from the live tool catalog, so registering a tool is enough for
the planner to learn about it.

Placeholders are replaced verbatim in a single pass, so placeholder text inside
a value is left as is: {{CONTEXT}}, {{USER_INPUT}}, {{USER_ID}},
{{WORKFLOW_RESULTS}}.
"""

from __future__ import annotations

import re
import json
from dataclasses import dataclass
from typing import Any, Optional

from intentflow.prompts.library import PromptKind, PromptLibrary, builtin_variant_id
from intentflow.tools.registry import ToolRegistry
from intentflow.tools.types import ToolMetadata


@dataclass(frozen=True)
class RenderedPrompt:
    """A ready-to-send prompt and the variant it came from (for metrics)."""
    variant_id: str
    text: str


class PromptGenerator:
    def __init__(self, registry: ToolRegistry, library: Optional[PromptLibrary] = None) -> None:
        self._registry = registry
        self._library = library or PromptLibrary()

    # ── Rendering ─────────────────────────────────────────────────────────────

    def validation_prompt(self, context: list[str]) -> RenderedPrompt:
        variant_id, template = self._template(PromptKind.VALIDATION)
        return RenderedPrompt(
            variant_id,
            render(template, CONTEXT=json.dumps(context, ensure_ascii=False)),
        )

    def intent_prompt(self, identity: str, user_input: str) -> RenderedPrompt:
        variant_id, template = self._template(PromptKind.INTENT)
        return RenderedPrompt(variant_id, render(template, USER_INPUT=user_input, USER_ID=identity))

    def response_prompt(self, results: list[Any], identity: str, user_input: str) -> RenderedPrompt:
        variant_id, template = self._template(PromptKind.RESPONSE)
        return RenderedPrompt(
            variant_id,
            render(
                template,
                WORKFLOW_RESULTS=json.dumps(results, indent=2, ensure_ascii=False, default=str),
                USER_INPUT=user_input,
                USER_ID=identity,
            ),
        )

    def tool_help(self, name: Optional[str] = None) -> str:
        """Human-readable description of one tool, or of every enabled tool."""
        if name is None:
            tools = self._registry.list_metadata()
            if not tools:
                return "No tools are registered."
            return "\n".join(f"- {t.name} ({t.category}): {t.description}" for t in tools)

        definition = self._registry.get(name)
        if definition is None:
            return f"Tool '{name}' not found."
        meta = definition.metadata
        params = "\n".join(
            f"  - {pname}: {p.type.value} ({'required' if p.required else 'optional'}) - {p.description}"
            for pname, p in meta.parameters.items()
        ) or "  (none)"
        examples = "\n".join(f"  - {ex}" for ex in meta.examples) or "  (none)"
        return (
            f"Tool: {meta.name}\n"
            f"Description: {meta.description}\n"
            f"Category: {meta.category}\n"
            f"Version: {meta.version}\n\n"
            f"Parameters:\n{params}\n\n"
            f"Examples:\n{examples}"
        )

    # ── Templates ─────────────────────────────────────────────────────────────

    def _template(self, kind: PromptKind) -> tuple[str, str]:
        variant = self._library.select(kind)
        if variant is not None:
            return variant.id, variant.content

        tools = self._registry.list_metadata()
        if kind == PromptKind.VALIDATION:
            content = _validation_template(tools)
        elif kind == PromptKind.INTENT:
            content = _intent_template(tools) if tools else _EMPTY_INTENT_TEMPLATE
        else:
            content = _RESPONSE_TEMPLATE
        return builtin_variant_id(kind), content


_PLACEHOLDER = re.compile(r"\{\{(\w+)\}\}")


def render(template: str, **values: str) -> str:
    """Replace every {{NAME}} placeholder with its value; unknown names are kept."""
    return _PLACEHOLDER.sub(lambda m: values.get(m.group(1), m.group(0)), template)


# ─────────────────────────────────────────────────────────────────────────────
# Built-in templates
# ─────────────────────────────────────────────────────────────────────────────

_RESPONSE_TEMPLATE = """
You are a response agent.
Your task is to write a clear, natural language reply to the user based on
the executed workflow results.

Guidelines:
- Be concise and user-friendly.
- Do not expose system internals or JSON structures.
- If several workflow steps ran, summarise them in order.
- If a step failed, explain it politely without technical jargon.
- Never invent data beyond what the workflow results contain.

Workflow results:
{{WORKFLOW_RESULTS}}

User input: "{{USER_INPUT}}"
User id: {{USER_ID}}

Respond with a JSON object whose only key is "response", e.g.
{"response": "Your balance is 12 XLM."}
"""

_EMPTY_INTENT_TEMPLATE = """
You are a workflow planner, but no tools are currently registered.

User input: "{{USER_INPUT}}"
User id: {{USER_ID}}

Respond with: {"workflow": []}
"""


def _validation_template(tools: list[ToolMetadata]) -> str:
    categories: dict[str, list[ToolMetadata]] = {}
    for tool in tools:
        categories.setdefault(tool.category, []).append(tool)
    described = "\n".join(
        f"- {category} operations ({', '.join(t.name for t in members)}): "
        f"{'; '.join(t.description for t in members)}"
        for category, members in categories.items()
    ) or "- (no operations registered)"

    return f"""
You are a validation agent.
Decide whether the user query concerns one of the supported operations or is
a natural question about them:

{described}

Guidelines:
- Return "1" for a direct request for one of these operations, or for a
  related question (e.g. "is that safe?", "what did I do last time?").
- Return "0" only if the query is unrelated to these operations.
- Short replies such as "yes" or "no" can be valid; use the context to decide.

Respond ONLY with "1" or "0". No comments, no explanations.

Recent conversation context: {{{{CONTEXT}}}}
"""


def _intent_template(tools: list[ToolMetadata]) -> str:
    action_types = " | ".join(f'"{t.name}"' for t in tools)
    examples = [f'- "{ex}"' for t in tools for ex in t.examples]

    return f"""
You are a workflow planner. You receive a user request and must produce a JSON
workflow the system can execute. Always follow this schema exactly:

{{
  "workflow": [
    {{
      "action": {action_types},
      "payload": {{
{_parameter_schemas(tools)}
      }}
    }}
  ]
}}

Available actions:
{_action_descriptions(tools)}

Rules:
- "action" must be exactly one of: {action_types}.
- Numbers must be JSON numbers, never strings.
- Always wrap steps in the "workflow" array, in the order they should run.
- Do not add extra keys, explanations or comments.
- Use the parameter names and types exactly as specified above.
- If the request needs no action, respond with {{"workflow": []}}.

Examples:
{chr(10).join(examples) if examples else "No examples available"}

User input: "{{{{USER_INPUT}}}}"
User id: {{{{USER_ID}}}}
"""


def _parameter_schemas(tools: list[ToolMetadata]) -> str:
    blocks = []
    for tool in tools:
        lines = [f"        // For {tool.name}:"]
        for pname, p in tool.parameters.items():
            required = "required" if p.required else "optional"
            lines.append(f'        //   "{pname}": {p.type.value} ({required}) - {p.description}')
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


def _action_descriptions(tools: list[ToolMetadata]) -> str:
    lines = []
    for tool in tools:
        params = ", ".join(
            f"{pname}{'*' if p.required else ''} "
            f"({' | '.join(repr(v) for v in p.enum) if p.enum else p.type.value}): {p.description}"
            for pname, p in tool.parameters.items()
        ) or "none"
        lines.append(f"- {tool.name}: {tool.description}\n  Parameters: {params}")
    return "\n".join(lines)
