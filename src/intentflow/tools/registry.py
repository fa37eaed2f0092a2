"""
tools/registry.py — Tool Registry (the Tool boundary)

Maps action names to ToolDefinitions and executes them with payload
validation and a per-call deadline.

Flow of execute_tool():
    lookup (ToolNotFoundError)
      → payload validation (ToolValidationError)
      → handler under asyncio.wait_for (ToolTimeoutError — the handler is cancelled)
      → normalise return value into a ToolResult (ToolExecutionError on raise,
        including a TimeoutError the handler raises itself)

Usage:
    registry = ToolRegistry()

    @registry.tool(
        name="get_balance",
        description="Get the balance of a token",
        category="wallet",
        payload_model=BalancePayload,
        examples=["What's my XLM balance?"],
    )
    async def get_balance(payload: BalancePayload, identity: str) -> dict:
        ...

    result = await registry.execute_tool("get_balance", {"token": "XLM"}, "u1", 5000)
"""

from __future__ import annotations

import asyncio
import re
import time
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from pydantic import BaseModel, ValidationError

from intentflow.exceptions import (
    ToolExecutionError,
    ToolNotFoundError,
    ToolRegistrationError,
    ToolTimeoutError,
    ToolValidationError,
)
from intentflow.observability.logger import get_logger
from intentflow.tools.types import (
    ParameterDefinition,
    ParameterType,
    RegistryStats,
    ToolDefinition,
    ToolHandler,
    ToolMetadata,
    ToolRegistryEntry,
    ToolResult,
)

log = get_logger(__name__)

DEFAULT_TIMEOUT_MS = 10_000.0


class ToolRegistry:
    """
    Registry of named tool capabilities.

    Reads are plain dict lookups. Registration is expected at startup; it is
    not designed for concurrent writes.
    """

    def __init__(self, default_timeout_ms: float = DEFAULT_TIMEOUT_MS) -> None:
        self._tools: dict[str, ToolRegistryEntry] = {}
        self._categories: set[str] = set()
        self._default_timeout_ms = default_timeout_ms

    # ─────────────────────────────────────────────────────────────────────────
    # Registration
    # ─────────────────────────────────────────────────────────────────────────

    def register(
        self,
        definition: ToolDefinition,
        namespace: Optional[str] = None,
        overwrite: bool = False,
    ) -> str:
        """
        Register a tool. Returns the registered name.

        namespace="custom" registers "get_balance" as "custom:get_balance".
        An existing name raises ToolRegistrationError unless overwrite=True.
        """
        if definition.payload_model is not None and not definition.metadata.parameters:
            definition.metadata = definition.metadata.model_copy(
                update={"parameters": parameters_from_model(definition.payload_model)}
            )
        if namespace:
            definition.metadata = definition.metadata.model_copy(
                update={"name": f"{namespace}:{definition.metadata.name}"}
            )
        name = definition.metadata.name

        if name in self._tools and not overwrite:
            raise ToolRegistrationError(
                f"Tool '{name}' is already registered. Use overwrite=True to replace it.",
                tool_name=name,
            )
        _validate_metadata(definition.metadata)

        self._tools[name] = ToolRegistryEntry(name=name, definition=definition)
        self._categories.add(definition.metadata.category)
        log.debug("tool_registry.registered", tool=name, category=definition.metadata.category)
        return name

    def register_many(
        self,
        definitions: list[ToolDefinition],
        namespace: Optional[str] = None,
        overwrite: bool = False,
        continue_on_error: bool = False,
    ) -> list[str]:
        """Register several tools; returns the names that made it in."""
        registered: list[str] = []
        failures: list[tuple[str, str]] = []
        for definition in definitions:
            try:
                registered.append(self.register(definition, namespace=namespace, overwrite=overwrite))
            except ToolRegistrationError as e:
                if not continue_on_error:
                    raise
                failures.append((definition.metadata.name, str(e)))

        if failures:
            log.warning("tool_registry.partial_registration", failures=failures)
        return registered

    def tool(
        self,
        name: str,
        description: str,
        category: str = "general",
        parameters: Optional[dict[str, ParameterDefinition]] = None,
        payload_model: Optional[type[BaseModel]] = None,
        examples: Optional[list[str]] = None,
        version: str = "1.0.0",
    ) -> Callable[[ToolHandler], ToolHandler]:
        """Decorator form of register()."""
        def decorator(fn: ToolHandler) -> ToolHandler:
            self.register(ToolDefinition(
                metadata=ToolMetadata(
                    name=name,
                    description=description,
                    parameters=parameters or {},
                    examples=examples or [],
                    category=category,
                    version=version,
                ),
                handler=fn,
                payload_model=payload_model,
            ))
            return fn
        return decorator

    def unregister(self, name: str) -> bool:
        return self._tools.pop(name, None) is not None

    # ─────────────────────────────────────────────────────────────────────────
    # Lookup
    # ─────────────────────────────────────────────────────────────────────────

    def has(self, name: str) -> bool:
        return name in self._tools

    def get(self, name: str) -> Optional[ToolDefinition]:
        """Return the definition of an enabled tool, else None."""
        entry = self._tools.get(name)
        return entry.definition if entry and entry.enabled else None

    def list_definitions(self) -> list[ToolDefinition]:
        return [e.definition for e in self._tools.values() if e.enabled]

    def list_metadata(self) -> list[ToolMetadata]:
        return [d.metadata for d in self.list_definitions()]

    def list_names(self) -> list[str]:
        return [d.metadata.name for d in self.list_definitions()]

    def by_category(self, category: str) -> list[ToolDefinition]:
        return [d for d in self.list_definitions() if d.metadata.category == category]

    def categories(self) -> list[str]:
        return sorted(self._categories)

    def search(self, query: str) -> list[ToolDefinition]:
        """Case-insensitive match on name, description or examples."""
        q = query.lower()
        return [
            d for d in self.list_definitions()
            if q in d.metadata.name.lower()
            or q in d.metadata.description.lower()
            or any(q in ex.lower() for ex in d.metadata.examples)
        ]

    def set_enabled(self, name: str, enabled: bool) -> bool:
        entry = self._tools.get(name)
        if entry is None:
            return False
        entry.enabled = enabled
        log.info("tool_registry.toggled", tool=name, enabled=enabled)
        return True

    def last_used(self, name: str) -> Optional[datetime]:
        entry = self._tools.get(name)
        return entry.last_used if entry else None

    def stats(self) -> RegistryStats:
        enabled = self.list_definitions()
        by_cat: dict[str, int] = {}
        for d in enabled:
            by_cat[d.metadata.category] = by_cat.get(d.metadata.category, 0) + 1
        return RegistryStats(
            total_tools=len(self._tools),
            enabled_tools=len(enabled),
            categories=len(self._categories),
            tools_by_category=by_cat,
        )

    # ─────────────────────────────────────────────────────────────────────────
    # Validation + execution
    # ─────────────────────────────────────────────────────────────────────────

    def validate_payload(self, name: str, payload: dict[str, Any], identity: str = "") -> Any:
        """
        Check a step payload against the tool's schema.

        Returns the value the handler will receive: a payload_model instance,
        or the payload dict itself. Raises ToolNotFoundError / ToolValidationError.
        """
        definition = self.get(name)
        if definition is None:
            raise ToolNotFoundError(
                f"Tool '{name}' not found or disabled",
                tool_name=name, payload=payload, identity=identity,
            )
        if not isinstance(payload, dict):
            raise ToolValidationError(
                f"Invalid payload for tool '{name}': expected an object, "
                f"got {type(payload).__name__}",
                tool_name=name, identity=identity,
            )

        if definition.payload_model is not None:
            try:
                return definition.payload_model.model_validate(payload)
            except ValidationError as e:
                problems = ", ".join(
                    f"{'.'.join(str(p) for p in err['loc']) or 'payload'}: {err['msg']}"
                    for err in e.errors()
                )
                raise ToolValidationError(
                    f"Invalid payload for tool '{name}': {problems}",
                    tool_name=name, payload=payload, identity=identity,
                ) from e

        errors = validate_args(payload, definition.metadata.parameters)
        if errors:
            raise ToolValidationError(
                f"Invalid payload for tool '{name}': {', '.join(errors)}",
                tool_name=name, payload=payload, identity=identity,
            )
        return payload

    async def execute_tool(
        self,
        name: str,
        payload: dict[str, Any],
        identity: str,
        deadline_ms: Optional[float] = None,
    ) -> ToolResult:
        """
        Execute a tool under a deadline.

        Raises:
            ToolNotFoundError, ToolValidationError — before the handler runs
            ToolTimeoutError   — deadline elapsed; the handler task is cancelled
            ToolExecutionError — the handler raised
        """
        validated = self.validate_payload(name, payload, identity)
        definition = self._tools[name].definition
        timeout_ms = deadline_ms if deadline_ms is not None else self._default_timeout_ms

        async def invoke() -> Any:
            # A TimeoutError raised by the handler itself is a step failure.
            try:
                return await definition.handler(validated, identity)
            except asyncio.TimeoutError as e:
                raise ToolExecutionError(
                    f"Tool execution failed: {str(e) or type(e).__name__}",
                    tool_name=name, payload=payload, identity=identity,
                ) from e

        log.debug("tool_registry.execute", tool=name, timeout_ms=round(timeout_ms, 1))
        start = time.monotonic()
        try:
            raw = await asyncio.wait_for(invoke(), timeout=max(timeout_ms, 0) / 1000)
        except asyncio.TimeoutError:
            log.error("tool_registry.timeout", tool=name, timeout_ms=round(timeout_ms, 1))
            raise ToolTimeoutError(
                f"Tool '{name}' execution timed out after {timeout_ms:.0f}ms",
                timeout_ms=timeout_ms, tool_name=name, payload=payload, identity=identity,
            ) from None
        except Exception as e:
            log.error(
                "tool_registry.execution_error",
                tool=name,
                error=str(e),
                duration_ms=round((time.monotonic() - start) * 1000, 1),
                exc_info=True,
            )
            if isinstance(e, ToolExecutionError):
                raise
            raise ToolExecutionError(
                f"Tool execution failed: {e}",
                tool_name=name, payload=payload, identity=identity,
            ) from e

        self._tools[name].last_used = datetime.now(timezone.utc)
        result = _normalise_result(name, raw)
        log.info(
            "tool_registry.done",
            tool=name,
            status=result.status.value,
            duration_ms=round((time.monotonic() - start) * 1000, 1),
        )
        return result


# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────

_TYPE_CHECKS: dict[ParameterType, type | tuple] = {
    ParameterType.STRING: str,
    ParameterType.NUMBER: (int, float),
    ParameterType.INTEGER: int,
    ParameterType.BOOLEAN: bool,
    ParameterType.OBJECT: dict,
    ParameterType.ARRAY: list,
}


def validate_args(payload: dict[str, Any], parameters: dict[str, ParameterDefinition]) -> list[str]:
    """
    Validate a payload against parameter definitions.
    Returns a list of problems; empty means valid. Unknown fields are allowed.
    """
    errors: list[str] = []
    for name, param in parameters.items():
        if name not in payload:
            if param.required:
                errors.append(f"missing required field '{name}'")
            continue

        value = payload[name]
        expected = _TYPE_CHECKS[param.type]
        # bool is a subclass of int
        if param.type in (ParameterType.INTEGER, ParameterType.NUMBER) and isinstance(value, bool):
            errors.append(f"field '{name}': expected {param.type.value}, got boolean")
            continue
        if not isinstance(value, expected):
            errors.append(f"field '{name}': expected {param.type.value}, got {type(value).__name__}")
            continue

        if param.enum is not None and value not in param.enum:
            errors.append(f"field '{name}': must be one of {param.enum}")
        if param.min is not None and isinstance(value, (int, float)) and value < param.min:
            errors.append(f"field '{name}': must be >= {param.min}")
        if param.max is not None and isinstance(value, (int, float)) and value > param.max:
            errors.append(f"field '{name}': must be <= {param.max}")
        if param.pattern is not None and isinstance(value, str) and not re.fullmatch(param.pattern, value):
            errors.append(f"field '{name}': does not match pattern {param.pattern}")
    return errors


def parameters_from_model(model: type[BaseModel]) -> dict[str, ParameterDefinition]:
    """Derive ParameterDefinitions from a pydantic payload model's JSON schema."""
    schema = model.model_json_schema()
    required = set(schema.get("required", []))
    params: dict[str, ParameterDefinition] = {}
    for name, prop in schema.get("properties", {}).items():
        if "anyOf" in prop:
            non_null = [p for p in prop["anyOf"] if p.get("type") != "null"]
            prop = {**(non_null[0] if non_null else {}), **{k: v for k, v in prop.items() if k != "anyOf"}}
        enum = prop.get("enum")
        if enum is None and "const" in prop:
            enum = [prop["const"]]
        json_type = prop.get("type", "string")
        try:
            ptype = ParameterType(json_type)
        except ValueError:
            ptype = ParameterType.STRING
        params[name] = ParameterDefinition(
            type=ptype,
            description=prop.get("description") or prop.get("title") or name,
            required=name in required,
            enum=[str(v) for v in enum] if enum is not None else None,
            min=prop.get("minimum", prop.get("exclusiveMinimum")),
            max=prop.get("maximum", prop.get("exclusiveMaximum")),
            pattern=prop.get("pattern"),
        )
    return params


def _validate_metadata(metadata: ToolMetadata) -> None:
    if not metadata.name.strip():
        raise ToolRegistrationError("Tool metadata must have a valid name")
    if not metadata.description.strip():
        raise ToolRegistrationError(
            f"Tool '{metadata.name}' metadata must have a description", tool_name=metadata.name
        )
    if not metadata.category.strip():
        raise ToolRegistrationError(
            f"Tool '{metadata.name}' metadata must have a category", tool_name=metadata.name
        )
    if not metadata.version.strip():
        raise ToolRegistrationError(
            f"Tool '{metadata.name}' metadata must have a version", tool_name=metadata.name
        )
    for pname, pdef in metadata.parameters.items():
        if not pdef.description.strip():
            raise ToolRegistrationError(
                f"Invalid parameter definition for '{pname}' on tool '{metadata.name}'",
                tool_name=metadata.name,
            )


def _normalise_result(name: str, raw: Any) -> ToolResult:
    """Convert any handler return value into a ToolResult."""
    if isinstance(raw, ToolResult):
        return raw
    if raw is None:
        return ToolResult.success(name, data={})
    if isinstance(raw, BaseModel):
        return ToolResult.success(name, data=raw.model_dump(mode="json"))
    if isinstance(raw, dict):
        return ToolResult.success(name, data=raw)
    return ToolResult.success(name, data={"result": raw})
