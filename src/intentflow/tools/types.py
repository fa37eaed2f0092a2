"""
tools/types.py — Tool System Data Models

Shared types for the tool registry, the execution coordinator and every tool
implementation.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from pydantic import BaseModel, ConfigDict, Field


class ParameterType(str, Enum):
    STRING = "string"
    NUMBER = "number"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    OBJECT = "object"
    ARRAY = "array"


class ParameterDefinition(BaseModel):
    """One payload field of a tool, as shown to the planner and validated before dispatch."""
    type: ParameterType
    description: str
    required: bool = False
    enum: Optional[list[str]] = None
    min: Optional[float] = None
    max: Optional[float] = None
    pattern: Optional[str] = None


class ToolMetadata(BaseModel):
    """Full metadata for a registered tool."""
    name: str
    description: str
    parameters: dict[str, ParameterDefinition] = Field(default_factory=dict)
    examples: list[str] = Field(default_factory=list)
    category: str = "general"
    version: str = "1.0.0"


# ─────────────────────────────────────────────────────────────────────────────
# Results
# ─────────────────────────────────────────────────────────────────────────────


class ToolStatus(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


class ToolResult(BaseModel):
    """Outcome of one attempted workflow step. Created once, never mutated."""
    model_config = ConfigDict(frozen=True)

    action: str
    status: ToolStatus
    data: Optional[dict[str, Any]] = None
    error: Optional[str] = None
    message: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return self.status == ToolStatus.ERROR

    @classmethod
    def success(
        cls,
        action: str,
        data: Optional[dict[str, Any]] = None,
        message: Optional[str] = None,
    ) -> "ToolResult":
        return cls(action=action, status=ToolStatus.SUCCESS, data=data, message=message)

    @classmethod
    def failure(
        cls,
        action: str,
        error: str,
        payload: Optional[dict[str, Any]] = None,
    ) -> "ToolResult":
        return cls(
            action=action,
            status=ToolStatus.ERROR,
            error=error,
            data={"payload": payload if payload is not None else {}},
        )


# ─────────────────────────────────────────────────────────────────────────────
# Registration
# ─────────────────────────────────────────────────────────────────────────────

# handler(payload, identity) → ToolResult | dict | None | Any
ToolHandler = Callable[[Any, str], Awaitable[Any]]


@dataclass
class ToolDefinition:
    """
    A tool as registered: metadata plus the async handler.

    When payload_model is set the handler receives a validated instance of it;
    otherwise it receives the payload dict, checked against metadata.parameters.
    """
    metadata: ToolMetadata
    handler: ToolHandler
    payload_model: Optional[type[BaseModel]] = None


@dataclass
class ToolRegistryEntry:
    name: str
    definition: ToolDefinition
    enabled: bool = True
    last_used: Optional[datetime] = None


@dataclass(frozen=True)
class RegistryStats:
    total_tools: int
    enabled_tools: int
    categories: int
    tools_by_category: dict[str, int]
