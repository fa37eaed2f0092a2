from intentflow.tools.discovery import discover
from intentflow.tools.registry import ToolRegistry, parameters_from_model, validate_args
from intentflow.tools.types import (
    ParameterDefinition,
    ParameterType,
    RegistryStats,
    ToolDefinition,
    ToolMetadata,
    ToolResult,
    ToolStatus,
)

__all__ = [
    "ToolRegistry",
    "discover",
    "parameters_from_model",
    "validate_args",
    "ParameterDefinition",
    "ParameterType",
    "RegistryStats",
    "ToolDefinition",
    "ToolMetadata",
    "ToolResult",
    "ToolStatus",
]
