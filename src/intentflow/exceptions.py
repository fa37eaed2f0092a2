"""
exceptions.py — IntentFlow Unified Error Hierarchy

Every layer raises typed subclasses of IntentFlowError — never bare Exception.

Hierarchy:
    IntentFlowError
    ├── AgentError
    │   └── ExecutionTimeoutError
    ├── ToolError
    │   ├── ToolNotFoundError
    │   ├── ToolValidationError
    │   ├── ToolTimeoutError
    │   ├── ToolExecutionError
    │   └── ToolRegistrationError
    ├── MemoryStoreError
    ├── LLMError
    │   ├── LLMConnectionError
    │   ├── LLMRateLimitError
    │   ├── LLMContextError
    │   ├── LLMInvalidRequestError
    │   └── LLMTimeoutError
    └── ConfigError
"""

from __future__ import annotations

from typing import Any, Optional


# ─────────────────────────────────────────────────────────────────────────────
# Root
# ─────────────────────────────────────────────────────────────────────────────

class IntentFlowError(Exception):
    """Base class for all IntentFlow exceptions."""


# ─────────────────────────────────────────────────────────────────────────────
# Agent layer
# ─────────────────────────────────────────────────────────────────────────────

class AgentError(IntentFlowError):
    """Base for agent orchestration errors."""


class ExecutionTimeoutError(AgentError):
    """A workflow run exhausted its time budget."""

    def __init__(self, budget_ms: float, elapsed_ms: float, message: str = "") -> None:
        self.budget_ms = budget_ms
        self.elapsed_ms = elapsed_ms
        super().__init__(
            message
            or f"Execution did not complete within {budget_ms:.0f}ms "
               f"(timed out after {elapsed_ms:.0f}ms)"
        )


# ─────────────────────────────────────────────────────────────────────────────
# Tool layer
# ─────────────────────────────────────────────────────────────────────────────

class ToolError(IntentFlowError):
    """Base for all tool-related errors."""

    def __init__(
        self,
        message: str,
        tool_name: str = "",
        payload: Optional[dict[str, Any]] = None,
        identity: str = "",
    ) -> None:
        super().__init__(message)
        self.tool_name = tool_name
        self.payload = payload or {}
        self.identity = identity


class ToolNotFoundError(ToolError):
    """Requested action is not registered, or is disabled."""


class ToolValidationError(ToolError):
    """Step payload failed the action's schema."""


class ToolTimeoutError(ToolError):
    """Tool execution exceeded its per-step deadline."""

    def __init__(self, message: str, timeout_ms: float = 0.0, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.timeout_ms = timeout_ms


class ToolExecutionError(ToolError):
    """Tool handler raised while executing."""


class ToolRegistrationError(ToolError):
    """Tool metadata is invalid or the name is already taken."""


# ─────────────────────────────────────────────────────────────────────────────
# Memory layer
# ─────────────────────────────────────────────────────────────────────────────

class MemoryStoreError(IntentFlowError):
    """A memory store read or write failed."""


# ─────────────────────────────────────────────────────────────────────────────
# LLM layer
# ─────────────────────────────────────────────────────────────────────────────

class LLMError(IntentFlowError):
    """Base exception for all LLM client errors."""

    def __init__(self, message: str, provider: str = "", status_code: Optional[int] = None):
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code


class LLMConnectionError(LLMError):
    """Provider unreachable or authentication failed."""


class LLMRateLimitError(LLMError):
    """Rate limit hit — retry with exponential backoff."""

    def __init__(self, message: str, provider: str = "", retry_after: Optional[float] = None):
        super().__init__(message, provider)
        self.retry_after = retry_after


class LLMContextError(LLMError):
    """Input exceeds model context window."""


class LLMInvalidRequestError(LLMError):
    """Malformed request rejected by the provider."""


class LLMTimeoutError(LLMError):
    """A text-generation call exceeded its timeout."""

    def __init__(self, timeout_ms: float, provider: str = "") -> None:
        super().__init__(f"LLM call timed out after {timeout_ms:.0f}ms", provider)
        self.timeout_ms = timeout_ms


# ─────────────────────────────────────────────────────────────────────────────
# Config
# ─────────────────────────────────────────────────────────────────────────────

class ConfigError(IntentFlowError):
    """Raised by Settings.validate_all() when config problems are found."""


__all__ = [
    "IntentFlowError",
    # Agent
    "AgentError",
    "ExecutionTimeoutError",
    # Tool
    "ToolError",
    "ToolNotFoundError",
    "ToolValidationError",
    "ToolTimeoutError",
    "ToolExecutionError",
    "ToolRegistrationError",
    # Memory
    "MemoryStoreError",
    # LLM
    "LLMError",
    "LLMConnectionError",
    "LLMRateLimitError",
    "LLMContextError",
    "LLMInvalidRequestError",
    "LLMTimeoutError",
    # Config
    "ConfigError",
]
