"""
brain/types.py — IntentFlow Brain Data Models

Shared types used by the LLM clients and the text-generation boundary.
Providers map their native response shapes into these types.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class Provider(str, Enum):
    ANTHROPIC = "anthropic"
    OPENAI = "openai"


class FinishReason(str, Enum):
    STOP = "stop"
    LENGTH = "length"
    ERROR = "error"


class Message(BaseModel):
    """A single message in the conversation."""
    role: Role
    content: str = ""

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(role=Role.SYSTEM, content=content)

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role=Role.USER, content=content)

    @classmethod
    def assistant(cls, content: str) -> "Message":
        return cls(role=Role.ASSISTANT, content=content)


class LLMConfig(BaseModel):
    """
    Per-request LLM configuration.
    Overrides the provider defaults for a single generate() call.
    """
    model: str
    temperature: float = 0.2
    max_tokens: int = 4096
    top_p: float = 1.0
    timeout_seconds: float = 60.0


class TokenUsage(BaseModel):
    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


class LLMResponse(BaseModel):
    """Normalised response from any LLM provider."""
    content: Optional[str] = None
    finish_reason: FinishReason = FinishReason.STOP
    usage: TokenUsage = Field(default_factory=TokenUsage)
    model: str = ""
    provider: Provider = Provider.ANTHROPIC


# ─────────────────────────────────────────────────────────────────────────────
# Text-generation boundary types
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class GenerateOptions:
    """
    Options for one TextGenerator.generate() call.

    timeout_ms=None means "use the generator's default".
    """
    as_json: bool = True
    timeout_ms: Optional[float] = None
    trace_id: str = ""


@dataclass(frozen=True)
class StructuredOutput:
    """
    Result of a JSON-mode generation.

    ok=True  → value holds the decoded JSON.
    ok=False → the model's text could not be decoded; raw keeps it for
               diagnostics and error says why.
    """
    ok: bool
    value: Any = None
    raw: str = ""
    error: Optional[str] = None

    @classmethod
    def parsed(cls, value: Any, raw: str) -> "StructuredOutput":
        return cls(ok=True, value=value, raw=raw)

    @classmethod
    def degraded(cls, raw: str, error: str) -> "StructuredOutput":
        return cls(ok=False, value=None, raw=raw, error=error)

    def field(self, name: str, default: Any = None) -> Any:
        """Return value[name] when the decoded value is an object, else default."""
        if self.ok and isinstance(self.value, dict):
            return self.value.get(name, default)
        return default
