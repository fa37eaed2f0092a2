"""
config/settings.py — IntentFlow Runtime Settings

Merges config.yaml (defaults/structure) with .env (secrets).
Pydantic-powered — all fields are validated and typed.

  - AgentConfig rejects non-positive budgets at parse time
  - LLMConfig rejects unknown providers
  - validate_all() performs cross-field startup validation and raises
    ConfigError listing every problem found
  - load_settings() respects INTENTFLOW_CONFIG when no explicit path is given
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from intentflow.exceptions import ConfigError

_VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
_KNOWN_PROVIDERS = {"anthropic", "openai"}
_PROMPT_KINDS = {"validation", "intent", "response"}


# ─────────────────────────────────────────────────────────────────────────────
# Sub-models
# ─────────────────────────────────────────────────────────────────────────────

class AgentConfig(BaseModel):
    total_budget_ms: int = 30_000
    per_tool_cap_ms: int = 10_000
    llm_timeout_ms: int = 30_000
    payload_echo_chars: int = 80

    @field_validator("total_budget_ms", "per_tool_cap_ms", "llm_timeout_ms")
    @classmethod
    def _positive_ms(cls, v: int) -> int:
        if v < 1:
            raise ValueError("agent timeouts must be >= 1 ms")
        return v

    @field_validator("payload_echo_chars")
    @classmethod
    def _positive_echo(cls, v: int) -> int:
        if v < 1:
            raise ValueError("agent.payload_echo_chars must be >= 1")
        return v


class LLMRetryConfig(BaseModel):
    """Exponential backoff config for transient LLM errors."""
    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0


class LLMConfig(BaseModel):
    provider: str = "anthropic"
    model: str = "claude-3-5-haiku-20241022"
    temperature: float = 0.2
    max_tokens: int = 4096
    retry: LLMRetryConfig = Field(default_factory=LLMRetryConfig)

    @field_validator("provider")
    @classmethod
    def _known_provider(cls, v: str) -> str:
        if v not in _KNOWN_PROVIDERS:
            raise ValueError(
                f"llm.provider '{v}' is not supported. "
                f"Supported: {sorted(_KNOWN_PROVIDERS)}"
            )
        return v

    @field_validator("temperature")
    @classmethod
    def _valid_temperature(cls, v: float) -> float:
        if not (0.0 <= v <= 2.0):
            raise ValueError("llm.temperature must be between 0.0 and 2.0")
        return v

    @field_validator("max_tokens")
    @classmethod
    def _positive_tokens(cls, v: int) -> int:
        if v < 1:
            raise ValueError("llm.max_tokens must be >= 1")
        return v


class MemoryConfig(BaseModel):
    path: str = "./data/memory.json"
    max_entries: int = 10

    @field_validator("max_entries")
    @classmethod
    def _positive_cap(cls, v: int) -> int:
        if v < 1:
            raise ValueError("memory.max_entries must be >= 1")
        return v


class PromptVariantConfig(BaseModel):
    id: str
    kind: str
    content: str
    weight: float = 1.0
    active: bool = True

    @field_validator("kind")
    @classmethod
    def _known_kind(cls, v: str) -> str:
        if v not in _PROMPT_KINDS:
            raise ValueError(
                f"prompt variant kind '{v}' must be one of {sorted(_PROMPT_KINDS)}"
            )
        return v

    @field_validator("weight")
    @classmethod
    def _non_negative_weight(cls, v: float) -> float:
        if v < 0:
            raise ValueError("prompt variant weight must be >= 0")
        return v


class PromptsConfig(BaseModel):
    variants: List[PromptVariantConfig] = Field(default_factory=list)


class ToolsConfig(BaseModel):
    modules: List[str] = Field(default_factory=lambda: ["intentflow.tools.builtin"])
    strict: bool = False


class LoggingConfig(BaseModel):
    level: str = "INFO"
    log_dir: str = "./data/logs"
    max_file_size_mb: int = 50
    backup_count: int = 5
    console_output: bool = False
    json_format: bool = True

    @field_validator("level")
    @classmethod
    def _valid_log_level(cls, v: str) -> str:
        upper = v.upper()
        if upper not in _VALID_LOG_LEVELS:
            raise ValueError(
                f"logging.level '{v}' is not valid. "
                f"Must be one of: {sorted(_VALID_LOG_LEVELS)}"
            )
        return upper


# ─────────────────────────────────────────────────────────────────────────────
# Root Settings
# ─────────────────────────────────────────────────────────────────────────────

class Settings(BaseSettings):
    """
    IntentFlow runtime settings.

    Priority (highest to lowest):
      1. Environment variables
      2. .env file
      3. config.yaml
      4. Field defaults
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
    )

    anthropic_api_key: Optional[str] = Field(default=None, alias="ANTHROPIC_API_KEY")
    openai_api_key: Optional[str] = Field(default=None, alias="OPENAI_API_KEY")
    openai_base_url: Optional[str] = Field(default=None, alias="OPENAI_BASE_URL")

    agent: AgentConfig = Field(default_factory=AgentConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    memory: MemoryConfig = Field(default_factory=MemoryConfig)
    prompts: PromptsConfig = Field(default_factory=PromptsConfig)
    tools: ToolsConfig = Field(default_factory=ToolsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("agent", mode="before")
    @classmethod
    def _coerce_agent(cls, v: Any) -> Any:
        return AgentConfig(**v) if isinstance(v, dict) else v

    @field_validator("llm", mode="before")
    @classmethod
    def _coerce_llm(cls, v: Any) -> Any:
        return LLMConfig(**v) if isinstance(v, dict) else v

    @field_validator("memory", mode="before")
    @classmethod
    def _coerce_memory(cls, v: Any) -> Any:
        return MemoryConfig(**v) if isinstance(v, dict) else v

    @field_validator("prompts", mode="before")
    @classmethod
    def _coerce_prompts(cls, v: Any) -> Any:
        return PromptsConfig(**v) if isinstance(v, dict) else v

    @field_validator("tools", mode="before")
    @classmethod
    def _coerce_tools(cls, v: Any) -> Any:
        return ToolsConfig(**v) if isinstance(v, dict) else v

    @field_validator("logging", mode="before")
    @classmethod
    def _coerce_logging(cls, v: Any) -> Any:
        return LoggingConfig(**v) if isinstance(v, dict) else v

    # -- Convenience properties ----------------------------------------------

    @property
    def api_key(self) -> Optional[str]:
        """API key for the configured provider."""
        if self.llm.provider == "openai":
            return self.openai_api_key
        return self.anthropic_api_key

    @property
    def log_level(self) -> str:
        return self.logging.level.upper()

    @property
    def log_dir(self) -> Path:
        return Path(self.logging.log_dir)

    def validate_all(self) -> None:
        """
        Full startup validation. Raises ConfigError listing every problem found.

        Field validators catch type/value errors at parse time; this catches
        cross-field problems they can't see.
        """
        errors: list[str] = []

        env_names = {"anthropic": "ANTHROPIC_API_KEY", "openai": "OPENAI_API_KEY"}
        if not self.api_key:
            env_name = env_names[self.llm.provider]
            errors.append(
                f"LLM provider '{self.llm.provider}' requires {env_name} to be set "
                f"in your .env file."
            )

        if self.agent.per_tool_cap_ms > self.agent.total_budget_ms:
            errors.append(
                f"agent.per_tool_cap_ms ({self.agent.per_tool_cap_ms}) exceeds "
                f"agent.total_budget_ms ({self.agent.total_budget_ms})."
            )

        seen_ids: set[str] = set()
        for variant in self.prompts.variants:
            if variant.id in seen_ids:
                errors.append(f"prompts.variants has a duplicate id '{variant.id}'.")
            seen_ids.add(variant.id)

        if errors:
            numbered = "\n".join(f"  {i+1}. {e}" for i, e in enumerate(errors))
            raise ConfigError(
                f"\n\nIntentFlow startup failed — {len(errors)} configuration "
                f"problem(s) found:\n\n{numbered}\n\n"
                f"Fix the issues above in config/config.yaml or your .env file "
                f"and restart.\n"
            )


# ─────────────────────────────────────────────────────────────────────────────
# Loader
# ─────────────────────────────────────────────────────────────────────────────

_KNOWN_SECTIONS = {"agent", "llm", "memory", "prompts", "tools", "logging"}


def _load_yaml(path: Path) -> dict:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _resolve_config_path(config_path: str | Path | None) -> Path:
    """
    Resolve the config file path with this priority:
      1. Explicit config_path argument (--config CLI flag)
      2. INTENTFLOW_CONFIG environment variable
      3. Default: config/config.yaml
    """
    if config_path is not None:
        return Path(config_path)
    env_path = os.environ.get("INTENTFLOW_CONFIG")
    if env_path:
        return Path(env_path)
    return Path("config/config.yaml")


def load_settings(config_path: str | Path | None = None) -> Settings:
    """Load settings by merging config.yaml with environment variables."""
    yaml_data = _load_yaml(_resolve_config_path(config_path))
    init_kwargs = {k: v for k, v in yaml_data.items() if k in _KNOWN_SECTIONS}

    return Settings(**init_kwargs)

