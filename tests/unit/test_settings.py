"""
tests/unit/test_settings.py — Config Tests

Covers:
  - defaults load cleanly
  - invalid provider / log level / budgets / prompt kinds are rejected
  - validate_all() raises ConfigError with a numbered list
  - validate_all() catches a missing API key and cap > budget
  - INTENTFLOW_CONFIG env var is respected by load_settings()
  - explicit config_path takes priority over the env var
"""

from __future__ import annotations

import textwrap

import pytest
from pydantic import ValidationError

from intentflow.config.settings import Settings, load_settings
from intentflow.exceptions import ConfigError


def _make_settings(**overrides) -> Settings:
    return Settings(**overrides)


class TestDefaults:
    def test_defaults(self):
        settings = _make_settings()
        assert settings.agent.total_budget_ms == 30_000
        assert settings.agent.per_tool_cap_ms == 10_000
        assert settings.agent.payload_echo_chars == 80
        assert settings.memory.max_entries == 10
        assert settings.llm.provider == "anthropic"
        assert settings.tools.modules == ["intentflow.tools.builtin"]
        assert settings.api_key is None


class TestFieldValidation:
    def test_unknown_provider(self):
        with pytest.raises(ValidationError):
            _make_settings(llm={"provider": "carrier-pigeon"})

    def test_invalid_log_level(self):
        with pytest.raises(ValidationError):
            _make_settings(logging={"level": "LOUD"})

    def test_log_level_is_upper_cased(self):
        assert _make_settings(logging={"level": "debug"}).log_level == "DEBUG"

    def test_non_positive_budget(self):
        with pytest.raises(ValidationError):
            _make_settings(agent={"total_budget_ms": 0})

    def test_zero_memory_cap(self):
        with pytest.raises(ValidationError):
            _make_settings(memory={"max_entries": 0})

    def test_unknown_prompt_kind(self):
        with pytest.raises(ValidationError):
            _make_settings(prompts={"variants": [{"id": "x", "kind": "poem", "content": "c"}]})

    def test_negative_weight(self):
        with pytest.raises(ValidationError):
            _make_settings(prompts={"variants": [
                {"id": "x", "kind": "intent", "content": "c", "weight": -1},
            ]})


class TestValidateAll:
    def test_missing_key(self):
        with pytest.raises(ConfigError) as exc_info:
            _make_settings().validate_all()
        assert "ANTHROPIC_API_KEY" in str(exc_info.value)
        assert "1." in str(exc_info.value)

    def test_openai_key_checked_for_openai(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant")
        with pytest.raises(ConfigError) as exc_info:
            _make_settings(llm={"provider": "openai", "model": "gpt-4o-mini"}).validate_all()
        assert "OPENAI_API_KEY" in str(exc_info.value)

    def test_cap_exceeding_budget(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant")
        with pytest.raises(ConfigError) as exc_info:
            _make_settings(agent={"total_budget_ms": 1000, "per_tool_cap_ms": 5000}).validate_all()
        assert "per_tool_cap_ms" in str(exc_info.value)

    def test_duplicate_variant_ids(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant")
        variant = {"id": "dup", "kind": "intent", "content": "c"}
        with pytest.raises(ConfigError):
            _make_settings(prompts={"variants": [variant, variant]}).validate_all()

    def test_valid_config_passes(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant")
        _make_settings().validate_all()


class TestLoadSettings:
    def _write(self, path, budget: int):
        path.write_text(textwrap.dedent(f"""
            agent:
              total_budget_ms: {budget}
            memory:
              max_entries: 4
            unknown_section:
              ignored: true
        """), encoding="utf-8")

    def test_env_var_path(self, tmp_path, monkeypatch):
        config = tmp_path / "env.yaml"
        self._write(config, 1234)
        monkeypatch.setenv("INTENTFLOW_CONFIG", str(config))
        settings = load_settings()
        assert settings.agent.total_budget_ms == 1234
        assert settings.memory.max_entries == 4

    def test_explicit_path_wins(self, tmp_path, monkeypatch):
        env_config = tmp_path / "env.yaml"
        explicit = tmp_path / "explicit.yaml"
        self._write(env_config, 1111)
        self._write(explicit, 2222)
        monkeypatch.setenv("INTENTFLOW_CONFIG", str(env_config))
        assert load_settings(explicit).agent.total_budget_ms == 2222

    def test_missing_file_uses_defaults(self, tmp_path):
        assert load_settings(tmp_path / "nope.yaml").agent.total_budget_ms == 30_000
