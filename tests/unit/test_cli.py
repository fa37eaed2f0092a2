"""
tests/unit/test_cli.py — Command Line Tests

Covers:
  - argument parsing for ask / memory / tools
  - memory show / clear against a real store
  - tools listing and per-tool help
  - ask exits with code 1 when the provider API key is missing
"""

from __future__ import annotations

import textwrap

import pytest

from intentflow.__main__ import main, parse_args
from intentflow.memory.store import MemoryStore


@pytest.fixture
def config(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(textwrap.dedent(f"""
        memory:
          path: {tmp_path / "memory.json"}
        logging:
          log_dir: {tmp_path / "logs"}
          console_output: false
    """), encoding="utf-8")
    return path


class TestParseArgs:
    def test_ask(self):
        args = parse_args(["ask", "what time is it?", "--user", "alice"])
        assert (args.command, args.text, args.user) == ("ask", "what time is it?", "alice")

    def test_memory_clear_needs_target(self):
        with pytest.raises(SystemExit):
            parse_args(["memory", "clear"])

    def test_global_flags(self):
        args = parse_args(["--config", "c.yaml", "--log-level", "DEBUG", "tools"])
        assert (args.config, args.log_level, args.command) == ("c.yaml", "DEBUG", "tools")


class TestMemoryCommand:
    def test_show(self, config, tmp_path, capsys):
        MemoryStore(tmp_path / "memory.json").add("alice", "User: hello there")
        assert main(["--config", str(config), "memory", "show", "--user", "alice"]) == 0
        assert "User: hello there" in capsys.readouterr().out

    def test_show_empty(self, config, capsys):
        assert main(["--config", str(config), "memory", "show", "--user", "bob"]) == 0
        assert "No memory for 'bob'" in capsys.readouterr().out

    def test_clear_user(self, config, tmp_path):
        store = MemoryStore(tmp_path / "memory.json")
        store.add("alice", "a")
        store.add("bob", "b")
        assert main(["--config", str(config), "memory", "clear", "--user", "alice"]) == 0
        reloaded = MemoryStore(tmp_path / "memory.json")
        assert reloaded.get("alice") == []
        assert reloaded.get("bob") == ["b"]

    def test_clear_all(self, config, tmp_path):
        MemoryStore(tmp_path / "memory.json").add("alice", "a")
        assert main(["--config", str(config), "memory", "clear", "--all"]) == 0
        assert MemoryStore(tmp_path / "memory.json").identities() == []

    def test_corrupt_memory_file(self, config, tmp_path, capsys):
        (tmp_path / "memory.json").write_text("{broken", encoding="utf-8")
        assert main(["--config", str(config), "memory", "show"]) == 1


class TestToolsCommand:
    def test_lists_builtin_tools(self, config, capsys):
        assert main(["--config", str(config), "tools"]) == 0
        out = capsys.readouterr().out
        assert "echo" in out
        assert "current_time" in out

    def test_tool_help(self, config, capsys):
        assert main(["--config", str(config), "tools", "echo"]) == 0
        assert "Tool: echo" in capsys.readouterr().out

    def test_unknown_tool(self, config):
        assert main(["--config", str(config), "tools", "teleport"]) == 1


class TestAskCommand:
    def test_missing_api_key_exits(self, config, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["--config", str(config), "ask", "hello"])
        assert exc_info.value.code == 1
        assert "ANTHROPIC_API_KEY" in capsys.readouterr().err
