"""
__main__.py — IntentFlow Command Line

Usage:
    intentflow ask "what time is it in Tokyo?" --user alice
    intentflow memory show --user alice
    intentflow memory clear --user alice
    intentflow memory clear --all
    intentflow tools                  # list registered tools
    intentflow tools current_time     # details for one tool
    intentflow --config path/to/config.yaml --log-level DEBUG ask "..."
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import Optional

from dotenv import load_dotenv
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

console = Console()
err_console = Console(stderr=True)


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="intentflow",
        description="IntentFlow — natural-language requests to deadline-bounded tool workflows",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.yaml (default: $INTENTFLOW_CONFIG or config/config.yaml)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Override log level from config",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    ask = sub.add_parser("ask", help="Run one request through the pipeline")
    ask.add_argument("text", help="The natural-language request")
    ask.add_argument("--user", default="cli", help="Identity the request runs as (default: cli)")
    ask.add_argument("--verbose", "-v", action="store_true", help="Show the plan and step results")

    memory = sub.add_parser("memory", help="Inspect or clear memory windows")
    memory_sub = memory.add_subparsers(dest="memory_command", required=True)
    show = memory_sub.add_parser("show", help="Show the memory window for an identity")
    show.add_argument("--user", default="cli")
    clear = memory_sub.add_parser("clear", help="Clear memory")
    target = clear.add_mutually_exclusive_group(required=True)
    target.add_argument("--user", default=None)
    target.add_argument("--all", action="store_true")

    tools = sub.add_parser("tools", help="List registered tools")
    tools.add_argument("name", nargs="?", default=None, help="Show details for one tool")

    return parser.parse_args(argv)


def bootstrap(args: argparse.Namespace, require_llm: bool):
    """
    Load config, validate it, and set up logging.
    Returns (settings, log). Exits with code 1 after printing a clear message
    when the config is invalid.
    """
    from pydantic import ValidationError

    from intentflow.config.settings import load_settings
    from intentflow.exceptions import ConfigError
    from intentflow.observability.logger import get_logger, setup_logging

    try:
        settings = load_settings(args.config)
    except ValidationError as exc:
        problems = "\n".join(
            f"  • {'.'.join(str(p) for p in e['loc']) or '?'}: {e['msg']}"
            for e in exc.errors()
        )
        err_console.print(
            f"\n[bold red]Config validation failed:[/]\n\n{escape(problems)}\n\n"
            f"    Fix config/config.yaml or your .env file and retry.\n"
        )
        sys.exit(1)
    except (OSError, ValueError) as exc:
        err_console.print(f"\n[bold red]Failed to load config:[/] {type(exc).__name__}: {escape(str(exc))}\n")
        sys.exit(1)

    if require_llm:
        try:
            settings.validate_all()
        except ConfigError as exc:
            err_console.print(escape(str(exc)))
            sys.exit(1)

    setup_logging(
        level=args.log_level or settings.log_level,
        log_dir=settings.log_dir,
        json_format=settings.logging.json_format,
        console_output=settings.logging.console_output,
        max_bytes=settings.logging.max_file_size_mb * 1024 * 1024,
        backup_count=settings.logging.backup_count,
    )
    return settings, get_logger("intentflow.cli")


# ─────────────────────────────────────────────────────────────────────────────
# Commands
# ─────────────────────────────────────────────────────────────────────────────

async def _cmd_ask(args: argparse.Namespace) -> int:
    from intentflow.exceptions import IntentFlowError
    from intentflow.kernel.bootstrap import build_agent

    settings, log = bootstrap(args, require_llm=True)
    try:
        stack = build_agent(settings)
        reply = await stack.agent.handle(args.user, args.text)
    except IntentFlowError as e:
        log.error("cli.ask_failed", error=str(e), error_type=type(e).__name__)
        err_console.print(f"[bold red]Error:[/] {escape(str(e))}")
        return 1

    if args.verbose and reply.report is not None:
        table = Table(title="Workflow", box=box.SIMPLE_HEAD)
        table.add_column("#", justify="right")
        table.add_column("Action")
        table.add_column("Status")
        table.add_column("Detail", overflow="fold")
        for i, result in enumerate(reply.report.results, 1):
            style = "red" if result.is_error else "green"
            detail = result.error if result.is_error else str(result.data or {})
            table.add_row(str(i), result.action, f"[{style}]{result.status.value}[/]", escape(detail or ""))
        console.print(table)

    console.print(Panel(
        escape(reply.message or "(no reply)"),
        title="IntentFlow" if reply.success else "IntentFlow — not completed",
        border_style="cyan" if reply.success else "yellow",
    ))
    return 0 if reply.success else 2


def _cmd_memory(args: argparse.Namespace) -> int:
    from intentflow.exceptions import MemoryStoreError
    from intentflow.memory.store import MemoryStore

    settings, _ = bootstrap(args, require_llm=False)
    try:
        store = MemoryStore(settings.memory.path, max_entries=settings.memory.max_entries)
        if args.memory_command == "show":
            entries = store.get(args.user)
            if not entries:
                console.print(f"[dim]No memory for '{args.user}'.[/]")
                return 0
            for i, entry in enumerate(entries, 1):
                console.print(f"[bold]{i:>2}.[/] {escape(entry)}", highlight=False)
            return 0

        if args.all:
            store.clear_all()
            console.print("Cleared memory for all identities.")
        else:
            store.clear(args.user)
            console.print(f"Cleared memory for '{args.user}'.")
        return 0
    except MemoryStoreError as e:
        err_console.print(f"[bold red]Memory error:[/] {escape(str(e))}")
        return 1


def _cmd_tools(args: argparse.Namespace) -> int:
    from intentflow.exceptions import ToolRegistrationError
    from intentflow.prompts.generator import PromptGenerator
    from intentflow.tools.discovery import discover
    from intentflow.tools.registry import ToolRegistry

    settings, _ = bootstrap(args, require_llm=False)
    registry = ToolRegistry()
    try:
        discover(registry, settings.tools.modules, strict=settings.tools.strict)
    except ToolRegistrationError as e:
        err_console.print(f"[bold red]Tool loading failed:[/] {escape(str(e))}")
        return 1

    if args.name:
        console.print(escape(PromptGenerator(registry).tool_help(args.name)), highlight=False)
        return 0 if registry.has(args.name) else 1

    table = Table(title="Registered tools", box=box.SIMPLE_HEAD)
    table.add_column("Name", style="bold")
    table.add_column("Category")
    table.add_column("Version")
    table.add_column("Description", overflow="fold")
    for meta in registry.list_metadata():
        table.add_row(meta.name, meta.category, meta.version, meta.description)
    console.print(table)
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    load_dotenv()
    args = parse_args(argv)
    if args.command == "ask":
        return asyncio.run(_cmd_ask(args))
    if args.command == "memory":
        return _cmd_memory(args)
    return _cmd_tools(args)


if __name__ == "__main__":
    sys.exit(main())
