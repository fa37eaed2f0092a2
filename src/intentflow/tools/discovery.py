"""
tools/discovery.py — Tool Module Discovery

Imports the configured tool modules and lets each one register its tools.

Rules:
  - A tool module is any importable module exposing register(registry).
  - A module that fails to import, or has no register(), is logged as a
    warning and the remaining modules still load.
  - strict=True turns those warnings into ToolRegistrationError so a
    misconfigured deployment fails loudly at startup.
  - Duplicate tool names are never tolerated: ToolRegistrationError from
    register() always propagates.

Usage:
    registry = ToolRegistry()
    discover(registry, ["intentflow.tools.builtin", "myorg.wallet_tools"])
"""

from __future__ import annotations

import importlib
from typing import Iterable

from intentflow.exceptions import ToolRegistrationError
from intentflow.observability.logger import get_logger
from intentflow.tools.registry import ToolRegistry

log = get_logger(__name__)


def discover(registry: ToolRegistry, modules: Iterable[str], strict: bool = False) -> list[str]:
    """
    Import each module and call its register(registry).

    Returns the names of the modules that registered successfully.
    """
    loaded: list[str] = []
    for module_name in modules:
        before = set(registry.list_names())
        try:
            module = importlib.import_module(module_name)
        except Exception as e:
            if strict:
                raise ToolRegistrationError(
                    f"Failed to import tool module '{module_name}': {e}"
                ) from e
            log.warning("tool_discovery.import_failed", module=module_name, error=str(e))
            continue

        register = getattr(module, "register", None)
        if not callable(register):
            if strict:
                raise ToolRegistrationError(
                    f"Tool module '{module_name}' has no register(registry) function"
                )
            log.warning("tool_discovery.no_register", module=module_name)
            continue

        register(registry)
        added = sorted(set(registry.list_names()) - before)
        log.debug("tool_discovery.loaded", module=module_name, tools=added)
        loaded.append(module_name)

    log.info("tool_discovery.complete", modules=len(loaded), tools=len(registry.list_names()))
    return loaded
