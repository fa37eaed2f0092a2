"""
memory/store.py — Bounded Memory Store

Per-identity rolling window of interaction strings ("User: ...", "LLM: ...").

  - add() appends and drops the oldest entries beyond max_entries
  - get() returns a copy; unknown identities get []
  - every mutation is written through to a JSON file before returning, so a
    new MemoryStore on the same path sees exactly the same windows

On-disk layout:
    {"version": 1, "max_entries": 10, "windows": {"<identity>": ["...", ...]}}

Single writer per identity per process is assumed; there is no locking.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Optional

from intentflow.exceptions import MemoryStoreError
from intentflow.observability.logger import get_logger

log = get_logger(__name__)

_FORMAT_VERSION = 1
DEFAULT_MAX_ENTRIES = 10


class MemoryStore:
    """
    Write-through, evict-oldest memory windows keyed by identity.

    Usage:
        store = MemoryStore("./data/memory.json", max_entries=10)
        store.add("u1", "User: what's my balance?")
        store.get("u1")   # → ["User: what's my balance?"]
    """

    def __init__(self, path: str | Path, max_entries: int = DEFAULT_MAX_ENTRIES) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self._path = Path(path)
        self.max_entries = max_entries
        self._windows: dict[str, list[str]] = self._load()

    # ── Public API ────────────────────────────────────────────────────────────

    def add(self, identity: str, entry: str) -> None:
        window = self._windows.setdefault(identity, [])
        window.append(entry)
        if len(window) > self.max_entries:
            del window[: len(window) - self.max_entries]
        self._flush()

    def get(self, identity: str) -> list[str]:
        return list(self._windows.get(identity, ()))

    def clear(self, identity: str) -> None:
        if self._windows.pop(identity, None) is not None:
            log.info("memory.cleared", identity=identity)
        self._flush()

    def clear_all(self) -> None:
        count = len(self._windows)
        self._windows = {}
        self._flush()
        log.info("memory.cleared_all", identities=count)

    def identities(self) -> list[str]:
        return list(self._windows)

    @property
    def path(self) -> Path:
        return self._path

    def __len__(self) -> int:
        return len(self._windows)

    def __repr__(self) -> str:
        return f"<MemoryStore path={str(self._path)!r} identities={len(self._windows)} cap={self.max_entries}>"

    # ── Persistence ───────────────────────────────────────────────────────────

    def _load(self) -> dict[str, list[str]]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise MemoryStoreError(f"Cannot read memory file {self._path}: {e}") from e

        windows = _validate_layout(data, self._path)
        # A file written under a larger cap is trimmed to this store's cap.
        for identity, window in windows.items():
            if len(window) > self.max_entries:
                windows[identity] = window[-self.max_entries:]

        log.debug("memory.loaded", path=str(self._path), identities=len(windows))
        return windows

    def _flush(self) -> None:
        payload = {
            "version": _FORMAT_VERSION,
            "max_entries": self.max_entries,
            "windows": self._windows,
        }
        tmp_name: Optional[str] = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self._path.name}.", suffix=".tmp", dir=self._path.parent
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, ensure_ascii=False, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self._path)
        except OSError as e:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            log.error("memory.flush_failed", path=str(self._path), error=str(e))
            raise MemoryStoreError(f"Cannot write memory file {self._path}: {e}") from e


def _validate_layout(data: object, path: Path) -> dict[str, list[str]]:
    if not isinstance(data, dict) or not isinstance(data.get("windows"), dict):
        raise MemoryStoreError(f"Memory file {path} has an unrecognised layout")
    version = data.get("version", _FORMAT_VERSION)
    if version != _FORMAT_VERSION:
        raise MemoryStoreError(f"Memory file {path} has unsupported version {version!r}")

    windows: dict[str, list[str]] = {}
    for identity, window in data["windows"].items():
        if not isinstance(window, list) or not all(isinstance(e, str) for e in window):
            raise MemoryStoreError(
                f"Memory file {path}: window for {identity!r} is not a list of strings"
            )
        windows[identity] = list(window)
    return windows
