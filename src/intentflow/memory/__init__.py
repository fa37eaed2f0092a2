"""
memory/ — IntentFlow Memory

    from intentflow.memory import MemoryStore

    store = MemoryStore("./data/memory.json", max_entries=10)
"""

from intentflow.memory.store import DEFAULT_MAX_ENTRIES, MemoryStore

__all__ = ["MemoryStore", "DEFAULT_MAX_ENTRIES"]
