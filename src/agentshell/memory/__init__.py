"""Memory package: shared and isolated sub-agent result scopes."""

from __future__ import annotations

from agentshell.memory.store import (
    MemoryEntry,
    MemoryScope,
    MemoryStore,
    ScopedMemory,
    namespaced_key,
    sanitize_key,
    scope_for_depth,
)

__all__ = [
    "MemoryEntry",
    "MemoryScope",
    "MemoryStore",
    "ScopedMemory",
    "namespaced_key",
    "sanitize_key",
    "scope_for_depth",
]
