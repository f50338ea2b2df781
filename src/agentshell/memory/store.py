"""Scoped result memory for sub-agent task trees.

Tasks running at depth <= 1 share one global mapping. Deeper subtrees get
a fresh isolated mapping that lives only as long as the orchestration call
that opened it, keyed by a namespaced form of the task description.
"""

from __future__ import annotations

import asyncio
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

import structlog

log = structlog.get_logger(__name__)

KEY_PREFIX = "subagent:"
MAX_KEY_LENGTH = 40
SHARED_DEPTH_LIMIT = 1

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9_]")


class MemoryScope(str, Enum):
    """Where a task's result is stored."""
    SHARED = "shared"
    ISOLATED = "isolated"


def scope_for_depth(depth: int) -> MemoryScope:
    """Shared up to depth 1, isolated below that."""
    return MemoryScope.SHARED if depth <= SHARED_DEPTH_LIMIT else MemoryScope.ISOLATED


def sanitize_key(text: str) -> str:
    """Replace characters outside ``[A-Za-z0-9_]`` and cut to 40 chars."""
    return _UNSAFE_KEY_CHARS.sub("_", text)[:MAX_KEY_LENGTH]


def namespaced_key(task_description: str) -> str:
    return KEY_PREFIX + sanitize_key(task_description)


def _now() -> datetime:
    return datetime.now(UTC)


@dataclass
class MemoryEntry:
    """A result written by a completed sub-agent task."""

    key: str
    value: Any
    scope: MemoryScope
    depth: int = 0
    written_at: datetime = field(default_factory=_now)


class ScopedMemory:
    """One key-value mapping with single-writer-at-a-time semantics."""

    def __init__(self, scope: MemoryScope, owner: str | None = None) -> None:
        self.scope = scope
        self.owner = owner
        self._entries: dict[str, MemoryEntry] = {}
        self._write_lock = asyncio.Lock()

    async def write(self, key: str, value: Any, depth: int = 0) -> MemoryEntry:
        entry = MemoryEntry(key=key, value=value, scope=self.scope, depth=depth)
        async with self._write_lock:
            self._entries[key] = entry
        log.debug("memory_written", scope=self.scope.value, key=key, depth=depth)
        return entry

    async def read(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        return entry.value if entry is not None else None

    def entry(self, key: str) -> MemoryEntry | None:
        return self._entries.get(key)

    def keys(self) -> list[str]:
        return list(self._entries)

    def snapshot(self) -> dict[str, Any]:
        """Copy of the current key -> value mapping."""
        return {key: entry.value for key, entry in self._entries.items()}

    async def clear(self) -> int:
        async with self._write_lock:
            count = len(self._entries)
            self._entries.clear()
        return count

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries


class MemoryStore:
    """Owns the shared scope and hands out isolated scopes per subtree."""

    def __init__(self) -> None:
        self.shared = ScopedMemory(MemoryScope.SHARED)

    def open_isolated(self, owner: str | None = None) -> ScopedMemory:
        """Create a fresh isolated scope for one orchestration subtree."""
        return ScopedMemory(MemoryScope.ISOLATED, owner=owner)

    def resolve(self, scope: MemoryScope, isolated: ScopedMemory | None = None) -> ScopedMemory:
        if scope is MemoryScope.SHARED:
            return self.shared
        if isolated is None:
            raise ValueError("An isolated scope requires its subtree's ScopedMemory")
        return isolated

    @staticmethod
    def key_for(scope: MemoryScope, task_description: str) -> str:
        if scope is MemoryScope.ISOLATED:
            return namespaced_key(task_description)
        return task_description.strip()

    async def write(
        self,
        scope: MemoryScope,
        key: str,
        value: Any,
        isolated: ScopedMemory | None = None,
        depth: int = 0,
    ) -> MemoryEntry:
        return await self.resolve(scope, isolated).write(key, value, depth=depth)

    async def read(
        self,
        scope: MemoryScope,
        key: str,
        isolated: ScopedMemory | None = None,
    ) -> Any | None:
        return await self.resolve(scope, isolated).read(key)

    async def promote(self, source: ScopedMemory, keys: Iterable[str] | None = None) -> list[str]:
        """Copy isolated entries into the shared scope. Returns the copied keys."""
        wanted = list(keys) if keys is not None else source.keys()
        copied: list[str] = []
        for key in wanted:
            entry = source.entry(key)
            if entry is None:
                continue
            await self.shared.write(key, entry.value, depth=entry.depth)
            copied.append(key)
        log.info("memory_promoted", owner=source.owner, count=len(copied))
        return copied

    async def reset(self) -> int:
        """Drop every shared entry. Returns the number removed."""
        removed = await self.shared.clear()
        log.warning("memory_reset", removed=removed)
        return removed
