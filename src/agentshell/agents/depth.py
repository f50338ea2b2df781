"""Recursion ceiling for nested spawn_agent calls."""

from __future__ import annotations

import structlog

from agentshell.agents.base import AgentContext

logger = structlog.get_logger()


def check_and_enter(current_depth: int, max_depth: int) -> bool:
    """True when a call at ``current_depth`` may open one more level."""
    return current_depth < max_depth


def leave(current_depth: int) -> int:
    """Depth after exiting one level, floored at zero."""
    return max(0, current_depth - 1)


class DepthGuard:
    """Atomic check-then-increment and floored decrement on an AgentContext.

    The check happens before any mutation, so a rejected call leaves the
    context's depth untouched.
    """

    def try_enter(self, context: AgentContext) -> int | None:
        """Enter one level. Returns the new depth, or None when at the ceiling."""
        with context._lock:
            if not check_and_enter(context.depth, context.max_depth):
                return None
            context.depth += 1
            return context.depth

    def leave(self, context: AgentContext) -> int:
        with context._lock:
            if context.depth <= 0:
                logger.warning("depth_floor_clamped", depth=context.depth)
            context.depth = leave(context.depth)
            return context.depth
