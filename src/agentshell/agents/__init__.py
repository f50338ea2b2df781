"""Agents package: task model, depth guard, and task parsing."""

from __future__ import annotations

from agentshell.agents.base import (
    AbortReason,
    AbortSignal,
    AgentContext,
    AgentResult,
    AgentRunner,
    TaskSpec,
)
from agentshell.agents.depth import DepthGuard
from agentshell.agents.tasks import parse_tasks

__all__ = [
    "AbortReason",
    "AbortSignal",
    "AgentContext",
    "AgentResult",
    "AgentRunner",
    "DepthGuard",
    "TaskSpec",
    "parse_tasks",
]
