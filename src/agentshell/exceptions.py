"""Error taxonomy for sub-agent orchestration.

These are raised inside components and turned into structured
``AgentResult`` values at the dispatcher and orchestrator boundaries.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from agentshell.agents.base import AbortReason


class AgentShellError(Exception):
    """Base class for all agentshell errors."""


class TaskSpecError(AgentShellError):
    """The task/tasks arguments could not be turned into a task batch."""

    def __init__(self, message: str, reason: AbortReason) -> None:
        super().__init__(message)
        self.reason = reason


class DepthLimitError(AgentShellError):
    """A spawn would exceed the configured recursion ceiling."""

    def __init__(self, depth: int, max_depth: int) -> None:
        super().__init__(
            f"Sub-agent depth limit reached (depth {depth} of max {max_depth})"
        )
        self.depth = depth
        self.max_depth = max_depth


class ProviderError(AgentShellError):
    """A provider is unknown or misconfigured."""

    def __init__(self, provider: str | None, message: str) -> None:
        super().__init__(message)
        self.provider = provider


class AbortedError(AgentShellError):
    """Work was stopped because the abort signal was set."""


class RunnerFault(AgentShellError):
    """The agent runner failed unexpectedly while executing a task."""

    def __init__(self, task: str, cause: BaseException, summary: str | None = None) -> None:
        super().__init__(f"Agent runner failed on {task!r}: {str(cause) or type(cause).__name__}")
        self.task = task
        self.summary = summary
