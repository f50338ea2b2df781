"""Core data model: task specs, call context, results, and the runner ABC."""

from __future__ import annotations

import math
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from agentshell.config import DEFAULT_MAX_DEPTH, DEFAULT_MAX_STEPS
from agentshell.memory.store import MemoryScope, ScopedMemory


class AbortReason(str, Enum):
    """Why an orchestration call or task did not run to completion."""
    DEPTH_LIMIT = "DepthLimit"
    PARSE_ERROR = "ParseError"
    EMPTY_TASK_LIST = "EmptyTaskList"
    OTHER = "Other"


def coerce_max_steps(value: Any, default: int = DEFAULT_MAX_STEPS) -> int:
    """Read a step budget permissively: falsy -> default, str/float -> int."""
    if not value:
        return default
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return default
        try:
            value = float(value)
        except ValueError as exc:
            raise ValueError(f"max_steps must be an integer, got {value!r}") from exc
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"max_steps must be an integer, got {value!r}")
    if isinstance(value, float) and not math.isfinite(value):
        raise ValueError(f"max_steps must be a finite integer, got {value!r}")
    steps = int(value)
    if steps < 1:
        raise ValueError(f"max_steps must be >= 1, got {steps}")
    return steps


class TaskSpec(BaseModel):
    """One unit of work handed to an agent runner.

    Batch items arrive as ``{"task": ..., "max_steps": ..., "provider": ...}``;
    ``task`` populates ``description``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    description: str = Field(alias="task")
    max_steps: int = DEFAULT_MAX_STEPS
    provider: str | None = None

    @field_validator("description", mode="before")
    @classmethod
    def _strip_description(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("task must be a string")
        value = value.strip()
        if not value:
            raise ValueError("task must not be empty")
        return value

    @field_validator("max_steps", mode="before")
    @classmethod
    def _coerce_steps(cls, value: Any) -> int:
        return coerce_max_steps(value)

    @field_validator("provider", mode="before")
    @classmethod
    def _blank_provider(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value


class AbortSignal:
    """Cooperative cancellation flag shared by a whole task tree.

    Runners poll it at step boundaries and the dispatcher checks it before
    starting each task. Setting it never interrupts a step in flight.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self.reason: str | None = None

    def set(self, reason: str = "aborted") -> None:
        self.reason = reason
        self._event.set()

    def clear(self) -> None:
        self.reason = None
        self._event.clear()

    def is_set(self) -> bool:
        return self._event.is_set()


@dataclass
class AgentContext:
    """Ambient state for one orchestration call.

    ``depth`` is the recursion level the holder runs at (0 for the root).
    The orchestrator raises it on entry and lowers it on exit, so every
    mutation goes through ``_lock``.
    """

    depth: int = 0
    max_depth: int = DEFAULT_MAX_DEPTH
    memory_scope: MemoryScope = MemoryScope.SHARED
    memory: ScopedMemory | None = None
    abort: AbortSignal = field(default_factory=AbortSignal)
    parent_task: str | None = None
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def derive(
        self,
        depth: int,
        memory_scope: MemoryScope,
        memory: ScopedMemory | None,
        parent_task: str | None = None,
    ) -> AgentContext:
        """Child context for tasks one level down; shares the abort signal."""
        return AgentContext(
            depth=depth,
            max_depth=self.max_depth,
            memory_scope=memory_scope,
            memory=memory,
            abort=self.abort,
            parent_task=parent_task,
        )

    def fork(self, parent_task: str | None = None) -> AgentContext:
        """Independent copy so sibling tasks never share one depth value."""
        return replace(self, parent_task=parent_task, _lock=threading.Lock())


@dataclass
class AgentResult:
    """Outcome of one task or of one whole orchestration call."""

    success: bool
    summary: str = ""
    output: str = ""
    abort_reason: AbortReason | None = None
    task: str | None = None
    steps_used: int = 0
    memory_key: str | None = None
    tasks: list[AgentResult] = field(default_factory=list)
    memory: dict[str, Any] = field(default_factory=dict)
    aborted: bool = False

    @classmethod
    def failure(
        cls,
        summary: str,
        output: str = "",
        reason: AbortReason = AbortReason.OTHER,
        task: str | None = None,
        aborted: bool = False,
    ) -> AgentResult:
        return cls(
            success=False,
            summary=summary,
            output=output,
            abort_reason=reason,
            task=task,
            aborted=aborted,
        )

    def to_memory_value(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "summary": self.summary,
            "output": self.output,
            "steps_used": self.steps_used,
        }

    def to_payload(self) -> dict[str, Any]:
        """Caller-facing shape: ``{Success, AbortReason, Summary, Output}`` + ``Tasks``."""
        payload: dict[str, Any] = {
            "Success": self.success,
            "AbortReason": self.abort_reason.value if self.abort_reason else None,
            "Summary": self.summary,
            "Output": self.output,
        }
        if self.tasks:
            payload["Tasks"] = [
                {
                    "Task": r.task,
                    "Success": r.success,
                    "AbortReason": r.abort_reason.value if r.abort_reason else None,
                    "Summary": r.summary,
                    "Output": r.output,
                    "StepsUsed": r.steps_used,
                    "MemoryKey": r.memory_key,
                }
                for r in self.tasks
            ]
        if self.memory:
            payload["Memory"] = self.memory
        return payload


class AgentRunner(ABC):
    """Executes one task's reasoning/tool-call loop within a step budget.

    Implementations may call back into the orchestrator to spawn nested
    sub-agents, passing along the context they were given.
    """

    @abstractmethod
    async def run(
        self,
        task_description: str,
        max_steps: int,
        provider_name: str | None,
        context: AgentContext,
    ) -> AgentResult:
        """Run the task and return its result."""
        ...
