"""Parse spawn_agent arguments into a validated task batch."""

from __future__ import annotations

import json
from typing import Any

from pydantic import TypeAdapter, ValidationError

from agentshell.agents.base import AbortReason, TaskSpec, coerce_max_steps
from agentshell.config import DEFAULT_MAX_STEPS
from agentshell.exceptions import TaskSpecError

MISSING_TASKS_MESSAGE = (
    "Either 'task' (a single task) or 'tasks' (a JSON array of tasks) is required"
)

_BATCH = TypeAdapter(list[TaskSpec])


def _format_validation_error(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err["loc"])
        parts.append(f"{loc}: {err['msg']}")
    return "; ".join(parts)


def parse_tasks(
    task: str | None = None,
    tasks: str | None = None,
    max_steps: Any = None,
    provider: str | None = None,
    default_max_steps: int = DEFAULT_MAX_STEPS,
) -> list[TaskSpec]:
    """Build the task batch for one spawn_agent call.

    ``tasks`` wins over ``task`` when both are given. ``max_steps`` and
    ``provider`` apply to the single task, and to batch items that do not
    set their own.

    Raises:
        TaskSpecError: with reason EMPTY_TASK_LIST when nothing was supplied
            or the batch is empty, PARSE_ERROR when the batch is malformed.
    """
    has_task = isinstance(task, str) and bool(task.strip())
    has_tasks = isinstance(tasks, str) and bool(tasks.strip())

    if not has_task and not has_tasks:
        raise TaskSpecError(MISSING_TASKS_MESSAGE, AbortReason.EMPTY_TASK_LIST)

    try:
        call_steps = coerce_max_steps(max_steps, default=default_max_steps)
    except ValueError as exc:
        raise TaskSpecError(f"Failed to parse max_steps: {exc}", AbortReason.PARSE_ERROR) from exc

    if not has_tasks:
        return [TaskSpec(description=task.strip(), max_steps=call_steps, provider=provider)]

    try:
        raw = json.loads(tasks)
    except json.JSONDecodeError as exc:
        raise TaskSpecError(f"Failed to parse tasks: {exc}", AbortReason.PARSE_ERROR) from exc

    if not isinstance(raw, list):
        raise TaskSpecError(
            f"Failed to parse tasks: expected a JSON array, got {type(raw).__name__}",
            AbortReason.PARSE_ERROR,
        )
    if not raw:
        raise TaskSpecError("No tasks provided in the batch", AbortReason.EMPTY_TASK_LIST)

    items: list[Any] = []
    for item in raw:
        if isinstance(item, dict):
            item = dict(item)
            if not item.get("max_steps"):
                item["max_steps"] = call_steps
            if provider and not item.get("provider"):
                item["provider"] = provider
        items.append(item)

    try:
        return _BATCH.validate_python(items)
    except ValidationError as exc:
        raise TaskSpecError(
            f"Failed to parse tasks: {_format_validation_error(exc)}",
            AbortReason.PARSE_ERROR,
        ) from exc
