"""The spawn_agent tool contract as seen by LLMs and the intent router."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from agentshell.agents.base import AgentContext

if TYPE_CHECKING:
    from agentshell.orchestration.spawner import SubAgentOrchestrator

SPAWN_AGENT_TOOL_NAME = "spawn_agent"

SPAWN_AGENT_INPUT_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "task": {
            "type": "string",
            "description": "A single task for one sub-agent.",
        },
        "tasks": {
            "type": "string",
            "description": (
                'JSON array of tasks, e.g. [{"task": "research X", "max_steps": 5}]. '
                "Use instead of 'task' to run a batch."
            ),
        },
        "parallel": {
            "type": "boolean",
            "description": "Run batch tasks concurrently. Default: false.",
            "default": False,
        },
        "max_steps": {
            "type": "integer",
            "description": "Step budget per task when not set per item. Default: 10.",
            "default": 10,
            "minimum": 1,
        },
        "memory": {
            "type": "string",
            "description": "Advisory memory hint ('shared' or 'isolated'); scope follows depth.",
        },
        "provider": {
            "type": "string",
            "description": "Provider name for tasks that do not set their own.",
        },
    },
    "required": [],
}

SPAWN_AGENT_TOOL: dict[str, Any] = {
    "type": "function",
    "function": {
        "name": SPAWN_AGENT_TOOL_NAME,
        "description": (
            "Delegate work to one or more sub-agents. Each sub-agent runs its own "
            "tool loop with a step budget and returns a summary. Nesting is limited "
            "by a depth limit."
        ),
        "parameters": SPAWN_AGENT_INPUT_SCHEMA,
    },
}


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def _as_optional_str(value: Any) -> str | None:
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


async def handle_spawn_agent(
    orchestrator: SubAgentOrchestrator,
    arguments: dict[str, Any],
    context: AgentContext | None = None,
    silent: bool = False,
) -> dict[str, Any]:
    """Normalise raw tool arguments, run spawn_agent, return the payload dict."""
    tasks = arguments.get("tasks")
    if isinstance(tasks, list):
        tasks = json.dumps(tasks)

    result = await orchestrator.spawn_agent(
        task=_as_optional_str(arguments.get("task")),
        tasks=_as_optional_str(tasks),
        parallel=_as_bool(arguments.get("parallel", False)),
        max_steps=arguments.get("max_steps"),
        provider=_as_optional_str(arguments.get("provider")),
        memory=_as_optional_str(arguments.get("memory")),
        context=context,
        silent=silent,
    )
    return result.to_payload()
