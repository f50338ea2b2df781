"""Orchestration layer: the spawn_agent entry point and its dispatcher."""

from agentshell.orchestration.dispatcher import ExecutionDispatcher
from agentshell.orchestration.spawner import (
    ResultChannel,
    SpawnStats,
    SubAgentOrchestrator,
    aggregate_results,
)
from agentshell.orchestration.tool import (
    SPAWN_AGENT_TOOL,
    SPAWN_AGENT_TOOL_NAME,
    handle_spawn_agent,
)

__all__ = [
    "ExecutionDispatcher",
    "ResultChannel",
    "SPAWN_AGENT_TOOL",
    "SPAWN_AGENT_TOOL_NAME",
    "SpawnStats",
    "SubAgentOrchestrator",
    "aggregate_results",
    "handle_spawn_agent",
]
