"""Tests for the spawn_agent tool contract."""

import pytest
from _helpers import ScriptedRunner

from agentshell.orchestration.spawner import SubAgentOrchestrator
from agentshell.orchestration.tool import SPAWN_AGENT_TOOL, handle_spawn_agent


def test_schema_has_no_required_parameters():
    params = SPAWN_AGENT_TOOL["function"]["parameters"]
    assert SPAWN_AGENT_TOOL["function"]["name"] == "spawn_agent"
    assert params["required"] == []
    assert {"task", "tasks", "parallel", "max_steps", "memory"} <= set(params["properties"])


@pytest.mark.asyncio
async def test_payload_shape_for_single_task(orchestrator: SubAgentOrchestrator):
    payload = await handle_spawn_agent(orchestrator, {"task": "tidy downloads"})
    assert payload["Success"] is True
    assert payload["AbortReason"] is None
    assert payload["Summary"] == "done: tidy downloads"
    assert payload["Tasks"][0]["MemoryKey"] == "tidy downloads"


@pytest.mark.asyncio
async def test_payload_for_validation_failure(orchestrator: SubAgentOrchestrator):
    payload = await handle_spawn_agent(orchestrator, {})
    assert payload["Success"] is False
    assert payload["AbortReason"] == "EmptyTaskList"
    assert "Tasks" not in payload


@pytest.mark.asyncio
async def test_tasks_list_and_string_flags_are_accepted(
    orchestrator: SubAgentOrchestrator, runner: ScriptedRunner
):
    payload = await handle_spawn_agent(
        orchestrator,
        {
            "tasks": [{"task": "a", "max_steps": "3"}, {"task": "b"}],
            "parallel": "true",
            "max_steps": 6,
        },
    )
    assert payload["Success"] is True
    assert [t["Task"] for t in payload["Tasks"]] == ["a", "b"]
    assert {c.task: c.max_steps for c in runner.calls} == {"a": 3, "b": 6}


@pytest.mark.asyncio
async def test_memory_hint_is_advisory(orchestrator: SubAgentOrchestrator, runner: ScriptedRunner):
    await handle_spawn_agent(orchestrator, {"task": "x", "memory": "isolated"})
    assert runner.calls[0].scope == "shared"
