"""Shared test fixtures."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Make _helpers importable from test files
sys.path.insert(0, str(Path(__file__).parent))

from _helpers import ScriptedRunner  # noqa: E402

from agentshell.config import AgentShellConfig, ProviderConfig  # noqa: E402
from agentshell.orchestration.spawner import SubAgentOrchestrator  # noqa: E402


@pytest.fixture
def config() -> AgentShellConfig:
    return AgentShellConfig(
        providers={"default": ProviderConfig(model="mock/gpt-4o-mini")},
        task_timeout_seconds=5.0,
    )


@pytest.fixture
def runner() -> ScriptedRunner:
    return ScriptedRunner()


@pytest.fixture
def orchestrator(config: AgentShellConfig, runner: ScriptedRunner) -> SubAgentOrchestrator:
    return SubAgentOrchestrator(config, runner=runner)
