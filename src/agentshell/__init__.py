"""agentshell - depth-bounded sub-agent orchestration for a personal AI shell."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from agentshell.config import AgentShellConfig
    from agentshell.orchestration.spawner import SubAgentOrchestrator

__all__ = ["AgentShellConfig", "SubAgentOrchestrator", "build_orchestrator"]
__version__ = "0.1.0"


def build_orchestrator(config: AgentShellConfig | None = None) -> SubAgentOrchestrator:
    """Wire an orchestrator to an LLM-backed runner that can spawn recursively."""
    from agentshell.config import AgentShellConfig
    from agentshell.llm.runner import LLMAgentRunner
    from agentshell.orchestration.spawner import SubAgentOrchestrator

    orchestrator = SubAgentOrchestrator(config or AgentShellConfig())
    orchestrator.attach_runner(LLMAgentRunner(orchestrator))
    return orchestrator


def __getattr__(name: str):
    """Lazy imports - keep litellm off the import path until it is needed."""
    if name == "AgentShellConfig":
        from agentshell.config import AgentShellConfig

        return AgentShellConfig
    if name == "SubAgentOrchestrator":
        from agentshell.orchestration.spawner import SubAgentOrchestrator

        return SubAgentOrchestrator
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
