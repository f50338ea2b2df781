"""Basic example: spawn a small sub-agent tree with a scripted runner."""

import asyncio
import json
import random

from agentshell.agents.base import AgentContext, AgentResult, AgentRunner
from agentshell.config import AgentShellConfig
from agentshell.log import configure_logging
from agentshell.orchestration.spawner import ResultChannel, SubAgentOrchestrator


class SimpleRunner(AgentRunner):
    """Pretends to work; tasks starting with 'plan' delegate two research tasks."""

    def __init__(self, orchestrator: SubAgentOrchestrator) -> None:
        self._orchestrator = orchestrator

    async def run(
        self,
        task_description: str,
        max_steps: int,
        provider_name: str | None,
        context: AgentContext,
    ) -> AgentResult:
        await asyncio.sleep(random.uniform(0.01, 0.1))
        if task_description.startswith("plan"):
            nested = await self._orchestrator.spawn_agent(
                tasks=json.dumps([
                    {"task": "research flights", "max_steps": 3},
                    {"task": "research hotels", "max_steps": 3},
                ]),
                parallel=True,
                context=context,
                silent=True,
            )
            return AgentResult(
                success=nested.success,
                summary=f"Planned using {len(nested.tasks)} sub-agents",
                output=nested.output,
                steps_used=2,
            )
        return AgentResult(success=True, summary=f"Finished {task_description}", steps_used=1)


async def main() -> None:
    configure_logging("INFO")
    config = AgentShellConfig()

    channel = ResultChannel()
    orchestrator = SubAgentOrchestrator(config, result_channel=channel)
    orchestrator.attach_runner(SimpleRunner(orchestrator))

    result = await orchestrator.spawn_agent(task="plan a weekend in Lisbon")

    print(json.dumps(result.to_payload(), indent=2))
    print("Shared memory keys:", orchestrator.memory.shared.keys())
    print("Stats:", orchestrator.stats.as_dict())
    print("Published:", channel.latest is result)


if __name__ == "__main__":
    asyncio.run(main())
