"""LLM-backed agent runner: a step-bounded tool-call loop.

Each step is one completion. A reply without tool calls ends the task.
``spawn_agent`` tool calls re-enter the orchestrator with this runner's
own context, so nested spawns are depth-checked like any other call.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import structlog

from agentshell.agents.base import AbortReason, AgentContext, AgentResult, AgentRunner
from agentshell.llm.providers import ProviderRegistry
from agentshell.llm.router import LLMRouter
from agentshell.orchestration.tool import (
    SPAWN_AGENT_TOOL,
    SPAWN_AGENT_TOOL_NAME,
    handle_spawn_agent,
)

if TYPE_CHECKING:
    from agentshell.orchestration.spawner import SubAgentOrchestrator

logger = structlog.get_logger()

DEFAULT_SYSTEM_PROMPT = (
    "You are a focused sub-agent of a personal shell assistant. "
    "Complete the task you are given and reply with a concise result. "
    "Delegate only clearly separable sub-tasks with spawn_agent."
)
_MEMORY_NOTES_LIMIT = 10
_MEMORY_NOTE_CHARS = 300


class LLMAgentRunner(AgentRunner):
    """Runs a task as a chat loop against the provider's model."""

    def __init__(
        self,
        orchestrator: SubAgentOrchestrator,
        router: LLMRouter | None = None,
        providers: ProviderRegistry | None = None,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
    ) -> None:
        self._orchestrator = orchestrator
        self._router = router or LLMRouter()
        self._providers = providers or orchestrator.providers
        self._system_prompt = system_prompt

    async def run(
        self,
        task_description: str,
        max_steps: int,
        provider_name: str | None,
        context: AgentContext,
    ) -> AgentResult:
        provider = self._providers.resolve(provider_name)
        tools = [SPAWN_AGENT_TOOL] if context.depth < context.max_depth else None
        messages: list[dict[str, Any]] = [
            {"role": "system", "content": self._build_system_prompt(context)},
            {"role": "user", "content": task_description},
        ]

        last_content = ""
        for step in range(1, max_steps + 1):
            if context.abort.is_set():
                logger.info("runner_aborted", task=task_description, step=step)
                return AgentResult(
                    success=False,
                    summary=f"Aborted after {step - 1} steps ({context.abort.reason})",
                    output=last_content,
                    abort_reason=AbortReason.OTHER,
                    steps_used=step - 1,
                    aborted=True,
                )

            message = await self._router.complete(provider, messages, tools=tools)
            last_content = message.content or ""
            tool_calls = getattr(message, "tool_calls", None) or []

            if not tool_calls:
                return AgentResult(
                    success=True,
                    summary=_first_line(last_content) or f"Completed: {task_description}",
                    output=last_content,
                    steps_used=step,
                )

            messages.append(_assistant_message(last_content, tool_calls))
            for call in tool_calls:
                content = await self._execute_tool_call(call, context)
                messages.append({"role": "tool", "tool_call_id": call.id, "content": content})

        logger.info("runner_budget_exhausted", task=task_description, max_steps=max_steps)
        return AgentResult(
            success=False,
            summary=f"Step budget of {max_steps} exhausted before the task finished",
            output=last_content,
            abort_reason=AbortReason.OTHER,
            steps_used=max_steps,
        )

    async def _execute_tool_call(self, call: Any, context: AgentContext) -> str:
        name = call.function.name
        if name != SPAWN_AGENT_TOOL_NAME:
            return json.dumps({"error": f"Unknown tool: {name}"})

        try:
            arguments = json.loads(call.function.arguments or "{}")
        except json.JSONDecodeError as exc:
            return json.dumps({"error": f"Invalid tool arguments: {exc}"})
        if not isinstance(arguments, dict):
            return json.dumps({"error": "Tool arguments must be a JSON object"})

        payload = await handle_spawn_agent(self._orchestrator, arguments, context=context, silent=True)
        return json.dumps(payload)

    def _build_system_prompt(self, context: AgentContext) -> str:
        prompt = self._system_prompt
        if context.memory is None or not len(context.memory):
            return prompt

        notes = []
        for key, value in list(context.memory.snapshot().items())[-_MEMORY_NOTES_LIMIT:]:
            text = value.get("summary", "") if isinstance(value, dict) else str(value)
            notes.append(f"- {key}: {text[:_MEMORY_NOTE_CHARS]}")
        return prompt + "\n\nResults from earlier sub-agents:\n" + "\n".join(notes)


def _first_line(text: str) -> str:
    for line in text.strip().splitlines():
        if line.strip():
            return line.strip()
    return ""


def _assistant_message(content: str, tool_calls: list[Any]) -> dict[str, Any]:
    return {
        "role": "assistant",
        "content": content,
        "tool_calls": [
            {
                "id": call.id,
                "type": "function",
                "function": {
                    "name": call.function.name,
                    "arguments": call.function.arguments,
                },
            }
            for call in tool_calls
        ],
    }
