"""Execution dispatcher: runs a task batch sequentially or in parallel."""

from __future__ import annotations

import asyncio
import time

import structlog

from agentshell.agents.base import (
    AbortSignal,
    AgentContext,
    AgentResult,
    AgentRunner,
    TaskSpec,
)
from agentshell.exceptions import AbortedError, ProviderError, RunnerFault
from agentshell.llm.providers import ProviderRegistry
from agentshell.memory.store import MemoryStore

logger = structlog.get_logger()


class ExecutionDispatcher:
    """Hands each TaskSpec to the agent runner and records its result.

    ``context`` passed to :meth:`run` is the already-entered context for
    the tasks (depth, memory scope, memory handle). Every task gets its own
    fork of it so parallel siblings never share a depth value.
    """

    def __init__(
        self,
        runner: AgentRunner,
        providers: ProviderRegistry,
        max_concurrent: int = 8,
        timeout_seconds: float | None = None,
    ) -> None:
        self._runner = runner
        self._providers = providers
        self._max_concurrent = max_concurrent
        self._timeout = timeout_seconds

    async def run(
        self,
        tasks: list[TaskSpec],
        context: AgentContext,
        parallel: bool = False,
        abort: AbortSignal | None = None,
    ) -> list[AgentResult]:
        """Run every task and return results index-aligned with ``tasks``.

        Every task has finished by the time this returns, in both modes.
        """
        abort = abort or context.abort

        if not parallel:
            results: list[AgentResult] = []
            for index, task in enumerate(tasks):
                results.append(await self._run_guarded(index, task, context, abort))
            return results

        slots = asyncio.Semaphore(self._max_concurrent)

        async def _bounded(index: int, task: TaskSpec) -> AgentResult:
            async with slots:
                return await self._run_guarded(index, task, context, abort)

        async with asyncio.TaskGroup() as group:
            running = [group.create_task(_bounded(i, t)) for i, t in enumerate(tasks)]
        return [t.result() for t in running]

    async def _run_guarded(
        self,
        index: int,
        task: TaskSpec,
        context: AgentContext,
        abort: AbortSignal,
    ) -> AgentResult:
        """Run one task, turning every task-local error into a failed result."""
        try:
            if abort.is_set():
                raise AbortedError(f"Aborted before start ({abort.reason or 'aborted'})")
            return await self._run_one(index, task, context)
        except AbortedError as exc:
            logger.info("task_aborted", task=task.description, reason=abort.reason)
            return AgentResult.failure(
                summary=f"{exc}: {task.description}",
                task=task.description,
                aborted=True,
            )
        except ProviderError as exc:
            logger.warning("task_failed", index=index, task=task.description, error=str(exc))
            return AgentResult.failure(
                summary=f"Provider unavailable for task: {task.description}",
                output=str(exc),
                task=task.description,
            )
        except RunnerFault as exc:
            logger.warning("task_failed", index=index, task=task.description, error=str(exc.__cause__))
            return AgentResult.failure(
                summary=exc.summary or f"Sub-agent failed: {task.description}",
                output=str(exc),
                task=task.description,
            )

    async def _run_one(self, index: int, task: TaskSpec, context: AgentContext) -> AgentResult:
        provider = task.provider or self._providers.default
        self._providers.resolve(provider)

        task_context = context.fork(parent_task=task.description)
        start = time.monotonic()
        logger.info(
            "task_started",
            index=index,
            task=task.description,
            depth=task_context.depth,
            max_steps=task.max_steps,
            scope=task_context.memory_scope.value,
        )

        try:
            async with asyncio.timeout(self._timeout) as deadline:
                result = await self._runner.run(task.description, task.max_steps, provider, task_context)
            if not isinstance(result, AgentResult):
                raise TypeError(f"runner returned {type(result).__name__}, expected AgentResult")

            result.task = task.description
            if task_context.memory is not None:
                key = MemoryStore.key_for(task_context.memory_scope, task.description)
                await task_context.memory.write(key, result.to_memory_value(), depth=task_context.depth)
                result.memory_key = key
        except TimeoutError as exc:
            if deadline.expired():
                raise RunnerFault(
                    task.description,
                    exc,
                    summary=f"Task timed out after {self._timeout}s: {task.description}",
                ) from exc
            raise RunnerFault(task.description, exc) from exc
        except Exception as exc:
            raise RunnerFault(task.description, exc) from exc

        logger.info(
            "task_completed",
            index=index,
            task=task.description,
            success=result.success,
            steps_used=result.steps_used,
            duration_ms=int((time.monotonic() - start) * 1000),
        )
        return result
