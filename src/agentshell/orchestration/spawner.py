"""spawn_agent entry point: validate, guard depth, dispatch, aggregate.

Each call moves through Validating -> DepthChecking -> Running and ends
Completed, Aborted, or Failed. Validation and depth rejections happen
before the context is touched; once a level is entered it is always
left again, whatever the runner does.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import asdict, dataclass
from typing import Any

import structlog

from agentshell.agents.base import (
    AbortReason,
    AbortSignal,
    AgentContext,
    AgentResult,
    AgentRunner,
    TaskSpec,
)
from agentshell.agents.depth import DepthGuard
from agentshell.agents.tasks import parse_tasks
from agentshell.config import AgentShellConfig
from agentshell.exceptions import DepthLimitError, TaskSpecError
from agentshell.llm.providers import ProviderRegistry
from agentshell.memory.store import MemoryScope, MemoryStore, scope_for_depth
from agentshell.orchestration.dispatcher import ExecutionDispatcher

logger = structlog.get_logger()


@dataclass
class SpawnStats:
    """Counters across every spawn_agent call, silent ones included."""

    calls: int = 0
    completed: int = 0
    failed: int = 0
    validation_rejections: int = 0
    depth_rejections: int = 0
    aborted: int = 0
    silent_calls: int = 0

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


class ResultChannel:
    """Opt-in "last result" slot that non-silent calls publish into."""

    def __init__(self) -> None:
        self.latest: AgentResult | None = None
        self._subscribers: list[Callable[[AgentResult], None]] = []

    def subscribe(self, callback: Callable[[AgentResult], None]) -> None:
        self._subscribers.append(callback)

    def publish(self, result: AgentResult) -> None:
        self.latest = result
        for callback in self._subscribers:
            callback(result)


def aggregate_results(results: list[AgentResult]) -> AgentResult:
    """Fold per-task results into one; success only if every task succeeded."""
    if len(results) == 1:
        only = results[0]
        return AgentResult(
            success=only.success,
            summary=only.summary,
            output=only.output,
            abort_reason=only.abort_reason,
            task=only.task,
            steps_used=only.steps_used,
            memory_key=only.memory_key,
            tasks=[only],
            aborted=only.aborted,
        )

    succeeded = sum(1 for r in results if r.success)
    summary = f"{succeeded}/{len(results)} sub-agent tasks succeeded"

    sections = []
    for index, r in enumerate(results, start=1):
        status = "ok" if r.success else "failed"
        body = r.output or r.summary
        sections.append(f"### Task {index} [{status}]: {r.task}\n{body}")

    return AgentResult(
        success=succeeded == len(results),
        summary=summary,
        output="\n\n".join(sections),
        abort_reason=None if succeeded == len(results) else AbortReason.OTHER,
        steps_used=sum(r.steps_used for r in results),
        tasks=list(results),
        aborted=any(r.aborted for r in results),
    )


class SubAgentOrchestrator:
    """Public spawn_agent contract over the dispatcher, depth guard and memory.

    The runner usually needs a reference back to this orchestrator for
    nested spawns, so it can be attached after construction.
    """

    def __init__(
        self,
        config: AgentShellConfig | None = None,
        runner: AgentRunner | None = None,
        providers: ProviderRegistry | None = None,
        memory: MemoryStore | None = None,
        result_channel: ResultChannel | None = None,
    ) -> None:
        self._config = config or AgentShellConfig()
        self._providers = providers or ProviderRegistry.from_config(self._config)
        self._guard = DepthGuard()
        self._runner: AgentRunner | None = None
        self._dispatcher: ExecutionDispatcher | None = None
        self.memory = memory or MemoryStore()
        self.result_channel = result_channel
        self.abort_signal = AbortSignal()
        self.stats = SpawnStats()
        if runner is not None:
            self.attach_runner(runner)

    @property
    def config(self) -> AgentShellConfig:
        return self._config

    @property
    def providers(self) -> ProviderRegistry:
        return self._providers

    def attach_runner(self, runner: AgentRunner) -> None:
        self._runner = runner
        self._dispatcher = ExecutionDispatcher(
            runner,
            self._providers,
            max_concurrent=self._config.max_concurrent_agents,
            timeout_seconds=self._config.task_timeout_seconds,
        )

    def root_context(self) -> AgentContext:
        """Fresh depth-0 context bound to the process-wide abort signal."""
        return AgentContext(
            depth=0,
            max_depth=self._config.max_depth,
            memory_scope=MemoryScope.SHARED,
            memory=self.memory.shared,
            abort=self.abort_signal,
        )

    def abort(self, reason: str = "aborted by user") -> None:
        """Stop starting new tasks anywhere in the tree."""
        self.abort_signal.set(reason)
        logger.warning("spawn_abort_requested", reason=reason)

    def reset_abort(self) -> None:
        self.abort_signal.clear()

    async def spawn_agent(
        self,
        task: str | None = None,
        tasks: str | None = None,
        parallel: bool = False,
        max_steps: Any = None,
        provider: str | None = None,
        memory: str | None = None,
        context: AgentContext | None = None,
        silent: bool = False,
    ) -> AgentResult:
        """Run one or more sub-agent tasks one level below ``context``.

        ``memory`` is advisory only; the scope always follows depth.
        """
        if self._dispatcher is None:
            raise RuntimeError("SubAgentOrchestrator has no runner. Call attach_runner() first.")

        context = context or self.root_context()
        self.stats.calls += 1
        if silent:
            self.stats.silent_calls += 1

        try:
            batch = parse_tasks(
                task,
                tasks,
                max_steps=max_steps,
                provider=provider,
                default_max_steps=self._config.default_max_steps,
            )
        except TaskSpecError as exc:
            self.stats.validation_rejections += 1
            logger.info("spawn_rejected", reason=exc.reason.value, depth=context.depth, error=str(exc))
            return self._finish(
                AgentResult.failure("Invalid spawn_agent arguments", str(exc), exc.reason),
                silent,
            )

        depth = self._guard.try_enter(context)
        if depth is None:
            self.stats.depth_rejections += 1
            error = DepthLimitError(context.depth, context.max_depth)
            logger.info("spawn_rejected", reason=AbortReason.DEPTH_LIMIT.value, depth=context.depth)
            return self._finish(
                AgentResult.failure(str(error), str(error), AbortReason.DEPTH_LIMIT),
                silent,
            )

        try:
            result = await self._run_entered(batch, context, depth, parallel, memory)
        finally:
            self._guard.leave(context)

        if result.success:
            self.stats.completed += 1
        elif result.aborted:
            self.stats.aborted += 1
        else:
            self.stats.failed += 1
        return self._finish(result, silent)

    async def _run_entered(
        self,
        batch: list[TaskSpec],
        context: AgentContext,
        depth: int,
        parallel: bool,
        memory_hint: str | None,
    ) -> AgentResult:
        scope = scope_for_depth(depth)
        if memory_hint and memory_hint.lower() != scope.value:
            logger.debug("memory_hint_ignored", hint=memory_hint, scope=scope.value, depth=depth)

        isolated = None
        if scope is MemoryScope.ISOLATED:
            isolated = self.memory.open_isolated(owner=context.parent_task)
        task_context = context.derive(
            depth,
            scope,
            self.memory.resolve(scope, isolated),
            parent_task=context.parent_task,
        )

        logger.info(
            "spawn_entered",
            depth=depth,
            tasks=len(batch),
            parallel=parallel,
            scope=scope.value,
        )

        assert self._dispatcher is not None
        try:
            results = await self._dispatcher.run(batch, task_context, parallel, context.abort)
        except Exception as exc:
            logger.error("spawn_failed", depth=depth, error=str(exc))
            return AgentResult.failure("Sub-agent orchestration failed", str(exc))

        result = aggregate_results(results)
        if isolated is not None:
            result.memory = isolated.snapshot()

        logger.info(
            "spawn_completed",
            depth=depth,
            success=result.success,
            tasks=len(results),
        )
        return result

    def _finish(self, result: AgentResult, silent: bool) -> AgentResult:
        if not silent and self.result_channel is not None:
            self.result_channel.publish(result)
        return result
