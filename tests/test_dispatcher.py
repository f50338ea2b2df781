"""Tests for the execution dispatcher."""

import asyncio

import pytest
from _helpers import ScriptedRunner

from agentshell.agents.base import AbortReason, AbortSignal, AgentContext, TaskSpec
from agentshell.config import ProviderConfig
from agentshell.llm.providers import ProviderRegistry
from agentshell.memory.store import MemoryScope, MemoryStore
from agentshell.orchestration.dispatcher import ExecutionDispatcher


@pytest.fixture
def providers() -> ProviderRegistry:
    return ProviderRegistry({"default": ProviderConfig(model="mock/model")}, default="default")


def _context(store: MemoryStore, depth: int = 1, abort: AbortSignal | None = None) -> AgentContext:
    return AgentContext(
        depth=depth,
        max_depth=2,
        memory_scope=MemoryScope.SHARED,
        memory=store.shared,
        abort=abort or AbortSignal(),
    )


@pytest.mark.asyncio
async def test_sequential_runs_in_order(providers: ProviderRegistry):
    runner = ScriptedRunner()
    dispatcher = ExecutionDispatcher(runner, providers)
    tasks = [TaskSpec(description=d) for d in ["one", "two", "three"]]

    results = await dispatcher.run(tasks, _context(MemoryStore()))

    assert runner.completed == ["one", "two", "three"]
    assert [r.task for r in results] == ["one", "two", "three"]
    assert all(r.success for r in results)


@pytest.mark.asyncio
async def test_failure_does_not_stop_later_tasks(providers: ProviderRegistry):
    runner = ScriptedRunner()
    runner.failures["two"] = RuntimeError("provider exploded")
    dispatcher = ExecutionDispatcher(runner, providers)
    tasks = [TaskSpec(description=d) for d in ["one", "two", "three"]]

    results = await dispatcher.run(tasks, _context(MemoryStore()))

    assert [r.success for r in results] == [True, False, True]
    assert results[1].abort_reason is AbortReason.OTHER
    assert "provider exploded" in results[1].output


@pytest.mark.asyncio
async def test_parallel_preserves_input_order(providers: ProviderRegistry):
    runner = ScriptedRunner()
    runner.delays = {"slow": 0.05, "fast": 0.0}
    dispatcher = ExecutionDispatcher(runner, providers)
    tasks = [TaskSpec(description="slow"), TaskSpec(description="fast")]

    results = await dispatcher.run(tasks, _context(MemoryStore()), parallel=True)

    assert runner.completed == ["fast", "slow"]
    assert [r.task for r in results] == ["slow", "fast"]


@pytest.mark.asyncio
async def test_parallel_respects_concurrency_bound(providers: ProviderRegistry):
    active = 0
    peak = 0

    class CountingRunner(ScriptedRunner):
        async def run(self, task_description, max_steps, provider_name, context):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1
            return await super().run(task_description, max_steps, provider_name, context)

    dispatcher = ExecutionDispatcher(CountingRunner(), providers, max_concurrent=2)
    tasks = [TaskSpec(description=f"t{i}") for i in range(6)]

    results = await dispatcher.run(tasks, _context(MemoryStore()), parallel=True)

    assert len(results) == 6
    assert peak == 2


@pytest.mark.asyncio
async def test_abort_before_start_marks_remaining(providers: ProviderRegistry):
    abort = AbortSignal()
    runner = ScriptedRunner()

    async def stop(context):
        abort.set("user pressed ctrl-c")
        return await ScriptedRunner().run("first", 1, None, context)

    runner.hooks["first"] = stop
    dispatcher = ExecutionDispatcher(runner, providers)
    tasks = [TaskSpec(description=d) for d in ["first", "second", "third"]]

    results = await dispatcher.run(tasks, _context(MemoryStore(), abort=abort), abort=abort)

    assert runner.completed == ["first"]
    assert results[0].success
    for r in results[1:]:
        assert not r.success
        assert r.abort_reason is AbortReason.OTHER
        assert r.aborted
        assert "user pressed ctrl-c" in r.summary
    assert not results[0].aborted


@pytest.mark.asyncio
async def test_unknown_provider_is_task_failure(providers: ProviderRegistry):
    runner = ScriptedRunner()
    dispatcher = ExecutionDispatcher(runner, providers)
    tasks = [TaskSpec(description="a", provider="nope"), TaskSpec(description="b")]

    results = await dispatcher.run(tasks, _context(MemoryStore()))

    assert not results[0].success
    assert "Unknown provider" in results[0].output
    assert results[1].success
    assert [c.task for c in runner.calls] == ["b"]


@pytest.mark.asyncio
async def test_timeout_is_task_failure(providers: ProviderRegistry):
    runner = ScriptedRunner()
    runner.delays["sleepy"] = 1.0
    dispatcher = ExecutionDispatcher(runner, providers, timeout_seconds=0.01)

    results = await dispatcher.run([TaskSpec(description="sleepy")], _context(MemoryStore()))

    assert not results[0].success
    assert "timed out" in results[0].summary


@pytest.mark.asyncio
async def test_results_written_to_context_memory(providers: ProviderRegistry):
    store = MemoryStore()
    dispatcher = ExecutionDispatcher(ScriptedRunner(), providers)

    results = await dispatcher.run([TaskSpec(description="research X")], _context(store))

    assert results[0].memory_key == "research X"
    assert (await store.shared.read("research X"))["summary"] == "done: research X"


@pytest.mark.asyncio
async def test_each_task_gets_own_context(providers: ProviderRegistry):
    seen = []
    runner = ScriptedRunner()

    async def grab(context):
        seen.append(context)
        return await ScriptedRunner().run("x", 1, None, context)

    runner.hooks = {"a": grab, "b": grab}
    dispatcher = ExecutionDispatcher(runner, providers)
    parent = _context(MemoryStore())

    await dispatcher.run([TaskSpec(description="a"), TaskSpec(description="b")], parent, parallel=True)

    assert len(seen) == 2
    assert seen[0] is not seen[1] and seen[0] is not parent
    assert all(c.depth == parent.depth and c.abort is parent.abort for c in seen)


@pytest.mark.asyncio
async def test_non_result_from_runner_fails_only_that_task(providers: ProviderRegistry):
    store = MemoryStore()
    runner = ScriptedRunner()
    runner.delays["good"] = 0.05

    async def nothing(context):
        return None

    runner.hooks["bad"] = nothing
    dispatcher = ExecutionDispatcher(runner, providers)
    tasks = [TaskSpec(description="bad"), TaskSpec(description="good")]

    results = await dispatcher.run(tasks, _context(store), parallel=True)

    assert [r.success for r in results] == [False, True]
    assert "expected AgentResult" in results[0].output
    assert results[0].output.startswith("Agent runner failed on 'bad'")
    assert "good" in runner.completed
    assert (await store.shared.read("good"))["summary"] == "done: good"


@pytest.mark.asyncio
async def test_runner_timeout_error_is_not_a_dispatch_timeout(providers: ProviderRegistry):
    runner = ScriptedRunner()
    runner.failures["flaky"] = TimeoutError("upstream read timed out")
    dispatcher = ExecutionDispatcher(runner, providers, timeout_seconds=None)

    results = await dispatcher.run([TaskSpec(description="flaky")], _context(MemoryStore()))

    assert not results[0].success
    assert results[0].summary == "Sub-agent failed: flaky"
    assert "upstream read timed out" in results[0].output
