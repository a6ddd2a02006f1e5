import asyncio
import pytest

from prequel.core.deferred import Deferred, run


@pytest.mark.asyncio
async def test_nothing_runs_until_awaited():
    calls = []

    async def work():
        calls.append("ran")
        return 42

    result = Deferred(work)
    await asyncio.sleep(0)

    assert calls == []
    assert not result.started
    assert await result == 42
    assert calls == ["ran"]


@pytest.mark.asyncio
async def test_work_runs_once_for_every_consumer():
    calls = []

    def work():
        calls.append("ran")
        return "value"

    result = Deferred(work)

    assert await result == "value"
    assert await result == "value"
    assert calls == ["ran"]


@pytest.mark.asyncio
async def test_deferred_arguments_are_resolved_first():
    async def add(a, b):
        return a + b

    total = Deferred(add, Deferred(lambda: 1), 2)
    doubled = Deferred(lambda value: value * 2, total)

    assert await doubled == 6


@pytest.mark.asyncio
async def test_callback_starts_immediately_and_fires_once():
    outcomes = []

    result = run(Deferred(lambda: "done"), lambda error, value: outcomes.append((error, value)))

    assert result.started
    await result
    await asyncio.sleep(0)

    assert outcomes == [(None, "done")]


@pytest.mark.asyncio
async def test_errors_reach_callback_and_awaiters():
    outcomes = []

    async def fail():
        raise ValueError("broken")

    result = Deferred(fail)
    result(lambda error, value: outcomes.append((error, value)))

    with pytest.raises(ValueError):
        await result
    await asyncio.sleep(0)

    assert len(outcomes) == 1
    assert isinstance(outcomes[0][0], ValueError)
    assert outcomes[0][1] is None


@pytest.mark.asyncio
async def test_failed_dependency_fails_the_dependent():
    async def fail():
        raise KeyError("missing")

    calls = []
    dependent = Deferred(lambda value: calls.append(value), Deferred(fail))

    with pytest.raises(KeyError):
        await dependent
    assert calls == []


def test_callback_outside_event_loop_runs_to_completion():
    outcomes = []

    async def work():
        return "done"

    result = Deferred(work)
    result(lambda error, value: outcomes.append((error, value)))

    assert result.started
    assert outcomes == [(None, "done")]

    # Memoized: a second callback reuses the outcome
    result(lambda error, value: outcomes.append((error, value)))
    assert outcomes == [(None, "done"), (None, "done")]


def test_error_reaches_callback_outside_event_loop():
    outcomes = []

    async def fail():
        raise ValueError("broken")

    Deferred(fail)(lambda error, value: outcomes.append((error, value)))

    assert len(outcomes) == 1
    assert isinstance(outcomes[0][0], ValueError)
    assert outcomes[0][1] is None
