"""
Test 01: Retry/Poll Engine

Verifies bounded polling:
- Exhaustion after exactly n attempts, each preceded by a wait
- Early success without exhaustion handling
- Zero and negative budgets
- Predicate errors propagate without retry
- Exhaustion hook ordering and failures
"""

import pytest

from editor_uitest.errors import PollExhausted
from editor_uitest.retry import RetryBudget, poll, retry


class CountingPredicate:
    def __init__(self, succeed_on=None):
        self.calls = 0
        self.succeed_on = succeed_on

    async def __call__(self):
        self.calls += 1
        return self.succeed_on is not None and self.calls >= self.succeed_on


@pytest.mark.asyncio
async def test_always_false_makes_exactly_n_attempts(sleeper):
    predicate = CountingPredicate()

    with pytest.raises(PollExhausted) as info:
        await poll(4, predicate, "Never showed up", interval=1.5, sleep=sleeper)

    assert predicate.calls == 4
    assert sleeper.calls == [1.5, 1.5, 1.5, 1.5]
    assert str(info.value) == "Never showed up"
    assert info.value.message == "Never showed up"
    assert info.value.attempts == 4


@pytest.mark.asyncio
async def test_success_on_attempt_k_stops_early(sleeper):
    predicate = CountingPredicate(succeed_on=2)
    hook_calls = []

    async def hook(result):
        hook_calls.append(result)

    result = await poll(5, predicate, "msg", interval=2, on_exhaustion=hook, sleep=sleeper)

    assert result.succeeded
    assert result.attempts == 2
    assert predicate.calls == 2
    assert sleeper.calls == [2, 2]
    assert hook_calls == []


@pytest.mark.asyncio
async def test_instantly_true_predicate_still_waits_first(sleeper):
    result = await poll(3, CountingPredicate(succeed_on=1), "msg", interval=0.25, sleep=sleeper)

    assert result.attempts == 1
    assert sleeper.calls == [0.25]


@pytest.mark.asyncio
@pytest.mark.parametrize("count", [0, -2])
async def test_non_positive_budget_fails_after_one_wait(sleeper, count):
    predicate = CountingPredicate(succeed_on=1)

    with pytest.raises(PollExhausted) as info:
        await poll(count, predicate, "No budget", interval=2, sleep=sleeper)

    assert sleeper.calls == [2]
    assert predicate.calls == 0
    assert info.value.attempts == 0


@pytest.mark.asyncio
async def test_predicate_error_propagates_without_retry(sleeper):
    hook_calls = []

    async def broken():
        raise LookupError("locator detached")

    async def hook(result):
        hook_calls.append(result)

    with pytest.raises(LookupError, match="locator detached"):
        await poll(5, broken, "msg", on_exhaustion=hook, sleep=sleeper)

    assert len(sleeper.calls) == 1
    assert hook_calls == []


@pytest.mark.asyncio
async def test_hook_runs_before_error_is_raised(sleeper):
    events = []

    async def hook(result):
        events.append(("hook", result.attempts, result.succeeded))

    with pytest.raises(PollExhausted):
        try:
            await poll(2, CountingPredicate(), "msg", on_exhaustion=hook, sleep=sleeper)
        finally:
            events.append("raised")

    assert events == [("hook", 2, False), "raised"]


@pytest.mark.asyncio
async def test_hook_failure_is_chained_to_poll_exhausted(sleeper):
    async def hook(result):
        raise OSError("disk full")

    with pytest.raises(PollExhausted) as info:
        await poll(1, CountingPredicate(), "Still missing", on_exhaustion=hook, sleep=sleeper)

    assert info.value.message == "Still missing"
    assert isinstance(info.value.__cause__, OSError)


@pytest.mark.asyncio
async def test_retry_reports_exhaustion_without_raising(sleeper):
    result = await retry(RetryBudget(3, 0.5, "gone"), CountingPredicate(), sleep=sleeper)

    assert not result
    assert result.attempts == 3
    assert result.message == "gone"
