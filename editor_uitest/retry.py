"""
retry.py - Bounded polling of asynchronous UI conditions

UI state in the host editor settles asynchronously, so checks are retried
on a fixed interval. retry() is the bare primitive and reports success or
exhaustion; poll() adds the caller's exhaustion hook and raises.

Every attempt, including the first, is preceded by one interval of sleep.
A predicate that raises is not retried: the exception propagates as is.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from .errors import PollExhausted

logger = logging.getLogger(__name__)

Predicate = Callable[[], Awaitable[bool]]
Sleep = Callable[[float], Awaitable[None]]
ExhaustionHook = Callable[["PollResult"], Awaitable[None]]

DEFAULT_INTERVAL = 2.0


@dataclass(frozen=True)
class RetryBudget:
    """
    How long a condition may take to become true.

    Attributes:
        attempts: Maximum number of predicate checks
        interval: Seconds slept before every check
        message: Description reported when the budget runs out
    """

    attempts: int
    interval: float = DEFAULT_INTERVAL
    message: str = "Condition was not met"


@dataclass(frozen=True)
class PollResult:
    """Outcome of a retry() run."""

    succeeded: bool
    attempts: int
    message: str

    def __bool__(self) -> bool:
        return self.succeeded


async def retry(budget: RetryBudget, predicate: Predicate,
                sleep: Sleep = asyncio.sleep) -> PollResult:
    """
    Check predicate until it returns True or the budget is spent.

    Args:
        budget: Attempt count, interval and failure message
        predicate: Async callable returning True once the condition holds
        sleep: Awaitable sleep, replaceable in tests

    Returns:
        PollResult with the number of checks made

    Raises:
        Whatever predicate raises, immediately and unwrapped
    """
    if budget.attempts <= 0:
        await sleep(budget.interval)
        return PollResult(False, 0, budget.message)

    remaining = budget.attempts
    made = 0
    while remaining > 0:
        await sleep(budget.interval)
        made += 1
        if await predicate():
            return PollResult(True, made, budget.message)
        remaining -= 1
        logger.debug("Attempt %d/%d failed: %s", made, budget.attempts, budget.message)

    return PollResult(False, made, budget.message)


async def poll(count: int, predicate: Predicate, message: str,
               interval: float = DEFAULT_INTERVAL,
               on_exhaustion: Optional[ExhaustionHook] = None,
               sleep: Sleep = asyncio.sleep) -> PollResult:
    """
    Wait for a UI condition, failing loudly when it never arrives.

    Args:
        count: Maximum number of checks
        predicate: Async callable returning True once the condition holds
        message: Error message if the condition never holds
        interval: Seconds slept before every check (default 2)
        on_exhaustion: Awaited with the result before PollExhausted is raised
        sleep: Awaitable sleep, replaceable in tests

    Returns:
        The successful PollResult

    Raises:
        PollExhausted: If all attempts returned False
    """
    result = await retry(RetryBudget(count, interval, message), predicate, sleep)
    if result:
        return result

    logger.info("Poll exhausted after %d attempt(s): %s", result.attempts, message)
    if on_exhaustion is not None:
        try:
            await on_exhaustion(result)
        except Exception as e:
            raise PollExhausted(message, result.attempts) from e
    raise PollExhausted(message, result.attempts)
