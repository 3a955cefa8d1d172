"""Retry and bounded-concurrency helpers for asyncio code."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar

from submodule_sync.config import RetryPolicy

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy | None = None,
    should_retry: Callable[[Exception], bool] = lambda error: True,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    description: str = "operation",
) -> T:
    """Await operation, retrying with exponential backoff.

    Args:
        operation: Zero-argument coroutine factory; called once per attempt.
        policy: Attempt count and delay schedule.
        should_retry: Predicate deciding whether an error is worth retrying.
        sleep: Injected for tests.
        description: Used in log messages.

    Returns:
        The operation's result.

    Raises:
        The last error once attempts are exhausted, or immediately when
        should_retry rejects it.
    """
    policy = policy or RetryPolicy()
    attempt = 1
    while True:
        try:
            return await operation()
        except Exception as error:
            if attempt >= policy.max_attempts or not should_retry(error):
                raise
            delay = policy.delay_for(attempt)
            logger.warning(
                "%s failed (attempt %d/%d), retrying in %.1fs: %s",
                description, attempt, policy.max_attempts, delay, error,
                extra={"event": "retry.attempt_failed", "attempt": attempt},
            )
            await sleep(delay)
            attempt += 1


async def run_bounded(
    factories: Sequence[Callable[[], Awaitable[T]]],
    limit: int,
    on_error: Callable[[int, Exception], T],
) -> list[T]:
    """Run coroutine factories with at most ``limit`` in flight.

    Results come back in input order. An exception escaping a task is
    turned into a value by ``on_error(index, error)`` so one failure never
    cancels its siblings.
    """
    semaphore = asyncio.Semaphore(max(1, limit))

    async def _guarded(index: int, factory: Callable[[], Awaitable[T]]) -> T:
        async with semaphore:
            try:
                return await factory()
            except Exception as error:
                logger.exception("Task %d raised unexpectedly", index)
                return on_error(index, error)

    return list(await asyncio.gather(*(_guarded(i, f) for i, f in enumerate(factories))))


async def run_sequential(
    factories: Sequence[Callable[[], Awaitable[T]]],
    on_error: Callable[[int, Exception], T],
) -> list[T]:
    """Await each factory in order, converting escaped errors like run_bounded."""
    results: list[T] = []
    for index, factory in enumerate(factories):
        try:
            results.append(await factory())
        except Exception as error:
            logger.exception("Task %d raised unexpectedly", index)
            results.append(on_error(index, error))
    return results
