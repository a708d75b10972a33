"""Scatter/gather helpers for running independent blocking calls concurrently."""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Iterable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


@dataclass(frozen=True)
class Outcome(Generic[T, R]):
    """Result of one scattered call: either a value or the error it raised."""

    item: T
    value: R | None = None
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def run_blocking(func: Callable[..., R], *args: Any, **kwargs: Any) -> R:
    """Run a blocking function in the default executor."""
    return await asyncio.to_thread(func, *args, **kwargs)


async def scatter_gather(
    items: Iterable[T],
    func: Callable[[T], R] | Callable[[T], Awaitable[R]],
    *,
    timeout: float,
    max_workers: int | None = None,
) -> list[Outcome[T, R]]:
    """
    Call ``func`` once per item concurrently and collect every result.

    Plain functions run in worker threads, coroutine functions run on the loop.
    Each call gets its own ``timeout``; a call that exceeds it is abandoned and
    reported as a ``TimeoutError``. At most ``max_workers`` calls are in flight
    at once. Exceptions never escape: they are returned in the outcome, one per
    item and in input order.
    """
    semaphore = asyncio.Semaphore(max_workers) if max_workers else None
    is_coroutine = inspect.iscoroutinefunction(func)

    async def _call(item: T) -> Outcome[T, R]:
        awaitable = func(item) if is_coroutine else run_blocking(func, item)
        try:
            value = await asyncio.wait_for(awaitable, timeout)
        except asyncio.TimeoutError:
            logger.debug("Worker for %r exceeded %.1fs", item, timeout)
            return Outcome(item=item, error=TimeoutError(f"timed out after {timeout:g}s"))
        except Exception as e:
            return Outcome(item=item, error=e)
        return Outcome(item=item, value=value)

    async def _worker(item: T) -> Outcome[T, R]:
        if semaphore is None:
            return await _call(item)
        async with semaphore:
            return await _call(item)

    return list(await asyncio.gather(*(_worker(item) for item in items)))
