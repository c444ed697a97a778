"""Bounded concurrency helper for coroutine factories."""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def run_pooled(
    factories: Sequence[Callable[[], Awaitable[T]]],
    concurrency: int = 2,
    return_exceptions: bool = False,
) -> list[T | BaseException]:
    """
    Run coroutine factories with at most ``concurrency`` in flight.

    Results are index-aligned with ``factories`` regardless of completion
    order. A failing task never cancels its siblings: every task runs to
    completion before the first failure is re-raised, or, with
    ``return_exceptions``, the exception takes the task's slot.

    Args:
        factories: Zero-argument callables returning awaitables.
        concurrency: Maximum number of awaitables outstanding at once.
        return_exceptions: Put exceptions in the result list instead of raising.

    Returns:
        List of results in input order.
    """
    if concurrency < 1:
        raise ValueError(f"concurrency must be >= 1, got {concurrency}")

    results: list[Any] = [None] * len(factories)
    errors: list[tuple[int, BaseException]] = []
    next_index = 0

    async def worker() -> None:
        nonlocal next_index
        while next_index < len(factories):
            i = next_index
            next_index += 1
            try:
                results[i] = await factories[i]()
            except Exception as e:
                logger.debug(f"[Pool] Task {i} failed: {e}")
                results[i] = e
                errors.append((i, e))

    workers = [worker() for _ in range(min(concurrency, len(factories)))]
    await asyncio.gather(*workers)

    if errors and not return_exceptions:
        _, first = min(errors, key=lambda item: item[0])
        raise first
    return results
