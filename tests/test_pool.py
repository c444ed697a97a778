"""Tests for bounded concurrent execution."""

import asyncio

import pytest

from app.core.pool import run_pooled


class TestRunPooled:
    """Tests for run_pooled."""

    @pytest.mark.asyncio
    async def test_results_follow_input_order(self) -> None:
        """Slow early tasks still land in their own slot."""

        def task(value: int, delay: float):
            async def run() -> int:
                await asyncio.sleep(delay)
                return value
            return run

        results = await run_pooled(
            [task(0, 0.03), task(1, 0.0), task(2, 0.01), task(3, 0.0)], concurrency=3
        )

        assert results == [0, 1, 2, 3]

    @pytest.mark.asyncio
    async def test_concurrency_limit(self) -> None:
        """No more than ``concurrency`` tasks are in flight at once."""
        in_flight = 0
        peak = 0

        async def run() -> None:
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.005)
            in_flight -= 1

        await run_pooled([run] * 10, concurrency=2)

        assert peak == 2

    @pytest.mark.asyncio
    async def test_failure_does_not_cancel_siblings(self) -> None:
        """Every task runs; the failure is re-raised afterwards."""
        finished: list[int] = []

        def task(i: int):
            async def run() -> int:
                await asyncio.sleep(0)
                if i == 1:
                    raise RuntimeError("boom")
                finished.append(i)
                return i
            return run

        with pytest.raises(RuntimeError, match="boom"):
            await run_pooled([task(i) for i in range(4)], concurrency=2)

        assert sorted(finished) == [0, 2, 3]

    @pytest.mark.asyncio
    async def test_return_exceptions(self) -> None:
        """Failures take the failing task's slot."""

        async def ok() -> str:
            return "ok"

        async def bad() -> str:
            raise ValueError("bad")

        results = await run_pooled([ok, bad, ok], concurrency=2, return_exceptions=True)

        assert results[0] == "ok"
        assert isinstance(results[1], ValueError)
        assert results[2] == "ok"

    @pytest.mark.asyncio
    async def test_empty_input(self) -> None:
        """No factories, no results."""
        assert await run_pooled([], concurrency=4) == []

    @pytest.mark.asyncio
    async def test_invalid_concurrency(self) -> None:
        """A pool needs at least one worker."""
        with pytest.raises(ValueError):
            await run_pooled([], concurrency=0)
