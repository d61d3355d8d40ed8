"""Tests for batched fan-out."""

import asyncio

import pytest

from ripexplorer.services.batching import run_in_batches


class TestRunInBatches:
    """Tests for run_in_batches."""

    async def test_results_in_input_order(self) -> None:
        """Results line up with inputs even when items finish out of order."""

        async def work(n: int) -> int:
            await asyncio.sleep(0.001 * (5 - n))
            return n * 10

        assert await run_in_batches([1, 2, 3, 4, 5], work, 2, 0) == [10, 20, 30, 40, 50]

    async def test_exceptions_captured(self) -> None:
        """A failing item yields its exception without cancelling others."""

        async def work(n: int) -> int:
            if n == 2:
                raise RuntimeError("boom")
            return n

        results = await run_in_batches([1, 2, 3], work, 3, 0)

        assert results[0] == 1
        assert isinstance(results[1], RuntimeError)
        assert results[2] == 3

    async def test_batches_run_sequentially(self) -> None:
        """No more than batch_size items are in flight at once."""
        in_flight = 0
        peak = 0

        async def work(n: int) -> int:
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0)
            in_flight -= 1
            return n

        await run_in_batches(list(range(7)), work, 3, 0)

        assert peak == 3

    async def test_empty_input(self) -> None:
        """No items, no calls."""

        async def work(n: int) -> int:
            raise AssertionError("not called")

        assert await run_in_batches([], work, 3, 1.0) == []

    async def test_invalid_batch_size(self) -> None:
        """batch_size must be positive."""

        async def work(n: int) -> int:
            return n

        with pytest.raises(ValueError):
            await run_in_batches([1], work, 0, 0)
