from __future__ import annotations

import asyncio

import pytest

from spreadsplit.utils.concurrency import ParallelExecutor, RetryPolicy, run_async_in_parallel


@pytest.mark.asyncio
async def test_results_keep_input_order() -> None:
    async def delayed(value: int) -> int:
        await asyncio.sleep(0.01 * (4 - value))
        return value * 10

    results = await ParallelExecutor(max_concurrency=4).map(delayed, [1, 2, 3])

    assert results == [10, 20, 30]


@pytest.mark.asyncio
async def test_iterables_are_zipped_into_arguments() -> None:
    async def join(image: str, url: str | None) -> str:
        return f"{image}@{url}"

    results = await ParallelExecutor(max_concurrency=3).map(join, ["a", "b"], ["u1", None])

    assert results == ["a@u1", "b@None"]


@pytest.mark.asyncio
async def test_concurrency_is_bounded() -> None:
    running = 0
    peak = 0

    async def track(_: int) -> None:
        nonlocal running, peak
        running += 1
        peak = max(peak, running)
        await asyncio.sleep(0.01)
        running -= 1

    await ParallelExecutor(max_concurrency=2).map(track, list(range(6)))

    assert peak == 2


@pytest.mark.asyncio
async def test_mismatched_lengths_are_rejected() -> None:
    async def noop(*_: object) -> None:
        return None

    with pytest.raises(ValueError):
        await ParallelExecutor(max_concurrency=1).map(noop, [1, 2], [1])


@pytest.mark.asyncio
async def test_no_iterables_means_no_jobs() -> None:
    async def noop() -> None:
        return None

    assert await ParallelExecutor(max_concurrency=1).map(noop) == []


@pytest.mark.asyncio
async def test_timed_out_attempt_is_retried() -> None:
    calls = 0

    async def slow_then_fast(value: int) -> int:
        nonlocal calls
        calls += 1
        if calls == 1:
            await asyncio.sleep(0.05)
        return value

    executor = ParallelExecutor(
        max_concurrency=1,
        retry_policy=RetryPolicy(max_attempts=2, timeout=0.01),
    )

    assert await executor.map(slow_then_fast, [7]) == [7]
    assert calls == 2


@pytest.mark.asyncio
async def test_other_errors_are_not_retried() -> None:
    calls = 0

    async def broken(_: int) -> int:
        nonlocal calls
        calls += 1
        raise ValueError("nope")

    executor = ParallelExecutor(max_concurrency=1, retry_policy=RetryPolicy(max_attempts=3))

    assert await executor.map(broken, [1, 2]) == [None, None]
    assert calls == 2


@pytest.mark.asyncio
async def test_failures_can_be_returned_in_place() -> None:
    async def odd_fails(value: int) -> int:
        if value % 2:
            raise RuntimeError("boom")
        return value

    executor = ParallelExecutor(max_concurrency=2, return_exceptions=True)
    results = await executor.map(odd_fails, [0, 1, 2])

    assert results[0] == 0
    assert isinstance(results[1], RuntimeError)
    assert results[2] == 2


def test_concurrency_must_be_positive() -> None:
    with pytest.raises(ValueError):
        ParallelExecutor(max_concurrency=0)


@pytest.mark.asyncio
async def test_run_async_in_parallel_with_progress_bar() -> None:
    async def identity(value: int) -> int:
        return value

    results = await run_async_in_parallel(identity, [1, 2, 3], max_concurrency=2, desc="Detecting")

    assert results == [1, 2, 3]
