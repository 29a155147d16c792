"""Bounded fan-out of async work over independent inputs (one image per job)."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import TypeVar

from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_fixed
from tqdm import tqdm

from .log_utils import logger


T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """How many times a job may run, and how long each attempt may take."""

    max_attempts: int = 1
    timeout: float | None = None
    retry_exceptions: tuple[type[BaseException], ...] = (asyncio.TimeoutError,)
    backoff_seconds: float = 0.0

    def retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            stop=stop_after_attempt(max(1, self.max_attempts)),
            wait=wait_fixed(self.backoff_seconds),
            retry=retry_if_exception_type(self.retry_exceptions),
            reraise=True,
        )


class ParallelExecutor:
    """Runs one coroutine per input tuple, at most ``max_concurrency`` at a time.

    Jobs are isolated from each other. A job that still fails after its retries
    is logged and its slot holds ``None``, or the exception itself when
    ``return_exceptions`` is set.
    """

    def __init__(
        self,
        *,
        max_concurrency: int,
        retry_policy: RetryPolicy | None = None,
        desc: str = "",
        return_exceptions: bool = False,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1")
        self.max_concurrency = max_concurrency
        self.retry_policy = retry_policy or RetryPolicy()
        self.desc = desc
        self.return_exceptions = return_exceptions

    async def _attempt(self, fn: Callable[..., Awaitable[T]], args: tuple[object, ...]) -> T:
        timeout = self.retry_policy.timeout
        async for attempt in self.retry_policy.retrying():
            with attempt:
                if timeout is None:
                    return await fn(*args)
                return await asyncio.wait_for(fn(*args), timeout=timeout)
        raise AssertionError("unreachable")  # pragma: no cover

    async def map(
        self,
        fn: Callable[..., Awaitable[T]],
        *iterables: Sequence[object],
    ) -> list[T | None]:
        if not iterables:
            return []
        if len({len(values) for values in iterables}) > 1:
            raise ValueError("All iterables must have the same length.")

        jobs = list(zip(*iterables))
        gate = asyncio.Semaphore(self.max_concurrency)
        failed: list[int] = []
        bar = tqdm(total=len(jobs), desc=self.desc, smoothing=0, leave=False, disable=not self.desc)

        async def guarded(index: int, args: tuple[object, ...]) -> T | BaseException | None:
            async with gate:
                try:
                    return await self._attempt(fn, args)
                except Exception as exc:
                    failed.append(index)
                    logger.opt(exception=exc).warning(f"Job {index} failed: {exc}")
                    return exc if self.return_exceptions else None
                finally:
                    bar.update(1)

        try:
            results = await asyncio.gather(*(guarded(i, args) for i, args in enumerate(jobs)))
        finally:
            bar.close()

        if failed:
            logger.info(f"{len(failed)} of {len(jobs)} job(s) failed: {sorted(failed)}")
        return list(results)  # type: ignore[arg-type]


async def run_async_in_parallel(
    async_function: Callable[..., Awaitable[T]],
    *iterables: Sequence[object],
    max_concurrency: int,
    timeout: float | None = None,
    desc: str = "",
) -> list[T | None]:
    """Map ``async_function`` over ``iterables``; a timed-out job gets one more try."""
    executor = ParallelExecutor(
        max_concurrency=max_concurrency,
        retry_policy=RetryPolicy(max_attempts=2 if timeout else 1, timeout=timeout),
        desc=desc,
    )
    return await executor.map(async_function, *iterables)


__all__ = ["ParallelExecutor", "RetryPolicy", "run_async_in_parallel"]
