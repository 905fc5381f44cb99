"""Admission control for calls against rate-limited external services."""
from __future__ import annotations

import asyncio
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Deque, List, Optional, Set, Tuple

TaskFactory = Callable[[], Awaitable[Any]]

RATE_WINDOW_SECONDS = 60.0
TIMER_BUFFER_SECONDS = 0.01

DEFAULT_EXTRACTION_RPM = 15
DEFAULT_VALIDATION_RPM = 50
DEFAULT_VALIDATION_CONCURRENCY = 10


@dataclass
class SettledResult:
    status: str
    value: Any = None
    reason: Optional[BaseException] = None


def _limit(value: Optional[int]) -> Optional[int]:
    if value is None or value <= 0:
        return None
    return int(value)


class RateLimiter:
    """Bound in-flight tasks and tasks started per rolling minute.

    Tasks are admitted strictly in submission order. The queue is drained
    whenever a task finishes and whenever the timer armed for the oldest
    timestamp to leave the rate window fires.
    """

    def __init__(
        self,
        max_concurrent: Optional[int] = None,
        requests_per_minute: Optional[int] = None,
        period: float = RATE_WINDOW_SECONDS,
    ):
        self.max_concurrent = _limit(max_concurrent)
        self.requests_per_minute = _limit(requests_per_minute)
        self.period = period

        self.active_requests = 0
        self._timestamps: Deque[float] = deque()
        self._queue: Deque[Tuple[TaskFactory, asyncio.Future]] = deque()
        self._timer: Optional[asyncio.TimerHandle] = None
        self._running: Set[asyncio.Task] = set()

    @property
    def queued(self) -> int:
        return len(self._queue)

    def _clean_timestamps(self) -> None:
        cutoff = time.monotonic() - self.period
        while self._timestamps and self._timestamps[0] <= cutoff:
            self._timestamps.popleft()

    def _can_proceed(self) -> bool:
        self._clean_timestamps()
        concurrency_ok = self.max_concurrent is None or self.active_requests < self.max_concurrent
        rate_ok = (
            self.requests_per_minute is None
            or len(self._timestamps) < self.requests_per_minute
        )
        return concurrency_ok and rate_ok

    def _delay_seconds(self) -> float:
        self._clean_timestamps()
        if self.requests_per_minute is not None and len(self._timestamps) >= self.requests_per_minute:
            remaining = self._timestamps[0] + self.period - time.monotonic()
            return max(0.0, remaining) + TIMER_BUFFER_SECONDS
        return 0.0

    def _drain(self) -> None:
        while self._queue and self._can_proceed():
            task, future = self._queue.popleft()
            if future.done():
                continue
            self._start(task, future)
        if self._queue:
            self._arm_timer()

    def _arm_timer(self) -> None:
        if self._timer is not None:
            return
        delay = self._delay_seconds()
        if delay <= 0:
            # Blocked on concurrency only; the next completion drains the queue.
            return
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(delay, self._on_timer)

    def _on_timer(self) -> None:
        self._timer = None
        self._drain()

    def _start(self, task: TaskFactory, future: asyncio.Future) -> None:
        self.active_requests += 1
        self._timestamps.append(time.monotonic())
        runner = asyncio.ensure_future(self._execute(task, future))
        self._running.add(runner)
        runner.add_done_callback(self._running.discard)

    async def _execute(self, task: TaskFactory, future: asyncio.Future) -> None:
        try:
            result = await task()
        except asyncio.CancelledError:
            if not future.done():
                future.cancel()
            raise
        except Exception as exc:
            if not future.done():
                future.set_exception(exc)
        else:
            if not future.done():
                future.set_result(result)
        finally:
            self.active_requests -= 1
            self._drain()

    async def schedule(self, task: TaskFactory) -> Any:
        """Run ``task`` once the concurrency and rate budgets allow it."""
        future = asyncio.get_running_loop().create_future()
        self._queue.append((task, future))
        self._drain()
        return await future

    async def run_all(
        self,
        tasks: List[TaskFactory],
        on_complete: Optional[Callable[[int, Any], None]] = None,
    ) -> List[Any]:
        """Run every task; results keep the order of ``tasks``."""
        results: List[Any] = [None] * len(tasks)

        async def run_one(index: int, task: TaskFactory) -> None:
            result = await self.schedule(task)
            results[index] = result
            if on_complete:
                on_complete(index, result)

        await asyncio.gather(*(run_one(i, task) for i, task in enumerate(tasks)))
        return results

    async def run_all_settled(
        self,
        tasks: List[TaskFactory],
        on_complete: Optional[Callable[[int, Any, Optional[BaseException]], None]] = None,
    ) -> List[SettledResult]:
        """Like :meth:`run_all` but records failures instead of raising."""
        results: List[SettledResult] = [SettledResult(status="pending")] * len(tasks)

        async def run_one(index: int, task: TaskFactory) -> None:
            try:
                value = await self.schedule(task)
            except Exception as exc:
                results[index] = SettledResult(status="rejected", reason=exc)
                if on_complete:
                    on_complete(index, None, exc)
            else:
                results[index] = SettledResult(status="fulfilled", value=value)
                if on_complete:
                    on_complete(index, value, None)

        await asyncio.gather(*(run_one(i, task) for i, task in enumerate(tasks)))
        return results


def create_extraction_rate_limiter(requests_per_minute: int = DEFAULT_EXTRACTION_RPM) -> RateLimiter:
    """Sequential limiter: window order drives the merge state."""
    return RateLimiter(max_concurrent=1, requests_per_minute=requests_per_minute)


def create_validation_rate_limiter(
    requests_per_minute: int = DEFAULT_VALIDATION_RPM,
    max_concurrent: int = DEFAULT_VALIDATION_CONCURRENCY,
) -> RateLimiter:
    return RateLimiter(max_concurrent=max_concurrent, requests_per_minute=requests_per_minute)
