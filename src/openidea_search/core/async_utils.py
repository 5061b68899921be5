"""
Async Utilities for Provider Fan-Out.

Provides:
- Deadline-bounded parallel execution with fire-and-forget cancellation
- Circuit breaker for fault tolerance of individual providers
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .exceptions import RateLimitError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Mapping

logger = logging.getLogger(__name__)

# Strong references to cancelled-but-unfinished tasks so they are not
# garbage collected while they unwind.
_abandoned_tasks: set[asyncio.Task[Any]] = set()


def _drain(task: asyncio.Task[Any]) -> None:
    """Retrieve the outcome of an abandoned task so asyncio does not warn."""
    _abandoned_tasks.discard(task)
    if not task.cancelled() and task.exception() is not None:
        logger.debug(f"Abandoned task finished with error: {task.exception()!r}")


def loop_deadline(seconds: float) -> float:
    """Absolute event-loop time ``seconds`` from now."""
    return asyncio.get_running_loop().time() + seconds


def remaining_seconds(deadline: float) -> float:
    """Seconds left until an absolute event-loop deadline (never negative)."""
    return max(0.0, deadline - asyncio.get_running_loop().time())


# =============================================================================
# Parallel Execution with a Shared Deadline
# =============================================================================


async def gather_until_deadline[K, T](
    calls: Mapping[K, Awaitable[T]],
    deadline: float,
) -> tuple[dict[K, T | BaseException], list[K]]:
    """
    Run awaitables concurrently until all finish or the deadline passes.

    Each call writes only into its own slot; slots are collected after the
    join. Calls still running at the deadline are cancelled and NOT awaited:
    the caller proceeds immediately and the cancelled tasks unwind in the
    background.

    Args:
        calls: Mapping of key -> awaitable (one task per key)
        deadline: Absolute event-loop time (see ``loop_deadline``)

    Returns:
        (finished, timed_out)
        - finished maps key -> result, or the exception the task raised
        - timed_out lists keys still pending at the deadline, in input order

    Example:
        finished, timed_out = await gather_until_deadline(
            {"arxiv": arxiv.fetch(q, d), "github": github.fetch(q, d)},
            deadline=d,
        )
    """
    if not calls:
        return {}, []

    tasks: dict[asyncio.Future[T], K] = {asyncio.ensure_future(aw): key for key, aw in calls.items()}
    done, pending = await asyncio.wait(tasks, timeout=remaining_seconds(deadline))

    for task in pending:
        task.cancel()
        _abandoned_tasks.add(task)  # type: ignore[arg-type]
        task.add_done_callback(_drain)  # type: ignore[arg-type]

    finished: dict[K, T | BaseException] = {}
    timed_out: list[K] = []
    for task, key in tasks.items():
        if task not in done:
            timed_out.append(key)
        elif task.cancelled():
            finished[key] = asyncio.CancelledError()
        elif task.exception() is not None:
            finished[key] = task.exception()  # type: ignore[assignment]
        else:
            finished[key] = task.result()

    return finished, timed_out


# =============================================================================
# Circuit Breaker Pattern
# =============================================================================


@dataclass
class CircuitBreaker:
    """
    Circuit breaker for fault tolerance.

    States:
    - CLOSED: Normal operation
    - OPEN: Failing, reject requests immediately
    - HALF_OPEN: Testing if service recovered

    Only ordinary exceptions count as failures; cancellation (deadline
    expiry) does not. A cancelled half-open call gives its slot back, so
    timeouts alone never leave the breaker stuck half-open.

    Example:
        breaker = CircuitBreaker(failure_threshold=5)

        async with breaker:
            result = await risky_api_call()
    """

    failure_threshold: int = 5
    recovery_timeout: float = 30.0
    half_open_max_calls: int = 3
    name: str = "provider"

    _failure_count: int = field(init=False, default=0)
    _last_failure_time: float | None = field(init=False, default=None)
    _state: str = field(init=False, default="closed")
    _half_open_calls: int = field(init=False, default=0)
    _lock: asyncio.Lock = field(init=False, default_factory=asyncio.Lock)

    @property
    def state(self) -> str:
        return self._state

    @property
    def is_open(self) -> bool:
        """Check if circuit is open (rejecting requests)."""
        if self._state == "open":
            if self._last_failure_time:
                if time.monotonic() - self._last_failure_time > self.recovery_timeout:
                    return False  # Move to half-open
            return True
        return False

    async def __aenter__(self) -> CircuitBreaker:
        async with self._lock:
            if self.is_open:
                raise RateLimitError(
                    "circuit open",
                    provider=self.name,
                    retry_after=self.recovery_timeout,
                )

            if self._state == "open":
                self._state = "half_open"
                self._half_open_calls = 0

            if self._state == "half_open":
                if self._half_open_calls >= self.half_open_max_calls:
                    raise RateLimitError(
                        "circuit half-open (max calls reached)",
                        provider=self.name,
                        retry_after=self.recovery_timeout / 2,
                    )
                self._half_open_calls += 1

        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        async with self._lock:
            if isinstance(exc_val, Exception):
                self._failure_count += 1
                self._last_failure_time = time.monotonic()

                if self._failure_count >= self.failure_threshold and self._state != "open":
                    self._state = "open"
                    logger.warning(f"{self.name}: circuit breaker opened after {self._failure_count} failures")
            elif exc_val is None:
                if self._state == "half_open":
                    self._state = "closed"
                    self._failure_count = 0
                    logger.info(f"{self.name}: circuit breaker closed (recovered)")
                elif self._state == "closed":
                    self._failure_count = max(0, self._failure_count - 1)
            elif self._state == "half_open":
                # Cancelled trial call: release its slot, state unchanged
                self._half_open_calls = max(0, self._half_open_calls - 1)
