"""Generic wait/polling utilities for providers.

Every remote mutation is asynchronous on the provider side: the API accepts
the request and converges later. These helpers sample a resource until it
settles, with an explicit interval and deadline.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from loguru import logger

from cloudsnap.core.exceptions import OperationTimeoutError, RemoteOperationFailedError


@dataclass(frozen=True, slots=True)
class PollSettings:
    """Interval between samples and overall deadline, both in seconds."""

    interval: float = 5.0
    timeout: float = 3600.0


async def wait_for_ready[T](
    poll_fn: Callable[[], Awaitable[T | None]],
    ready_check: Callable[[T], bool],
    *,
    terminal_check: Callable[[T], bool] | None = None,
    failure_reason: Callable[[T], str] | None = None,
    timeout: float = 300.0,
    interval: float = 5.0,
    description: str = "resource",
) -> T:
    """Wait until poll_fn returns something that passes ready_check.

    Args:
        poll_fn: Async function that samples the resource state.
        ready_check: Function that returns True when the resource is ready.
        terminal_check: Optional function that returns True if the resource
            reached a terminal failure state.
        failure_reason: Extracts a human readable reason from a terminal sample.
        timeout: Maximum time to wait in seconds.
        interval: Time between samples in seconds.
        description: Description for error messages.

    Returns:
        The ready sample.

    Raises:
        OperationTimeoutError: If the deadline passes first. Never raised
            before the deadline.
        RemoteOperationFailedError: If the resource reaches a terminal state.
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    log = logger.bind(component="wait")

    while True:
        remaining = deadline - loop.time()
        if remaining <= 0:
            raise OperationTimeoutError(description, timeout)

        try:
            async with asyncio.timeout(remaining) as sample_deadline:
                result = await poll_fn()
        except TimeoutError:
            if not sample_deadline.expired():
                raise
            continue

        if result is not None:
            if ready_check(result):
                return result

            if terminal_check is not None and terminal_check(result):
                reason = failure_reason(result) if failure_reason else str(result)
                raise RemoteOperationFailedError(description, reason)

        remaining = deadline - loop.time()
        if remaining <= 0:
            raise OperationTimeoutError(description, timeout)

        log.trace("{description} not ready, next sample in {interval:.1f}s",
                  description=description, interval=min(interval, remaining))
        await asyncio.sleep(min(interval, remaining))
