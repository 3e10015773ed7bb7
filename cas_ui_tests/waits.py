"""Bounded polling with backoff.

Every condition the harness waits for (element present, element visible,
text prefix, ticket in URL) goes through :func:`poll_until`. UI transitions
finish at server-dependent latency, so primitives poll a predicate over
page state instead of sleeping for a fixed time.
"""
from __future__ import annotations

from typing import Any, Awaitable, Callable, Optional, TypeVar

import anyio

T = TypeVar("T")


class WaitTimeout(AssertionError):
    """A polled condition did not hold before the deadline."""

    def __init__(
        self,
        description: str,
        timeout: float,
        attempts: int,
        last_value: Any = None,
        last_error: Optional[BaseException] = None,
    ) -> None:
        self.description = description
        self.timeout = timeout
        self.attempts = attempts
        self.last_value = last_value
        self.last_error = last_error
        message = f"Timed out after {timeout}s ({attempts} attempts) waiting for {description}"
        if last_error is not None:
            message += f". Last error: {last_error}"
        else:
            message += f". Last value: {last_value!r}"
        super().__init__(message)


async def poll_until(
    probe: Callable[[], Awaitable[T]],
    predicate: Callable[[T], bool] = bool,
    *,
    timeout: float = 5.0,
    interval: float = 0.1,
    backoff: float = 1.5,
    max_interval: float = 1.0,
    description: str = "condition",
) -> T:
    """Await ``probe()`` until ``predicate`` accepts its result.

    The probe runs at least once, even when ``timeout`` is zero. Exceptions
    raised by the probe count as a failed attempt and are reported in the
    :class:`WaitTimeout` if the deadline passes. The sleep between attempts
    starts at ``interval`` and grows by ``backoff`` up to ``max_interval``,
    never sleeping past the deadline.
    """
    if timeout < 0:
        raise ValueError("timeout must not be negative")
    if backoff < 1:
        raise ValueError("backoff must be >= 1")

    deadline = anyio.current_time() + timeout
    delay = interval
    attempts = 0
    last_value: Any = None
    last_error: Optional[BaseException] = None

    while True:
        attempts += 1
        try:
            value = await probe()
        except Exception as exc:
            last_error = exc
        else:
            last_error = None
            last_value = value
            if predicate(value):
                return value

        remaining = deadline - anyio.current_time()
        if remaining <= 0:
            break
        await anyio.sleep(min(delay, remaining))
        delay = min(delay * backoff, max_interval)

    raise WaitTimeout(description, timeout, attempts, last_value, last_error) from last_error
