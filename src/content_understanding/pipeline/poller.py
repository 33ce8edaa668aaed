"""Long-running operation poller.

State machine: RUNNING (initial, repeatable) -> SUCCEEDED | FAILED (terminal).
The poller itself injects the only other exit, a timeout, when no terminal
state is observed before the deadline. Cancellation is checked before every
outbound poll and interrupts the wait between polls.

The delay between polls comes from a ``PollingPolicy``. ``FixedInterval`` is
the default; ``ExponentialBackoff`` caps and jitters the delay for long jobs.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
import contextlib
from dataclasses import dataclass, field
import logging
from random import random
import time
from typing import TYPE_CHECKING, Any, Protocol

from content_understanding.constants import (
    BACKOFF_JITTER,
    BACKOFF_MULTIPLIER,
    ERROR_BODY_PREVIEW,
    MAX_POLL_INTERVAL,
    POLL_INTERVAL,
    POLL_TIMEOUT,
)
from content_understanding.core.types import ErrorDetail, OperationStatus
from content_understanding.exceptions import (
    OperationCancelledError,
    OperationFailedError,
    OperationTimeoutError,
    ServiceResponseError,
)
from content_understanding.telemetry import TelemetryContext

from .result_decoder import decode_failure, decode_success

if TYPE_CHECKING:
    from content_understanding.telemetry import TelemetryContextProtocol

    from .submitter import OperationSubmitter

log = logging.getLogger(__name__)

T_POLL = "lro.poll"
T_POLL_REQUESTS = "lro.poll_requests"
T_TERMINAL = "lro.terminal"


class PollingPolicy(Protocol):
    """Delay before the next poll, given how many polls were already made."""

    def next_delay(self, attempt: int) -> float: ...  # noqa: D102


@dataclass(frozen=True, slots=True)
class FixedInterval:
    """Constant delay between polls."""

    interval: float = POLL_INTERVAL

    def __post_init__(self) -> None:
        if self.interval <= 0:
            raise ValueError("interval must be positive")

    def next_delay(self, attempt: int) -> float:  # noqa: ARG002
        return self.interval


@dataclass(frozen=True, slots=True)
class ExponentialBackoff:
    """Exponentially growing delay with a cap and multiplicative jitter."""

    initial: float = POLL_INTERVAL
    multiplier: float = BACKOFF_MULTIPLIER
    max_delay: float = MAX_POLL_INTERVAL
    jitter: float = BACKOFF_JITTER
    rng: Callable[[], float] = field(default=random, compare=False)

    def __post_init__(self) -> None:
        if self.initial <= 0 or self.max_delay < self.initial:
            raise ValueError("require 0 < initial <= max_delay")
        if self.multiplier < 1 or not 0 <= self.jitter <= 1:
            raise ValueError("require multiplier >= 1 and 0 <= jitter <= 1")

    def next_delay(self, attempt: int) -> float:
        base = self.initial * self.multiplier ** max(attempt - 1, 0)
        return min(self.max_delay, base * (1 + self.jitter * self.rng()))


class LROPoller:
    """Polls an operation handle until it reaches a terminal state."""

    def __init__(
        self,
        submitter: OperationSubmitter,
        *,
        policy: PollingPolicy | None = None,
        timeout: float = POLL_TIMEOUT,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        telemetry: TelemetryContextProtocol | None = None,
    ) -> None:
        self._submitter = submitter
        self._policy: PollingPolicy = policy or FixedInterval()
        self._timeout = timeout
        self._clock = clock
        self._sleep = sleep
        self._telemetry: TelemetryContextProtocol = telemetry or TelemetryContext()

    async def poll(
        self,
        handle: str,
        *,
        timeout: float | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> dict[str, Any]:
        """Poll ``handle`` until Succeeded, Failed, timeout or cancellation.

        Args:
            handle: Operation-Location URL returned at submission.
            timeout: Seconds to wait before giving up. Defaults to the
                poller's configured timeout.
            cancel_event: Optional event; once set, no further poll is sent.

        Returns:
            The Succeeded envelope, unmodified.

        Raises:
            OperationFailedError: The service reported a Failed state.
            OperationTimeoutError: No terminal state before the deadline.
            OperationCancelledError: ``cancel_event`` was set.
            ServiceResponseError: A poll request returned non-2xx or an
                unreadable envelope.
        """
        if not handle:
            raise ValueError("Operation handle must be a non-empty URL")
        budget = self._timeout if timeout is None else timeout
        deadline = self._clock() + budget
        attempt = 0

        with self._telemetry(T_POLL):
            while True:
                if cancel_event is not None and cancel_event.is_set():
                    raise OperationCancelledError(handle)
                if self._clock() >= deadline:
                    raise OperationTimeoutError(handle, budget)

                attempt += 1
                envelope = await self._fetch(handle)
                self._telemetry.count(T_POLL_REQUESTS)
                status = OperationStatus.parse(envelope.get("status"))
                log.debug(
                    "Poll %d of %s: status=%r", attempt, handle, envelope.get("status")
                )

                if status is OperationStatus.SUCCEEDED:
                    self._telemetry.count(T_TERMINAL, status=status.value)
                    log.info("Operation succeeded after %d polls: %s", attempt, handle)
                    return decode_success(envelope)
                if status is OperationStatus.FAILED:
                    self._telemetry.count(T_TERMINAL, status=status.value)
                    detail = decode_failure(envelope)
                    log.error("Operation failed: %s (%s)", handle, detail.render())
                    raise OperationFailedError(detail, handle=handle, envelope=envelope)

                remaining = deadline - self._clock()
                if remaining <= 0:
                    raise OperationTimeoutError(handle, budget)
                await self._wait(
                    min(self._policy.next_delay(attempt), remaining), cancel_event
                )

    async def _fetch(self, handle: str) -> dict[str, Any]:
        response = await self._submitter.request("GET", handle)
        try:
            envelope = response.json()
        except ValueError:
            envelope = None
        if not isinstance(envelope, dict):
            raise ServiceResponseError(
                response.status_code,
                ErrorDetail(
                    code="InvalidOperationEnvelope",
                    message="Operation status response is not a JSON object",
                    raw=response.text[:ERROR_BODY_PREVIEW] or None,
                ),
                url=handle,
            )
        return envelope

    async def _wait(self, delay: float, cancel_event: asyncio.Event | None) -> None:
        """Sleep ``delay`` seconds, waking early if ``cancel_event`` is set."""
        if cancel_event is None:
            await self._sleep(delay)
            return
        sleeper = asyncio.ensure_future(self._sleep(delay))
        waiter = asyncio.ensure_future(cancel_event.wait())
        try:
            await asyncio.wait({sleeper, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (sleeper, waiter):
                if not task.done():
                    task.cancel()
                    with contextlib.suppress(asyncio.CancelledError):
                        await task
