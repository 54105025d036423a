# FILE: backend/lumendocs/services/polling.py
# Bounded exponential-backoff poll loop.
# Waits on a cancellation Event rather than sleeping, so a worker shutdown
# interrupts an in-flight wait immediately.

import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

import structlog

from ..core.config import Settings
from ..core.exceptions import ResolutionCancelled, ResolutionTimeout

logger = structlog.get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class BackoffPolicy:
    initial_delay: float = 2.0
    max_delay: float = 30.0
    factor: float = 2.0
    deadline: float = 240.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "BackoffPolicy":
        return cls(
            initial_delay=settings.RESOLUTION_INITIAL_DELAY_SECONDS,
            max_delay=settings.RESOLUTION_MAX_DELAY_SECONDS,
            factor=settings.RESOLUTION_BACKOFF_FACTOR,
            deadline=settings.RESOLUTION_DEADLINE_SECONDS,
        )

    def delays(self):
        delay = self.initial_delay
        while True:
            yield delay
            delay = min(delay * self.factor, self.max_delay)


def poll_until(
    check: Callable[[], Optional[T]],
    policy: BackoffPolicy,
    cancel_event: Optional[threading.Event] = None,
    clock: Callable[[], float] = time.monotonic,
    label: str = "poll",
) -> T:
    """
    Calls `check` until it returns something other than None.

    Raises ResolutionTimeout once `policy.deadline` seconds have elapsed and
    ResolutionCancelled as soon as `cancel_event` is set. Exceptions raised by
    `check` propagate unchanged and end the loop.
    """
    cancel_event = cancel_event or threading.Event()
    deadline = clock() + policy.deadline
    attempt = 0

    for delay in policy.delays():
        if cancel_event.is_set():
            raise ResolutionCancelled(f"{label} cancelled after {attempt} attempts")

        attempt += 1
        result = check()
        if result is not None:
            return result

        remaining = deadline - clock()
        if remaining <= 0:
            raise ResolutionTimeout(f"{label} gave up after {attempt} attempts in {policy.deadline:.0f}s")

        wait = min(delay, remaining)
        logger.debug("poll.waiting", label=label, attempt=attempt, wait=round(wait, 3))
        if cancel_event.wait(wait):
            raise ResolutionCancelled(f"{label} cancelled after {attempt} attempts")

    raise AssertionError("unreachable")  # pragma: no cover
