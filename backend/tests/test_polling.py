"""Bounded backoff poll loop, driven by a fake clock so nothing really sleeps."""

import threading

import pytest

from lumendocs.core.exceptions import ResolutionCancelled, ResolutionTimeout
from lumendocs.services.polling import BackoffPolicy, poll_until


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class ClockEvent:
    """Event whose wait() advances the fake clock instead of blocking."""

    def __init__(self, clock: FakeClock, cancel_after_waits: int = -1):
        self.clock = clock
        self.waits = []
        self.cancel_after_waits = cancel_after_waits
        self._set = False

    def is_set(self) -> bool:
        return self._set

    def set(self) -> None:
        self._set = True

    def wait(self, timeout: float) -> bool:
        self.waits.append(timeout)
        self.clock.now += timeout
        if len(self.waits) == self.cancel_after_waits:
            self._set = True
        return self._set


def test_delays_grow_and_cap():
    policy = BackoffPolicy(initial_delay=1, max_delay=5, factor=2, deadline=100)
    gen = policy.delays()
    assert [next(gen) for _ in range(5)] == [1, 2, 4, 5, 5]


def test_returns_first_non_none_result():
    clock = FakeClock()
    event = ClockEvent(clock)
    results = iter([None, None, "1001"])

    value = poll_until(lambda: next(results), BackoffPolicy(1, 8, 2, 60), event, clock=clock)

    assert value == "1001"
    assert event.waits == [1, 2]


def test_times_out_at_deadline():
    clock = FakeClock()
    event = ClockEvent(clock)
    calls = []

    with pytest.raises(ResolutionTimeout):
        poll_until(lambda: calls.append(1), BackoffPolicy(1, 4, 2, 10), event, clock=clock)

    # Final wait is clipped to the time left before the deadline.
    assert sum(event.waits) == pytest.approx(10)
    assert max(event.waits) <= 4
    assert len(calls) == len(event.waits) + 1


def test_cancel_interrupts_wait():
    clock = FakeClock()
    event = ClockEvent(clock, cancel_after_waits=2)
    calls = []

    with pytest.raises(ResolutionCancelled):
        poll_until(lambda: calls.append(1), BackoffPolicy(1, 4, 2, 60), event, clock=clock)

    assert len(calls) == 2


def test_already_cancelled_never_checks():
    event = threading.Event()
    event.set()
    calls = []

    with pytest.raises(ResolutionCancelled):
        poll_until(lambda: calls.append(1), BackoffPolicy(), event)

    assert calls == []


def test_check_errors_propagate():
    def check():
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        poll_until(check, BackoffPolicy(), threading.Event())
