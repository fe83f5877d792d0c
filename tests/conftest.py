"""Shared fixtures"""

import pytest


class FakeTimer:
    """Stand-in for threading.Timer that only fires when told to."""

    def __init__(self, interval, function):
        self.interval = interval
        self.function = function
        self.daemon = False
        self.started = False
        self.cancelled = False
        self.fired = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if self.started and not self.cancelled and not self.fired:
            self.fired = True
            self.function()


class FakeTimers:
    """Factory passed as ``timer_cls``; keeps every timer it created."""

    def __init__(self):
        self.created: list[FakeTimer] = []

    def __call__(self, interval, function):
        timer = FakeTimer(interval, function)
        self.created.append(timer)
        return timer

    @property
    def armed(self) -> list[FakeTimer]:
        return [t for t in self.created if t.started and not t.cancelled and not t.fired]

    def fire_all(self):
        """Fires the timers armed right now. Timers armed while firing wait for the next call."""
        for timer in self.armed:
            timer.fire()


@pytest.fixture
def timers():
    return FakeTimers()
