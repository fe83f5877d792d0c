"""Debounced execution of a flush function."""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class DebouncedTask:
    """Runs ``func`` once, ``delay`` seconds after the last :meth:`schedule` call.

    Every ``schedule()`` restarts the countdown. :meth:`flush_now` cancels the
    countdown and runs ``func`` on the calling thread. ``timer_cls`` defaults
    to :class:`threading.Timer`; tests pass a fake that fires on demand.
    """

    def __init__(
        self,
        func: Callable[[], Any],
        delay: float,
        timer_cls: Callable[..., Any] = threading.Timer,
    ) -> None:
        self.func = func
        self.delay = delay
        self._timer_cls = timer_cls
        self._timer: Optional[Any] = None
        self._lock = threading.Lock()

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._timer is not None

    def schedule(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            timer = self._timer_cls(self.delay, lambda: self._fire(timer))
            timer.daemon = True
            self._timer = timer
        timer.start()

    def cancel(self) -> bool:
        """Drops the armed timer. Returns True if one was pending."""
        with self._lock:
            timer, self._timer = self._timer, None
        if timer is None:
            return False
        timer.cancel()
        return True

    def flush_now(self) -> Any:
        self.cancel()
        return self.func()

    def _fire(self, timer: Any) -> None:
        with self._lock:
            if self._timer is not timer:
                return
            self._timer = None
        try:
            self.func()
        except Exception as e:
            logger.error(f"Scheduled task failed: {e}", exc_info=True)
