"""Audit log of user actions, e.g. ``doc.save``."""

import logging
import threading
import time
from typing import Any, Callable, Optional

from .utils import sanitize

logger = logging.getLogger(__name__)


class ActionLog:
    """Records user actions through logging, with optional per-id throttling.

    A throttled action is dropped while an earlier action with the same
    ``throttle_id`` is younger than ``throttle`` seconds. The throttle map
    belongs to this instance; share the instance to share the throttle.
    """

    def __init__(self, user: str = "", clock: Callable[[], float] = time.monotonic):
        self.user = user
        self._clock = clock
        self._last_logged: dict[str, float] = {}
        self._lock = threading.Lock()

    def log_action(
        self,
        action: str,
        metadata: Optional[dict[str, Any]] = None,
        throttle: float = 0,
        throttle_id: Optional[str] = None,
    ) -> bool:
        """Returns True if the action was recorded, False if throttled."""
        if throttle > 0:
            key = throttle_id or action
            now = self._clock()
            with self._lock:
                last = self._last_logged.get(key)
                if last is not None and now - last < throttle:
                    return False
                self._last_logged[key] = now

        details = metadata or {}
        logger.info(f"[action] {action} by {sanitize(self.user)}: {details}")
        return True

    def reset(self) -> None:
        with self._lock:
            self._last_logged.clear()
