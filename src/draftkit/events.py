from __future__ import annotations

import itertools
import logging
import threading
from typing import Any, Callable, Hashable

logger = logging.getLogger(__name__)

Listener = Callable[..., None]
Unsubscribe = Callable[[], None]


class EventEmitter:
    """Publish/subscribe hub keyed by event type.

    ``on()`` returns an unsubscribe callable bound to a unique token, so
    registering the same callback twice yields two independent
    subscriptions. Listeners run in registration order; one that raises is
    logged and does not stop the others.
    """

    def __init__(self) -> None:
        self._listeners: dict[Hashable, dict[int, Listener]] = {}
        self._tokens = itertools.count(1)
        self._lock = threading.RLock()

    def on(self, event: Hashable, callback: Listener) -> Unsubscribe:
        with self._lock:
            token = next(self._tokens)
            self._listeners.setdefault(event, {})[token] = callback

        def unsubscribe() -> None:
            self.off(event, token)

        return unsubscribe

    def off(self, event: Hashable, token: int) -> bool:
        with self._lock:
            listeners = self._listeners.get(event)
            if not listeners or token not in listeners:
                return False
            del listeners[token]
            if not listeners:
                del self._listeners[event]
            return True

    def listener_count(self, event: Hashable) -> int:
        with self._lock:
            return len(self._listeners.get(event, {}))

    def dispatch(self, event: Hashable, *args: Any) -> None:
        with self._lock:
            listeners = list(self._listeners.get(event, {}).values())
        for callback in listeners:
            try:
                callback(*args)
            except Exception as e:
                logger.warning(f"Listener for {event} failed: {e}", exc_info=True)

    def dispose(self) -> None:
        with self._lock:
            self._listeners.clear()
