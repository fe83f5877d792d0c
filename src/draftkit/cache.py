"""Per-session document cache."""

import logging
import threading
from typing import Any, Hashable, Optional

from .objects import clone_data

logger = logging.getLogger(__name__)


class DocCache:
    """Explicit cache of fetched documents.

    Construct one per session or process and hand it to the consumers that
    need it. Values are copied on the way in and out so callers cannot
    mutate cached state.
    """

    def __init__(self) -> None:
        self._entries: dict[Hashable, Any] = {}
        self._lock = threading.Lock()

    def get(self, key: Hashable) -> Optional[Any]:
        with self._lock:
            if key not in self._entries:
                return None
            return clone_data(self._entries[key])

    def set(self, key: Hashable, value: Any) -> None:
        with self._lock:
            self._entries[key] = clone_data(value)

    def evict(self, key: Hashable) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        logger.debug(f"Cleared {count} cached document(s)")

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
