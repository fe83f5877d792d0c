import logging
import threading
from typing import Any, Callable, Optional

from .consts import DEFAULT_ROOT_KEY, IN_MEMORY_DOC_ID
from .enums import DraftEventType
from .events import EventEmitter, Unsubscribe
from .objects import DELETE_FIELD, apply_updates, clone_data, get_key_hierarchy, get_nested_value

logger = logging.getLogger(__name__)


class InMemoryDraftController(EventEmitter):
    """Draft controller over a local tree, for editing an embedded block in isolation.

    Same surface as :class:`draftkit.draft.DraftController` but nothing is
    persisted: writes apply and notify synchronously. Keys include the root
    key, e.g. ``"block.title"``. A write to ``block.a.b`` notifies listeners
    on ``block.a.b``, ``block.a`` and ``block``.
    """

    doc_id = IN_MEMORY_DOC_ID
    collection_id = IN_MEMORY_DOC_ID
    slug = IN_MEMORY_DOC_ID

    def __init__(self, initial_value: Optional[dict] = None, root_key: str = DEFAULT_ROOT_KEY):
        super().__init__()
        self.root_key = root_key
        self._data: dict = {root_key: clone_data(initial_value or {})}
        self._key_listeners = EventEmitter()
        self._data_lock = threading.RLock()

    def get_value(self, key: str) -> Any:
        with self._data_lock:
            return clone_data(get_nested_value(self._data, key))

    def update_key(self, key: str, value: Any) -> None:
        self.update_keys({key: value})

    def update_keys(self, updates: dict[str, Any]) -> None:
        """Applies each update in turn. A ``None`` value removes the key."""
        for key, value in updates.items():
            value = DELETE_FIELD if value is None else clone_data(value)
            with self._data_lock:
                apply_updates(self._data, {key: value})
            self._notify(key)

    def remove_key(self, key: str) -> None:
        with self._data_lock:
            apply_updates(self._data, {key: DELETE_FIELD})
        self._notify(key)

    def subscribe(self, key: str, callback: Callable[[Any], None]) -> Unsubscribe:
        """Calls ``callback`` with the current value now, then on every write to ``key`` or below it."""
        unsubscribe = self._key_listeners.on(key, callback)
        callback(self.get_value(key))
        return unsubscribe

    def on_change(self, callback: Callable[[dict], None]) -> Unsubscribe:
        return self.on(DraftEventType.CHANGE, callback)

    def get_data_snapshot(self) -> dict:
        with self._data_lock:
            return clone_data(self._data)

    get_data = get_data_snapshot

    def get_root_value(self) -> dict:
        """Returns the edited block without the root key wrapper."""
        return self.get_value(self.root_key) or {}

    def dispose(self) -> None:
        self._key_listeners.dispose()
        super().dispose()

    def _notify(self, key: str) -> None:
        self.dispatch(DraftEventType.VALUE_CHANGE, key, self.get_value(key))
        for target in get_key_hierarchy(key):
            if self._key_listeners.listener_count(target):
                self._key_listeners.dispatch(target, self.get_value(target))
        self.dispatch(DraftEventType.CHANGE, self.get_data_snapshot())
