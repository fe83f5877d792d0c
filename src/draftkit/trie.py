"""JSON data store with per-path subscriptions."""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Iterator, Optional

from .enums import DraftEventType
from .events import EventEmitter, Unsubscribe
from .objects import DELETE_FIELD, apply_updates, clone_data, get_key_hierarchy, is_object

logger = logging.getLogger(__name__)

SubscribeCallback = Callable[[Any], None]


class TrieNode:
    """Subscribers for one path plus child nodes for the next key segments."""

    __slots__ = ("subscribers", "children")

    def __init__(self) -> None:
        self.subscribers: dict[int, SubscribeCallback] = {}
        self.children: dict[str, TrieNode] = {}


class JsonTrieStore(EventEmitter):
    """Holds a JSON tree and notifies subscribers registered on dot paths.

    A write to ``a.b`` notifies subscribers on ``a.b``, on its ancestors
    (``a``) and on its descendants (``a.b.c``), each with the value now found
    at their own path. Replacing the whole tree with :meth:`set_data` only
    notifies paths whose value actually changed.
    """

    def __init__(self, initial_data: Optional[dict] = None) -> None:
        super().__init__()
        self._data: dict = initial_data if initial_data is not None else {}
        self._root = TrieNode()
        self._next_token = 0
        self._store_lock = threading.RLock()

    def get(self, path: str) -> Any:
        with self._store_lock:
            return _value_at(self._data, path)

    def set(self, path: str, value: Any) -> None:
        if path == "":
            if is_object(value):
                self.set_data(value)
            return
        self.update({path: value})

    def update(self, updates: dict[str, Any]) -> None:
        """Applies ``{dot.path: value}`` updates, then notifies once per path."""
        with self._store_lock:
            apply_updates(self._data, updates)
            to_notify: dict[str, TrieNode] = {}
            for path in updates:
                for key in get_key_hierarchy(path):
                    node = self._get_node(key)
                    if node is not None:
                        to_notify.setdefault(key, node)
                node = self._get_node(path)
                if node is not None:
                    for key, child in _walk(node, path):
                        to_notify.setdefault(key, child)
            calls = [
                (list(node.subscribers.values()), _value_at(self._data, key))
                for key, node in to_notify.items()
                if node.subscribers
            ]

        for path, value in updates.items():
            self.dispatch(DraftEventType.VALUE_CHANGE, path, None if value is DELETE_FIELD else value)
        self._fire(calls)
        self.dispatch(DraftEventType.CHANGE, self.get_data_snapshot())

    def set_data(self, new_data: dict) -> None:
        """Replaces the entire tree, notifying subscribers whose value changed."""
        with self._store_lock:
            old_data = self._data
            self._data = new_data
            calls = []
            for key, node in _walk(self._root, ""):
                if not node.subscribers:
                    continue
                new_value = _value_at(new_data, key)
                if _value_at(old_data, key) != new_value:
                    calls.append((list(node.subscribers.values()), new_value))

        self._fire(calls)
        self.dispatch(DraftEventType.CHANGE, self.get_data_snapshot())

    def subscribe(self, path: str, callback: SubscribeCallback) -> Unsubscribe:
        """Registers ``callback`` for changes at ``path``.

        The callback is invoked right away with the current value, ``None``
        when nothing is stored at ``path`` yet.
        """
        with self._store_lock:
            node = self._get_node(path, create=True)
            self._next_token += 1
            token = self._next_token
            node.subscribers[token] = callback
            value = _value_at(self._data, path)

        self._fire([([callback], value)])

        def unsubscribe() -> None:
            with self._store_lock:
                node.subscribers.pop(token, None)

        return unsubscribe

    def get_data_snapshot(self) -> dict:
        with self._store_lock:
            return clone_data(self._data)

    def dispose(self) -> None:
        with self._store_lock:
            self._data = {}
            self._root.subscribers.clear()
            self._root.children.clear()
        super().dispose()

    def _get_node(self, path: str, create: bool = False) -> Optional[TrieNode]:
        node = self._root
        if not path:
            return node
        for key in path.split("."):
            child = node.children.get(key)
            if child is None:
                if not create:
                    return None
                child = node.children[key] = TrieNode()
            node = child
        return node

    @staticmethod
    def _fire(calls: list[tuple[list[SubscribeCallback], Any]]) -> None:
        for callbacks, value in calls:
            for callback in callbacks:
                try:
                    callback(value)
                except Exception as e:
                    logger.warning(f"Subscriber failed: {e}", exc_info=True)


def _walk(node: TrieNode, path: str) -> Iterator[tuple[str, TrieNode]]:
    yield path, node
    for key, child in node.children.items():
        yield from _walk(child, f"{path}.{key}" if path else key)


def _value_at(source: Any, path: str) -> Any:
    if not path:
        return source
    current = source
    for key in path.split("."):
        if not is_object(current) or key not in current:
            return None
        current = current[key]
    return current
