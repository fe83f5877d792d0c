import logging
import threading
from typing import Any, Callable

from draftkit.enums import DocVariant
from draftkit.errors import DocNotFoundError
from draftkit.events import EventEmitter
from draftkit.objects import apply_updates, clone_data
from draftkit.timestamps import Timestamp

from .base import DocKey, KeyedDocumentRef, Snapshot, SnapshotCallback, resolve_server_timestamps

logger = logging.getLogger(__name__)


class MemoryDocumentStore:
    """Process-local document store.

    Documents live in a dict keyed by ``(collection_id, slug, variant)``.
    Subscribers are called on the writing thread right after each write,
    and once with the current snapshot when they subscribe.
    """

    def __init__(self, clock: Callable[[], Timestamp] = Timestamp.now):
        self._clock = clock
        self._docs: dict[DocKey, dict] = {}
        self._events = EventEmitter()
        self._lock = threading.RLock()

    def doc(
        self, collection_id: str, slug: str, variant: DocVariant = DocVariant.DRAFT
    ) -> KeyedDocumentRef:
        return KeyedDocumentRef(self, (collection_id, slug, DocVariant(variant).value))

    def read(self, key: DocKey) -> Snapshot:
        with self._lock:
            data = self._docs.get(key)
            if data is None:
                return Snapshot(exists=False)
            return Snapshot(exists=True, data=clone_data(data))

    def listen(self, key: DocKey, callback: SnapshotCallback) -> Callable[[], None]:
        unsubscribe = self._events.on(key, callback)
        callback(self.read(key))
        return unsubscribe

    def update(self, key: DocKey, updates: dict[str, Any]) -> None:
        with self._lock:
            data = self._docs.get(key)
            if data is None:
                raise DocNotFoundError(f"Document not found: {'/'.join(key)}")
            apply_updates(data, resolve_server_timestamps(updates, self._clock()))
        logger.debug(f"Updated {len(updates)} path(s) on {'/'.join(key)}")
        self._notify(key)

    def write(self, key: DocKey, data: dict) -> None:
        with self._lock:
            self._docs[key] = clone_data(resolve_server_timestamps(data, self._clock()))
        self._notify(key)

    def remove(self, key: DocKey) -> None:
        with self._lock:
            existed = self._docs.pop(key, None) is not None
        if existed:
            self._notify(key)

    def _notify(self, key: DocKey) -> None:
        self._events.dispatch(key, self.read(key))
