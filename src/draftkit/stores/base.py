from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol

from draftkit.enums import DocVariant
from draftkit.objects import DELETE_FIELD, is_object
from draftkit.timestamps import SERVER_TIMESTAMP, Timestamp

__all__ = [
    "DELETE_FIELD",
    "SERVER_TIMESTAMP",
    "DocumentRef",
    "DocKey",
    "DocumentStore",
    "KeyedDocumentRef",
    "Snapshot",
    "SnapshotCallback",
    "resolve_server_timestamps",
]


@dataclass
class Snapshot:
    """State of one document as seen by a reader."""

    exists: bool
    data: Optional[dict] = None
    # True for local echoes of writes the store has not confirmed yet.
    has_pending_writes: bool = False


SnapshotCallback = Callable[[Snapshot], None]
DocKey = tuple[str, str, str]


class DocumentRef(Protocol):
    def get(self) -> Snapshot: ...

    def subscribe(self, callback: SnapshotCallback) -> Callable[[], None]: ...

    def update_fields(self, updates: dict[str, Any]) -> None: ...

    def set(self, data: dict) -> None: ...

    def delete(self) -> None: ...


class DocumentStore(Protocol):
    def doc(
        self, collection_id: str, slug: str, variant: DocVariant = DocVariant.DRAFT
    ) -> DocumentRef: ...


def resolve_server_timestamps(value: Any, now: Timestamp) -> Any:
    """Replaces every :data:`SERVER_TIMESTAMP` inside ``value`` with ``now``."""
    if value is SERVER_TIMESTAMP:
        return now
    if is_object(value):
        return {key: resolve_server_timestamps(item, now) for key, item in value.items()}
    if isinstance(value, list):
        return [resolve_server_timestamps(item, now) for item in value]
    return value


class KeyedDocumentRef:
    """Reference to one document of a store addressed by ``(collection, slug, variant)``.

    The store does the work; it must provide ``read``, ``listen``,
    ``update``, ``write`` and ``remove`` taking the key.
    """

    def __init__(self, store: Any, key: DocKey):
        self._store = store
        self.key = key

    @property
    def path(self) -> str:
        collection_id, slug, variant = self.key
        return f"{collection_id}/{slug}@{variant}"

    def get(self) -> Snapshot:
        return self._store.read(self.key)

    def subscribe(self, callback: SnapshotCallback) -> Callable[[], None]:
        return self._store.listen(self.key, callback)

    def update_fields(self, updates: dict[str, Any]) -> None:
        self._store.update(self.key, updates)

    def set(self, data: dict) -> None:
        self._store.write(self.key, data)

    def delete(self) -> None:
        self._store.remove(self.key)
