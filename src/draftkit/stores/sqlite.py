import logging
import threading
from typing import Any, Callable, Optional

from peewee import DatabaseError, OperationalError

from draftkit.consts import DB_WRITE_RETRIES
from draftkit.db import close_db, create_tables, init_db
from draftkit.enums import DocVariant
from draftkit.errors import DocNotFoundError, StoreException
from draftkit.events import EventEmitter
from draftkit.models import DocumentRecord, database_proxy
from draftkit.objects import apply_updates
from draftkit.timestamps import Timestamp
from draftkit.utils import retry

from .base import DocKey, KeyedDocumentRef, Snapshot, SnapshotCallback, resolve_server_timestamps

logger = logging.getLogger(__name__)


class SQLiteDocumentStore:
    """Document store persisted to a SQLite file through peewee.

    Each document variant is one row whose ``data`` column holds the whole
    document as JSON; :class:`Timestamp` values are stored as tagged objects.
    Writes are read-modify-write inside a transaction. Change notifications
    reach subscribers in this process only.
    """

    def __init__(self, path: str, clock: Callable[[], Timestamp] = Timestamp.now):
        self.path = path
        self._clock = clock
        self._events = EventEmitter()
        # Serializes database access; a :memory: store shares one connection.
        self._db_lock = threading.RLock()
        try:
            init_db(path)
            create_tables()
        except DatabaseError as e:
            raise StoreException(f"Cannot open document store at {path}: {e}") from e

    def doc(
        self, collection_id: str, slug: str, variant: DocVariant = DocVariant.DRAFT
    ) -> KeyedDocumentRef:
        return KeyedDocumentRef(self, (collection_id, slug, DocVariant(variant).value))

    def read(self, key: DocKey) -> Snapshot:
        try:
            with self._db_lock:
                record = self._get_record(key)
        except DatabaseError as e:
            raise StoreException(f"Failed to read {'/'.join(key)}: {e}") from e
        if record is None:
            return Snapshot(exists=False)
        return Snapshot(exists=True, data=record.data)

    def listen(self, key: DocKey, callback: SnapshotCallback) -> Callable[[], None]:
        unsubscribe = self._events.on(key, callback)
        callback(self.read(key))
        return unsubscribe

    def update(self, key: DocKey, updates: dict[str, Any]) -> None:
        try:
            with self._db_lock:
                self._update(key, updates)
        except DatabaseError as e:
            raise StoreException(f"Failed to update {'/'.join(key)}: {e}") from e
        logger.debug(f"Updated {len(updates)} path(s) on {'/'.join(key)}")
        self._notify(key)

    def write(self, key: DocKey, data: dict) -> None:
        try:
            with self._db_lock:
                self._write(key, data)
        except DatabaseError as e:
            raise StoreException(f"Failed to write {'/'.join(key)}: {e}") from e
        self._notify(key)

    def remove(self, key: DocKey) -> None:
        collection_id, slug, variant = key
        try:
            with self._db_lock:
                deleted = (
                    DocumentRecord.delete()
                    .where(
                        (DocumentRecord.collection == collection_id)
                        & (DocumentRecord.slug == slug)
                        & (DocumentRecord.variant == variant)
                    )
                    .execute()
                )
        except DatabaseError as e:
            raise StoreException(f"Failed to delete {'/'.join(key)}: {e}") from e
        if deleted:
            self._notify(key)

    def close(self) -> None:
        self._events.dispose()
        close_db()

    @retry(times=DB_WRITE_RETRIES, initial_delay=0.1, exceptions=(OperationalError,))
    def _update(self, key: DocKey, updates: dict[str, Any]) -> None:
        with database_proxy.atomic():
            record = self._get_record(key)
            if record is None:
                raise DocNotFoundError(f"Document not found: {'/'.join(key)}")
            record.data = apply_updates(
                record.data, resolve_server_timestamps(updates, self._clock())
            )
            record.save()

    @retry(times=DB_WRITE_RETRIES, initial_delay=0.1, exceptions=(OperationalError,))
    def _write(self, key: DocKey, data: dict) -> None:
        data = resolve_server_timestamps(data, self._clock())
        with database_proxy.atomic():
            record = self._get_record(key)
            if record is None:
                collection_id, slug, variant = key
                DocumentRecord.create(
                    collection=collection_id, slug=slug, variant=variant, data=data
                )
            else:
                record.data = data
                record.save()

    @staticmethod
    def _get_record(key: DocKey) -> Optional[DocumentRecord]:
        collection_id, slug, variant = key
        return DocumentRecord.get_or_none(
            (DocumentRecord.collection == collection_id)
            & (DocumentRecord.slug == slug)
            & (DocumentRecord.variant == variant)
        )

    def _notify(self, key: DocKey) -> None:
        self._events.dispatch(key, self.read(key))
