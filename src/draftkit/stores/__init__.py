from draftkit.config import Config
from draftkit.enums import StoreType
from draftkit.errors import ConfigException

from .base import DocumentRef, DocumentStore, KeyedDocumentRef, Snapshot
from .memory import MemoryDocumentStore
from .sqlite import SQLiteDocumentStore

__all__ = [
    "DocumentRef",
    "DocumentStore",
    "KeyedDocumentRef",
    "MemoryDocumentStore",
    "SQLiteDocumentStore",
    "Snapshot",
    "get_store",
]


def get_store(config: Config) -> DocumentStore:
    store_type = config.store.type

    if store_type == StoreType.MEMORY:
        return MemoryDocumentStore()

    if store_type == StoreType.SQLITE:
        return SQLiteDocumentStore(config.store.path)

    raise ConfigException(f"Unknown document store type: {store_type}")
