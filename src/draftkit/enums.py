"""Enumeration type definitions"""

from enum import Enum


class DocVariant(str, Enum):
    """Which copy of a document a reference points at"""

    DRAFT = "draft"
    PUBLISHED = "published"


class SaveState(str, Enum):
    NO_CHANGES = "NO_CHANGES"
    UPDATES_PENDING = "UPDATES_PENDING"
    SAVING = "SAVING"
    SAVED = "SAVED"
    ERROR = "ERROR"


class DraftEventType(str, Enum):
    """Events dispatched by draft controllers"""

    # Document data changed (remote snapshot or local edit).
    CHANGE = "CHANGE"
    # A single key changed.
    VALUE_CHANGE = "VALUE_CHANGE"
    SAVE_STATE_CHANGE = "SAVE_STATE_CHANGE"
    # Pending edits were written to the store.
    FLUSH = "FLUSH"


class ControllerState(str, Enum):
    IDLE = "idle"
    LISTENING = "listening"
    DISPOSED = "disposed"


class StoreType(str, Enum):
    MEMORY = "memory"
    SQLITE = "sqlite"
