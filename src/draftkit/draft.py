"""Live editing session for one draft document.

A :class:`DraftController` keeps a local view of the draft, stages edits in
a pending-update buffer and writes them to the store in one partial update
once the user stops typing for ``save_delay`` seconds::

    controller = DraftController("Pages/home", store, user="editor@example.com")
    controller.on_change(lambda data: render(data))
    controller.start()
    controller.update_key("meta.title", "Home")
    controller.update_key("meta.description", "Welcome")
    # ~3s later: one update_fields() call with both paths plus sys.modified*

Remote snapshots replace the local view as a whole; there is no merge with
local edits. A slow store can therefore show an edit, lose it for one
snapshot and show it again once the flush lands. Edits to different paths
from different sessions are all kept since every write is scoped to its
own field path; edits to the same path are last-write-wins.
"""

import logging
import threading
from typing import Any, Callable, Optional

from .actions import ActionLog
from .client import parse_doc_id
from .consts import (
    DEFAULT_LOCALES,
    FIELDS_PREFIX,
    SAVE_ACTION_LOG_THROTTLE,
    SAVE_DELAY,
    SAVED_STATE_RESET_DELAY,
    SYS_LOCALES,
    SYS_MODIFIED_AT,
    SYS_MODIFIED_BY,
)
from .enums import ControllerState, DocVariant, DraftEventType, SaveState
from .errors import ControllerDisposedError
from .events import EventEmitter, Unsubscribe
from .marshal import marshal_value
from .objects import DELETE_FIELD, clone_data, get_nested_value
from .scheduler import DebouncedTask
from .stores.base import DocumentStore, Snapshot
from .timestamps import SERVER_TIMESTAMP
from .trie import JsonTrieStore
from .utils import sanitize

logger = logging.getLogger(__name__)


class DraftController(EventEmitter):
    def __init__(
        self,
        doc_id: str,
        store: DocumentStore,
        user: str = "",
        save_delay: float = SAVE_DELAY,
        action_log: Optional[ActionLog] = None,
        flush_on_dispose: bool = False,
        action_log_throttle: float = SAVE_ACTION_LOG_THROTTLE,
        timer_cls: Callable[..., Any] = threading.Timer,
    ):
        super().__init__()
        self.doc_id = doc_id
        self.collection_id, self.slug = parse_doc_id(doc_id)
        self.doc_ref = store.doc(self.collection_id, self.slug, DocVariant.DRAFT)
        self.user = user
        self.action_log = action_log
        self.action_log_throttle = action_log_throttle
        self.flush_on_dispose = flush_on_dispose

        self.state = ControllerState.IDLE
        self.save_state = SaveState.NO_CHANGES

        self._view = JsonTrieStore()
        self._pending: dict[str, Any] = {}
        self._unsubscribe: Optional[Unsubscribe] = None
        self._buffer_lock = threading.RLock()
        self._flush_task = DebouncedTask(self.flush, save_delay, timer_cls)
        self._saved_reset_task = DebouncedTask(
            self._reset_saved_state, SAVED_STATE_RESET_DELAY, timer_cls
        )

    @classmethod
    def from_config(cls, doc_id: str, store: DocumentStore, config, **kwargs) -> "DraftController":
        """Builds a controller from a :class:`draftkit.config.Config`."""
        kwargs.setdefault("user", config.user)
        kwargs.setdefault("save_delay", config.draft.save_delay)
        kwargs.setdefault("flush_on_dispose", config.draft.flush_on_dispose)
        kwargs.setdefault("action_log_throttle", config.draft.action_log_throttle)
        return cls(doc_id, store, **kwargs)

    @property
    def started(self) -> bool:
        return self.state == ControllerState.LISTENING

    @property
    def has_pending_changes(self) -> bool:
        with self._buffer_lock:
            return bool(self._pending)

    def start(self) -> None:
        """Listens for changes on the draft document."""
        with self._buffer_lock:
            if self.state == ControllerState.DISPOSED:
                raise ControllerDisposedError(f"Controller for {self.doc_id} is disposed")
            if self.state == ControllerState.LISTENING:
                return
            self.state = ControllerState.LISTENING

        logger.debug(f"Listening for changes on {self.doc_id}")
        unsubscribe = self.doc_ref.subscribe(self._on_snapshot)
        with self._buffer_lock:
            if self.state == ControllerState.LISTENING:
                self._unsubscribe = unsubscribe
                return
        # Stopped while subscribing.
        unsubscribe()

    def stop(self) -> None:
        """Stops listening for remote changes. The controller can be started again."""
        with self._buffer_lock:
            if self.state != ControllerState.LISTENING:
                return
            self.state = ControllerState.IDLE
        self._close_subscription()
        self._handle_pending_on_close()

    def dispose(self) -> None:
        """Stops listening and releases listeners. Safe to call more than once.

        A debounce timer that is already armed still fires and writes the
        pending edits; nothing else is flushed unless ``flush_on_dispose`` is
        set.
        """
        with self._buffer_lock:
            if self.state == ControllerState.DISPOSED:
                return
            self.state = ControllerState.DISPOSED
        self._close_subscription()
        self._handle_pending_on_close()
        self._saved_reset_task.cancel()
        self._view.dispose()
        super().dispose()
        logger.debug(f"Disposed draft controller for {self.doc_id}")

    def on_change(self, callback: Callable[[dict], None]) -> Unsubscribe:
        """Adds a listener called with the full document whenever it changes."""
        return self._view.on(DraftEventType.CHANGE, callback)

    def on_save_state_change(self, callback: Callable[[SaveState], None]) -> Unsubscribe:
        return self.on(DraftEventType.SAVE_STATE_CHANGE, callback)

    def on_flush(self, callback: Callable[[], None]) -> Unsubscribe:
        return self.on(DraftEventType.FLUSH, callback)

    def subscribe(self, key: str, callback: Callable[[Any], None]) -> Unsubscribe:
        """Calls ``callback`` with the value of field ``key`` now and on every change."""
        return self._view.subscribe(f"{FIELDS_PREFIX}.{key}", callback)

    def get_value(self, key: str) -> Any:
        return clone_data(get_nested_value(self._view.get(FIELDS_PREFIX), key))

    def get_data(self) -> dict:
        return self._view.get_data_snapshot()

    get_data_snapshot = get_data

    def update_key(self, key: str, value: Any) -> None:
        """Stages a single field. ``key`` is relative to ``fields``, e.g. ``"meta.title"``."""
        self.update_keys({key: value})

    def update_keys(self, updates: dict[str, Any]) -> None:
        """Stages several fields at once. A ``None`` value removes the field."""
        self._stage(
            {
                f"{FIELDS_PREFIX}.{key}": DELETE_FIELD if value is None else marshal_value(value)
                for key, value in updates.items()
            }
        )

    def remove_key(self, key: str) -> None:
        self._stage({f"{FIELDS_PREFIX}.{key}": DELETE_FIELD})

    def get_locales(self) -> list[str]:
        locales = self._view.get(SYS_LOCALES)
        if locales:
            return list(locales)
        return list(DEFAULT_LOCALES)

    def set_locales(self, locales: list[str]) -> None:
        self._stage({SYS_LOCALES: list(locales)})

    def flush(self) -> bool:
        """Writes every staged edit to the store in one update.

        Returns True if something was written. On failure the edits are put
        back in the buffer, unless a newer value was staged meanwhile, and
        another flush is scheduled.
        """
        with self._buffer_lock:
            if not self._pending:
                return False
            updates = dict(self._pending)
            # Cleared before the write so edits made while saving are kept.
            self._pending.clear()

        updates[SYS_MODIFIED_AT] = SERVER_TIMESTAMP
        updates[SYS_MODIFIED_BY] = self.user
        logger.debug(f"Flushing {len(updates)} update(s) to {self.doc_id}")

        self._set_save_state(SaveState.SAVING)
        try:
            self.doc_ref.update_fields(updates)
        except Exception as e:
            logger.error(f"Failed to save changes to {self.doc_id}: {e}", exc_info=True)
            self._set_save_state(SaveState.ERROR)
            self._restage(updates)
            return False

        self._set_save_state(SaveState.SAVED)
        self.dispatch(DraftEventType.FLUSH)
        if self.action_log is not None:
            self.action_log.log_action(
                "doc.save",
                metadata={"docId": self.doc_id},
                throttle=self.action_log_throttle,
                throttle_id=self.doc_id,
            )
        return True

    def flush_now(self) -> bool:
        """Cancels the debounce timer and flushes on the calling thread."""
        return self._flush_task.flush_now()

    def _stage(self, updates: dict[str, Any]) -> None:
        with self._buffer_lock:
            if self.state == ControllerState.DISPOSED:
                raise ControllerDisposedError(f"Controller for {self.doc_id} is disposed")
            self._pending.update(updates)
        self._view.update(clone_data(updates))
        self._set_save_state(SaveState.UPDATES_PENDING)
        self._flush_task.schedule()

    def _restage(self, updates: dict[str, Any]) -> None:
        restaged = 0
        with self._buffer_lock:
            for key, value in updates.items():
                if key in (SYS_MODIFIED_AT, SYS_MODIFIED_BY) or key in self._pending:
                    continue
                self._pending[key] = value
                restaged += 1
        if not restaged:
            return
        if self.state == ControllerState.DISPOSED:
            logger.warning(f"Dropping retry of {restaged} update(s) for disposed {self.doc_id}")
            return
        logger.info(f"Re-queued {restaged} update(s) for {self.doc_id}")
        self._flush_task.schedule()

    def _on_snapshot(self, snapshot: Snapshot) -> None:
        if snapshot.has_pending_writes:
            return
        if self.state != ControllerState.LISTENING:
            return
        data = snapshot.data if snapshot.exists and snapshot.data is not None else {}
        self._view.set_data(clone_data(data))

    def _set_save_state(self, new_state: SaveState) -> None:
        with self._buffer_lock:
            old_state = self.save_state
            # Edits staged while saving keep the state at UPDATES_PENDING.
            if new_state == SaveState.SAVED and old_state != SaveState.SAVING:
                return
            self.save_state = new_state

        if new_state == SaveState.SAVED:
            self._saved_reset_task.schedule()
        self.dispatch(DraftEventType.SAVE_STATE_CHANGE, new_state)

    def _reset_saved_state(self) -> None:
        if self.save_state == SaveState.SAVED:
            self._set_save_state(SaveState.NO_CHANGES)

    def _close_subscription(self) -> None:
        with self._buffer_lock:
            unsubscribe, self._unsubscribe = self._unsubscribe, None
        if unsubscribe is not None:
            unsubscribe()

    def _handle_pending_on_close(self) -> None:
        with self._buffer_lock:
            pending = len(self._pending)
        if not pending:
            return
        if self.flush_on_dispose:
            self.flush_now()
            return
        logger.warning(
            f"Closing {self.doc_id} with {pending} unsaved update(s) by "
            f"{sanitize(self.user)}; they are written only if the scheduled flush fires"
        )
