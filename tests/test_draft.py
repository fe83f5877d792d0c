"""Draft controller tests"""

import logging
from unittest.mock import Mock

import pytest

from draftkit.arraymap import is_array_map
from draftkit.config import Config
from draftkit.draft import DraftController
from draftkit.enums import ControllerState, DocVariant, SaveState
from draftkit.errors import ControllerDisposedError, StoreException
from draftkit.objects import DELETE_FIELD
from draftkit.stores.base import Snapshot
from draftkit.stores.memory import MemoryDocumentStore
from draftkit.timestamps import SERVER_TIMESTAMP, Timestamp

USER = "editor@example.com"
NOW = Timestamp(seconds=1_700_000_000)


@pytest.fixture
def ref():
    ref = Mock()
    ref.subscribe.return_value = Mock(name="unsubscribe")
    return ref


@pytest.fixture
def mock_store(ref):
    store = Mock()
    store.doc.return_value = ref
    return store


@pytest.fixture
def controller(mock_store, timers):
    return DraftController("Pages/home", mock_store, user=USER, timer_cls=timers)


@pytest.fixture
def memory_store():
    store = MemoryDocumentStore(clock=lambda: NOW)
    store.doc("Pages", "home").set({"sys": {"locales": ["en", "de"]}, "fields": {"title": "Home"}})
    return store


def test_targets_the_draft_variant(controller, mock_store):
    mock_store.doc.assert_called_once_with("Pages", "home", DocVariant.DRAFT)
    assert controller.collection_id == "Pages"
    assert controller.slug == "home"


def test_invalid_doc_id_is_rejected(mock_store):
    with pytest.raises(ValueError):
        DraftController("home", mock_store)


def test_edits_in_one_window_become_one_write(controller, ref, timers):
    controller.update_key("a", 1)
    controller.update_key("a", 2)
    controller.update_key("b", 3)

    ref.update_fields.assert_not_called()
    timers.fire_all()

    ref.update_fields.assert_called_once_with(
        {
            "fields.a": 2,
            "fields.b": 3,
            "sys.modifiedAt": SERVER_TIMESTAMP,
            "sys.modifiedBy": USER,
        }
    )
    assert controller.has_pending_changes is False


def test_flush_without_changes_writes_nothing(controller, ref):
    assert controller.flush() is False
    ref.update_fields.assert_not_called()


def test_flush_now_writes_immediately(controller, ref, timers):
    controller.update_key("title", "Home")

    assert controller.flush_now() is True
    ref.update_fields.assert_called_once()
    assert timers.created[0].cancelled is True


def test_lists_are_staged_as_array_maps(controller, ref):
    controller.update_key("items", [{"title": "a"}, {"title": "b"}])
    controller.flush_now()

    staged = ref.update_fields.call_args.args[0]["fields.items"]
    assert is_array_map(staged)
    assert [staged[k] for k in staged["_array"]] == [{"title": "a"}, {"title": "b"}]


def test_remove_key_and_none_stage_deletes(controller, ref):
    controller.remove_key("old")
    controller.update_keys({"gone": None, "kept": "x"})
    controller.flush_now()

    updates = ref.update_fields.call_args.args[0]
    assert updates["fields.old"] is DELETE_FIELD
    assert updates["fields.gone"] is DELETE_FIELD
    assert updates["fields.kept"] == "x"


def test_local_edits_update_view_and_subscribers(controller):
    callback = Mock()
    controller.subscribe("meta.title", callback)

    controller.update_key("meta.title", "Foo")

    assert [call.args[0] for call in callback.call_args_list] == [None, "Foo"]
    assert controller.get_value("meta.title") == "Foo"
    assert controller.get_data() == {"fields": {"meta": {"title": "Foo"}}}


def test_save_state_transitions(controller, timers):
    states = []
    controller.on_save_state_change(states.append)
    on_flush = Mock()
    controller.on_flush(on_flush)

    controller.update_key("a", 1)
    timers.fire_all()
    assert states == [SaveState.UPDATES_PENDING, SaveState.SAVING, SaveState.SAVED]
    on_flush.assert_called_once_with()

    # SAVED falls back to NO_CHANGES after a while.
    timers.fire_all()
    assert states[-1] == SaveState.NO_CHANGES
    assert controller.save_state == SaveState.NO_CHANGES


def test_edit_during_save_keeps_updates_pending(controller, ref, timers):
    states = []
    controller.on_save_state_change(states.append)
    ref.update_fields.side_effect = lambda updates: controller.update_key("b", 2)

    controller.update_key("a", 1)
    timers.fire_all()

    assert states == [SaveState.UPDATES_PENDING, SaveState.SAVING, SaveState.UPDATES_PENDING]
    assert controller.has_pending_changes is True


def test_failed_flush_restages_edits_without_clobbering_newer_values(controller, ref, timers):
    def fail_once(updates):
        ref.update_fields.side_effect = None
        controller.update_key("a", 9)
        raise StoreException("store unreachable")

    ref.update_fields.side_effect = fail_once
    states = []
    controller.on_save_state_change(states.append)

    controller.update_key("a", 1)
    controller.update_key("b", 2)
    timers.fire_all()

    assert SaveState.ERROR in states
    assert controller.has_pending_changes is True
    assert len(timers.armed) == 1

    timers.fire_all()
    last_write = ref.update_fields.call_args.args[0]
    assert last_write["fields.a"] == 9
    assert last_write["fields.b"] == 2
    assert last_write["sys.modifiedBy"] == USER


def test_successful_flush_is_reported_to_action_log(mock_store, timers):
    action_log = Mock()
    controller = DraftController(
        "Pages/home", mock_store, user=USER, action_log=action_log, timer_cls=timers
    )

    controller.update_key("a", 1)
    controller.flush_now()

    action_log.log_action.assert_called_once_with(
        "doc.save",
        metadata={"docId": "Pages/home"},
        throttle=300.0,
        throttle_id="Pages/home",
    )


def test_locales(controller, ref):
    assert controller.get_locales() == ["en"]

    controller.set_locales(["en", "fr"])
    controller.flush_now()

    assert controller.get_locales() == ["en", "fr"]
    assert ref.update_fields.call_args.args[0]["sys.locales"] == ["en", "fr"]


class TestRemoteSync:
    """Listening to the backing store"""

    def test_start_loads_document_and_dispatches_change(self, memory_store, timers):
        controller = DraftController("Pages/home", memory_store, user=USER, timer_cls=timers)
        on_change = Mock()
        controller.on_change(on_change)

        controller.start()

        assert controller.state == ControllerState.LISTENING
        on_change.assert_called_once_with(
            {"sys": {"locales": ["en", "de"]}, "fields": {"title": "Home"}}
        )
        assert controller.get_value("title") == "Home"
        assert controller.get_locales() == ["en", "de"]

    def test_remote_snapshot_replaces_local_view(self, memory_store, timers):
        controller = DraftController("Pages/home", memory_store, user=USER, timer_cls=timers)
        controller.start()
        title = Mock()
        controller.subscribe("title", title)
        title.reset_mock()

        memory_store.doc("Pages", "home").update_fields({"fields.title": "Remote", "fields.x": 1})

        title.assert_called_once_with("Remote")
        assert controller.get_data()["fields"] == {"title": "Remote", "x": 1}

    def test_subscribe_to_missing_field_replays_none(self, timers):
        store = MemoryDocumentStore(clock=lambda: NOW)
        store.doc("Pages", "empty").set({"fields": {}})
        controller = DraftController("Pages/empty", store, user=USER, timer_cls=timers)
        controller.start()
        calls = []

        controller.subscribe("title", calls.append)
        controller.update_key("title", "First")

        assert calls == [None, "First"]

    def test_flush_round_trips_through_store(self, memory_store, timers):
        controller = DraftController("Pages/home", memory_store, user=USER, timer_cls=timers)
        controller.start()

        controller.update_key("tags", ["a", "b"])
        timers.fire_all()

        stored = memory_store.doc("Pages", "home").get().data
        assert stored["sys"]["modifiedAt"] == NOW
        assert stored["sys"]["modifiedBy"] == USER
        assert is_array_map(stored["fields"]["tags"])
        assert controller.get_data()["fields"]["tags"] == stored["fields"]["tags"]

    def test_local_echo_snapshots_are_skipped(self, controller, ref):
        controller.start()
        on_snapshot = ref.subscribe.call_args.args[0]
        on_change = Mock()
        controller.on_change(on_change)

        on_snapshot(Snapshot(exists=True, data={"fields": {"a": 1}}, has_pending_writes=True))
        on_change.assert_not_called()

        on_snapshot(Snapshot(exists=True, data={"fields": {"a": 2}}))
        on_change.assert_called_once_with({"fields": {"a": 2}})

    def test_missing_document_reads_as_empty(self, controller, ref):
        controller.start()
        ref.subscribe.call_args.args[0](Snapshot(exists=False))

        assert controller.get_data() == {}

    def test_start_is_idempotent(self, controller, ref):
        controller.start()
        controller.start()

        ref.subscribe.assert_called_once()


class TestLifecycle:
    """stop() and dispose()"""

    def test_stop_unsubscribes_and_can_restart(self, controller, ref):
        controller.start()
        controller.stop()
        controller.stop()

        ref.subscribe.return_value.assert_called_once_with()
        assert controller.state == ControllerState.IDLE

        controller.start()
        assert ref.subscribe.call_count == 2

    def test_dispose_is_idempotent(self, controller, ref):
        controller.start()
        controller.dispose()
        controller.dispose()

        ref.subscribe.return_value.assert_called_once_with()
        assert controller.state == ControllerState.DISPOSED

    def test_start_after_dispose_raises(self, controller):
        controller.dispose()

        with pytest.raises(ControllerDisposedError):
            controller.start()

    def test_edit_after_dispose_raises(self, controller):
        controller.dispose()

        with pytest.raises(ControllerDisposedError):
            controller.update_key("a", 1)

    def test_dispose_does_not_flush_but_keeps_timer(self, controller, ref, timers, caplog):
        controller.start()
        controller.update_key("a", 1)

        with caplog.at_level(logging.WARNING, logger="draftkit.draft"):
            controller.dispose()

        ref.update_fields.assert_not_called()
        assert "unsaved update" in caplog.text
        assert len(timers.armed) == 1

        # The armed timer still writes the staged edit.
        timers.fire_all()
        ref.update_fields.assert_called_once()

    def test_failed_flush_after_dispose_is_not_retried(self, controller, ref, timers):
        ref.update_fields.side_effect = StoreException("store unreachable")
        controller.update_key("a", 1)
        controller.dispose()

        timers.fire_all()

        ref.update_fields.assert_called_once()
        assert timers.armed == []

    def test_flush_on_dispose(self, mock_store, ref, timers):
        controller = DraftController(
            "Pages/home", mock_store, user=USER, flush_on_dispose=True, timer_cls=timers
        )
        controller.update_key("a", 1)

        controller.dispose()

        ref.update_fields.assert_called_once()
        assert timers.armed == []

    def test_from_config(self, mock_store, monkeypatch):
        monkeypatch.setenv("DRAFTKIT_USER", "cfg@example.com")
        monkeypatch.setenv("DRAFTKIT_DRAFT__SAVE_DELAY", "1.5")
        monkeypatch.setenv("DRAFTKIT_DRAFT__FLUSH_ON_DISPOSE", "true")

        controller = DraftController.from_config("Pages/home", mock_store, Config())

        assert controller.user == "cfg@example.com"
        assert controller.flush_on_dispose is True
        assert controller._flush_task.delay == 1.5
