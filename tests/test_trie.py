"""Subscriber trie store unit tests"""

from unittest.mock import Mock

from draftkit.enums import DraftEventType
from draftkit.objects import DELETE_FIELD
from draftkit.trie import JsonTrieStore


def test_get_and_set():
    store = JsonTrieStore()
    store.set("fields.meta.title", "Foo")

    assert store.get("fields.meta.title") == "Foo"
    assert store.get("fields.meta") == {"title": "Foo"}
    assert store.get("fields.missing.key") is None


def test_subscribe_replays_current_value():
    store = JsonTrieStore({"fields": {"title": "Foo"}})
    callback = Mock()

    store.subscribe("fields.title", callback)

    callback.assert_called_once_with("Foo")


def test_subscribe_replays_none_for_missing_value():
    store = JsonTrieStore()
    callback = Mock()

    store.subscribe("fields.title", callback)

    callback.assert_called_once_with(None)


def test_update_notifies_path_ancestors_and_descendants():
    store = JsonTrieStore({"fields": {"meta": {"title": "a"}}})
    on_fields, on_meta, on_title, on_other = Mock(), Mock(), Mock(), Mock()
    store.subscribe("fields", on_fields)
    store.subscribe("fields.meta", on_meta)
    store.subscribe("fields.meta.title", on_title)
    store.subscribe("fields.other", on_other)
    for callback in (on_fields, on_meta, on_title, on_other):
        callback.reset_mock()

    store.update({"fields.meta": {"title": "b"}})

    on_fields.assert_called_once_with({"meta": {"title": "b"}})
    on_meta.assert_called_once_with({"title": "b"})
    on_title.assert_called_once_with("b")
    on_other.assert_not_called()


def test_update_with_delete_field():
    store = JsonTrieStore({"fields": {"a": 1, "b": 2}})
    callback = Mock()
    store.subscribe("fields.a", callback)
    callback.reset_mock()

    store.update({"fields.a": DELETE_FIELD})

    assert store.get("fields") == {"b": 2}
    callback.assert_called_once_with(None)


def test_set_data_only_notifies_changed_paths():
    store = JsonTrieStore({"fields": {"a": 1, "b": 2}})
    on_a, on_b = Mock(), Mock()
    store.subscribe("fields.a", on_a)
    store.subscribe("fields.b", on_b)
    on_a.reset_mock()
    on_b.reset_mock()

    store.set_data({"fields": {"a": 1, "b": 3}})

    on_a.assert_not_called()
    on_b.assert_called_once_with(3)


def test_change_event_carries_snapshot():
    store = JsonTrieStore()
    on_change = Mock()
    store.on(DraftEventType.CHANGE, on_change)

    store.set("fields.title", "Foo")

    on_change.assert_called_once_with({"fields": {"title": "Foo"}})


def test_value_change_event():
    store = JsonTrieStore()
    on_value = Mock()
    store.on(DraftEventType.VALUE_CHANGE, on_value)

    store.update({"fields.title": "Foo", "fields.gone": DELETE_FIELD})

    on_value.assert_any_call("fields.title", "Foo")
    on_value.assert_any_call("fields.gone", None)


def test_unsubscribe():
    store = JsonTrieStore()
    callback = Mock()
    unsubscribe = store.subscribe("fields.title", callback)
    callback.reset_mock()

    unsubscribe()
    store.set("fields.title", "Foo")

    callback.assert_not_called()


def test_snapshot_is_a_copy():
    store = JsonTrieStore({"fields": {"tags": ["a"]}})

    snapshot = store.get_data_snapshot()
    snapshot["fields"]["tags"].append("b")

    assert store.get("fields.tags") == ["a"]


def test_set_root_replaces_data():
    store = JsonTrieStore({"a": 1})
    store.set("", {"b": 2})

    assert store.get_data_snapshot() == {"b": 2}
