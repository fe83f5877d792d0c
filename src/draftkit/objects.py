"""Deep-key helpers for reading and writing nested document data.

A deep key is a dot-delimited path such as ``"meta.title"``. The read side
also understands bracket indexes (``"items[0].title"``), which resolve
against real lists or against array maps through their ``_array`` order.
The write side only walks dot segments; array-map items are addressed by
their opaque key (``"items.Xk3jd2.title"``).
"""

from __future__ import annotations

import copy
import re
from typing import Any, Iterable

from .consts import ARRAY_KEY

SEGMENT_PATTERN = re.compile(r"([^\[\]]+)|\[(\d+)\]")
NUMERIC_SEGMENT = re.compile(r"^\d+$")


class _DeleteField:
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "DELETE_FIELD"

    def __copy__(self):
        return self

    def __deepcopy__(self, memo):
        return self

    def __bool__(self) -> bool:
        return False


# Marks a key for removal. Writing it through set_deep_key() or a store's
# update_fields() deletes the key instead of storing a value.
DELETE_FIELD = _DeleteField()


def is_object(data: Any) -> bool:
    return isinstance(data, dict)


def clone_data(data: Any) -> Any:
    return copy.deepcopy(data)


def get_nested_value(data: Any, key: str | Iterable[str]) -> Any:
    """Returns the nested value of an object, e.g.::

        get_nested_value({"meta": {"title": "Foo"}}, "meta.title")
        # => "Foo"

        # With fallbacks:
        get_nested_value(data, ["meta.image", "meta.thumbnail"])

    Missing paths return ``None``. When a list of keys is given, the first
    value that is not ``None`` wins.
    """
    if not isinstance(key, str):
        for k in key:
            value = get_nested_value(data, k)
            if value is not None:
                return value
        return None

    current = data
    for segment in key.split("."):
        if current is None:
            return None
        current = _resolve_segment(current, segment)
    return current


def _resolve_segment(data: Any, segment: str) -> Any:
    if not segment:
        return data

    current = data
    for match in SEGMENT_PATTERN.finditer(segment):
        if current is None:
            return None

        prop, index = match.group(1), match.group(2)
        if prop is not None:
            current = _get_child(current, prop)
            continue

        i = int(index)
        if isinstance(current, list):
            current = current[i] if i < len(current) else None
        elif is_object(current) and isinstance(current.get(ARRAY_KEY), list):
            order = current[ARRAY_KEY]
            if i >= len(order):
                return None
            current = current.get(order[i])
        elif is_object(current) and str(i) in current:
            current = current[str(i)]
        else:
            return None

    return current


def _get_child(container: Any, segment: str) -> Any:
    if is_object(container):
        return container.get(segment)
    if isinstance(container, list) and NUMERIC_SEGMENT.match(segment):
        i = int(segment)
        return container[i] if i < len(container) else None
    return None


def _set_child(container: Any, segment: str, value: Any) -> None:
    if is_object(container):
        if value is DELETE_FIELD:
            container.pop(segment, None)
        else:
            container[segment] = value
        return

    if isinstance(container, list) and NUMERIC_SEGMENT.match(segment):
        i = int(segment)
        if value is DELETE_FIELD:
            if i < len(container):
                container[i] = None
            return
        if i >= len(container):
            container.extend([None] * (i + 1 - len(container)))
        container[i] = value
        return

    raise TypeError(f"Cannot set '{segment}' on {type(container).__name__}")


def set_deep_key(data: dict, key: str, value: Any) -> dict:
    """Sets ``value`` at the dot-delimited ``key``, creating parents as needed.

    A missing intermediate segment becomes a list when the segment after it
    is purely numeric, otherwise a dict. Passing :data:`DELETE_FIELD` or
    ``None`` removes the terminal key. Bracket segments are not supported here.
    """
    if value is None:
        value = DELETE_FIELD
    segments = key.split(".")
    current: Any = data
    for i, segment in enumerate(segments[:-1]):
        child = _get_child(current, segment)
        if not isinstance(child, (dict, list)):
            if value is DELETE_FIELD:
                return data
            child = [] if NUMERIC_SEGMENT.match(segments[i + 1]) else {}
            _set_child(current, segment, child)
        current = child

    _set_child(current, segments[-1], value)
    return data


set_value_at_path = set_deep_key


def delete_deep_key(data: dict, key: str) -> dict:
    return set_deep_key(data, key, DELETE_FIELD)


def flatten_nested_keys(data: dict) -> dict:
    """Flattens the keys of an object that may contain nested data, e.g.::

        flatten_nested_keys({"meta": {"title": "Foo"}})
        # => {"meta.title": "Foo"}

    Lists are leaves, so an array map's ``_array`` order list is emitted as
    its own ``"<path>._array"`` entry.
    """
    flat = {}
    for key, value in data.items():
        if is_object(value):
            for nested_key, nested_value in flatten_nested_keys(value).items():
                flat[f"{key}.{nested_key}"] = nested_value
        else:
            flat[key] = value
    return flat


def get_key_hierarchy(key: str) -> list[str]:
    """Returns ``key`` followed by each of its ancestors.

    >>> get_key_hierarchy("a.b.c")
    ['a.b.c', 'a.b', 'a']
    """
    parts = key.split(".")
    return [".".join(parts[:i]) for i in range(len(parts), 0, -1)]


def apply_updates(data: dict, updates: dict) -> dict:
    """Applies a ``{dot.path: value}`` map in place, document-store style.

    Unlike :func:`set_deep_key`, every missing or non-dict parent becomes a
    dict, since stored documents are maps all the way down.
    """
    for key, value in updates.items():
        segments = key.split(".")
        current = data
        for segment in segments[:-1]:
            if not is_object(current.get(segment)):
                current[segment] = {}
            current = current[segment]

        last = segments[-1]
        if value is DELETE_FIELD:
            current.pop(last, None)
        else:
            current[last] = value
    return data
