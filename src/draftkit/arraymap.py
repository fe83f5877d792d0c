"""Array-map codec.

Lists are stored as maps of opaque keys plus an explicit ``_array`` order,
e.g.::

    to_array_map([{"a": 1}, {"a": 2}])
    # => {"_array": ["Xk3jd2", "P0qLm9"], "Xk3jd2": {"a": 1}, "P0qLm9": {"a": 2}}

Storing items under stable keys lets an editor write ``items.Xk3jd2.a``
without rewriting the rest of the list.

Keys are drawn uniformly from ``[A-Za-z0-9]`` with no collision check.
With 62**6 possible keys a clash inside one list is unlikely for the list
sizes a CMS document holds; long-lived, high-churn lists would want a larger
key space.
"""

from __future__ import annotations

import random
from typing import Any, Callable, Iterator

from .consts import ARRAY_KEY, ARRAY_KEY_CHARS, ARRAY_KEY_LENGTH
from .objects import is_object

_random = random.SystemRandom()


def random_key(length: int = ARRAY_KEY_LENGTH) -> str:
    return "".join(_random.choice(ARRAY_KEY_CHARS) for _ in range(length))


def is_array_map(value: Any) -> bool:
    return is_object(value) and isinstance(value.get(ARRAY_KEY), list)


def to_array_map(items: list, key_factory: Callable[[], str] = random_key) -> dict:
    """Encodes ``items`` as an array map.

    Object items are encoded bottom-up: any list-valued field inside an item
    becomes an array map before the item itself is stored.
    """
    if not isinstance(items, list):
        return items

    result: dict = {ARRAY_KEY: []}
    for item in items:
        key = key_factory()
        result[key] = _encode_item(item, key_factory)
        result[ARRAY_KEY].append(key)
    return result


def _encode_item(item: Any, key_factory: Callable[[], str]) -> Any:
    if isinstance(item, list):
        return to_array_map(item, key_factory)
    if not is_object(item) or is_array_map(item):
        return item
    return {key: _encode_item(value, key_factory) for key, value in item.items()}


def from_array_map(value: Any) -> list:
    """Decodes an array map back into a list.

    Keys listed in ``_array`` but missing from the map decode to ``{}``, since
    another editor may have deleted the item concurrently. Nested array maps
    inside items are decoded top-down.
    """
    return [_decode_item(item) for _, item in iter_array_map(value)]


def iter_array_map(value: Any) -> Iterator[tuple[str, Any]]:
    """Yields ``(key, item)`` pairs in ``_array`` order, one level deep."""
    if not is_array_map(value):
        return
    for key in value[ARRAY_KEY]:
        yield key, value.get(key, {})


def _decode_item(item: Any) -> Any:
    if is_array_map(item):
        return from_array_map(item)
    if not is_object(item):
        return item
    return {key: _decode_item(val) for key, val in item.items()}
