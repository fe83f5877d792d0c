"""Conversion between the storage shape and the normalized shape of documents.

Storage shape: lists are array maps, times are :class:`Timestamp` values.
Normalized shape: plain lists and integer milliseconds. :func:`normalize_data`
is the only place storage encoding is removed; everything served to
rendering code goes through it.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Optional, Sequence

from .arraymap import is_array_map, iter_array_map, to_array_map
from .consts import ARRAY_ITEM_KEY, ARRAY_KEY
from .objects import is_object
from .schema import (
    ArrayField,
    DateTimeField,
    FieldSchema,
    ObjectField,
    OneOfField,
    Schema,
    resolve_oneof_variant,
)
from .timestamps import Timestamp, is_timestamp, to_millis

logger = logging.getLogger(__name__)

GetSchemaFn = Callable[[str], Optional[Schema]]


def is_rich_text_data(data: Any) -> bool:
    """Returns True for rich-text editor payloads, e.g.
    ``{"time": 1721761211720, "version": "2.28.2", "blocks": [...]}``.
    """
    return (
        is_object(data)
        and isinstance(data.get("blocks"), list)
        and ("time" in data or "version" in data)
    )


def marshal_data(data: dict) -> dict:
    """Walks the data tree and converts every list into an array map.

    List items are marshaled before the list is encoded. Timestamps, store
    sentinels and rich-text payloads pass through untouched.
    """
    if is_rich_text_data(data):
        return data
    return {key: marshal_value(value) for key, value in data.items()}


def marshal_value(value: Any) -> Any:
    if isinstance(value, list):
        return to_array_map([marshal_value(item) for item in value])
    if not is_object(value) or is_rich_text_data(value):
        return value
    if is_array_map(value):
        return {
            key: item if key == ARRAY_KEY else marshal_value(item)
            for key, item in value.items()
        }
    return marshal_data(value)


def _fields_of(schema: Schema | ObjectField | Sequence[FieldSchema]) -> Sequence[FieldSchema]:
    if isinstance(schema, (Schema, ObjectField)):
        return schema.fields
    return schema


def apply_schema_conversions(
    data: dict,
    schema: Schema | ObjectField | Sequence[FieldSchema],
    get_schema: GetSchemaFn | None = None,
) -> dict:
    """Converts normalized values into their storage types using the schema.

    ``datetime`` fields holding integer milliseconds become
    :class:`Timestamp` values; ``object``, ``array`` and ``oneof`` fields are
    walked recursively. Keys without a matching field pass through unchanged,
    fields missing from ``data`` are skipped. ``data`` is not modified.
    """
    if not is_object(data):
        return data

    result = dict(data)
    for field in _fields_of(schema):
        if not field.id or field.id not in data:
            continue
        result[field.id] = convert_field_value(data[field.id], field, get_schema)
    return result


def convert_field_value(value: Any, field: FieldSchema, get_schema: GetSchemaFn | None = None) -> Any:
    if isinstance(field, DateTimeField):
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return Timestamp.from_millis(value)
        return value

    if isinstance(field, ObjectField):
        return apply_schema_conversions(value, field, get_schema)

    if isinstance(field, ArrayField):
        if isinstance(value, list):
            return [convert_field_value(item, field.of, get_schema) for item in value]
        if is_array_map(value):
            return {
                key: item if key == ARRAY_KEY else convert_field_value(item, field.of, get_schema)
                for key, item in value.items()
            }
        return value

    if isinstance(field, OneOfField):
        if not is_object(value):
            return value
        variant = resolve_oneof_variant(field, value, get_schema)
        if variant is None:
            return value
        return apply_schema_conversions(value, variant, get_schema)

    return value


def normalize_data(raw: Any, keep_array_keys: bool = False) -> Any:
    """Walks the data tree and converts timestamps to millis and array maps to lists.

    E.g.::

        normalize_data({
            "sys": {"modifiedAt": Timestamp(seconds=123)},
            "fields": {"items": {"_array": ["asdf"], "asdf": {"title": "hello"}}},
        })
        # => {"sys": {"modifiedAt": 123000}, "fields": {"items": [{"title": "hello"}]}}

    With ``keep_array_keys`` each decoded object item is stamped with its
    storage key under ``_arrayKey`` so editors can address it later.
    """
    if is_timestamp(raw) or isinstance(raw, datetime):
        return to_millis(raw)

    if isinstance(raw, list):
        return [normalize_data(item, keep_array_keys) for item in raw]

    if not is_object(raw):
        return raw

    if is_array_map(raw):
        items = []
        for key, item in iter_array_map(raw):
            item = normalize_data(item, keep_array_keys)
            if keep_array_keys and is_object(item):
                item = {**item, ARRAY_ITEM_KEY: key}
            items.append(item)
        return items

    return {key: normalize_data(value, keep_array_keys) for key, value in raw.items()}


unmarshal_data = normalize_data
