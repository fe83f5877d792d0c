"""Peewee ORM model definitions"""

import json
from datetime import datetime
from zoneinfo import ZoneInfo

from peewee import CharField, DatabaseProxy, DateTimeField, Model
from playhouse.shortcuts import ThreadSafeDatabaseMetadata
from playhouse.sqlite_ext import JSONField

from .timestamps import Timestamp

UTC = ZoneInfo("UTC")

TIMESTAMP_TAG = "__timestamp__"

# Use DatabaseProxy for deferred database binding
database_proxy = DatabaseProxy()


class _DocumentEncoder(json.JSONEncoder):
    def default(self, o):
        if isinstance(o, Timestamp):
            return {TIMESTAMP_TAG: [o.seconds, o.nanoseconds]}
        return super().default(o)


def _decode_object(obj: dict):
    if len(obj) == 1 and TIMESTAMP_TAG in obj:
        seconds, nanoseconds = obj[TIMESTAMP_TAG]
        return Timestamp(seconds=seconds, nanoseconds=nanoseconds)
    return obj


def dumps_document(data) -> str:
    """Serialize document data, tagging Timestamp values so they survive a round-trip."""
    return json.dumps(data, cls=_DocumentEncoder)


def loads_document(raw: str):
    return json.loads(raw, object_hook=_decode_object)


class BaseModel(Model):
    """Base model class - supports thread-safe metadata"""

    class Meta:
        database = database_proxy
        model_metadata_class = ThreadSafeDatabaseMetadata


class DocumentRecord(BaseModel):
    """One stored document variant"""

    collection = CharField()
    slug = CharField()
    variant = CharField(default="draft")
    data = JSONField(json_dumps=dumps_document, json_loads=loads_document)
    created_at = DateTimeField(default=lambda: datetime.now(UTC))
    updated_at = DateTimeField(default=lambda: datetime.now(UTC))

    class Meta:
        table_name = "documents"
        indexes = ((("collection", "slug", "variant"), True),)

    def save(self, *args, **kwargs):
        """Override save method to auto-update updated_at"""
        if self._pk is not None:
            self.updated_at = datetime.now(UTC)
        return super().save(*args, **kwargs)
