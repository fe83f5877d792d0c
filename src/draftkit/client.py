"""Reading and saving documents outside of a live draft session."""

import logging
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from .cache import DocCache
from .consts import CLIENT_USER, DEFAULT_LOCALES
from .enums import DocVariant
from .marshal import apply_schema_conversions, marshal_data, normalize_data
from .schema import SchemaRegistry
from .stores.base import DocumentStore
from .timestamps import SERVER_TIMESTAMP
from .utils import sanitize
from .validation import ParseResult, compile_schema

logger = logging.getLogger(__name__)


class DocSys(BaseModel):
    """Bookkeeping fields of a normalized document. Times are epoch millis."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    created_at: Optional[int] = Field(default=None, alias="createdAt")
    created_by: Optional[str] = Field(default=None, alias="createdBy")
    modified_at: Optional[int] = Field(default=None, alias="modifiedAt")
    modified_by: Optional[str] = Field(default=None, alias="modifiedBy")
    published_at: Optional[int] = Field(default=None, alias="publishedAt")
    published_by: Optional[str] = Field(default=None, alias="publishedBy")
    scheduled_at: Optional[int] = Field(default=None, alias="scheduledAt")
    scheduled_by: Optional[str] = Field(default=None, alias="scheduledBy")
    locales: list[str] = Field(default_factory=lambda: list(DEFAULT_LOCALES))


class Document(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    collection: str
    slug: str
    sys: DocSys = Field(default_factory=DocSys)
    fields: dict[str, Any] = Field(default_factory=dict)


def parse_doc_id(doc_id: str) -> tuple[str, str]:
    """Splits ``"Pages/home"`` into ``("Pages", "home")``."""
    collection_id, sep, slug = doc_id.partition("/")
    if not sep or not collection_id or not slug:
        raise ValueError(f"Invalid doc id: {doc_id!r} (expected 'Collection/slug')")
    return collection_id, slug


class DocClient:
    """Reads normalized documents and saves whole field maps to drafts.

    Reads are served from ``cache`` when possible; the cache is owned by the
    caller so several clients can share it.
    """

    def __init__(
        self,
        store: DocumentStore,
        registry: SchemaRegistry,
        cache: Optional[DocCache] = None,
        user: str = "",
    ):
        self.store = store
        self.registry = registry
        self.cache = cache if cache is not None else DocCache()
        self.user = user

    def get_raw_doc(
        self, doc_id: str, variant: DocVariant = DocVariant.DRAFT
    ) -> Optional[dict]:
        """Returns the stored document as-is, or None if it doesn't exist."""
        collection_id, slug = parse_doc_id(doc_id)
        snapshot = self.store.doc(collection_id, slug, variant).get()
        if not snapshot.exists:
            return None
        return snapshot.data

    def get_doc(self, doc_id: str, variant: DocVariant = DocVariant.DRAFT) -> Optional[dict]:
        """Returns the normalized document: plain lists and millisecond times."""
        cache_key = (doc_id, DocVariant(variant).value)
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        raw = self.get_raw_doc(doc_id, variant)
        if raw is None:
            return None
        doc = normalize_data(raw)
        self.cache.set(cache_key, doc)
        return doc

    def get_document(
        self, doc_id: str, variant: DocVariant = DocVariant.DRAFT
    ) -> Optional[Document]:
        data = self.get_doc(doc_id, variant)
        if data is None:
            return None
        collection_id, slug = parse_doc_id(doc_id)
        data.setdefault("id", doc_id)
        data.setdefault("collection", collection_id)
        data.setdefault("slug", slug)
        return Document.model_validate(data)

    def save_draft_data(
        self,
        doc_id: str,
        fields: dict,
        locales: Optional[list[str]] = None,
        modified_by: Optional[str] = None,
    ) -> ParseResult:
        """Validates ``fields`` and writes them as the draft's ``fields``.

        The draft is created when missing and replaced otherwise. Its ``sys``
        map is kept, with ``createdAt``/``createdBy`` filled in when absent
        and ``modifiedAt``/``modifiedBy`` always set. ``locales`` defaults to
        the draft's current locales, then to ``["en"]``. Nothing is written
        when validation fails. Raises :class:`SchemaNotFoundError` for an
        unregistered collection.
        """
        collection_id, slug = parse_doc_id(doc_id)
        collection = self.registry.get_collection(collection_id)

        validator = compile_schema(collection, self.registry.get_schema)
        result = validator.safe_parse(fields)
        if not result.success:
            logger.warning(
                f"Refusing to save {doc_id}: {len(result.issues)} validation issue(s)"
            )
            return result

        converted = apply_schema_conversions(fields, collection, self.registry.get_schema)
        ref = self.store.doc(collection_id, slug, DocVariant.DRAFT)
        snapshot = ref.get()
        draft = snapshot.data if snapshot.exists and snapshot.data else {}
        draft_sys = dict(draft.get("sys") or {})
        modified_by = modified_by or self.user or CLIENT_USER

        if draft_sys.get("createdAt") is None:
            draft_sys["createdAt"] = SERVER_TIMESTAMP
        if draft_sys.get("createdBy") is None:
            draft_sys["createdBy"] = modified_by
        draft_sys["modifiedAt"] = SERVER_TIMESTAMP
        draft_sys["modifiedBy"] = modified_by
        if locales is None:
            locales = draft_sys.get("locales")
        draft_sys["locales"] = list(locales) if locales is not None else list(DEFAULT_LOCALES)

        ref.set(
            {
                "id": doc_id,
                "collection": collection_id,
                "slug": slug,
                "sys": draft_sys,
                "fields": marshal_data(converted),
            }
        )
        self.cache.evict((doc_id, DocVariant.DRAFT.value))
        logger.info(f"Saved draft {doc_id} by {sanitize(modified_by)}")
        return result
