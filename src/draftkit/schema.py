"""Declarative field schemas for CMS collections."""

from __future__ import annotations

import logging
from typing import Annotated, Any, Literal, Optional, Union
from zoneinfo import available_timezones

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .consts import ONEOF_TYPE_KEY
from .errors import SchemaException, SchemaNotFoundError, format_validation_error

logger = logging.getLogger(__name__)


class BaseField(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: Optional[str] = None
    label: Optional[str] = None
    help: Optional[str] = None
    default: Any = None
    translate: bool = False
    hidden: bool = False
    deprecated: bool = False


class StringField(BaseField):
    type: Literal["string"] = "string"
    variant: Literal["input", "textarea"] = "input"


class NumberField(BaseField):
    type: Literal["number"] = "number"


class BooleanField(BaseField):
    type: Literal["boolean"] = "boolean"
    checkbox_label: Optional[str] = Field(default=None, alias="checkboxLabel")


class DateField(BaseField):
    type: Literal["date"] = "date"


class DateTimeField(BaseField):
    type: Literal["datetime"] = "datetime"
    timezone: Optional[str] = None

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: Optional[str]) -> Optional[str]:
        if not v or v == "UTC":
            return v
        if v not in available_timezones():
            logger.warning(
                f"Invalid timezone: '{v}'. Must be a valid IANA timezone identifier"
            )
            return None
        return v


class ImageField(BaseField):
    type: Literal["image"] = "image"
    exts: list[str] = Field(default_factory=list)
    alt: bool = True


class FileField(BaseField):
    type: Literal["file"] = "file"
    exts: list[str] = Field(default_factory=list)


class ReferenceField(BaseField):
    type: Literal["reference"] = "reference"
    collections: list[str] = Field(default_factory=list)


class ReferencesField(BaseField):
    type: Literal["references"] = "references"
    collections: list[str] = Field(default_factory=list)


class SelectOption(BaseModel):
    value: str
    label: Optional[str] = None


class SelectField(BaseField):
    type: Literal["select"] = "select"
    options: list[Union[SelectOption, str]] = Field(default_factory=list)


class MultiSelectField(BaseField):
    type: Literal["multiselect"] = "multiselect"
    options: list[Union[SelectOption, str]] = Field(default_factory=list)
    creatable: bool = False


class ObjectField(BaseField):
    type: Literal["object"] = "object"
    fields: list[FieldSchema] = Field(default_factory=list)


class ArrayField(BaseField):
    type: Literal["array"] = "array"
    of: FieldSchema
    preview: Union[str, list[str], None] = None


class OneOfField(BaseField):
    type: Literal["oneof", "oneOf"] = "oneof"
    types: list[Union[Schema, str]] = Field(default_factory=list)

    def type_names(self) -> list[str]:
        return [t if isinstance(t, str) else t.name for t in self.types]


class RichTextField(BaseField):
    type: Literal["richtext"] = "richtext"
    block_components: list[Schema] = Field(default_factory=list, alias="blockComponents")


FieldSchema = Annotated[
    Union[
        StringField,
        NumberField,
        BooleanField,
        DateField,
        DateTimeField,
        ImageField,
        FileField,
        ReferenceField,
        ReferencesField,
        SelectField,
        MultiSelectField,
        ObjectField,
        ArrayField,
        OneOfField,
        RichTextField,
    ],
    Field(discriminator="type"),
]


class Schema(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str
    label: Optional[str] = None
    description: Optional[str] = None
    fields: list[FieldSchema] = Field(default_factory=list)


class Collection(Schema):
    id: str
    types: dict[str, Schema] = Field(default_factory=dict)


ObjectField.model_rebuild()
ArrayField.model_rebuild()
OneOfField.model_rebuild()
RichTextField.model_rebuild()
Schema.model_rebuild()
Collection.model_rebuild()


def load_schema(data: dict, model: type[Schema] = Schema) -> Schema:
    """Parses a schema definition, e.g. one read from a JSON or TOML file."""
    try:
        return model.model_validate(data)
    except ValidationError as e:
        header = f"Invalid schema definition '{data.get('name', '?')}':"
        raise SchemaException(format_validation_error(header, e)) from e


def resolve_oneof_variant(field: OneOfField, value: dict, get_schema=None) -> Optional[Schema]:
    """Returns the variant schema named by ``value["_type"]``, if known."""
    tag = value.get(ONEOF_TYPE_KEY)
    if not isinstance(tag, str):
        return None
    for t in field.types:
        if isinstance(t, str):
            if t == tag:
                return get_schema(t) if get_schema else None
        elif t.name == tag:
            return t
    return None


class SchemaRegistry:
    """Collections and named schemas known to one project."""

    def __init__(self, collections: list[Collection] | None = None) -> None:
        self._collections: dict[str, Collection] = {}
        for collection in collections or []:
            self.register(collection)

    def register(self, collection: Collection) -> None:
        self._collections[collection.id] = collection
        logger.debug(f"Registered collection schema: {collection.id}")

    def collection_ids(self) -> list[str]:
        return list(self._collections)

    def get_collection(self, collection_id: str) -> Collection:
        collection = self._collections.get(collection_id)
        if collection is None:
            raise SchemaNotFoundError(f"No schema found for collection: {collection_id}")
        return collection

    def get_schema(self, name: str) -> Optional[Schema]:
        """Looks up a named schema used by ``oneof`` fields."""
        for collection in self._collections.values():
            if name in collection.types:
                return collection.types[name]
        return None
