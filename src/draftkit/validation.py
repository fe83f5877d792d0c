"""Compiles field schemas into runtime validators.

Each schema becomes a dynamically created pydantic model. Values are checked
by their Python type with no coercion: a ``number`` field rejects ``"1"`` and
a ``string`` field rejects ``1``. Every field is optional; only the values
that are present are checked. Schemas carry no "required" flag, so this
permissive policy is the only one.

Failures are returned as a :class:`ParseResult` with one
:class:`ValidationIssue` per invalid leaf instead of being raised::

    validator = compile_schema(schema)
    result = validator.safe_parse({"title": 1})
    result.success  # False
    result.issues   # [ValidationIssue(path="title", ...)]
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Annotated, Any, Callable, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Discriminator,
    Field,
    PlainValidator,
    StrictBool,
    StrictStr,
    Tag,
    ValidationError,
    create_model,
)
from pydantic_core import PydanticCustomError

from .consts import ONEOF_TYPE_KEY
from .schema import (
    ArrayField,
    BooleanField,
    DateField,
    DateTimeField,
    FieldSchema,
    FileField,
    ImageField,
    MultiSelectField,
    NumberField,
    ObjectField,
    OneOfField,
    ReferenceField,
    ReferencesField,
    RichTextField,
    Schema,
    SelectField,
    StringField,
)

logger = logging.getLogger(__name__)

GetSchemaFn = Callable[[str], Optional[Schema]]


def _check_number(value: Any) -> Any:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise PydanticCustomError("number_type", "Input should be a valid number")
    if isinstance(value, float) and math.isnan(value):
        raise PydanticCustomError("number_type", "Input should be a valid number, not NaN")
    return value


StrictNumber = Annotated[Any, PlainValidator(_check_number)]

_PASSTHROUGH = ConfigDict(extra="allow")
_IGNORE_EXTRA = ConfigDict(extra="ignore")


class ImageValue(BaseModel):
    model_config = _PASSTHROUGH

    src: StrictStr
    width: StrictNumber = None
    height: StrictNumber = None
    alt: StrictStr = None


class FileValue(BaseModel):
    model_config = _PASSTHROUGH

    src: StrictStr
    size: StrictNumber = None
    type: StrictStr = None
    name: StrictStr = None


class ReferenceValue(BaseModel):
    id: StrictStr
    collection: StrictStr


class RichTextBlock(BaseModel):
    model_config = _PASSTHROUGH

    type: StrictStr
    data: Any = None


class RichTextValue(BaseModel):
    model_config = _PASSTHROUGH

    blocks: Annotated[list[RichTextBlock], Field(min_length=1)]


@dataclass
class ValidationIssue:
    path: str
    message: str
    code: str


@dataclass
class ParseResult:
    success: bool
    data: Any = None
    issues: list[ValidationIssue] = field(default_factory=list)


def _variant_tag(value: Any) -> Optional[str]:
    if isinstance(value, dict):
        return value.get(ONEOF_TYPE_KEY)
    return getattr(value, "oneof_type_", None)


class _SchemaCompiler:
    def __init__(self, get_schema: GetSchemaFn | None = None) -> None:
        self.get_schema = get_schema
        self._building: set[str] = set()
        self._count = 0

    def _model_name(self, base: str) -> str:
        self._count += 1
        return f"{base or 'Anonymous'}_{self._count}"

    def build_model(self, name: str, fields: list[FieldSchema], tag: str | None = None) -> type[BaseModel]:
        definitions: dict[str, Any] = {}
        for i, f in enumerate(fields):
            if not f.id:
                continue
            definitions[f"f{i}_"] = (self.field_type(f), Field(default=None, alias=f.id))

        config = _IGNORE_EXTRA
        if tag is not None:
            definitions["oneof_type_"] = (Literal[tag], Field(alias=ONEOF_TYPE_KEY))
            config = _PASSTHROUGH

        return create_model(self._model_name(name), __config__=config, **definitions)

    def field_type(self, f: FieldSchema) -> Any:
        match f:
            case StringField() | SelectField() | DateField():
                return StrictStr
            case NumberField() | DateTimeField():
                return StrictNumber
            case BooleanField():
                return StrictBool
            case ImageField():
                return ImageValue
            case FileField():
                return FileValue
            case ReferenceField():
                return ReferenceValue
            case ReferencesField():
                return list[ReferenceValue]
            case MultiSelectField():
                return list[StrictStr]
            case ObjectField():
                return self.build_model(f.id or "Object", f.fields)
            case ArrayField():
                return list[self.field_type(f.of)]
            case OneOfField():
                return self.oneof_type(f)
            case RichTextField():
                return RichTextValue
            case _:
                raise TypeError(f"Unsupported field type: {type(f).__name__}")

    def oneof_type(self, f: OneOfField) -> Any:
        variants = []
        for t in f.types:
            if isinstance(t, str):
                name = t
                schema = self.get_schema(t) if self.get_schema else None
            else:
                name = t.name
                schema = t

            if schema is None or name in self._building:
                # Unresolvable (or self-referencing) variants only check the tag.
                variants.append((name, self.build_model(name, [], tag=name)))
                continue

            self._building.add(name)
            try:
                variants.append((name, self.build_model(name, schema.fields, tag=name)))
            finally:
                self._building.discard(name)

        if not variants:
            return create_model(
                self._model_name("OneOf"),
                __config__=_PASSTHROUGH,
                oneof_type_=(StrictStr, Field(alias=ONEOF_TYPE_KEY)),
            )
        if len(variants) == 1:
            return variants[0][1]

        members = tuple(Annotated[model, Tag(name)] for name, model in variants)
        return Annotated[Union[members], Discriminator(_variant_tag)]


class Validator:
    """A compiled schema. Use :meth:`safe_parse` to check a ``fields`` map."""

    def __init__(self, schema: Schema, model: type[BaseModel]) -> None:
        self.schema = schema
        self.model = model

    def safe_parse(self, value: Any) -> ParseResult:
        try:
            self.model.model_validate(value)
        except ValidationError as e:
            issues = [
                ValidationIssue(
                    path=_issue_path(value, error["loc"]),
                    message=error["msg"],
                    code=error["type"],
                )
                for error in e.errors()
            ]
            logger.debug(f"Validation of '{self.schema.name}' failed with {len(issues)} issue(s)")
            return ParseResult(success=False, issues=issues)
        return ParseResult(success=True, data=value)

    def is_valid(self, value: Any) -> bool:
        return self.safe_parse(value).success


def _issue_path(value: Any, loc: tuple) -> str:
    # Tagged unions add the variant tag to ``loc``. Walk the input alongside
    # the location and drop those tags so the path addresses the data.
    parts = []
    current = value
    for part in loc:
        if (
            isinstance(current, dict)
            and isinstance(part, str)
            and current.get(ONEOF_TYPE_KEY) == part
            and part not in current
        ):
            continue
        parts.append(str(part))
        if isinstance(current, dict):
            current = current.get(part)
        elif isinstance(current, list) and isinstance(part, int) and part < len(current):
            current = current[part]
        else:
            current = None
    return ".".join(parts)


def compile_schema(schema: Schema, get_schema: GetSchemaFn | None = None) -> Validator:
    """Compiles ``schema`` into a :class:`Validator`.

    ``get_schema`` resolves ``oneof`` variants given by name.
    """
    compiler = _SchemaCompiler(get_schema)
    model = compiler.build_model(schema.name, schema.fields)
    logger.debug(f"Compiled validator for schema '{schema.name}' ({len(schema.fields)} fields)")
    return Validator(schema, model)


def validate(schema: Schema, value: Any, get_schema: GetSchemaFn | None = None) -> ParseResult:
    return compile_schema(schema, get_schema).safe_parse(value)
