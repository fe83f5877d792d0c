"""Schema validator unit tests"""

import math

import pytest

from draftkit.schema import (
    ArrayField,
    BooleanField,
    DateTimeField,
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
from draftkit.validation import compile_schema, validate


@pytest.fixture
def page_schema():
    hero = Schema(name="Hero", fields=[StringField(id="headline")])
    text = Schema(name="Text", fields=[StringField(id="body"), NumberField(id="columns")])
    return Schema(
        name="Page",
        fields=[
            StringField(id="title"),
            NumberField(id="count"),
            BooleanField(id="published"),
            DateTimeField(id="publishedAt"),
            SelectField(id="theme", options=["light", "dark"]),
            MultiSelectField(id="tags"),
            ImageField(id="image"),
            FileField(id="download"),
            ReferenceField(id="author"),
            ReferencesField(id="related"),
            ObjectField(id="meta", fields=[StringField(id="description")]),
            ArrayField(
                id="items",
                of=ObjectField(fields=[StringField(id="title")]),
            ),
            OneOfField(id="module", types=[hero, text]),
            RichTextField(id="body"),
        ],
    )


def valid_page():
    return {
        "title": "Home",
        "count": 3,
        "published": True,
        "publishedAt": 1630000000000,
        "theme": "dark",
        "tags": ["a", "b"],
        "image": {"src": "https://example.com/a.png", "width": 800, "height": 600.5},
        "download": {"src": "https://example.com/a.pdf", "size": 1024, "name": "a.pdf"},
        "author": {"id": "Authors/jane", "collection": "Authors"},
        "related": [{"id": "Pages/about", "collection": "Pages"}],
        "meta": {"description": "Welcome"},
        "items": [{"title": "one"}, {"title": "two"}],
        "module": {"_type": "Text", "body": "hello", "columns": 2},
        "body": {"time": 1721761211720, "blocks": [{"type": "paragraph", "data": {"text": "hi"}}]},
    }


def test_valid_value_passes(page_schema):
    result = validate(page_schema, valid_page())

    assert result.success is True
    assert result.issues == []
    assert result.data["title"] == "Home"


def test_empty_value_passes(page_schema):
    assert validate(page_schema, {}).success is True


def test_unknown_keys_are_ignored(page_schema):
    assert validate(page_schema, {"title": "Home", "extra": object()}).success is True


def test_one_issue_per_mismatched_top_level_field(page_schema):
    result = validate(page_schema, {"title": 1, "count": "3", "published": "yes"})

    assert result.success is False
    assert sorted(issue.path for issue in result.issues) == ["count", "published", "title"]


@pytest.mark.parametrize(
    "value",
    [True, float("nan"), "1", None],
)
def test_number_rejects_non_numbers(page_schema, value):
    result = validate(page_schema, {"count": value})

    assert result.success is False
    assert [issue.path for issue in result.issues] == ["count"]


def test_number_accepts_int_and_float(page_schema):
    assert validate(page_schema, {"count": 1}).success
    assert validate(page_schema, {"count": 1.5}).success
    assert validate(page_schema, {"count": math.inf}).success


def test_string_does_not_coerce(page_schema):
    assert not validate(page_schema, {"title": 1}).success
    assert not validate(page_schema, {"title": None}).success


def test_image_requires_src(page_schema):
    result = validate(page_schema, {"image": {"width": 10}})

    assert result.success is False
    assert result.issues[0].path == "image.src"


def test_image_allows_extra_keys(page_schema):
    assert validate(page_schema, {"image": {"src": "a.png", "blurhash": "x"}}).success


def test_reference_requires_id_and_collection(page_schema):
    result = validate(page_schema, {"author": {"id": "Authors/jane"}})

    assert not result.success
    assert result.issues[0].path == "author.collection"


def test_nested_array_issue_path(page_schema):
    result = validate(page_schema, {"items": [{"title": "ok"}, {"title": 2}]})

    assert not result.success
    assert [issue.path for issue in result.issues] == ["items.1.title"]


def test_oneof_validates_selected_variant(page_schema):
    result = validate(page_schema, {"module": {"_type": "Hero", "headline": 5}})

    assert not result.success
    assert [issue.path for issue in result.issues] == ["module.headline"]


def test_oneof_unknown_type_is_one_issue(page_schema):
    result = validate(page_schema, {"module": {"_type": "Footer"}})

    assert not result.success
    assert len(result.issues) == 1
    assert result.issues[0].path == "module"


def test_oneof_keeps_extra_keys(page_schema):
    assert validate(page_schema, {"module": {"_type": "Hero", "headline": "x", "id": "m1"}}).success


def test_oneof_resolves_names_through_get_schema():
    hero = Schema(name="Hero", fields=[StringField(id="headline")])
    schema = Schema(name="Page", fields=[OneOfField(id="module", types=["Hero", "Unknown"])])
    schemas = {"Hero": hero}

    validator = compile_schema(schema, schemas.get)

    assert validator.is_valid({"module": {"_type": "Hero", "headline": "x"}})
    assert not validator.is_valid({"module": {"_type": "Hero", "headline": 1}})
    # Unresolvable variants only check the tag.
    assert validator.is_valid({"module": {"_type": "Unknown", "anything": 1}})


def test_recursive_oneof_compiles():
    section = Schema(
        name="Section",
        fields=[
            StringField(id="title"),
            ArrayField(id="children", of=OneOfField(types=["Section"])),
        ],
    )
    schema = Schema(name="Page", fields=[OneOfField(id="root", types=["Section"])])

    validator = compile_schema(schema, {"Section": section}.get)

    value = {"root": {"_type": "Section", "title": "a", "children": [{"_type": "Section"}]}}
    assert validator.is_valid(value)


@pytest.mark.parametrize(
    "value",
    ["plain text", [{"type": "paragraph"}], {"blocks": []}, {"blocks": [{"data": {}}]}],
)
def test_richtext_rejects_malformed_values(page_schema, value):
    assert not validate(page_schema, {"body": value}).success


def test_issue_carries_message_and_code(page_schema):
    issue = validate(page_schema, {"title": 1}).issues[0]

    assert issue.code == "string_type"
    assert issue.message
