from __future__ import annotations
from pathlib import Path
from typing import Any, Dict, FrozenSet, List, Optional, Set, Tuple, Union
import json

import jsonschema
import pytest

from dext import Char, IntType
from dext.diagnostics import InvalidFieldNameError, SchemaError
from dext.schema import SCHEMA, load_file, load_record_types, load_records, parse_type, validate_document

DEFS_DIR = Path(__file__).resolve().parent / "records"


@pytest.mark.parametrize("path", sorted(DEFS_DIR.glob("*.json")), ids=lambda p: p.name)
def test_fixture_documents_match_schema(path: Path):
    doc = json.loads(path.read_text(encoding="utf-8"))
    jsonschema.validate(instance=doc, schema=SCHEMA)


def test_load_records():
    classes = load_records(load_file(DEFS_DIR / "shapes.json"))
    assert list(classes) == ["Point", "Size", "Rectangle"]
    Point, Size, Rectangle = classes["Point"], classes["Size"], classes["Rectangle"]
    assert Point.__module__ == "shapes"
    assert Point.__doc__ == "A point in 2D space."
    r = Rectangle(Point(1, 2), Size(3, 4))
    assert r == Rectangle(Point(1, 2), Size(3, 4))
    assert not hasattr(r, "with_size")


def test_load_people():
    classes = load_records(load_file(DEFS_DIR / "people.json"))
    Person, Counter = classes["Person"], classes["Counter"]
    p = Person("Ada", [], "Lovelace", 36, "A")
    assert str(p) == "Person(\"Ada\", [], \"Lovelace\", 36, 'A')"
    assert Person("Ada", [], "Lovelace", 36, None).initial is None

    c = Counter("hits", 1, {"a": (1, 2)})
    c.set_count(2)
    assert c.count == 2
    assert not hasattr(c, "set_label")


def test_record_types_carry_options():
    person, counter = load_record_types(load_file(DEFS_DIR / "people.json"))
    assert person.options.enable_destructure
    assert not person.options.enable_mutation
    assert counter.options.enable_setters
    assert counter.field("label").mutable is False


def test_default_module_name():
    doc = {"records": [{"name": "Unit", "fields": []}]}
    assert load_records(doc)["Unit"].__module__ == "records"


@pytest.mark.parametrize("text,expected", [
    ("int", int),
    ("char", Char),
    ("any", Any),
    ("ubyte", IntType.UBYTE),
    ("long", IntType.LONG),
    ("list[str]", List[str]),
    ("list", List),
    ("set[int]", Set[int]),
    ("frozenset[int]", FrozenSet[int]),
    ("optional[int]", Optional[int]),
    ("dict[str, list[int]]", Dict[str, List[int]]),
    ("tuple[int, ...]", Tuple[int, ...]),
    ("tuple[int, str]", Tuple[int, str]),
    ("union[int, str]", Union[int, str]),
    (" list[ str ] ", List[str]),
])
def test_parse_type(text, expected):
    assert parse_type(text) == expected


def test_parse_type_known_records():
    class Point:
        pass

    assert parse_type("list[Point]", {"Point": Point}) == List[Point]


@pytest.mark.parametrize("text", [
    "Point",
    "list[int, str]",
    "dict[int]",
    "tuple[...]",
    "list[int",
    "int]",
    "int[str]",
    "list[]",
    "int?",
    "",
])
def test_parse_type_errors(text):
    with pytest.raises(SchemaError) as ei:
        parse_type(text)
    assert ei.value.code == "DXT-SCHEMA-0002"


@pytest.mark.parametrize("doc", [
    {},
    {"records": {}},
    {"records": [], "extra": 1},
    {"module": "not a name", "records": []},
    {"records": [{"name": "P"}]},
    {"records": [{"name": "P", "fields": [{"name": "x", "type": 3}]}]},
    {"records": [{"name": "P", "fields": [], "options": {"fast": True}}]},
    {"records": [{"name": "P", "fields": [], "options": {"mutation": "yes"}}]},
])
def test_invalid_documents(doc):
    with pytest.raises(SchemaError) as ei:
        validate_document(doc)
    assert ei.value.code == "DXT-SCHEMA-0001"


def test_names_are_checked_by_record_type():
    doc = {"records": [{"name": "1Bad", "fields": []}]}
    with pytest.raises(InvalidFieldNameError) as ei:
        load_records(doc)
    assert ei.value.code == "DXT-REC-0005"


def test_forward_references_fail():
    with pytest.raises(SchemaError) as ei:
        load_records(load_file(DEFS_DIR / "bad_forward_ref.json"))
    assert "unknown type name 'Point'" in str(ei.value)


def test_load_file_bad_json(tmp_path: Path):
    bad = tmp_path / "bad.json"
    bad.write_text("[1, 2", encoding="utf-8")
    with pytest.raises(SchemaError) as ei:
        load_file(bad)
    assert ei.value.code == "DXT-SCHEMA-0001"
