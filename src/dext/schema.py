from __future__ import annotations
from pathlib import Path
import json
import logging
import re
from typing import Any, Dict, FrozenSet, List, Optional, Set, Tuple, Union

import jsonschema

from .conv import IntType
from .diagnostics import SchemaError
from .record import FieldSpec, RecordType, record_options
from .runtime import Char

# JSON record definition documents -> RecordType / classes.
#
# {"module": "shapes",
#  "records": [
#    {"name": "Point", "fields": [{"name": "x", "type": "int"}, {"name": "y", "type": "int"}],
#     "options": {"mutation": true}}]}

log = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).resolve().with_name("record_types.schema.json")
SCHEMA: Dict[str, Any] = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))

SCALARS: Dict[str, Any] = {
    "int": int,
    "str": str,
    "float": float,
    "bool": bool,
    "bytes": bytes,
    "char": Char,
    "any": Any,
    "none": None,
}
SCALARS.update({t.type_name: t for t in IntType if t.type_name not in SCALARS})

_re_tok = re.compile(r"\s*(\.\.\.|[A-Za-z_][A-Za-z0-9_]*|\[|\]|,)")


def validate_document(doc: Any) -> None:
    try:
        jsonschema.validate(instance=doc, schema=SCHEMA)
    except jsonschema.ValidationError as e:
        where = "/".join(str(p) for p in e.absolute_path) or "<root>"
        raise SchemaError.make(
            "DXT-SCHEMA-0001",
            f"{where}: {e.message}",
            "Fix the record definition document to match record_types.schema.json.",
        ) from e


def _type_error(text: str, why: str) -> SchemaError:
    return SchemaError.make("DXT-SCHEMA-0002", f"bad type {text!r}: {why}")


def _tokens(text: str) -> List[str]:
    toks: List[str] = []
    pos = 0
    text = text.rstrip()
    while pos < len(text):
        m = _re_tok.match(text, pos)
        if not m:
            raise _type_error(text, f"unexpected character at {pos}")
        toks.append(m.group(1))
        pos = m.end()
    return toks


def parse_type(text: str, known: Optional[Dict[str, type]] = None) -> Any:
    """Parse a type string such as ``list[str]`` or ``optional[Point]``."""
    known = known or {}
    toks = _tokens(text)
    pos = 0

    def peek() -> Optional[str]:
        return toks[pos] if pos < len(toks) else None

    def take(expected: Optional[str] = None) -> str:
        nonlocal pos
        t = peek()
        if t is None or (expected is not None and t != expected):
            raise _type_error(text, f"expected {expected or 'a type'}")
        pos += 1
        return t

    def args() -> List[Any]:
        out = []
        take("[")
        while True:
            if peek() == "...":
                take()
                out.append(Ellipsis)
            else:
                out.append(one())
            if peek() == ",":
                take()
                continue
            take("]")
            return out

    def one() -> Any:
        name = take()
        if not re.match(r"[A-Za-z_]", name):
            raise _type_error(text, f"unexpected {name!r}")
        if peek() != "[":
            if name in SCALARS:
                return SCALARS[name]
            if name in known:
                return known[name]
            if name in ("list", "set", "frozenset", "dict", "tuple"):
                return {"list": List, "set": Set, "frozenset": FrozenSet, "dict": Dict, "tuple": Tuple}[name]
            raise _type_error(text, f"unknown type name {name!r}")
        a = args()
        if name in ("list", "set", "frozenset", "optional") and len(a) != 1:
            raise _type_error(text, f"{name} takes one type argument")
        if Ellipsis in a and not (name == "tuple" and len(a) == 2 and a[1] is Ellipsis):
            raise _type_error(text, "'...' is only allowed as tuple[T, ...]")
        if name == "list":
            return List[a[0]]
        if name == "set":
            return Set[a[0]]
        if name == "frozenset":
            return FrozenSet[a[0]]
        if name == "optional":
            return Optional[a[0]]
        if name == "dict":
            if len(a) != 2:
                raise _type_error(text, "dict takes two type arguments")
            return Dict[a[0], a[1]]
        if name == "tuple":
            return Tuple[tuple(a)]
        if name == "union":
            return Union[tuple(a)]
        raise _type_error(text, f"{name!r} takes no type arguments")

    result = one()
    if peek() is not None:
        raise _type_error(text, f"trailing {peek()!r}")
    return result


def _load(doc: Any) -> List[Tuple[RecordType, type]]:
    validate_document(doc)
    module = doc.get("module", "records")
    known: Dict[str, type] = {}
    out: List[Tuple[RecordType, type]] = []
    for rec in doc["records"]:
        specs = [
            FieldSpec(f["name"], parse_type(f["type"], known), f.get("mutable", True))
            for f in rec["fields"]
        ]
        o = rec.get("options", {})
        opts = record_options(
            o.get("constructor", True),
            o.get("destructure", False),
            o.get("mutation", False),
            o.get("setters", False),
        )
        rtype = RecordType(rec["name"], specs, opts, doc=rec.get("doc"))
        cls = rtype.build(module=module)
        known[rtype.name] = cls
        out.append((rtype, cls))
    log.debug("loaded %d record type(s) for module %s", len(out), module)
    return out


def load_record_types(doc: Any) -> List[RecordType]:
    return [rt for rt, _ in _load(doc)]


def load_records(doc: Any) -> Dict[str, type]:
    """Build every record class in the document, keyed by name."""
    return {rt.name: cls for rt, cls in _load(doc)}


def load_file(path: Union[str, Path]) -> Dict[str, Any]:
    p = Path(path)
    try:
        return json.loads(p.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise SchemaError.make("DXT-SCHEMA-0001", f"{p.name}: invalid JSON ({e.msg} at line {e.lineno})") from e
