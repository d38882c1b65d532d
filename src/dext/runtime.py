"""Runtime support shared by generated record classes.

Generated code (compiled in-process by ``record()`` or written to disk by
``python_gen``) only calls into this module, so both paths behave the same.
"""

from __future__ import annotations
import collections.abc as cabc
import copy
from enum import Enum
import types
from typing import Any, List, Mapping, Sequence, Union
import typing

from .conv import IntType
from .diagnostics import ArityError, FieldTypeError, FrozenRecordError, InvalidFieldNameError

HASH_SEED = 486_187_739
HASH_FACTOR = 15_485_863
HASH_MASK = (1 << 64) - 1


class Char(str):
    """Type tag for a single character. Values are plain one-char strings."""

    def __new__(cls, value: str = "\0"):
        if not isinstance(value, str) or len(value) != 1:
            raise ValueError("Char needs exactly one character")
        return super().__new__(cls, value)


def is_record(value: Any) -> bool:
    return getattr(type(value), "__record_type__", None) is not None


def is_record_class(tag: Any) -> bool:
    return isinstance(tag, type) and getattr(tag, "__record_type__", None) is not None


# --- type tags ---

_ANNOTATED = getattr(typing, "Annotated", None)
_UNIONS = {Union, getattr(types, "UnionType", Union)}
_SEQ_ORIGINS = {list: list, cabc.Sequence: cabc.Sequence, cabc.MutableSequence: list}
_SET_ORIGINS = {set: set, frozenset: frozenset, cabc.Set: cabc.Set, cabc.MutableSet: set}
_MAP_ORIGINS = {dict: dict, cabc.Mapping: cabc.Mapping, cabc.MutableMapping: dict}


def _strip(tag: Any) -> Any:
    # Annotated[T, ...] checks as T
    if _ANNOTATED is not None and typing.get_origin(tag) is _ANNOTATED:
        return typing.get_args(tag)[0]
    return tag


def _known_origin(origin: Any) -> bool:
    return origin in _UNIONS or origin is tuple or origin in _SEQ_ORIGINS or origin in _SET_ORIGINS or origin in _MAP_ORIGINS


def validate_tag(tag: Any, where: str = "") -> None:
    """Reject type tags the runtime cannot check."""
    tag = _strip(tag)
    origin = typing.get_origin(tag)
    if origin is None and (tag is Any or tag is None or isinstance(tag, (IntType, type))):
        return
    if _known_origin(origin):
        for a in typing.get_args(tag):
            if a is not Ellipsis and a != ():
                validate_tag(a, where)
        return
    raise FieldTypeError.make(
        "DXT-REC-0102",
        f"Unsupported type tag {tag!r}{' for ' + where if where else ''}.",
        "Use a class, Char, an IntType member, List/Tuple/Dict/Set/Optional of those, or Any.",
    )


def check_value(tag: Any, value: Any) -> bool:
    tag = _strip(tag)
    origin = typing.get_origin(tag)
    if origin is None:
        return _check_plain(tag, value)

    args = typing.get_args(tag)
    if origin in _UNIONS:
        return any(check_value(a, value) for a in args)
    if origin is tuple:
        if not isinstance(value, tuple):
            return False
        if len(args) == 2 and args[1] is Ellipsis:
            return all(check_value(args[0], v) for v in value)
        if not args:
            return True
        if args == ((),):  # Tuple[()] before 3.11
            return value == ()
        return len(args) == len(value) and all(check_value(a, v) for a, v in zip(args, value))
    if origin in _SEQ_ORIGINS:
        if not isinstance(value, _SEQ_ORIGINS[origin]) or isinstance(value, (str, bytes)):
            return False
        return not args or all(check_value(args[0], v) for v in value)
    if origin in _SET_ORIGINS:
        if not isinstance(value, _SET_ORIGINS[origin]):
            return False
        return not args or all(check_value(args[0], v) for v in value)
    if origin in _MAP_ORIGINS:
        if not isinstance(value, _MAP_ORIGINS[origin]):
            return False
        return not args or all(check_value(args[0], k) and check_value(args[1], v) for k, v in value.items())
    return False


def _check_plain(tag: Any, value: Any) -> bool:
    if tag is Any or tag is object:
        return True
    if tag is None or tag is type(None):
        return value is None
    if isinstance(tag, IntType):
        return tag.contains(value)
    if tag is Char:
        return isinstance(value, str) and len(value) == 1
    if tag is bool:
        return isinstance(value, bool)
    if tag is int:
        return isinstance(value, int) and not isinstance(value, bool)
    if tag is float:
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if isinstance(tag, type):
        return isinstance(value, tag)
    return False


def check_field(owner: str, name: str, tag: Any, value: Any) -> Any:
    if not check_value(tag, value):
        raise FieldTypeError.make(
            "DXT-REC-0101",
            f"{owner}.{name} expects {type_label(tag)}, got {type(value).__name__} {value!r}.",
        )
    if _strip(tag) is float and isinstance(value, int):
        # stored as float so equal records render alike
        return float(value)
    return value


def type_label(tag: Any) -> str:
    tag = _strip(tag)
    if typing.get_origin(tag) is not None:
        return repr(tag).replace("typing.", "")
    if tag is Any:
        return "Any"
    if tag is None:
        return "None"
    if isinstance(tag, IntType):
        return tag.type_name
    if isinstance(tag, type):
        return tag.__name__
    return repr(tag)


# --- construction ---

def bind_values(owner: str, names: Sequence[str], values: Sequence[Any], named: Mapping[str, Any]) -> List[Any]:
    """Line positional and keyword arguments up with the field order."""
    n = len(names)
    if len(values) > n:
        raise ArityError.make(
            "DXT-REC-0201",
            f"{owner} takes {n} value(s) but {len(values)} were given.",
        )
    out = list(values)
    missing = object()
    out.extend([missing] * (n - len(out)))
    for key, v in named.items():
        try:
            i = names.index(key)
        except ValueError:
            raise InvalidFieldNameError.make(
                "DXT-REC-0004", f"{owner} has no field named '{key}'."
            ) from None
        if out[i] is not missing:
            raise ArityError.make("DXT-REC-0201", f"{owner} got two values for field '{key}'.")
        out[i] = v
    absent = [names[i] for i, v in enumerate(out) if v is missing]
    if absent:
        raise ArityError.make(
            "DXT-REC-0201",
            f"{owner} takes {n} value(s) but {n - len(absent)} were given (missing: {', '.join(absent)}).",
        )
    return out


def copy_out(value: Any) -> Any:
    # containers handed out of a record must not alias its state
    if isinstance(value, (list, dict, set, bytearray)):
        return copy.deepcopy(value)
    return value


def check_slots(owner: str, expected: int, slots: Sequence[Any]) -> None:
    if len(slots) != expected:
        raise ArityError.make(
            "DXT-REC-0202",
            f"{owner} destructures into {expected} slot(s) but {len(slots)} were given.",
        )


def frozen_error(owner: str, name: str) -> FrozenRecordError:
    return FrozenRecordError.make(
        "DXT-REC-0301",
        f"cannot assign to field '{name}' of immutable record {owner}.",
        "Use a with_<field>() method (mutation) or enable setters for this record type.",
    )


# --- hashing ---

def hash_value(value: Any) -> int:
    if is_record(value):
        return record_hash(value)
    if isinstance(value, (str, bytes)):
        return hash(value) & HASH_MASK
    if isinstance(value, bytearray):
        return hash(bytes(value)) & HASH_MASK
    if isinstance(value, cabc.Mapping):
        return hash(frozenset((hash_value(k), hash_value(v)) for k, v in value.items())) & HASH_MASK
    if isinstance(value, cabc.Set):
        return hash(frozenset(hash_value(v) for v in value)) & HASH_MASK
    if isinstance(value, cabc.Sequence):
        return hash(tuple(hash_value(v) for v in value)) & HASH_MASK
    try:
        return hash(value) & HASH_MASK
    except TypeError:
        # unhashable: constant per type keeps equal => same hash
        return hash(type(value).__qualname__) & HASH_MASK


def record_hash(rec: Any) -> int:
    h = HASH_SEED
    for name in type(rec).__record_type__.field_names:
        h = ((h * HASH_FACTOR) ^ hash_value(name) ^ hash_value(getattr(rec, name))) & HASH_MASK
    return h


# --- rendering ---

def quote_string(s: str) -> str:
    return '"' + s.replace("\\", "\\\\").replace('"', '\\"') + '"'


def quote_char(c: str) -> str:
    return "'" + c.replace("\\", "\\\\").replace("'", "\\'") + "'"


def _elem_tags(tag: Any, n: int) -> List[Any]:
    args = typing.get_args(_strip(tag))
    if len(args) == 2 and args[1] is Ellipsis:
        return [args[0]] * n
    if len(args) == n:
        return list(args)
    if len(args) == 1:
        return [args[0]] * n
    return [Any] * n


def render_value(value: Any, tag: Any = Any) -> str:
    tag = _strip(tag)
    if typing.get_origin(tag) in _UNIONS:
        # render as the first alternative the value fits
        tag = next((a for a in typing.get_args(tag) if check_value(a, value)), Any)
    if is_record(value):
        return str(value)
    if isinstance(value, str):
        if tag is Char or isinstance(value, Char):
            return quote_char(value)
        return quote_string(value)
    if isinstance(value, Enum):
        return f"{type(value).__name__}.{value.name}"
    if isinstance(value, list):
        tags = _elem_tags(tag, len(value))
        return "[" + ", ".join(render_value(v, t) for v, t in zip(value, tags)) + "]"
    if isinstance(value, tuple):
        tags = _elem_tags(tag, len(value))
        inner = ", ".join(render_value(v, t) for v, t in zip(value, tags))
        return "(" + inner + ("," if len(value) == 1 else "") + ")"
    if isinstance(value, (set, frozenset)):
        (t,) = _elem_tags(tag, 1)
        return "{" + ", ".join(sorted(render_value(v, t) for v in value)) + "}"
    if isinstance(value, dict):
        args = typing.get_args(tag)
        kt, vt = args if len(args) == 2 else (Any, Any)
        items = sorted(f"{render_value(k, kt)}: {render_value(v, vt)}" for k, v in value.items())
        return "{" + ", ".join(items) + "}"
    if tag is float and isinstance(value, int) and not isinstance(value, bool):
        return repr(float(value))
    return repr(value)


def render_record(rec: Any) -> str:
    rtype = type(rec).__record_type__
    parts = [render_value(getattr(rec, f.name), f.type) for f in rtype.fields]
    return f"{type(rec).__name__}({', '.join(parts)})"
