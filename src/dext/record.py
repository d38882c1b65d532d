"""Immutable record types.

A record type is an ordered list of named, typed fields. The generated class
gets a positional constructor, read-only properties, structural equality, a
hash that mixes field names with field values, ``TypeName(v1, v2)`` rendering
and, on request, ``with_<field>`` copy-updates, ``set_<field>`` setters and
destructuring support.

    Point = record("Point", [("x", int), ("y", int)])
    p = Point(3, 7)
    str(p)              # 'Point(3, 7)'
    p == Point(3, 7)    # True

    @record(mutation=True, destructure=True)
    class Person:
        first_name: str
        middle_names: List[str]
        last_name: str
        age: IntType.UBYTE

The class body is generated as Python source (see python_gen) and compiled,
the same way the CLI writes record modules to disk.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
import inspect
import keyword
import logging
import sys
import typing
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from . import runtime as _rt
from .diagnostics import InvalidFieldNameError
from .python_gen import gen_record_class, member_names
from .typecons import params_for

log = logging.getLogger(__name__)


class RecordFlag(Enum):
    suppress_constructor = "do not generate the positional constructor"
    enable_destructure = "generate destructure(), deconstruct() and iteration"
    enable_mutation = "generate with_<field>() copy-updates"
    enable_setters = "generate set_<field>() in-place setters; the record becomes unhashable"


RecordOptions = params_for(RecordFlag)


@dataclass(frozen=True)
class FieldSpec:
    name: str
    type: Any = Any
    mutable: bool = True


FieldLike = Union[FieldSpec, Tuple[str, Any], Tuple[str, Any, bool]]


def _as_field(f: FieldLike) -> FieldSpec:
    if isinstance(f, FieldSpec):
        return f
    if isinstance(f, tuple) and len(f) in (2, 3):
        return FieldSpec(*f)
    raise TypeError(f"expected FieldSpec or (name, type[, mutable]) tuple, got {f!r}")


def _name_error(code: str, msg: str, remediation: str = "") -> InvalidFieldNameError:
    return InvalidFieldNameError.make(code, msg, remediation)


def _check_type_name(name: Any) -> None:
    if not isinstance(name, str) or not name.isidentifier() or keyword.iskeyword(name) or name.startswith("__"):
        raise _name_error(
            "DXT-REC-0005",
            f"Invalid record type name {name!r}.",
            "Use a plain Python identifier such as 'Point'.",
        )


class RecordType:
    """Definition-time description of a record: name, ordered fields, options."""

    __slots__ = ("name", "fields", "options", "doc", "_names", "_types")

    def __init__(self, name: str, fields: Iterable[FieldLike], options: Optional[RecordOptions] = None, *, doc: Optional[str] = None):
        _check_type_name(name)
        specs = tuple(_as_field(f) for f in fields)
        opts = options if options is not None else RecordOptions()
        if not isinstance(opts, RecordOptions):
            raise TypeError("options must be a RecordOptions flag set")

        seen = set()
        for f in specs:
            n = f.name
            if not isinstance(n, str) or not n.isidentifier() or keyword.iskeyword(n):
                raise _name_error(
                    "DXT-REC-0001",
                    f"{name}: field name {n!r} is not a valid identifier.",
                    "Field names must be Python identifiers and not keywords.",
                )
            if n.startswith("_"):
                raise _name_error(
                    "DXT-REC-0001",
                    f"{name}: field name {n!r} is not public.",
                    "Leading underscores are reserved for backing slots.",
                )
            if n in seen:
                raise _name_error("DXT-REC-0003", f"{name}: duplicate field name '{n}'.")
            seen.add(n)

        mutable = [f.name for f in specs if f.mutable]
        reserved = set(member_names(
            mutable,
            constructor=not opts.suppress_constructor,
            destructure=opts.enable_destructure,
            mutation=opts.enable_mutation,
            setters=opts.enable_setters,
        ))
        for f in specs:
            if f.name in reserved:
                raise _name_error(
                    "DXT-REC-0002",
                    f"{name}: field name '{f.name}' clashes with a generated method.",
                    "Rename the field or turn off the option that generates the method.",
                )
            _rt.validate_tag(f.type, f"{name}.{f.name}")

        object.__setattr__(self, "name", name)
        object.__setattr__(self, "fields", specs)
        object.__setattr__(self, "options", opts)
        object.__setattr__(self, "doc", doc)
        object.__setattr__(self, "_names", tuple(f.name for f in specs))
        object.__setattr__(self, "_types", tuple(f.type for f in specs))
        log.debug("record type %s(%s) %r", name, ", ".join(self._names), opts)

    def __setattr__(self, name, value):
        raise AttributeError("RecordType is immutable")

    def __repr__(self):
        return f"RecordType({self.name!r}, {list(self.fields)!r}, {self.options!r})"

    @property
    def field_names(self) -> Tuple[str, ...]:
        return self._names

    @property
    def field_types(self) -> Tuple[Any, ...]:
        return self._types

    def field(self, name: str) -> FieldSpec:
        for f in self.fields:
            if f.name == name:
                return f
        raise _name_error("DXT-REC-0004", f"{self.name} has no field named '{name}'.")

    def build(self, *, module: Optional[str] = None, bases: Sequence[type] = (), namespace: Optional[Dict[str, Any]] = None) -> type:
        """Generate and compile the class for this record type."""
        bases = tuple(bases)
        if not any(issubclass(b, Record) for b in bases):
            bases = bases + (Record,)
        src = gen_record_class(self, record_type_expr="_RECORD_TYPE", bases="*_BASES")
        glb = {"_rt": _rt, "_RECORD_TYPE": self, "_BASES": bases, "__name__": module or __name__}
        loc: Dict[str, Any] = {}
        exec(compile(src, f"<dext record {self.name}>", "exec"), glb, loc)
        cls = loc[self.name]

        generated = set(vars(cls))
        for key, value in (namespace or {}).items():
            if key in generated and key in self._names:
                raise _name_error(
                    "DXT-REC-0006",
                    f"{self.name}.{key} has a class-level value; record fields cannot have defaults.",
                )
            setattr(cls, key, value)
        if module:
            cls.__module__ = module
        log.debug("built class %s.%s", cls.__module__, cls.__qualname__)
        return cls


class Record:
    """Base of every generated record class."""

    __slots__ = ()
    __record_type__: Optional[RecordType] = None

    def __init__(self, *values, **named):
        # only reached when the constructor is suppressed
        cls = type(self).__name__
        raise TypeError(f"{cls} has no public constructor; use {cls}._make() or a subclass calling _init_fields()")


def record_options(constructor: bool, destructure: bool, mutation: bool, setters: bool) -> RecordOptions:
    flags = []
    if not constructor:
        flags.append(RecordFlag.suppress_constructor)
    if destructure:
        flags.append(RecordFlag.enable_destructure)
    if mutation:
        flags.append(RecordFlag.enable_mutation)
    if setters:
        flags.append(RecordFlag.enable_setters)
    return RecordOptions(*flags)


def _caller_module(depth: int = 2) -> Optional[str]:
    try:
        return sys._getframe(depth).f_globals.get("__name__", "__main__")
    except (AttributeError, ValueError):
        return None


# Class-body entries that belong to the original class object, not its API.
_SKIP = {"__dict__", "__weakref__", "__annotations__", "__annotate__", "__module__", "__qualname__", "__doc__", "__slots__"}


def _from_class(cls: type, opts: RecordOptions) -> type:
    own = inspect.get_annotations(cls)
    hints = typing.get_type_hints(cls, include_extras=True)
    specs: List[FieldSpec] = []
    for name in own:
        tp = hints.get(name, Any)
        origin = typing.get_origin(tp)
        if origin is typing.ClassVar or tp is typing.ClassVar:
            continue
        mutable = True
        if origin is typing.Final or tp is typing.Final:
            args = typing.get_args(tp)
            tp = args[0] if args else Any
            mutable = False
        specs.append(FieldSpec(name, tp, mutable))

    rtype = RecordType(cls.__name__, specs, opts, doc=cls.__doc__)
    namespace = {
        k: v for k, v in vars(cls).items()
        if k not in _SKIP and not k.startswith("__annotat") and not inspect.ismemberdescriptor(v)
    }
    if namespace.get("__hash__", 0) is None:
        # implicit from a user __eq__; the generated hash wins
        del namespace["__hash__"]
    for f in specs:
        if f.name in namespace:
            raise _name_error(
                "DXT-REC-0006",
                f"{cls.__name__}.{f.name} has a class-level value; record fields cannot have defaults.",
            )
    bases = tuple(b for b in cls.__bases__ if b is not object)
    new = rtype.build(module=cls.__module__, bases=bases, namespace=namespace)
    new.__qualname__ = cls.__qualname__
    new.__doc__ = cls.__doc__
    return new


def record(name_or_cls: Union[str, type, None] = None, fields: Optional[Iterable[FieldLike]] = None, *,
           constructor: bool = True, destructure: bool = False, mutation: bool = False,
           setters: bool = False, module: Optional[str] = None, doc: Optional[str] = None):
    """Define a record type.

    ``record("Point", [("x", int), ("y", int)])`` returns a new class.
    ``@record`` / ``@record(mutation=True)`` turn an annotated class into one;
    fields come from the annotations in order, ``Final[T]`` marks a field
    that gets no with_/set_ method. Methods in the class body are kept but
    must not rely on zero-argument ``super()``.
    """
    opts = record_options(constructor, destructure, mutation, setters)
    if isinstance(name_or_cls, str):
        if fields is None:
            raise TypeError("record(name, fields) needs a field list")
        rtype = RecordType(name_or_cls, fields, opts, doc=doc)
        return rtype.build(module=module or _caller_module())

    def wrap(cls: type) -> type:
        return _from_class(cls, opts)

    if name_or_cls is None:
        return wrap
    if isinstance(name_or_cls, type):
        return wrap(name_or_cls)
    raise TypeError("record() expects a name, a class, or keyword options")


# --- generic helpers ---

def record_type(obj: Any) -> RecordType:
    rt = getattr(obj if isinstance(obj, type) else type(obj), "__record_type__", None)
    if rt is None:
        raise TypeError(f"{obj!r} is not a record or record class")
    return rt


def is_record(obj: Any) -> bool:
    return _rt.is_record(obj) or _rt.is_record_class(obj)


def fields(obj: Any) -> Tuple[FieldSpec, ...]:
    return record_type(obj).fields


def get(rec: Any, name: str) -> Any:
    """Field value by name (InvalidFieldNameError for unknown names)."""
    record_type(rec).field(name)
    return getattr(rec, name)


def as_tuple(rec: Any) -> Tuple[Any, ...]:
    return tuple(getattr(rec, n) for n in record_type(rec).field_names)


def as_dict(rec: Any) -> Dict[str, Any]:
    return {n: getattr(rec, n) for n in record_type(rec).field_names}


def replace(rec: Any, **changes: Any) -> Any:
    """New record with ``changes`` applied; the receiver is left alone."""
    rt = record_type(rec)
    for key in changes:
        rt.field(key)
    values = [changes.get(n, getattr(rec, n)) for n in rt.field_names]
    return type(rec)._make(values)


record_hash = _rt.record_hash
