from __future__ import annotations
from typing import Any, List, Optional, Sequence, TYPE_CHECKING
import builtins
import logging
import typing

from .conv import IntType
from .diagnostics import InvalidFieldNameError
from .runtime import Char

if TYPE_CHECKING:
    from .record import RecordType

# RecordType -> Python source.
# record() compiles gen_record_class() in-process; the CLI writes gen_python()
# to disk. Generated code only talks to dext.runtime (imported as _rt).

log = logging.getLogger(__name__)

IND = " " * 4

# Module-level names every generated module binds in its header.
MODULE_NAMES = frozenset({
    "Any", "Dict", "FrozenSet", "List", "Optional", "Set", "Tuple", "Union",
    "_rt", "IntType", "FieldSpec", "Record", "RecordFlag", "RecordOptions", "RecordType", "Char",
})

_GENERIC_NAMES = {
    list: "List",
    tuple: "Tuple",
    dict: "Dict",
    set: "Set",
    frozenset: "FrozenSet",
}


def type_source(tag: Any) -> str:
    """Render a type tag as a Python expression (typing spelling)."""
    origin = typing.get_origin(tag)
    if origin is not None:
        args = typing.get_args(tag)
        if origin is typing.Union or type(tag).__name__ == "UnionType":
            if len(args) == 2 and type(None) in args:
                inner = args[0] if args[1] is type(None) else args[1]
                return f"Optional[{type_source(inner)}]"
            return "Union[" + ", ".join(type_source(a) for a in args) + "]"
        if origin is getattr(typing, "Annotated", None):
            return type_source(args[0])
        name = _GENERIC_NAMES.get(origin)
        if name is None:
            raise ValueError(f"cannot emit type {tag!r}")
        if not args:
            return name
        return f"{name}[" + ", ".join("..." if a is Ellipsis else type_source(a) for a in args) + "]"
    if tag is Any:
        return "Any"
    if tag is None or tag is type(None):
        return "None"
    if isinstance(tag, IntType):
        return f"IntType.{tag.name}"
    if tag is Char:
        return "Char"
    if isinstance(tag, type):
        return tag.__name__
    raise ValueError(f"cannot emit type {tag!r}")


def member_names(mutable: Sequence[str], *, constructor: bool, destructure: bool,
                 mutation: bool = False, setters: bool = False) -> List[str]:
    """Names the generated class defines besides the field properties."""
    names = ["_make", "_init_fields"]
    if constructor:
        names.append("__init__")
    if destructure:
        names += ["destructure", "deconstruct", "__iter__"]
    if mutation:
        names += [f"with_{n}" for n in mutable]
    if setters:
        names += [f"set_{n}" for n in mutable]
    return names


def gen_record_class(rtype: "RecordType", *, record_type_expr: Optional[str] = None, bases: str = "Record") -> str:
    """Source of one class statement for ``rtype``.

    ``record_type_expr`` is the expression bound to ``__record_type__``;
    by default a RecordType(...) literal is emitted.
    """
    name = rtype.name
    fields = rtype.fields
    opts = rtype.options
    owner = repr(name)

    out: List[str] = []
    emit = out.append

    def method(sig: str, body: List[str]) -> None:
        emit(f"{IND}def {sig}:")
        for ln in body:
            emit(f"{IND*2}{ln}")
        emit("")

    emit(f"class {name}({bases}):")
    if rtype.doc:
        emit(f"{IND}{rtype.doc!r}")
    emit(f"{IND}__slots__ = {tuple('_' + f.name for f in fields)!r}")
    emit(f"{IND}__match_args__ = {tuple(f.name for f in fields)!r}")
    emit(f"{IND}__record_type__ = {record_type_expr or record_type_source(rtype)}")
    emit("")

    # --- construction ---
    if not opts.suppress_constructor:
        method("__init__(self, *values, **named)", ["self._init_fields(*values, **named)"])

    body = [f"vals = _rt.bind_values({owner}, self.__record_type__.field_names, values, named)"]
    if fields:
        body.append("tags = self.__record_type__.field_types")
    for i, f in enumerate(fields):
        body.append(f"object.__setattr__(self, '_{f.name}', _rt.check_field({owner}, {f.name!r}, tags[{i}], vals[{i}]))")
    method("_init_fields(self, *values, **named)", body)

    emit(f"{IND}@classmethod")
    method("_make(cls, values)", [
        "self = object.__new__(cls)",
        "self._init_fields(*values)",
        "return self",
    ])

    # --- accessors ---
    for f in fields:
        emit(f"{IND}@property")
        method(f"{f.name}(self)", [f"return self._{f.name}"])

    # --- value semantics ---
    if fields:
        cmp = " and ".join(f"self._{f.name} == other._{f.name}" for f in fields)
    else:
        cmp = "True"
    method("__eq__(self, other)", [
        "if other.__class__ is not self.__class__:",
        f"{IND}return NotImplemented",
        f"return {cmp}",
    ])

    if opts.enable_setters:
        emit(f"{IND}__hash__ = None")
        emit("")
    else:
        method("__hash__(self)", ["return _rt.record_hash(self)"])

    method("__repr__(self)", ["return _rt.render_record(self)"])
    emit(f"{IND}__str__ = __repr__")
    emit("")

    method("__setattr__(self, name, value)", [f"raise _rt.frozen_error({owner}, name)"])
    method("__delattr__(self, name)", [f"raise _rt.frozen_error({owner}, name)"])
    method("__reduce__(self)", [f"return (self.__class__._make, ({_tuple_expr(f'self._{f.name}' for f in fields)},))"])

    # --- with-field / setters ---
    mutable = [f for f in fields if f.mutable]
    if opts.enable_mutation:
        for f in mutable:
            vals = _tuple_expr("value" if g.name == f.name else f"self._{g.name}" for g in fields)
            method(f"with_{f.name}(self, value)", [f"return self.__class__._make({vals})"])

    if opts.enable_setters:
        for f in mutable:
            i = fields.index(f)
            method(f"set_{f.name}(self, value)", [
                f"object.__setattr__(self, '_{f.name}', _rt.check_field({owner}, {f.name!r}, self.__record_type__.field_types[{i}], value))",
            ])

    # --- destructuring ---
    if opts.enable_destructure:
        body = [f"_rt.check_slots({owner}, {len(fields)}, slots)"]
        for i, f in enumerate(fields):
            body.append(f"if slots[{i}] is not None:")
            body.append(f"{IND}slots[{i}].value = _rt.copy_out(self._{f.name})")
        method("destructure(self, *slots)", body)
        method("deconstruct(self)", [
            f"return {_tuple_expr(f'_rt.copy_out(self._{f.name})' for f in fields)}",
        ])
        method("__iter__(self)", ["return iter(self.deconstruct())"])

    while out and out[-1] == "":
        out.pop()
    return "\n".join(out) + "\n"


def _tuple_expr(items) -> str:
    items = list(items)
    if len(items) == 1:
        return f"({items[0]},)"
    return "(" + ", ".join(items) + ")"


def record_type_source(rtype: "RecordType") -> str:
    specs = []
    for f in rtype.fields:
        extra = "" if f.mutable else ", mutable=False"
        specs.append(f"FieldSpec({f.name!r}, {type_source(f.type)}{extra})")
    flags = ", ".join(f"RecordFlag.{m.name}" for m in rtype.options)
    return f"RecordType({rtype.name!r}, [{', '.join(specs)}], RecordOptions({flags}))"


def gen_python(rtypes: Sequence["RecordType"], *, module_name: str = "records") -> str:
    """Whole module defining every record type in order."""
    for rt in rtypes:
        if rt.name in MODULE_NAMES or hasattr(builtins, rt.name):
            raise InvalidFieldNameError.make(
                "DXT-REC-0005",
                f"Record type name {rt.name!r} shadows a name the generated module relies on.",
                "Rename the record type; imported names and builtins are taken.",
            )
    out: List[str] = []
    emit = out.append

    emit(f'"""{module_name}: record types (GENERATED by dext - DO NOT EDIT)."""')
    emit("from typing import Any, Dict, FrozenSet, List, Optional, Set, Tuple, Union")
    emit("")
    emit("from dext import runtime as _rt")
    emit("from dext.conv import IntType")
    emit("from dext.record import FieldSpec, Record, RecordFlag, RecordOptions, RecordType")
    emit("from dext.runtime import Char")
    emit("")
    emit(f"__all__ = {[rt.name for rt in rtypes]!r}")
    for rt in rtypes:
        emit("")
        emit("")
        emit(gen_record_class(rt).rstrip("\n"))
    emit("")
    src = "\n".join(out)
    log.debug("generated module %s with %d record type(s)", module_name, len(rtypes))
    return src
