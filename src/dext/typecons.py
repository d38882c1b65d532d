"""Immutable flag sets built from an Enum.

Used to configure generators (records, argument parsers) with a fixed set of
named options instead of loose keyword soup:

    class Tuning(Enum):
        barrel_roll = "do something cool"
        lazy = "be as lazy as possible"

    TuningParams = params_for(Tuning)
    p = TuningParams(Tuning.lazy)
    p.lazy          # True
    p.barrel_roll   # False

Flags not passed to the constructor are False. The member -> slot table is
built once per Enum when the class is created and never changes.
"""

from __future__ import annotations
from enum import Enum
from typing import Dict, Iterator, Tuple, Type

_CACHE: Dict[Type[Enum], type] = {}


class Params:
    _enum: Type[Enum]
    _members: Dict[Enum, int]
    __slots__ = ("_flags",)

    def __init__(self, *flags: Enum):
        bits = [False] * len(self._members)
        for f in flags:
            i = self._members.get(f)
            if i is None:
                raise TypeError(f"{f!r} is not a member of {self._enum.__name__}")
            bits[i] = True
        object.__setattr__(self, "_flags", tuple(bits))

    def __setattr__(self, name, value):
        raise AttributeError(f"{type(self).__name__} is immutable")

    def __contains__(self, flag: Enum) -> bool:
        i = self._members.get(flag)
        return i is not None and self._flags[i]

    def __iter__(self) -> Iterator[Enum]:
        for member, i in self._members.items():
            if self._flags[i]:
                yield member

    def __eq__(self, other):
        if type(other) is not type(self):
            return NotImplemented
        return self._flags == other._flags

    def __hash__(self):
        return hash((self._enum, self._flags))

    def __repr__(self):
        names = ", ".join(f"{self._enum.__name__}.{m.name}" for m in self)
        return f"{type(self).__name__}({names})"

    @property
    def flags(self) -> Tuple[bool, ...]:
        return self._flags

    def with_flags(self, *flags: Enum) -> "Params":
        return type(self)(*self, *flags)


def _flag_property(i: int, doc: str) -> property:
    return property(lambda self: self._flags[i], doc=doc)


def params_for(enum_cls: Type[Enum]) -> type:
    """Return the (cached) Params subclass for ``enum_cls``."""
    if not (isinstance(enum_cls, type) and issubclass(enum_cls, Enum)):
        raise TypeError("params_for() expects an Enum class")
    cls = _CACHE.get(enum_cls)
    if cls is not None:
        return cls

    index = {member: i for i, member in enumerate(enum_cls)}
    ns = {"_enum": enum_cls, "_members": index, "__slots__": ()}
    for member, i in index.items():
        if member.name in ns or hasattr(Params, member.name):
            raise TypeError(f"{enum_cls.__name__}.{member.name} shadows a Params attribute")
        doc = member.value if isinstance(member.value, str) else None
        ns[member.name] = _flag_property(i, doc)

    cls = type(f"{enum_cls.__name__}Params", (Params,), ns)
    _CACHE[enum_cls] = cls
    return cls
