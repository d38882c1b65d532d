"""Unpack sequences, iterables and records into output slots.

    x, y = Slot(), Slot()
    let(x, y).bind(point)        # point.destructure(x, y)
    x.value, y.value

    a, b, c = unpack(range(500), 3)   # (0, 1, 2)

Sequences need at least as many items as there are slots, other iterables
are consumed lazily and only as far as needed. Objects with a
``destructure(*slots)`` method decide for themselves (records check the
slot count exactly). Pass ``None`` instead of a slot to skip a position.
"""

from __future__ import annotations
import collections.abc as cabc
from typing import Any, Generic, Optional, Tuple, TypeVar

from .diagnostics import ArityError, FieldTypeError

T = TypeVar("T")


class Slot(Generic[T]):
    __slots__ = ("value",)

    def __init__(self, value: Optional[T] = None):
        self.value = value

    def __repr__(self):
        return f"Slot({self.value!r})"


class LetAssigner:
    __slots__ = ("slots",)

    def __init__(self, slots: Tuple[Optional[Slot], ...]):
        self.slots = slots

    def bind(self, source: Any) -> None:
        n = len(self.slots)
        destructure = getattr(source, "destructure", None)
        if callable(destructure) and not isinstance(source, type):
            destructure(*self.slots)
            return
        if isinstance(source, (str, bytes)):
            raise _not_unpackable(source)
        if isinstance(source, cabc.Sequence):
            if len(source) < n:
                raise ArityError.make(
                    "DXT-LET-0001",
                    f"Sequence has too few items to unpack (expecting at least {n})",
                )
            values = [source[i] for i in range(n)]
        elif isinstance(source, cabc.Iterable):
            values = []
            it = iter(source)
            for _ in range(n):
                try:
                    values.append(next(it))
                except StopIteration:
                    raise ArityError.make(
                        "DXT-LET-0001",
                        f"Range has too few items to unpack (expecting at least {n})",
                    ) from None
        else:
            raise _not_unpackable(source)
        for slot, v in zip(self.slots, values):
            if slot is not None:
                slot.value = v


def _not_unpackable(source: Any) -> FieldTypeError:
    return FieldTypeError.make(
        "DXT-LET-0002",
        f"cannot unpack {type(source).__name__}",
        "Unpack a sequence, an iterable, or an object with a destructure() method.",
    )


def let(*slots: Optional[Slot]) -> LetAssigner:
    for s in slots:
        if s is not None and not isinstance(s, Slot):
            raise TypeError(f"let() takes Slot objects or None, got {type(s).__name__}")
    return LetAssigner(slots)


def unpack(source: Any, count: int) -> Tuple[Any, ...]:
    """Like ``let`` but returns the first ``count`` values as a tuple."""
    slots = tuple(Slot() for _ in range(count))
    let(*slots).bind(source)
    return tuple(s.value for s in slots)
