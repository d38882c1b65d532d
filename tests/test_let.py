from itertools import count

import pytest

from dext import Slot, let, record, unpack
from dext.diagnostics import ArityError, FieldTypeError

Point = record("Point", [("x", int), ("y", int)], destructure=True)


def test_bind_list():
    a, b = Slot(), Slot()
    let(a, b).bind([1, 2])
    assert (a.value, b.value) == (1, 2)


def test_extra_items_are_ignored():
    assert unpack([1, 2, 3, 4], 2) == (1, 2)
    assert unpack(range(500), 3) == (0, 1, 2)


def test_too_few_items_in_sequence():
    with pytest.raises(ArityError) as ei:
        unpack([1, 2], 3)
    assert ei.value.code == "DXT-LET-0001"
    assert str(ei.value) == "Sequence has too few items to unpack (expecting at least 3)"


def test_iterables_are_consumed_lazily():
    squares = (i * i for i in count())
    assert unpack(squares, 3) == (0, 1, 4)
    assert next(squares) == 9


def test_too_few_items_in_iterable():
    with pytest.raises(ArityError) as ei:
        unpack(iter([1]), 2)
    assert str(ei.value) == "Range has too few items to unpack (expecting at least 2)"


def test_none_skips_a_position():
    b = Slot()
    let(None, b).bind((1, 2))
    assert b.value == 2


def test_records_destructure_themselves():
    x, y = Slot(), Slot()
    let(x, y).bind(Point(10, 15))
    assert (x.value, y.value) == (10, 15)
    with pytest.raises(ArityError) as ei:
        unpack(Point(1, 2), 3)
    assert ei.value.code == "DXT-REC-0202"


def test_custom_destructure():
    class Pair:
        def destructure(self, first, second):
            first.value, second.value = "left", "right"

    assert unpack(Pair(), 2) == ("left", "right")


@pytest.mark.parametrize("source", ["ab", b"ab", 5, None])
def test_not_unpackable(source):
    with pytest.raises(FieldTypeError) as ei:
        unpack(source, 1)
    assert ei.value.code == "DXT-LET-0002"


def test_let_only_takes_slots():
    with pytest.raises(TypeError):
        let(1)


def test_zero_slots():
    assert unpack([], 0) == ()


def test_slot_repr():
    assert repr(Slot(3)) == "Slot(3)"
    assert Slot().value is None
