from __future__ import annotations

import math

import pytest

from tests.support.harness import Table, equal

EQUAL_CASES = [
    pytest.param([1, 2, 3], [1, 2, 3], True, id="array-same"),
    pytest.param([1, 2, 3], [1, 2, 4], False, id="array-differs"),
    pytest.param({"a": 1, "b": 2}, {"b": 2, "a": 1}, True, id="hash-key-order"),
    pytest.param([1, 2], Table([1, 2], {"x": 9}), False, id="extra-slot"),
    pytest.param([1, 2], [1, 2, 3], False, id="longer-run"),
    pytest.param({"a": 1}, {"a": 1, "b": 2}, False, id="missing-key"),
    pytest.param([1, [2, {"k": [3]}]], [1, [2, {"k": [3]}]], True, id="nested"),
    pytest.param([1, [2, {"k": [3]}]], [1, [2, {"k": [4]}]], False, id="nested-differs"),
    pytest.param((1, 2), [1, 2], True, id="tuple-vs-list"),
    pytest.param({1: "a", 2: "b"}, ["a", "b"], True, id="positional-dict"),
    pytest.param(Table(["a"], {"n": 1}), Table(["a"], {"n": 1}), True, id="table-same"),
    pytest.param({"a": None}, {}, True, id="nil-entry-is-absent"),
    pytest.param([None], {}, True, id="nil-position-is-absent"),
    pytest.param(Table(slots={1: "a"}), {1: "a"}, True, id="slot-at-first-position-vs-dict"),
    pytest.param(Table(slots={1: "a"}), Table(["a"]), True, id="slot-at-first-position-vs-items"),
    pytest.param(Table(slots={1: "a"}), ["a"], True, id="slot-at-first-position-vs-list"),
    pytest.param([], {}, True, id="empty-composites"),
    pytest.param(1, 1.0, True, id="int-float"),
    pytest.param(True, 1, False, id="bool-vs-int"),
    pytest.param("1", 1, False, id="string-vs-number"),
    pytest.param(None, None, True, id="nil"),
    pytest.param(None, False, False, id="nil-vs-false"),
    pytest.param([1], 1, False, id="composite-vs-scalar"),
    pytest.param("abc", ["a", "b", "c"], False, id="string-is-scalar"),
]


@pytest.mark.parametrize("a, b, expected", EQUAL_CASES)
def test_equal(a, b, expected: bool) -> None:
    assert equal(a, b) is expected


@pytest.mark.parametrize("a, b, expected", EQUAL_CASES)
def test_equal_is_symmetric(a, b, expected: bool) -> None:
    assert equal(b, a) is expected


@pytest.mark.parametrize(
    "value",
    [
        pytest.param(0, id="zero"),
        pytest.param("text", id="string"),
        pytest.param(None, id="nil"),
        pytest.param(math.nan, id="nan-identity"),
        pytest.param(len, id="function"),
        pytest.param([1, [2, [3, {"x": (4, 5)}]]], id="nested"),
        pytest.param(Table([1, 2], {"k": {"deep": [None, 3]}}), id="table"),
    ],
)
def test_equal_is_reflexive(value) -> None:
    assert equal(value, value)


def test_equal_terminates_on_cycles() -> None:
    a: list = [1]
    a.append(a)
    b: list = [1]
    b.append(b)

    assert equal(a, b)

    c: list = [2]
    c.append(c)
    assert not equal(a, c)


def test_equal_on_mutually_recursive_hashes() -> None:
    left = {"name": "x"}
    left["self"] = left
    right = {"name": "x", "self": {"name": "x"}}
    right["self"]["self"] = right

    assert equal(left, right)


def test_scalar_comparison_errors_count_as_unequal() -> None:
    class Exploding:
        def __eq__(self, other):
            raise RuntimeError("no comparison")

        __hash__ = object.__hash__

    assert not equal(Exploding(), Exploding())


def test_table_rejects_slot_on_occupied_position() -> None:
    with pytest.raises(ValueError):
        Table([1, 2], {2: "clash"})


@pytest.mark.parametrize(
    "table, items, slots",
    [
        pytest.param(Table(slots={1: "a"}), ["a"], {}, id="first-position"),
        pytest.param(Table(["a"], {2: "b", 3: "c", "k": 1}), ["a", "b", "c"], {"k": 1}, id="continues-run"),
        pytest.param(Table(["a"], {3: "c"}), ["a"], {3: "c"}, id="gap-stays-slot"),
        pytest.param(Table(slots={1.0: "f"}), [], {1.0: "f"}, id="float-key-stays-slot"),
    ],
)
def test_table_absorbs_contiguous_position_slots(table: Table, items: list, slots: dict) -> None:
    assert table.items == items
    assert table.slots == slots
