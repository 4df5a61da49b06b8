"""Structural equality over scalars and composite values."""

from __future__ import annotations

from typing import Any, Set, Tuple

from .utils import associative_facet, is_composite, kind, sequential_facet


def equal(a: Any, b: Any) -> bool:
    """Deep structural equality.

    Scalars compare by identity or by value within the same kind tag.
    Composites compare their sequential facets position by position and their
    associative facets key by key in both directions; a missing entry
    compares as ``None``. A composite never equals a scalar.
    """
    return _equal(a, b, set())


def _equal(a: Any, b: Any, active: Set[Tuple[int, int]]) -> bool:
    a_composite = is_composite(a)
    b_composite = is_composite(b)

    if not a_composite and not b_composite:
        return _scalar_equal(a, b)

    if a_composite != b_composite:
        return False

    if a is b:
        return True

    pair = (id(a), id(b))
    # a pair already on the comparison path is assumed equal
    if pair in active:
        return True

    active.add(pair)
    try:
        return _composite_equal(a, b, active)
    finally:
        active.discard(pair)


def _composite_equal(a: Any, b: Any, active: Set[Tuple[int, int]]) -> bool:
    seq_a = sequential_facet(a)
    seq_b = sequential_facet(b)

    for idx in range(max(len(seq_a), len(seq_b))):
        left = seq_a[idx] if idx < len(seq_a) else None
        right = seq_b[idx] if idx < len(seq_b) else None

        if not _equal(left, right, active):
            return False

    assoc_a = associative_facet(a)
    assoc_b = associative_facet(b)

    for key, value in assoc_a.items():
        if not _equal(value, assoc_b.get(key), active):
            return False

    for key, value in assoc_b.items():
        if not _equal(assoc_a.get(key), value, active):
            return False

    return True


def _scalar_equal(a: Any, b: Any) -> bool:
    if a is b:
        return True

    if kind(a) != kind(b):
        return False

    try:
        return bool(a == b)
    except Exception:
        return False
