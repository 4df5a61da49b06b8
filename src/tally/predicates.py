"""Assertion predicates and the registry the test context wraps."""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Callable, Dict, Optional, Set

from .equality import equal
from .types import Predicate, PredicateRegistry, Verdict
from .utils import associative_facet, call_target, error_payload, kind, sequential_facet

MAX_CALL_DELEGATION = 8

NEGATION_PREFIX = "not_"


def primary(result: Any) -> bool:
    """Primary outcome of a predicate call; a Verdict carries it first."""
    if isinstance(result, Verdict):
        return bool(result.passed)

    return ok(result)


def ok(a: Any) -> bool:
    return a is not None and a is not False


def is_nil(a: Any) -> bool:
    return equal(kind(a), "nil")


def is_number(a: Any) -> bool:
    return equal(kind(a), "number")


def is_boolean(a: Any) -> bool:
    return equal(kind(a), "boolean")


def is_string(a: Any) -> bool:
    return equal(kind(a), "string")


def is_table(a: Any) -> bool:
    return kind(a) == "table"


def is_array(a: Any) -> bool:
    if not is_table(a):
        return False

    # a None entry is an absent one
    keys = [k for k, v in associative_facet(a).items() if v is not None]

    if any(not isinstance(k, int) or isinstance(k, bool) for k in keys):
        return False

    expected = 1
    for key in sorted(keys):
        if key != expected:
            return False
        expected += 1

    return True


def is_hash(a: Any) -> bool:
    if not is_table(a):
        return False

    run = sequential_facet(a)
    return not run or run[0] is None


def is_callable(a: Any) -> bool:
    return _delegates_to_callable(a, MAX_CALL_DELEGATION, set())


def _delegates_to_callable(value: Any, budget: int, seen: Set[int]) -> bool:
    if callable(value):
        return True

    if budget <= 0 or id(value) in seen:
        return False

    target = call_target(value)
    if target is None:
        return False

    seen.add(id(value))
    return _delegates_to_callable(target, budget - 1, seen)


def throws(fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Verdict:
    try:
        fn(*args, **kwargs)
    except Exception as exc:
        payload = error_payload(exc)
        return Verdict(ok(payload), payload)

    return Verdict(False)


def same(actual: Any, expected: Any) -> bool:
    return equal(actual, expected)


BASE_PREDICATES: PredicateRegistry = MappingProxyType({
    "ok": ok,
    "same": same,
    "is_nil": is_nil,
    "is_number": is_number,
    "is_boolean": is_boolean,
    "is_string": is_string,
    "is_table": is_table,
    "is_array": is_array,
    "is_hash": is_hash,
    "is_callable": is_callable,
    "throws": throws,
})


def negate(name: str, predicate: Predicate) -> Predicate:
    def negated(*args: Any, **kwargs: Any) -> bool:
        return not primary(predicate(*args, **kwargs))

    negated.__name__ = NEGATION_PREFIX + name
    negated.__qualname__ = negated.__name__
    negated.__doc__ = f"Negation of {name}."
    return negated


def derive_negations(base: PredicateRegistry) -> Dict[str, Predicate]:
    """One negation level: ``not_<name>`` for every entry of *base*."""
    return {NEGATION_PREFIX + name: negate(name, fn) for name, fn in base.items()}


def build_registry(base: Optional[PredicateRegistry] = None) -> PredicateRegistry:
    base = BASE_PREDICATES if base is None else base
    merged: Dict[str, Predicate] = dict(base)

    for name, fn in derive_negations(base).items():
        if name in merged:
            raise ValueError(f"Predicate '{name}' is already registered")
        merged[name] = fn

    return MappingProxyType(merged)


PREDICATES: PredicateRegistry = build_registry()
