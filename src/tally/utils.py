from __future__ import annotations

import numbers
import os as _os
import sys
import time
from collections.abc import Mapping, Sequence
from typing import Any, Dict, List, Optional
from typing_extensions import TypeGuard

from .types import Table

_SCALAR_SEQUENCES = (str, bytes, bytearray, memoryview)

_TRUE_WORDS = {"1", "true", "yes", "on"}


def is_composite(value: Any) -> TypeGuard[Table | Mapping | Sequence]:
    if isinstance(value, (Table, Mapping)):
        return True

    return isinstance(value, Sequence) and not isinstance(value, _SCALAR_SEQUENCES)


def kind(value: Any) -> str:
    """Type tag of a value: nil, boolean, number, string, table, function or userdata."""
    match value:
        case None:
            return "nil"
        case bool():
            return "boolean"
        case numbers.Number():
            return "number"
        case str():
            return "string"
        case _ if is_composite(value):
            return "table"
        case _ if callable(value):
            return "function"
        case _:
            return "userdata"


def sequential_facet(value: Any) -> List[Any]:
    match value:
        case Table(items=items):
            return list(items)
        case Mapping():
            run: List[Any] = []
            pos = 1

            while pos in value:
                run.append(value[pos])
                pos += 1

            return run
        case _:
            return list(value)


def associative_facet(value: Any) -> Dict[Any, Any]:
    match value:
        case Table(items=items, slots=slots):
            entries = {i: v for i, v in enumerate(items, start=1)}
            entries.update(slots)
            return entries
        case Mapping():
            return dict(value.items())
        case _:
            return {i: v for i, v in enumerate(value, start=1)}


def call_target(value: Any) -> Optional[Any]:
    """Return the value's delegated ``__call__`` capability, or None."""
    match value:
        case Table(slots=slots):
            return slots.get("__call__")
        case Mapping():
            return value.get("__call__")

    instance_vars = getattr(value, "__dict__", None)
    if isinstance(instance_vars, dict):
        return instance_vars.get("__call__")

    return None


def error_payload(exc: BaseException) -> Any:
    """A single-argument exception carries that argument as its payload."""
    if len(exc.args) == 1:
        return exc.args[0]

    return exc


def caller_location(depth: int = 2) -> str:
    frame = sys._getframe(depth)
    return f"{frame.f_code.co_filename}:{frame.f_lineno}"


def monotonic_ms() -> float:
    return time.perf_counter() * 1000.0


def env_flag(name: str) -> bool:
    raw = _os.environ.get(name)
    if raw is None:
        return False

    return raw.strip().lower() in _TRUE_WORDS


def debug_py_trace_enabled() -> bool:
    return env_flag("TALLY_DEBUG_PY_TRACE")
