from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, NamedTuple, Optional, Tuple
from typing_extensions import Protocol, TypeAlias

# ---------- Value Model ----------

@dataclass
class Table:
    """Hybrid composite: a positional run plus keyed slots, like a Lua table."""
    items: List[Any] = field(default_factory=list)
    slots: Dict[Any, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for key in self.slots:
            if _is_position(key) and 1 <= key <= len(self.items):
                raise ValueError(f"Table slot {key!r} collides with a positional item")

        # slots continuing the positional run belong to it
        self.items = list(self.items)
        self.slots = dict(self.slots)
        nxt = len(self.items) + 1

        while nxt in self.slots and _is_position(_slot_key(self.slots, nxt)):
            self.items.append(self.slots.pop(nxt))
            nxt += 1

    def __repr__(self) -> str:
        parts = [repr(x) for x in self.items]

        for k, v in self.slots.items():
            parts.append(f"{k!r}: {v!r}")

        return "Table{" + ", ".join(parts) + "}"

def _is_position(key: Any) -> bool:
    return isinstance(key, int) and not isinstance(key, bool)

def _slot_key(slots: Dict[Any, Any], pos: int) -> Any:
    # True hashes like 1; return the key actually stored
    return next(k for k in slots if k == pos and hash(k) == hash(pos))

class Verdict(NamedTuple):
    """Result of a higher-order predicate: primary outcome plus payload."""
    passed: bool
    payload: Any = None

@dataclass
class Failure:
    location: str
    name: str
    message: str = "assertion failed"
    args: Tuple[Any, ...] = ()
    kwargs: Dict[str, Any] = field(default_factory=dict)
    trace: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.location}: {self.name}: {self.message}"

    def render_args(self) -> Optional[str]:
        if not self.args and not self.kwargs:
            return None

        bits = [repr(a) for a in self.args]
        bits.extend(f"{k}={v!r}" for k, v in self.kwargs.items())
        return "with (" + ", ".join(bits) + ")"

Predicate: TypeAlias = Callable[..., Any]
PredicateRegistry: TypeAlias = Mapping[str, Predicate]
TestFn: TypeAlias = Callable[[Any], Any]
TestMapping: TypeAlias = Mapping[str, TestFn]
OnComplete: TypeAlias = Callable[[int], None]

class Clock(Protocol):
    def __call__(self) -> float: ...

# ---------- Exceptions ----------

class TallyError(Exception):
    pass

class TallyUsageError(TallyError):
    pass

class TallyLoadError(TallyError):
    def __init__(self, path: str, reason: str):
        super().__init__(f"Cannot load tests from {path}: {reason}")
        self.path = path
        self.reason = reason

class TallyStallError(TallyError):
    def __init__(self, path: str, names: List[str]):
        listed = ", ".join(sorted(names))
        super().__init__(f"{path}: test(s) never called done(): {listed}")
        self.path = path
        self.names = names
