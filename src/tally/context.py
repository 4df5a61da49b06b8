"""Per-test recording context."""

from __future__ import annotations

import logging
import traceback
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional

from .equality import equal
from .predicates import PREDICATES, primary
from .report import Reporter
from .types import Clock, Failure, OnComplete, Predicate, PredicateRegistry, TallyUsageError
from .utils import caller_location, debug_py_trace_enabled, error_payload, monotonic_ms

logger = logging.getLogger(__name__)


@dataclass
class SuiteState:
    """Counters shared by every context of one suite."""
    remaining: int
    on_complete: OnComplete
    exit_code: int = 0
    unfinished: List[str] = field(default_factory=list)
    holds: int = 0
    completed: bool = False

    def finish(self, name: str, failed: bool) -> None:
        if failed:
            self.exit_code = 1

        if name in self.unfinished:
            self.unfinished.remove(name)

        self.remaining -= 1
        self._maybe_complete()

    def hold(self) -> None:
        """Delay completion while a test body is still running."""
        self.holds += 1

    def release(self) -> None:
        self.holds -= 1
        self._maybe_complete()

    def fail(self) -> None:
        self.exit_code = 1

    def _maybe_complete(self) -> None:
        if self.remaining > 0 or self.holds > 0 or self.completed:
            return

        self.completed = True
        logger.debug("suite complete with exit code %d", self.exit_code)
        self.on_complete(self.exit_code)


class Context:
    """Wrapped predicates for one test plus the ``done`` finalizer.

    Every registry entry is reachable as an attribute: a passing call counts
    towards ``tried``, a failing one appends a Failure to ``errors``.
    ``equal`` is exposed raw and is never counted.
    """

    equal = staticmethod(equal)

    def __init__(
        self,
        name: str,
        state: SuiteState,
        registry: PredicateRegistry = PREDICATES,
        clock: Clock = monotonic_ms,
        reporter: Optional[Reporter] = None,
    ):
        self.name = name
        self.tried = 0
        self.errors: List[Failure] = []
        self.finished = False
        self._state = state
        self._clock = clock
        self._reporter = reporter if reporter is not None else Reporter()
        self.started_at = clock()

        for pname, predicate in registry.items():
            if hasattr(self, pname):
                raise TallyUsageError(f"Predicate '{pname}' shadows a context attribute")
            setattr(self, pname, self._wrap(pname, predicate))

    def __repr__(self) -> str:
        return f"<Context {self.name} tried={self.tried} errors={len(self.errors)}>"

    def _wrap(self, pname: str, predicate: Predicate) -> Callable[..., bool]:
        def wrapped(*args: Any, **kwargs: Any) -> bool:
            passed = primary(predicate(*args, **kwargs))

            if passed:
                self.tried += 1
            else:
                self.errors.append(Failure(
                    location=caller_location(2),
                    name=pname,
                    args=args,
                    kwargs=dict(kwargs),
                ))

            return passed

        wrapped.__name__ = pname
        wrapped.__doc__ = predicate.__doc__
        return wrapped

    def abort(self, exc: BaseException) -> None:
        """Record an uncaught test error, then finalize the test."""
        failure = failure_from_exception(exc)

        if self.finished:
            # summary already printed; surface the error and fail the suite
            self._reporter.failure(failure)
            self._state.fail()
            return

        self.errors.append(failure)
        self.done()

    def done(self) -> None:
        if self.finished:
            raise TallyUsageError(f"done() called more than once in test '{self.name}'")

        self.finished = True
        elapsed = self._clock() - self.started_at
        total = self.tried + len(self.errors)
        color = "green" if not self.errors else "red"

        self._reporter.line(
            color,
            f"{self.name}: {self.tried}/{total} within {elapsed / 1000.0:.3f} seconds",
        )

        for failure in self.errors:
            self._reporter.failure(failure)

        self._state.finish(self.name, failed=bool(self.errors))


def failure_from_exception(exc: BaseException) -> Failure:
    frames = traceback.extract_tb(exc.__traceback__)
    location = f"{frames[-1].filename}:{frames[-1].lineno}" if frames else "<unknown>"
    trace = None

    if debug_py_trace_enabled():
        trace = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))

    return Failure(
        location=location,
        name=type(exc).__name__,
        message=str(error_payload(exc)),
        trace=trace,
    )


def build_context(
    name: str,
    state: SuiteState,
    registry: PredicateRegistry = PREDICATES,
    clock: Clock = monotonic_ms,
    reporter: Optional[Reporter] = None,
) -> Context:
    return Context(name, state, registry=registry, clock=clock, reporter=reporter)
