"""Run every named test of one loaded suite."""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, List, Optional, Tuple

from .context import Context, SuiteState, build_context
from .predicates import PREDICATES
from .report import Reporter
from .types import Clock, OnComplete, PredicateRegistry, TestMapping
from .utils import monotonic_ms

logger = logging.getLogger(__name__)

Pending = Tuple[Context, Awaitable[Any]]


def run_tests(
    tests: Optional[TestMapping],
    on_complete: OnComplete,
    registry: PredicateRegistry = PREDICATES,
    clock: Clock = monotonic_ms,
    reporter: Optional[Reporter] = None,
) -> SuiteState:
    """Run each test against a fresh context.

    ``on_complete`` fires once, after the last context finalizes, with 1 if
    any test failed an assertion or raised, else 0. Tests returning an
    awaitable are driven together on one event loop before this returns.
    """
    tests = tests if tests is not None else {}
    reporter = reporter if reporter is not None else Reporter()
    state = SuiteState(remaining=len(tests), on_complete=on_complete, unfinished=list(tests))

    if not tests:
        on_complete(0)
        return state

    pending: List[Pending] = []

    for name, test_fn in tests.items():
        context = build_context(name, state, registry=registry, clock=clock, reporter=reporter)
        logger.debug("running test %s", name)
        state.hold()

        try:
            result = test_fn(context)
        except Exception as exc:
            context.abort(exc)
            state.release()
            continue

        if inspect.isawaitable(result):
            pending.append((context, result))
        else:
            state.release()

    if pending:
        asyncio.run(_drive(state, pending))

    return state


async def _drive(state: SuiteState, pending: List[Pending]) -> None:
    async def guard(context: Context, awaitable: Awaitable[Any]) -> None:
        try:
            await awaitable
        except Exception as exc:
            context.abort(exc)
        finally:
            state.release()

    await asyncio.gather(*(guard(ctx, aw) for ctx, aw in pending))
