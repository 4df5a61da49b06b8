from __future__ import annotations

import importlib.util
import itertools
import logging
import os
import sys
import traceback
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

from .predicates import PREDICATES
from .report import Reporter
from .suite import run_tests
from .types import (
    Clock, OnComplete, PredicateRegistry, TallyError, TallyLoadError, TallyStallError, TestMapping,
)
from .utils import debug_py_trace_enabled, env_flag, monotonic_ms

logger = logging.getLogger(__name__)

_module_ids = itertools.count()

USAGE = "usage: tally [--no-color] [--strict-load] [--py-traceback] [--verbose] FILE [FILE ...]"


@dataclass(frozen=True)
class RunOptions:
    color: bool = True
    strict_load: bool = False
    py_traceback: bool = False
    verbose: bool = False

    @classmethod
    def from_env(cls) -> "RunOptions":
        return cls(
            color="NO_COLOR" not in os.environ,
            strict_load=env_flag("TALLY_STRICT_LOAD"),
            py_traceback=debug_py_trace_enabled(),
            verbose=env_flag("TALLY_DEBUG"),
        )


class Completion:
    """One-shot completion handle for a suite run."""

    def __init__(self) -> None:
        self._code: Optional[int] = None

    @property
    def resolved(self) -> bool:
        return self._code is not None

    def resolve(self, code: int) -> None:
        if self._code is not None:
            raise TallyError("suite completion fired more than once")
        self._code = code

    def result(self) -> int:
        if self._code is None:
            raise TallyError("suite has not completed")
        return self._code


def resolve_path(base: str | Path, relative: str | Path) -> Path:
    return (Path(base) / Path(relative).expanduser()).resolve()


def suite_module_name(path: Path) -> str:
    return f"tally_suite_{path.stem}_{next(_module_ids)}"


def load_tests(path: Path, module_name: Optional[str] = None) -> TestMapping:
    """Import *path* as a module and return its name -> test function mapping.

    The module's ``tests`` mapping wins; without one every top-level
    callable named ``test_*`` is collected.
    """
    if not path.exists():
        raise TallyLoadError(str(path), "file not found")

    if not path.is_file():
        raise TallyLoadError(str(path), "not a file")

    module_name = module_name or suite_module_name(path)
    spec = importlib.util.spec_from_file_location(module_name, path)

    if spec is None or spec.loader is None:
        raise TallyLoadError(str(path), "could not create a module spec")

    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module

    try:
        spec.loader.exec_module(module)
    except Exception as exc:
        sys.modules.pop(module_name, None)
        raise TallyLoadError(str(path), f"{type(exc).__name__}: {exc}") from exc

    exported = getattr(module, "tests", None)

    if exported is None:
        return {
            name: value
            for name, value in vars(module).items()
            if name.startswith("test_") and callable(value)
        }

    if not isinstance(exported, Mapping):
        sys.modules.pop(module_name, None)
        raise TallyLoadError(str(path), f"'tests' must be a mapping, got {type(exported).__name__}")

    return exported


def run_files(
    paths: Sequence[str],
    on_complete: OnComplete,
    options: Optional[RunOptions] = None,
    reporter: Optional[Reporter] = None,
    registry: PredicateRegistry = PREDICATES,
    clock: Clock = monotonic_ms,
    loader: Callable[[Path, str], TestMapping] = load_tests,
    cwd: Optional[str] = None,
) -> None:
    """Run the files one at a time, last path first.

    ``on_complete`` receives 1 if any suite failed, else 0. Load failures are
    reported and skipped unless ``strict_load`` is set.
    """
    options = options if options is not None else RunOptions()
    reporter = reporter if reporter is not None else Reporter(color=options.color)
    worklist: List[str] = list(paths)
    base = cwd if cwd is not None else os.getcwd()
    exit_code = 0

    while worklist:
        raw = worklist.pop()
        path = resolve_path(base, raw)
        module_name = suite_module_name(path)
        logger.debug("loading %s as %s", path, module_name)

        try:
            tests = loader(path, module_name)
        except TallyLoadError as exc:
            reporter.dump(str(exc))

            if options.py_traceback and exc.__cause__ is not None:
                cause = exc.__cause__
                reporter.dump("".join(traceback.format_exception(type(cause), cause, cause.__traceback__)))

            if options.strict_load:
                exit_code = 1
            continue

        handle = Completion()
        try:
            state = run_tests(tests, handle.resolve, registry=registry, clock=clock, reporter=reporter)
        finally:
            sys.modules.pop(module_name, None)

        if not handle.resolved:
            raise TallyStallError(str(path), list(state.unfinished))

        if handle.result() != 0:
            exit_code = 1

        logger.debug("finished %s, accumulated exit code %d", path, exit_code)

    on_complete(exit_code)


def parse_args(argv: Sequence[str]) -> tuple[RunOptions, List[str]]:
    env = RunOptions.from_env()
    flags: Dict[str, bool] = {
        "color": env.color,
        "strict_load": env.strict_load,
        "py_traceback": env.py_traceback,
        "verbose": env.verbose,
    }
    files: List[str] = []
    it = iter(argv)

    for token in it:
        if token == "--":
            files.extend(it)
            break

        if token == "--no-color":
            flags["color"] = False
            continue

        if token == "--strict-load":
            flags["strict_load"] = True
            continue

        if token == "--py-traceback":
            flags["py_traceback"] = True
            continue

        if token in ("-v", "--verbose"):
            flags["verbose"] = True
            continue

        if token in ("-h", "--help"):
            raise SystemExit(USAGE)

        if token.startswith("-"):
            raise SystemExit(f"Unknown option: {token}\n{USAGE}")

        files.append(token)

    if not files:
        raise SystemExit(USAGE)

    return RunOptions(**flags), files


def main(argv: Optional[Sequence[str]] = None, exit: Callable[[int], object] = sys.exit) -> None:
    options, files = parse_args(sys.argv[1:] if argv is None else argv)

    logging.basicConfig(
        level=logging.DEBUG if options.verbose else logging.WARNING,
        format="%(name)s: %(levelname)s: %(message)s",
    )

    if options.py_traceback:
        os.environ["TALLY_DEBUG_PY_TRACE"] = "1"

    reporter = Reporter(color=options.color)
    outcome: List[int] = []

    try:
        run_files(files, outcome.append, options=options, reporter=reporter)
    except TallyStallError as exc:
        reporter.dump(f"Error: {exc}")
        exit(1)
        return

    exit(outcome[0])


if __name__ == "__main__":
    main()
