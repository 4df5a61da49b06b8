from __future__ import annotations

import sys
from collections import Counter
from pathlib import Path
from typing import List

import pytest

BASE_DIR = Path(__file__).resolve().parent.parent
SRC_DIR = (BASE_DIR / "src").resolve()

if str(BASE_DIR) not in sys.path:
    sys.path.append(str(BASE_DIR))
if str(SRC_DIR) not in sys.path:
    sys.path.append(str(SRC_DIR))

TALLY_ENV = ("TALLY_DEBUG", "TALLY_DEBUG_PY_TRACE", "TALLY_STRICT_LOAD", "NO_COLOR")


@pytest.fixture(autouse=True)
def _clean_tally_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep developer shell flags from leaking into runs."""
    for name in TALLY_ENV:
        monkeypatch.delenv(name, raising=False)


def pytest_collection_modifyitems(config: pytest.Config, items: List[pytest.Item]) -> None:
    """Scenario tables reuse ids across modules; reject clashes inside one."""
    del config

    counts = Counter(item.nodeid for item in items)
    clashes = sorted(nodeid for nodeid, seen in counts.items() if seen > 1)

    if clashes:
        listed = "\n".join(f"- {nodeid}" for nodeid in clashes)
        raise pytest.UsageError(f"Scenario ids collide after parametrization:\n{listed}")
