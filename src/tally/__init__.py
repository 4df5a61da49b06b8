"""Minimal unit-test harness: structural-equality assertions and a suite runner."""

__all__ = [
    "context",
    "equality",
    "predicates",
    "report",
    "runner",
    "suite",
    "types",
    "utils",
]
