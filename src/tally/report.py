"""Terminal output: coloured summary lines, failure listings and diagnostics."""

from __future__ import annotations

import pprint
import sys
from typing import Any, Optional, TextIO

from prompt_toolkit import print_formatted_text
from prompt_toolkit.formatted_text import FormattedText

from .types import Failure

# Colour name => prompt_toolkit style string.
COLOR_STYLE = {
    "green": "ansigreen",
    "red": "ansired",
    "yellow": "ansiyellow",
    "gray": "ansigray",
}


def colorize(color: str, text: str) -> FormattedText:
    style = COLOR_STYLE.get(color)
    if style is None:
        raise ValueError(f"Unknown colour '{color}'")

    return FormattedText([(style, text)])


class Reporter:
    def __init__(self, stream: Optional[TextIO] = None, err: Optional[TextIO] = None, color: bool = True):
        self._stream = stream
        self._err = err
        self.color = color

    @property
    def stream(self) -> TextIO:
        # resolved lazily so pytest's capsys swaps are honoured
        return self._stream if self._stream is not None else sys.stdout

    @property
    def err(self) -> TextIO:
        return self._err if self._err is not None else sys.stderr

    def line(self, color: str, text: str) -> None:
        if self.color:
            print_formatted_text(colorize(color, text), file=self.stream)
        else:
            print(text, file=self.stream)

    def failure(self, failure: Failure) -> None:
        self.line("red", f"  {failure}")

        rendered = failure.render_args()
        if rendered is not None:
            print(f"    {rendered}", file=self.stream)

        if failure.trace:
            print("\nPython traceback:", file=self.stream)
            print(failure.trace, file=self.stream, end="")

    def dump(self, *values: Any) -> None:
        """Diagnostic sink: pretty-print arbitrary values to stderr."""
        for value in values:
            text = value if isinstance(value, str) else pprint.pformat(value)
            print(text, file=self.err)
