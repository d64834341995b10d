"""Terminal report output."""

from __future__ import annotations

import sys
from typing import TextIO

from .executil import error as log_error, warn as log_warn

RED = "\033[31m"; YEL = "\033[33m"; GRN = "\033[32m"; DIM = "\033[2m"; CLR = "\033[0m"


class Reporter:
    """Write the human report; colors are a setting, not global state."""

    def __init__(self, color: bool = False, stream: TextIO | None = None):
        self.color = color
        self._stream = stream
        self.warnings: list[str] = []
        self.errors: list[str] = []

    @property
    def stream(self) -> TextIO:
        return self._stream or sys.stdout

    def _paint(self, code: str, text: str) -> str:
        return f"{code}{text}{CLR}" if self.color else text

    def line(self, text: str = "") -> None:
        print(text, file=self.stream, flush=True)

    def section(self, title: str) -> None:
        self.line(f"-- {title} --")

    def heading(self, title: str) -> None:
        self.line(self._paint(YEL, f"== {title} =="))

    def ok(self, text: str) -> None:
        self.line(self._paint(GRN, text))

    def dim(self, text: str) -> None:
        self.line(self._paint(DIM, text))

    def warn(self, text: str) -> None:
        self.warnings.append(text)
        log_warn("report.warning", message=text)
        self.line(f"{self._paint(RED, 'WARNING:')} {text}")

    def error(self, text: str) -> None:
        self.errors.append(text)
        log_error("report.error", message=text)
        self.line(f"{self._paint(RED, 'ERROR:')} {text}")

    def verbatim(self, text: str, empty: str = "(empty)") -> None:
        body = (text or "").rstrip("\n")
        self.line(body if body.strip() else empty)
