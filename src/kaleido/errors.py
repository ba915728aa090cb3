"""Diagnostics for the Kaleidoscope front end and their terminal rendering.

Parser and backend failures are both reported as :class:`Diagnostic` values.
The parser collects them; the backend raises them wrapped in
:class:`CompileError`. :class:`DiagnosticRenderer` prints them in the
``error[E201]: ...`` / ``-->`` / caret layout.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from kaleido.source import Span


class Severity(Enum):
    ERROR = "error"
    WARNING = "warning"
    NOTE = "note"


_SEVERITY_STYLE = {
    Severity.ERROR: "\033[1;31m",
    Severity.WARNING: "\033[1;33m",
    Severity.NOTE: "\033[1;36m",
}
_GUTTER_STYLE = "\033[1;34m"
_MESSAGE_STYLE = "\033[1m"
_RESET = "\033[0m"


@dataclass(frozen=True)
class DiagnosticLabel:
    span: Span
    message: str = ""


@dataclass
class Diagnostic:
    """One problem found in the input, anchored to zero or more spans."""

    severity: Severity
    code: str
    message: str
    labels: list[DiagnosticLabel] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)

    @classmethod
    def error(cls, code: str, message: str, span: Span | None = None) -> Diagnostic:
        labels = [] if span is None else [DiagnosticLabel(span)]
        return cls(Severity.ERROR, code, message, labels)

    @property
    def span(self) -> Span | None:
        """The primary location, if the diagnostic has one."""
        return self.labels[0].span if self.labels else None

    def with_note(self, note: str) -> Diagnostic:
        return replace(self, notes=[*self.notes, note])

    def __str__(self) -> str:
        head = f"{self.severity.value}[{self.code}]: {self.message}"
        return head if self.span is None else f"{self.span}: {head}"


class DiagnosticRenderer:
    """Formats diagnostics for a terminal, optionally with ANSI colors.

    Source excerpts come from ``sources`` (filename to text) first, then
    from disk. A span whose file is neither, such as ``<stdin>``, is shown
    as a location only.
    """

    def __init__(self, *, color: bool = True, sources: Mapping[str, str] | None = None) -> None:
        self.color = color
        self._lines: dict[str, list[str]] = {
            name: text.splitlines() for name, text in (sources or {}).items()
        }

    def _paint(self, style: str, text: str) -> str:
        if not self.color:
            return text
        return f"{style}{text}{_RESET}"

    def _source_line(self, filename: str, line: int) -> str | None:
        if filename not in self._lines:
            path = Path(filename)
            try:
                self._lines[filename] = path.read_text().splitlines() if path.is_file() else []
            except OSError:
                self._lines[filename] = []
        lines = self._lines[filename]
        return lines[line - 1] if 1 <= line <= len(lines) else None

    def _excerpt(self, label: DiagnosticLabel, style: str) -> list[str]:
        span = label.span
        bar = self._paint(_GUTTER_STYLE, "   |")
        out = [f"  {self._paint(_GUTTER_STYLE, '-->')} {span}"]

        text = self._source_line(span.file, span.start_line)
        if text is None:
            return out
        out.append(f"  {bar}")
        out.append(f"  {self._paint(_GUTTER_STYLE, f'{span.start_line:>4} |')} {text}")
        if span.start_line == span.end_line:
            width = max(1, span.end_col - span.start_col + 1)
            indent = " " * max(0, span.start_col - 1)
            out.append(f"  {bar} {indent}{self._paint(style, '^' * width)}")
        if label.message:
            out.append(f"  {bar}   {self._paint(style, label.message)}")
        return out

    def render(self, diag: Diagnostic) -> str:
        style = _SEVERITY_STYLE[diag.severity]
        lines = [
            self._paint(style, f"{diag.severity.value}[{diag.code}]")
            + self._paint(_MESSAGE_STYLE, f": {diag.message}")
        ]
        for label in diag.labels:
            lines.extend(self._excerpt(label, style))
        for note in diag.notes:
            lines.append(f"  {self._paint(_GUTTER_STYLE, '=')} note: {note}")
        return "\n".join(lines)


class CompileError(Exception):
    """Raised by a backend; carries the diagnostics that caused it."""

    def __init__(self, diagnostics: list[Diagnostic]) -> None:
        self.diagnostics = diagnostics
        super().__init__("\n".join(str(d) for d in diagnostics))
