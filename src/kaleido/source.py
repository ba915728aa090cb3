"""Source locations for tokens, AST nodes and diagnostics."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Span:
    """A range within a source text (1-indexed lines and columns)."""

    file: str
    start_line: int
    start_col: int
    end_line: int
    end_col: int

    def __str__(self) -> str:
        return f"{self.file}:{self.start_line}:{self.start_col}"

    def to(self, end: Span) -> Span:
        """Return a span from the start of this span to the end of ``end``."""
        return Span(self.file, self.start_line, self.start_col, end.end_line, end.end_col)
