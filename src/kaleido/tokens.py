"""Token kinds and token representation for the Kaleidoscope lexer."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from kaleido.source import Span


class TokenKind(Enum):
    EOF = auto()

    # Commands
    DEF = auto()
    EXTERN = auto()

    # Primary
    IDENTIFIER = auto()
    NUMBER = auto()

    # Control flow
    IF = auto()
    THEN = auto()
    ELSE = auto()
    FOR = auto()
    IN = auto()

    # Operator definitions
    BINARY = auto()
    UNARY = auto()

    # Any other single character: punctuation, operator symbols
    CHAR = auto()


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    value: str
    span: Span
    number: float = 0.0

    def is_char(self, ch: str) -> bool:
        return self.kind == TokenKind.CHAR and self.value == ch

    @property
    def is_ascii_char(self) -> bool:
        """True for a raw ASCII character token (a candidate operator symbol)."""
        return self.kind == TokenKind.CHAR and self.value.isascii()

    def describe(self) -> str:
        if self.kind == TokenKind.CHAR:
            return repr(self.value)
        if self.kind == TokenKind.EOF:
            return "end of input"
        if self.kind in (TokenKind.IDENTIFIER, TokenKind.NUMBER):
            return f"{self.kind.name.lower()} {self.value!r}"
        return f"'{self.value}'"


KEYWORDS: dict[str, TokenKind] = {
    "def": TokenKind.DEF,
    "extern": TokenKind.EXTERN,
    "if": TokenKind.IF,
    "then": TokenKind.THEN,
    "else": TokenKind.ELSE,
    "for": TokenKind.FOR,
    "in": TokenKind.IN,
    "binary": TokenKind.BINARY,
    "unary": TokenKind.UNARY,
}
