"""Lexer for the Kaleidoscope language.

Pull-based: the parser asks for one token at a time with ``next_token()``.
The lexer keeps a single character of look-back (the character that ended the
previous token) and reads the underlying stream one character at a time, so it
works unchanged on an interactive stdin.
"""

from __future__ import annotations

import io
import re
from collections.abc import Iterator
from typing import TextIO

from kaleido.source import Span
from kaleido.tokens import KEYWORDS, Token, TokenKind

# Longest prefix a C-style strtod would accept from a [0-9.]+ run.
_LEADING_FLOAT = re.compile(r"\d+\.?\d*|\.\d+")


def parse_number(text: str) -> float:
    """Convert a ``[0-9.]+`` run to a float the lenient way.

    Malformed literals are not rejected: ``"1.2.3"`` reads as ``1.2`` and a
    bare ``"."`` reads as ``0.0``.
    """
    match = _LEADING_FLOAT.match(text)
    if match is None:
        return 0.0
    return float(match.group())


def _is_alpha(ch: str) -> bool:
    return ch.isascii() and ch.isalpha()


def _is_alnum(ch: str) -> bool:
    return ch.isascii() and ch.isalnum()


def _is_number_char(ch: str) -> bool:
    return (ch.isascii() and ch.isdigit()) or ch == "."


class Lexer:
    """Tokenizes Kaleidoscope source text or a text stream."""

    def __init__(self, source: str | TextIO, filename: str = "<stdin>") -> None:
        self.stream: TextIO = io.StringIO(source) if isinstance(source, str) else source
        self.filename = filename
        # Position of the next character the stream will hand out.
        self._next_line = 1
        self._next_col = 1
        # The character read but not yet consumed, and where it sits.
        # "" means end of input.
        self._last_char = " "
        self._char_line = 1
        self._char_col = 0

    def __iter__(self) -> Iterator[Token]:
        """Yield tokens up to and including the first EOF token."""
        while True:
            tok = self.next_token()
            yield tok
            if tok.kind == TokenKind.EOF:
                return

    def lex(self) -> list[Token]:
        """Tokenize the remaining input and return the token list (EOF included)."""
        return list(self)

    # ── Helpers ───────────────────────────────────────────────────

    def _read(self) -> str:
        ch = self.stream.read(1)
        self._char_line = self._next_line
        self._char_col = self._next_col
        if ch == "\n":
            self._next_line += 1
            self._next_col = 1
        elif ch:
            self._next_col += 1
        self._last_char = ch
        return ch

    def _span(self, line: int, col: int, end_line: int, end_col: int) -> Span:
        return Span(self.filename, line, col, end_line, end_col)

    # ── Tokens ────────────────────────────────────────────────────

    def next_token(self) -> Token:
        """Consume and return the next token from the input."""
        while True:
            while self._last_char.isspace():
                self._read()

            ch = self._last_char
            line, col = self._char_line, self._char_col

            if _is_alpha(ch):
                return self._lex_identifier(line, col)
            if _is_number_char(ch):
                return self._lex_number(line, col)
            if ch == "#":
                self._skip_comment()
                continue
            if ch == "":
                return Token(TokenKind.EOF, "", self._span(line, col, line, col))

            self._read()
            return Token(TokenKind.CHAR, ch, self._span(line, col, line, col))

    def _lex_identifier(self, line: int, col: int) -> Token:
        chars = [self._last_char]
        end_line, end_col = line, col
        while _is_alnum(self._read()):
            chars.append(self._last_char)
            end_line, end_col = self._char_line, self._char_col
        text = "".join(chars)
        kind = KEYWORDS.get(text, TokenKind.IDENTIFIER)
        return Token(kind, text, self._span(line, col, end_line, end_col))

    def _lex_number(self, line: int, col: int) -> Token:
        chars = [self._last_char]
        end_line, end_col = line, col
        while _is_number_char(self._read()):
            chars.append(self._last_char)
            end_line, end_col = self._char_line, self._char_col
        text = "".join(chars)
        return Token(
            TokenKind.NUMBER, text,
            self._span(line, col, end_line, end_col),
            number=parse_number(text),
        )

    def _skip_comment(self) -> None:
        """Discard a ``#`` comment up to (not including) the line terminator."""
        while self._read() not in ("", "\n", "\r"):
            pass
