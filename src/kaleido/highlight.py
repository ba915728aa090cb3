"""Pygments lexer for the Kaleidoscope language."""

from __future__ import annotations

from pygments import highlight
from pygments.formatters import TerminalFormatter
from pygments.lexer import RegexLexer, bygroups, words
from pygments.token import (
    Comment,
    Keyword,
    Name,
    Number,
    Operator,
    Punctuation,
    Text,
)

from kaleido.tokens import KEYWORDS


class KaleidoLexer(RegexLexer):
    """Pygments lexer for the Kaleidoscope language."""

    name = "Kaleidoscope"
    aliases = ["kaleidoscope", "kaleido"]
    filenames = ["*.kal", "*.ks"]
    mimetypes = ["text/x-kaleidoscope"]

    tokens = {
        "root": [
            (r"\s+", Text),
            (r"#.*?$", Comment.Single),
            # Operator definitions: the symbol right after unary/binary
            (
                r"\b(unary|binary)(\s*)([^\sA-Za-z0-9(#])",
                bygroups(Keyword.Declaration, Text, Operator),
            ),
            (
                words(("def", "extern", "unary", "binary"), prefix=r"\b", suffix=r"\b"),
                Keyword.Declaration,
            ),
            (
                words(
                    tuple(kw for kw in KEYWORDS if kw not in ("def", "extern", "unary", "binary")),
                    prefix=r"\b",
                    suffix=r"\b",
                ),
                Keyword,
            ),
            (r"[0-9.]+", Number.Float),
            # Calls and prototype names
            (r"[A-Za-z][A-Za-z0-9]*(?=\s*\()", Name.Function),
            (r"[A-Za-z][A-Za-z0-9]*", Name),
            (r"[(),;]", Punctuation),
            # Every other character is a (possibly user-defined) operator
            (r"[^\sA-Za-z0-9]", Operator),
        ],
    }


def highlight_source(source: str) -> str:
    """Render ``source`` with ANSI colors for a terminal."""
    return highlight(source, KaleidoLexer(), TerminalFormatter())
