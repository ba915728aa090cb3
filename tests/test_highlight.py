"""Tests for the Pygments lexer."""

from __future__ import annotations

from pygments.token import Comment, Keyword, Name, Number, Operator, Punctuation

from kaleido.highlight import KaleidoLexer


def tokens(source: str) -> list[tuple[object, str]]:
    return [(tok, text) for tok, text in KaleidoLexer().get_tokens(source) if text.strip()]


class TestKaleidoLexer:
    def test_definition(self):
        assert tokens("def f(x) x + 1") == [
            (Keyword.Declaration, "def"),
            (Name.Function, "f"),
            (Punctuation, "("),
            (Name, "x"),
            (Punctuation, ")"),
            (Name, "x"),
            (Operator, "+"),
            (Number.Float, "1"),
        ]

    def test_operator_definition(self):
        result = tokens("def binary| 5 (a b) a")
        assert result[:3] == [
            (Keyword.Declaration, "def"),
            (Keyword.Declaration, "binary"),
            (Operator, "|"),
        ]
        assert (Number.Float, "5") in result

    def test_control_keywords(self):
        kinds = {text: tok for tok, text in tokens("if a then b else for i in c")}
        for word in ("if", "then", "else", "for", "in"):
            assert kinds[word] == Keyword

    def test_comment(self):
        assert tokens("# note\n1") == [
            (Comment.Single, "# note"),
            (Number.Float, "1"),
        ]

    def test_keyword_prefix_is_a_name(self):
        assert tokens("define") == [(Name, "define")]

    def test_decimal_number(self):
        assert tokens("2.5") == [(Number.Float, "2.5")]
