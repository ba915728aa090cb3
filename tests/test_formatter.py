"""Tests for the Kaleidoscope source formatter."""

from __future__ import annotations

import math

import pytest

from kaleido.ast_nodes import Binary, Number, OperatorKind, Prototype, Variable
from kaleido.config import KaleidoConfig
from kaleido.errors import CompileError
from kaleido.formatter import Formatter, format_number, format_source
from kaleido.parser import Parser
from tests.helpers import parse_expr


def fmt(source: str) -> str:
    return Formatter().format_expr(parse_expr(source))


class TestFormatNumber:
    @pytest.mark.parametrize("value, text", [
        (0.0, "0"),
        (42.0, "42"),
        (2.5, "2.5"),
        (0.1, "0.1"),
        (1e20, "100000000000000000000"),
        (1e-7, "0.0000001"),
        (math.inf, "1" + "0" * 309),
    ])
    def test_format_number(self, value, text):
        assert format_number(value) == text


class TestExpressions:
    def test_number_and_variable(self):
        assert fmt("2.50") == "2.5"
        assert fmt("x") == "x"

    def test_spacing_is_normalized(self):
        assert fmt("1+2*  3") == "1 + 2 * 3"

    def test_lower_precedence_left_is_parenthesized(self):
        assert fmt("(1 + 2) * 3") == "(1 + 2) * 3"

    def test_redundant_parentheses_dropped(self):
        assert fmt("(1 * 2) + 3") == "1 * 2 + 3"

    def test_left_associative_chain(self):
        assert fmt("1 - 2 - 3") == "1 - 2 - 3"

    def test_right_grouping_is_kept(self):
        assert fmt("1 - (2 - 3)") == "1 - (2 - 3)"

    def test_call(self):
        assert fmt("foo(1,x,  2+3)") == "foo(1, x, 2 + 3)"

    def test_empty_call(self):
        assert fmt("foo()") == "foo()"

    def test_if(self):
        assert fmt("if x<3 then 1 else 2") == "if x < 3 then 1 else 2"

    def test_for(self):
        assert fmt("for i=1,i<n in f(i)") == "for i = 1, i < n in f(i)"

    def test_for_with_step(self):
        assert fmt("for i=1,i<n,2 in f(i)") == "for i = 1, i < n, 2 in f(i)"

    def test_if_operand_is_parenthesized(self):
        assert fmt("(if a then b else c) + 1") == "(if a then b else c) + 1"

    def test_unary(self):
        assert fmt("!x") == "!x"
        assert fmt("-(a + b)") == "-(a + b)"
        assert fmt("!!x") == "!!x"

    def test_operator_table_drives_parentheses(self):
        formatter = Formatter()
        formatter.operators.insert("|", 5)
        expr = Binary("+", Binary("|", Variable("a"), Variable("b")), Number(1.0))
        assert formatter.format_expr(expr) == "(a | b) + 1"


class TestPrototypes:
    def test_plain(self):
        assert Formatter().format_prototype(Prototype("f", ["a", "b"])) == "f(a b)"

    def test_unary(self):
        proto = Prototype("unary!", ["v"], OperatorKind.UNARY)
        assert Formatter().format_prototype(proto) == "unary!(v)"

    def test_binary_with_precedence(self):
        proto = Prototype("binary|", ["a", "b"], OperatorKind.BINARY, 5)
        assert Formatter().format_prototype(proto) == "binary| 5(a b)"

    def test_binary_without_precedence(self):
        proto = Prototype("binary&", ["a", "b"], OperatorKind.BINARY)
        assert Formatter().format_prototype(proto) == "binary&(a b)"


class TestFormatSource:
    def test_units_one_per_line(self):
        source = "extern sin(x) def f(x)x+1 f(2)"
        assert format_source(source) == "extern sin(x);\ndef f(x) x + 1;\nf(2);\n"

    def test_empty_source(self):
        assert format_source("") == ""

    def test_comments_are_dropped(self):
        assert format_source("# note\n1 # trailing\n") == "1;\n"

    def test_user_operator_definitions(self):
        source = "def binary|5(a b) a; 1 + 2 | 3; (1 | 2) * 3"
        assert format_source(source) == (
            "def binary| 5(a b) a;\n"
            "1 + 2 | 3;\n"
            "(1 | 2) * 3;\n"
        )

    def test_config_operators(self):
        config = KaleidoConfig(operators={"%": 50})
        assert format_source("(a % b) * c", config=config) == "a % b * c;\n"

    def test_parse_error_raises(self):
        with pytest.raises(CompileError) as exc:
            format_source("def 1")
        assert exc.value.diagnostics[0].code == "E203"

    def test_idempotent(self):
        source = """
        def binary : 1 (x y) y;
        def unary-(v) 0-v;
        def fib(n) if n<3 then 1 else fib(n-1)+fib(n-2);
        for i = 1, i < 10 in fib(i) : -i;
        """
        once = format_source(source)
        assert format_source(once) == once

    def test_reparse_yields_equal_tree(self):
        source = "a * (b - c) / d - (e - f) + g(h, i < j)"
        expr = parse_expr(source)
        text = Formatter().format_expr(expr)
        assert parse_expr(text) == expr

    def test_reparse_after_operator_definition(self):
        source = "def binary^ 60 (a b) a; 1 ^ 2 * 3; 1 ^ (2 ^ 3)"
        original = list(Parser.from_source(source).units())
        reparsed = list(Parser.from_source(format_source(source)).units())
        assert [u.node for u in reparsed] == [u.node for u in original]

    def test_overflowing_literal_stays_a_number(self):
        text = format_source("9" * 400 + ";")
        assert text == "1" + "0" * 309 + ";\n"
        assert parse_expr(text.rstrip(";\n")) == Number(math.inf)
