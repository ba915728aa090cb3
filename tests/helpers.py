"""Shared test helpers for the kaleido test suite."""

from __future__ import annotations

import io

from kaleido.ast_nodes import Expr
from kaleido.config import KaleidoConfig
from kaleido.interpreter import Interpreter
from kaleido.operators import OperatorTable
from kaleido.parser import Parser
from kaleido.session import Session, SessionResult


def parse_expr(source: str, operators: OperatorTable | None = None) -> Expr:
    """Parse a single expression, asserting no diagnostics."""
    parser = Parser.from_source(source, "<test>", operators)
    expr = parser.parse_expression()
    assert not parser.diagnostics, [d.message for d in parser.diagnostics]
    assert expr is not None
    return expr


def parse_fails(source: str, error_code: str) -> Parser:
    """Parse one top-level unit, asserting it fails with ``error_code``."""
    parser = Parser.from_source(source, "<test>")
    unit = parser.parse_top_level_unit()
    assert not unit.ok, f"expected {error_code}, got {unit}"
    codes = [d.code for d in parser.diagnostics]
    assert error_code in codes, f"expected {error_code} but got: {codes or 'no diagnostics'}"
    return parser


def run(source: str, config: KaleidoConfig | None = None) -> tuple[SessionResult, str]:
    """Run a program with the interpreter. Returns (result, native output)."""
    out = io.StringIO()
    result = Session(source, Interpreter(out=out), filename="<test>", config=config).run()
    return result, out.getvalue()


def run_ok(source: str) -> list[float]:
    """Run a program, asserting no diagnostics. Returns top-level values."""
    result, _ = run(source)
    assert result.ok, [f"{d.code}: {d.message}" for d in result.diagnostics]
    return result.values


def run_fails(source: str, error_code: str) -> SessionResult:
    """Run a program, asserting a diagnostic with ``error_code`` appears."""
    result, _ = run(source)
    codes = [d.code for d in result.diagnostics]
    assert error_code in codes, f"expected {error_code} but got: {codes or 'no diagnostics'}"
    return result
