"""AST-walking pretty-printer for Kaleidoscope source code.

Produces canonical source text that parses back to an equal tree under the
same operator table. Comments are discarded by the lexer and are not
preserved.
"""

from __future__ import annotations

import math
from decimal import Decimal
from typing import TextIO

from kaleido.ast_nodes import (
    Binary,
    Call,
    Expr,
    For,
    Function,
    If,
    Number,
    Prototype,
    Unary,
    Variable,
)
from kaleido.config import KaleidoConfig
from kaleido.errors import CompileError
from kaleido.lexer import Lexer
from kaleido.operators import OperatorTable
from kaleido.parser import Parser, UnitKind
from kaleido.visitor import ExprVisitor


def format_number(value: float) -> str:
    """Positional decimal text for a literal; the lexer has no exponents."""
    if math.isinf(value):
        # Literals past the double range read as inf; this one overflows too.
        return "1" + "0" * 309
    if value.is_integer():
        return str(int(value))
    return format(Decimal(repr(value)), "f")


class Formatter(ExprVisitor[str]):
    """Format parsed Kaleidoscope units back to source text.

    Parenthesization follows the precedences in ``operators``, which should
    be the table the units were parsed with.
    """

    def __init__(self, operators: OperatorTable | None = None) -> None:
        self.operators = operators if operators is not None else OperatorTable()

    # ── Public API ─────────────────────────────────────────────

    def format_expr(self, expr: Expr) -> str:
        return self.visit(expr)

    def format_prototype(self, proto: Prototype) -> str:
        params = " ".join(proto.params)
        if proto.is_unary_op:
            return f"unary{proto.operator}({params})"
        if proto.is_binary_op:
            prec = "" if proto.precedence is None else f" {proto.precedence}"
            return f"binary{proto.operator}{prec}({params})"
        return f"{proto.name}({params})"

    def format_function(self, function: Function) -> str:
        if function.proto.is_anonymous:
            return self.format_expr(function.body)
        return f"def {self.format_prototype(function.proto)} {self.format_expr(function.body)}"

    def format_extern(self, proto: Prototype) -> str:
        return f"extern {self.format_prototype(proto)}"

    def format_node(self, node: Function | Prototype) -> str:
        if isinstance(node, Prototype):
            return self.format_extern(node)
        return self.format_function(node)

    # ── Expressions ────────────────────────────────────────────

    def _precedence(self, op: str) -> int:
        return self.operators.lookup(op) or 0

    def _operand(self, expr: Expr) -> str:
        """Format an operand of a unary operator."""
        text = self.visit(expr)
        if isinstance(expr, (Binary, If, For)):
            return f"({text})"
        return text

    def visit_number(self, expr: Number) -> str:
        return format_number(expr.value)

    def visit_variable(self, expr: Variable) -> str:
        return expr.name

    def visit_unary(self, expr: Unary) -> str:
        return f"{expr.op}{self._operand(expr.operand)}"

    def visit_binary(self, expr: Binary) -> str:
        prec = self._precedence(expr.op)
        left = self.visit(expr.left)
        right = self.visit(expr.right)

        # Equal precedence associates left, so only the right side needs
        # parentheses at the same level.
        if isinstance(expr.left, (If, For)) or (
            isinstance(expr.left, Binary) and self._precedence(expr.left.op) < prec
        ):
            left = f"({left})"
        if isinstance(expr.right, (If, For)) or (
            isinstance(expr.right, Binary) and self._precedence(expr.right.op) <= prec
        ):
            right = f"({right})"
        return f"{left} {expr.op} {right}"

    def visit_call(self, expr: Call) -> str:
        args = ", ".join(self.visit(arg) for arg in expr.args)
        return f"{expr.callee}({args})"

    def visit_if(self, expr: If) -> str:
        return (
            f"if {self.visit(expr.cond)} "
            f"then {self.visit(expr.then)} "
            f"else {self.visit(expr.else_)}"
        )

    def visit_for(self, expr: For) -> str:
        header = f"for {expr.var} = {self.visit(expr.start)}, {self.visit(expr.end)}"
        if expr.step is not None:
            header += f", {self.visit(expr.step)}"
        return f"{header} in {self.visit(expr.body)}"


def format_source(
    source: str | TextIO, filename: str = "<stdin>", config: KaleidoConfig | None = None,
) -> str:
    """Parse ``source`` and return it in canonical form, one unit per line.

    Raises CompileError if any unit fails to parse.
    """
    config = config or KaleidoConfig()
    parser = Parser(
        Lexer(source, filename),
        config.operator_table(),
        default_precedence=config.parser.default_precedence,
    )
    formatter = Formatter(parser.operators)

    lines: list[str] = []
    for unit in parser.units():
        # Format each unit as soon as it is parsed; a later operator
        # definition may change the table.
        if unit.kind != UnitKind.ERROR and unit.node is not None:
            lines.append(formatter.format_node(unit.node) + ";")

    if parser.diagnostics:
        raise CompileError(parser.diagnostics)
    return "".join(f"{line}\n" for line in lines)
