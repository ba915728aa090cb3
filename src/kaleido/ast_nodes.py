"""AST node definitions for the Kaleidoscope language.

Expression nodes form a closed set; consumers dispatch on them with
:class:`kaleido.visitor.ExprVisitor`. Spans are carried for diagnostics but
do not take part in equality, so two trees parsed from differently laid out
source compare equal.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Union

from kaleido.source import Span

ANONYMOUS_NAME = "__anon_expr"


# ── Expressions ──────────────────────────────────────────────────


@dataclass(frozen=True)
class Number:
    value: float
    span: Span | None = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class Variable:
    name: str
    span: Span | None = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class Unary:
    op: str
    operand: Expr
    span: Span | None = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class Binary:
    op: str
    left: Expr
    right: Expr
    span: Span | None = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class Call:
    callee: str
    args: list[Expr]
    span: Span | None = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class If:
    cond: Expr
    then: Expr
    else_: Expr
    span: Span | None = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class For:
    var: str
    start: Expr
    end: Expr
    step: Expr | None
    body: Expr
    span: Span | None = field(default=None, compare=False, repr=False)


Expr = Union[Number, Variable, Unary, Binary, Call, If, For]


# ── Top-level ────────────────────────────────────────────────────


class OperatorKind(Enum):
    NONE = 0
    UNARY = 1
    BINARY = 2

    @property
    def arity(self) -> int:
        return self.value


@dataclass(frozen=True)
class Prototype:
    """A function signature: name, parameters and operator role."""

    name: str
    params: list[str]
    kind: OperatorKind = OperatorKind.NONE
    precedence: int | None = None
    span: Span | None = field(default=None, compare=False, repr=False)

    @property
    def is_operator(self) -> bool:
        return self.kind != OperatorKind.NONE

    @property
    def is_unary_op(self) -> bool:
        return self.kind == OperatorKind.UNARY

    @property
    def is_binary_op(self) -> bool:
        return self.kind == OperatorKind.BINARY

    @property
    def operator(self) -> str:
        """The operator character, the last character of the synthesized name."""
        if not self.is_operator:
            raise ValueError(f"{self.name} is not an operator prototype")
        return self.name[-1]

    @property
    def is_anonymous(self) -> bool:
        return self.name == ANONYMOUS_NAME


@dataclass(frozen=True)
class Function:
    proto: Prototype
    body: Expr
    span: Span | None = field(default=None, compare=False, repr=False)

    @property
    def name(self) -> str:
        return self.proto.name


def unary_name(op: str) -> str:
    return f"unary{op}"


def binary_name(op: str) -> str:
    return f"binary{op}"
