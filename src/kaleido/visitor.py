"""External visitor over the closed set of expression nodes."""

from __future__ import annotations

from typing import Generic, TypeVar

from kaleido.ast_nodes import Binary, Call, Expr, For, If, Number, Unary, Variable

T = TypeVar("T")


class ExprVisitor(Generic[T]):
    """Dispatches an expression node to the matching ``visit_*`` method.

    Backends subclass this and implement every ``visit_*`` method; the AST
    itself knows nothing about them.
    """

    def visit(self, expr: Expr) -> T:
        if isinstance(expr, Number):
            return self.visit_number(expr)
        if isinstance(expr, Variable):
            return self.visit_variable(expr)
        if isinstance(expr, Unary):
            return self.visit_unary(expr)
        if isinstance(expr, Binary):
            return self.visit_binary(expr)
        if isinstance(expr, Call):
            return self.visit_call(expr)
        if isinstance(expr, If):
            return self.visit_if(expr)
        if isinstance(expr, For):
            return self.visit_for(expr)
        raise TypeError(f"not an expression node: {type(expr).__name__}")

    def visit_number(self, expr: Number) -> T:
        raise NotImplementedError

    def visit_variable(self, expr: Variable) -> T:
        raise NotImplementedError

    def visit_unary(self, expr: Unary) -> T:
        raise NotImplementedError

    def visit_binary(self, expr: Binary) -> T:
        raise NotImplementedError

    def visit_call(self, expr: Call) -> T:
        raise NotImplementedError

    def visit_if(self, expr: If) -> T:
        raise NotImplementedError

    def visit_for(self, expr: For) -> T:
        raise NotImplementedError
