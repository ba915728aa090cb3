"""Tree-walking backend for Kaleidoscope.

Resolves names against a :class:`~kaleido.registry.PrototypeRegistry` and
evaluates expressions over doubles. This is where undeclared operators,
unknown names and arity mismatches are reported; the parser accepts them.

Every body is checked before it is accepted: a definition whose body
references an unknown name is rejected as a whole, and a top-level
expression that does not resolve is not run at all.
"""

from __future__ import annotations

import math
import sys
from typing import TextIO

from kaleido.ast_nodes import (
    Binary,
    Call,
    For,
    Function,
    If,
    Number,
    Prototype,
    Unary,
    Variable,
    binary_name,
    unary_name,
)
from kaleido.errors import CompileError, Diagnostic
from kaleido.natives import NativeFunction, build_natives
from kaleido.registry import PrototypeRegistry
from kaleido.source import Span
from kaleido.visitor import ExprVisitor


def _fail(code: str, message: str, span: Span | None, note: str | None = None) -> CompileError:
    diag = Diagnostic.error(code, message, span)
    if note is not None:
        diag = diag.with_note(note)
    return CompileError([diag])


def _truth(value: float) -> bool:
    """Ordered and not equal to zero."""
    return value != 0.0 and not math.isnan(value)


def _divide(a: float, b: float) -> float:
    if b == 0.0:
        if a == 0.0 or math.isnan(a):
            return math.nan
        return math.copysign(math.inf, a) * math.copysign(1.0, b)
    return a / b


def _less(a: float, b: float) -> float:
    # Unordered operands compare as "less".
    return 1.0 if a < b or math.isnan(a) or math.isnan(b) else 0.0


def _greater(a: float, b: float) -> float:
    return 1.0 if a > b else 0.0


_BUILTIN_BINARY = {
    "+": lambda a, b: a + b,
    "-": lambda a, b: a - b,
    "*": lambda a, b: a * b,
    "/": _divide,
    "<": _less,
    ">": _greater,
}


def _resolve(registry: PrototypeRegistry, name: str, nargs: int, span: Span | None) -> Prototype:
    proto = registry.lookup(name)
    if proto is None:
        raise _fail("E301", f"unknown function referenced: '{name}'", span)
    if len(proto.params) != nargs:
        raise _fail(
            "E302",
            f"incorrect number of arguments passed to '{name}': "
            f"expected {len(proto.params)}, got {nargs}",
            span,
        )
    return proto


def _resolve_unary(registry: PrototypeRegistry, expr: Unary) -> str:
    name = unary_name(expr.op)
    if name not in registry:
        raise _fail(
            "E303", f"unknown unary operator '{expr.op}'", expr.span,
            note=f"define it with 'def unary{expr.op}(x) ...'",
        )
    _resolve(registry, name, 1, expr.span)
    return name


def _resolve_binary(registry: PrototypeRegistry, expr: Binary) -> str:
    name = binary_name(expr.op)
    if name not in registry:
        raise _fail(
            "E303", f"unknown binary operator '{expr.op}'", expr.span,
            note=f"define it with 'def binary{expr.op} (a b) ...'",
        )
    _resolve(registry, name, 2, expr.span)
    return name


class BodyChecker(ExprVisitor[None]):
    """Resolves every name in a body without evaluating anything.

    Variables must be parameters or enclosing ``for`` variables; callees and
    user operators must be in the registry with a matching arity.
    """

    def __init__(self, registry: PrototypeRegistry) -> None:
        self.registry = registry
        self._bound: set[str] = set()

    def check(self, function: Function) -> None:
        self._bound = set(function.proto.params)
        self.visit(function.body)

    def visit_number(self, expr: Number) -> None:
        pass

    def visit_variable(self, expr: Variable) -> None:
        if expr.name not in self._bound:
            raise _fail("E300", f"unknown variable name '{expr.name}'", expr.span)

    def visit_unary(self, expr: Unary) -> None:
        self.visit(expr.operand)
        _resolve_unary(self.registry, expr)

    def visit_binary(self, expr: Binary) -> None:
        self.visit(expr.left)
        self.visit(expr.right)
        if expr.op not in _BUILTIN_BINARY:
            _resolve_binary(self.registry, expr)

    def visit_call(self, expr: Call) -> None:
        _resolve(self.registry, expr.callee, len(expr.args), expr.span)
        for arg in expr.args:
            self.visit(arg)

    def visit_if(self, expr: If) -> None:
        self.visit(expr.cond)
        self.visit(expr.then)
        self.visit(expr.else_)

    def visit_for(self, expr: For) -> None:
        self.visit(expr.start)
        outer = self._bound
        self._bound = outer | {expr.var}
        try:
            self.visit(expr.end)
            if expr.step is not None:
                self.visit(expr.step)
            self.visit(expr.body)
        finally:
            self._bound = outer


class Interpreter(ExprVisitor[float]):
    """Evaluates Kaleidoscope functions and top-level expressions."""

    def __init__(
        self,
        registry: PrototypeRegistry | None = None,
        out: TextIO | None = None,
    ) -> None:
        self.registry = registry if registry is not None else PrototypeRegistry()
        self.functions: dict[str, Function] = {}
        self.natives: dict[str, NativeFunction] = build_natives(out or sys.stdout)
        self._scope: dict[str, float] = {}

    # ── Backend protocol ─────────────────────────────────────────

    def declare(self, proto: Prototype) -> None:
        """Record an ``extern`` prototype."""
        self.registry.record(proto)

    def define(self, function: Function) -> None:
        """Check and record a function definition; a later definition replaces it.

        The prototype is recorded before the body is checked so the body may
        call the function itself. If the check fails the registry is left as
        it was and CompileError is raised.
        """
        previous = self.registry.record(function.proto)
        try:
            BodyChecker(self.registry).check(function)
        except CompileError:
            if previous is None:
                self.registry.forget(function.name)
            else:
                self.registry.record(previous)
            raise
        self.functions[function.name] = function

    def evaluate(self, function: Function) -> float:
        """Check and run an anonymous top-level function, returning its value."""
        BodyChecker(self.registry).check(function)
        try:
            return self._call_function(function, [])
        except RecursionError:
            raise _fail("E304", "recursion limit exceeded", function.span) from None

    # ── Calls ────────────────────────────────────────────────────

    def _invoke(self, name: str, args: list[float], span: Span | None) -> float:
        function = self.functions.get(name)
        if function is not None and len(function.proto.params) == len(args):
            return self._call_function(function, args)
        native = self.natives.get(name)
        if native is not None:
            if native.arity != len(args):
                raise _fail(
                    "E302",
                    f"native function '{name}' takes {native.arity} argument(s), got {len(args)}",
                    span,
                )
            return native(*args)
        raise _fail("E301", f"no definition found for '{name}'", span)

    def _call_function(self, function: Function, args: list[float]) -> float:
        saved = self._scope
        self._scope = dict(zip(function.proto.params, args))
        try:
            return self.visit(function.body)
        finally:
            self._scope = saved

    # ── Expressions ──────────────────────────────────────────────

    def visit_number(self, expr: Number) -> float:
        return expr.value

    def visit_variable(self, expr: Variable) -> float:
        try:
            return self._scope[expr.name]
        except KeyError:
            raise _fail("E300", f"unknown variable name '{expr.name}'", expr.span) from None

    def visit_unary(self, expr: Unary) -> float:
        operand = self.visit(expr.operand)
        name = _resolve_unary(self.registry, expr)
        return self._invoke(name, [operand], expr.span)

    def visit_binary(self, expr: Binary) -> float:
        left = self.visit(expr.left)
        right = self.visit(expr.right)

        builtin = _BUILTIN_BINARY.get(expr.op)
        if builtin is not None:
            return builtin(left, right)
        name = _resolve_binary(self.registry, expr)
        return self._invoke(name, [left, right], expr.span)

    def visit_call(self, expr: Call) -> float:
        # Checked at definition time, but a callee may since have been
        # redefined with another arity.
        _resolve(self.registry, expr.callee, len(expr.args), expr.span)
        args = [self.visit(arg) for arg in expr.args]
        return self._invoke(expr.callee, args, expr.span)

    def visit_if(self, expr: If) -> float:
        if _truth(self.visit(expr.cond)):
            return self.visit(expr.then)
        return self.visit(expr.else_)

    def visit_for(self, expr: For) -> float:
        start = self.visit(expr.start)
        shadowed = expr.var in self._scope
        old = self._scope.get(expr.var, 0.0)

        self._scope[expr.var] = start
        try:
            while True:
                self.visit(expr.body)
                step = self.visit(expr.step) if expr.step is not None else 1.0
                next_var = self._scope[expr.var] + step
                if not _truth(self.visit(expr.end)):
                    break
                self._scope[expr.var] = next_var
        finally:
            if shadowed:
                self._scope[expr.var] = old
            else:
                self._scope.pop(expr.var, None)
        return 0.0
