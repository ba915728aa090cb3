"""Parser for the Kaleidoscope language.

Recursive descent for definitions, prototypes and primaries, and precedence
climbing for binary operators. Binary precedences come from an
:class:`~kaleido.operators.OperatorTable` that operator definitions update
while parsing, so ``def binary^ 50 (a b) ...`` changes how every later
expression is parsed.

Productions never raise. A failing production records a diagnostic in
``Parser.diagnostics`` and returns None; the caller discards one token and
resumes at the top level.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum, auto
from typing import TextIO

from kaleido.ast_nodes import (
    ANONYMOUS_NAME,
    Binary,
    Call,
    Expr,
    For,
    Function,
    If,
    Number,
    OperatorKind,
    Prototype,
    Unary,
    Variable,
    binary_name,
    unary_name,
)
from kaleido.errors import Diagnostic
from kaleido.lexer import Lexer
from kaleido.operators import (
    DEFAULT_BINARY_PRECEDENCE,
    MAX_PRECEDENCE,
    MIN_PRECEDENCE,
    OperatorTable,
)
from kaleido.source import Span
from kaleido.tokens import Token, TokenKind


class UnitKind(Enum):
    DEFINITION = auto()
    EXTERN = auto()
    EXPRESSION = auto()
    ERROR = auto()
    END = auto()


@dataclass(frozen=True)
class TopLevelUnit:
    """One result of ``Parser.parse_top_level_unit``."""

    kind: UnitKind
    node: Function | Prototype | None = None

    @property
    def ok(self) -> bool:
        return self.kind not in (UnitKind.ERROR, UnitKind.END)


def _join(start: Span | None, end: Span | None) -> Span | None:
    if start is None or end is None:
        return start or end
    return start.to(end)


class Parser:
    """Parses Kaleidoscope top-level units from a pull-based lexer."""

    def __init__(
        self,
        lexer: Lexer,
        operators: OperatorTable | None = None,
        *,
        default_precedence: int = DEFAULT_BINARY_PRECEDENCE,
    ) -> None:
        self.lexer = lexer
        self.operators = operators if operators is not None else OperatorTable()
        self.default_precedence = default_precedence
        self.diagnostics: list[Diagnostic] = []
        self._current: Token | None = None

    @classmethod
    def from_source(
        cls,
        source: str | TextIO,
        filename: str = "<stdin>",
        operators: OperatorTable | None = None,
        **kwargs: int,
    ) -> Parser:
        return cls(Lexer(source, filename), operators, **kwargs)

    # ── Token access ─────────────────────────────────────────────

    @property
    def current(self) -> Token:
        """The one token of lookahead, read on first use."""
        if self._current is None:
            self._current = self.lexer.next_token()
        return self._current

    def next_token(self) -> Token:
        """Advance to and return the next token."""
        self._current = self.lexer.next_token()
        return self._current

    def skip_token(self) -> None:
        """Discard the current token (error recovery).

        Before the first read the lookahead is still in the lexer, so that
        token is the one discarded.
        """
        if self._current is None:
            self.lexer.next_token()
        self.next_token()

    def _error(self, code: str, message: str) -> None:
        self.diagnostics.append(Diagnostic.error(code, message, self.current.span))

    def _token_precedence(self) -> int:
        """Precedence of the current token, or -1 if it is not a binary operator."""
        tok = self.current
        if not tok.is_ascii_char:
            return -1
        prec = self.operators.lookup(tok.value)
        return -1 if prec is None else prec

    # ── Top level ────────────────────────────────────────────────

    def parse_top_level_unit(self) -> TopLevelUnit:
        """Parse one definition, extern or top-level expression.

        ``;`` tokens between units are skipped. On ERROR the caller is
        expected to call ``skip_token()`` before asking for the next unit.
        """
        while self.current.is_char(";"):
            self.next_token()

        kind = self.current.kind
        if kind == TokenKind.EOF:
            return TopLevelUnit(UnitKind.END)

        node: Function | Prototype | None
        if kind == TokenKind.DEF:
            node = self.parse_definition()
            unit_kind = UnitKind.DEFINITION
        elif kind == TokenKind.EXTERN:
            node = self.parse_extern()
            unit_kind = UnitKind.EXTERN
        else:
            node = self.parse_top_level_expr()
            unit_kind = UnitKind.EXPRESSION

        if node is None:
            return TopLevelUnit(UnitKind.ERROR)
        return TopLevelUnit(unit_kind, node)

    def units(self) -> Iterator[TopLevelUnit]:
        """Yield units until end of input, recovering from errors on the way."""
        while True:
            unit = self.parse_top_level_unit()
            if unit.kind == UnitKind.END:
                return
            yield unit
            if unit.kind == UnitKind.ERROR:
                self.skip_token()

    def parse_definition(self) -> Function | None:
        """definition ::= 'def' prototype expression"""
        start = self.current.span
        self.next_token()  # eat def
        proto = self.parse_prototype()
        if proto is None:
            return None

        # The operator must be known while its own body is parsed, and must
        # not outlive a body that fails to parse.
        previous: int | None = None
        if proto.is_binary_op:
            previous = self.operators.insert(
                proto.operator, proto.precedence or self.default_precedence,
            )

        body = self.parse_expression()
        if body is None:
            if proto.is_binary_op:
                self.operators.restore(proto.operator, previous)
            return None
        return Function(proto, body, _join(start, body.span))

    def parse_extern(self) -> Prototype | None:
        """external ::= 'extern' prototype"""
        self.next_token()  # eat extern
        return self.parse_prototype()

    def parse_top_level_expr(self) -> Function | None:
        """toplevelexpr ::= expression, wrapped in an anonymous prototype."""
        body = self.parse_expression()
        if body is None:
            return None
        proto = Prototype(ANONYMOUS_NAME, [], span=body.span)
        return Function(proto, body, body.span)

    # ── Prototypes ───────────────────────────────────────────────

    def parse_prototype(self) -> Prototype | None:
        """prototype ::= id '(' id* ')'
                       | 'unary' OP '(' id ')'
                       | 'binary' OP number? '(' id id ')'
        """
        tok = self.current
        start = tok.span
        precedence: int | None = None

        if tok.kind == TokenKind.IDENTIFIER:
            name = tok.value
            kind = OperatorKind.NONE
            self.next_token()
        elif tok.kind == TokenKind.UNARY:
            self.next_token()
            if not self.current.is_ascii_char:
                return self._error("E204", "expected unary operator")
            name = unary_name(self.current.value)
            kind = OperatorKind.UNARY
            self.next_token()
        elif tok.kind == TokenKind.BINARY:
            self.next_token()
            if not self.current.is_ascii_char:
                return self._error("E204", "expected binary operator")
            name = binary_name(self.current.value)
            kind = OperatorKind.BINARY
            precedence = self.default_precedence
            self.next_token()

            if self.current.kind == TokenKind.NUMBER:
                value = self.current.number
                if not MIN_PRECEDENCE <= value <= MAX_PRECEDENCE:
                    return self._error(
                        "E205",
                        f"invalid precedence {self.current.value}: "
                        f"must be {MIN_PRECEDENCE}..{MAX_PRECEDENCE}",
                    )
                precedence = int(value)
                self.next_token()
        else:
            return self._error("E203", "expected function name in prototype")

        if not self.current.is_char("("):
            return self._error("E206", "expected '(' in prototype")

        params: list[str] = []
        while self.next_token().kind == TokenKind.IDENTIFIER:
            params.append(self.current.value)
        if not self.current.is_char(")"):
            return self._error("E207", "expected ')' in prototype")

        end = self.current.span
        self.next_token()  # eat )

        if kind != OperatorKind.NONE and len(params) != kind.arity:
            self.diagnostics.append(Diagnostic.error(
                "E208",
                f"invalid number of operands for operator: "
                f"expected {kind.arity}, got {len(params)}",
                start.to(end),
            ))
            return None

        seen: set[str] = set()
        for param in params:
            if param in seen:
                self.diagnostics.append(Diagnostic.error(
                    "E215", f"duplicate parameter name '{param}' in prototype", start.to(end),
                ))
                return None
            seen.add(param)

        return Prototype(name, params, kind, precedence, start.to(end))

    # ── Expressions ──────────────────────────────────────────────

    def parse_expression(self) -> Expr | None:
        """expression ::= unary binoprhs"""
        lhs = self.parse_unary()
        if lhs is None:
            return None
        return self.parse_bin_op_rhs(0, lhs)

    def parse_bin_op_rhs(self, min_precedence: int, lhs: Expr) -> Expr | None:
        """binoprhs ::= (binop unary)*

        Operators binding at least as tightly as ``min_precedence`` are
        folded into ``lhs``. Equal precedences associate to the left.
        """
        while True:
            tok_prec = self._token_precedence()
            if tok_prec < min_precedence:
                return lhs

            op = self.current.value
            self.next_token()  # eat binop

            rhs = self.parse_unary()
            if rhs is None:
                return None

            # If the next operator binds tighter, it takes rhs as its lhs.
            if tok_prec < self._token_precedence():
                rhs = self.parse_bin_op_rhs(tok_prec + 1, rhs)
                if rhs is None:
                    return None

            lhs = Binary(op, lhs, rhs, _join(lhs.span, rhs.span))

    def parse_unary(self) -> Expr | None:
        """unary ::= primary | OP unary

        Any ASCII character other than '(' and ',' is accepted as a prefix
        operator here; whether it means anything is decided by the backend.
        """
        tok = self.current
        if not tok.is_ascii_char or tok.value in ("(", ","):
            return self.parse_primary()

        self.next_token()  # eat the operator
        operand = self.parse_unary()
        if operand is None:
            return None
        return Unary(tok.value, operand, _join(tok.span, operand.span))

    def parse_primary(self) -> Expr | None:
        """primary ::= identifierexpr | numberexpr | parenexpr | ifexpr | forexpr"""
        tok = self.current
        if tok.kind == TokenKind.IDENTIFIER:
            return self.parse_identifier_expr()
        if tok.kind == TokenKind.NUMBER:
            return self.parse_number_expr()
        if tok.is_char("("):
            return self.parse_paren_expr()
        if tok.kind == TokenKind.IF:
            return self.parse_if_expr()
        if tok.kind == TokenKind.FOR:
            return self.parse_for_expr()
        return self._error(
            "E200", f"unknown token when expecting an expression: {tok.describe()}",
        )

    def parse_number_expr(self) -> Number:
        tok = self.current
        self.next_token()
        return Number(tok.number, tok.span)

    def parse_paren_expr(self) -> Expr | None:
        """parenexpr ::= '(' expression ')'"""
        self.next_token()  # eat (
        expr = self.parse_expression()
        if expr is None:
            return None
        if not self.current.is_char(")"):
            return self._error("E201", "expected ')'")
        self.next_token()  # eat )
        return expr

    def parse_identifier_expr(self) -> Expr | None:
        """identifierexpr ::= id | id '(' (expression (',' expression)*)? ')'"""
        tok = self.current
        self.next_token()  # eat identifier

        if not self.current.is_char("("):
            return Variable(tok.value, tok.span)

        self.next_token()  # eat (
        args: list[Expr] = []
        if not self.current.is_char(")"):
            while True:
                arg = self.parse_expression()
                if arg is None:
                    return None
                args.append(arg)

                if self.current.is_char(")"):
                    break
                if not self.current.is_char(","):
                    return self._error("E202", "expected ')' or ',' in argument list")
                self.next_token()

        end = self.current.span
        self.next_token()  # eat )
        return Call(tok.value, args, tok.span.to(end))

    def parse_if_expr(self) -> Expr | None:
        """ifexpr ::= 'if' expression 'then' expression 'else' expression"""
        start = self.current.span
        self.next_token()  # eat if

        cond = self.parse_expression()
        if cond is None:
            return None

        if self.current.kind != TokenKind.THEN:
            return self._error("E209", f"expected 'then', got {self.current.describe()}")
        self.next_token()

        then = self.parse_expression()
        if then is None:
            return None

        if self.current.kind != TokenKind.ELSE:
            return self._error("E210", f"expected 'else', got {self.current.describe()}")
        self.next_token()

        else_ = self.parse_expression()
        if else_ is None:
            return None

        return If(cond, then, else_, _join(start, else_.span))

    def parse_for_expr(self) -> Expr | None:
        """forexpr ::= 'for' id '=' expression ',' expression (',' expression)? 'in' expression"""
        start = self.current.span
        self.next_token()  # eat for

        if self.current.kind != TokenKind.IDENTIFIER:
            return self._error("E211", "expected identifier after 'for'")
        var = self.current.value
        self.next_token()

        if not self.current.is_char("="):
            return self._error("E212", "expected '=' after 'for' variable")
        self.next_token()

        begin = self.parse_expression()
        if begin is None:
            return None
        if not self.current.is_char(","):
            return self._error("E213", "expected ',' after 'for' start value")
        self.next_token()

        end = self.parse_expression()
        if end is None:
            return None

        step: Expr | None = None
        if self.current.is_char(","):
            self.next_token()
            step = self.parse_expression()
            if step is None:
                return None

        if self.current.kind != TokenKind.IN:
            return self._error("E214", f"expected 'in' after 'for', got {self.current.describe()}")
        self.next_token()

        body = self.parse_expression()
        if body is None:
            return None
        return For(var, begin, end, step, body, _join(start, body.span))
