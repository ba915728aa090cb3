"""Top-level driver: feeds parsed units to a backend one at a time.

A session owns the lexer, the parser, the operator table and the backend,
so several sessions can run side by side without sharing grammar state.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol, TextIO

from kaleido.ast_nodes import Function, Prototype
from kaleido.config import KaleidoConfig
from kaleido.errors import CompileError, Diagnostic
from kaleido.interpreter import Interpreter
from kaleido.lexer import Lexer
from kaleido.parser import Parser, TopLevelUnit, UnitKind


class Backend(Protocol):
    def declare(self, proto: Prototype) -> None: ...

    def define(self, function: Function) -> None: ...

    def evaluate(self, function: Function) -> float: ...


@dataclass
class UnitOutcome:
    """What happened to one top-level unit."""

    unit: TopLevelUnit
    value: float | None = None
    diagnostics: list[Diagnostic] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.unit.ok and not self.diagnostics


@dataclass
class SessionResult:
    outcomes: list[UnitOutcome] = field(default_factory=list)

    @property
    def values(self) -> list[float]:
        return [o.value for o in self.outcomes if o.value is not None]

    @property
    def diagnostics(self) -> list[Diagnostic]:
        return [d for o in self.outcomes for d in o.diagnostics]

    @property
    def ok(self) -> bool:
        return all(o.ok for o in self.outcomes)


class Session:
    """Parses source unit by unit and hands each unit to a backend."""

    def __init__(
        self,
        source: str | TextIO,
        backend: Backend | None = None,
        *,
        filename: str = "<stdin>",
        config: KaleidoConfig | None = None,
        on_unit: Callable[[UnitOutcome], None] | None = None,
        before_unit: Callable[[], None] | None = None,
    ) -> None:
        config = config or KaleidoConfig()
        self.operators = config.operator_table()
        self.parser = Parser(
            Lexer(source, filename),
            self.operators,
            default_precedence=config.parser.default_precedence,
        )
        self.backend: Backend = backend if backend is not None else Interpreter()
        self.on_unit = on_unit
        self.before_unit = before_unit

    def step(self) -> UnitOutcome | None:
        """Process one top-level unit. Returns None at end of input."""
        if self.before_unit is not None:
            self.before_unit()

        snapshot = self.operators.snapshot()
        seen = len(self.parser.diagnostics)
        unit = self.parser.parse_top_level_unit()

        if unit.kind == UnitKind.END:
            return None

        if unit.kind == UnitKind.ERROR:
            outcome = UnitOutcome(unit, diagnostics=self.parser.diagnostics[seen:])
            self.parser.skip_token()
        else:
            try:
                value = self._dispatch(unit)
            except CompileError as e:
                # A rejected operator definition must not keep its precedence.
                self.operators.reset(snapshot)
                outcome = UnitOutcome(unit, diagnostics=e.diagnostics)
            else:
                outcome = UnitOutcome(unit, value)

        if self.on_unit is not None:
            self.on_unit(outcome)
        return outcome

    def run(self) -> SessionResult:
        """Process units until end of input."""
        result = SessionResult()
        while True:
            outcome = self.step()
            if outcome is None:
                return result
            result.outcomes.append(outcome)

    def _dispatch(self, unit: TopLevelUnit) -> float | None:
        node = unit.node
        if unit.kind == UnitKind.EXTERN:
            assert isinstance(node, Prototype)
            self.backend.declare(node)
            return None
        assert isinstance(node, Function)
        if unit.kind == UnitKind.DEFINITION:
            self.backend.define(node)
            return None
        return self.backend.evaluate(node)


def run_source(
    source: str, filename: str = "<stdin>", config: KaleidoConfig | None = None,
) -> SessionResult:
    """Run a whole program with the default interpreter backend."""
    return Session(source, filename=filename, config=config).run()
