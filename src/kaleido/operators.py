"""Binary operator precedence table.

The parser consults this table for every precedence decision, and operator
definitions update it while a session runs, so the grammar changes as source
is read. Each session owns its own table.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping

BUILTIN_PRECEDENCE: dict[str, int] = {
    "<": 10,
    ">": 10,
    "+": 20,
    "-": 20,
    "*": 40,
    "/": 40,
}

DEFAULT_BINARY_PRECEDENCE = 30
MIN_PRECEDENCE = 1
MAX_PRECEDENCE = 100


class OperatorTable:
    """Mutable mapping from an operator character to its precedence.

    No range validation happens here; the parser checks user-supplied
    precedence literals.
    """

    def __init__(self, seed: Mapping[str, int] | None = None) -> None:
        self._precedence: dict[str, int] = dict(BUILTIN_PRECEDENCE if seed is None else seed)

    @classmethod
    def with_overrides(cls, overrides: Mapping[str, int]) -> OperatorTable:
        """Built-in operators overlaid with ``overrides``."""
        table = cls()
        for op, prec in overrides.items():
            table.insert(op, prec)
        return table

    def lookup(self, op: str) -> int | None:
        """Precedence of ``op``, or None if it is not a binary operator."""
        prec = self._precedence.get(op)
        if prec is None or prec <= 0:
            return None
        return prec

    def insert(self, op: str, precedence: int) -> int | None:
        """Set the precedence of ``op``. Returns the raw previous entry, if any."""
        previous = self._precedence.get(op)
        self._precedence[op] = precedence
        return previous

    def remove(self, op: str) -> int | None:
        """Drop ``op`` from the table. Returns the removed entry, if any."""
        return self._precedence.pop(op, None)

    def restore(self, op: str, previous: int | None) -> None:
        """Put back the entry ``insert`` reported as previous."""
        if previous is None:
            self.remove(op)
        else:
            self._precedence[op] = previous

    def snapshot(self) -> dict[str, int]:
        return dict(self._precedence)

    def reset(self, snapshot: Mapping[str, int]) -> None:
        self._precedence = dict(snapshot)

    def __contains__(self, op: object) -> bool:
        return isinstance(op, str) and self.lookup(op) is not None

    def __iter__(self) -> Iterator[str]:
        return iter(self._precedence)

    def __len__(self) -> int:
        return len(self._precedence)

    def __repr__(self) -> str:
        return f"OperatorTable({self._precedence!r})"
