"""Registry of declared and defined function prototypes."""

from __future__ import annotations

from collections.abc import Iterator

from kaleido.ast_nodes import Prototype


class PrototypeRegistry:
    """Maps a function name to its most recent prototype.

    Filled by ``extern`` declarations and by function definitions, and
    consulted by the backend when it resolves a call. The parser never
    reads it.
    """

    def __init__(self) -> None:
        self._protos: dict[str, Prototype] = {}

    def record(self, proto: Prototype) -> Prototype | None:
        """Record ``proto``, replacing any prototype with the same name.

        Returns the replaced prototype, if there was one.
        """
        previous = self._protos.get(proto.name)
        self._protos[proto.name] = proto
        return previous

    def lookup(self, name: str) -> Prototype | None:
        return self._protos.get(name)

    def forget(self, name: str) -> None:
        self._protos.pop(name, None)

    def __contains__(self, name: object) -> bool:
        return name in self._protos

    def __iter__(self) -> Iterator[Prototype]:
        return iter(self._protos.values())

    def __len__(self) -> int:
        return len(self._protos)
