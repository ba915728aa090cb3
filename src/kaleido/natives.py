"""Native functions a program can bind with ``extern``.

Every Kaleidoscope value is a double, so natives take and return floats.
Math domain errors produce IEEE results (nan, inf) rather than exceptions.
"""

from __future__ import annotations

import math
from collections.abc import Callable
from dataclasses import dataclass
from typing import TextIO


@dataclass(frozen=True)
class NativeFunction:
    name: str
    arity: int
    impl: Callable[..., float]

    def __call__(self, *args: float) -> float:
        try:
            return float(self.impl(*args))
        except OverflowError:
            return math.inf
        except (ValueError, ZeroDivisionError):
            return math.nan


def _log(x: float) -> float:
    if x == 0.0:
        return -math.inf
    return math.log(x)


_MATH: list[tuple[str, int, Callable[..., float]]] = [
    ("sin", 1, math.sin),
    ("cos", 1, math.cos),
    ("tan", 1, math.tan),
    ("atan", 1, math.atan),
    ("atan2", 2, math.atan2),
    ("sqrt", 1, math.sqrt),
    ("exp", 1, math.exp),
    ("log", 1, _log),
    ("fabs", 1, math.fabs),
    ("floor", 1, math.floor),
    ("ceil", 1, math.ceil),
    ("pow", 2, math.pow),
    ("fmod", 2, math.fmod),
]


def build_natives(out: TextIO) -> dict[str, NativeFunction]:
    """The native library, with output functions writing to ``out``."""

    def putchard(x: float) -> float:
        out.write(chr(int(x)))
        return 0.0

    def printd(x: float) -> float:
        out.write(f"{x:f}\n")
        return 0.0

    natives = {name: NativeFunction(name, arity, impl) for name, arity, impl in _MATH}
    natives["putchard"] = NativeFunction("putchard", 1, putchard)
    natives["printd"] = NativeFunction("printd", 1, printd)
    return natives
