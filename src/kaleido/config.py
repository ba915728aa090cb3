"""TOML config loading for kaleido.toml."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path

from kaleido.operators import DEFAULT_BINARY_PRECEDENCE, OperatorTable

CONFIG_NAME = "kaleido.toml"


@dataclass
class ReplConfig:
    prompt: str = "ready> "
    color: bool = True


@dataclass
class ParserConfig:
    default_precedence: int = DEFAULT_BINARY_PRECEDENCE


@dataclass
class KaleidoConfig:
    repl: ReplConfig = field(default_factory=ReplConfig)
    parser: ParserConfig = field(default_factory=ParserConfig)
    operators: dict[str, int] = field(default_factory=dict)

    def operator_table(self) -> OperatorTable:
        """Built-in precedences overlaid with the ``[operators]`` table."""
        return OperatorTable.with_overrides(self.operators)


def find_config(start_path: Path | None = None) -> Path:
    """Walk up directories to find kaleido.toml. Raises FileNotFoundError."""
    path = (start_path or Path.cwd()).resolve()
    if path.is_file():
        path = path.parent
    while True:
        candidate = path / CONFIG_NAME
        if candidate.exists():
            return candidate
        parent = path.parent
        if parent == path:
            raise FileNotFoundError(f"No {CONFIG_NAME} found in any parent directory")
        path = parent


def load_config(path: Path) -> KaleidoConfig:
    """Parse a kaleido.toml file into a KaleidoConfig."""
    with open(path, "rb") as f:
        data = tomllib.load(f)

    config = KaleidoConfig()

    if "repl" in data:
        repl = data["repl"]
        config.repl = ReplConfig(
            prompt=repl.get("prompt", "ready> "),
            color=repl.get("color", True),
        )

    if "parser" in data:
        prs = data["parser"]
        config.parser = ParserConfig(
            default_precedence=prs.get("default_precedence", DEFAULT_BINARY_PRECEDENCE),
        )

    if "operators" in data:
        for op, prec in data["operators"].items():
            if len(op) != 1 or not op.isascii():
                raise ValueError(f"operator key must be a single ASCII character: {op!r}")
            if not isinstance(prec, int):
                raise ValueError(f"precedence for {op!r} must be an integer")
            config.operators[op] = prec

    return config


def resolve_config(explicit: Path | None = None, start_path: Path | None = None) -> KaleidoConfig:
    """Load ``explicit`` if given, else the nearest kaleido.toml, else defaults."""
    if explicit is not None:
        return load_config(explicit)
    try:
        return load_config(find_config(start_path))
    except FileNotFoundError:
        return KaleidoConfig()
