"""Kaleidoscope command-line interface."""

from __future__ import annotations

from dataclasses import fields, is_dataclass
from enum import Enum
from pathlib import Path

import click

from kaleido import __version__
from kaleido.config import KaleidoConfig, resolve_config
from kaleido.errors import CompileError, Diagnostic, DiagnosticRenderer
from kaleido.lexer import Lexer
from kaleido.parser import Parser, UnitKind
from kaleido.session import Session, UnitOutcome
from kaleido.tokens import TokenKind


def _report(diagnostics: list[Diagnostic], renderer: DiagnosticRenderer) -> None:
    for diag in diagnostics:
        click.echo(renderer.render(diag), err=True)


def _read(file: str) -> str:
    return Path(file).read_text()


@click.group()
@click.version_option(__version__, prog_name="kaleido")
@click.option(
    "--config", "config_path", default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Use this kaleido.toml instead of searching for one.",
)
@click.pass_context
def main(ctx: click.Context, config_path: Path | None) -> None:
    """The Kaleidoscope language toolchain."""
    try:
        ctx.obj = resolve_config(config_path)
    except (ValueError, OSError) as e:
        raise click.ClickException(f"invalid config: {e}") from e


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("-q", "--quiet", is_flag=True, help="Do not print top-level expression values.")
@click.pass_obj
def run(config: KaleidoConfig, file: str, quiet: bool) -> None:
    """Run a Kaleidoscope program."""
    source = _read(file)
    renderer = DiagnosticRenderer(color=config.repl.color, sources={file: source})

    def on_unit(outcome: UnitOutcome) -> None:
        _report(outcome.diagnostics, renderer)
        if outcome.value is not None and not quiet:
            click.echo(f"{outcome.value:f}")

    result = Session(source, filename=file, config=config, on_unit=on_unit).run()
    if not result.ok:
        raise SystemExit(1)


@main.command()
@click.pass_obj
def repl(config: KaleidoConfig) -> None:
    """Read and evaluate Kaleidoscope from stdin, one unit at a time."""
    renderer = DiagnosticRenderer(color=config.repl.color)

    def prompt() -> None:
        click.echo(config.repl.prompt, nl=False, err=True)

    def on_unit(outcome: UnitOutcome) -> None:
        if outcome.diagnostics:
            _report(outcome.diagnostics, renderer)
            return
        kind = outcome.unit.kind
        if kind == UnitKind.DEFINITION:
            click.echo("Parsed a function definition.", err=True)
        elif kind == UnitKind.EXTERN:
            click.echo("Parsed an extern.", err=True)
        elif outcome.value is not None:
            click.echo(f"Evaluated to {outcome.value:f}", err=True)

    stdin = click.get_text_stream("stdin")
    Session(stdin, config=config, on_unit=on_unit, before_unit=prompt).run()
    click.echo("", err=True)


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
def tokens(file: str) -> None:
    """List the tokens of a Kaleidoscope source file."""
    for tok in Lexer(_read(file), file):
        if tok.kind == TokenKind.EOF:
            break
        shown = tok.kind in (TokenKind.IDENTIFIER, TokenKind.NUMBER, TokenKind.CHAR)
        value = f" {tok.value!r}" if shown else ""
        click.echo(f"{tok.span.start_line}:{tok.span.start_col}\t{tok.kind.name}{value}")


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.pass_obj
def view(config: KaleidoConfig, file: str) -> None:
    """View the AST of a Kaleidoscope source file."""
    source = _read(file)
    parser = Parser(
        Lexer(source, file),
        config.operator_table(),
        default_precedence=config.parser.default_precedence,
    )
    for unit in parser.units():
        if unit.node is not None:
            _dump_ast(unit.node, 0)

    if parser.diagnostics:
        _report(parser.diagnostics, DiagnosticRenderer(color=config.repl.color, sources={file: source}))
        raise SystemExit(1)


@main.command(name="format")
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--check", is_flag=True, help="Check formatting without modifying the file.")
@click.pass_obj
def format_cmd(config: KaleidoConfig, file: str, check: bool) -> None:
    """Format a Kaleidoscope source file."""
    from kaleido.formatter import format_source

    source = _read(file)
    try:
        formatted = format_source(source, file, config)
    except CompileError as e:
        _report(e.diagnostics, DiagnosticRenderer(color=config.repl.color, sources={file: source}))
        raise SystemExit(1)

    if formatted == source:
        return
    if check:
        click.echo(f"would reformat {file}")
        raise SystemExit(1)
    Path(file).write_text(formatted)
    click.echo(f"formatted {file}")


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
def highlight(file: str) -> None:
    """Print a Kaleidoscope source file with syntax highlighting."""
    from kaleido.highlight import highlight_source

    click.echo(highlight_source(_read(file)), nl=False)


@main.command()
def lsp() -> None:
    """Start the Kaleidoscope language server."""
    from kaleido.lsp import main as lsp_main

    lsp_main()


def _dump_ast(node: object, depth: int) -> None:
    """Print ``node`` as an indented tree, one field per line; spans are left out."""
    pad = "  " * depth
    if not is_dataclass(node):
        click.echo(f"{pad}{node!r}")
        return

    click.echo(f"{pad}{type(node).__name__}")
    for f in fields(node):
        value = getattr(node, f.name)
        if f.name == "span" or value is None:
            continue
        if is_dataclass(value):
            click.echo(f"{pad}  {f.name}:")
            _dump_ast(value, depth + 2)
        elif isinstance(value, list) and any(is_dataclass(item) for item in value):
            click.echo(f"{pad}  {f.name}:")
            for item in value:
                _dump_ast(item, depth + 2)
        elif isinstance(value, Enum):
            click.echo(f"{pad}  {f.name}: {value.name}")
        else:
            click.echo(f"{pad}  {f.name}: {value!r}")
