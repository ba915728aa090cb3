"""Kaleidoscope language server over stdio, built on pygls.

Each open document is parsed (never evaluated) on open and on every change.
The parse gives diagnostics, the prototypes used for hover, completion and
document symbols, and the input for whole-document formatting. Operator
definitions in a document affect how the rest of that document parses, just
as they do when it runs.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from lsprotocol import types as lsp
from pygls.lsp.server import LanguageServer

from kaleido import __version__
from kaleido.ast_nodes import Function, Prototype
from kaleido.errors import CompileError, Diagnostic, Severity
from kaleido.formatter import Formatter, format_source
from kaleido.parser import Parser, UnitKind
from kaleido.source import Span
from kaleido.tokens import KEYWORDS

_LSP_SEVERITY = {
    Severity.ERROR: lsp.DiagnosticSeverity.Error,
    Severity.WARNING: lsp.DiagnosticSeverity.Warning,
    Severity.NOTE: lsp.DiagnosticSeverity.Information,
}

_IDENTIFIER = re.compile(r"[A-Za-z][A-Za-z0-9]*")


def span_to_range(span: Span | None) -> lsp.Range:
    """1-indexed inclusive Span to 0-indexed half-open Range."""
    if span is None:
        origin = lsp.Position(line=0, character=0)
        return lsp.Range(start=origin, end=origin)
    return lsp.Range(
        start=lsp.Position(line=span.start_line - 1, character=max(0, span.start_col - 1)),
        end=lsp.Position(line=span.end_line - 1, character=span.end_col),
    )


def _to_lsp(diag: Diagnostic) -> lsp.Diagnostic:
    return lsp.Diagnostic(
        range=span_to_range(diag.span),
        severity=_LSP_SEVERITY[diag.severity],
        code=diag.code,
        source="kaleido",
        message=diag.message,
    )


def _proto_of(node: Function | Prototype) -> Prototype:
    return node if isinstance(node, Prototype) else node.proto


@dataclass
class DocumentState:
    """What the server knows about one open document."""

    source: str = ""
    nodes: list[Function | Prototype] = field(default_factory=list)
    signatures: dict[str, str] = field(default_factory=dict)
    diagnostics: list[lsp.Diagnostic] = field(default_factory=list)

    def prototypes(self) -> list[Prototype]:
        """Named prototypes in document order; anonymous expressions are skipped."""
        protos = (_proto_of(node) for node in self.nodes)
        return [p for p in protos if not p.is_anonymous]


server = LanguageServer(
    "kaleido-lsp", __version__,
    text_document_sync_kind=lsp.TextDocumentSyncKind.Full,
)
_documents: dict[str, DocumentState] = {}


def _analyze(uri: str, source: str) -> DocumentState:
    """Parse ``source`` and store the result as the state of ``uri``."""
    parser = Parser.from_source(source, uri)
    formatter = Formatter(parser.operators)
    doc = DocumentState(source=source)

    for unit in parser.units():
        if unit.kind == UnitKind.ERROR or unit.node is None:
            continue
        doc.nodes.append(unit.node)
        proto = _proto_of(unit.node)
        if not proto.is_anonymous:
            # Rendered now: a later operator definition can change the table.
            doc.signatures[proto.name] = formatter.format_prototype(proto)

    doc.diagnostics = [_to_lsp(d) for d in parser.diagnostics]
    _documents[uri] = doc
    return doc


def _publish(uri: str, source: str) -> None:
    doc = _analyze(uri, source)
    server.text_document_publish_diagnostics(
        lsp.PublishDiagnosticsParams(uri=uri, diagnostics=doc.diagnostics),
    )


def _word_at(source: str, line: int, character: int) -> str:
    """The identifier under or just before a 0-indexed position, or ""."""
    lines = source.splitlines()
    if not 0 <= line < len(lines):
        return ""
    text = lines[line]
    for match in _IDENTIFIER.finditer(text):
        if match.start() <= character <= match.end():
            # Letters glued to a number ("2x") lex as a number then a name,
            # but the cursor is on the number.
            if match.start() > 0 and text[match.start() - 1].isdigit():
                return ""
            return match.group()
    return ""


def _node_to_symbol(node: Function | Prototype, signature: str) -> lsp.DocumentSymbol | None:
    proto = _proto_of(node)
    if proto.is_anonymous:
        return None
    keyword = "extern" if isinstance(node, Prototype) else "def"
    return lsp.DocumentSymbol(
        name=proto.name,
        detail=f"{keyword} {signature}",
        kind=lsp.SymbolKind.Operator if proto.is_operator else lsp.SymbolKind.Function,
        range=span_to_range(node.span),
        selection_range=span_to_range(proto.span),
    )


def _document_end(source: str) -> lsp.Position:
    """Position just past the last character, in the client's line numbering."""
    last_break = source.rfind("\n")
    return lsp.Position(line=source.count("\n"), character=len(source) - last_break - 1)


# ── Handlers ──────────────────────────────────────────────────────


@server.feature(lsp.TEXT_DOCUMENT_DID_OPEN)
def did_open(params: lsp.DidOpenTextDocumentParams) -> None:
    _publish(params.text_document.uri, params.text_document.text)


@server.feature(lsp.TEXT_DOCUMENT_DID_CHANGE)
def did_change(params: lsp.DidChangeTextDocumentParams) -> None:
    # Full sync, so the last change holds the whole text
    changes = params.content_changes
    _publish(params.text_document.uri, changes[-1].text if changes else "")


@server.feature(lsp.TEXT_DOCUMENT_DID_CLOSE)
def did_close(params: lsp.DidCloseTextDocumentParams) -> None:
    _documents.pop(params.text_document.uri, None)


@server.feature(lsp.TEXT_DOCUMENT_HOVER)
def hover(params: lsp.HoverParams) -> lsp.Hover | None:
    doc = _documents.get(params.text_document.uri)
    if doc is None:
        return None
    name = _word_at(doc.source, params.position.line, params.position.character)
    if name not in doc.signatures:
        return None
    return lsp.Hover(contents=lsp.MarkupContent(
        kind=lsp.MarkupKind.Markdown,
        value=f"**function** `{doc.signatures[name]}`",
    ))


@server.feature(lsp.TEXT_DOCUMENT_COMPLETION)
def completion(params: lsp.CompletionParams) -> lsp.CompletionList:
    items = [
        lsp.CompletionItem(label=word, kind=lsp.CompletionItemKind.Keyword)
        for word in sorted(KEYWORDS)
    ]
    doc = _documents.get(params.text_document.uri)
    if doc is not None:
        # Operator functions are used through their symbol, not by name.
        items.extend(
            lsp.CompletionItem(
                label=proto.name,
                kind=lsp.CompletionItemKind.Function,
                detail=doc.signatures.get(proto.name),
            )
            for proto in doc.prototypes()
            if not proto.is_operator
        )
    return lsp.CompletionList(is_incomplete=False, items=items)


@server.feature(lsp.TEXT_DOCUMENT_DOCUMENT_SYMBOL)
def document_symbol(params: lsp.DocumentSymbolParams) -> list[lsp.DocumentSymbol]:
    doc = _documents.get(params.text_document.uri)
    if doc is None:
        return []
    symbols = []
    for node in doc.nodes:
        name = _proto_of(node).name
        symbol = _node_to_symbol(node, doc.signatures.get(name, name))
        if symbol is not None:
            symbols.append(symbol)
    return symbols


@server.feature(lsp.TEXT_DOCUMENT_FORMATTING)
def formatting(params: lsp.DocumentFormattingParams) -> list[lsp.TextEdit] | None:
    doc = _documents.get(params.text_document.uri)
    if doc is None:
        return None
    try:
        formatted = format_source(doc.source, params.text_document.uri)
    except CompileError:
        return None
    if formatted == doc.source:
        return None
    start = lsp.Position(line=0, character=0)
    return [lsp.TextEdit(
        range=lsp.Range(start=start, end=_document_end(doc.source)),
        new_text=formatted,
    )]


def main() -> None:
    """Serve over stdin/stdout until the client disconnects."""
    server.start_io()
