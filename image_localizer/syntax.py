"""Parsing JavaScript/TypeScript sources and locating image URL candidates."""

from __future__ import annotations

import html
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, Optional, Tuple

import tree_sitter_typescript
from tree_sitter import Language, Node, Parser, Tree

from .models import Candidate, CandidateKind

TYPESCRIPT = Language(tree_sitter_typescript.language_typescript())
TSX = Language(tree_sitter_typescript.language_tsx())

JSX_ATTRIBUTES = frozenset({"src", "srcSet", "href", "background", "backgroundImage"})
OBJECT_KEYS = frozenset({"src", "url", "image", "backgroundImage"})

_ESCAPE_PATTERN = re.compile(
    r"\\(u\{[0-9a-fA-F]+\}|u[0-9a-fA-F]{4}|x[0-9a-fA-F]{2}|\r\n|[\s\S])"
)
_SIMPLE_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "0": "\0",
    "\n": "",
    "\r": "",
    "\r\n": "",
    "\u2028": "",
    "\u2029": "",
}


class SourceParseError(ValueError):
    """Raised when a file is not valid JavaScript/TypeScript."""

    def __init__(self, path: Path, line: int, detail: str) -> None:
        super().__init__(f"{path}:{line}: {detail}")
        self.path = path
        self.line = line


def _unescape_match(match: re.Match) -> str:
    escape = match.group(1)
    if escape in _SIMPLE_ESCAPES:
        return _SIMPLE_ESCAPES[escape]
    if escape.startswith("u{"):
        return chr(int(escape[2:-1], 16))
    if escape[0] in "ux" and len(escape) > 1:
        return chr(int(escape[1:], 16))
    return escape


def decode_js_string(raw: str) -> str:
    """Resolve backslash escapes of a JavaScript string body."""
    if "\\" not in raw:
        return raw
    decoded = _ESCAPE_PATTERN.sub(_unescape_match, raw)
    # \uXXXX escapes are UTF-16 code units; join surrogate pairs, replace strays.
    return decoded.encode("utf-16", "surrogatepass").decode("utf-16", "replace")


def encode_js_string(value: str, quote: str) -> str:
    escaped = value.replace("\\", "\\\\").replace(quote, "\\" + quote)
    escaped = escaped.replace("\n", "\\n").replace("\r", "\\r")
    return f"{quote}{escaped}{quote}"


def _language_for(path: Path) -> Language:
    # `<T>value` casts are only legal without JSX.
    if path.suffix.lower() == ".ts":
        return TYPESCRIPT
    return TSX


def _first_error(node: Node) -> Optional[Node]:
    stack = [node]
    while stack:
        current = stack.pop()
        if current.type == "ERROR" or current.is_missing:
            return current
        if current.has_error:
            stack.extend(reversed(current.children))
    return None


@dataclass
class SourceDocument:
    """Parsed source file together with its pending literal replacements."""

    path: Path
    data: bytes
    tree: Tree
    edits: Dict[Tuple[int, int], bytes] = field(default_factory=dict)

    @property
    def modified(self) -> bool:
        return bool(self.edits)

    def text(self, start: int, end: int) -> str:
        return self.data[start:end].decode("utf-8", errors="replace")

    def replace(self, candidate: Candidate, value: str) -> None:
        """Overwrite the literal behind ``candidate`` with ``value``."""
        if not candidate.rewritable:
            raise ValueError(f"{candidate.kind.value} at line {candidate.line} is read-only")
        quote = self.text(candidate.start, candidate.start + 1)
        if candidate.jsx:
            literal = quote + html.escape(value) + quote
        else:
            literal = encode_js_string(value, quote)
        self.edits[(candidate.start, candidate.end)] = literal.encode("utf-8")

    def render(self) -> bytes:
        """Return the source with every pending replacement applied."""
        output = self.data
        for (start, end), literal in sorted(self.edits.items(), reverse=True):
            output = output[:start] + literal + output[end:]
        return output


def parse_source(path: Path, data: bytes) -> SourceDocument:
    """Parse ``data`` with the grammar matching ``path``'s extension."""
    parser = Parser(_language_for(path))
    tree = parser.parse(data)
    if tree.root_node.has_error:
        error = _first_error(tree.root_node) or tree.root_node
        line = error.start_point[0] + 1
        detail = "missing token" if error.is_missing else "unexpected syntax"
        snippet = data[error.start_byte : error.start_byte + 40].decode(
            "utf-8", errors="replace"
        ).splitlines()
        if snippet and snippet[0].strip():
            detail = f"{detail} near {snippet[0].strip()!r}"
        raise SourceParseError(path, line, detail)
    return SourceDocument(path=path, data=data, tree=tree)


def _in_jsx_attribute(node: Node) -> bool:
    # JSX attribute strings take HTML entities instead of backslash escapes.
    return node.parent is not None and node.parent.type == "jsx_attribute"


def _string_value(document: SourceDocument, node: Node) -> str:
    body = document.text(node.start_byte + 1, node.end_byte - 1)
    if _in_jsx_attribute(node):
        return html.unescape(body)
    return decode_js_string(body)


def _template_value(document: SourceDocument, node: Node) -> str:
    parts = []
    cursor = node.start_byte + 1
    for child in node.children:
        if child.type == "template_substitution":
            parts.append(document.text(cursor, child.start_byte))
            cursor = child.end_byte
    parts.append(document.text(cursor, node.end_byte - 1))
    return decode_js_string("".join(parts))


def _candidate(
    document: SourceDocument, kind: CandidateKind, node: Node
) -> Candidate:
    if kind is CandidateKind.TEMPLATE_LITERAL:
        value = _template_value(document, node)
    else:
        value = _string_value(document, node)
    return Candidate(
        kind=kind,
        value=value,
        start=node.start_byte,
        end=node.end_byte,
        line=node.start_point[0] + 1,
        rewritable=kind is not CandidateKind.TEMPLATE_LITERAL,
        jsx=_in_jsx_attribute(node),
    )


def _jsx_attribute_value(document: SourceDocument, node: Node) -> Optional[Node]:
    children = node.named_children
    if len(children) != 2:
        return None
    name, value = children
    if name.type != "property_identifier" or value.type != "string":
        return None
    if document.text(name.start_byte, name.end_byte) not in JSX_ATTRIBUTES:
        return None
    return value


def _property_key(document: SourceDocument, key: Node) -> Optional[str]:
    if key.type == "property_identifier":
        return document.text(key.start_byte, key.end_byte)
    if key.type == "string":
        return _string_value(document, key)
    return None


def _object_property_value(document: SourceDocument, node: Node) -> Optional[Node]:
    key = node.child_by_field_name("key")
    value = node.child_by_field_name("value")
    if key is None or value is None or value.type != "string":
        return None
    if _property_key(document, key) not in OBJECT_KEYS:
        return None
    return value


def iter_candidates(document: SourceDocument) -> Iterator[Candidate]:
    """Yield every string slot that might hold an image URL, in document order.

    A string under a tracked JSX attribute or object key is reported twice:
    once for the attribute/property and once as a plain literal.
    """
    stack = [document.tree.root_node]
    while stack:
        node = stack.pop()
        if node.type == "string" and node.is_named:
            yield _candidate(document, CandidateKind.LITERAL, node)
        elif node.type == "template_string" and node.is_named:
            yield _candidate(document, CandidateKind.TEMPLATE_LITERAL, node)
        elif node.type == "jsx_attribute":
            value = _jsx_attribute_value(document, node)
            if value is not None:
                yield _candidate(document, CandidateKind.JSX_ATTRIBUTE, value)
        elif node.type == "pair":
            value = _object_property_value(document, node)
            if value is not None:
                yield _candidate(document, CandidateKind.OBJECT_PROPERTY, value)
        stack.extend(reversed(node.children))
