"""TypeScript / JavaScript / TSX parsing with tree-sitter.

Every parse keeps the UTF-8 bytes it was built from so that each node carries
its original `[start, end)` byte span. Nothing is cached across calls except
the (stateless) tree-sitter parser objects.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import PurePosixPath
from typing import Dict, Iterator, List, Optional, Tuple, Union

import tree_sitter_typescript as ts_typescript
from tree_sitter import Language, Node, Parser, Tree

from astsplice.errors import ParseError

TYPESCRIPT = "typescript"
TSX = "tsx"

_EXTENSION_GRAMMAR: Dict[str, str] = {
    ".ts": TYPESCRIPT,
    ".mts": TYPESCRIPT,
    ".cts": TYPESCRIPT,
    ".tsx": TSX,
    ".js": TSX,
    ".jsx": TSX,
    ".mjs": TSX,
    ".cjs": TSX,
}

# TypeScript compiler style attribute names mapped to tree-sitter field names.
FIELD_ALIASES: Dict[str, Tuple[str, ...]] = {
    "expression": ("function", "constructor", "object"),
    "name": ("property", "key"),
    "tagName": ("name",),
    "moduleSpecifier": ("source",),
    "initializer": ("value",),
    "openingElement": ("open_tag",),
    "closingElement": ("close_tag",),
    "members": ("body",),
    "typeArguments": ("type_arguments",),
    "typeParameters": ("type_parameters",),
}

# Nodes whose `expression` is simply their first named child.
_WRAPPING_KINDS = frozenset({
    "expression_statement",
    "parenthesized_expression",
    "jsx_expression",
    "await_expression",
    "spread_element",
    "non_null_expression",
    "as_expression",
    "satisfies_expression",
    "return_statement",
})

IDENTIFIER_KINDS = frozenset({
    "identifier",
    "property_identifier",
    "shorthand_property_identifier",
    "shorthand_property_identifier_pattern",
    "type_identifier",
    "private_property_identifier",
    "statement_identifier",
    "nested_identifier",
})

_STRING_KINDS = frozenset({"string"})


@lru_cache(maxsize=None)
def _language(grammar: str) -> Language:
    if grammar == TSX:
        return Language(ts_typescript.language_tsx())
    if grammar == TYPESCRIPT:
        return Language(ts_typescript.language_typescript())
    raise ValueError(f"Unknown grammar: {grammar}")


@lru_cache(maxsize=None)
def _parser(grammar: str) -> Parser:
    return Parser(_language(grammar))


def grammar_for_path(path: Optional[str]) -> str:
    """Pick the grammar from the file extension; JSX-capable TSX is the default."""
    if not path:
        return TSX
    return _EXTENSION_GRAMMAR.get(PurePosixPath(str(path)).suffix.lower(), TSX)


@dataclass
class SourceDocument:
    """One file's text plus its parse tree, owned by a single operation."""

    path: Optional[str]
    text: str
    grammar: str = TSX
    source: bytes = field(default=b"", repr=False)
    tree: Optional[Tree] = field(default=None, repr=False)

    @property
    def root(self) -> "SyntaxNode":
        if self.tree is None:
            raise ParseError(f"Document {self.path or '<source>'} has not been parsed")
        return SyntaxNode(self.tree.root_node, self)

    def slice(self, start: int, end: int) -> str:
        return self.source[start:end].decode("utf-8")


class SyntaxNode:
    """A tree-sitter node bound to the document it came from."""

    __slots__ = ("_node", "document")

    def __init__(self, node: Node, document: SourceDocument):
        self._node = node
        self.document = document

    @property
    def kind(self) -> str:
        return self._node.type

    @property
    def start(self) -> int:
        return self._node.start_byte

    @property
    def end(self) -> int:
        return self._node.end_byte

    @property
    def line(self) -> int:
        return self._node.start_point[0] + 1

    @property
    def is_named(self) -> bool:
        return self._node.is_named

    @property
    def text(self) -> str:
        return self.document.slice(self.start, self.end)

    @property
    def value(self) -> str:
        """Unquoted content for string literals, source text otherwise."""
        text = self.text
        if self.kind in _STRING_KINDS and len(text) >= 2 and text[0] in "'\"" and text[-1] == text[0]:
            return text[1:-1]
        return text

    @property
    def parent(self) -> Optional["SyntaxNode"]:
        p = self._node.parent
        return SyntaxNode(p, self.document) if p is not None else None

    @property
    def children(self) -> List["SyntaxNode"]:
        return [SyntaxNode(c, self.document) for c in self._node.children]

    @property
    def named_children(self) -> List["SyntaxNode"]:
        return [SyntaxNode(c, self.document) for c in self._node.named_children]

    def field(self, name: str) -> Optional["SyntaxNode"]:
        child = self._node.child_by_field_name(name)
        return SyntaxNode(child, self.document) if child is not None else None

    def fields(self, name: str) -> List["SyntaxNode"]:
        return [SyntaxNode(c, self.document) for c in self._node.children_by_field_name(name)]

    def attr(self, path: Union[str, Tuple[str, ...]]) -> Union["SyntaxNode", str, None]:
        """Resolve a dotted attribute path such as "expression.name" or "name.text"."""
        segments = tuple(path.split(".")) if isinstance(path, str) else path
        return resolve_attribute(self, segments)

    def walk(self) -> Iterator["SyntaxNode"]:
        """Named nodes of this subtree in pre-order (document order), self first."""
        stack = [self._node]
        while stack:
            n = stack.pop()
            yield SyntaxNode(n, self.document)
            stack.extend(reversed(n.named_children))

    def descendants(self) -> Iterator["SyntaxNode"]:
        it = self.walk()
        next(it)
        return it

    def ancestors(self) -> Iterator["SyntaxNode"]:
        p = self._node.parent
        while p is not None:
            yield SyntaxNode(p, self.document)
            p = p.parent

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SyntaxNode):
            return NotImplemented
        return (
            other.document is self.document
            and other.start == self.start
            and other.end == self.end
            and other.kind == self.kind
        )

    def __hash__(self) -> int:
        return hash((id(self.document), self.start, self.end, self.kind))

    def __repr__(self) -> str:
        snippet = self.text
        if len(snippet) > 40:
            snippet = snippet[:37] + "..."
        return f"<SyntaxNode {self.kind} [{self.start}:{self.end}] {snippet!r}>"


def resolve_attribute(node: SyntaxNode, path: Tuple[str, ...]) -> Union[SyntaxNode, str, None]:
    current: Union[SyntaxNode, str, None] = node
    for segment in path:
        if not isinstance(current, SyntaxNode):
            return None
        current = _resolve_segment(current, segment)
        if current is None:
            return None
    return current


def _resolve_segment(node: SyntaxNode, segment: str) -> Union[SyntaxNode, str, None]:
    child = node.field(segment)
    if child is not None:
        return child
    for alias in FIELD_ALIASES.get(segment, ()):
        child = node.field(alias)
        if child is not None:
            return child
    if segment == "expression" and node.kind in _WRAPPING_KINDS:
        named = node.named_children
        return named[0] if named else None
    if segment == "expression" and node.kind == "export_statement":
        return node.field("value")
    if node.kind == "jsx_attribute" and segment in ("name", "initializer"):
        # name and value are positional, not fields
        named = node.named_children
        index = 0 if segment == "name" else 1
        return named[index] if len(named) > index else None
    if segment in ("text", "value"):
        return node.value
    if segment == "name" and node.kind in IDENTIFIER_KINDS:
        return node
    if segment == "kind":
        return node.kind
    return None


def _first_error(root: Node) -> Optional[Node]:
    stack = [root]
    while stack:
        n = stack.pop()
        if n.type == "ERROR" or n.is_missing:
            return n
        if n.has_error:
            stack.extend(reversed(n.children))
    return None


def parse(text: str, path: Optional[str] = None, grammar: Optional[str] = None) -> SourceDocument:
    """Parse `text` into a SourceDocument; syntax errors raise ParseError."""
    grammar = grammar or grammar_for_path(path)
    source = text.encode("utf-8")
    tree = _parser(grammar).parse(source)
    if tree.root_node.has_error:
        bad = _first_error(tree.root_node)
        where = ""
        if bad is not None:
            row, col = bad.start_point
            where = f" at line {row + 1}, column {col + 1}"
        raise ParseError(f"Failed to parse {path or '<source>'}: syntax error{where}")
    return SourceDocument(path=path, text=text, grammar=grammar, source=source, tree=tree)
