"""Structural selector language and matcher.

Grammar (whitespace is the descendant combinator):

    selector_list := complex ("," complex)*
    complex       := compound (combinator compound)*
    combinator    := " " | ">"
    compound      := (kind | "*") predicate*
    predicate     := "[" attr_path (("=" | "!=") value)? "]"
                   | ":has(" selector_list ")"
                   | ":not(" selector_list ")"
    value         := "string" | 'string' | /regex/flags | bare-token

Kinds are raw tree-sitter node types (`call_expression`) or TypeScript
compiler style names (`CallExpression`), see KIND_ALIASES.

Example: `CallExpression[expression.name="router"] > ObjectLiteralExpression`
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import FrozenSet, List, Optional, Tuple, Union

from astsplice.errors import SelectorSyntaxError
from astsplice.parser import SourceDocument, SyntaxNode, parse

KIND_ALIASES = {
    "SourceFile": ("program",),
    "Identifier": (
        "identifier",
        "property_identifier",
        "shorthand_property_identifier",
        "shorthand_property_identifier_pattern",
        "type_identifier",
        "private_property_identifier",
    ),
    "StringLiteral": ("string",),
    "NumericLiteral": ("number",),
    "TemplateExpression": ("template_string",),
    "RegularExpressionLiteral": ("regex",),
    "TrueKeyword": ("true",),
    "FalseKeyword": ("false",),
    "NullKeyword": ("null",),
    "ImportDeclaration": ("import_statement",),
    "ImportClause": ("import_clause",),
    "NamedImports": ("named_imports",),
    "NamespaceImport": ("namespace_import",),
    "ImportSpecifier": ("import_specifier",),
    "ExportDeclaration": ("export_statement",),
    "ExportAssignment": ("export_statement",),
    "NamedExports": ("export_clause",),
    "ExportSpecifier": ("export_specifier",),
    "VariableStatement": ("lexical_declaration", "variable_declaration"),
    "VariableDeclaration": ("variable_declarator",),
    "FunctionDeclaration": ("function_declaration", "generator_function_declaration"),
    "FunctionExpression": ("function_expression", "function"),
    "ArrowFunction": ("arrow_function",),
    "ClassDeclaration": ("class_declaration", "abstract_class_declaration"),
    "ClassExpression": ("class",),
    "MethodDeclaration": ("method_definition",),
    "PropertyDeclaration": ("public_field_definition",),
    "Decorator": ("decorator",),
    "InterfaceDeclaration": ("interface_declaration",),
    "TypeAliasDeclaration": ("type_alias_declaration",),
    "EnumDeclaration": ("enum_declaration",),
    "PropertySignature": ("property_signature",),
    "MethodSignature": ("method_signature",),
    "TypeLiteral": ("object_type",),
    "CallExpression": ("call_expression",),
    "NewExpression": ("new_expression",),
    "PropertyAccessExpression": ("member_expression",),
    "ElementAccessExpression": ("subscript_expression",),
    "ObjectLiteralExpression": ("object",),
    "ArrayLiteralExpression": ("array",),
    "PropertyAssignment": ("pair",),
    "ShorthandPropertyAssignment": ("shorthand_property_identifier",),
    "SpreadElement": ("spread_element",),
    "BinaryExpression": ("binary_expression",),
    "AwaitExpression": ("await_expression",),
    "AsExpression": ("as_expression",),
    "ParenthesizedExpression": ("parenthesized_expression",),
    "ExpressionStatement": ("expression_statement",),
    "ReturnStatement": ("return_statement",),
    "IfStatement": ("if_statement",),
    "Block": ("statement_block",),
    "JsxElement": ("jsx_element",),
    "JsxSelfClosingElement": ("jsx_self_closing_element",),
    "JsxOpeningElement": ("jsx_opening_element",),
    "JsxClosingElement": ("jsx_closing_element",),
    "JsxAttribute": ("jsx_attribute",),
    "JsxExpression": ("jsx_expression",),
    "JsxText": ("jsx_text",),
}

# tree-sitter wraps these lists in their own node; in the TypeScript AST they
# are plain arrays on the parent, so `A > B` looks through them.
TRANSPARENT_KINDS = frozenset({
    "arguments",
    "class_body",
    "formal_parameters",
    "type_arguments",
    "type_parameters",
    "interface_body",
})


def _is_export_assignment(node: SyntaxNode) -> bool:
    """`export default <expr>` or `export = <expr>`, not `export default function ...`."""
    if node.field("value") is not None:
        return True
    return node.field("declaration") is None and any(not c.is_named and c.kind == "=" for c in node.children)


# Aliases whose tree-sitter type is shared with another kind and needs a shape check.
KIND_REFINEMENTS = {
    "ExportAssignment": _is_export_assignment,
}

_RAW_KIND = re.compile(r"^[a-z_][a-z0-9_]*$")
_IDENT_START = re.compile(r"[A-Za-z_]")
_IDENT_CHAR = re.compile(r"[A-Za-z0-9_\-]")


@dataclass(frozen=True)
class AttrPredicate:
    path: Tuple[str, ...]
    op: Optional[str] = None
    value: Union[str, re.Pattern, None] = None

    def matches(self, node: SyntaxNode) -> bool:
        resolved = node.attr(self.path)
        if self.op is None:
            return resolved is not None
        equal = resolved is not None and self._compare(resolved)
        return equal if self.op == "=" else not equal

    def _compare(self, resolved: Union[SyntaxNode, str]) -> bool:
        s = resolved.value if isinstance(resolved, SyntaxNode) else str(resolved)
        if isinstance(self.value, str):
            return s == self.value
        return bool(self.value.search(s))


@dataclass(frozen=True)
class HasPredicate:
    selector: "SelectorList"

    def matches(self, node: SyntaxNode) -> bool:
        return any(_matches_list(d, self.selector, scope=node) for d in node.descendants())


@dataclass(frozen=True)
class NotPredicate:
    selector: "SelectorList"

    def matches(self, node: SyntaxNode) -> bool:
        return not _matches_list(node, self.selector, scope=None)


@dataclass(frozen=True)
class ShapePredicate:
    kind_name: str

    def matches(self, node: SyntaxNode) -> bool:
        return KIND_REFINEMENTS[self.kind_name](node)


Predicate = Union[AttrPredicate, HasPredicate, NotPredicate, ShapePredicate]


@dataclass(frozen=True)
class Compound:
    kinds: Optional[FrozenSet[str]]
    predicates: Tuple[Predicate, ...] = ()

    def matches(self, node: SyntaxNode) -> bool:
        if self.kinds is not None and node.kind not in self.kinds:
            return False
        return all(p.matches(node) for p in self.predicates)


@dataclass(frozen=True)
class Complex:
    parts: Tuple[Compound, ...]
    combinators: Tuple[str, ...]


SelectorList = Tuple[Complex, ...]


class _SelectorParser:
    def __init__(self, text: str):
        self.text = text
        self.pos = 0

    def error(self, message: str) -> SelectorSyntaxError:
        return SelectorSyntaxError(f"Invalid selector {self.text!r} at position {self.pos}: {message}")

    def peek(self) -> Optional[str]:
        return self.text[self.pos] if self.pos < len(self.text) else None

    def skip_ws(self) -> bool:
        start = self.pos
        while self.pos < len(self.text) and self.text[self.pos].isspace():
            self.pos += 1
        return self.pos > start

    def expect(self, ch: str) -> None:
        if self.peek() != ch:
            raise self.error(f"expected {ch!r}")
        self.pos += 1

    def parse(self) -> SelectorList:
        result = self.parse_list()
        self.skip_ws()
        if self.pos != len(self.text):
            raise self.error(f"unexpected {self.peek()!r}")
        return result

    def parse_list(self) -> SelectorList:
        self.skip_ws()
        items = [self.parse_complex()]
        while True:
            self.skip_ws()
            if self.peek() != ",":
                return tuple(items)
            self.pos += 1
            self.skip_ws()
            items.append(self.parse_complex())

    def parse_complex(self) -> Complex:
        parts = [self.parse_compound()]
        combinators: List[str] = []
        while True:
            had_ws = self.skip_ws()
            c = self.peek()
            if c == ">":
                self.pos += 1
                self.skip_ws()
                combinators.append(">")
            elif had_ws and c is not None and c not in ",)":
                combinators.append(" ")
            else:
                return Complex(tuple(parts), tuple(combinators))
            parts.append(self.parse_compound())

    def parse_ident(self) -> str:
        c = self.peek()
        if c is None or not _IDENT_START.match(c):
            raise self.error("expected a name")
        start = self.pos
        while self.pos < len(self.text) and _IDENT_CHAR.match(self.text[self.pos]):
            self.pos += 1
        return self.text[start:self.pos]

    def parse_compound(self) -> Compound:
        c = self.peek()
        kinds: Optional[FrozenSet[str]]
        predicates: List[Predicate] = []
        if c == "*":
            self.pos += 1
            kinds = None
        elif c in ("[", ":"):
            kinds = None
        elif c is not None and _IDENT_START.match(c):
            name = self.parse_ident()
            kinds = _resolve_kind(name, self)
            if name in KIND_REFINEMENTS:
                predicates.append(ShapePredicate(name))
        else:
            raise self.error("expected a node kind")
        while self.peek() in ("[", ":"):
            predicates.append(self.parse_attr() if self.peek() == "[" else self.parse_pseudo())
        return Compound(kinds, tuple(predicates))

    def parse_attr(self) -> AttrPredicate:
        self.expect("[")
        self.skip_ws()
        path = [self.parse_ident()]
        while self.peek() == ".":
            self.pos += 1
            path.append(self.parse_ident())
        self.skip_ws()
        if self.peek() == "]":
            self.pos += 1
            return AttrPredicate(tuple(path))
        if self.text.startswith("!=", self.pos):
            op = "!="
            self.pos += 2
        elif self.peek() == "=":
            op = "="
            self.pos += 1
        else:
            raise self.error("expected '=', '!=' or ']'")
        self.skip_ws()
        value = self.parse_value()
        self.skip_ws()
        self.expect("]")
        return AttrPredicate(tuple(path), op, value)

    def parse_value(self) -> Union[str, re.Pattern]:
        c = self.peek()
        if c in ("'", '"'):
            return self.parse_quoted(c)
        if c == "/":
            return self.parse_regex()
        start = self.pos
        while self.pos < len(self.text) and self.text[self.pos] not in "] \t\n":
            self.pos += 1
        if self.pos == start:
            raise self.error("expected a value")
        return self.text[start:self.pos]

    def parse_quoted(self, quote: str) -> str:
        self.pos += 1
        out: List[str] = []
        while True:
            c = self.peek()
            if c is None:
                raise self.error("unterminated string")
            self.pos += 1
            if c == quote:
                return "".join(out)
            if c == "\\":
                nxt = self.peek()
                if nxt is None:
                    raise self.error("unterminated escape")
                self.pos += 1
                out.append(nxt)
            else:
                out.append(c)

    def parse_regex(self) -> re.Pattern:
        self.pos += 1
        start = self.pos
        while True:
            c = self.peek()
            if c is None:
                raise self.error("unterminated regular expression")
            if c == "\\":
                self.pos += 2
                continue
            if c == "/":
                break
            self.pos += 1
        body = self.text[start:self.pos]
        self.pos += 1
        flags = 0
        while self.peek() in ("i", "m", "s"):
            flags |= {"i": re.IGNORECASE, "m": re.MULTILINE, "s": re.DOTALL}[self.peek()]
            self.pos += 1
        try:
            return re.compile(body, flags)
        except re.error as e:
            raise self.error(f"bad regular expression: {e}") from e

    def parse_pseudo(self) -> Predicate:
        self.expect(":")
        name = self.parse_ident()
        if name not in ("has", "not"):
            raise self.error(f"unknown pseudo-class :{name}")
        self.expect("(")
        inner = self.parse_list()
        self.skip_ws()
        self.expect(")")
        return HasPredicate(inner) if name == "has" else NotPredicate(inner)


def _resolve_kind(name: str, parser: _SelectorParser) -> FrozenSet[str]:
    if name in KIND_ALIASES:
        return frozenset(KIND_ALIASES[name])
    if _RAW_KIND.match(name):
        return frozenset((name,))
    raise parser.error(f"unknown node kind {name!r}")


@lru_cache(maxsize=256)
def compile_selector(selector: str) -> SelectorList:
    if not isinstance(selector, str) or not selector.strip():
        raise SelectorSyntaxError("Selector must be a non-empty string")
    return _SelectorParser(selector).parse()


def _direct_parents(node: SyntaxNode, scope: Optional[SyntaxNode]) -> List[SyntaxNode]:
    parent = node.parent
    if parent is None or parent == scope:
        return []
    out = [parent]
    if parent.kind in TRANSPARENT_KINDS:
        grand = parent.parent
        if grand is not None and grand != scope:
            out.append(grand)
    return out


def _match_at(node: SyntaxNode, cx: Complex, i: int, scope: Optional[SyntaxNode]) -> bool:
    if not cx.parts[i].matches(node):
        return False
    if i == 0:
        return True
    if cx.combinators[i - 1] == ">":
        return any(_match_at(p, cx, i - 1, scope) for p in _direct_parents(node, scope))
    for anc in node.ancestors():
        if scope is not None and anc == scope:
            return False
        if _match_at(anc, cx, i - 1, scope):
            return True
    return False


def _matches_list(node: SyntaxNode, selectors: SelectorList, scope: Optional[SyntaxNode]) -> bool:
    return any(_match_at(node, cx, len(cx.parts) - 1, scope) for cx in selectors)


def matches(node: SyntaxNode, selector: str) -> bool:
    """True when `node` itself satisfies `selector`."""
    return _matches_list(node, compile_selector(selector), scope=None)


def query(document: SourceDocument, selector: str) -> List[SyntaxNode]:
    """Every node of `document` matching `selector`, in document order."""
    compiled = compile_selector(selector)
    return [n for n in document.root.walk() if _matches_list(n, compiled, scope=None)]


def query_source(text: str, selector: str, path: Optional[str] = None) -> List[SyntaxNode]:
    return query(parse(text, path), selector)


def quote_value(value: str) -> str:
    """Quote `value` for use inside an attribute predicate."""
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'
