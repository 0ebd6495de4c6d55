"""Node builders: synthesized syntax fragments.

Builders are plain dataclasses. Their children can be other builders, parsed
`SyntaxNode`s (printed verbatim) or raw source strings, so a transform can
wrap or extend what it matched without reprinting it.
"""
from __future__ import annotations

import math
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence, Union

from pydantic import BaseModel

from astsplice.errors import UnsupportedValueError
from astsplice.parser import SyntaxNode
from astsplice.printer import Printer

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")

Node = Any  # builder, SyntaxNode or str


def is_identifier(name: str) -> bool:
    return bool(_IDENTIFIER_RE.match(name))


@dataclass
class Raw:
    text: str

    def render(self, p: Printer, depth: int = 0) -> str:
        return self.text


@dataclass
class Identifier:
    name: str

    def render(self, p: Printer, depth: int = 0) -> str:
        return self.name


@dataclass
class StringLiteral:
    value: str
    single_quote: bool = False

    def render(self, p: Printer, depth: int = 0) -> str:
        q = "'" if self.single_quote else '"'
        body = (
            self.value.replace("\\", "\\\\")
            .replace(q, "\\" + q)
            .replace("\n", "\\n")
            .replace("\r", "\\r")
            .replace("\t", "\\t")
        )
        return f"{q}{body}{q}"


@dataclass
class NumericLiteral:
    value: Union[int, float, str]

    def render(self, p: Printer, depth: int = 0) -> str:
        v = self.value
        if isinstance(v, str):
            return v
        if isinstance(v, float):
            if math.isnan(v):
                return "NaN"
            if math.isinf(v):
                return "Infinity" if v > 0 else "-Infinity"
            if v.is_integer():
                return str(int(v))
            return repr(v)
        return str(v)


@dataclass
class Keyword:
    word: str

    def render(self, p: Printer, depth: int = 0) -> str:
        return self.word


TRUE = Keyword("true")
FALSE = Keyword("false")
NULL = Keyword("null")
UNDEFINED_ID = Identifier("undefined")


@dataclass
class ArrayLiteral:
    elements: List[Node] = field(default_factory=list)
    multiline: bool = False

    def render(self, p: Printer, depth: int = 0) -> str:
        if not self.elements:
            return "[]"
        if not self.multiline:
            return "[" + p.join(self.elements, depth=depth) + "]"
        inner = ",\n".join(p.pad(depth + 1) + p.print(e, depth + 1) for e in self.elements)
        return f"[\n{inner}\n{p.pad(depth)}]"


@dataclass
class PropertyAssignment:
    name: Node
    initializer: Node

    def render(self, p: Printer, depth: int = 0) -> str:
        return f"{p.print(self.name, depth)}: {p.print(self.initializer, depth)}"


@dataclass
class ShorthandProperty:
    name: str

    def render(self, p: Printer, depth: int = 0) -> str:
        return self.name


@dataclass
class ObjectLiteral:
    properties: List[Node] = field(default_factory=list)
    multiline: bool = False

    def render(self, p: Printer, depth: int = 0) -> str:
        if not self.properties:
            return "{}"
        if not self.multiline:
            return "{ " + p.join(self.properties, depth=depth) + " }"
        inner = ",\n".join(p.pad(depth + 1) + p.print(e, depth + 1) for e in self.properties)
        return f"{{\n{inner}\n{p.pad(depth)}}}"


@dataclass
class ImportSpecifier:
    name: str
    alias: Optional[str] = None

    @classmethod
    def parse(cls, spec: str) -> "ImportSpecifier":
        """Accept "name" or "name as alias"."""
        parts = spec.split()
        if len(parts) == 3 and parts[1] == "as":
            return cls(parts[0], parts[2])
        if len(parts) == 1:
            return cls(parts[0])
        raise ValueError(f"Invalid import specifier: {spec!r}")

    @property
    def bound_name(self) -> str:
        return self.alias or self.name

    def render(self, p: Printer, depth: int = 0) -> str:
        return f"{self.name} as {self.alias}" if self.alias else self.name


@dataclass
class NamedImports:
    elements: List[Node] = field(default_factory=list)

    def render(self, p: Printer, depth: int = 0) -> str:
        if not self.elements:
            return "{}"
        return "{ " + p.join(self.elements, depth=depth) + " }"


@dataclass
class ImportDeclaration:
    module: str
    default: Optional[str] = None
    named: Optional[NamedImports] = None
    namespace: Optional[str] = None
    single_quote: bool = False
    type_only: bool = False

    def render(self, p: Printer, depth: int = 0) -> str:
        source = p.print(StringLiteral(self.module, self.single_quote))
        parts: List[str] = []
        if self.default:
            parts.append(self.default)
        if self.namespace:
            parts.append(f"* as {self.namespace}")
        elif self.named is not None:
            parts.append(p.print(self.named, depth))
        if not parts:
            return f"import {source};"
        keyword = "import type" if self.type_only else "import"
        return f"{keyword} {', '.join(parts)} from {source};"


@dataclass
class ExportDeclaration:
    """`export * from "m";`, `export { a } from "m";` or `export { a };`"""

    module: Optional[str] = None
    names: Optional[List[Node]] = None
    single_quote: bool = False

    def render(self, p: Printer, depth: int = 0) -> str:
        clause = "*" if self.names is None else "{ " + p.join(self.names, depth=depth) + " }"
        if self.module is None:
            return f"export {clause};"
        return f"export {clause} from {p.print(StringLiteral(self.module, self.single_quote))};"


@dataclass
class VariableStatement:
    name: str
    initializer: Optional[Node] = None
    keyword: str = "const"
    type: Optional[Node] = None
    exported: bool = False

    def render(self, p: Printer, depth: int = 0) -> str:
        out = f"{'export ' if self.exported else ''}{self.keyword} {self.name}"
        if self.type is not None:
            out += f": {p.print(self.type, depth)}"
        if self.initializer is not None:
            out += f" = {p.print(self.initializer, depth)}"
        return out + ";"


@dataclass
class PropertySignature:
    name: str
    type: Node
    optional: bool = False

    def render(self, p: Printer, depth: int = 0) -> str:
        return f"{self.name}{'?' if self.optional else ''}: {p.print(self.type, depth)}"


@dataclass
class ObjectType:
    """Body of an interface or type literal, one member per line."""

    members: List[Node] = field(default_factory=list)

    def render(self, p: Printer, depth: int = 0) -> str:
        if not self.members:
            return "{}"
        lines = []
        for m in self.members:
            text = p.print(m, depth + 1)
            is_comment = isinstance(m, SyntaxNode) and m.kind == "comment"
            if not is_comment and not text.rstrip().endswith((";", ",")):
                text += ";"
            lines.append(p.pad(depth + 1) + text)
        return "{\n" + "\n".join(lines) + "\n" + p.pad(depth) + "}"


@dataclass
class JsxAttribute:
    name: str
    initializer: Optional[Node] = None

    def render(self, p: Printer, depth: int = 0) -> str:
        if self.initializer is None:
            return self.name
        if isinstance(self.initializer, StringLiteral):
            return f"{self.name}={p.print(self.initializer, depth)}"
        if isinstance(self.initializer, JsxExpression):
            return f"{self.name}={p.print(self.initializer, depth)}"
        return f"{self.name}={{{p.print(self.initializer, depth)}}}"


def _attributes(p: Printer, attributes: Sequence[Node], depth: int) -> str:
    return "".join(" " + p.print(a, depth) for a in attributes)


@dataclass
class JsxOpeningElement:
    tag_name: Node
    attributes: List[Node] = field(default_factory=list)

    def render(self, p: Printer, depth: int = 0) -> str:
        return f"<{p.print(self.tag_name)}{_attributes(p, self.attributes, depth)}>"


@dataclass
class JsxClosingElement:
    tag_name: Node

    def render(self, p: Printer, depth: int = 0) -> str:
        return f"</{p.print(self.tag_name)}>"


@dataclass
class JsxSelfClosingElement:
    tag_name: Node
    attributes: List[Node] = field(default_factory=list)

    def render(self, p: Printer, depth: int = 0) -> str:
        return f"<{p.print(self.tag_name)}{_attributes(p, self.attributes, depth)} />"


@dataclass
class JsxText:
    text: str

    def render(self, p: Printer, depth: int = 0) -> str:
        return self.text


@dataclass
class JsxExpression:
    expression: Optional[Node] = None

    def render(self, p: Printer, depth: int = 0) -> str:
        return "{" + p.print(self.expression, depth) + "}"


@dataclass
class JsxElement:
    opening_element: JsxOpeningElement
    children: List[Node] = field(default_factory=list)
    closing_element: Optional[JsxClosingElement] = None

    def render(self, p: Printer, depth: int = 0) -> str:
        closing = self.closing_element or JsxClosingElement(self.opening_element.tag_name)
        inner = "".join(p.print(c, depth) for c in self.children)
        return p.print(self.opening_element, depth) + inner + p.print(closing, depth)


def create_jsx_element(
    opening_element: JsxOpeningElement,
    children: Sequence[Node],
    closing_element: JsxClosingElement,
) -> JsxElement:
    return JsxElement(opening_element, list(children), closing_element)


def create_jsx_element_from_identifier(identifier: str, children: Sequence[Node]) -> JsxElement:
    """`<identifier>children</identifier>` with no attributes."""
    return JsxElement(
        JsxOpeningElement(Identifier(identifier)),
        list(children),
        JsxClosingElement(Identifier(identifier)),
    )


class _Undefined:
    _instance: Optional["_Undefined"] = None

    def __new__(cls) -> "_Undefined":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNDEFINED"

    def __bool__(self) -> bool:
        return False


UNDEFINED = _Undefined()


def _type_name(value: Any) -> str:
    if callable(value) and not isinstance(value, type):
        return "function"
    return type(value).__name__


def value_to_literal(value: Any) -> Node:
    """Convert plain data into its literal syntax, recursively.

    Only data is supported; callables and other objects raise
    UnsupportedValueError.
    """
    if value is None:
        return NULL
    if value is UNDEFINED:
        return UNDEFINED_ID
    if isinstance(value, BaseModel):
        return value_to_literal(value.model_dump(mode="json"))
    if isinstance(value, bool):
        return TRUE if value else FALSE
    if isinstance(value, str):
        return StringLiteral(value)
    if isinstance(value, (int, float)):
        return NumericLiteral(value)
    if isinstance(value, (list, tuple)):
        return ArrayLiteral([value_to_literal(v) for v in value])
    if isinstance(value, Mapping):
        props: List[Node] = []
        for key, item in value.items():
            if not isinstance(key, str):
                raise UnsupportedValueError(f"Unsupported object key type: {type(key).__name__}")
            name = Identifier(key) if is_identifier(key) else StringLiteral(key)
            props.append(PropertyAssignment(name, value_to_literal(item)))
        return ObjectLiteral(props)
    raise UnsupportedValueError(f"Unsupported type: {_type_name(value)}")
