from __future__ import annotations

import math

import pytest
from pydantic import BaseModel

from astsplice.builders import (
    UNDEFINED,
    ArrayLiteral,
    Identifier,
    ImportDeclaration,
    ImportSpecifier,
    JsxAttribute,
    JsxClosingElement,
    JsxExpression,
    JsxOpeningElement,
    JsxSelfClosingElement,
    JsxText,
    NamedImports,
    NumericLiteral,
    StringLiteral,
    VariableStatement,
    create_jsx_element,
    value_to_literal,
)
from astsplice.errors import UnsupportedValueError
from astsplice.parser import parse
from astsplice.printer import Printer, print_node


class _Metadata(BaseModel):
    name: str
    retries: int = 3


def test_value_to_literal_nested_data():
    literal = value_to_literal({"a": 1, "b-c": [True, None], "d": "x", "e": UNDEFINED})
    assert print_node(literal) == '{ a: 1, "b-c": [true, null], d: "x", e: undefined }'


@pytest.mark.parametrize(
    "value, expected",
    [
        (1.5, "1.5"),
        (2.0, "2"),
        (-7, "-7"),
        (math.nan, "NaN"),
        (-math.inf, "-Infinity"),
        ("it's", '"it\'s"'),
        ((), "[]"),
        ({}, "{}"),
        (False, "false"),
    ],
)
def test_value_to_literal_scalars(value, expected):
    assert print_node(value_to_literal(value)) == expected


def test_value_to_literal_pydantic_model():
    assert print_node(value_to_literal(_Metadata(name="api"))) == '{ name: "api", retries: 3 }'


def test_value_to_literal_rejects_functions():
    with pytest.raises(UnsupportedValueError) as exc:
        value_to_literal(lambda: 1)
    assert str(exc.value) == "Unsupported type: function"
    assert isinstance(exc.value, TypeError)


def test_value_to_literal_rejects_other_objects():
    with pytest.raises(UnsupportedValueError, match="Unsupported type: set"):
        value_to_literal({1, 2})
    with pytest.raises(UnsupportedValueError):
        value_to_literal({1: "x"})


def test_string_literal_escaping():
    assert print_node(StringLiteral('a"b\n')) == '"a\\"b\\n"'
    assert print_node(StringLiteral("it's", single_quote=True)) == "'it\\'s'"


def test_import_specifier_parsing():
    assert ImportSpecifier.parse("a as b") == ImportSpecifier("a", "b")
    assert ImportSpecifier.parse("a").bound_name == "a"
    with pytest.raises(ValueError):
        ImportSpecifier.parse("a b c d")


def test_import_declaration_forms():
    named = NamedImports([ImportSpecifier("a"), ImportSpecifier("b", "c")])
    assert print_node(ImportDeclaration("m", named=named, single_quote=True)) == "import { a, b as c } from 'm';"
    assert print_node(ImportDeclaration("m", default="D", namespace="ns")) == 'import D, * as ns from "m";'
    assert print_node(ImportDeclaration("./side-effect")) == 'import "./side-effect";'


def test_variable_statement():
    stmt = VariableStatement("x", NumericLiteral(1), type="number", exported=True)
    assert print_node(stmt) == "export const x: number = 1;"


def test_multiline_array_uses_printer_indent():
    arr = ArrayLiteral([NumericLiteral(1), NumericLiteral(2)], multiline=True)
    assert Printer(indent="  ").print(arr) == "[\n  1,\n  2\n]"


def test_jsx_builders():
    tag = JsxSelfClosingElement(
        Identifier("Foo"),
        [JsxAttribute("x", StringLiteral("1")), JsxAttribute("y", NumericLiteral(2)), JsxAttribute("disabled")],
    )
    assert print_node(tag) == '<Foo x="1" y={2} disabled />'

    element = create_jsx_element(
        JsxOpeningElement(Identifier("A")),
        [JsxText("hi "), JsxExpression(Identifier("name"))],
        JsxClosingElement(Identifier("A")),
    )
    assert print_node(element) == "<A>hi {name}</A>"


def test_parsed_nodes_print_verbatim():
    doc = parse("const   spaced   =   1 ;\n")
    assert print_node(doc.root.named_children[0]) == "const   spaced   =   1 ;"


def test_printer_rejects_unknown_objects():
    with pytest.raises(TypeError):
        print_node(object())
