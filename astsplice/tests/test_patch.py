from __future__ import annotations

import pytest

from astsplice.builders import (
    ObjectLiteral,
    ObjectType,
    PropertySignature,
    Raw,
    ShorthandProperty,
    create_jsx_element_from_identifier,
    value_to_literal,
)
from astsplice.errors import MissingFileError, NoMatchError
from astsplice.patch import ChangeSpan, Replaced, Unchanged, apply_spans, query_file, replace, replace_if_exists, replace_source
from astsplice.workspace import MemoryWorkspace


def test_replace_numeric_literal(workspace):
    workspace.write("a.ts", "const x = 5;")
    workspace.writes.clear()

    out = replace(workspace, "a.ts", "NumericLiteral", lambda node: value_to_literal(10))

    assert out == "const x = 10;"
    assert workspace.read("a.ts") == "const x = 10;"
    assert workspace.writes == ["a.ts"]


def test_replace_without_match_raises_or_passes_through():
    ws = MemoryWorkspace({"a.ts": 'const x = "string";'})

    with pytest.raises(NoMatchError) as exc:
        replace(ws, "a.ts", "NumericLiteral", lambda node: value_to_literal(10), True)
    assert "a.ts" in str(exc.value)
    assert "NumericLiteral" in str(exc.value)

    out = replace(ws, "a.ts", "NumericLiteral", lambda node: value_to_literal(10), False)
    assert out == 'const x = "string";'
    assert ws.writes == []


def test_wrap_self_closing_jsx_element():
    ws = MemoryWorkspace({"app.tsx": "<App/>"})
    out = replace(
        ws,
        "app.tsx",
        'JsxSelfClosingElement[tagName.text="App"]',
        lambda node: create_jsx_element_from_identifier("Provider", [node]),
    )
    assert out == "<Provider><App/></Provider>"


def test_multiple_replacements_keep_offsets_and_surrounding_text():
    src = "const a = 1;\n\n// keep me\nconst b = 22;\nconst c = 333; // trailing\n"
    out = replace_source(src, "NumericLiteral", lambda node: value_to_literal(int(node.text) * 1000))
    assert out == "const a = 1000;\n\n// keep me\nconst b = 22000;\nconst c = 333000; // trailing\n"


def test_offsets_are_bytes_not_characters():
    src = 'const s = "héllo wörld"; const n = 1;\n'
    out = replace_source(src, "NumericLiteral", lambda node: value_to_literal(42))
    assert out == 'const s = "héllo wörld"; const n = 42;\n'


def test_transform_can_skip_some_matches():
    src = "const a = 1;\nconst b = 2;\n"

    def only_b(node):
        if node.parent.attr("name.text") == "b":
            return Replaced(value_to_literal(3))
        return Unchanged

    assert replace_source(src, "NumericLiteral", only_b) == "const a = 1;\nconst b = 3;\n"


def test_returning_the_node_means_unchanged():
    ws = MemoryWorkspace({"a.ts": "const a = 1;\n"})
    out = replace(ws, "a.ts", "NumericLiteral", lambda node: node)
    assert out == "const a = 1;\n"
    assert ws.writes == []


def test_raw_strings_are_accepted_as_replacements():
    assert replace_source("f(1);", "NumericLiteral", lambda node: "x + 1") == "f(x + 1);"


def test_returning_none_is_an_error():
    with pytest.raises(TypeError):
        replace_source("f(1);", "NumericLiteral", lambda node: None)


def test_nested_match_changes_only_inner_node():
    src = "const outer = () => {\n  const z = 1;\n  return z;\n};\n"

    def bump_z(node):
        if node.attr("name.text") == "z":
            return Raw("z = 2")
        return Unchanged

    out = replace_source(src, "VariableDeclaration", bump_z)
    assert out == "const outer = () => {\n  const z = 2;\n  return z;\n};\n"


def test_outer_replacement_wins_over_nested_one():
    src = "const outer = () => {\n  const z = 1;\n};\n"

    def both(node):
        if node.attr("name.text") == "z":
            return Raw("z = 2")
        return Raw("outer = 0")

    assert replace_source(src, "VariableDeclaration", both) == "const outer = 0;\n"


def test_router_object_extension_preserves_format():
    src = (
        "import { router } from './init';\n"
        "import { echo } from './procedures/echo';\n"
        "\n"
        "export const appRouter = router({ echo });\n"
        "\n"
        "export type AppRouter = typeof appRouter;\n"
    )
    ws = MemoryWorkspace({"src/router.ts": src})

    def add_foo(node):
        existing = [c for c in node.named_children if c.kind != "comment"]
        return ObjectLiteral([*existing, ShorthandProperty("foo")])

    out = replace(ws, "src/router.ts", 'CallExpression[expression.name="router"] > ObjectLiteralExpression', add_foo)
    assert out == src.replace("router({ echo })", "router({ echo, foo })")


def test_interface_member_added_once_with_comment_kept():
    src = "export interface MyInterface {\n  // existing members\n  a: string;\n}\n"
    ws = MemoryWorkspace({"src/types.ts": src})

    def add_member(body):
        return ObjectType([*body.named_children, PropertySignature("b", "number")])

    out = replace(ws, "src/types.ts", 'InterfaceDeclaration[name.text="MyInterface"] > *:has(PropertySignature)', add_member)

    assert out == (
        "export interface MyInterface {\n"
        "    // existing members\n"
        "    a: string;\n"
        "    b: number;\n"
        "}\n"
    )
    assert out.count("// existing members") == 1


def test_missing_file_raises():
    ws = MemoryWorkspace()
    with pytest.raises(MissingFileError) as exc:
        replace(ws, "nope.ts", "NumericLiteral", lambda node: node)
    assert str(exc.value) == "No file located at nope.ts"
    assert isinstance(exc.value, FileNotFoundError)


def test_replace_if_exists_tolerates_absent_shapes():
    ws = MemoryWorkspace({"a.ts": "export {};\n"})
    assert replace_if_exists(ws, "a.ts", "CallExpression", lambda node: "x") == "export {};\n"
    assert ws.writes == []


def test_query_file_reads_from_workspace():
    ws = MemoryWorkspace({"a.ts": "f(1); g(2);\n"})
    assert [n.text for n in query_file(ws, "a.ts", "CallExpression")] == ["f(1)", "g(2)"]


def test_apply_spans_sorts_and_shifts():
    source = "abcdef".encode("utf-8")
    spans = [ChangeSpan(4, 5, "EE"), ChangeSpan(0, 1, ""), ChangeSpan(2, 3, "CCC")]
    assert apply_spans(source, spans) == "bCCCdEEf"
