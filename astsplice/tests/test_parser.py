from __future__ import annotations

import pytest

from astsplice.errors import ParseError
from astsplice.parser import TSX, TYPESCRIPT, grammar_for_path, parse


def test_grammar_follows_extension():
    assert grammar_for_path("src/index.ts") == TYPESCRIPT
    assert grammar_for_path("src/types.d.ts") == TYPESCRIPT
    assert grammar_for_path("src/App.tsx") == TSX
    assert grammar_for_path("lib/main.js") == TSX
    assert grammar_for_path(None) == TSX


def test_syntax_error_reports_location():
    with pytest.raises(ParseError) as exc:
        parse("const ok = 1;\nconst = ;\n", "broken.ts")
    assert "broken.ts" in str(exc.value)
    assert "line 2" in str(exc.value)


def test_byte_spans_survive_multibyte_text():
    doc = parse('const s = "héllo"; const n = 7;\n')
    number = [n for n in doc.root.walk() if n.kind == "number"][0]
    assert number.text == "7"
    assert doc.source[number.start:number.end] == b"7"
    assert number.start != doc.text.index("7")


def test_attribute_paths():
    doc = parse("import React, { useState } from 'react';\n")
    statement = doc.root.named_children[0]
    assert statement.attr("moduleSpecifier.text") == "react"
    assert statement.attr("moduleSpecifier").text == "'react'"
    assert statement.attr("nope.text") is None


def test_walk_is_preorder_and_parent_links():
    doc = parse("f(1, g(2));\n")
    kinds = [n.kind for n in doc.root.walk()]
    assert kinds[0] == "program"
    assert kinds.index("call_expression") < kinds.index("number")
    inner = [n for n in doc.root.walk() if n.kind == "number"][1]
    assert [a.kind for a in inner.ancestors()][:3] == ["arguments", "call_expression", "arguments"]


def test_nodes_compare_by_span_within_a_document():
    doc = parse("x;\n")
    a = doc.root.named_children[0]
    b = doc.root.named_children[0]
    assert a == b and hash(a) == hash(b)
    assert a != parse("x;\n").root.named_children[0]
