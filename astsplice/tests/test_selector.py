from __future__ import annotations

import pytest

from astsplice.errors import SelectorSyntaxError
from astsplice.parser import parse
from astsplice.selector import compile_selector, matches, query, query_source, quote_value


ROUTER_SRC = """import { router } from './init';
import { echo } from './procedures/echo';

export const appRouter = router({ echo });
other({ unrelated: true });
"""


def _texts(nodes):
    return [n.text for n in nodes]


def test_query_returns_document_order():
    src = "const a = 1;\nfunction f() { return 2 + 3; }\nconst b = [4];\n"
    assert _texts(query_source(src, "NumericLiteral")) == ["1", "2", "3", "4"]


def test_raw_tree_sitter_kinds_are_accepted():
    src = "f(1);\ng(2);\n"
    assert _texts(query_source(src, "call_expression")) == ["f(1)", "g(2)"]


def test_attribute_equality_on_callee_name():
    found = query_source(ROUTER_SRC, 'CallExpression[expression.name="router"]')
    assert _texts(found) == ["router({ echo })"]


def test_member_callee_resolves_property_name():
    found = query_source("api.router({});\nrouter2({});\n", 'CallExpression[expression.name="router"]')
    assert _texts(found) == ["api.router({})"]


def test_child_combinator_looks_through_argument_list():
    found = query_source(ROUTER_SRC, 'CallExpression[expression.name="router"] > ObjectLiteralExpression')
    assert _texts(found) == ["{ echo }"]


def test_descendant_combinator():
    src = "const a = 1;\nfunction f() { return 2 + 3; }\n"
    assert _texts(query_source(src, "FunctionDeclaration NumericLiteral")) == ["2", "3"]


def test_attribute_presence_and_inequality():
    src = "let a = 1;\nlet b;\nlet c = 3;\n"
    assert _texts(query_source(src, "VariableDeclaration[initializer]")) == ["a = 1", "c = 3"]
    assert _texts(query_source(src, 'VariableDeclaration[name.text!="a"]')) == ["b", "c = 3"]


def test_module_specifier_text_is_unquoted():
    src = "import a from './a';\nimport b from \"./b\";\n"
    found = query_source(src, 'ImportDeclaration[moduleSpecifier.text="./b"]')
    assert _texts(found) == ['import b from "./b";']


def test_has_and_not():
    src = "const a = 1;\nconst b = f();\n"
    assert _texts(query_source(src, "VariableStatement:has(CallExpression)")) == ["const b = f();"]
    assert _texts(query_source(src, "VariableStatement:not(:has(CallExpression))")) == ["const a = 1;"]


def test_has_only_looks_inside_the_subject():
    src = "function outer() { const inner = () => 1; }\n"
    # the function declaration is an ancestor of the arrow, not inside it
    assert query_source(src, "ArrowFunction:has(FunctionDeclaration NumericLiteral)") == []
    assert _texts(query_source(src, "FunctionDeclaration:has(ArrowFunction NumericLiteral)")) == [
        "function outer() { const inner = () => 1; }"
    ]


def test_regex_values_and_flags():
    src = "const x = useState();\nconst y = user();\n"
    assert _texts(query_source(src, "Identifier[text=/^use[A-Z]/]")) == ["useState"]
    assert _texts(query_source(src, "Identifier[text=/^USESTATE$/i]")) == ["useState"]


def test_selector_lists_keep_document_order():
    src = 'const a = "s";\nconst b = 1;\n'
    assert _texts(query_source(src, "NumericLiteral, StringLiteral")) == ['"s"', "1"]


def test_wildcard_with_predicate():
    src = "interface Foo { a: string }\nclass Foo2 {}\n"
    assert _texts(query_source(src, '*[name.text="Foo"]:not(Identifier)', "x.ts")) == ["interface Foo { a: string }"]


def test_matches_single_node():
    doc = parse("const answer = 42;\n")
    declarator = query(doc, "VariableDeclaration")[0]
    assert matches(declarator, 'VariableDeclaration[name.text="answer"]')
    assert not matches(declarator, 'VariableDeclaration[name.text="question"]')
    assert matches(declarator, "VariableStatement > VariableDeclaration")


def test_quote_value_round_trips_through_predicates():
    src = "const s = 'say \"hi\"';\n"
    wanted = quote_value('say "hi"')
    found = query_source(src, f"StringLiteral[text={wanted}]")
    assert len(found) == 1
    assert quote_value('a"b') == '"a\\"b"'


@pytest.mark.parametrize(
    "selector",
    ["", "   ", "CallExpression[", "CallExpression[name=]", "NotAKind", "a >", ":hover(x)", "a:has(b", "x[text=/(/]"],
)
def test_invalid_selectors_raise(selector):
    with pytest.raises(SelectorSyntaxError):
        compile_selector(selector)


def test_selector_errors_are_value_errors():
    with pytest.raises(ValueError):
        query_source("x;", "Bogus")


ESLINT_CONFIG = """import baseConfig from '../../eslint.config.mjs';
import prettier from 'eslint-plugin-prettier/recommended';

export default [
  ...baseConfig,
  { ignores: ['dist'] },
  prettier,
];
"""


def test_export_assignment_selects_default_export_expression():
    found = query_source(ESLINT_CONFIG, "ExportAssignment > ArrayLiteralExpression", "eslint.config.mjs")
    assert len(found) == 1
    assert found[0].text.startswith("[\n  ...baseConfig,")

    ignores = query_source(
        ESLINT_CONFIG,
        'ExportAssignment > ArrayLiteralExpression ObjectLiteralExpression > PropertyAssignment[name.text="ignores"] > ArrayLiteralExpression',
        "eslint.config.mjs",
    )
    assert _texts(ignores) == ["['dist']"]

    plugin = query_source(ESLINT_CONFIG, 'ExportAssignment > ArrayLiteralExpression Identifier[name="prettier"]')
    assert _texts(plugin) == ["prettier"]


def test_export_assignment_excludes_declarations():
    src = "export const a = { x: 1 };\nexport default function f() { return { y: 2 }; }\n"
    assert query_source(src, "ExportAssignment") == []
    assert _texts(query_source("export default { a: 1 };\n", "ExportAssignment > ObjectLiteralExpression")) == ["{ a: 1 }"]


def test_jsx_attribute_name_and_string_text():
    src = (
        "const Header = () => (\n"
        '  <div className="app-header">\n'
        '    <div className="app-header-inner">x</div>\n'
        "  </div>\n"
        ");\n"
    )
    found = query_source(
        src,
        'JsxElement:has(JsxOpeningElement JsxAttribute[name.text="className"] StringLiteral[text="app-header-inner"])',
        "header.tsx",
    )
    assert len(found) == 2
    assert found[-1].text == '<div className="app-header-inner">x</div>'
    assert query_source(src, 'JsxAttribute[name.text="id"]', "header.tsx") == []


ASTRO_CONFIG = """export default defineConfig({
  integrations: [
    starlight({
      sidebar: [
        { label: 'Guides', items: [] },
        { label: 'Reference', items: ['api'] },
      ],
    }),
  ],
});
"""


def test_string_literal_value_attribute():
    selector = (
        'PropertyAssignment:has(Identifier[name="integrations"]) '
        'PropertyAssignment:has(Identifier[name="sidebar"]) '
        'ObjectLiteralExpression:has(PropertyAssignment:has(StringLiteral[value="Guides"])) '
        'PropertyAssignment:has(Identifier[name="items"]) > ArrayLiteralExpression'
    )
    assert _texts(query_source(ASTRO_CONFIG, selector, "astro.config.mjs")) == ["[]"]
    assert _texts(query_source(ASTRO_CONFIG, 'StringLiteral[value="Reference"]')) == ["'Reference'"]
