"""Idempotent insertion helpers.

Each helper first checks, with a selector query, whether what it would add is
already there, and does nothing if so. They are safe to call on every
generator run.
"""
from __future__ import annotations

import re
from typing import Any, Iterable, List, Optional, Sequence, Set, Union

from pydantic import BaseModel, ConfigDict, Field

from astsplice.builders import (
    ExportDeclaration,
    ImportDeclaration,
    ImportSpecifier,
    NamedImports,
    create_jsx_element_from_identifier,
)
from astsplice.logging_config import get_logger
from astsplice.parser import SourceDocument, SyntaxNode, parse
from astsplice.patch import ChangeSpan, Unchanged, apply_spans, replace_source
from astsplice.printer import DEFAULT_PRINTER
from astsplice.selector import query, quote_value
from astsplice.workspace import PathLike, Workspace, read_existing, write_if_changed

logger = get_logger("insertions")


def _join_statements(statements: Iterable[Any]) -> str:
    return "\n".join(DEFAULT_PRINTER.print(s) for s in statements)


def _prepend_text(source: str, text: str) -> str:
    if not text:
        return source
    if not source:
        return text
    # keep a shebang on the first line
    if source.startswith("#!"):
        first, sep, rest = source.partition("\n")
        return first + sep + text + "\n" + rest
    return text + "\n" + source


def _append_text(source: str, text: str) -> str:
    if not text:
        return source
    if source and not source.endswith("\n"):
        source += "\n"
    return source + text + "\n"


def prepend_statements(workspace: Workspace, path: PathLike, statements: Sequence[Any]) -> str:
    """Insert `statements` at the start of the file, in order."""
    source = read_existing(workspace, path)
    updated = _prepend_text(source, _join_statements(statements))
    write_if_changed(workspace, path, source, updated)
    return updated


def append_statements(workspace: Workspace, path: PathLike, statements: Sequence[Any]) -> str:
    """Insert `statements` at the end of the file, in order."""
    source = read_existing(workspace, path)
    updated = _append_text(source, _join_statements(statements))
    write_if_changed(workspace, path, source, updated)
    return updated


def _imports_from(document: SourceDocument, module: str) -> List[SyntaxNode]:
    return query(document, f"ImportDeclaration[moduleSpecifier.text={quote_value(module)}]")


def has_default_import(document: SourceDocument, name: str, module: str) -> bool:
    selector = (
        f"ImportDeclaration[moduleSpecifier.text={quote_value(module)}]"
        f" > ImportClause > identifier[text={quote_value(name)}]"
    )
    for identifier in query(document, selector):
        declaration = next(a for a in identifier.ancestors() if a.kind == "import_statement")
        # `import type X` binds no value
        if not _is_type_only(declaration):
            return True
    return False


def add_single_import(workspace: Workspace, path: PathLike, name: str, module: str) -> str:
    """Ensure `import name from "module";` exists, prepending it if not."""
    source = read_existing(workspace, path)
    document = parse(source, str(path))
    if has_default_import(document, name, module):
        logger.debug("default import %s from %s already present in %s", name, module, path)
        return source
    updated = _prepend_text(source, DEFAULT_PRINTER.print(ImportDeclaration(module, default=name)))
    write_if_changed(workspace, path, source, updated)
    return updated


def _is_type_only(declaration: SyntaxNode) -> bool:
    return any(not c.is_named and c.kind == "type" for c in declaration.children)


def _bound_names(declaration: SyntaxNode) -> Set[str]:
    """Local names an import statement binds (aliases win over source names)."""
    names: Set[str] = set()
    for node in declaration.descendants():
        if node.kind == "import_specifier":
            bound = node.field("alias") or node.field("name")
            if bound is not None:
                names.add(bound.value)
        elif node.kind == "identifier" and node.parent is not None and node.parent.kind in ("import_clause", "namespace_import"):
            names.add(node.text)
    return names


def _line_end(source: bytes, pos: int, limit: int) -> int:
    end = source.find(b"\n", pos, limit)
    return pos if end == -1 else end


def _line_indent(source: bytes, pos: int) -> str:
    start = source.rfind(b"\n", 0, pos) + 1
    return re.match(rb"[ \t]*", source[start:pos]).group(0).decode("utf-8")


def _specifier_insertion(document: SourceDocument, clause: SyntaxNode, missing: Sequence[ImportSpecifier]) -> List[ChangeSpan]:
    """Spans adding `missing` after the last specifier of `clause`.

    The existing specifiers, comments and layout are left as written; new
    names follow the clause's one-line or one-per-line shape.
    """
    specifiers = [c for c in clause.named_children if c.kind == "import_specifier"]
    if not specifiers:
        return [ChangeSpan(clause.start, clause.end, DEFAULT_PRINTER.print(NamedImports(list(missing))))]
    names = [DEFAULT_PRINTER.print(s) for s in missing]
    source = document.source
    last = specifiers[-1]
    comma = next((c for c in clause.children if c.kind == "," and c.start >= last.end), None)

    if last.line == clause.line:
        if comma is not None:
            return [ChangeSpan(comma.end, comma.end, "".join(f" {n}," for n in names))]
        return [ChangeSpan(last.end, last.end, "".join(f", {n}" for n in names))]

    sep = "\n" + _line_indent(source, last.start)
    if comma is not None:
        at = _line_end(source, comma.end, clause.end)
        return [ChangeSpan(at, at, "".join(f"{sep}{n}," for n in names))]
    # trailing comments stay on the line they annotate
    at = _line_end(source, last.end, clause.end)
    return [
        ChangeSpan(last.end, last.end, ","),
        ChangeSpan(at, at, ",".join(f"{sep}{n}" for n in names)),
    ]


def add_destructured_import(workspace: Workspace, path: PathLike, names: Sequence[str], module: str) -> str:
    """Ensure `import { ...names } from 'module';` binds every name.

    Names may be written "source as alias"; presence is decided on the local
    (bound) name. Missing names are merged into the first value import from
    `module` that already has a `{ ... }` clause, otherwise a new statement is
    prepended.
    """
    source = read_existing(workspace, path)
    document = parse(source, str(path))

    bound: Set[str] = set()
    target: Optional[SyntaxNode] = None
    for declaration in _imports_from(document, module):
        bound |= _bound_names(declaration)
        if target is None and not _is_type_only(declaration):
            clause = next((n for n in declaration.descendants() if n.kind == "named_imports"), None)
            target = clause

    missing: List[ImportSpecifier] = []
    for raw in names:
        spec = ImportSpecifier.parse(raw)
        if spec.bound_name in bound:
            continue
        bound.add(spec.bound_name)
        missing.append(spec)

    if not missing:
        logger.debug("all of %s already imported from %s in %s", list(names), module, path)
        return source

    if target is not None:
        updated = apply_spans(document.source, _specifier_insertion(document, target, missing))
    else:
        declaration = ImportDeclaration(module, named=NamedImports(list(missing)), single_quote=True)
        updated = _prepend_text(source, DEFAULT_PRINTER.print(declaration))
    write_if_changed(workspace, path, source, updated)
    return updated


def _has_export_from(document: SourceDocument, module: str) -> bool:
    return bool(query(document, f"ExportDeclaration[moduleSpecifier.text={quote_value(module)}]"))


def add_star_export(workspace: Workspace, path: PathLike, module: str) -> str:
    """Ensure `export * from "module";` exists; creates the file when missing."""
    existed = workspace.exists(path)
    source = (workspace.read(path) if existed else None) or ""
    document = parse(source, str(path))
    if _has_export_from(document, module):
        logger.debug("export from %s already present in %s", module, path)
        return source
    updated = _prepend_text(source, DEFAULT_PRINTER.print(ExportDeclaration(module)))
    write_if_changed(workspace, path, source if existed else None, updated)
    return updated


def add_export_declarations(contents: str, modules: Sequence[str], path: Optional[str] = None) -> str:
    """Prepend `export * from '<module>';` for each module not yet exported."""
    document = parse(contents, path)
    pending: List[ExportDeclaration] = []
    seen: Set[str] = set()
    for module in modules:
        if module in seen or _has_export_from(document, module):
            continue
        seen.add(module)
        pending.append(ExportDeclaration(module, single_quote=True))
    return _prepend_text(contents, _join_statements(pending))


def write_export_declarations(workspace: Workspace, path: PathLike, modules: Sequence[str]) -> str:
    source = read_existing(workspace, path)
    updated = add_export_declarations(source, modules, str(path))
    write_if_changed(workspace, path, source, updated)
    return updated


class DefaultImportDeclaration(BaseModel):
    """`import <import_name> from '<module>'`; accepts {"import": ..., "from": ...}."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    import_name: str = Field(alias="import", min_length=1)
    module: str = Field(alias="from", min_length=1)


def add_default_import_declarations(
    contents: str,
    imports: Sequence[Union[DefaultImportDeclaration, dict]],
    path: Optional[str] = None,
) -> str:
    """Prepend default imports that are not already present."""
    document = parse(contents, path)
    pending: List[ImportDeclaration] = []
    for item in imports:
        decl = item if isinstance(item, DefaultImportDeclaration) else DefaultImportDeclaration.model_validate(item)
        if has_default_import(document, decl.import_name, decl.module):
            continue
        candidate = ImportDeclaration(decl.module, default=decl.import_name, single_quote=True)
        if candidate not in pending:
            pending.append(candidate)
    return _prepend_text(contents, _join_statements(pending))


_DECLARATION_WITH_NAME = "ExportDeclaration > *[name.text={name}]"
_EXPORTED_VARIABLE = "ExportDeclaration > VariableStatement > VariableDeclaration[name.text={name}]"


def has_export_declaration(contents: str, name: str, path: Optional[str] = None) -> bool:
    """True when `name` is exported by declaration or by an export clause."""
    document = parse(contents, path)
    quoted = quote_value(name)
    if query(document, _DECLARATION_WITH_NAME.format(name=quoted)):
        return True
    if query(document, _EXPORTED_VARIABLE.format(name=quoted)):
        return True
    for spec in query(document, "ExportDeclaration > NamedExports > ExportSpecifier"):
        exported = spec.field("alias") or spec.field("name")
        if exported is not None and exported.value == name:
            return True
    return False


def _wrapped_by(node: SyntaxNode, parent_component: str) -> bool:
    parent = node.parent
    if parent is None or parent.kind != "jsx_element":
        return False
    tag = parent.attr("openingElement.tagName")
    return isinstance(tag, SyntaxNode) and tag.text == parent_component


def add_jsx_component_wrapper(
    contents: str,
    target_component: str,
    parent_component: str,
    path: Optional[str] = None,
) -> Optional[str]:
    """Wrap each `<target_component ... />` in `<parent_component>`.

    Returns the updated contents, or None when the target does not occur.
    Elements already directly wrapped by `parent_component` are left alone.
    """
    selector = f"JsxSelfClosingElement[tagName.text={quote_value(target_component)}]"
    if not query(parse(contents, path), selector):
        return None

    def wrap(node: SyntaxNode):
        if _wrapped_by(node, parent_component):
            return Unchanged
        return create_jsx_element_from_identifier(parent_component, [node])

    return replace_source(contents, selector, wrap, path=path)
