"""
astsplice: span-preserving structural edits for TypeScript / JavaScript / TSX.

Keep this file minimal; only re-export what callers need.
"""

__version__ = "0.1.0"

from .builders import UNDEFINED, create_jsx_element, create_jsx_element_from_identifier, value_to_literal
from .errors import (
    AstSpliceError,
    MissingFileError,
    NoMatchError,
    ParseError,
    PatternToolError,
    PatternToolTimeout,
    PatternToolUnavailable,
    RepoPathViolation,
    SelectorSyntaxError,
    UnsupportedValueError,
)
from .insertions import (
    DefaultImportDeclaration,
    add_default_import_declarations,
    add_destructured_import,
    add_export_declarations,
    add_jsx_component_wrapper,
    add_single_import,
    add_star_export,
    append_statements,
    has_export_declaration,
    prepend_statements,
    write_export_declarations,
)
from .parser import SourceDocument, SyntaxNode, parse
from .patch import Replaced, Unchanged, query_file, replace, replace_if_exists, replace_source
from .selector import matches, query, query_source
from .workspace import FileSystemWorkspace, MemoryWorkspace, Workspace


# Lazy so importing the package never touches subprocess configuration
def apply_pattern(*args, **kwargs):
    from .pattern import apply_pattern as real_apply_pattern
    return real_apply_pattern(*args, **kwargs)


def has_pattern_match(*args, **kwargs):
    from .pattern import has_pattern_match as real_has_pattern_match
    return real_has_pattern_match(*args, **kwargs)


__all__ = [
    "AstSpliceError",
    "DefaultImportDeclaration",
    "FileSystemWorkspace",
    "MemoryWorkspace",
    "MissingFileError",
    "NoMatchError",
    "ParseError",
    "PatternToolError",
    "PatternToolTimeout",
    "PatternToolUnavailable",
    "Replaced",
    "RepoPathViolation",
    "SelectorSyntaxError",
    "SourceDocument",
    "SyntaxNode",
    "UNDEFINED",
    "Unchanged",
    "UnsupportedValueError",
    "Workspace",
    "add_default_import_declarations",
    "add_destructured_import",
    "add_export_declarations",
    "add_jsx_component_wrapper",
    "add_single_import",
    "add_star_export",
    "append_statements",
    "apply_pattern",
    "create_jsx_element",
    "create_jsx_element_from_identifier",
    "has_export_declaration",
    "has_pattern_match",
    "matches",
    "parse",
    "prepend_statements",
    "query",
    "query_file",
    "query_source",
    "replace",
    "replace_if_exists",
    "replace_source",
    "value_to_literal",
    "write_export_declarations",
    "__version__",
]
