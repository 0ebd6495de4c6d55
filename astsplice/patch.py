"""Structural patch applier.

`replace` finds nodes with a selector, asks a transform for each one whether
it should change, and splices the printed replacements into the original
text. Text outside the replaced spans is never touched.

A transform returns one of:
  - `Unchanged` (or the node it was given): leave this occurrence alone,
  - `Replaced(new)`: replace it with `new`,
  - a builder node or a raw source string: same as `Replaced(...)`.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Optional

from astsplice.errors import NoMatchError
from astsplice.logging_config import get_logger
from astsplice.parser import SourceDocument, SyntaxNode, parse
from astsplice.printer import DEFAULT_PRINTER, Printer
from astsplice.selector import query
from astsplice.workspace import PathLike, Workspace, read_existing, write_if_changed

logger = get_logger("patch")


class _UnchangedType:
    _instance: Optional["_UnchangedType"] = None

    def __new__(cls) -> "_UnchangedType":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "Unchanged"


Unchanged = _UnchangedType()


@dataclass(frozen=True)
class Replaced:
    node: Any


@dataclass(frozen=True)
class ChangeSpan:
    start: int
    end: int
    new_text: str


Transform = Callable[[SyntaxNode], Any]


def _replacement(result: Any, node: SyntaxNode) -> Any:
    """The node to print for `result`, or None when nothing changes."""
    if result is Unchanged or result is node:
        return None
    if isinstance(result, Replaced):
        return result.node
    if isinstance(result, SyntaxNode) and result == node:
        return None
    if result is None:
        raise TypeError("transform returned None; return Unchanged to leave a match as is")
    return result


def compute_spans(
    matches: Iterable[SyntaxNode],
    transform: Transform,
    printer: Printer = DEFAULT_PRINTER,
) -> List[ChangeSpan]:
    spans: List[ChangeSpan] = []
    for node in matches:
        new = _replacement(transform(node), node)
        if new is None:
            continue
        spans.append(ChangeSpan(node.start, node.end, printer.print(new)))
    return spans


def apply_spans(source: bytes, spans: Iterable[ChangeSpan]) -> str:
    """Splice `spans` (byte offsets into `source`) in one ascending pass.

    Later spans are shifted by the running length delta of earlier ones. A
    span nested inside an earlier replaced span is dropped: the outer
    replacement already decided what that region becomes.
    """
    out = bytearray(source)
    delta = 0
    last_end = -1
    for span in sorted(spans, key=lambda s: (s.start, -s.end)):
        if span.start < last_end:
            logger.debug("dropping nested span [%d:%d] inside an earlier replacement", span.start, span.end)
            continue
        new = span.new_text.encode("utf-8")
        out[span.start + delta:span.end + delta] = new
        delta += len(new) - (span.end - span.start)
        last_end = span.end
    return out.decode("utf-8")


def replace_document(
    document: SourceDocument,
    selector: str,
    transform: Transform,
    error_if_no_matches: bool = True,
    printer: Printer = DEFAULT_PRINTER,
) -> str:
    matches = query(document, selector)
    if not matches:
        if error_if_no_matches:
            raise NoMatchError(document.path, selector)
        logger.debug("no match for %s in %s; leaving it unchanged", selector, document.path or "<source>")
        return document.text
    spans = compute_spans(matches, transform, printer)
    if not spans:
        return document.text
    return apply_spans(document.source, spans)


def replace_source(
    text: str,
    selector: str,
    transform: Transform,
    error_if_no_matches: bool = True,
    path: Optional[str] = None,
    printer: Printer = DEFAULT_PRINTER,
) -> str:
    """`replace` over a string instead of a workspace file."""
    return replace_document(parse(text, path), selector, transform, error_if_no_matches, printer)


def replace(
    workspace: Workspace,
    path: PathLike,
    selector: str,
    transform: Transform,
    error_if_no_matches: bool = True,
    printer: Printer = DEFAULT_PRINTER,
) -> str:
    """Rewrite every node of `path` matching `selector` through `transform`.

    Raises MissingFileError when the file does not exist and NoMatchError when
    nothing matches and `error_if_no_matches` is set. The file is written only
    when its text actually changed. Returns the resulting text.
    """
    source = read_existing(workspace, path)
    updated = replace_source(source, selector, transform, error_if_no_matches, str(path), printer)
    write_if_changed(workspace, path, source, updated)
    return updated


def replace_if_exists(
    workspace: Workspace,
    path: PathLike,
    selector: str,
    transform: Transform,
    printer: Printer = DEFAULT_PRINTER,
) -> str:
    """`replace` for shapes that may legitimately be absent."""
    return replace(workspace, path, selector, transform, error_if_no_matches=False, printer=printer)


def query_file(workspace: Workspace, path: PathLike, selector: str) -> List[SyntaxNode]:
    return query(parse(read_existing(workspace, path), str(path)), selector)
