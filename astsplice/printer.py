"""Serialize nodes back into source text.

Parsed nodes print as their original text, byte for byte. Builder nodes
(`astsplice.builders`) print themselves through `render(printer, depth)`.
Plain strings are taken as already-printed source.
"""
from __future__ import annotations

from typing import Any, Iterable

from astsplice.parser import SyntaxNode


class Printer:
    def __init__(self, indent: str = "    "):
        self.indent = indent

    def pad(self, depth: int) -> str:
        return self.indent * depth

    def print(self, node: Any, depth: int = 0) -> str:
        if node is None:
            return ""
        if isinstance(node, str):
            return node
        if isinstance(node, SyntaxNode):
            return node.text
        render = getattr(node, "render", None)
        if render is None:
            raise TypeError(f"Cannot print {type(node).__name__}")
        return render(self, depth)

    def join(self, nodes: Iterable[Any], sep: str = ", ", depth: int = 0) -> str:
        return sep.join(self.print(n, depth) for n in nodes)


DEFAULT_PRINTER = Printer()


def print_node(node: Any) -> str:
    return DEFAULT_PRINTER.print(node)
