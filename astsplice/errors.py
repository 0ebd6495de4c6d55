"""Exception taxonomy for astsplice.

Every error propagates to the immediate caller; nothing here is retried or
recovered from inside the engine.
"""
from __future__ import annotations

from typing import List, Optional, Sequence


class AstSpliceError(RuntimeError):
    """Base class for all astsplice failures."""


class MissingFileError(AstSpliceError, FileNotFoundError):
    """The workspace has no file at the requested path."""

    def __init__(self, path: str):
        super().__init__(f"No file located at {path}")
        self.path = path


class ParseError(AstSpliceError):
    """Source text could not be parsed without syntax errors."""


class SelectorSyntaxError(AstSpliceError, ValueError):
    """A selector string is not valid for the selector language."""


class NoMatchError(AstSpliceError):
    """A selector the caller relied on matched nothing."""

    def __init__(self, path: Optional[str], selector: str):
        super().__init__(f"Could not locate an element in {path or '<source>'} matching {selector}")
        self.path = path
        self.selector = selector


class UnsupportedValueError(AstSpliceError, TypeError):
    """A value cannot be expressed as a literal (functions, sets, ...)."""


class RepoPathViolation(AstSpliceError, ValueError):
    """Raised when a path attempts to escape the workspace root."""


class PatternToolUnavailable(AstSpliceError):
    """The external pattern tool could not be found or installed."""

    def __init__(self, message: str, tried: Sequence[str] = ()):
        super().__init__(message)
        self.tried: List[str] = list(tried)


class PatternToolError(AstSpliceError):
    """The external pattern tool exited with a non-zero status."""

    def __init__(self, argv: Sequence[str], exit_code: int, stderr: str):
        detail = (stderr or "").strip() or "<no stderr>"
        super().__init__(f"Pattern tool {argv[0] if argv else '?'} exited with code {exit_code}: {detail}")
        self.argv = list(argv)
        self.exit_code = exit_code
        self.stderr = stderr or ""


class PatternToolTimeout(AstSpliceError):
    """The external pattern tool did not finish within its time limit."""

    def __init__(self, argv: Sequence[str], timeout_s: float, stderr: str = ""):
        super().__init__(f"Pattern tool {argv[0] if argv else '?'} timed out after {timeout_s:g}s")
        self.argv = list(argv)
        self.timeout_s = timeout_s
        self.stderr = stderr or ""


__all__ = [
    "AstSpliceError",
    "MissingFileError",
    "ParseError",
    "SelectorSyntaxError",
    "NoMatchError",
    "UnsupportedValueError",
    "RepoPathViolation",
    "PatternToolUnavailable",
    "PatternToolError",
    "PatternToolTimeout",
]
