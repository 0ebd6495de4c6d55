"""Workspace façade: the only I/O boundary of the engine.

The engine never touches disk itself. Callers hand it something that can
answer `exists`, `read` and `write` for a path; two implementations ship here:

- `MemoryWorkspace`: a dict of path -> text that records every write.
- `FileSystemWorkspace`: reads from a directory tree and buffers writes until
  `flush()`, keeping every path inside the root.
"""
from __future__ import annotations

import os
import tempfile
from contextlib import suppress
from pathlib import Path, PurePosixPath
from typing import Dict, List, Optional, Protocol, Union, runtime_checkable

from astsplice.errors import MissingFileError, RepoPathViolation
from astsplice.logging_config import get_logger

logger = get_logger("workspace")

PathLike = Union[str, "os.PathLike[str]"]


@runtime_checkable
class Workspace(Protocol):
    def exists(self, path: PathLike) -> bool: ...

    def read(self, path: PathLike) -> Optional[str]: ...

    def write(self, path: PathLike, text: str) -> None: ...


def _posix_key(path: PathLike) -> str:
    p = PurePosixPath(str(os.fspath(path)).replace("\\", "/"))
    key = str(p)
    while key.startswith("./"):
        key = key[2:]
    return key


class MemoryWorkspace:
    """In-memory workspace, mostly for tests and dry runs."""

    def __init__(self, files: Optional[Dict[str, str]] = None):
        self._files: Dict[str, str] = {_posix_key(k): v for k, v in (files or {}).items()}
        self.writes: List[str] = []

    def exists(self, path: PathLike) -> bool:
        return _posix_key(path) in self._files

    def read(self, path: PathLike) -> Optional[str]:
        return self._files.get(_posix_key(path))

    def write(self, path: PathLike, text: str) -> None:
        key = _posix_key(path)
        self._files[key] = text
        self.writes.append(key)

    def files(self) -> Dict[str, str]:
        return dict(self._files)


class FileSystemWorkspace:
    """Directory-backed workspace with deferred, atomic writes."""

    def __init__(self, root: PathLike, encoding: str = "utf-8"):
        root_path = Path(root).resolve()
        if not root_path.is_dir():
            raise ValueError(f"Workspace root does not exist: {root_path}")
        self.root = root_path
        self.encoding = encoding
        self._pending: Dict[Path, str] = {}

    def resolve(self, path: PathLike) -> Path:
        """Resolve `path` against the root; raise RepoPathViolation if it escapes."""
        candidate = (self.root / Path(path)).resolve()
        if candidate == self.root or self.root in candidate.parents:
            return candidate
        raise RepoPathViolation(f"Path escapes workspace: {candidate}")

    def exists(self, path: PathLike) -> bool:
        p = self.resolve(path)
        return p in self._pending or p.is_file()

    def read(self, path: PathLike) -> Optional[str]:
        p = self.resolve(path)
        if p in self._pending:
            return self._pending[p]
        if not p.is_file():
            return None
        return p.read_text(encoding=self.encoding)

    def write(self, path: PathLike, text: str) -> None:
        self._pending[self.resolve(path)] = text

    @property
    def pending(self) -> List[Path]:
        return sorted(self._pending)

    def flush(self) -> List[Path]:
        """Write buffered files to disk (tmp file -> fsync -> rename). Returns written paths."""
        written: List[Path] = []
        for target, data in sorted(self._pending.items()):
            target.parent.mkdir(parents=True, exist_ok=True)
            tmp = tempfile.NamedTemporaryFile("w", delete=False, dir=str(target.parent), encoding=self.encoding)
            tmp_path = Path(tmp.name)
            try:
                with tmp:
                    tmp.write(data)
                    tmp.flush()
                    os.fsync(tmp.fileno())
                tmp_path.replace(target)
            finally:
                with suppress(FileNotFoundError):
                    tmp_path.unlink()
            del self._pending[target]
            written.append(target)
        logger.debug("flushed %d file(s) under %s", len(written), self.root)
        return written


def read_existing(workspace: Workspace, path: PathLike) -> str:
    """Return the text at `path`; a missing file is an error, never empty content."""
    if not workspace.exists(path):
        raise MissingFileError(str(path))
    text = workspace.read(path)
    if text is None:
        raise MissingFileError(str(path))
    return text


def write_if_changed(workspace: Workspace, path: PathLike, before: Optional[str], after: str) -> bool:
    if before == after:
        logger.debug("unchanged, skipping write: %s", path)
        return False
    workspace.write(path, after)
    logger.debug("wrote %s (%d -> %d chars)", path, len(before or ""), len(after))
    return True
