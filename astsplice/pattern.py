"""Adapter for an out-of-process structural pattern tool.

Some edits are easier to state as a guarded pattern rule ("append this string
to that array, only inside this class, only if it is not there yet") than as a
selector plus a transform. Those rules are run by an external binary (GritQL's
`grit` by default):

    <tool> apply --stdin --lang <lang> [--dry-run] <rule>   < source

Standard output carries the rewritten text; empty output means nothing
matched. A non-zero exit is a failure and its stderr is reported.

The binary is located by a `BinaryResolver`, which can be swapped out (tests
point it at a fake tool).
"""
from __future__ import annotations

import shlex
import shutil
import subprocess
from pathlib import Path
from typing import Callable, List, Optional, Protocol, Sequence

from astsplice.config import PatternEngineSettings, load_pattern_settings
from astsplice.errors import PatternToolError, PatternToolTimeout, PatternToolUnavailable
from astsplice.logging_config import get_logger
from astsplice.workspace import PathLike, Workspace, read_existing, write_if_changed

logger = get_logger("pattern")


class Resolver(Protocol):
    def resolve(self) -> List[str]: ...


def _decode(data) -> str:
    if data is None:
        return ""
    if isinstance(data, (bytes, bytearray)):
        return data.decode("utf-8", errors="replace")
    return str(data)


def command_installer(command: str, timeout_s: float = 300.0) -> Callable[[], None]:
    """An installer that runs `command` once and raises if it fails."""

    def _install() -> None:
        argv = shlex.split(command)
        logger.info("pattern tool not found; running %s", command)
        try:
            proc = subprocess.run(argv, capture_output=True, text=True, timeout=timeout_s, check=False)
        except (OSError, subprocess.TimeoutExpired) as exc:
            raise PatternToolUnavailable(f"Automatic install failed ({command}): {exc}") from exc
        if proc.returncode != 0:
            raise PatternToolUnavailable(f"Automatic install failed ({command}): {(proc.stderr or '').strip()}")

    return _install


class BinaryResolver:
    """Finds the pattern tool once and remembers it.

    `explicit` is a command prefix (path plus fixed arguments); otherwise each
    of `candidates` is looked up on PATH. When nothing is found and an
    `installer` was given it runs once, then the lookup is retried.
    """

    def __init__(
        self,
        explicit: Optional[Sequence[str]] = None,
        candidates: Sequence[str] = ("grit",),
        installer: Optional[Callable[[], None]] = None,
        install_hint: str = "Re-run your dependency install (npm install) or set ASTSPLICE_PATTERN_BIN.",
    ):
        self.explicit = list(explicit) if explicit else None
        self.candidates = list(candidates)
        self.installer = installer
        self.install_hint = install_hint
        self._cached: Optional[List[str]] = None
        self._install_attempted = False

    @classmethod
    def from_settings(cls, settings: PatternEngineSettings) -> "BinaryResolver":
        explicit = shlex.split(settings.binary) if settings.binary else None
        installer = command_installer(settings.install_command) if settings.auto_install else None
        return cls(explicit=explicit, candidates=settings.candidates, installer=installer)

    def tried(self) -> List[str]:
        return [self.explicit[0]] if self.explicit else list(self.candidates)

    def _lookup(self) -> Optional[List[str]]:
        if self.explicit:
            exe = self.explicit[0]
            found = shutil.which(exe) or (exe if Path(exe).is_file() else None)
            return [found, *self.explicit[1:]] if found else None
        for name in self.candidates:
            found = shutil.which(name)
            if found:
                return [found]
        return None

    def resolve(self) -> List[str]:
        if self._cached is not None:
            return list(self._cached)
        found = self._lookup()
        if found is None and self.installer is not None and not self._install_attempted:
            self._install_attempted = True
            self.installer()
            found = self._lookup()
        if found is None:
            tried = self.tried()
            raise PatternToolUnavailable(
                f"Pattern tool not found (tried: {', '.join(tried)}). {self.install_hint}",
                tried=tried,
            )
        logger.debug("pattern tool resolved to %s", found)
        self._cached = found
        return list(found)


class PatternEngine:
    def __init__(self, resolver: Optional[Resolver] = None, settings: Optional[PatternEngineSettings] = None):
        self.settings = settings or load_pattern_settings()
        self.resolver = resolver or BinaryResolver.from_settings(self.settings)

    def build_argv(self, rule: str, dry_run: bool = False) -> List[str]:
        argv = [*self.resolver.resolve(), "apply", "--stdin", "--lang", self.settings.language]
        if dry_run:
            argv.append("--dry-run")
        argv.append(rule)
        return argv

    def run(self, source: str, rule: str, *, dry_run: bool = False) -> Optional[str]:
        """Run `rule` over `source`; returns the tool's output or None when nothing matched."""
        argv = self.build_argv(rule, dry_run)
        timeout = self.settings.timeout_s
        logger.debug("running pattern tool (dry_run=%s): %s", dry_run, argv[0])
        try:
            proc = subprocess.run(
                argv,
                input=source,
                capture_output=True,
                encoding="utf-8",
                timeout=timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as exc:
            raise PatternToolTimeout(argv, timeout, _decode(exc.stderr)) from exc
        except FileNotFoundError as exc:
            raise PatternToolUnavailable(f"Pattern tool disappeared: {argv[0]}", tried=[argv[0]]) from exc
        if proc.returncode != 0:
            raise PatternToolError(argv, proc.returncode, proc.stderr)
        out = proc.stdout or ""
        if not out.strip():
            return None
        return out

    def apply_pattern(self, workspace: Workspace, path: PathLike, rule: str) -> bool:
        """Apply `rule` to the file; returns True when the file changed."""
        source = read_existing(workspace, path)
        out = self.run(source, rule)
        if out is None:
            return False
        return write_if_changed(workspace, path, source, out)

    def has_pattern_match(self, workspace: Workspace, path: PathLike, rule: str) -> bool:
        """Whether `rule` would change the file. Never writes."""
        source = read_existing(workspace, path)
        out = self.run(source, rule, dry_run=True)
        return out is not None and out != source


_default_engine: Optional[PatternEngine] = None


def get_default_engine() -> PatternEngine:
    global _default_engine
    if _default_engine is None:
        _default_engine = PatternEngine()
    return _default_engine


def set_default_engine(engine: Optional[PatternEngine]) -> None:
    """Replace (or with None, reset) the engine used by the module-level helpers."""
    global _default_engine
    _default_engine = engine


def apply_pattern(workspace: Workspace, path: PathLike, rule: str) -> bool:
    return get_default_engine().apply_pattern(workspace, path, rule)


def has_pattern_match(workspace: Workspace, path: PathLike, rule: str) -> bool:
    return get_default_engine().has_pattern_match(workspace, path, rule)
