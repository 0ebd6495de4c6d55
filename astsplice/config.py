"""Environment-driven settings for astsplice.

Only the external pattern tool is configurable; the in-process engine has no
knobs. Values are read from the environment once per call to
`load_pattern_settings()` and validated by pydantic.
"""
from __future__ import annotations

import os
from typing import List, Mapping, Optional

from pydantic import BaseModel, Field, field_validator

_TRUE_SET = {"1", "true", "yes", "on"}
_FALSE_SET = {"0", "false", "no", "off"}

DEFAULT_INSTALL_COMMAND = "npm install -g @getgrit/cli"


def _env_bool(env: Mapping[str, str], name: str, default: bool = False) -> bool:
    """Parse a boolean from `env`.

    Accepts: 1/0, true/false, yes/no, on/off (case-insensitive). When not set or
    unparsable, returns `default`.
    """
    val = env.get(name)
    if val is None:
        return bool(default)
    s = str(val).strip().lower()
    if s in _TRUE_SET:
        return True
    if s in _FALSE_SET:
        return False
    return bool(default)


def _env_str(env: Mapping[str, str], name: str) -> Optional[str]:
    val = env.get(name)
    if val is None or not val.strip():
        return None
    return val.strip()


class PatternEngineSettings(BaseModel):
    """How the external pattern tool is located and invoked."""

    binary: Optional[str] = Field(default=None, description="Explicit tool path or command line (shlex split)")
    candidates: List[str] = Field(default_factory=lambda: ["grit"], description="Executable names searched on PATH")
    language: str = Field(default="js", description="Value passed to --lang")
    timeout_s: float = Field(default=30.0, gt=0, description="Subprocess time limit in seconds")
    auto_install: bool = Field(default=False, description="Run install_command once when the tool is missing")
    install_command: str = Field(default=DEFAULT_INSTALL_COMMAND)

    @field_validator("language")
    @classmethod
    def _language_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("language must not be blank")
        return v.strip()

    @field_validator("candidates")
    @classmethod
    def _candidates_not_empty(cls, v: List[str]) -> List[str]:
        cleaned = [c.strip() for c in v if c and c.strip()]
        if not cleaned:
            raise ValueError("at least one candidate executable name is required")
        return cleaned


def load_pattern_settings(env: Optional[Mapping[str, str]] = None) -> PatternEngineSettings:
    """Build settings from `env` (defaults to os.environ).

    Env variables supported:
      - ASTSPLICE_PATTERN_BIN: explicit tool path or command
      - ASTSPLICE_PATTERN_CANDIDATES: comma separated executable names
      - ASTSPLICE_PATTERN_LANG: language flag value (default "js")
      - ASTSPLICE_PATTERN_TIMEOUT: seconds (default 30)
      - ASTSPLICE_PATTERN_AUTO_INSTALL: boolean (default off)
      - ASTSPLICE_PATTERN_INSTALL_CMD: install command line
    """
    env = os.environ if env is None else env
    data: dict = {
        "binary": _env_str(env, "ASTSPLICE_PATTERN_BIN"),
        "auto_install": _env_bool(env, "ASTSPLICE_PATTERN_AUTO_INSTALL", default=False),
    }
    candidates = _env_str(env, "ASTSPLICE_PATTERN_CANDIDATES")
    if candidates:
        data["candidates"] = candidates.split(",")
    lang = _env_str(env, "ASTSPLICE_PATTERN_LANG")
    if lang:
        data["language"] = lang
    timeout = _env_str(env, "ASTSPLICE_PATTERN_TIMEOUT")
    if timeout:
        data["timeout_s"] = timeout
    install = _env_str(env, "ASTSPLICE_PATTERN_INSTALL_CMD")
    if install:
        data["install_command"] = install
    return PatternEngineSettings.model_validate(data)
