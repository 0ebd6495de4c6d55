"""pytest configuration for astsplice tests."""
import os

import pytest

from astsplice import pattern
from astsplice.workspace import MemoryWorkspace


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch):
    """Drop ASTSPLICE_* variables and the cached default pattern engine."""
    for name in list(os.environ):
        if name.startswith("ASTSPLICE_"):
            monkeypatch.delenv(name, raising=False)
    pattern.set_default_engine(None)
    yield
    pattern.set_default_engine(None)


@pytest.fixture
def workspace():
    return MemoryWorkspace()
