"""Pytest configuration and fixtures for Astralis tests."""

import os
import shutil
import tempfile
from pathlib import Path
from typing import Generator, List, Optional

# Keep module-level config reads away from the developer's real ~/.astralis.
os.environ.setdefault("ASTRALIS_HOME", tempfile.mkdtemp(prefix="astralis-test-"))

import pytest

from astralis.storage import AnalysisHistory

SOURCES_DIR = Path(__file__).parent / "fixtures" / "sources"


class FakeLLM:
    """Stand-in for LocalLLM that replays canned replies in order.

    Once the replies are exhausted every further call returns None, which the
    enhancer treats as a failed pass.
    """

    def __init__(self, replies: Optional[List] = None, available: bool = True):
        self.replies = list(replies or [])
        self.available = available
        self.calls: List[list] = []

    def chat_completion(self, messages, **kwargs):
        self.calls.append(messages)
        if not self.replies:
            return None
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            return reply()
        return reply


@pytest.fixture(autouse=True)
def _no_real_llm(monkeypatch):
    """Never let a test reach a real LLM provider over the network."""
    monkeypatch.setattr("astralis.cli.LocalLLM", lambda *args, **kwargs: FakeLLM(available=False))


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmp = Path(tempfile.mkdtemp())
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def astralis_home(temp_dir: Path, monkeypatch) -> Path:
    """Point config, history and CLI storage at a temporary directory."""
    monkeypatch.setattr("astralis.config.BASE_DIR", temp_dir)
    monkeypatch.setattr("astralis.config.CONFIG_FILE", temp_dir / "config.toml")
    monkeypatch.setattr("astralis.config.HISTORY_DB", temp_dir / "history.db")
    return temp_dir


@pytest.fixture
def history(temp_dir: Path) -> Generator[AnalysisHistory, None, None]:
    """An AnalysisHistory backed by a throwaway database."""
    store = AnalysisHistory(temp_dir / "history.db")
    yield store
    store.close()


@pytest.fixture
def sources_dir() -> Path:
    """Directory holding the sample source files."""
    return SOURCES_DIR


@pytest.fixture
def component_source() -> str:
    """A React component with hooks, an effect, a guard and a render."""
    return (SOURCES_DIR / "UserList.tsx").read_text(encoding="utf-8")


@pytest.fixture
def route_source() -> str:
    """An Express route with a nested if block and a Prisma query."""
    return (SOURCES_DIR / "auth_routes.ts").read_text(encoding="utf-8")


@pytest.fixture
def python_source() -> str:
    """A small Python module with imports, a function and a class."""
    return (SOURCES_DIR / "loader.py").read_text(encoding="utf-8")


@pytest.fixture
def fake_llm():
    """Factory for FakeLLM instances."""
    return FakeLLM
