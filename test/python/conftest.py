"""
Shared fixtures for the rime-cli test suite.

Run with: pytest test/python -v
"""

from __future__ import annotations

import io
import os
import sys
from pathlib import Path
from typing import Iterator

import pytest

ROOT_DIR = Path(__file__).resolve().parent.parent.parent
FIXTURES_DIR = ROOT_DIR / 'test' / 'fixtures'

# Package root and fake engine importable without installation
sys.path.insert(0, str(ROOT_DIR))
sys.path.insert(0, str(FIXTURES_DIR))

from fake_engine import FakeEngine, pinyin_engine  # noqa: E402

from rime_cli.bridge import Bridge  # noqa: E402
from rime_cli.session import SessionManager  # noqa: E402


@pytest.fixture
def engine() -> FakeEngine:
    """Engine scripted with a short pinyin-style interaction."""
    return pinyin_engine()


@pytest.fixture
def sessions(engine: FakeEngine) -> SessionManager:
    return SessionManager(engine)


@pytest.fixture
def output() -> io.BytesIO:
    return io.BytesIO()


@pytest.fixture
def bridge(engine: FakeEngine, sessions: SessionManager, output: io.BytesIO) -> Bridge:
    return Bridge(engine, sessions, output)


@pytest.fixture
def pipe_input() -> Iterator:
    """
    Factory for a readable descriptor pre-filled with bytes.

    The write end is closed immediately, so the reader sees end of input
    after the payload.
    """
    opened = []

    def make(payload: bytes) -> int:
        read_fd, write_fd = os.pipe()
        os.write(write_fd, payload)
        os.close(write_fd)
        opened.append(read_fd)
        return read_fd

    yield make
    for fd in opened:
        try:
            os.close(fd)
        except OSError:
            pass
