import io
from io import StringIO

import pytest
from rich.console import Console

from psasctl.core.exceptions import TerminalModeError
from psasctl.core.utils.i18n import UiText
from psasctl.core.utils.prompt import PromptHandler


class FakeSession:
    """Raw session stand-in replaying scripted key bytes."""

    def __init__(self, data: bytes = b"", fail: bool = False):
        self._buffer = io.BytesIO(data)
        self.fail = fail
        self.active = False
        self.acquire_calls = 0
        self.release_calls = 0

    def acquire(self):
        self.acquire_calls += 1
        if self.fail:
            raise TerminalModeError("input is not a terminal")
        self.active = True

    def release(self):
        if self.active:
            self.release_calls += 1
        self.active = False

    def read(self, size=1):
        return self._buffer.read(size)

    def __enter__(self):
        self.acquire()
        return self

    def __exit__(self, *exc):
        self.release()


@pytest.fixture
def output() -> StringIO:
    return StringIO()


@pytest.fixture
def make_handler(output):
    """Build a handler with scripted keys (raw mode) or lines (fallback).

    Passing ``keys=None`` makes raw mode unavailable so prompts fall back to
    numbered line input.
    """

    def factory(keys: bytes | None = None, lines: str = "", lang: str = "us"):
        session = FakeSession(keys or b"", fail=keys is None)
        handler = PromptHandler(
            console=Console(file=output, width=120, color_system=None),
            text=UiText(lang),
            line_input=StringIO(lines),
            session_factory=lambda: session,
        )
        return handler, session

    return factory
