"""Scoped raw mode for the controlling terminal.

``RawTerminalSession`` switches a terminal to unbuffered, unechoed input for
the lifetime of a ``with`` block and puts back the exact attributes it found,
whatever way the block exits. Output post-processing is left on so that
``\\n`` still returns the cursor to column 0 while menus are drawn.

Acquisition fails with ``TerminalModeError`` when the stream is not a
terminal (pipes, files, ``CliRunner`` input) or the platform has no termios;
menus catch that and switch to their line-based fallback.
"""

import os
import sys
from typing import TextIO

from loguru import logger

from psasctl.core.exceptions import TerminalModeError

try:
    import termios
except ImportError:  # Windows
    termios = None

# tcgetattr() list indexes
IFLAG = 0
LFLAG = 3
CC = 6


class RawTerminalSession:
    """Context manager holding a terminal in raw input mode."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream
        self._fd: int | None = None
        self._saved: list | None = None

    @property
    def active(self) -> bool:
        return self._saved is not None

    def acquire(self) -> None:
        """Capture the current mode and switch to raw input.

        Raises:
            TerminalModeError: If the stream is not a terminal or the mode
                cannot be read or changed
        """
        if self.active:
            return
        if termios is None:
            raise TerminalModeError("raw mode is not supported on this platform")

        stream = self._stream if self._stream is not None else sys.stdin
        try:
            fd = stream.fileno()
        except (AttributeError, OSError, ValueError) as e:
            raise TerminalModeError(f"input has no file descriptor: {e}") from e
        if not os.isatty(fd):
            raise TerminalModeError("input is not a terminal")

        try:
            saved = termios.tcgetattr(fd)
            mode = termios.tcgetattr(fd)
            mode[IFLAG] &= ~(termios.ICRNL | termios.IXON | termios.BRKINT | termios.ISTRIP)
            mode[LFLAG] &= ~(termios.ECHO | termios.ICANON | termios.ISIG | termios.IEXTEN)
            mode[CC][termios.VMIN] = 1
            mode[CC][termios.VTIME] = 0
            termios.tcsetattr(fd, termios.TCSAFLUSH, mode)
        except termios.error as e:
            raise TerminalModeError(f"failed to enter raw mode: {e}") from e

        self._fd = fd
        self._saved = saved
        logger.debug(f"Raw mode acquired on fd {fd}")

    def release(self) -> None:
        """Restore the captured mode. Safe to call more than once."""
        if not self.active:
            return
        fd, saved = self._fd, self._saved
        self._fd = None
        self._saved = None
        termios.tcsetattr(fd, termios.TCSADRAIN, saved)
        logger.debug(f"Terminal mode restored on fd {fd}")

    def read(self, size: int = 1) -> bytes:
        """Read up to ``size`` bytes straight from the terminal."""
        if not self.active:
            raise TerminalModeError("raw session is not active")
        return os.read(self._fd, size)

    def __enter__(self) -> "RawTerminalSession":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()
