"""Raw terminal input decoding.

This module turns the byte stream of a terminal in raw mode into logical
key events. It understands:
- Enter (CR or LF), Backspace (BS or DEL) and Ctrl-C / Ctrl-D as quit
- Cursor keys in both CSI (``ESC [``) and SS3 (``ESC O``) form
- Home and End, including the ``ESC [ 1 ~`` / ``ESC [ 4 ~`` family
- Printable ASCII characters

Exactly one byte is read per ``read`` call and nothing is buffered beyond
the escape sequence being decoded, so the decoder never blocks longer than
one read.

Example:
    with RawTerminalSession() as session:
        event = read_key(session)
        if event.key is Key.ENTER:
            ...
"""

from dataclasses import dataclass
from enum import Enum
from typing import Final, Protocol

from psasctl.core.exceptions import InputDecodeError

CR: Final = 0x0D
LF: Final = 0x0A
ETX: Final = 0x03
EOT: Final = 0x04
BS: Final = 0x08
DEL: Final = 0x7F
ESC: Final = 0x1B

PRINTABLE_MIN: Final = 0x20
PRINTABLE_MAX: Final = 0x7E


class Key(Enum):
    """Logical keys produced by the decoder."""

    UNKNOWN = "unknown"
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"
    HOME = "home"
    END = "end"
    ENTER = "enter"
    BACKSPACE = "backspace"
    QUIT = "quit"
    CHAR = "char"


@dataclass(frozen=True)
class KeyEvent:
    """One decoded key; ``char`` is only set for ``Key.CHAR``."""

    key: Key
    char: str = ""


class ByteReader(Protocol):
    def read(self, size: int = -1, /) -> bytes: ...


# Final byte of ``ESC [ x`` / ``ESC O x``
ESCAPE_FINALS: Final = {
    ord("A"): Key.UP,
    ord("B"): Key.DOWN,
    ord("C"): Key.RIGHT,
    ord("D"): Key.LEFT,
    ord("H"): Key.HOME,
    ord("F"): Key.END,
}

# Leading digit of ``ESC [ n ~``
TILDE_KEYS: Final = {
    ord("1"): Key.HOME,
    ord("7"): Key.HOME,
    ord("4"): Key.END,
    ord("8"): Key.END,
}

UNKNOWN_EVENT: Final = KeyEvent(Key.UNKNOWN)


def _read_byte(stream: ByteReader) -> int | None:
    try:
        data = stream.read(1)
    except OSError:
        return None
    if not data:
        return None
    return data[0]


def _decode_escape(stream: ByteReader) -> KeyEvent:
    introducer = _read_byte(stream)
    if introducer not in (ord("["), ord("O")):
        return UNKNOWN_EVENT

    final = _read_byte(stream)
    if final is None:
        return UNKNOWN_EVENT
    if final in ESCAPE_FINALS:
        return KeyEvent(ESCAPE_FINALS[final])
    if final in TILDE_KEYS:
        if _read_byte(stream) == ord("~"):
            return KeyEvent(TILDE_KEYS[final])
    return UNKNOWN_EVENT


def read_key(stream: ByteReader) -> KeyEvent:
    """Read and decode the next key from ``stream``.

    Args:
        stream: Object with a binary ``read(size)`` method

    Returns:
        KeyEvent: The decoded key; unrecognized input yields ``Key.UNKNOWN``

    Raises:
        InputDecodeError: If the stream is exhausted or unreadable before
            the first byte of a key
    """
    try:
        data = stream.read(1)
    except OSError as e:
        raise InputDecodeError(f"failed to read terminal input: {e}") from e
    if not data:
        raise InputDecodeError("end of input")

    byte = data[0]
    if byte in (CR, LF):
        return KeyEvent(Key.ENTER)
    if byte in (ETX, EOT):
        return KeyEvent(Key.QUIT)
    if byte in (BS, DEL):
        return KeyEvent(Key.BACKSPACE)
    if byte == ESC:
        return _decode_escape(stream)
    if PRINTABLE_MIN <= byte <= PRINTABLE_MAX:
        return KeyEvent(Key.CHAR, chr(byte))
    return UNKNOWN_EVENT
