"""Core console library components.

Menus and the picker live in ``selection`` and ``picker`` and are imported
from there directly; they depend on the prompt handler, which in turn
depends on the raw terminal session exported here.
"""

from .keys import Key, KeyEvent, read_key
from .records import StructuredRecord, load_records, parse_records, render_records, save_records
from .resolver import PANEL_USER, SOCKS_USER, TRUST_USER, EntityKind, resolve
from .terminal import RawTerminalSession

__all__ = [
    "EntityKind",
    "Key",
    "KeyEvent",
    "load_records",
    "PANEL_USER",
    "parse_records",
    "RawTerminalSession",
    "read_key",
    "render_records",
    "resolve",
    "save_records",
    "SOCKS_USER",
    "StructuredRecord",
    "TRUST_USER",
]
