"""Custom exceptions for the operator console.

Every failure the core can report is a ``ConsoleError``. The interactive
loop and the command line tell them apart by type:

- ``SelectionCanceled`` and ``InputDecodeError`` end a prompt without a result
- ``ExitRequested`` leaves the interactive console
- ``ManualEntryRequested`` asks the caller for a free-form identifier
- ``NotFoundError`` and ``AmbiguousError`` come out of identifier resolution
- ``RecordParseError`` and ``RecordValidationError`` come out of the record store
- ``BackendError`` wraps a failing service, file or system tool

Example:
    try:
        user = trust.resolve("alice")
    except AmbiguousError as e:
        console.print(f"[yellow]{e}")
"""

from collections.abc import Sequence
from typing import Any

MAX_LISTED_CANDIDATES = 5


class ConsoleError(Exception):
    """Base exception for console errors."""


class InputDecodeError(ConsoleError):
    """Raised when the input stream ends or cannot be read."""


class TerminalModeError(ConsoleError):
    """Raised when raw mode cannot be acquired on the input stream."""


class SelectionCanceled(ConsoleError):
    """Raised when the operator cancels a menu, prompt or picker."""

    def __init__(self, message: str = "selection canceled") -> None:
        super().__init__(message)


class ExitRequested(ConsoleError):
    """Raised when the operator leaves the interactive console from a pause prompt."""


class ManualEntryRequested(ConsoleError):
    """Raised by the picker when the operator asks to type an identifier."""

    def __init__(self, message: str = "manual entry requested") -> None:
        super().__init__(message)


class NotFoundError(ConsoleError):
    """Raised when an identifier matches nothing."""


class EmptyIdentifierError(NotFoundError):
    """Raised when the identifier is blank."""


class AmbiguousError(ConsoleError):
    """Raised when an identifier matches more than one entity."""

    def __init__(self, identifier: str, candidates: Sequence[Any], kind: str = "users") -> None:
        self.identifier = identifier
        self.candidates = list(candidates)
        super().__init__(
            f"multiple {kind} match {identifier!r}: {format_candidates(self.candidates)}"
        )


class RecordParseError(ConsoleError):
    """Raised when a credential file cannot be parsed."""


class RecordValidationError(ConsoleError):
    """Raised when records fail validation before a write."""


class BackendError(ConsoleError):
    """Raised when a service backend or system tool fails."""


def format_candidates(candidates: Sequence[Any], limit: int = MAX_LISTED_CANDIDATES) -> str:
    """Render ``name(id)`` for the first ``limit`` candidates plus a ``+N more`` tail."""
    items = [f"{c.display_name}({c.primary_id})" for c in candidates[:limit]]
    if len(candidates) > limit:
        items.append(f"+{len(candidates) - limit} more")
    return ", ".join(items)
