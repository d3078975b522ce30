"""Keyboard-driven menus and single-choice prompts.

``SelectionEngine`` is the state machine behind both the main menu and
option prompts. It consumes decoded keys and either keeps going or
finishes with an item:
- Up/Down and ``k``/``j`` move with wraparound, Home/End jump
- digits build a 1-based number that previews the row and commits on Enter
- an item's shortcut letter picks it immediately
- ``q`` or Ctrl-C cancels

``run_menu`` and ``run_option_prompt`` drive the engine from a raw terminal
session and redraw after every key. When raw mode cannot be acquired they
print a numbered list once and read answers line by line instead, with the
same outcomes.

Example:
    item = run_menu(items, handler)
    if item.key == "status":
        ...
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

from loguru import logger

from psasctl.core.exceptions import SelectionCanceled, TerminalModeError
from psasctl.core.lib.keys import Key, KeyEvent, read_key
from psasctl.core.lib.terminal import RawTerminalSession
from psasctl.core.utils.prompt.prompt import PromptHandler

MENU_TITLE = "PSASCTL - Interactive Menu"
SELECTED_MARKER = ">> "
UNSELECTED_MARKER = "   "


@dataclass(frozen=True)
class MenuItem:
    """One entry of a sectioned menu; ``key`` tells the caller what was picked."""

    section: str
    key: str
    shortcut: str | None
    title: str
    hint: str = ""


@dataclass(frozen=True)
class Option:
    """One choice of a flat single-choice prompt."""

    value: str
    title: str
    hint: str = ""


T = TypeVar("T")
R = TypeVar("R")


class SelectionEngine(Generic[T]):
    """Selection state over a fixed list of items.

    Attributes:
        items: Items in display order
        selected: Index of the highlighted item
        pending_digits: Number typed so far for quick selection
    """

    def __init__(self, items: Sequence[T], selected: int = 0) -> None:
        if not items:
            raise ValueError("nothing to select from")
        self.items = list(items)
        self.selected = selected if 0 <= selected < len(self.items) else 0
        self.pending_digits = ""

    @property
    def digit_width(self) -> int:
        return len(str(len(self.items)))

    def move(self, step: int) -> None:
        self.selected = (self.selected + step) % len(self.items)

    def _index_from_digits(self) -> int | None:
        number = int(self.pending_digits)
        if 1 <= number <= len(self.items):
            return number - 1
        return None

    def _shortcut_index(self, ch: str) -> int | None:
        for i, item in enumerate(self.items):
            shortcut = getattr(item, "shortcut", None)
            if shortcut and shortcut.lower() == ch:
                return i
        return None

    def handle(self, event: KeyEvent) -> T | None:
        """Apply one key.

        Returns:
            The chosen item, or None to keep looping

        Raises:
            SelectionCanceled: On Quit or ``q``
        """
        key = event.key
        if key in (Key.UP, Key.DOWN):
            self.pending_digits = ""
            self.move(-1 if key is Key.UP else 1)
        elif key is Key.HOME:
            self.pending_digits = ""
            self.selected = 0
        elif key is Key.END:
            self.pending_digits = ""
            self.selected = len(self.items) - 1
        elif key is Key.BACKSPACE:
            self.pending_digits = self.pending_digits[:-1]
        elif key is Key.ENTER:
            if not self.pending_digits:
                return self.items[self.selected]
            index = self._index_from_digits()
            self.pending_digits = ""
            if index is not None:
                return self.items[index]
        elif key is Key.QUIT:
            raise SelectionCanceled()
        elif key is Key.CHAR:
            return self._handle_char(event.char.lower())
        return None

    def _handle_char(self, ch: str) -> T | None:
        if ch.isdigit():
            if len(self.pending_digits) >= self.digit_width:
                self.pending_digits = ""
            self.pending_digits += ch
            index = self._index_from_digits()
            if index is not None:
                self.selected = index
            return None

        self.pending_digits = ""
        if ch == "k":
            self.move(-1)
        elif ch == "j":
            self.move(1)
        elif ch == "q":
            raise SelectionCanceled()
        else:
            index = self._shortcut_index(ch)
            if index is not None:
                return self.items[index]
        return None


def acquire_raw_session(handler: PromptHandler) -> RawTerminalSession | None:
    """Open and acquire a raw session, or return None when unavailable."""
    session = handler.open_session()
    try:
        session.acquire()
    except TerminalModeError as e:
        logger.debug(f"Raw mode unavailable, using numbered prompt: {e}")
        return None
    return session


def run_key_loop(
    session: RawTerminalSession,
    draw: Callable[[], None],
    handle: Callable[[KeyEvent], R | None],
) -> R:
    """Draw, read a key and apply it until ``handle`` returns a result.

    The session is released on every exit path, including errors raised by
    ``draw`` or ``handle``.
    """
    with session:
        while True:
            draw()
            result = handle(read_key(session))
            if result is not None:
                return result


def _draw_title(handler: PromptHandler, title: str) -> None:
    handler.clear()
    handler.header(title)


def _item_line(index: int, title: str, selected: bool, shortcut: str | None = None) -> str:
    marker = SELECTED_MARKER if selected else UNSELECTED_MARKER
    suffix = f" [{shortcut}]" if shortcut else ""
    return f"{marker}{index + 1}. {title}{suffix}"


def _print_sections(handler: PromptHandler, items: Sequence[MenuItem], selected: int | None) -> None:
    text = handler.text
    last_section = ""
    for i, item in enumerate(items):
        section = item.section.strip()
        if section and section != last_section:
            if i > 0:
                handler.out()
            handler.out(f"  [{text(section)}]", style="bold")
            last_section = section
        is_selected = i == selected
        shortcut = item.shortcut if selected is not None else None
        handler.out(
            _item_line(i, text(item.title), is_selected, shortcut),
            style="bold cyan" if is_selected else None,
        )


def _print_hint(handler: PromptHandler, hint: str) -> None:
    if hint:
        handler.out()
        handler.out(f"  * {handler.text(hint)}", style="dim")
    handler.out()


def draw_menu(
    handler: PromptHandler,
    items: Sequence[MenuItem],
    selected: int,
    pending_digits: str = "",
    title: str = MENU_TITLE,
) -> None:
    """Render the full menu with the selected row marked."""
    text = handler.text
    _draw_title(handler, title)
    handler.out(text("Controls: Up/Down or j/k to navigate, Enter to select, q to quit"))
    handler.out(text("Quick select: Type number and press Enter, or use shortcut key"))
    handler.out(f"{text('Language')}: {text.lang}")
    if pending_digits:
        handler.out(f"{text('Selected number')}: {pending_digits}", style="yellow")
    handler.out()
    _print_sections(handler, items, selected)
    _print_hint(handler, items[selected].hint)


def draw_options(
    handler: PromptHandler,
    title: str,
    options: Sequence[Option],
    selected: int,
    pending_digits: str = "",
) -> None:
    """Render a flat option list with the selected row marked."""
    text = handler.text
    _draw_title(handler, title)
    handler.out(text("Controls: Up/Down or j/k, Enter to select, q to cancel"))
    if pending_digits:
        handler.out(f"{text('Selected number')}: {pending_digits}", style="yellow")
    handler.out()
    for i, option in enumerate(options):
        is_selected = i == selected
        handler.out(
            _item_line(i, text(option.title), is_selected),
            style="bold cyan" if is_selected else None,
        )
    _print_hint(handler, options[selected].hint)


def prompt_number(
    handler: PromptHandler,
    label: str,
    invalid: str,
    lowest: int,
    highest: int,
    default: str = "",
) -> int:
    """Ask for a number in ``[lowest, highest]`` until one is given.

    Raises:
        SelectionCanceled: If the answer is ``q``
        InputDecodeError: If input runs out
    """
    while True:
        raw = handler.read_line(label, default)
        if raw.lower() == "q":
            raise SelectionCanceled()
        try:
            number = int(raw)
        except ValueError:
            number = None
        if number is not None and lowest <= number <= highest:
            return number
        handler.error(invalid)


def select_menu_fallback(handler: PromptHandler, items: Sequence[MenuItem], title: str = MENU_TITLE) -> MenuItem:
    """Numbered menu for streams without raw mode."""
    text = handler.text
    _draw_title(handler, title)
    _print_sections(handler, items, None)
    handler.out(text("  q. Exit"))
    handler.out()

    count = len(items)
    number = prompt_number(
        handler,
        text("Enter option number (1-{}) or q", count),
        text("Invalid. Enter 1-{} or q", count),
        1,
        count,
    )
    return items[number - 1]


def select_option_fallback(
    handler: PromptHandler,
    title: str,
    options: Sequence[Option],
    default_index: int,
) -> str:
    """Numbered option prompt for streams without raw mode."""
    text = handler.text
    _draw_title(handler, title)
    for i, option in enumerate(options):
        handler.out(_item_line(i, text(option.title), False))
    handler.out(text("  q. Cancel"))
    handler.out()

    count = len(options)
    number = prompt_number(
        handler,
        text("Enter option number (1-{}) or q", count),
        text("Invalid. Enter 1-{} or q", count),
        1,
        count,
        default=str(default_index + 1),
    )
    return options[number - 1].value


def run_menu(
    items: Sequence[MenuItem],
    handler: PromptHandler | None = None,
    title: str = MENU_TITLE,
) -> MenuItem:
    """Let the operator pick a menu item.

    Args:
        items: Menu entries in display order
        handler: Console, translator and input to use
        title: Heading drawn above the menu

    Returns:
        MenuItem: The chosen item

    Raises:
        SelectionCanceled: If the operator quits
        InputDecodeError: If input ends
    """
    handler = handler or PromptHandler()
    engine = SelectionEngine(items)

    session = acquire_raw_session(handler)
    if session is None:
        return select_menu_fallback(handler, engine.items, title)

    return run_key_loop(
        session,
        lambda: draw_menu(handler, engine.items, engine.selected, engine.pending_digits, title),
        engine.handle,
    )


def run_option_prompt(
    title: str,
    options: Sequence[Option],
    default_index: int = 0,
    handler: PromptHandler | None = None,
) -> str:
    """Let the operator pick one option and return its value.

    An out-of-range ``default_index`` falls back to the first option.

    Raises:
        SelectionCanceled: If the operator quits
        InputDecodeError: If input ends
    """
    handler = handler or PromptHandler()
    engine = SelectionEngine(options, default_index)

    session = acquire_raw_session(handler)
    if session is None:
        return select_option_fallback(handler, title, engine.items, engine.selected)

    chosen = run_key_loop(
        session,
        lambda: draw_options(handler, title, engine.items, engine.selected, engine.pending_digits),
        engine.handle,
    )
    return chosen.value


def confirm(handler: PromptHandler, question: str, default: bool = False) -> bool:
    """Yes/no question built on the option prompt."""
    text = handler.text
    options = [Option("yes", text("Yes")), Option("no", text("No"))]
    return run_option_prompt(question, options, 0 if default else 1, handler) == "yes"
