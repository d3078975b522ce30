"""Filterable picker for user lists.

The picker shows a paged list of users and narrows it as the operator
types. Unlike menus it has no numeric quick-jump: printable keys feed the
filter. Reserved letters keep their meaning:
- ``j``/``k`` move, ``q`` cancels
- ``i`` asks for manual identifier entry, which the caller resolves with
  the same rules as the command line

Filtering is a case-insensitive substring test over the name and primary id
and runs on every keystroke; the selection is clamped into the filtered list
and the 12-row window follows it.

Example:
    try:
        user = run_entity_picker("Select user", users, handler)
    except ManualEntryRequested:
        user = backend.resolve(handler.read_required("USER_ID"))
"""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Final, Generic, TypeVar

from psasctl.core.entities import SelectableEntity
from psasctl.core.exceptions import ManualEntryRequested, SelectionCanceled
from psasctl.core.lib.keys import Key, KeyEvent
from psasctl.core.lib.selection import (
    SELECTED_MARKER,
    UNSELECTED_MARKER,
    acquire_raw_session,
    prompt_number,
    run_key_loop,
)
from psasctl.core.utils.prompt.prompt import PromptHandler
from psasctl.core.utils.utils import mask_secret, short_text

PAGE_SIZE: Final = 12
NAME_WIDTH: Final = 24

E = TypeVar("E", bound=SelectableEntity)


@dataclass
class PickerState:
    """Per-invocation picker state; ``selected_index`` indexes the filtered list."""

    query: str = ""
    selected_index: int = 0
    page_start: int = 0


def filter_entities(entities: Sequence[E], query: str) -> list[E]:
    """Entities whose name or primary id contains ``query``, in load order."""
    if not query:
        return list(entities)
    return [e for e in entities if e.matches(query)]


def page_window(selected: int, total: int, page_size: int = PAGE_SIZE) -> tuple[int, int]:
    """Return ``(start, end)`` of the visible slice keeping ``selected`` in view."""
    start = selected - page_size + 1 if selected >= page_size else 0
    if start + page_size > total:
        start = max(0, total - page_size)
    return start, min(total, start + page_size)


class EntityPicker(Generic[E]):
    """Filtering and navigation state machine over a user list."""

    def __init__(self, entities: Sequence[E]) -> None:
        if not entities:
            raise ValueError("nothing to pick from")
        self.entities = list(entities)
        self.state = PickerState()
        self.filtered = list(self.entities)

    def set_query(self, query: str) -> None:
        """Replace the filter and re-clamp the selection."""
        self.state.query = query
        self.filtered = filter_entities(self.entities, query)
        self._clamp()

    def _clamp(self) -> None:
        state = self.state
        if not self.filtered:
            state.selected_index = 0
        elif state.selected_index >= len(self.filtered):
            state.selected_index = len(self.filtered) - 1
        state.page_start, _ = page_window(state.selected_index, len(self.filtered))

    def move(self, step: int) -> None:
        if not self.filtered:
            return
        self.state.selected_index = (self.state.selected_index + step) % len(self.filtered)
        self._clamp()

    def jump(self, index: int) -> None:
        if not self.filtered:
            return
        self.state.selected_index = index % len(self.filtered)
        self._clamp()

    @property
    def current(self) -> E | None:
        if not self.filtered:
            return None
        return self.filtered[self.state.selected_index]

    def handle(self, event: KeyEvent) -> E | None:
        """Apply one key.

        Returns:
            The chosen entity, or None to keep looping

        Raises:
            SelectionCanceled: On Quit or ``q``
            ManualEntryRequested: On ``i``
        """
        key = event.key
        if key is Key.UP:
            self.move(-1)
        elif key is Key.DOWN:
            self.move(1)
        elif key is Key.HOME:
            self.jump(0)
        elif key is Key.END:
            self.jump(-1)
        elif key is Key.BACKSPACE:
            self.set_query(self.state.query[:-1])
        elif key is Key.ENTER:
            return self.current
        elif key is Key.QUIT:
            raise SelectionCanceled()
        elif key is Key.CHAR:
            ch = event.char.lower()
            if ch == "k":
                self.move(-1)
            elif ch == "j":
                self.move(1)
            elif ch == "q":
                raise SelectionCanceled()
            elif ch == "i":
                raise ManualEntryRequested()
            else:
                self.set_query(self.state.query + event.char)
        return None


def entity_row(entity: SelectableEntity) -> str:
    """One listing line: name, then id or masked secret, then state."""
    name = short_text(entity.display_name, NAME_WIDTH)
    if entity.primary_id != entity.display_name:
        detail = entity.primary_id
    else:
        detail = mask_secret(entity.secret)
    line = f"{name:<{NAME_WIDTH}}  {detail}"
    if entity.enabled is not None:
        line += "  [ON ]" if entity.enabled else "  [OFF]"
    return line


def draw_picker(handler: PromptHandler, title: str, picker: EntityPicker) -> None:
    """Render the filter line, counters and the visible page."""
    text = handler.text
    state = picker.state
    filtered = picker.filtered

    handler.clear()
    handler.header(title)
    handler.out(text("Controls: Up/Down to navigate, Enter to select, Type to filter"))
    handler.out(text("          Backspace to erase, i for manual input, q to cancel"))
    handler.out()
    handler.out(text("Filter: {}", state.query), style="yellow")
    handler.out(text("Showing: {} / {} users", len(filtered), len(picker.entities)))
    handler.separator()

    if not filtered:
        handler.out("  " + text("No users match current filter"), style="red")
        return

    start, end = page_window(state.selected_index, len(filtered))
    handler.out()
    for i in range(start, end):
        is_selected = i == state.selected_index
        marker = SELECTED_MARKER if is_selected else UNSELECTED_MARKER
        handler.out(marker + entity_row(filtered[i]), style="bold cyan" if is_selected else None)

    if end - start < len(filtered):
        handler.out()
        handler.out("  " + text("(showing {}-{} of {})", start + 1, end, len(filtered)))
    handler.out()


def select_entity_fallback(handler: PromptHandler, title: str, entities: Sequence[E]) -> E:
    """Numbered listing for streams without raw mode; ``0`` is manual entry."""
    text = handler.text
    handler.clear()
    handler.header(title)
    for i, entity in enumerate(entities):
        handler.out(f"  {i + 1}. {entity_row(entity)}")
    handler.out(text("  0. Manual USER_ID input"))
    handler.out(text("  q. Cancel"))
    handler.out()

    count = len(entities)
    number = prompt_number(
        handler,
        text("Enter user number (0-{}) or q", count),
        text("Invalid. Enter 0-{} or q", count),
        0,
        count,
    )
    if number == 0:
        raise ManualEntryRequested()
    return entities[number - 1]


def run_entity_picker(title: str, entities: Sequence[E], handler: PromptHandler | None = None) -> E:
    """Let the operator pick one user from ``entities``.

    Args:
        title: Heading drawn above the list
        entities: Fresh snapshot of the users to choose from
        handler: Console, translator and input to use

    Returns:
        The chosen entity

    Raises:
        ManualEntryRequested: If the operator wants to type an identifier
        SelectionCanceled: If the operator quits
        InputDecodeError: If input ends
    """
    handler = handler or PromptHandler()
    picker = EntityPicker(entities)

    session = acquire_raw_session(handler)
    if session is None:
        return select_entity_fallback(handler, title, picker.entities)

    return run_key_loop(session, lambda: draw_picker(handler, title, picker), picker.handle)
