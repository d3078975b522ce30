"""Base prompt handling and UI components."""

import sys
from collections.abc import Callable
from typing import TextIO

from prompt_toolkit import prompt as toolkit_prompt
from rich.console import Console

from psasctl.core.exceptions import InputDecodeError, SelectionCanceled
from psasctl.core.lib.terminal import RawTerminalSession
from psasctl.core.utils.i18n import UiText

console = Console()

SEPARATOR_WIDTH = 60


def default_console() -> Console:
    """Return the console shared by the command modules."""
    return console


class PromptHandler:
    """Everything a menu, prompt or picker needs to talk to the operator.

    A handler bundles the Rich console used for drawing, the ``UiText``
    translator, the line-oriented input used by fallback prompts and a
    factory for raw terminal sessions. Tests swap any of these for
    in-memory stand-ins.
    """

    def __init__(
        self,
        console: Console | None = None,
        text: UiText | None = None,
        line_input: TextIO | None = None,
        session_factory: Callable[[], RawTerminalSession] | None = None,
    ) -> None:
        """Initialize the handler.

        Args:
            console: Output console (default: the shared module console)
            text: Translator for the UI language (default: English)
            line_input: Text stream for line prompts (default: ``sys.stdin``)
            session_factory: Callable returning an unacquired raw session
        """
        self.console = console if console is not None else default_console()
        self.text = text if text is not None else UiText()
        self._line_input = line_input
        self._session_factory = session_factory or RawTerminalSession

    @property
    def line_input(self) -> TextIO:
        return self._line_input if self._line_input is not None else sys.stdin

    def open_session(self) -> RawTerminalSession:
        return self._session_factory()

    def out(self, message: str = "", style: str | None = None) -> None:
        """Print literal text; markup in user data is never interpreted."""
        self.console.print(message, style=style, markup=False, highlight=False)

    def clear(self) -> None:
        self.console.clear()

    def header(self, title: str) -> None:
        title = self.text(title)
        self.out()
        self.out(title, style="bold cyan")
        self.out("=" * len(title))
        self.out()

    def separator(self) -> None:
        self.out("-" * SEPARATOR_WIDTH)

    def info(self, message: str) -> None:
        self.out(f"  {message}")

    def success(self, message: str) -> None:
        self.out(f"  OK: {message}", style="green")

    def error(self, message: str) -> None:
        self.out(f"  {self.text('ERROR')}: {message}", style="red")

    def read_line(self, label: str, default: str = "") -> str:
        """Prompt for one line of input.

        Args:
            label: Prompt text, translated before display
            default: Value returned for an empty answer

        Returns:
            str: The stripped answer, or ``default`` when it is empty

        Raises:
            InputDecodeError: If the input stream is exhausted
        """
        label = self.text(label)
        suffix = f" [{default}]: " if default else ": "
        self.console.print(label + suffix, end="", markup=False, highlight=False)

        line = self.line_input.readline()
        if not line:
            raise InputDecodeError("end of input")
        answer = line.strip()
        return answer or default

    def read_required(self, label: str) -> str:
        """Prompt until a non-empty answer is given."""
        while True:
            answer = self.read_line(label)
            if answer:
                return answer
            self.error(self.text("Value is required."))

    def read_secret(self, label: str) -> str:
        """Prompt for a secret, hiding the input on a real terminal."""
        if self._line_input is not None or not sys.stdin.isatty():
            return self.read_line(label)
        try:
            answer = toolkit_prompt(f"{self.text(label)}: ", is_password=True)
        except EOFError as e:
            raise InputDecodeError("end of input") from e
        except KeyboardInterrupt as e:
            raise SelectionCanceled() from e
        return answer.strip()
