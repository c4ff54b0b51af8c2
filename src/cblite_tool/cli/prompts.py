"""Terminal input for the CLI layer: masked password entry and shell lines.

Passwords are read with questionary's masked prompt.  Shell lines are
read with a prompt_toolkit session (history plus subcommand completion)
when stdin is a terminal, and with plain ``input()`` when it is piped.
"""

from __future__ import annotations

import sys
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from cblite_tool.exceptions import EnvironmentError


def _import_questionary() -> Any:
    """Import questionary lazily for masked password input."""
    try:
        import questionary
    except ModuleNotFoundError as exc:
        raise EnvironmentError(
            "questionary is not installed. Install with: pip install questionary",
        ) from exc
    return questionary


def _import_prompt_toolkit() -> Any:
    """Import prompt_toolkit lazily for the interactive shell."""
    try:
        import prompt_toolkit
        import prompt_toolkit.completion
        import prompt_toolkit.history
    except ModuleNotFoundError as exc:
        raise EnvironmentError(
            "prompt_toolkit is not installed. Install with: pip install prompt_toolkit",
        ) from exc
    return prompt_toolkit


def read_password(prompt: str) -> str | None:
    """Ask for a password without echoing it.

    Returns ``None`` when the user cancels with Ctrl+C or Esc.
    """
    questionary = _import_questionary()
    answer: str | None = questionary.password(prompt).ask()
    return answer


class LineReader:
    """Reads one shell line at a time; ``None`` signals end of input.

    Parameters
    ----------
    history_path:
        File used to persist command history between sessions.
    words:
        Subcommand names offered for tab completion.
    """

    def __init__(self, history_path: Path, words: Iterable[str]) -> None:
        self._history_path = history_path
        self._words = sorted(set(words))
        self._session: Any = None

    def _prompt_session(self) -> Any:
        if self._session is None:
            prompt_toolkit = _import_prompt_toolkit()
            self._session = prompt_toolkit.PromptSession(
                history=prompt_toolkit.history.FileHistory(str(self._history_path)),
                completer=prompt_toolkit.completion.WordCompleter(self._words),
            )
        return self._session

    def __call__(self, prompt: str) -> str | None:
        if not sys.stdin.isatty():
            try:
                return input(prompt)
            except EOFError:
                return None

        try:
            text: str = self._prompt_session().prompt(prompt)
        except EOFError:
            return None
        except KeyboardInterrupt:
            # Ctrl+C abandons the current line only.
            return ""
        return text
