"""Interactive shell: a single-threaded read-eval loop over one open database.

Each line is tokenized with shell quoting rules, its first word resolved
through the same registry as one-shot mode, and the resulting command
run against the already-open handle (so no ``DBPATH`` is expected).

Error isolation
---------------
* ``OK``, ``ISOLATED_FAILURE`` and ``REQUEST_EXIT`` outcomes end the
  current line only; the message, if any, has already been shown.
* A ``FATAL`` outcome is re-raised and terminates the process.
* ``quit`` exits the process from inside the registry.
* End of input ends the loop normally.
"""

from __future__ import annotations

import shlex
from collections.abc import Callable

from cblite_tool.cli.console import console, err_console, render_error
from cblite_tool.cli.commands.registry import subcommand
from cblite_tool.cli.help import help_command
from cblite_tool.core.arguments import ArgumentCursor
from cblite_tool.core.models import CommandOutcome, OutcomeKind
from cblite_tool.core.protocols import DatabaseHandle
from cblite_tool.core.session import Session
from cblite_tool.exceptions import CBLiteError, UsageError
from cblite_tool.utils.constants import HELP_KEYWORD, SHELL_PROMPT

LineReaderFn = Callable[[str], str | None]
"""Returns the next input line, or ``None`` at end of input."""


class Shell:
    def __init__(self, session: Session, read_line: LineReaderFn) -> None:
        if session.database is None:
            raise RuntimeError("The interactive shell needs an open database")
        self.session: Session = session
        self._db: DatabaseHandle = session.database
        self._read_line: LineReaderFn = read_line

    def run(self) -> None:
        """Loop until end of input, ``quit``, or a fatal error."""
        mode = "read-only" if self._db.is_read_only else "writeable"
        console.text(f"Opened {mode} database {self._db.path}")

        while True:
            line = self._read_line(SHELL_PROMPT)
            if line is None:
                return
            outcome = self.run_line(line)
            if outcome.kind is OutcomeKind.FATAL and outcome.error is not None:
                raise outcome.error

    def run_line(self, line: str) -> CommandOutcome:
        """Evaluate one line of input and report how it ended."""
        try:
            tokens = shlex.split(line)
        except ValueError as exc:
            error = UsageError(f"Couldn't parse line: {exc}")
            render_error(error)
            return CommandOutcome.isolated_failure(error)
        if not tokens:
            return CommandOutcome.ok()

        args = ArgumentCursor(tokens)
        name = args.next_arg("subcommand")

        if name == HELP_KEYWORD:
            try:
                help_command(self.session, args)
            except CBLiteError as exc:
                render_error(exc)
                return CommandOutcome.isolated_failure(exc)
            return CommandOutcome.ok()

        command = subcommand(name, self.session)
        if command is None:
            message = f"Unknown subcommand '{name}'; type '{HELP_KEYWORD}' for a list of commands."
            err_console.text(message)
            return CommandOutcome.isolated_failure(UsageError(message))
        return command.run_subcommand(args)
