"""CLI application entry point and top-level dispatch for cblite.

This module is the **sole error boundary** for the entire application.
It catches :class:`~cblite_tool.exceptions.CBLiteError`, ``KeyboardInterrupt``,
and any unexpected ``Exception``, rendering user-friendly messages via Rich
and returning well-defined exit codes.

Dispatch
--------
1. Strip global flags (``--create``, ``--writeable``, ``--encrypted``,
   ``--color``, ``--version``/``-v``).
2. A first argument ending in ``.cblite2`` opens that database and starts
   the interactive shell; nothing may follow it.
3. ``help`` runs the help flow.
4. Anything else is resolved through the registry and run once.
"""

from __future__ import annotations

import os
import sys
from collections.abc import Sequence

from cblite_tool.cli import exit_codes
from cblite_tool.cli.commands.registry import available_names, subcommand
from cblite_tool.cli.console import (
    configure_logging,
    console,
    enable_color,
    err_console,
    escape_markup,
    render_error,
)
from cblite_tool.cli.help import BANNER, help_command
from cblite_tool.cli.prompts import LineReader, read_password
from cblite_tool.cli.shell import LineReaderFn, Shell
from cblite_tool.core.arguments import ArgumentCursor, FlagAction
from cblite_tool.core.models import OutcomeKind
from cblite_tool.core.opener import is_database_path, open_database
from cblite_tool.core.protocols import DatabaseEngine, PasswordReader
from cblite_tool.core.session import Session
from cblite_tool.exceptions import CBLiteError, OperationFailedError, UsageError
from cblite_tool.utils.config import load_settings
from cblite_tool.utils.constants import (
    DATABASE_SUFFIX,
    HELP_KEYWORD,
    MAX_SUBCOMMAND_NAME_LENGTH,
    PROGRAM_NAME,
)


def looks_like_path(token: str) -> bool:
    """Guess whether an unresolvable first argument was meant as a path."""
    separators = {os.sep, "/"} | ({os.altsep} if os.altsep else set())
    return (
        any(sep in token for sep in separators)
        or "." in token
        or len(token) > MAX_SUBCOMMAND_NAME_LENGTH
    )


class Tool:
    """Top-level dispatcher for one process run.

    Parameters
    ----------
    session:
        The run's session; the tool mutates its flags and mode.
    read_line:
        Line source for the interactive shell.
    """

    def __init__(self, session: Session, read_line: LineReaderFn) -> None:
        self.session: Session = session
        self._read_line: LineReaderFn = read_line

    def global_flags(self) -> list[tuple[str, FlagAction]]:
        return [
            ("--color", enable_color),
            ("--create", self.session.enable_create),
            ("--writeable", self.session.enable_writes),
            ("--encrypted", self.session.require_password),
            ("--version", self.display_version),
            ("-v", self.display_version),
        ]

    def display_version(self) -> None:
        console.text(self.session.engine.version())
        sys.exit(exit_codes.SUCCESS)

    def run(self, args: ArgumentCursor) -> int:
        """Dispatch *args* and return the process exit code."""
        args.process_flags(self.global_flags())

        if not args.has_args():
            raise UsageError(
                "Missing subcommand or database path.",
                hint=f"{BANNER}\n"
                f"For a list of subcommands, run `{PROGRAM_NAME} {HELP_KEYWORD}`.\n"
                f"To start the interactive mode, run `{PROGRAM_NAME} DBPATH`.",
            )

        cmd = args.next_arg("subcommand or database path")
        try:
            if is_database_path(cmd):
                return self.run_interactively(cmd, args)
            if cmd == HELP_KEYWORD:
                help_command(self.session, args)
                return exit_codes.SUCCESS
            return self.run_once(cmd, args)
        finally:
            self.session.close()

    def run_interactively(self, path: str, args: ArgumentCursor) -> int:
        args.end_of_args()
        self.session.interactive = True
        open_database(self.session, path)
        Shell(self.session, self._read_line).run()
        return exit_codes.SUCCESS

    def run_once(self, name: str, args: ArgumentCursor) -> int:
        command = subcommand(name, self.session)
        if command is None:
            if looks_like_path(name):
                raise OperationFailedError(
                    f"Not a valid database path (must end in {DATABASE_SUFFIX}) "
                    f"or subcommand name: {name}",
                )
            raise UsageError(
                f"Unknown subcommand '{name}'",
                hint=f"For a list of subcommands, run `{PROGRAM_NAME} {HELP_KEYWORD}`.",
            )

        outcome = command.run_subcommand(args)
        if outcome.kind is OutcomeKind.FATAL and outcome.error is not None:
            raise outcome.error
        return outcome.exit_code


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------

def main(
    argv: Sequence[str] | None = None,
    *,
    engine: DatabaseEngine | None = None,
    password_reader: PasswordReader | None = None,
    read_line: LineReaderFn | None = None,
) -> int:
    """Run the cblite CLI.

    Parameters
    ----------
    argv:
        Explicit argument list.  When ``None`` (default), ``sys.argv[1:]``
        is used.  Accepting *argv* enables deterministic testing without
        monkeypatching.
    engine, password_reader, read_line:
        Collaborators to use instead of the SQLite engine, the masked
        terminal prompt and the prompt_toolkit line reader.

    Returns
    -------
    int
        OS process exit code.
    """
    settings = load_settings()
    configure_logging(settings.log_level)

    if engine is None:
        from cblite_tool.infra.sqlite_engine import SqliteEngine

        engine = SqliteEngine()
    if read_line is None:
        read_line = LineReader(settings.history_path, [*available_names(True), HELP_KEYWORD])

    session = Session(engine, password_reader=password_reader or read_password)
    tool = Tool(session, read_line)
    return tool.run(ArgumentCursor(sys.argv[1:] if argv is None else argv))


# ---------------------------------------------------------------------------
# Script-level error boundary
# ---------------------------------------------------------------------------

def cli() -> None:
    """Top-level error boundary invoked by the console-script entry point.

    This function wraps :func:`main` and guarantees the process never
    exits with a raw stack trace during normal usage.
    """
    try:
        code = main()
        sys.exit(code)
    except CBLiteError as exc:
        render_error(exc)
        sys.exit(exit_codes.GENERAL_ERROR)
    except KeyboardInterrupt:
        err_console.print("\n[yellow]Aborted by user.[/yellow]")
        sys.exit(exit_codes.KEYBOARD_INTERRUPT)
    except Exception as exc:  # noqa: BLE001
        err_console.print(
            "[bold red]Unexpected error.[/bold red] "
            "Please report this issue.\n"
            f"  {type(exc).__name__}: {escape_markup(str(exc))}"
        )
        sys.exit(exit_codes.UNEXPECTED_ERROR)
