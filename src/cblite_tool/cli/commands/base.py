"""Common invocation contract shared by every subcommand.

A command is built fresh for each invocation with the run's
:class:`~cblite_tool.core.session.Session`, gets its ``name`` assigned by
the registry, and is driven through :meth:`Command.run_subcommand`,
which never raises for expected outcomes: it returns a tagged
:class:`~cblite_tool.core.models.CommandOutcome` instead.
"""

from __future__ import annotations

from typing import ClassVar

from cblite_tool.cli.console import err_console, escape_markup, render_error
from cblite_tool.core.arguments import ArgumentCursor, FlagAction
from cblite_tool.core.models import CommandOutcome
from cblite_tool.core.opener import open_database_from_next_arg, open_writeable_database_from_next_arg
from cblite_tool.core.protocols import DatabaseHandle
from cblite_tool.core.session import Session
from cblite_tool.exceptions import CBLiteError, CommandExit, UsageError
from cblite_tool.utils.constants import PROGRAM_NAME


class Command:
    """Base class for subcommands.

    Subclasses implement :meth:`run` and describe themselves through the
    class attributes below, which also feed the help listings.
    """

    ARGS: ClassVar[str] = ""
    """Positional-argument synopsis, without ``DBPATH``."""

    SUMMARY: ClassVar[str] = ""

    FLAG_HELP: ClassVar[tuple[tuple[str, str], ...]] = ()
    """``(flag, description)`` pairs shown by :meth:`usage`."""

    USES_DATABASE: ClassVar[bool] = True
    """Whether the one-shot form takes a ``DBPATH`` argument."""

    def __init__(self, session: Session) -> None:
        self.session: Session = session
        self.name: str = ""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def run_subcommand(self, args: ArgumentCursor) -> CommandOutcome:
        """Run against the shared cursor and classify how it ended."""
        try:
            self.run(args)
        except CommandExit as exc:
            return CommandOutcome.request_exit(exc.code)
        except CBLiteError as exc:
            render_error(exc)
            return CommandOutcome.isolated_failure(exc)
        except Exception as exc:  # noqa: BLE001
            return CommandOutcome.fatal(exc)
        return CommandOutcome.ok()

    def run(self, args: ArgumentCursor) -> None:
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Flags
    # ------------------------------------------------------------------

    def flags(self, args: ArgumentCursor) -> list[tuple[str, FlagAction]]:
        """Flag table specific to this command.

        Actions that take a value read it from *args*, which has already
        consumed the flag itself.
        """
        return []

    def process_flags(self, args: ArgumentCursor) -> None:
        args.process_flags([("--help", self._help_and_exit), *self.flags(args)])

    @staticmethod
    def int_arg(args: ArgumentCursor, description: str) -> int:
        """Consume a non-negative integer argument."""
        text = args.next_arg(description)
        if not text.isdigit():
            raise UsageError(f"Expected a non-negative integer for {description}, got '{text}'")
        return int(text)

    def _help_and_exit(self) -> None:
        self.usage()
        raise CommandExit(0)

    # ------------------------------------------------------------------
    # Database access
    # ------------------------------------------------------------------

    @property
    def database(self) -> DatabaseHandle:
        handle = self.session.database
        if handle is None:
            raise RuntimeError(f"{self.name}: no database is open")
        return handle

    def open_database(self, args: ArgumentCursor) -> DatabaseHandle:
        return open_database_from_next_arg(self.session, args)

    def open_writeable_database(self, args: ArgumentCursor) -> DatabaseHandle:
        return open_writeable_database_from_next_arg(self.session, args)

    # ------------------------------------------------------------------
    # Usage
    # ------------------------------------------------------------------

    @classmethod
    def has_flags(cls) -> bool:
        return bool(cls.FLAG_HELP)

    @classmethod
    def synopsis(cls, name: str, *, interactive: bool) -> str:
        """One-line usage, e.g. ``cblite ls [FLAGS] DBPATH [PATTERN]``."""
        parts = [] if interactive else [PROGRAM_NAME]
        parts.append(name)
        if cls.has_flags():
            parts.append("[FLAGS]")
        if cls.USES_DATABASE and not interactive:
            parts.append("DBPATH")
        if cls.ARGS:
            parts.append(cls.ARGS)
        return " ".join(parts)

    def write_usage_command(self) -> None:
        err_console.print(
            f"[bold]{escape_markup(self.synopsis(self.name, interactive=self.session.interactive))}[/bold]",
        )

    def usage(self) -> None:
        self.write_usage_command()
        if self.SUMMARY:
            err_console.text(f"  {self.SUMMARY}")
        for flag, description in self.FLAG_HELP:
            err_console.text(f"    {flag:<16} {description}")
