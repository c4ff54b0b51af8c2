"""Static subcommand registry and name-to-instance dispatch.

Each :class:`RegistryEntry` pairs a name with a factory and a predicate
over the session's interactive flag, so mode gating (``serve`` only
outside the shell, ``quit`` only inside it) is data rather than
conditionals in the dispatcher.  Names are matched exactly and
case-sensitively; when two entries share a name the first one wins.
"""

from __future__ import annotations

import functools
import sys
from collections.abc import Callable
from dataclasses import dataclass
from typing import NoReturn

from cblite_tool.cli import exit_codes
from cblite_tool.cli.commands.base import Command
from cblite_tool.cli.commands.documents import CatCommand, ListCommand, PutCommand, RmCommand
from cblite_tool.cli.commands.maintenance import (
    CompactCommand,
    DecryptCommand,
    EncryptCommand,
    InfoCommand,
)
from cblite_tool.cli.commands.query import SelectCommand, SqlCommand
from cblite_tool.cli.commands.serve import ServeCommand
from cblite_tool.cli.commands.transfer import CpCommand, ExportCommand, ImportCommand
from cblite_tool.core.arguments import process_flag
from cblite_tool.core.session import Session

CommandFactory = Callable[[Session], Command]
ModePredicate = Callable[[bool], bool]


def anywhere(interactive: bool) -> bool:
    return True


def shell_only(interactive: bool) -> bool:
    return interactive


def outside_shell(interactive: bool) -> bool:
    return not interactive


def quit_session(session: Session) -> NoReturn:
    """Close the database and exit."""
    session.close()
    sys.exit(exit_codes.SUCCESS)


@dataclass(frozen=True, slots=True)
class RegistryEntry:
    name: str
    factory: CommandFactory
    available: ModePredicate = anywhere
    listed: bool = True
    """Whether help listings show this name (aliases are hidden)."""

    @property
    def command_class(self) -> type[Command] | None:
        """The Command subclass this entry builds, if it builds one."""
        if isinstance(self.factory, type) and issubclass(self.factory, Command):
            return self.factory
        return None


REGISTRY: tuple[RegistryEntry, ...] = (
    RegistryEntry("cat", CatCommand),
    RegistryEntry("compact", CompactCommand),
    RegistryEntry("cp", CpCommand),
    RegistryEntry("decrypt", DecryptCommand),
    RegistryEntry("encrypt", EncryptCommand),
    RegistryEntry("export", ExportCommand),
    RegistryEntry("file", InfoCommand, listed=False),
    RegistryEntry("import", ImportCommand),
    RegistryEntry("info", InfoCommand),
    RegistryEntry("ls", ListCommand),
    RegistryEntry("put", PutCommand),
    RegistryEntry("rm", RmCommand),
    RegistryEntry("SELECT", SelectCommand, listed=False),
    RegistryEntry("select", SelectCommand),
    RegistryEntry("sql", SqlCommand),
    RegistryEntry("serve", ServeCommand, available=outside_shell),
    RegistryEntry("quit", quit_session, available=shell_only),
)


def lookup(name: str, interactive: bool) -> RegistryEntry | None:
    """Return the entry *name* resolves to in the given mode, or ``None``."""
    selected: list[RegistryEntry] = []
    table = [(entry.name, functools.partial(selected.append, entry)) for entry in REGISTRY]
    if not process_flag(name, table):
        return None
    entry = selected[0]
    return entry if entry.available(interactive) else None


def is_available(name: str, interactive: bool) -> bool:
    return lookup(name, interactive) is not None


def available_entries(interactive: bool, *, listed_only: bool = False) -> list[RegistryEntry]:
    return [
        entry
        for entry in REGISTRY
        if entry.available(interactive) and (entry.listed or not listed_only)
    ]


def available_names(interactive: bool) -> list[str]:
    return [entry.name for entry in available_entries(interactive)]


def subcommand(name: str, session: Session) -> Command | None:
    """Build the command registered as *name*, bound to *session*.

    Returns ``None`` when *name* is unknown or not available in the
    session's mode.  Selecting ``quit`` never returns: it closes the
    database and exits the process.
    """
    entry = lookup(name, session.interactive)
    if entry is None:
        return None
    command = entry.factory(session)
    command.name = name
    return command
