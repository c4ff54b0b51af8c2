"""``help`` flow: full usage, the shell's subcommand listing, per-command usage.

All listings are generated from the registry so they never drift from
what the dispatcher actually accepts.
"""

from __future__ import annotations

from cblite_tool.cli.console import console, err_console, escape_markup
from cblite_tool.cli.commands.registry import RegistryEntry, available_entries, lookup
from cblite_tool.core.arguments import ArgumentCursor
from cblite_tool.core.session import Session
from cblite_tool.utils.constants import DATABASE_SUFFIX, HELP_KEYWORD, PROGRAM_NAME

BANNER: str = f"{PROGRAM_NAME}: embedded document database multi-tool"

GLOBAL_FLAGS: tuple[tuple[str, str], ...] = (
    ("--color", "Use bold/italic (and sometimes color), even if not writing to a terminal"),
    ("--create", "Creates the database if it doesn't already exist"),
    ("--encrypted", "Open an encrypted database (will prompt for a password)"),
    ("--writeable", "Open the database with read+write access"),
    ("--version or -v", "Display version info and exit"),
)


def _synopsis(entry: RegistryEntry, *, interactive: bool) -> str:
    command_class = entry.command_class
    if command_class is None:
        return entry.name if interactive else f"{PROGRAM_NAME} {entry.name}"
    return command_class.synopsis(entry.name, interactive=interactive)


def _help_synopsis(*, interactive: bool) -> str:
    prefix = "" if interactive else f"{PROGRAM_NAME} "
    return f"{prefix}{HELP_KEYWORD} [SUBCOMMAND]"


def usage() -> None:
    """Print the one-shot usage summary to stderr."""
    lines = [
        _synopsis(entry, interactive=False)
        for entry in available_entries(False, listed_only=True)
    ]
    lines.append(_help_synopsis(interactive=False))
    lines.append(f"{PROGRAM_NAME} DBPATH   (interactive shell*)")

    err_console.print(f"[bold]{escape_markup(BANNER)}[/bold]")
    for index, line in enumerate(lines):
        lead = "Usage: " if index == 0 else "       "
        err_console.text(f"{lead}{line}")
    err_console.text(
        f"For information about subcommand parameters/flags, run "
        f"`{PROGRAM_NAME} {HELP_KEYWORD} SUBCOMMAND`.\n"
        f"\n"
        f"* The shell accepts the same commands listed above, but without the '{PROGRAM_NAME}'\n"
        f"  and DBPATH parameters. For example, 'ls -l'. DBPATH must end in {DATABASE_SUFFIX}.\n"
        f"\n"
        f"Global flags (before the subcommand name):",
    )
    for flag, description in GLOBAL_FLAGS:
        err_console.text(f"  {flag} : {description}")


def interactive_listing() -> None:
    """Print the subcommands available inside the shell."""
    console.print("[bold]Subcommands:[/bold]")
    lines = [
        _synopsis(entry, interactive=True)
        for entry in available_entries(True, listed_only=True)
    ]
    lines.append(_help_synopsis(interactive=True))
    for line in sorted(lines):
        console.text(f"    {line}")
    console.text(f"For more details, enter `{HELP_KEYWORD}` followed by a subcommand name.")


def help_command(session: Session, args: ArgumentCursor) -> None:
    """Run ``help [SUBCOMMAND]`` in the session's current mode."""
    if not args.has_args():
        if session.interactive:
            interactive_listing()
        else:
            usage()
        return

    name = args.next_arg("subcommand")
    args.end_of_args()
    entry = lookup(name, session.interactive)
    if entry is None:
        err_console.text(f"Unknown subcommand '{name}'")
        return

    command_class = entry.command_class
    if command_class is None:
        # Not a Command (``quit``): describe it without invoking it.
        summary = (entry.factory.__doc__ or "").strip().splitlines()
        err_console.print(f"[bold]{escape_markup(_synopsis(entry, interactive=session.interactive))}[/bold]")
        if summary:
            err_console.text(f"  {summary[0]}")
        return

    command = command_class(session)
    command.name = name
    command.usage()
