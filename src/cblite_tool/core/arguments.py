"""Argument cursor and flag processing shared by the dispatcher and subcommands.

A single :class:`ArgumentCursor` is threaded from the top-level program
into whichever subcommand it resolves, so each consumer picks up exactly
where the previous one stopped.  Flags are matched by exact,
case-sensitive string comparison with no prefixes or abbreviations.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence

from cblite_tool.exceptions import UsageError

FlagAction = Callable[[], None]
FlagTable = Sequence[tuple[str, FlagAction]] | Mapping[str, FlagAction]


def _entries(table: FlagTable) -> Iterable[tuple[str, FlagAction]]:
    if isinstance(table, Mapping):
        return table.items()
    return table


def _lookup(name: str, table: FlagTable) -> FlagAction | None:
    """Return the first action registered under *name*, if any."""
    for flag, action in _entries(table):
        if flag == name:
            return action
    return None


def process_flag(name: str, table: FlagTable) -> bool:
    """Invoke the action bound to *name*; return ``False`` if there is none.

    Nothing is consumed from any cursor.  The registry uses this to turn
    a subcommand name into a side effect (selecting a factory).
    """
    action = _lookup(name, table)
    if action is None:
        return False
    action()
    return True


class ArgumentCursor:
    """Ordered command-line tokens with a forward-only read position."""

    def __init__(self, tokens: Iterable[str] = ()) -> None:
        self._tokens: tuple[str, ...] = tuple(tokens)
        self._position: int = 0

    def __repr__(self) -> str:
        return f"ArgumentCursor({list(self.remaining)!r})"

    @property
    def position(self) -> int:
        return self._position

    @property
    def remaining(self) -> tuple[str, ...]:
        return self._tokens[self._position:]

    def has_args(self) -> bool:
        return self._position < len(self._tokens)

    def peek(self) -> str | None:
        """Return the next token without consuming it."""
        if not self.has_args():
            return None
        return self._tokens[self._position]

    def next_arg(self, description: str) -> str:
        """Consume and return the next token.

        Raises
        ------
        UsageError
            When no token remains; the message names *description*.
        """
        if not self.has_args():
            raise UsageError(f"Missing argument: expected {description}")
        token = self._tokens[self._position]
        self._position += 1
        return token

    def rest(self) -> list[str]:
        """Consume and return every remaining token."""
        tokens = list(self.remaining)
        self._position = len(self._tokens)
        return tokens

    def end_of_args(self) -> None:
        """Fail if tokens remain that nobody consumed."""
        if self.has_args():
            raise UsageError(
                f"Unexpected extra arguments, beginning with '{self.peek()}'",
            )

    def process_flags(self, table: FlagTable) -> None:
        """Consume leading tokens that exactly match a flag in *table*.

        Each match is consumed *before* its action runs, so an action may
        read the flag's own value with :meth:`next_arg`.  Stops at the
        first unrecognised token, which is left for the caller.
        """
        while self.has_args():
            action = _lookup(self._tokens[self._position], table)
            if action is None:
                return
            self._position += 1
            action()
