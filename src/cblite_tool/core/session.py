"""Run-scoped session state.

A :class:`Session` is created once per process run and handed to every
subcommand constructor.  It owns the single open database handle; the
opener is the only code that attaches one and :meth:`Session.close` is
the only code that releases it.
"""

from __future__ import annotations

from dataclasses import dataclass

from cblite_tool.core.models import DEFAULT_OPEN_FLAGS, OpenFlags
from cblite_tool.core.protocols import DatabaseEngine, DatabaseHandle, PasswordReader


def _no_password(_prompt: str) -> str | None:
    return None


@dataclass(eq=False)
class Session:
    engine: DatabaseEngine
    password_reader: PasswordReader = _no_password
    flags: OpenFlags = DEFAULT_OPEN_FLAGS
    needs_password: bool = False
    interactive: bool = False
    database: DatabaseHandle | None = None

    # ------------------------------------------------------------------
    # Global flag actions
    # ------------------------------------------------------------------

    def enable_create(self) -> None:
        self.flags = (self.flags | OpenFlags.CREATE) & ~OpenFlags.READ_ONLY

    def enable_writes(self) -> None:
        self.flags &= ~OpenFlags.READ_ONLY

    def require_password(self) -> None:
        self.needs_password = True

    # ------------------------------------------------------------------
    # Handle ownership
    # ------------------------------------------------------------------

    @property
    def read_only(self) -> bool:
        return bool(self.flags & OpenFlags.READ_ONLY)

    @property
    def is_open(self) -> bool:
        return self.database is not None

    def attach(self, handle: DatabaseHandle) -> None:
        """Store the handle produced by a successful open."""
        if self.database is not None:
            raise RuntimeError("Session already holds an open database")
        self.database = handle

    def close(self) -> None:
        """Close and forget the open database, if any."""
        handle, self.database = self.database, None
        if handle is not None:
            handle.close()

    def read_password(self, prompt: str) -> str | None:
        return self.password_reader(prompt)
