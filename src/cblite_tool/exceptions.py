"""Custom exception hierarchy for cblite-tool.

All exceptions that cross layer boundaries must inherit from
:class:`CBLiteError`.  Raw ``sqlite3`` and ``cryptography`` exceptions
must NEVER propagate beyond the infrastructure layer; they must be
caught and re-raised as a typed subclass defined here.

Hierarchy
---------
CBLiteError
├── UsageError
├── OperationFailedError
│   └── DatabaseError
└── EnvironmentError

CommandExit sits outside the hierarchy: it is an intentional early exit
requested by a subcommand, not a failure.
"""

from __future__ import annotations

import enum


class ErrorCode(enum.Enum):
    """Error codes reported by the database engine."""

    NOT_A_DATABASE = "not a database file (or wrong encryption key)"
    NOT_FOUND = "database doesn't exist"
    CANT_OPEN_FILE = "unable to open database file"
    READ_ONLY = "database is read-only"
    IO_ERROR = "I/O error"
    INVALID_QUERY = "invalid query"
    CORRUPT_DATA = "corrupt data"


class CBLiteError(Exception):
    """Base exception for all cblite-tool errors.

    Every user-visible error condition must map to a subclass of this
    exception so that the CLI error boundary can render a clean message
    without leaking internal stack traces.
    """

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint: str | None = hint
        """Optional actionable guidance shown below the error message."""


# --- Misuse ----------------------------------------------------------------

class UsageError(CBLiteError):
    """Raised for a malformed invocation (missing or extra arguments, unknown names)."""


# --- Runtime failures --------------------------------------------------------

class OperationFailedError(CBLiteError):
    """Raised when a well-formed invocation fails at runtime."""


class DatabaseError(OperationFailedError):
    """Raised by the engine; carries the :class:`ErrorCode` that caused it."""

    def __init__(
        self,
        code: ErrorCode,
        message: str | None = None,
        *,
        hint: str | None = None,
    ) -> None:
        super().__init__(message or code.value, hint=hint)
        self.code: ErrorCode = code


# --- Environment / tooling -------------------------------------------------

class EnvironmentError(CBLiteError):
    """Raised when a required runtime dependency is not available."""


# --- Control flow ------------------------------------------------------------

class CommandExit(Exception):
    """Raised by a subcommand that wants to stop early without failing.

    The command boundary turns it into a ``RequestExit`` outcome: one-shot
    mode exits with :attr:`code`, the interactive shell just moves on to
    the next prompt.
    """

    def __init__(self, code: int = 0) -> None:
        super().__init__(code)
        self.code: int = code
