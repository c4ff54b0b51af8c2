"""Domain models for cblite-tool.

Value objects shared by the core, the engine adapter and the CLI.  Most
are **frozen** dataclasses; :class:`OpenConfiguration` is the exception
because the password loop swaps its encryption key between attempts.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any


# ---------------------------------------------------------------------------
# Open flags & configuration
# ---------------------------------------------------------------------------

class OpenFlags(enum.Flag):
    """Bit-set describing how the session opens its database."""

    NONE = 0
    CREATE = enum.auto()
    READ_ONLY = enum.auto()


DEFAULT_OPEN_FLAGS: OpenFlags = OpenFlags.READ_ONLY


class EncryptionAlgorithm(enum.Enum):
    NONE = "none"
    AES256 = "aes256"


@dataclass(frozen=True, slots=True)
class EncryptionKey:
    """Raw key material tagged with its algorithm."""

    algorithm: EncryptionAlgorithm
    key_bytes: bytes = field(repr=False)


@dataclass(slots=True)
class OpenConfiguration:
    """Parameters of a database open attempt.

    ``create`` and ``read_only`` are fixed before the first attempt;
    only ``encryption_key`` changes between password retries.
    """

    create: bool = False
    read_only: bool = True
    encryption_key: EncryptionKey | None = None

    @classmethod
    def from_flags(cls, flags: OpenFlags) -> OpenConfiguration:
        return cls(
            create=bool(flags & OpenFlags.CREATE),
            read_only=bool(flags & OpenFlags.READ_ONLY),
        )


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class Document:
    """A single stored document."""

    doc_id: str
    rev_id: str
    """``<generation>-<digest>`` revision identifier."""

    sequence: int
    """Database-wide sequence number of the last change."""

    deleted: bool
    body: dict[str, Any]


# ---------------------------------------------------------------------------
# Command outcomes
# ---------------------------------------------------------------------------

class OutcomeKind(enum.Enum):
    OK = "ok"
    ISOLATED_FAILURE = "isolated-failure"
    REQUEST_EXIT = "request-exit"
    FATAL = "fatal"


@dataclass(frozen=True, slots=True)
class CommandOutcome:
    """Tagged result returned by every subcommand entry point.

    * ``OK``: the command completed.
    * ``ISOLATED_FAILURE``: the command failed and its message has
      already been shown to the user.
    * ``REQUEST_EXIT``: the command stopped early on purpose;
      :attr:`exit_code` is the status one-shot mode should exit with.
    * ``FATAL``: an unexpected error the caller must re-raise.
    """

    kind: OutcomeKind
    exit_code: int = 0
    error: BaseException | None = None

    @classmethod
    def ok(cls) -> CommandOutcome:
        return cls(OutcomeKind.OK)

    @classmethod
    def isolated_failure(cls, error: BaseException) -> CommandOutcome:
        return cls(OutcomeKind.ISOLATED_FAILURE, exit_code=1, error=error)

    @classmethod
    def request_exit(cls, code: int = 0) -> CommandOutcome:
        return cls(OutcomeKind.REQUEST_EXIT, exit_code=code)

    @classmethod
    def fatal(cls, error: BaseException) -> CommandOutcome:
        return cls(OutcomeKind.FATAL, exit_code=1, error=error)
