"""Database open state machine, including the encrypted-database unlock loop.

States::

    Unopened → AttemptOpen → (Success | NeedsPassword)
    NeedsPassword → PromptPassword → DeriveKey → AttemptOpen
    any failure other than "not a database" → FatalFail

Rules
-----
* The suffix check runs before any filesystem access.
* ``create`` / ``read_only`` are fixed before the first attempt; retries
  only swap the encryption key.
* The password loop has no attempt limit.  An empty answer aborts the
  whole process with status 1.
* A non-interactive session only prompts when ``--encrypted`` was given,
  so scripted runs never block on hidden stdin input.
"""

from __future__ import annotations

import logging
import os
import string
import sys
from pathlib import PurePath

from cblite_tool.core.arguments import ArgumentCursor
from cblite_tool.core.models import EncryptionAlgorithm, EncryptionKey, OpenConfiguration
from cblite_tool.core.protocols import DatabaseHandle
from cblite_tool.core.session import Session
from cblite_tool.exceptions import DatabaseError, ErrorCode, OperationFailedError
from cblite_tool.utils.constants import AES256_KEY_SIZE, DATABASE_SUFFIX, PROGRAM_NAME

LOG = logging.getLogger(__name__)

PASSWORD_PROMPT: str = "Database password or hex key: "
RETRY_PROMPT: str = "Sorry, try again: "

_HEX_DIGITS = frozenset(string.hexdigits)


def is_database_path(path: str) -> bool:
    """Return ``True`` iff the final path component ends with ``.cblite2``."""
    return PurePath(path).name.endswith(DATABASE_SUFFIX)


def parse_hex_key(text: str) -> EncryptionKey | None:
    """Parse *text* as a hex-encoded AES-256 key.

    Exactly two hex digits per key byte, either case, nothing else.
    """
    if len(text) != 2 * AES256_KEY_SIZE or not _HEX_DIGITS.issuperset(text):
        return None
    return EncryptionKey(EncryptionAlgorithm.AES256, bytes.fromhex(text))


def _attempt(
    session: Session,
    path: str,
    config: OpenConfiguration,
) -> tuple[DatabaseHandle | None, DatabaseError | None]:
    try:
        return session.engine.open(path, config), None
    except DatabaseError as exc:
        LOG.debug("Open of %s failed: %s", path, exc.code.name)
        return None, exc


def open_database(session: Session, path: str) -> DatabaseHandle:
    """Open *path* and attach the handle to *session*.

    Raises
    ------
    OperationFailedError
        When the path lacks the database suffix, the database is
        encrypted but no prompt is allowed, or the engine reports any
        error other than "not a database".
    SystemExit
        When the user answers a password prompt with an empty line.
    """
    path = os.path.expanduser(path)
    if not is_database_path(path):
        raise OperationFailedError(
            f"Database filename must have a '{DATABASE_SUFFIX}' extension",
        )

    config = OpenConfiguration.from_flags(session.flags)
    handle: DatabaseHandle | None = None
    error: DatabaseError | None

    if session.needs_password:
        # --encrypted: don't bother trying without a key.
        error = DatabaseError(ErrorCode.NOT_A_DATABASE)
    else:
        handle, error = _attempt(session, path, config)

    retrying = False
    while handle is None and error is not None and error.code is ErrorCode.NOT_A_DATABASE:
        if not session.interactive and not session.needs_password:
            raise OperationFailedError(
                "Database is encrypted",
                hint=f"Use the `--encrypted` flag to get a password prompt, "
                f"e.g. `{PROGRAM_NAME} --encrypted ...`",
            )

        password = session.read_password(RETRY_PROMPT if retrying else PASSWORD_PROMPT)
        if not password:
            LOG.debug("Empty password; aborting")
            sys.exit(1)
        retrying = True

        key = parse_hex_key(password) or session.engine.derive_key_from_password(
            password,
            EncryptionAlgorithm.AES256,
        )
        if key is None:
            LOG.warning("Couldn't derive key from password")
            continue

        config.encryption_key = key
        handle, error = _attempt(session, path, config)

    if handle is None:
        raise OperationFailedError(
            f"Couldn't open database {path}: {error}",
            hint=error.hint if error is not None else None,
        ) from error

    session.attach(handle)
    LOG.info("Opened %s (%s)", path, "read-only" if config.read_only else "writeable")
    return handle


def open_database_from_next_arg(session: Session, args: ArgumentCursor) -> DatabaseHandle:
    """Open the database named by the next argument, unless one is already open.

    In the interactive shell the handle already exists, so no
    ``DBPATH`` argument is consumed.
    """
    if session.database is not None:
        return session.database
    return open_database(session, args.next_arg("database path"))


def open_writeable_database_from_next_arg(
    session: Session,
    args: ArgumentCursor,
) -> DatabaseHandle:
    """Like :func:`open_database_from_next_arg`, but insist on write access."""
    if session.database is not None:
        if session.read_only:
            raise OperationFailedError(
                "Database was opened read-only",
                hint=f"Run `{PROGRAM_NAME} --writeable` to allow writes",
            )
        return session.database
    session.enable_writes()
    return open_database_from_next_arg(session, args)
