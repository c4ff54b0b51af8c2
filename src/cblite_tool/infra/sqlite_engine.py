"""SQLite backed implementation of :class:`~cblite_tool.core.protocols.DatabaseEngine`.

A database is a ``.cblite2`` bundle directory holding one SQLite file.
Plain bundles store an ordinary SQLite database.  Encrypted bundles
store the serialized SQLite image sealed with Fernet under the 32-byte
key; the image is loaded into an in-memory connection on open and
re-sealed after every commit.

This module is the **only** place that talks to ``sqlite3`` and
``cryptography``.  Their exceptions are caught here and re-raised as
:class:`~cblite_tool.exceptions.DatabaseError`, so nothing raw escapes
the infrastructure boundary.
"""

from __future__ import annotations

import base64
import contextlib
import hashlib
import json
import logging
import os
import sqlite3
from collections.abc import Iterator, Sequence
from pathlib import Path
from typing import Any

from cblite_tool.core.models import Document, EncryptionAlgorithm, EncryptionKey, OpenConfiguration
from cblite_tool.exceptions import DatabaseError, EnvironmentError, ErrorCode
from cblite_tool.utils.constants import (
    AES256_KEY_SIZE,
    DATABASE_FILENAME,
    KEY_DERIVATION_ROUNDS,
    KEY_DERIVATION_SALT,
)
from cblite_tool.version import __version__

LOG = logging.getLogger(__name__)

_SEALED_MAGIC: bytes = b"CBLENC1\x00"

_SCHEMA: str = """
CREATE TABLE IF NOT EXISTS docs (
    doc_id   TEXT PRIMARY KEY,
    rev_id   TEXT NOT NULL,
    sequence INTEGER NOT NULL UNIQUE,
    deleted  INTEGER NOT NULL DEFAULT 0,
    body     TEXT NOT NULL
);
"""


def _import_fernet() -> type[Any]:
    """Import the Fernet cipher lazily."""
    try:
        from cryptography.fernet import Fernet
    except ModuleNotFoundError as exc:
        raise EnvironmentError(
            "cryptography is not installed. Install with: pip install cryptography",
        ) from exc
    return Fernet


def _map_sqlite_error(exc: sqlite3.Error) -> DatabaseError:
    message = str(exc)
    lowered = message.lower()
    if "not a database" in lowered:
        return DatabaseError(ErrorCode.NOT_A_DATABASE)
    if "readonly" in lowered or "read-only" in lowered:
        return DatabaseError(ErrorCode.READ_ONLY, message)
    if "unable to open" in lowered:
        return DatabaseError(ErrorCode.CANT_OPEN_FILE, message)
    if isinstance(exc, sqlite3.OperationalError | sqlite3.ProgrammingError):
        return DatabaseError(ErrorCode.INVALID_QUERY, message)
    return DatabaseError(ErrorCode.IO_ERROR, message)


@contextlib.contextmanager
def _translate_errors() -> Iterator[None]:
    try:
        yield
    except sqlite3.Error as exc:
        raise _map_sqlite_error(exc) from exc
    except OSError as exc:
        raise DatabaseError(ErrorCode.IO_ERROR, str(exc)) from exc


def _write_atomically(target: Path, payload: bytes) -> None:
    scratch = target.with_name(target.name + ".tmp")
    scratch.write_bytes(payload)
    os.replace(scratch, target)


def _encode_body(body: dict[str, Any]) -> str:
    return json.dumps(body, sort_keys=True, separators=(",", ":"))


def _next_rev_id(previous: str | None, encoded_body: str, deleted: bool) -> str:
    generation = int(previous.split("-", 1)[0]) + 1 if previous else 1
    digest = hashlib.sha1(f"{previous}|{int(deleted)}|{encoded_body}".encode()).hexdigest()
    return f"{generation}-{digest[:20]}"


# ---------------------------------------------------------------------------
# Sealing
# ---------------------------------------------------------------------------

def _fernet(key: EncryptionKey) -> Any:
    return _import_fernet()(base64.urlsafe_b64encode(key.key_bytes))


def _seal(key: EncryptionKey, image: bytes) -> bytes:
    return _SEALED_MAGIC + _fernet(key).encrypt(image)


def _unseal(key: EncryptionKey, payload: bytes) -> bytes:
    """Decrypt a sealed image; a wrong key reads as "not a database"."""
    fernet = _fernet(key)
    from cryptography.fernet import InvalidToken

    if not payload.startswith(_SEALED_MAGIC):
        raise DatabaseError(ErrorCode.NOT_A_DATABASE)
    try:
        return fernet.decrypt(payload[len(_SEALED_MAGIC):])
    except InvalidToken as exc:
        raise DatabaseError(ErrorCode.NOT_A_DATABASE) from exc


# ---------------------------------------------------------------------------
# Handle
# ---------------------------------------------------------------------------

class SqliteDatabase:
    """Concrete :class:`~cblite_tool.core.protocols.DatabaseHandle`."""

    def __init__(
        self,
        bundle: Path,
        connection: sqlite3.Connection,
        *,
        read_only: bool,
        key: EncryptionKey | None,
    ) -> None:
        self._bundle: Path = bundle
        self._file: Path = bundle / DATABASE_FILENAME
        self._conn: sqlite3.Connection | None = connection
        self._read_only: bool = read_only
        self._key: EncryptionKey | None = key

    def __repr__(self) -> str:
        return f"SqliteDatabase({str(self._bundle)!r}, read_only={self._read_only})"

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def path(self) -> str:
        return str(self._bundle)

    @property
    def is_read_only(self) -> bool:
        return self._read_only

    @property
    def is_encrypted(self) -> bool:
        return self._key is not None

    @property
    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise DatabaseError(ErrorCode.IO_ERROR, "database is closed")
        return self._conn

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        if self._conn is None:
            return
        conn, self._conn = self._conn, None
        with _translate_errors():
            conn.close()
        LOG.debug("Closed %s", self._bundle)

    def _require_writable(self) -> None:
        if self._read_only:
            raise DatabaseError(ErrorCode.READ_ONLY)

    def _commit(self) -> None:
        conn = self._connection
        conn.commit()
        if self._key is not None:
            _write_atomically(self._file, _seal(self._key, conn.serialize()))

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    @staticmethod
    def _row_to_document(row: Sequence[Any]) -> Document:
        doc_id, rev_id, sequence, deleted, body = row
        return Document(
            doc_id=doc_id,
            rev_id=rev_id,
            sequence=sequence,
            deleted=bool(deleted),
            body=json.loads(body),
        )

    def document_count(self) -> int:
        with _translate_errors():
            row = self._connection.execute(
                "SELECT COUNT(*) FROM docs WHERE deleted = 0",
            ).fetchone()
        return int(row[0])

    def last_sequence(self) -> int:
        with _translate_errors():
            row = self._connection.execute(
                "SELECT COALESCE(MAX(sequence), 0) FROM docs",
            ).fetchone()
        return int(row[0])

    def get_document(self, doc_id: str) -> Document | None:
        with _translate_errors():
            row = self._connection.execute(
                "SELECT doc_id, rev_id, sequence, deleted, body FROM docs WHERE doc_id = ?",
                (doc_id,),
            ).fetchone()
        return self._row_to_document(row) if row else None

    def _save(self, doc_id: str, body: dict[str, Any], *, deleted: bool) -> Document:
        existing = self.get_document(doc_id)
        encoded = _encode_body(body)
        rev_id = _next_rev_id(existing.rev_id if existing else None, encoded, deleted)
        sequence = self.last_sequence() + 1
        with _translate_errors():
            self._connection.execute(
                "INSERT INTO docs (doc_id, rev_id, sequence, deleted, body) "
                "VALUES (?, ?, ?, ?, ?) "
                "ON CONFLICT(doc_id) DO UPDATE SET rev_id = excluded.rev_id, "
                "sequence = excluded.sequence, deleted = excluded.deleted, "
                "body = excluded.body",
                (doc_id, rev_id, sequence, int(deleted), encoded),
            )
            self._commit()
        return Document(doc_id, rev_id, sequence, deleted, dict(body))

    def put_document(self, doc_id: str, body: dict[str, Any]) -> Document:
        self._require_writable()
        return self._save(doc_id, body, deleted=False)

    def delete_document(self, doc_id: str) -> bool:
        self._require_writable()
        existing = self.get_document(doc_id)
        if existing is None or existing.deleted:
            return False
        self._save(doc_id, {}, deleted=True)
        return True

    def documents(
        self,
        *,
        by_sequence: bool = False,
        include_deleted: bool = False,
    ) -> Iterator[Document]:
        query = "SELECT doc_id, rev_id, sequence, deleted, body FROM docs"
        if not include_deleted:
            query += " WHERE deleted = 0"
        query += " ORDER BY sequence" if by_sequence else " ORDER BY doc_id"
        with _translate_errors():
            rows = self._connection.execute(query).fetchall()
        for row in rows:
            yield self._row_to_document(row)

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def compact(self) -> None:
        self._require_writable()
        with _translate_errors():
            self._connection.commit()
            self._connection.execute("VACUUM")
            self._commit()

    def execute_sql(self, query: str) -> tuple[list[str], list[Sequence[Any]]]:
        with _translate_errors():
            cursor = self._connection.execute(query)
            columns = [column[0] for column in cursor.description or ()]
            rows = cursor.fetchall()
            if not self._read_only:
                self._commit()
        return columns, rows

    def rekey(self, key: EncryptionKey | None) -> None:
        self._require_writable()
        with _translate_errors():
            conn = self._connection
            conn.commit()
            image = conn.serialize()
            if key is not None:
                if self._key is None:
                    # Move the plain file-backed database into memory.
                    conn.close()
                    conn = sqlite3.connect(":memory:")
                    conn.deserialize(image)
                    self._conn = conn
                _write_atomically(self._file, _seal(key, image))
            elif self._key is not None:
                conn.close()
                _write_atomically(self._file, image)
                self._conn = sqlite3.connect(self._file)
        self._key = key
        LOG.info("Rekeyed %s (%s)", self._bundle, "encrypted" if key else "unencrypted")

    def size_on_disk(self) -> int:
        try:
            return self._file.stat().st_size
        except FileNotFoundError:
            return 0


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

class SqliteEngine:
    """Concrete :class:`~cblite_tool.core.protocols.DatabaseEngine`.

    Usage::

        engine = SqliteEngine()
        db = engine.open("notes.cblite2", OpenConfiguration(create=True, read_only=False))
    """

    def version(self) -> str:
        return f"cblite-tool {__version__} (SQLite {sqlite3.sqlite_version})"

    def derive_key_from_password(
        self,
        password: str,
        algorithm: EncryptionAlgorithm,
    ) -> EncryptionKey | None:
        """PBKDF2-HMAC-SHA256 with a fixed salt; AES-256 only."""
        if algorithm is not EncryptionAlgorithm.AES256 or not password:
            return None
        from cryptography.hazmat.primitives import hashes
        from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=AES256_KEY_SIZE,
            salt=KEY_DERIVATION_SALT,
            iterations=KEY_DERIVATION_ROUNDS,
        )
        return EncryptionKey(algorithm, kdf.derive(password.encode("utf-8")))

    def open(self, path: str, config: OpenConfiguration) -> SqliteDatabase:
        bundle = Path(path)
        if not bundle.exists():
            if not config.create:
                raise DatabaseError(ErrorCode.NOT_FOUND)
            with _translate_errors():
                bundle.mkdir(parents=True)
            LOG.info("Created database bundle %s", bundle)
        elif not bundle.is_dir():
            raise DatabaseError(ErrorCode.CANT_OPEN_FILE, f"{path} is not a directory")

        if config.encryption_key is None:
            conn = self._open_plain(bundle / DATABASE_FILENAME, config)
        else:
            conn = self._open_sealed(bundle / DATABASE_FILENAME, config, config.encryption_key)
        return SqliteDatabase(
            bundle,
            conn,
            read_only=config.read_only,
            key=config.encryption_key,
        )

    @staticmethod
    def _prepare(conn: sqlite3.Connection, config: OpenConfiguration) -> None:
        # Touching the schema is what surfaces "file is not a database".
        conn.execute("PRAGMA schema_version").fetchone()
        if config.read_only:
            conn.execute("PRAGMA query_only = ON")
        else:
            conn.executescript(_SCHEMA)

    def _open_plain(self, file: Path, config: OpenConfiguration) -> sqlite3.Connection:
        mode = "ro" if config.read_only else "rwc"
        uri = f"{file.resolve().as_uri()}?mode={mode}"
        with _translate_errors():
            conn = sqlite3.connect(uri, uri=True)
            try:
                self._prepare(conn, config)
            except sqlite3.Error:
                conn.close()
                raise
        return conn

    def _open_sealed(
        self,
        file: Path,
        config: OpenConfiguration,
        key: EncryptionKey,
    ) -> sqlite3.Connection:
        if file.exists():
            with _translate_errors():
                image = _unseal(key, file.read_bytes())
        elif config.create and not config.read_only:
            image = b""
        else:
            raise DatabaseError(ErrorCode.CANT_OPEN_FILE, f"{file} does not exist")

        with _translate_errors():
            conn = sqlite3.connect(":memory:")
            if image:
                conn.deserialize(image)
            self._prepare(conn, config)
            if not image:
                conn.commit()
                _write_atomically(file, _seal(key, conn.serialize()))
        return conn
