"""Protocols (interfaces) consumed by the core layer.

These define the contracts that the storage engine adapter must
satisfy.  Core code depends ONLY on these protocols, never on the
concrete SQLite implementation, so dispatch and the open state machine
can be tested against an in-memory fake.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Sequence
from typing import Any, Protocol

from cblite_tool.core.models import Document, EncryptionAlgorithm, EncryptionKey, OpenConfiguration

PasswordReader = Callable[[str], str | None]
"""Reads a secret from a masked input channel; ``None`` means cancelled."""


class DatabaseHandle(Protocol):
    """An open database, exclusively owned by the session that opened it."""

    @property
    def path(self) -> str: ...

    @property
    def is_read_only(self) -> bool: ...

    @property
    def is_encrypted(self) -> bool: ...

    def close(self) -> None:
        """Release the database.  Further calls are no-ops."""
        ...  # pragma: no cover

    def document_count(self) -> int: ...

    def last_sequence(self) -> int: ...

    def get_document(self, doc_id: str) -> Document | None: ...

    def put_document(self, doc_id: str, body: dict[str, Any]) -> Document:
        """Create or replace *doc_id*.

        Raises
        ------
        DatabaseError
            ``READ_ONLY`` when the handle was opened read-only.
        """
        ...  # pragma: no cover

    def delete_document(self, doc_id: str) -> bool:
        """Tombstone *doc_id*; return ``False`` if it has no live revision."""
        ...  # pragma: no cover

    def documents(
        self,
        *,
        by_sequence: bool = False,
        include_deleted: bool = False,
    ) -> Iterator[Document]: ...

    def compact(self) -> None: ...

    def execute_sql(self, query: str) -> tuple[list[str], list[Sequence[Any]]]:
        """Run raw SQL and return ``(column_names, rows)``."""
        ...  # pragma: no cover

    def rekey(self, key: EncryptionKey | None) -> None:
        """Re-encrypt with *key*, or store unencrypted when ``None``."""
        ...  # pragma: no cover

    def size_on_disk(self) -> int: ...


class DatabaseEngine(Protocol):
    """Storage backend that opens database bundles and derives keys."""

    def open(self, path: str, config: OpenConfiguration) -> DatabaseHandle:
        """Open the bundle at *path* according to *config*.

        Raises
        ------
        DatabaseError
            ``NOT_A_DATABASE`` when the file is encrypted and *config*
            carries no key or the wrong one; another code for any other
            failure.
        """
        ...  # pragma: no cover

    def derive_key_from_password(
        self,
        password: str,
        algorithm: EncryptionAlgorithm,
    ) -> EncryptionKey | None:
        """Derive a key, or return ``None`` if no key can be produced."""
        ...  # pragma: no cover

    def version(self) -> str: ...
