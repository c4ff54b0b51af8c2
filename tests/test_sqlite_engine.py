"""Tests for the SQLite engine adapter.

All databases live under ``tmp_path``.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from cblite_tool.core.models import EncryptionAlgorithm, OpenConfiguration
from cblite_tool.exceptions import DatabaseError, ErrorCode
from cblite_tool.infra.sqlite_engine import SqliteDatabase, SqliteEngine
from cblite_tool.utils.constants import DATABASE_FILENAME

WRITE = OpenConfiguration(create=True, read_only=False)


@pytest.fixture()
def sqlite_engine() -> SqliteEngine:
    return SqliteEngine()


@pytest.fixture()
def bundle(tmp_path: Path) -> Path:
    return tmp_path / "notes.cblite2"


def _seeded(engine: SqliteEngine, bundle: Path, config: OpenConfiguration = WRITE) -> SqliteDatabase:
    db = engine.open(str(bundle), config)
    db.put_document("a", {"name": "Ada"})
    db.put_document("b", {"name": "Bob"})
    return db


# ---------------------------------------------------------------------------
# Open
# ---------------------------------------------------------------------------

class TestOpen:
    def test_create_makes_bundle(self, sqlite_engine: SqliteEngine, bundle: Path) -> None:
        db = sqlite_engine.open(str(bundle), WRITE)
        db.close()
        assert bundle.is_dir()
        assert (bundle / DATABASE_FILENAME).is_file()

    def test_missing_without_create(self, sqlite_engine: SqliteEngine, bundle: Path) -> None:
        with pytest.raises(DatabaseError) as exc_info:
            sqlite_engine.open(str(bundle), OpenConfiguration())
        assert exc_info.value.code is ErrorCode.NOT_FOUND
        assert not bundle.exists()

    def test_plain_file_is_not_a_bundle(self, sqlite_engine: SqliteEngine, bundle: Path) -> None:
        bundle.write_text("nope")
        with pytest.raises(DatabaseError) as exc_info:
            sqlite_engine.open(str(bundle), WRITE)
        assert exc_info.value.code is ErrorCode.CANT_OPEN_FILE

    def test_reopen_read_only(self, sqlite_engine: SqliteEngine, bundle: Path) -> None:
        _seeded(sqlite_engine, bundle).close()
        db = sqlite_engine.open(str(bundle), OpenConfiguration())
        assert db.is_read_only
        assert db.document_count() == 2
        db.close()

    def test_close_is_idempotent(self, sqlite_engine: SqliteEngine, bundle: Path) -> None:
        db = sqlite_engine.open(str(bundle), WRITE)
        db.close()
        db.close()

    def test_version_mentions_sqlite(self, sqlite_engine: SqliteEngine) -> None:
        assert "SQLite" in sqlite_engine.version()


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------

class TestDocuments:
    def test_put_and_get(self, sqlite_engine: SqliteEngine, bundle: Path) -> None:
        db = _seeded(sqlite_engine, bundle)
        doc = db.get_document("a")
        assert doc is not None
        assert doc.body == {"name": "Ada"}
        assert doc.rev_id.startswith("1-")
        assert doc.sequence == 1
        assert db.last_sequence() == 2
        db.close()

    def test_update_bumps_generation_and_sequence(
        self, sqlite_engine: SqliteEngine, bundle: Path,
    ) -> None:
        db = _seeded(sqlite_engine, bundle)
        doc = db.put_document("a", {"name": "Ada", "age": 36})
        assert doc.rev_id.startswith("2-")
        assert doc.sequence == 3
        assert db.document_count() == 2
        db.close()

    def test_missing_document(self, sqlite_engine: SqliteEngine, bundle: Path) -> None:
        db = sqlite_engine.open(str(bundle), WRITE)
        assert db.get_document("nope") is None
        db.close()

    def test_delete_leaves_tombstone(self, sqlite_engine: SqliteEngine, bundle: Path) -> None:
        db = _seeded(sqlite_engine, bundle)
        assert db.delete_document("a") is True
        assert db.delete_document("a") is False
        assert db.delete_document("zzz") is False
        doc = db.get_document("a")
        assert doc is not None and doc.deleted
        assert db.document_count() == 1
        assert [d.doc_id for d in db.documents()] == ["b"]
        assert [d.doc_id for d in db.documents(include_deleted=True)] == ["a", "b"]
        db.close()

    def test_order_by_sequence(self, sqlite_engine: SqliteEngine, bundle: Path) -> None:
        db = sqlite_engine.open(str(bundle), WRITE)
        db.put_document("z", {})
        db.put_document("m", {})
        assert [d.doc_id for d in db.documents()] == ["m", "z"]
        assert [d.doc_id for d in db.documents(by_sequence=True)] == ["z", "m"]
        db.close()

    def test_read_only_refuses_writes(self, sqlite_engine: SqliteEngine, bundle: Path) -> None:
        _seeded(sqlite_engine, bundle).close()
        db = sqlite_engine.open(str(bundle), OpenConfiguration())
        for write in (
            lambda: db.put_document("c", {}),
            lambda: db.delete_document("a"),
            db.compact,
        ):
            with pytest.raises(DatabaseError) as exc_info:
                write()
            assert exc_info.value.code is ErrorCode.READ_ONLY
        db.close()


# ---------------------------------------------------------------------------
# SQL and maintenance
# ---------------------------------------------------------------------------

class TestSql:
    def test_select_returns_columns_and_rows(
        self, sqlite_engine: SqliteEngine, bundle: Path,
    ) -> None:
        db = _seeded(sqlite_engine, bundle)
        columns, rows = db.execute_sql(
            "SELECT doc_id, json_extract(body, '$.name') AS name FROM docs ORDER BY doc_id",
        )
        assert columns == ["doc_id", "name"]
        assert [tuple(row) for row in rows] == [("a", "Ada"), ("b", "Bob")]
        db.close()

    def test_invalid_query(self, sqlite_engine: SqliteEngine, bundle: Path) -> None:
        db = sqlite_engine.open(str(bundle), WRITE)
        with pytest.raises(DatabaseError) as exc_info:
            db.execute_sql("SELEKT nothing")
        assert exc_info.value.code is ErrorCode.INVALID_QUERY
        db.close()

    def test_read_only_sql_cannot_write(self, sqlite_engine: SqliteEngine, bundle: Path) -> None:
        _seeded(sqlite_engine, bundle).close()
        db = sqlite_engine.open(str(bundle), OpenConfiguration())
        with pytest.raises(DatabaseError):
            db.execute_sql("DELETE FROM docs")
        assert db.document_count() == 2
        db.close()

    def test_compact_keeps_documents(self, sqlite_engine: SqliteEngine, bundle: Path) -> None:
        db = _seeded(sqlite_engine, bundle)
        db.compact()
        assert db.document_count() == 2
        assert db.size_on_disk() > 0
        db.close()


# ---------------------------------------------------------------------------
# Encryption
# ---------------------------------------------------------------------------

class TestEncryption:
    def test_derive_key(self, sqlite_engine: SqliteEngine) -> None:
        key = sqlite_engine.derive_key_from_password("secret", EncryptionAlgorithm.AES256)
        again = sqlite_engine.derive_key_from_password("secret", EncryptionAlgorithm.AES256)
        other = sqlite_engine.derive_key_from_password("Secret", EncryptionAlgorithm.AES256)
        assert key is not None
        assert len(key.key_bytes) == 32
        assert key == again
        assert key != other

    def test_derive_key_rejects_empty_and_none(self, sqlite_engine: SqliteEngine) -> None:
        assert sqlite_engine.derive_key_from_password("", EncryptionAlgorithm.AES256) is None
        assert sqlite_engine.derive_key_from_password("x", EncryptionAlgorithm.NONE) is None

    def test_encrypted_round_trip(self, sqlite_engine: SqliteEngine, bundle: Path) -> None:
        key = sqlite_engine.derive_key_from_password("secret", EncryptionAlgorithm.AES256)
        db = _seeded(sqlite_engine, bundle, OpenConfiguration(create=True, read_only=False, encryption_key=key))
        assert db.is_encrypted
        db.close()

        raw = (bundle / DATABASE_FILENAME).read_bytes()
        assert not raw.startswith(b"SQLite format 3")
        assert b"SQLite format 3" not in raw

        reopened = sqlite_engine.open(str(bundle), OpenConfiguration(encryption_key=key))
        assert reopened.document_count() == 2
        reopened.close()

    @pytest.mark.parametrize("password", [None, "wrong"])
    def test_missing_or_wrong_key_is_not_a_database(
        self, password: str | None, sqlite_engine: SqliteEngine, bundle: Path,
    ) -> None:
        key = sqlite_engine.derive_key_from_password("secret", EncryptionAlgorithm.AES256)
        _seeded(sqlite_engine, bundle, OpenConfiguration(create=True, read_only=False, encryption_key=key)).close()

        attempt = None
        if password is not None:
            attempt = sqlite_engine.derive_key_from_password(password, EncryptionAlgorithm.AES256)
        with pytest.raises(DatabaseError) as exc_info:
            sqlite_engine.open(str(bundle), OpenConfiguration(encryption_key=attempt))
        assert exc_info.value.code is ErrorCode.NOT_A_DATABASE

    def test_key_on_plain_database_is_not_a_database(
        self, sqlite_engine: SqliteEngine, bundle: Path,
    ) -> None:
        _seeded(sqlite_engine, bundle).close()
        key = sqlite_engine.derive_key_from_password("secret", EncryptionAlgorithm.AES256)
        with pytest.raises(DatabaseError) as exc_info:
            sqlite_engine.open(str(bundle), OpenConfiguration(encryption_key=key))
        assert exc_info.value.code is ErrorCode.NOT_A_DATABASE

    def test_rekey_encrypt_then_decrypt(self, sqlite_engine: SqliteEngine, bundle: Path) -> None:
        key = sqlite_engine.derive_key_from_password("secret", EncryptionAlgorithm.AES256)
        db = _seeded(sqlite_engine, bundle)
        db.rekey(key)
        db.put_document("c", {"name": "Cy"})
        db.close()

        with pytest.raises(DatabaseError):
            sqlite_engine.open(str(bundle), OpenConfiguration())

        db = sqlite_engine.open(str(bundle), OpenConfiguration(read_only=False, encryption_key=key))
        assert db.document_count() == 3
        db.rekey(None)
        db.close()

        plain = sqlite_engine.open(str(bundle), OpenConfiguration())
        assert not plain.is_encrypted
        assert plain.document_count() == 3
        plain.close()
