"""Shared pytest fixtures and configuration for the cblite-tool test suite.

Guidelines
----------
* No network access in any test.
* Core and dispatch tests run against :class:`FakeEngine`, an in-memory
  stand-in for the storage engine.
* Engine tests use ``tmp_path`` bundles only.
* Tests must not depend on a terminal being attached.
"""

from __future__ import annotations

import dataclasses
import hashlib
from collections.abc import Callable, Iterable, Iterator, Sequence
from typing import Any

import pytest

from cblite_tool.core.models import Document, EncryptionAlgorithm, EncryptionKey, OpenConfiguration
from cblite_tool.core.session import Session
from cblite_tool.exceptions import DatabaseError, ErrorCode


class FakeHandle:
    """In-memory :class:`~cblite_tool.core.protocols.DatabaseHandle`."""

    def __init__(self, path: str, config: OpenConfiguration, docs: dict[str, Document]) -> None:
        self._path = path
        self._read_only = config.read_only
        self._key = config.encryption_key
        self._docs = docs
        self.closed = False

    @property
    def path(self) -> str:
        return self._path

    @property
    def is_read_only(self) -> bool:
        return self._read_only

    @property
    def is_encrypted(self) -> bool:
        return self._key is not None

    def close(self) -> None:
        self.closed = True

    def document_count(self) -> int:
        return sum(1 for doc in self._docs.values() if not doc.deleted)

    def last_sequence(self) -> int:
        return max((doc.sequence for doc in self._docs.values()), default=0)

    def get_document(self, doc_id: str) -> Document | None:
        return self._docs.get(doc_id)

    def _require_writable(self) -> None:
        if self._read_only:
            raise DatabaseError(ErrorCode.READ_ONLY)

    def put_document(self, doc_id: str, body: dict[str, Any]) -> Document:
        self._require_writable()
        previous = self._docs.get(doc_id)
        generation = int(previous.rev_id.split("-")[0]) + 1 if previous else 1
        doc = Document(doc_id, f"{generation}-fake", self.last_sequence() + 1, False, dict(body))
        self._docs[doc_id] = doc
        return doc

    def delete_document(self, doc_id: str) -> bool:
        self._require_writable()
        previous = self._docs.get(doc_id)
        if previous is None or previous.deleted:
            return False
        self._docs[doc_id] = dataclasses.replace(
            previous, deleted=True, body={}, sequence=self.last_sequence() + 1,
        )
        return True

    def documents(
        self,
        *,
        by_sequence: bool = False,
        include_deleted: bool = False,
    ) -> Iterator[Document]:
        docs = [doc for doc in self._docs.values() if include_deleted or not doc.deleted]
        docs.sort(key=(lambda d: d.sequence) if by_sequence else (lambda d: d.doc_id))
        yield from docs

    def compact(self) -> None:
        self._require_writable()

    def execute_sql(self, query: str) -> tuple[list[str], list[Sequence[Any]]]:
        return ["query"], [(query,)]

    def rekey(self, key: EncryptionKey | None) -> None:
        self._require_writable()
        self._key = key

    def size_on_disk(self) -> int:
        return 4096


class FakeEngine:
    """In-memory :class:`~cblite_tool.core.protocols.DatabaseEngine`.

    Parameters
    ----------
    password:
        When set, opens only succeed with the key derived from it.
    key:
        When set, opens only succeed with exactly this key.
    error:
        When set, every open fails with this code.
    """

    UNDERIVABLE = "underivable"

    def __init__(
        self,
        *,
        password: str | None = None,
        key: EncryptionKey | None = None,
        error: ErrorCode | None = None,
        docs: Iterable[Document] = (),
    ) -> None:
        self.expected_key = key
        if password is not None:
            self.expected_key = self.derive_key_from_password(password, EncryptionAlgorithm.AES256)
        self.error = error
        self.docs: dict[str, Document] = {doc.doc_id: doc for doc in docs}
        self.open_calls: list[OpenConfiguration] = []
        self.handles: list[FakeHandle] = []

    def open(self, path: str, config: OpenConfiguration) -> FakeHandle:
        self.open_calls.append(dataclasses.replace(config))
        if self.error is not None:
            raise DatabaseError(self.error)
        if config.encryption_key != self.expected_key:
            raise DatabaseError(ErrorCode.NOT_A_DATABASE)
        handle = FakeHandle(path, config, self.docs)
        self.handles.append(handle)
        return handle

    def derive_key_from_password(
        self,
        password: str,
        algorithm: EncryptionAlgorithm,
    ) -> EncryptionKey | None:
        if not password or password == self.UNDERIVABLE or algorithm is not EncryptionAlgorithm.AES256:
            return None
        return EncryptionKey(algorithm, hashlib.sha256(password.encode()).digest())

    def version(self) -> str:
        return "FakeEngine 1.0"


class ScriptedInput:
    """Callable that answers prompts from a fixed script, then ``None``."""

    def __init__(self, answers: Iterable[str | None]) -> None:
        self._answers = list(answers)
        self.prompts: list[str] = []

    def __call__(self, prompt: str) -> str | None:
        self.prompts.append(prompt)
        if not self._answers:
            return None
        return self._answers.pop(0)


def make_doc(doc_id: str, sequence: int = 1, **body: Any) -> Document:
    return Document(doc_id, "1-fake", sequence, False, body)


@pytest.fixture()
def engine() -> FakeEngine:
    return FakeEngine(docs=[make_doc("alpha", 1, n=1), make_doc("beta", 2, n=2)])


@pytest.fixture()
def session_factory(engine: FakeEngine) -> Callable[..., Session]:
    def build(**overrides: Any) -> Session:
        overrides.setdefault("engine", engine)
        return Session(**overrides)

    return build


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Any) -> None:
    monkeypatch.setenv("CBLITE_HISTORY", str(tmp_path / "history"))
    monkeypatch.delenv("CBLITE_LOG_LEVEL", raising=False)
    monkeypatch.delenv("CBLITE_SERVE_PORT", raising=False)
    monkeypatch.setattr("cblite_tool.cli.console._force_color", False)
