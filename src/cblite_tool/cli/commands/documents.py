"""Document subcommands: ``cat``, ``ls``, ``put`` and ``rm``."""

from __future__ import annotations

import fnmatch
import json
from typing import Any

from cblite_tool.cli.console import console, escape_markup, import_rich_table, print_json
from cblite_tool.cli.commands.base import Command
from cblite_tool.core.arguments import ArgumentCursor, FlagAction
from cblite_tool.core.models import Document
from cblite_tool.core.session import Session
from cblite_tool.exceptions import OperationFailedError, UsageError


def _with_metadata(doc: Document) -> dict[str, Any]:
    return {"_id": doc.doc_id, "_rev": doc.rev_id, **doc.body}


class CatCommand(Command):
    ARGS = "DOCID [DOCID...]"
    SUMMARY = "Display the body of one or more documents as JSON."
    FLAG_HELP = (
        ("--raw", "Print only the body, as compact JSON"),
    )

    def __init__(self, session: Session) -> None:
        super().__init__(session)
        self._raw = False

    def flags(self, args: ArgumentCursor) -> list[tuple[str, FlagAction]]:
        return [("--raw", self._set_raw)]

    def _set_raw(self) -> None:
        self._raw = True

    def run(self, args: ArgumentCursor) -> None:
        self.process_flags(args)
        db = self.open_database(args)
        doc_ids = [args.next_arg("document ID"), *args.rest()]

        missing = []
        for doc_id in doc_ids:
            doc = db.get_document(doc_id)
            if doc is None or doc.deleted:
                missing.append(doc_id)
                continue
            if self._raw:
                print_json(doc.body, pretty=False)
            else:
                print_json(_with_metadata(doc))

        if missing:
            names = ", ".join(f"'{doc_id}'" for doc_id in missing)
            raise OperationFailedError(f"Document not found: {names}")


class ListCommand(Command):
    ARGS = "[PATTERN]"
    SUMMARY = "List document IDs, optionally matching a glob PATTERN."
    FLAG_HELP = (
        ("-l", "Long format: revision, sequence and body size"),
        ("--limit N", "Show at most N documents"),
        ("--offset N", "Skip the first N documents"),
        ("--seq", "Order by sequence instead of ID"),
        ("--del", "Include deleted documents"),
    )

    def __init__(self, session: Session) -> None:
        super().__init__(session)
        self._long = False
        self._limit: int | None = None
        self._offset = 0
        self._by_sequence = False
        self._include_deleted = False

    def flags(self, args: ArgumentCursor) -> list[tuple[str, FlagAction]]:
        def set_limit() -> None:
            self._limit = self.int_arg(args, "--limit")

        def set_offset() -> None:
            self._offset = self.int_arg(args, "--offset")

        return [
            ("-l", lambda: setattr(self, "_long", True)),
            ("--limit", set_limit),
            ("--offset", set_offset),
            ("--seq", lambda: setattr(self, "_by_sequence", True)),
            ("--del", lambda: setattr(self, "_include_deleted", True)),
        ]

    def run(self, args: ArgumentCursor) -> None:
        self.process_flags(args)
        db = self.open_database(args)
        pattern = args.next_arg("pattern") if args.has_args() else None
        args.end_of_args()

        docs = [
            doc
            for doc in db.documents(
                by_sequence=self._by_sequence,
                include_deleted=self._include_deleted,
            )
            if pattern is None or fnmatch.fnmatchcase(doc.doc_id, pattern)
        ]
        end = None if self._limit is None else self._offset + self._limit
        docs = docs[self._offset:end]

        if not docs:
            if pattern is not None:
                console.text(f"(No documents match '{pattern}')")
            else:
                console.text("(No documents)")
            return

        if self._long:
            self._print_table(docs)
        else:
            for doc in docs:
                console.text(doc.doc_id)

    @staticmethod
    def _print_table(docs: list[Document]) -> None:
        table = import_rich_table()(show_header=True, header_style="bold", box=None)
        table.add_column("Document ID")
        table.add_column("Rev ID")
        table.add_column("Seq", justify="right")
        table.add_column("Flags")
        table.add_column("Size", justify="right")
        for doc in docs:
            table.add_row(
                escape_markup(doc.doc_id),
                doc.rev_id,
                str(doc.sequence),
                "deleted" if doc.deleted else "",
                str(len(json.dumps(doc.body))),
            )
        console.print(table)


class PutCommand(Command):
    ARGS = "DOCID JSON"
    SUMMARY = "Create or replace a document with a JSON object body."
    FLAG_HELP = (
        ("--create", "Fail if the document already exists"),
        ("--update", "Fail if the document does not exist"),
    )

    def __init__(self, session: Session) -> None:
        super().__init__(session)
        self._mode: str | None = None

    def flags(self, args: ArgumentCursor) -> list[tuple[str, FlagAction]]:
        return [
            ("--create", lambda: setattr(self, "_mode", "create")),
            ("--update", lambda: setattr(self, "_mode", "update")),
        ]

    def run(self, args: ArgumentCursor) -> None:
        self.process_flags(args)
        db = self.open_writeable_database(args)
        doc_id = args.next_arg("document ID")
        text = " ".join([args.next_arg("JSON body"), *args.rest()])

        try:
            body = json.loads(text)
        except json.JSONDecodeError as exc:
            raise UsageError(f"Invalid JSON body: {exc}") from exc
        if not isinstance(body, dict):
            raise UsageError("Document body must be a JSON object")

        existing = db.get_document(doc_id)
        exists = existing is not None and not existing.deleted
        if self._mode == "create" and exists:
            raise OperationFailedError(f"Document '{doc_id}' already exists")
        if self._mode == "update" and not exists:
            raise OperationFailedError(f"Document '{doc_id}' doesn't exist")

        doc = db.put_document(doc_id, body)
        verb = "Updated" if exists else "Created"
        console.text(f"{verb} document '{doc.doc_id}' (rev {doc.rev_id})")


class RmCommand(Command):
    ARGS = "DOCID"
    SUMMARY = "Delete a document."

    def run(self, args: ArgumentCursor) -> None:
        self.process_flags(args)
        db = self.open_writeable_database(args)
        doc_id = args.next_arg("document ID")
        args.end_of_args()

        if not db.delete_document(doc_id):
            raise OperationFailedError(f"Document '{doc_id}' not found")
        console.text(f"Deleted document '{doc_id}'")
