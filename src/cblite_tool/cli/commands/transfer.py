"""Bulk transfer subcommands: ``cp``, ``export`` and ``import``.

The JSON-lines format holds one object per line; the ``_id`` key is the
document ID and every other key belongs to the body.
"""

from __future__ import annotations

import json
import os
from collections.abc import Iterator
from pathlib import Path
from typing import Any

from cblite_tool.cli.console import console
from cblite_tool.cli.commands.base import Command
from cblite_tool.core.arguments import ArgumentCursor
from cblite_tool.core.models import OpenConfiguration
from cblite_tool.core.opener import is_database_path
from cblite_tool.exceptions import OperationFailedError, UsageError
from cblite_tool.utils.constants import DATABASE_SUFFIX


def _read_json_lines(path: Path) -> Iterator[tuple[str, dict[str, Any]]]:
    try:
        with path.open(encoding="utf-8") as stream:
            for lineno, line in enumerate(stream, start=1):
                if not line.strip():
                    continue
                try:
                    record = json.loads(line)
                except json.JSONDecodeError as exc:
                    raise OperationFailedError(f"{path}:{lineno}: invalid JSON ({exc.msg})") from exc
                if not isinstance(record, dict) or not isinstance(record.get("_id"), str):
                    raise OperationFailedError(
                        f"{path}:{lineno}: expected a JSON object with a string '_id'",
                    )
                doc_id = record.pop("_id")
                record.pop("_rev", None)
                yield doc_id, record
    except OSError as exc:
        raise OperationFailedError(f"Couldn't read {path}: {exc.strerror or exc}") from exc


class CpCommand(Command):
    ARGS = "DESTINATION"
    SUMMARY = f"Copy every document into another database (created if missing; must end in {DATABASE_SUFFIX})."

    def run(self, args: ArgumentCursor) -> None:
        self.process_flags(args)
        source = self.open_database(args)
        destination = os.path.expanduser(args.next_arg("destination database path"))
        args.end_of_args()

        if not is_database_path(destination):
            raise UsageError(f"Destination must be a database path ending in {DATABASE_SUFFIX}")
        if os.path.abspath(destination) == os.path.abspath(source.path):
            raise UsageError("Source and destination are the same database")

        target = self.session.engine.open(
            destination,
            OpenConfiguration(create=True, read_only=False),
        )
        try:
            count = 0
            for doc in source.documents():
                target.put_document(doc.doc_id, doc.body)
                count += 1
        finally:
            target.close()
        console.text(f"Copied {count} document{'' if count == 1 else 's'} to {destination}")


class ExportCommand(Command):
    ARGS = "FILE"
    SUMMARY = "Write every document to FILE as JSON lines."

    def run(self, args: ArgumentCursor) -> None:
        self.process_flags(args)
        db = self.open_database(args)
        target = Path(args.next_arg("output file")).expanduser()
        args.end_of_args()

        count = 0
        try:
            with target.open("w", encoding="utf-8") as stream:
                for doc in db.documents():
                    stream.write(json.dumps({"_id": doc.doc_id, **doc.body}, ensure_ascii=False))
                    stream.write("\n")
                    count += 1
        except OSError as exc:
            raise OperationFailedError(f"Couldn't write {target}: {exc.strerror or exc}") from exc
        console.text(f"Exported {count} document{'' if count == 1 else 's'} to {target}")


class ImportCommand(Command):
    ARGS = "FILE"
    SUMMARY = "Save every object in the JSON-lines FILE as a document."

    def run(self, args: ArgumentCursor) -> None:
        self.process_flags(args)
        db = self.open_writeable_database(args)
        source = Path(args.next_arg("input file")).expanduser()
        args.end_of_args()

        count = 0
        for doc_id, body in _read_json_lines(source):
            db.put_document(doc_id, body)
            count += 1
        console.text(f"Imported {count} document{'' if count == 1 else 's'} from {source}")
