"""Whole-database subcommands: ``info``, ``compact``, ``encrypt``, ``decrypt``."""

from __future__ import annotations

from cblite_tool.cli.console import console
from cblite_tool.cli.commands.base import Command
from cblite_tool.core.arguments import ArgumentCursor
from cblite_tool.core.models import EncryptionAlgorithm
from cblite_tool.core.opener import parse_hex_key
from cblite_tool.exceptions import OperationFailedError


class InfoCommand(Command):
    SUMMARY = "Show the database path, mode, size and document counts."

    def run(self, args: ArgumentCursor) -> None:
        self.process_flags(args)
        db = self.open_database(args)
        args.end_of_args()

        rows = (
            ("Database", db.path),
            ("Mode", "read-only" if db.is_read_only else "writeable"),
            ("Encrypted", "yes" if db.is_encrypted else "no"),
            ("Size", f"{db.size_on_disk():,} bytes"),
            ("Documents", str(db.document_count())),
            ("Last sequence", str(db.last_sequence())),
            ("Engine", self.session.engine.version()),
        )
        width = max(len(label) for label, _ in rows) + 1
        for label, value in rows:
            console.text(f"{label + ':':<{width}} {value}")


class CompactCommand(Command):
    SUMMARY = "Reclaim unused space in the database file."

    def run(self, args: ArgumentCursor) -> None:
        self.process_flags(args)
        db = self.open_writeable_database(args)
        args.end_of_args()

        before = db.size_on_disk()
        db.compact()
        console.text(f"Compacted {db.path}: {before:,} -> {db.size_on_disk():,} bytes")


class EncryptCommand(Command):
    SUMMARY = "Encrypt the database with a new password or 64-digit hex key."

    def run(self, args: ArgumentCursor) -> None:
        self.process_flags(args)
        db = self.open_writeable_database(args)
        args.end_of_args()

        password = self.session.read_password("New password or hex key: ")
        if not password:
            raise OperationFailedError("No password given; database left unchanged")
        if self.session.read_password("Confirm: ") != password:
            raise OperationFailedError("Passwords don't match; database left unchanged")

        key = parse_hex_key(password) or self.session.engine.derive_key_from_password(
            password,
            EncryptionAlgorithm.AES256,
        )
        if key is None:
            raise OperationFailedError("Couldn't derive key from password")

        db.rekey(key)
        console.text(f"Encrypted {db.path}")


class DecryptCommand(Command):
    SUMMARY = "Remove encryption from the database."

    def run(self, args: ArgumentCursor) -> None:
        self.process_flags(args)
        db = self.open_writeable_database(args)
        args.end_of_args()

        if not db.is_encrypted:
            raise OperationFailedError(f"{db.path} is not encrypted")
        db.rekey(None)
        console.text(f"Decrypted {db.path}")
