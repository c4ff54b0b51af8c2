"""Constants shared across layers."""

from __future__ import annotations

PROGRAM_NAME: str = "cblite"

DATABASE_SUFFIX: str = ".cblite2"
"""Required filename extension of a database bundle directory."""

DATABASE_FILENAME: str = "db.sqlite3"
"""Name of the SQLite file stored inside a bundle."""

AES256_KEY_SIZE: int = 32
"""AES-256 key length in bytes (a hex key is twice as many characters)."""

KEY_DERIVATION_SALT: bytes = b"Salty McNaCl"
KEY_DERIVATION_ROUNDS: int = 64000

HELP_KEYWORD: str = "help"

SHELL_PROMPT: str = "(cblite) "

MAX_SUBCOMMAND_NAME_LENGTH: int = 10
"""Longer unknown names are reported as bad database paths instead."""
