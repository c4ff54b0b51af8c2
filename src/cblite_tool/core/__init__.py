"""Core layer: argument processing, session state, and the open state machine.

Rules
-----
* No ``print()`` calls; user interaction goes through injected callables.
* No imports from ``cli`` or ``infra``.
* Storage is reached only through :mod:`cblite_tool.core.protocols`.
"""

from cblite_tool.core.arguments import ArgumentCursor, FlagTable, process_flag
from cblite_tool.core.models import (
    CommandOutcome,
    Document,
    EncryptionAlgorithm,
    EncryptionKey,
    OpenConfiguration,
    OpenFlags,
    OutcomeKind,
)
from cblite_tool.core.opener import (
    is_database_path,
    open_database,
    open_database_from_next_arg,
    open_writeable_database_from_next_arg,
    parse_hex_key,
)
from cblite_tool.core.protocols import DatabaseEngine, DatabaseHandle, PasswordReader
from cblite_tool.core.session import Session

__all__: list[str] = [
    "ArgumentCursor",
    "CommandOutcome",
    "DatabaseEngine",
    "DatabaseHandle",
    "Document",
    "EncryptionAlgorithm",
    "EncryptionKey",
    "FlagTable",
    "OpenConfiguration",
    "OpenFlags",
    "OutcomeKind",
    "PasswordReader",
    "Session",
    "is_database_path",
    "open_database",
    "open_database_from_next_arg",
    "open_writeable_database_from_next_arg",
    "parse_hex_key",
    "process_flag",
]
