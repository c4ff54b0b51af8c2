"""Infrastructure layer: storage engine integration.

This layer wraps all interaction with SQLite and the ``cryptography``
package.  Every raw third-party exception must be caught here and
re-raised as a :class:`~cblite_tool.exceptions.CBLiteError` subclass.

Rules
-----
* No imports from ``cli``.
* No user-facing output (no ``print()``, no Rich rendering).
* Must satisfy the protocols in :mod:`cblite_tool.core.protocols`.
"""

from cblite_tool.infra.sqlite_engine import SqliteDatabase, SqliteEngine

__all__: list[str] = [
    "SqliteDatabase",
    "SqliteEngine",
]
