"""Raw SQL subcommands: ``sql`` and its ``select`` / ``SELECT`` shorthand.

Documents live in the ``docs`` table (``doc_id``, ``rev_id``,
``sequence``, ``deleted``, ``body``); bodies are JSON text, so SQLite's
JSON functions apply, e.g. ``select json_extract(body, '$.name') from docs``.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from cblite_tool.cli.console import console, escape_markup, import_rich_table
from cblite_tool.cli.commands.base import Command
from cblite_tool.core.arguments import ArgumentCursor


def _cell(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bytes):
        return value.hex()
    return str(value)


def print_rows(columns: list[str], rows: list[Sequence[Any]]) -> None:
    if not columns:
        console.text("(No result)")
        return

    table = import_rich_table()(show_header=True, header_style="bold")
    for column in columns:
        table.add_column(escape_markup(column))
    for row in rows:
        table.add_row(*(escape_markup(_cell(value)) for value in row))
    console.print(table)
    console.text(f"({len(rows)} row{'' if len(rows) == 1 else 's'})")


class SqlCommand(Command):
    ARGS = "QUERY"
    SUMMARY = "Run a raw SQL statement against the document store."

    def query_text(self, tokens: list[str]) -> str:
        return " ".join(tokens)

    def run(self, args: ArgumentCursor) -> None:
        self.process_flags(args)
        db = self.open_database(args)
        query = self.query_text([args.next_arg("query"), *args.rest()])

        columns, rows = db.execute_sql(query)
        print_rows(columns, rows)


class SelectCommand(SqlCommand):
    ARGS = "RESULT_COLUMNS [FROM ...]"
    SUMMARY = "Shorthand for `sql SELECT ...`."

    def query_text(self, tokens: list[str]) -> str:
        # The command name is itself the first word of the statement.
        return " ".join([self.name.upper(), *tokens])
