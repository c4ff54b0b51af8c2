"""CLI console helpers with optional Rich support.

This module intentionally avoids module-level imports of optional UI
dependencies so bootstrap paths (``--version``, usage errors) remain
functional even when Rich is not installed.

``console`` writes command output to stdout; ``err_console`` writes
errors, usage text and logs to stderr.
"""

from __future__ import annotations

import json
import logging
import sys
from typing import Any, TextIO

from cblite_tool.exceptions import CBLiteError, EnvironmentError

_force_color: bool = False


def _load_rich_console_class() -> type[Any]:
	"""Return ``rich.console.Console`` class or raise ``EnvironmentError``."""
	try:
		from rich.console import Console
	except ModuleNotFoundError as exc:
		raise EnvironmentError(
			"rich is not installed. Install with: pip install rich",
		) from exc
	return Console


def get_rich_console(*, stderr: bool = True) -> Any:
	"""Create a Rich console instance targeting stderr (or stdout)."""
	console_class = _load_rich_console_class()
	return console_class(
		stderr=stderr,
		soft_wrap=True,
		force_terminal=True if _force_color else None,
	)


def enable_color() -> None:
	"""Force bold/italic/colour output even when not attached to a terminal."""
	global _force_color
	_force_color = True


class _ConsoleProxy:
	"""Minimal ``print``-compatible proxy with Rich fallback."""

	def __init__(self, *, stderr: bool) -> None:
		self._stderr = stderr

	def _stream(self) -> TextIO:
		return sys.stderr if self._stderr else sys.stdout

	def print(self, *objects: object, **options: Any) -> None:
		"""Render with Rich when available, else plain print.

		*options* are forwarded to ``rich.console.Console.print`` and
		ignored by the fallback.
		"""
		try:
			rich_console = get_rich_console(stderr=self._stderr)
		except EnvironmentError:
			print(*objects, file=self._stream())
			return
		rich_console.print(*objects, **options)

	def text(self, message: str) -> None:
		"""Print *message* verbatim, without markup or highlighting."""
		self.print(message, markup=False, highlight=False)


console = _ConsoleProxy(stderr=False)
err_console = _ConsoleProxy(stderr=True)


def escape_markup(text: str) -> str:
	try:
		from rich.markup import escape
	except ModuleNotFoundError:
		return text
	return escape(text)


def render_error(exc: CBLiteError) -> None:
	"""Show a user-facing error message plus its optional hint."""
	err_console.print(f"[bold red]Error:[/bold red] {escape_markup(str(exc))}")
	if exc.hint:
		err_console.print(f"[yellow]Hint:[/yellow] {escape_markup(exc.hint)}")


def configure_logging(level: str) -> None:
	"""Route ``cblite_tool`` log records to stderr at *level*."""
	try:
		from rich.logging import RichHandler
	except ModuleNotFoundError:
		handler: logging.Handler = logging.StreamHandler(sys.stderr)
	else:
		handler = RichHandler(
			console=get_rich_console(stderr=True),
			show_time=False,
			show_path=False,
		)

	numeric_level = logging.getLevelName(level)
	if not isinstance(numeric_level, int):
		numeric_level = logging.WARNING

	logger = logging.getLogger("cblite_tool")
	logger.handlers[:] = [handler]
	logger.setLevel(numeric_level)


def print_json(data: object, *, pretty: bool = True) -> None:
	"""Write *data* to stdout as JSON, syntax-highlighted when *pretty*."""
	text = json.dumps(data, indent=2 if pretty else None, ensure_ascii=False)
	if pretty:
		try:
			from rich.json import JSON
		except ModuleNotFoundError:
			pass
		else:
			console.print(JSON(text))
			return
	console.text(text)


def import_rich_table() -> type[Any]:
	"""Import rich table lazily for tabular output."""
	try:
		from rich.table import Table
	except ModuleNotFoundError as exc:
		raise EnvironmentError(
			"rich is not installed. Install with: pip install rich",
		) from exc
	return Table
