"""cblite-tool: embedded document database multi-tool.

Runs one subcommand per invocation, or opens a ``.cblite2`` database and
drops into an interactive shell.
"""

from cblite_tool.version import __version__

__all__: list[str] = ["__version__"]
