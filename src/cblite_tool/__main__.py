"""Allow ``python -m cblite_tool`` invocation.

This module simply delegates to the CLI error-boundary entry point so
that ``python -m cblite_tool`` behaves identically to the ``cblite``
console script.
"""

from __future__ import annotations

from cblite_tool.cli.app import cli

if __name__ == "__main__":
    cli()
