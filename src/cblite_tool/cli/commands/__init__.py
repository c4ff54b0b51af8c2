"""Subcommands and the registry that resolves their names."""

from cblite_tool.cli.commands.base import Command
from cblite_tool.cli.commands.registry import (
    REGISTRY,
    RegistryEntry,
    available_names,
    is_available,
    lookup,
    subcommand,
)

__all__: list[str] = [
    "REGISTRY",
    "Command",
    "RegistryEntry",
    "available_names",
    "is_available",
    "lookup",
    "subcommand",
]
