"""Tests for the subcommand registry and its mode gating."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from cblite_tool.cli.commands import registry
from cblite_tool.cli.commands.documents import ListCommand
from cblite_tool.cli.commands.maintenance import InfoCommand
from cblite_tool.cli.commands.query import SelectCommand
from cblite_tool.cli.commands.serve import ServeCommand
from cblite_tool.core.opener import open_database
from cblite_tool.core.session import Session

ALWAYS = {
    "cat", "compact", "cp", "decrypt", "encrypt", "export", "file",
    "import", "info", "ls", "put", "rm", "SELECT", "select", "sql",
}


# ---------------------------------------------------------------------------
# Lookup
# ---------------------------------------------------------------------------

class TestLookup:
    @pytest.mark.parametrize("interactive", [False, True])
    def test_common_names_resolve_in_both_modes(self, interactive: bool) -> None:
        for name in ALWAYS:
            assert registry.is_available(name, interactive), name

    def test_serve_only_outside_shell(self) -> None:
        assert registry.is_available("serve", False)
        assert not registry.is_available("serve", True)

    def test_quit_only_inside_shell(self) -> None:
        assert registry.is_available("quit", True)
        assert not registry.is_available("quit", False)

    @pytest.mark.parametrize("name", ["LS", "l", "lsx", "", "help", "Select"])
    def test_exact_case_sensitive_names(self, name: str) -> None:
        assert registry.lookup(name, False) is None
        assert registry.lookup(name, True) is None

    def test_lookup_is_pure(self) -> None:
        first = registry.lookup("ls", False)
        second = registry.lookup("ls", False)
        assert first is second

    def test_available_names_by_mode(self) -> None:
        assert set(registry.available_names(False)) == ALWAYS | {"serve"}
        assert set(registry.available_names(True)) == ALWAYS | {"quit"}

    def test_listing_hides_aliases(self) -> None:
        listed = {entry.name for entry in registry.available_entries(False, listed_only=True)}
        assert "file" not in listed
        assert "SELECT" not in listed
        assert "info" in listed

    def test_first_registration_wins(self, monkeypatch: pytest.MonkeyPatch) -> None:
        duplicate = registry.RegistryEntry("ls", InfoCommand)
        monkeypatch.setattr(registry, "REGISTRY", (*registry.REGISTRY, duplicate))
        entry = registry.lookup("ls", False)
        assert entry is not None
        assert entry.factory is ListCommand


# ---------------------------------------------------------------------------
# Instantiation
# ---------------------------------------------------------------------------

class TestSubcommand:
    def test_builds_fresh_named_instance(
        self, session_factory: Callable[..., Session],
    ) -> None:
        session = session_factory()
        first = registry.subcommand("ls", session)
        second = registry.subcommand("ls", session)
        assert isinstance(first, ListCommand)
        assert first is not second
        assert first.name == "ls"
        assert first.session is session

    def test_alias_keeps_invoked_name(self, session_factory: Callable[..., Session]) -> None:
        command = registry.subcommand("SELECT", session_factory())
        assert isinstance(command, SelectCommand)
        assert command.name == "SELECT"

    def test_unknown_returns_none(self, session_factory: Callable[..., Session]) -> None:
        assert registry.subcommand("bogus", session_factory()) is None

    def test_serve_gated_by_session_mode(self, session_factory: Callable[..., Session]) -> None:
        assert isinstance(registry.subcommand("serve", session_factory()), ServeCommand)
        assert registry.subcommand("serve", session_factory(interactive=True)) is None

    def test_quit_outside_shell_is_unknown(self, session_factory: Callable[..., Session]) -> None:
        assert registry.subcommand("quit", session_factory()) is None

    def test_quit_closes_database_and_exits(
        self, session_factory: Callable[..., Session],
    ) -> None:
        session = session_factory(interactive=True)
        handle = open_database(session, "db.cblite2")
        with pytest.raises(SystemExit) as exc_info:
            registry.subcommand("quit", session)
        assert exc_info.value.code == 0
        assert handle.closed
        assert session.database is None

    def test_entry_exposes_command_class(self) -> None:
        entry = registry.lookup("info", False)
        assert entry is not None
        assert entry.command_class is InfoCommand
        quit_entry = registry.lookup("quit", True)
        assert quit_entry is not None
        assert quit_entry.command_class is None
