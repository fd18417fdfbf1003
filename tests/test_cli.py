"""Tests for the command-line interface."""

import pytest
from factories import fixed_clock

from trustlens import cli
from trustlens.config import StorageBackend, get_settings
from trustlens.container import Container


@pytest.fixture
def cli_env(monkeypatch, tmp_path):
    """Deterministic clock, no seeded accounts and a throwaway SQLite file."""
    monkeypatch.setenv("TRUSTLENS_BLACKLIST_SEED", "[]")
    monkeypatch.setenv("TRUSTLENS_LOCAL_TIMEZONE", "UTC")
    monkeypatch.setenv("TRUSTLENS_NOTIFICATIONS_ENABLED", "false")
    monkeypatch.setattr(
        cli,
        "Container",
        lambda settings: Container(settings=settings, clock=fixed_clock()),
    )
    return ["--storage", "sqlite", "--sqlite-path", str(tmp_path / "cli.db")]


def evaluate_args(transaction_id: str, amount: str, recipient: str = "PAYEE") -> list[str]:
    return [
        "evaluate",
        transaction_id,
        amount,
        "--sender",
        "1234567890",
        "--recipient",
        recipient,
        "--location",
        "Chennai",
        "--card-type",
        "VISA",
    ]


class TestBasicCommands:
    def test_no_command_prints_help(self, capsys):
        assert cli.main([]) == 0
        assert "usage: trustlens" in capsys.readouterr().out

    def test_version(self, capsys):
        assert cli.main(["version"]) == 0
        assert "TrustLens v0.1.0" in capsys.readouterr().out

    def test_status(self, cli_env, capsys):
        assert cli.main([*cli_env, "status"]) == 0

        out = capsys.readouterr().out
        assert "Storage: sqlite (requested sqlite)" in out
        assert "Transactions: 0" in out

    def test_status_reports_fallback(self, cli_env, capsys, tmp_path):
        args = ["--storage", "sqlite", "--sqlite-path", str(tmp_path / "nope" / "x.db")]

        assert cli.main([*args, "status"]) == 0

        out = capsys.readouterr().out
        assert "Storage: memory (requested sqlite)" in out
        assert "Degraded: unavailable" in out


class TestEvaluateCommand:
    def test_safe_transaction(self, cli_env, capsys):
        assert cli.main([*cli_env, *evaluate_args("tx-1", "500")]) == 0
        assert "Transaction tx-1: SAFE" in capsys.readouterr().out

    def test_fraudulent_transaction(self, cli_env, capsys):
        assert cli.main([*cli_env, *evaluate_args("tx-1", "250000")]) == 2

        out = capsys.readouterr().out
        assert "Transaction tx-1: FRAUD" in out
        assert "Unusually high transaction amount" in out

    def test_invalid_amount(self, cli_env, capsys):
        assert cli.main([*cli_env, *evaluate_args("tx-1", "-3")]) == 1
        assert "Error: Invalid amount" in capsys.readouterr().out

    def test_duplicate_is_rejected(self, cli_env, capsys):
        cli.main([*cli_env, *evaluate_args("tx-1", "500")])

        assert cli.main([*cli_env, *evaluate_args("tx-1", "500")]) == 1
        assert "already recorded" in capsys.readouterr().out

    def test_history_persists_in_sqlite(self, cli_env, capsys):
        cli.main([*cli_env, *evaluate_args("tx-1", "500")])
        capsys.readouterr()

        assert cli.main([*cli_env, "history"]) == 0

        out = capsys.readouterr().out
        assert "tx-1" in out
        assert "Total: 1 transaction(s)" in out

    def test_empty_history(self, cli_env, capsys):
        assert cli.main([*cli_env, "history"]) == 0
        assert "No transactions recorded" in capsys.readouterr().out


class TestBlacklistCommands:
    def test_add_list_remove(self, cli_env, capsys):
        assert cli.main([*cli_env, "blacklist", "add", "ACC-1", "--reason", "chargeback"]) == 0
        assert "Account ACC-1 added to blacklist" in capsys.readouterr().out

        assert cli.main([*cli_env, "blacklist", "list"]) == 0
        out = capsys.readouterr().out
        assert "ACC-1" in out
        assert "chargeback" in out

        assert cli.main([*cli_env, "blacklist", "remove", "ACC-1"]) == 0
        assert "Account ACC-1 removed from blacklist" in capsys.readouterr().out

    def test_add_twice(self, cli_env, capsys):
        cli.main([*cli_env, "blacklist", "add", "ACC-1"])

        cli.main([*cli_env, "blacklist", "add", "ACC-1"])

        assert "Account ACC-1 is already blacklisted" in capsys.readouterr().out

    def test_remove_unknown(self, cli_env, capsys):
        cli.main([*cli_env, "blacklist", "remove", "NOPE"])

        assert "Account NOPE was not blacklisted" in capsys.readouterr().out

    def test_empty_list(self, cli_env, capsys):
        cli.main([*cli_env, "blacklist", "list"])

        assert "Blacklist is empty" in capsys.readouterr().out

    def test_blacklist_without_subcommand(self, capsys):
        assert cli.main(["blacklist"]) == 0
        assert "usage:" in capsys.readouterr().out

    def test_blacklisted_recipient_is_flagged(self, cli_env, capsys):
        cli.main([*cli_env, "blacklist", "add", "MULE"])

        assert cli.main([*cli_env, *evaluate_args("tx-9", "500", recipient="MULE")]) == 2
        assert "Blacklisted account detected" in capsys.readouterr().out


class TestServeCommand:
    @pytest.fixture
    def uvicorn_calls(self, monkeypatch):
        calls: list[dict] = []
        monkeypatch.setattr(
            "uvicorn.run", lambda app, **kwargs: calls.append({"app": app, **kwargs})
        )
        # Registered so the variables the command exports are restored afterwards
        monkeypatch.delenv("TRUSTLENS_STORAGE_BACKEND", raising=False)
        monkeypatch.delenv("TRUSTLENS_SQLITE_PATH", raising=False)
        yield calls
        get_settings.cache_clear()

    def test_storage_flags_reach_the_server(self, uvicorn_calls, tmp_path):
        db_path = str(tmp_path / "served.db")

        result = cli.main(
            ["--storage", "sqlite", "--sqlite-path", db_path, "serve", "--port", "9000"]
        )

        assert result == 0
        assert uvicorn_calls[0]["app"] == "trustlens.api.app:app"
        assert uvicorn_calls[0]["port"] == 9000
        settings = get_settings()
        assert settings.storage_backend == StorageBackend.SQLITE
        assert str(settings.sqlite_path) == db_path

    def test_without_flags_keeps_environment(self, uvicorn_calls, monkeypatch):
        monkeypatch.setenv("TRUSTLENS_STORAGE_BACKEND", "memory")

        assert cli.main(["serve"]) == 0

        assert get_settings().storage_backend == StorageBackend.MEMORY
        assert uvicorn_calls[0]["port"] == 3001
