"""Tests for the command line entry point."""

import logging
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from appdata_backfill import __main__ as cli
from appdata_backfill.schemas import BackfillSummary
from core.errors import StoreError


@pytest.fixture(autouse=True)
def reset_root_handlers():
    yield
    logging.getLogger().handlers.clear()


@pytest.fixture
def required_env(monkeypatch, tmp_path):
    monkeypatch.setenv("POSTGRES_URL", "postgresql://localhost/orderbook")
    monkeypatch.setenv("IPFS_URL", "https://ipfs.io")
    monkeypatch.setenv("LOG_DIR", str(tmp_path / "logs"))


class TestParseArgs:

    def test_defaults(self):
        args = cli.parse_args([])

        assert args.config is None
        assert args.concurrency is None
        assert args.timeout_seconds is None
        assert args.dry_run is None
        assert args.log_level == "INFO"

    def test_overrides(self):
        args = cli.parse_args(
            ["--concurrency", "8", "--timeout", "2.5", "--dry-run", "--config", "b.yaml"]
        )

        assert args.concurrency == 8
        assert args.timeout_seconds == 2.5
        assert args.dry_run is True
        assert args.config == Path("b.yaml")


class TestLoadConfig:

    def test_cli_flags_override_env(self, required_env, monkeypatch):
        monkeypatch.setenv("BACKFILL_CONCURRENCY", "16")

        config = cli.load_config(cli.parse_args(["--concurrency", "2", "--dry-run"]))

        assert config.concurrency == 2
        assert config.dry_run is True

    def test_env_used_without_flags(self, required_env, monkeypatch):
        monkeypatch.setenv("BACKFILL_CONCURRENCY", "16")

        config = cli.load_config(cli.parse_args([]))

        assert config.concurrency == 16
        assert config.dry_run is False


class TestMain:

    def test_missing_config_exits_1(self, capsys):
        assert cli.main([]) == cli.EXIT_ERROR
        assert "POSTGRES_URL" in capsys.readouterr().err

    def test_completed_pass_exits_0(self, required_env):
        summary = BackfillSummary(total=2, inserted=1, failed=1)
        with patch.object(cli, "run_backfill", new=AsyncMock(return_value=summary)) as run:
            assert cli.main(["--concurrency", "4"]) == cli.EXIT_OK

        config = run.call_args.args[0]
        assert config.concurrency == 4

    def test_store_error_exits_1(self, required_env):
        with patch.object(
            cli, "run_backfill", new=AsyncMock(side_effect=StoreError("connect"))
        ):
            assert cli.main([]) == cli.EXIT_ERROR

    def test_interrupt_exits_130(self, required_env):
        with patch.object(
            cli, "run_backfill", new=AsyncMock(side_effect=KeyboardInterrupt)
        ):
            assert cli.main([]) == cli.EXIT_INTERRUPTED

    def test_writes_log_file(self, required_env, tmp_path):
        with patch.object(
            cli, "run_backfill", new=AsyncMock(return_value=BackfillSummary())
        ):
            cli.main(["--no-json-logs"])

        assert list((tmp_path / "logs" / "appdata").rglob("*.log"))
