"""Tests for the ``flowspine`` CLI (typer CliRunner)."""

from __future__ import annotations

import json
from unittest.mock import MagicMock

import pytest
from typer.testing import CliRunner

from flowspine.cli import setup as setup_cli
from flowspine.cli.app import app
from flowspine.database import preflight
from flowspine.orchestration.runner import SetupRunner
from tests._support import SleepRecorder
from tests._support.fake_nifi import FakeNiFi

runner = CliRunner()

ENV = """\
NIFI_HOST=nifi.test
NIFI_SINGLE_USER_CREDENTIALS_USERNAME=admin
NIFI_SINGLE_USER_CREDENTIALS_PASSWORD=secret
POSTGRES_HOST=postgres
POSTGRES_DB=inventory
POSTGRES_USER=app
POSTGRES_PASSWORD=app-secret
READINESS_MAX_ATTEMPTS=2
LOG_LEVEL=CRITICAL
"""


@pytest.fixture
def env_file(tmp_path):
    path = tmp_path / ".env"
    path.write_text(ENV)
    return path


@pytest.fixture
def partial_env_file(tmp_path):
    path = tmp_path / "partial.env"
    path.write_text("NIFI_HOST=nifi.test\nNIFI_SINGLE_USER_CREDENTIALS_USERNAME=admin\nLOG_LEVEL=CRITICAL\n")
    return path


@pytest.fixture
def fake_engine(monkeypatch):
    """Route ``flowspine setup`` to an in-memory engine."""
    nifi = FakeNiFi()

    def make_runner(settings, *, dry_run=False):
        return SetupRunner(settings, dry_run=dry_run, http=nifi.http_client(), sleep=SleepRecorder())

    monkeypatch.setattr(setup_cli, "SetupRunner", make_runner)
    return nifi


class TestRoot:
    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert result.stdout.startswith("flowspine ")

    def test_help_lists_groups(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for group in ("setup", "config", "db"):
            assert group in result.stdout


class TestConfigCommands:
    def test_validate_ok(self, env_file):
        result = runner.invoke(app, ["config", "validate", "--env-file", str(env_file)])
        assert result.exit_code == 0
        assert "Configuration valid" in result.stdout

    def test_validate_reports_missing_keys(self, partial_env_file):
        result = runner.invoke(app, ["config", "validate", "--env-file", str(partial_env_file)])
        assert result.exit_code == 1
        assert "POSTGRES_DB" in result.output
        assert "NIFI_SINGLE_USER_CREDENTIALS_PASSWORD" in result.output

    def test_malformed_value_reported_without_traceback(self, tmp_path):
        path = tmp_path / "bad.env"
        path.write_text(ENV + "NIFI_PORT=abc\n")

        result = runner.invoke(app, ["config", "validate", "--env-file", str(path)])

        assert result.exit_code == 1
        assert isinstance(result.exception, SystemExit)
        assert "Invalid value for NIFI_PORT: 'abc'" in result.output

    def test_setup_rejects_malformed_value(self, tmp_path, fake_engine):
        path = tmp_path / "bad.env"
        path.write_text(ENV + "WRITE_MAX_ATTEMPTS=0\n")

        result = runner.invoke(app, ["setup", "cdc", "--env-file", str(path)])

        assert result.exit_code == 1
        assert "WRITE_MAX_ATTEMPTS" in result.output
        assert fake_engine.requests == []

    def test_show_json_redacts_secrets(self, env_file):
        result = runner.invoke(app, ["config", "show", "--json", "--env-file", str(env_file)])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["nifi_password"] == "***"
        assert data["postgres_db"] == "inventory"
        assert data["nifi_url"] == "https://nifi.test:8443"


class TestSetupCommands:
    def test_cdc_dry_run_json(self, env_file):
        result = runner.invoke(app, ["setup", "cdc", "--dry-run", "--json", "--env-file", str(env_file)])
        assert result.exit_code == 0, result.output
        report = json.loads(result.stdout)
        assert report["dry_run"] is True
        assert report["ok"] is True
        assert report["counts"]["CREATED"] == 16
        assert report["steps"][0]["resource_id"].startswith("dry-parameter-context-")

    def test_outbox_dry_run_skips_db_check(self, env_file, monkeypatch):
        connect = MagicMock()
        monkeypatch.setattr(preflight, "connect", connect)

        result = runner.invoke(app, ["setup", "outbox", "--dry-run", "--check-db", "--env-file", str(env_file)])

        assert result.exit_code == 0, result.output
        connect.assert_not_called()
        assert "outbox (dry-run): 16 created" in result.stdout

    def test_missing_settings_fail_fast(self, partial_env_file, fake_engine):
        result = runner.invoke(app, ["setup", "cdc", "--env-file", str(partial_env_file)])
        assert result.exit_code == 1
        assert "POSTGRES_HOST" in result.output
        assert fake_engine.requests == []

    def test_applied_run(self, env_file, fake_engine):
        result = runner.invoke(app, ["setup", "cdc", "--env-file", str(env_file)])
        assert result.exit_code == 0, result.output
        assert "cdc (applied): 16 created" in result.stdout

        rerun = runner.invoke(app, ["setup", "cdc", "--env-file", str(env_file)])
        assert "cdc (applied): 16 reused" in rerun.stdout

    def test_failed_step_exits_non_zero(self, env_file, fake_engine):
        fake_engine.install_fault("POST", r"/processors$", name="Poll Outbox Table", status=400, body="bad")
        result = runner.invoke(app, ["setup", "outbox", "--json", "--env-file", str(env_file)])

        assert result.exit_code == 1
        report = json.loads(result.stdout)
        assert report["ok"] is False
        assert report["counts"]["FAILED"] == 1
        assert report["counts"]["SKIPPED"] == 1

    def test_dropped_connection_exits_non_zero(self, env_file, fake_engine):
        fake_engine.install_disconnect("PUT", r"/processors/[^/]+$")

        result = runner.invoke(app, ["setup", "cdc", "--env-file", str(env_file)])

        assert result.exit_code == 1
        assert "cdc (applied)" not in result.stdout
        assert fake_engine.count("POST", r"/connections$") == 0

    def test_readiness_timeout_exits_non_zero(self, env_file, fake_engine):
        fake_engine.unready_probes = 10
        result = runner.invoke(app, ["setup", "cdc", "--env-file", str(env_file)])
        assert result.exit_code == 1
        assert "not ready after 2 probe" in result.output

    def test_outbox_check_db_runs_preflight(self, env_file, fake_engine, monkeypatch):
        conn = MagicMock()
        conn.cursor.return_value.__enter__.return_value.fetchone.return_value = (None,)
        monkeypatch.setattr(preflight, "connect", lambda settings: conn)

        result = runner.invoke(app, ["setup", "outbox", "--check-db", "--env-file", str(env_file)])

        assert result.exit_code == 1
        assert "Table 'outbox' not found" in result.output
        assert fake_engine.requests == []
        conn.close.assert_called_once()


class TestDbCommands:
    @pytest.fixture
    def conn(self, monkeypatch):
        conn = MagicMock()
        monkeypatch.setattr(preflight, "connect", lambda settings: conn)
        return conn

    def test_check_json(self, env_file, conn):
        conn.cursor.return_value.__enter__.return_value.fetchone.side_effect = [("logical",), ("outbox",), (1,)]
        result = runner.invoke(app, ["db", "check", "--json", "--env-file", str(env_file)])
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["ok"] is True
        assert data["wal_level"] == "logical"

    def test_check_reports_issues(self, env_file, conn):
        conn.cursor.return_value.__enter__.return_value.fetchone.side_effect = [("replica",), ("outbox",), (1,)]
        result = runner.invoke(app, ["db", "check", "--env-file", str(env_file)])
        assert result.exit_code == 1
        assert "expected 'logical'" in result.stdout

    def test_ensure_slot_dry_run(self, env_file, conn):
        conn.cursor.return_value.__enter__.return_value.fetchone.side_effect = [None, ("logical",)]
        result = runner.invoke(app, ["db", "ensure-slot", "--dry-run", "--env-file", str(env_file)])
        assert result.exit_code == 0, result.output
        assert "[DRY RUN] Would create slot 'nifi_cdc_slot'" in result.stdout
        conn.close.assert_called_once()
