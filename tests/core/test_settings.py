"""Tests for ``flowspine.core.settings``."""

from __future__ import annotations

import pytest

from flowspine.core.errors import InvalidConfigError, MissingConfigError
from flowspine.core.settings import FlowSpineSettings
from tests._support import make_settings


class TestDefaults:
    def test_urls(self, settings):
        assert settings.nifi_url == "https://nifi.test:8443"
        assert settings.nifi_api_url == "https://nifi.test:8443/nifi-api"

    def test_resilience_defaults(self):
        s = FlowSpineSettings(_env_file=None)
        assert s.readiness_max_attempts == 60
        assert s.readiness_interval == 5.0
        assert s.write_max_attempts == 5
        assert s.write_retry_delay == 1.0
        assert s.verify_tls is False

    def test_rejects_zero_attempts(self):
        with pytest.raises(ValueError):
            make_settings(write_max_attempts=0)


class TestEnvironment:
    def test_reads_compose_variable_names(self, monkeypatch):
        monkeypatch.setenv("NIFI_HOST", "nifi")
        monkeypatch.setenv("NIFI_SINGLE_USER_CREDENTIALS_USERNAME", "operator")
        monkeypatch.setenv("NIFI_SINGLE_USER_CREDENTIALS_PASSWORD", "hunter22")
        monkeypatch.setenv("POSTGRES_PORT", "6543")

        s = FlowSpineSettings(_env_file=None)
        assert s.nifi_host == "nifi"
        assert s.nifi_username == "operator"
        assert s.nifi_password.get_secret_value() == "hunter22"
        assert s.postgres_port == 6543

    def test_reads_env_file(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("POSTGRES_DB=orders\nCDC_SLOT_NAME=orders_slot\n")
        s = FlowSpineSettings(_env_file=env_file)
        assert s.postgres_db == "orders"
        assert s.cdc_slot_name == "orders_slot"

    def test_env_name(self, settings):
        assert settings.env_name("nifi_password") == "NIFI_SINGLE_USER_CREDENTIALS_PASSWORD"
        assert settings.env_name("postgres_host") == "POSTGRES_HOST"


class TestValidateRequired:
    def test_complete_settings_pass(self, settings):
        settings.validate_required()

    def test_missing_values_listed_by_env_name(self):
        s = make_settings(nifi_password="", postgres_db="")
        with pytest.raises(MissingConfigError) as excinfo:
            s.validate_required()
        assert excinfo.value.keys == ["NIFI_SINGLE_USER_CREDENTIALS_PASSWORD", "POSTGRES_DB"]

    def test_whitespace_counts_as_missing(self):
        with pytest.raises(MissingConfigError):
            make_settings(postgres_user="   ").validate_required()

    def test_placeholder_rejected(self):
        with pytest.raises(InvalidConfigError) as excinfo:
            make_settings(postgres_host="[your-db-host]").validate_required()
        assert excinfo.value.key == "POSTGRES_HOST"

    def test_secret_placeholder_is_masked(self):
        with pytest.raises(InvalidConfigError) as excinfo:
            make_settings(postgres_password="[password]").validate_required()
        assert "[password]" not in excinfo.value.message
        assert excinfo.value.value == "***"


class TestRedacted:
    def test_secrets_masked(self, settings):
        data = settings.redacted()
        assert data["nifi_password"] == "***"
        assert data["postgres_password"] == "***"
        assert data["nifi_username"] == "admin"
        assert data["nifi_url"] == "https://nifi.test:8443"

    def test_empty_secret_stays_empty(self):
        assert make_settings(postgres_password="").redacted()["postgres_password"] == ""
