"""Settings for flow-spine setup runs.

A single ``FlowSpineSettings`` instance is built at CLI startup and passed
explicitly into the runner, the flow builders and the database preflight.
Nothing below the CLI reads the process environment.

Variable names match the ``.env`` file shipped with the docker-compose
environment (``NIFI_HOST``, ``NIFI_SINGLE_USER_CREDENTIALS_USERNAME``,
``POSTGRES_DB`` ...), so the same file drives both the containers and this
tool.

Fields
──────
nifi_host / nifi_port / nifi_scheme : engine address
nifi_username / nifi_password       : single-user credentials
postgres_*                          : database coordinates, copied into the
                                      flow's parameter context
cdc_slot_name                       : logical replication slot read by the CDC flow
verify_tls / request_timeout        : HTTP client options
readiness_*                         : readiness gate budget
write_*                             : revision-conflict retry budget
log_level                           : structlog level

Examples:
    >>> settings = FlowSpineSettings(_env_file=".env")
    >>> settings.validate_required()
    >>> settings.nifi_url
    'https://localhost:8443'
"""

from __future__ import annotations

import re
from typing import Any

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from flowspine.core.errors import InvalidConfigError, MissingConfigError

# Template values such as "[your-password]" count as unset.
_PLACEHOLDER = re.compile(r"^\[.*\]$")

_REQUIRED = (
    "nifi_host",
    "nifi_username",
    "nifi_password",
    "postgres_host",
    "postgres_db",
    "postgres_user",
    "postgres_password",
)

_ENV_NAMES = {
    "nifi_username": "NIFI_SINGLE_USER_CREDENTIALS_USERNAME",
    "nifi_password": "NIFI_SINGLE_USER_CREDENTIALS_PASSWORD",
}


class FlowSpineSettings(BaseSettings):
    """Configuration for provisioning the CDC and Outbox flows."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # ── Engine ───────────────────────────────────────────────────
    nifi_host: str = "localhost"
    nifi_port: int = 8443
    nifi_scheme: str = "https"
    nifi_username: str = Field(default="", validation_alias=_ENV_NAMES["nifi_username"])
    nifi_password: SecretStr = Field(
        default=SecretStr(""), validation_alias=_ENV_NAMES["nifi_password"]
    )

    # ── Database ─────────────────────────────────────────────────
    postgres_host: str = ""
    postgres_port: int = 5432
    postgres_db: str = ""
    postgres_user: str = ""
    postgres_password: SecretStr = SecretStr("")
    cdc_slot_name: str = "nifi_cdc_slot"

    # ── HTTP ─────────────────────────────────────────────────────
    # The engine ships with a self-signed certificate.
    verify_tls: bool = False
    request_timeout: float = 30.0

    # ── Resilience ───────────────────────────────────────────────
    readiness_max_attempts: int = Field(default=60, ge=1)
    readiness_interval: float = Field(default=5.0, ge=0)
    write_max_attempts: int = Field(default=5, ge=1)
    write_retry_delay: float = Field(default=1.0, ge=0)

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"

    @property
    def nifi_url(self) -> str:
        return f"{self.nifi_scheme}://{self.nifi_host}:{self.nifi_port}"

    @property
    def nifi_api_url(self) -> str:
        return f"{self.nifi_url}/nifi-api"

    def env_name(self, field_name: str) -> str:
        """Environment variable name backing ``field_name``."""
        return _ENV_NAMES.get(field_name, field_name.upper())

    def validate_required(self) -> None:
        """Fail fast on empty or placeholder settings.

        Raises:
            MissingConfigError: one or more required values are empty.
            InvalidConfigError: a value is still a bracketed template placeholder.
        """
        missing: list[str] = []
        for name in _REQUIRED:
            if not self._plain(name).strip():
                missing.append(self.env_name(name))
        if missing:
            raise MissingConfigError(missing)

        for name in _REQUIRED:
            value = self._plain(name)
            if _PLACEHOLDER.match(value):
                shown = "***" if isinstance(getattr(self, name), SecretStr) else value
                raise InvalidConfigError(
                    self.env_name(name),
                    shown,
                    f"{self.env_name(name)} still has a placeholder value: {shown}",
                )

    def redacted(self) -> dict[str, Any]:
        """Settings as a plain dict with secrets masked."""
        data = self.model_dump()
        for key, value in data.items():
            if isinstance(value, SecretStr):
                data[key] = "***" if value.get_secret_value() else ""
        data["nifi_url"] = self.nifi_url
        return data

    def _plain(self, name: str) -> str:
        value = getattr(self, name)
        if isinstance(value, SecretStr):
            return value.get_secret_value()
        return str(value)
