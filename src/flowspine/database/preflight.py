"""SQL preflight for the CDC and Outbox flows.

Read-only checks (plus one idempotent slot creation) run against the source
database before provisioning, so an operator learns about a missing
``outbox`` table or a server without logical replication before the flow
starts failing inside the engine.

Functions take an open DB-API connection, which keeps them testable with a
mocked connection. ``connect`` builds a psycopg2 connection from settings.

Example::

    conn = connect(settings)
    try:
        check_outbox_table(conn)
        ensure_replication_slot(conn, settings.cdc_slot_name)
    finally:
        conn.close()
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import psycopg2

from flowspine.core.errors import (
    DatabaseConnectionError,
    DatabaseError,
    MissingTableError,
    ReplicationConfigError,
)
from flowspine.core.logging import get_logger
from flowspine.core.settings import FlowSpineSettings

logger = get_logger(__name__)

DEFAULT_PLUGIN = "test_decoding"
OUTBOX_TABLE = "outbox"


class SlotStatus(str, Enum):
    EXISTS = "EXISTS"
    CREATED = "CREATED"
    PLANNED = "PLANNED"


def connect(settings: FlowSpineSettings, *, connect_timeout: int = 10) -> Any:
    """Open a psycopg2 connection to the flow's source database."""
    try:
        conn = psycopg2.connect(
            host=settings.postgres_host,
            port=settings.postgres_port,
            dbname=settings.postgres_db,
            user=settings.postgres_user,
            password=settings.postgres_password.get_secret_value(),
            connect_timeout=connect_timeout,
        )
    except psycopg2.Error as e:
        raise DatabaseConnectionError(
            f"Failed to connect to PostgreSQL at {settings.postgres_host}:{settings.postgres_port}: {e}",
            cause=e,
        ) from e
    conn.autocommit = True
    return conn


def _fetch_one(conn: Any, query: str, params: tuple[Any, ...] = ()) -> tuple[Any, ...] | None:
    try:
        with conn.cursor() as cur:
            cur.execute(query, params)
            return cur.fetchone()
    except psycopg2.Error as e:
        raise DatabaseError(f"Query failed: {e}", cause=e) from e


def table_exists(conn: Any, table: str, schema: str = "public") -> bool:
    row = _fetch_one(conn, "SELECT to_regclass(%s)", (f"{schema}.{table}",))
    return bool(row and row[0] is not None)


def wal_level(conn: Any) -> str:
    row = _fetch_one(conn, "SHOW wal_level")
    return str(row[0]) if row else ""


def replication_slot_exists(conn: Any, slot: str) -> bool:
    row = _fetch_one(conn, "SELECT 1 FROM pg_replication_slots WHERE slot_name = %s", (slot,))
    return row is not None


def ensure_replication_slot(
    conn: Any,
    slot: str,
    plugin: str = DEFAULT_PLUGIN,
    *,
    dry_run: bool = False,
) -> SlotStatus:
    """Create the logical replication slot unless it already exists.

    Raises:
        ReplicationConfigError: ``wal_level`` is not ``logical``
    """
    if replication_slot_exists(conn, slot):
        logger.info("db.slot_exists", slot=slot)
        return SlotStatus.EXISTS

    level = wal_level(conn)
    if level != "logical":
        raise ReplicationConfigError(
            f"wal_level is '{level}'; logical replication requires wal_level=logical"
        )

    if dry_run:
        logger.info("db.slot_create.dry_run", slot=slot, plugin=plugin)
        return SlotStatus.PLANNED

    _fetch_one(conn, "SELECT * FROM pg_create_logical_replication_slot(%s, %s)", (slot, plugin))
    logger.info("db.slot_created", slot=slot, plugin=plugin)
    return SlotStatus.CREATED


def check_outbox_table(conn: Any, table: str = OUTBOX_TABLE, database: str | None = None) -> None:
    """Raise ``MissingTableError`` when the outbox table is absent."""
    if not table_exists(conn, table):
        raise MissingTableError(table, database)
    logger.debug("db.table_present", table=table)


@dataclass
class PreflightReport:
    """Database readiness for both flows."""

    wal_level: str
    outbox_table: bool
    slot_name: str
    slot_exists: bool
    issues: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.issues


def check_database(conn: Any, settings: FlowSpineSettings) -> PreflightReport:
    """Collect every preflight fact without raising on the first problem."""
    report = PreflightReport(
        wal_level=wal_level(conn),
        outbox_table=table_exists(conn, OUTBOX_TABLE),
        slot_name=settings.cdc_slot_name,
        slot_exists=replication_slot_exists(conn, settings.cdc_slot_name),
    )
    if report.wal_level != "logical":
        report.issues.append(f"wal_level is '{report.wal_level}', expected 'logical'")
    if not report.outbox_table:
        report.issues.append(f"table '{OUTBOX_TABLE}' not found")
    if not report.slot_exists:
        report.issues.append(f"replication slot '{settings.cdc_slot_name}' not found")
    return report
