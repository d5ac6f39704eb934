"""Source database preflight."""

from flowspine.database.preflight import (
    PreflightReport,
    SlotStatus,
    check_database,
    check_outbox_table,
    connect,
    ensure_replication_slot,
    replication_slot_exists,
    table_exists,
    wal_level,
)

__all__ = [
    "PreflightReport",
    "SlotStatus",
    "check_database",
    "check_outbox_table",
    "connect",
    "ensure_replication_slot",
    "replication_slot_exists",
    "table_exists",
    "wal_level",
]
