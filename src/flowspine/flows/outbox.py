"""PostgreSQL Outbox flow: poll the ``outbox`` table, publish, then delete.

::

    Poll Outbox Table ─success→ Convert to JSON ─success→ Split Events
        ─split→ Extract Event Metadata ─matched→ Publish Events (Log)
                                       └matched→ Prepare Cleanup SQL ─success→ Delete from Outbox
"""

from __future__ import annotations

from flowspine.core.settings import FlowSpineSettings
from flowspine.flows.common import (
    CONVERT_AVRO_TO_JSON,
    EVALUATE_JSON_PATH,
    JSON_PATH_DEFAULTS,
    LOG_ATTRIBUTE,
    PUT_SQL,
    QUERY_DATABASE_TABLE,
    SPLIT_JSON,
    UPDATE_ATTRIBUTE,
    database_parameters,
    postgres_connection_pool,
)
from flowspine.nifi.payloads import Position, ProcessGroupSpec, ProcessorConfig, ProcessorSpec
from flowspine.orchestration.topology import Resolved, Topology

PROCESS_GROUP_NAME = "PostgreSQL Outbox Pattern"
PARAMETER_CONTEXT_NAME = "Outbox-DB"
OUTBOX_TABLE = "outbox"
OUTBOX_COLUMNS = ("id", "aggregate_type", "aggregate_id", "event_type", "payload", "created_at")

CONNECTIONS = (
    ("poll", "success", "convert"),
    ("convert", "success", "split"),
    ("split", "split", "extract"),
    ("extract", "matched", "publish"),
    ("extract", "matched", "prepare"),
    ("prepare", "success", "delete"),
)


def _poll_config(ids: Resolved) -> ProcessorConfig:
    return ProcessorConfig(
        properties={
            "Database Connection Pooling Service": ids["dbcp"],
            "Database Type": "PostgreSQL",
            "Table Name": OUTBOX_TABLE,
            "Columns to Return": ",".join(OUTBOX_COLUMNS),
            "Maximum-value Columns": "id",
            "Max Rows Per Flow File": "100",
            "Fetch Size": "100",
            "Use Avro Logical Types": "false",
            "Default Decimal Precision": "10",
            "Default Decimal Scale": "0",
            "Default Text Column Width": "4000",
        },
        scheduling_period="30 sec",
        execution_node="PRIMARY",
        comments="Polls the outbox table for new events using incremental ID",
    )


def _delete_config(ids: Resolved) -> ProcessorConfig:
    return ProcessorConfig(
        properties={
            "JDBC Connection Pool": ids["dbcp"],
            "SQL Statement": f"DELETE FROM {OUTBOX_TABLE} WHERE id = ?",
            "Support Fragmented Transactions": "false",
            "Batch Size": "100",
            "Obtain Generated Keys": "false",
            "Rollback On Failure": "false",
        },
        auto_terminated_relationships=["failure"],
        comments="Deletes processed events from outbox table",
    )


def build_outbox_topology(settings: FlowSpineSettings) -> Topology:
    """Desired Outbox topology for ``settings``."""
    topology = Topology("outbox")
    group = "group"

    topology.parameter_context("params", database_parameters(settings, PARAMETER_CONTEXT_NAME))
    topology.process_group(group, ProcessGroupSpec(name=PROCESS_GROUP_NAME), parameter_context="params")
    topology.controller_service("dbcp", postgres_connection_pool(), scope=group)

    topology.processor(
        "poll",
        ProcessorSpec(type=QUERY_DATABASE_TABLE, name="Poll Outbox Table", position=Position(x=100, y=100)),
        scope=group,
        depends_on=("dbcp",),
        config=_poll_config,
    )
    topology.processor(
        "convert",
        ProcessorSpec(
            type=CONVERT_AVRO_TO_JSON,
            name="Convert to JSON",
            position=Position(x=400, y=100),
            config=ProcessorConfig(
                properties={"JSON container options": "array", "Wrap Single Record": "false"},
                auto_terminated_relationships=["failure"],
                comments="Converts Avro records to JSON format",
            ),
        ),
        scope=group,
    )
    topology.processor(
        "split",
        ProcessorSpec(
            type=SPLIT_JSON,
            name="Split Events",
            position=Position(x=700, y=100),
            config=ProcessorConfig(
                properties={
                    "JsonPath Expression": "$[*]",
                    "Null Value Representation": "empty string",
                },
                auto_terminated_relationships=["failure", "original"],
                comments="Splits JSON array into individual events",
            ),
        ),
        scope=group,
    )
    topology.processor(
        "extract",
        ProcessorSpec(
            type=EVALUATE_JSON_PATH,
            name="Extract Event Metadata",
            position=Position(x=1000, y=100),
            config=ProcessorConfig(
                properties={
                    **JSON_PATH_DEFAULTS,
                    "event.id": "$.id",
                    "event.aggregate_type": "$.aggregate_type",
                    "event.aggregate_id": "$.aggregate_id",
                    "event.event_type": "$.event_type",
                    "event.created_at": "$.created_at",
                },
                auto_terminated_relationships=["failure", "unmatched"],
                comments="Extracts event metadata to flowfile attributes",
            ),
        ),
        scope=group,
    )
    topology.processor(
        "publish",
        ProcessorSpec(
            type=LOG_ATTRIBUTE,
            name="Publish Events (Log)",
            position=Position(x=1300, y=100),
            config=ProcessorConfig(
                properties={
                    "Log Level": "info",
                    "Log Payload": "true",
                    "Attributes to Log": "event.*",
                    "Attributes to Log Separately": "event.aggregate_type,event.event_type,event.aggregate_id",
                    "Log prefix": "OUTBOX_EVENT",
                },
                auto_terminated_relationships=["success"],
                comments="Logs outbox events (replace with Kafka/target system)",
            ),
        ),
        scope=group,
    )
    topology.processor(
        "prepare",
        ProcessorSpec(
            type=UPDATE_ATTRIBUTE,
            name="Prepare Cleanup SQL",
            position=Position(x=1000, y=300),
            config=ProcessorConfig(
                properties={
                    "sql.args.1.type": "4",
                    "sql.args.1.value": "${event.id}",
                    "sql.args.1.format": "int",
                },
                comments="Prepares SQL parameters for cleanup",
            ),
        ),
        scope=group,
    )
    topology.processor(
        "delete",
        ProcessorSpec(type=PUT_SQL, name="Delete from Outbox", position=Position(x=1300, y=300)),
        scope=group,
        depends_on=("dbcp",),
        config=_delete_config,
    )

    for source, relationship, destination in CONNECTIONS:
        topology.connection(
            f"{source}-{destination}",
            scope=group,
            source=source,
            relationship=relationship,
            destination=destination,
        )

    return topology
