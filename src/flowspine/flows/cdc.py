"""PostgreSQL CDC flow: read a logical replication slot and log the changes.

::

    Read CDC Slot ─success→ Convert to JSON ─success→ Split Changes
        ─split→ Parse CDC Data ─matched→ Route Changes ─has_changes→ Log CDC Changes

The slot is read with ``pg_logical_slot_get_changes`` through the
``PostgreSQL Connection Pool`` service; the slot itself must exist first
(see ``flowspine db ensure-slot``).
"""

from __future__ import annotations

from flowspine.core.settings import FlowSpineSettings
from flowspine.flows.common import (
    AVRO_READER,
    CONVERT_RECORD,
    EVALUATE_JSON_PATH,
    EXECUTE_SQL,
    JSON_PATH_DEFAULTS,
    JSON_RECORD_SET_WRITER,
    LOG_ATTRIBUTE,
    ROUTE_ON_ATTRIBUTE,
    SPLIT_JSON,
    database_parameters,
    postgres_connection_pool,
)
from flowspine.nifi.payloads import (
    ControllerServiceSpec,
    Position,
    ProcessGroupSpec,
    ProcessorConfig,
    ProcessorSpec,
)
from flowspine.orchestration.topology import Resolved, Topology

PROCESS_GROUP_NAME = "PostgreSQL CDC Pattern"
PARAMETER_CONTEXT_NAME = "CDC-DB"


def slot_query(slot: str) -> str:
    return (
        f"SELECT * FROM pg_logical_slot_get_changes('{slot}', NULL, NULL, "
        "'include-timestamp', 'on');"
    )


def build_cdc_topology(settings: FlowSpineSettings) -> Topology:
    """Desired CDC topology for ``settings``."""
    topology = Topology("cdc")
    group = "group"

    topology.parameter_context("params", database_parameters(settings, PARAMETER_CONTEXT_NAME))
    topology.process_group(group, ProcessGroupSpec(name=PROCESS_GROUP_NAME), parameter_context="params")

    topology.controller_service("dbcp", postgres_connection_pool(), scope=group)
    topology.controller_service(
        "reader",
        ControllerServiceSpec(type=AVRO_READER, name="Avro Record Reader"),
        scope=group,
    )
    topology.controller_service(
        "writer",
        ControllerServiceSpec(
            type=JSON_RECORD_SET_WRITER,
            name="JSON Record Writer",
            properties={
                "Pretty Print JSON": "false",
                "Schema Write Strategy": "no-schema",
                "output-grouping": "output-array",
            },
        ),
        scope=group,
    )

    slot = settings.cdc_slot_name

    def read_config(ids: Resolved) -> ProcessorConfig:
        return ProcessorConfig(
            properties={
                "Database Connection Pooling Service": ids["dbcp"],
                "SQL select query": slot_query(slot),
                "Max Wait Time": "0 seconds",
                "Output Batch Size": "100",
            },
            scheduling_period="5 sec",
            execution_node="PRIMARY",
            comments="Queries PostgreSQL logical replication slot for CDC events",
        )

    def convert_config(ids: Resolved) -> ProcessorConfig:
        return ProcessorConfig(
            properties={"record-reader": ids["reader"], "record-writer": ids["writer"]},
            auto_terminated_relationships=["failure"],
            comments="Converts Avro to JSON for processing",
        )

    topology.processor(
        "read",
        ProcessorSpec(type=EXECUTE_SQL, name="Read CDC Slot", position=Position(x=1200, y=100)),
        scope=group,
        depends_on=("dbcp",),
        config=read_config,
    )
    topology.processor(
        "convert",
        ProcessorSpec(type=CONVERT_RECORD, name="Convert to JSON", position=Position(x=1200, y=300)),
        scope=group,
        depends_on=("reader", "writer"),
        config=convert_config,
    )
    topology.processor(
        "split",
        ProcessorSpec(
            type=SPLIT_JSON,
            name="Split Changes",
            position=Position(x=1200, y=500),
            config=ProcessorConfig(
                properties={
                    "JsonPath Expression": "$[*]",
                    "Null Value Representation": "empty string",
                },
                auto_terminated_relationships=["failure", "original"],
                comments="Splits CDC changes into individual events",
            ),
        ),
        scope=group,
    )
    topology.processor(
        "parse",
        ProcessorSpec(
            type=EVALUATE_JSON_PATH,
            name="Parse CDC Data",
            position=Position(x=1200, y=700),
            config=ProcessorConfig(
                properties={
                    **JSON_PATH_DEFAULTS,
                    "cdc.lsn": "$.lsn",
                    "cdc.xid": "$.xid",
                    "cdc.data": "$.data",
                },
                auto_terminated_relationships=["failure", "unmatched"],
                comments="Extracts CDC metadata from logical replication output",
            ),
        ),
        scope=group,
    )
    topology.processor(
        "route",
        ProcessorSpec(
            type=ROUTE_ON_ATTRIBUTE,
            name="Route Changes",
            position=Position(x=1200, y=900),
            config=ProcessorConfig(
                properties={
                    "Routing Strategy": "Route to Property name",
                    "has_changes": "${cdc.data:isEmpty():not()}",
                },
                auto_terminated_relationships=["unmatched"],
                comments="Routes only events with CDC data",
            ),
        ),
        scope=group,
    )
    topology.processor(
        "log",
        ProcessorSpec(
            type=LOG_ATTRIBUTE,
            name="Log CDC Changes",
            position=Position(x=1200, y=1100),
            config=ProcessorConfig(
                properties={
                    "Log Level": "info",
                    "Log Payload": "true",
                    "Attributes to Log": "cdc.*",
                    "Log prefix": "CDC_CHANGE",
                },
                auto_terminated_relationships=["success"],
                comments="Logs CDC changes from logical replication",
            ),
        ),
        scope=group,
    )

    for source, relationship, destination in (
        ("read", "success", "convert"),
        ("convert", "success", "split"),
        ("split", "split", "parse"),
        ("parse", "matched", "route"),
        ("route", "has_changes", "log"),
    ):
        topology.connection(
            f"{source}-{destination}",
            scope=group,
            source=source,
            relationship=relationship,
            destination=destination,
        )

    return topology
