"""Building blocks shared by the CDC and Outbox flows."""

from __future__ import annotations

from flowspine.core.settings import FlowSpineSettings
from flowspine.nifi.payloads import ControllerServiceSpec, Parameter, ParameterContextSpec

STANDARD = "org.apache.nifi.processors.standard"

EXECUTE_SQL = f"{STANDARD}.ExecuteSQL"
QUERY_DATABASE_TABLE = f"{STANDARD}.QueryDatabaseTable"
CONVERT_RECORD = f"{STANDARD}.ConvertRecord"
SPLIT_JSON = f"{STANDARD}.SplitJson"
EVALUATE_JSON_PATH = f"{STANDARD}.EvaluateJsonPath"
ROUTE_ON_ATTRIBUTE = f"{STANDARD}.RouteOnAttribute"
LOG_ATTRIBUTE = f"{STANDARD}.LogAttribute"
PUT_SQL = f"{STANDARD}.PutSQL"
UPDATE_ATTRIBUTE = "org.apache.nifi.processors.attributes.UpdateAttribute"
CONVERT_AVRO_TO_JSON = "org.apache.nifi.processors.avro.ConvertAvroToJSON"

DBCP_CONNECTION_POOL = "org.apache.nifi.dbcp.DBCPConnectionPool"
AVRO_READER = "org.apache.nifi.avro.AvroReader"
JSON_RECORD_SET_WRITER = "org.apache.nifi.json.JsonRecordSetWriter"

DBCP_NAME = "PostgreSQL Connection Pool"

# EvaluateJsonPath settings both flows share
JSON_PATH_DEFAULTS = {
    "Destination": "flowfile-attribute",
    "Return Type": "auto-detect",
    "Path Not Found Behavior": "warn",
    "Null Value Representation": "empty string",
}


def database_parameters(settings: FlowSpineSettings, name: str) -> ParameterContextSpec:
    """Parameter context holding the database coordinates the DBCP service references."""
    return ParameterContextSpec(
        name=name,
        parameters=[
            Parameter(name="DB_HOST", value=settings.postgres_host),
            Parameter(name="DB_PORT", value=str(settings.postgres_port)),
            Parameter(name="DB_NAME", value=settings.postgres_db),
            Parameter(name="DB_USER", value=settings.postgres_user),
            Parameter(
                name="DB_PASSWORD",
                value=settings.postgres_password.get_secret_value(),
                sensitive=True,
            ),
        ],
    )


def postgres_connection_pool() -> ControllerServiceSpec:
    """DBCP service resolving its connection settings from the parameter context."""
    return ControllerServiceSpec(
        type=DBCP_CONNECTION_POOL,
        name=DBCP_NAME,
        properties={
            "Database Connection URL": "jdbc:postgresql://#{DB_HOST}:#{DB_PORT}/#{DB_NAME}",
            "Database Driver Class Name": "org.postgresql.Driver",
            "Database User": "#{DB_USER}",
            "Password": "#{DB_PASSWORD}",
            "Max Total Connections": "8",
            "Max Idle Connections": "0",
            "Validation query": "SELECT 1",
        },
    )
