"""Pydantic models for NiFi component payloads.

Each model serialises by alias to the camelCase shape the REST API expects,
so flow definitions are written with Python field names and never as raw
JSON strings.

Usage::

    from flowspine.nifi.payloads import ProcessorConfig, ProcessorSpec

    spec = ProcessorSpec(
        type="org.apache.nifi.processors.standard.SplitJson",
        name="Split Changes",
        position=Position(x=1200, y=500),
        config=ProcessorConfig(
            properties={"JsonPath Expression": "$[*]"},
            auto_terminated_relationships=["failure", "original"],
        ),
    )
    spec.create_component()     # {"type": ..., "name": ..., "position": {...}}
    spec.configure_component()  # {"config": {"properties": ..., "schedulingPeriod": ...}}

Tags:
    nifi, payloads, pydantic, wire-format
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Base for payload models: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class Position(WireModel):
    """Canvas coordinates."""

    x: float = 0
    y: float = 0


# =============================================================================
# PROCESSORS
# =============================================================================


class ProcessorConfig(WireModel):
    """Property mapping plus scheduling and error-routing settings."""

    properties: dict[str, str] = Field(default_factory=dict)
    scheduling_period: str = "0 sec"
    scheduling_strategy: Literal["TIMER_DRIVEN", "CRON_DRIVEN"] = "TIMER_DRIVEN"
    execution_node: Literal["ALL", "PRIMARY"] = "ALL"
    penalty_duration: str = "30 sec"
    yield_duration: str = "1 sec"
    bulletin_level: Literal["DEBUG", "INFO", "WARN", "ERROR", "NONE"] = "WARN"
    run_duration_millis: int = Field(default=0, ge=0)
    concurrently_schedulable_task_count: int = Field(default=1, ge=1)
    auto_terminated_relationships: list[str] = Field(default_factory=list)
    comments: str = ""


class ProcessorSpec(WireModel):
    """Desired processor: created bare, then configured with a revisioned write."""

    type: str = Field(..., min_length=1, description="Fully qualified processor class")
    name: str = Field(..., min_length=1)
    position: Position = Field(default_factory=Position)
    config: ProcessorConfig = Field(default_factory=ProcessorConfig)

    def create_component(self) -> dict[str, Any]:
        return {"type": self.type, "name": self.name, "position": self.position.to_wire()}

    def configure_component(self) -> dict[str, Any]:
        return {"config": self.config.to_wire()}


# =============================================================================
# PROCESS GROUPS / PARAMETER CONTEXTS
# =============================================================================


class ProcessGroupSpec(WireModel):
    name: str = Field(..., min_length=1)
    position: Position = Field(default_factory=lambda: Position(x=100, y=100))

    def create_component(self) -> dict[str, Any]:
        return {"name": self.name, "position": self.position.to_wire()}


def parameter_context_assignment(context_id: str) -> dict[str, Any]:
    """Process-group component fragment binding a parameter context."""
    return {"parameterContext": {"id": context_id}}


class Parameter(WireModel):
    name: str = Field(..., min_length=1)
    value: str | None = None
    sensitive: bool = False
    description: str | None = None

    def to_wire(self) -> dict[str, Any]:
        # the API nests each parameter in a {"parameter": ...} envelope
        return {"parameter": super().to_wire()}


class ParameterContextSpec(WireModel):
    name: str = Field(..., min_length=1)
    description: str | None = None
    parameters: list[Parameter] = Field(default_factory=list)

    def create_component(self) -> dict[str, Any]:
        component: dict[str, Any] = {
            "name": self.name,
            "parameters": [p.to_wire() for p in self.parameters],
        }
        if self.description:
            component["description"] = self.description
        return component


# =============================================================================
# CONTROLLER SERVICES
# =============================================================================


class ControllerServiceSpec(WireModel):
    """Controller service; properties are set at creation time."""

    type: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    properties: dict[str, str] = Field(default_factory=dict)

    def create_component(self) -> dict[str, Any]:
        return {"name": self.name, "type": self.type, "properties": dict(self.properties)}


# =============================================================================
# CONNECTIONS
# =============================================================================


class ConnectableRef(WireModel):
    id: str = Field(..., min_length=1)
    type: Literal["PROCESSOR", "INPUT_PORT", "OUTPUT_PORT", "FUNNEL"] = "PROCESSOR"
    group_id: str = Field(..., min_length=1)


def connection_name(source: str, relationship: str, destination: str) -> str:
    """Stable name used to find an existing connection on re-runs."""
    return f"{source} [{relationship}] -> {destination}"


class ConnectionSpec(WireModel):
    source: ConnectableRef
    destination: ConnectableRef
    selected_relationships: list[str] = Field(..., min_length=1)
    flow_file_expiration: str = "0 sec"
    back_pressure_data_size_threshold: str = "1 GB"
    back_pressure_object_threshold: str = "10000"
    load_balance_strategy: str = "DO_NOT_LOAD_BALANCE"
    load_balance_compression: str = "DO_NOT_COMPRESS"

    def create_component(self) -> dict[str, Any]:
        return self.to_wire()


__all__ = [
    "WireModel",
    "Position",
    "ProcessorConfig",
    "ProcessorSpec",
    "ProcessGroupSpec",
    "Parameter",
    "ParameterContextSpec",
    "ControllerServiceSpec",
    "ConnectableRef",
    "ConnectionSpec",
    "connection_name",
    "parameter_context_assignment",
]
