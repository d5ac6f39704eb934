"""Tests for ``flowspine.nifi.payloads`` — wire shapes of component bodies."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from flowspine.nifi.payloads import (
    ConnectableRef,
    ConnectionSpec,
    ControllerServiceSpec,
    Parameter,
    ParameterContextSpec,
    ProcessGroupSpec,
    ProcessorConfig,
    ProcessorSpec,
    connection_name,
    parameter_context_assignment,
)
from tests._support import assert_dict_subset


class TestProcessorConfig:
    def test_defaults_on_the_wire(self):
        assert ProcessorConfig().to_wire() == {
            "properties": {},
            "schedulingPeriod": "0 sec",
            "schedulingStrategy": "TIMER_DRIVEN",
            "executionNode": "ALL",
            "penaltyDuration": "30 sec",
            "yieldDuration": "1 sec",
            "bulletinLevel": "WARN",
            "runDurationMillis": 0,
            "concurrentlySchedulableTaskCount": 1,
            "autoTerminatedRelationships": [],
            "comments": "",
        }

    def test_unknown_field_rejected(self):
        with pytest.raises(ValidationError):
            ProcessorConfig(schedule="5 sec")

    def test_invalid_execution_node_rejected(self):
        with pytest.raises(ValidationError):
            ProcessorConfig(execution_node="SOME")


class TestProcessorSpec:
    def test_create_and_configure_are_separate(self):
        spec = ProcessorSpec(
            type="org.apache.nifi.processors.standard.LogAttribute",
            name="Log",
            config=ProcessorConfig(auto_terminated_relationships=["success"]),
        )
        create = spec.create_component()
        assert create == {
            "type": "org.apache.nifi.processors.standard.LogAttribute",
            "name": "Log",
            "position": {"x": 0, "y": 0},
        }
        assert spec.configure_component()["config"]["autoTerminatedRelationships"] == ["success"]

    def test_empty_name_rejected(self):
        with pytest.raises(ValidationError):
            ProcessorSpec(type="x", name="")


class TestGroupsAndContexts:
    def test_process_group_default_position(self):
        assert ProcessGroupSpec(name="CDC").create_component() == {
            "name": "CDC",
            "position": {"x": 100, "y": 100},
        }

    def test_parameter_context_assignment(self):
        assert parameter_context_assignment("ctx-1") == {"parameterContext": {"id": "ctx-1"}}

    def test_parameters_nested_in_envelope(self):
        spec = ParameterContextSpec(
            name="CDC-DB",
            parameters=[
                Parameter(name="DB_HOST", value="postgres"),
                Parameter(name="DB_PASSWORD", value="pw", sensitive=True),
            ],
        )
        component = spec.create_component()
        assert component["name"] == "CDC-DB"
        assert "description" not in component
        assert component["parameters"][0] == {
            "parameter": {"name": "DB_HOST", "value": "postgres", "sensitive": False}
        }
        assert component["parameters"][1]["parameter"]["sensitive"] is True


def test_controller_service_component():
    spec = ControllerServiceSpec(type="org.apache.nifi.dbcp.DBCPConnectionPool", name="Pool", properties={"a": "b"})
    assert spec.create_component() == {
        "name": "Pool",
        "type": "org.apache.nifi.dbcp.DBCPConnectionPool",
        "properties": {"a": "b"},
    }


class TestConnections:
    def test_connection_wire_shape(self):
        spec = ConnectionSpec(
            source=ConnectableRef(id="p1", group_id="pg"),
            destination=ConnectableRef(id="p2", group_id="pg"),
            selected_relationships=["success"],
        )
        assert_dict_subset(
            spec.create_component(),
            {
                "source": {"id": "p1", "type": "PROCESSOR", "groupId": "pg"},
                "destination": {"id": "p2", "type": "PROCESSOR", "groupId": "pg"},
                "selectedRelationships": ["success"],
                "flowFileExpiration": "0 sec",
                "backPressureDataSizeThreshold": "1 GB",
                "backPressureObjectThreshold": "10000",
                "loadBalanceStrategy": "DO_NOT_LOAD_BALANCE",
                "loadBalanceCompression": "DO_NOT_COMPRESS",
            },
        )

    def test_requires_a_relationship(self):
        with pytest.raises(ValidationError):
            ConnectionSpec(
                source=ConnectableRef(id="p1", group_id="pg"),
                destination=ConnectableRef(id="p2", group_id="pg"),
                selected_relationships=[],
            )

    def test_connection_name_is_stable(self):
        assert connection_name("Split Events", "split", "Extract") == "Split Events [split] -> Extract"
