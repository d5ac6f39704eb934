"""Tests for ``flowspine.orchestration.topology``."""

from __future__ import annotations

import pytest

from flowspine.core.errors import TopologyError
from flowspine.nifi.models import ResourceKind
from flowspine.nifi.payloads import (
    ControllerServiceSpec,
    Parameter,
    ParameterContextSpec,
    ProcessGroupSpec,
    ProcessorConfig,
    ProcessorSpec,
)
from flowspine.orchestration.topology import ResourceStep, Topology, render

LOG = "org.apache.nifi.processors.standard.LogAttribute"


def demo_topology() -> Topology:
    topology = Topology("demo")
    topology.parameter_context("params", ParameterContextSpec(name="Demo-DB", parameters=[Parameter(name="A", value="1")]))
    topology.process_group("group", ProcessGroupSpec(name="Demo"), parameter_context="params")
    topology.controller_service("pool", ControllerServiceSpec(type="Pool", name="Pool"), scope="group")
    topology.processor(
        "read",
        ProcessorSpec(type="ExecuteSQL", name="Read"),
        scope="group",
        depends_on=("pool",),
        config=lambda ids: ProcessorConfig(properties={"Pool": ids["pool"]}),
    )
    topology.processor("log", ProcessorSpec(type=LOG, name="Log"), scope="group")
    topology.connection("read-log", scope="group", source="read", relationship="success", destination="log")
    return topology


class TestBuilders:
    def test_order_and_kinds(self):
        topology = demo_topology()
        assert [s.key for s in topology] == ["params", "group", "pool", "read", "log", "read-log"]
        assert topology.step("pool").kind is ResourceKind.CONTROLLER_SERVICE
        assert len(topology) == 6

    def test_process_group_assigns_parameter_context(self):
        group = demo_topology().step("group")
        assert group.prerequisites == ("params",)
        assert render(group.configure, {"params": "ctx-9"}) == {"parameterContext": {"id": "ctx-9"}}

    def test_process_group_without_context_has_nothing_to_configure(self):
        topology = Topology("t")
        step = topology.process_group("group", ProcessGroupSpec(name="G"))
        assert step.configure is None
        assert step.prerequisites == ()

    def test_controller_services_enabled_by_default(self):
        assert demo_topology().step("pool").enable is True

    def test_processor_config_rendered_from_resolved_ids(self):
        read = demo_topology().step("read")
        assert read.prerequisites == ("group", "pool")
        payload = render(read.configure, {"pool": "cs-1", "group": "pg-1"})
        assert payload["config"]["properties"] == {"Pool": "cs-1"}

    def test_static_processor_config(self):
        log = demo_topology().step("log")
        assert render(log.configure, {})["config"]["schedulingPeriod"] == "0 sec"

    def test_connection_name_and_payload(self):
        conn = demo_topology().step("read-log")
        assert conn.name == "Read [success] -> Log"
        assert conn.prerequisites == ("group", "read", "log")

        payload = render(conn.create, {"group": "pg-1", "read": "p-1", "log": "p-2"})
        assert payload["source"] == {"id": "p-1", "type": "PROCESSOR", "groupId": "pg-1"}
        assert payload["destination"]["id"] == "p-2"
        assert payload["selectedRelationships"] == ["success"]

    def test_step_lookup_unknown(self):
        with pytest.raises(KeyError):
            demo_topology().step("nope")


class TestRender:
    def test_none(self):
        assert render(None, {}) is None

    def test_dict_is_copied(self):
        payload = {"a": 1}
        rendered = render(payload, {})
        rendered["b"] = 2
        assert payload == {"a": 1}


def test_prerequisites_deduplicated():
    step = ResourceStep(key="x", kind=ResourceKind.PROCESSOR, name="X", scope="g", depends_on=("g", "y"))
    assert step.prerequisites == ("g", "y")


class TestValidation:
    def test_valid_topology(self):
        assert demo_topology().validate() == []
        demo_topology().check()

    def test_empty(self):
        assert Topology("empty").validate() == ["Topology 'empty' has no steps"]

    def test_duplicate_keys(self):
        topology = Topology("t")
        topology.process_group("g", ProcessGroupSpec(name="A"))
        topology.process_group("g", ProcessGroupSpec(name="B"))
        assert "Duplicate step keys: g" in topology.validate()

    def test_unknown_prerequisite(self):
        topology = Topology("t")
        topology.process_group("g", ProcessGroupSpec(name="A"))
        topology.processor("p", ProcessorSpec(type=LOG, name="P"), scope="g", depends_on=("ghost",))
        assert topology.validate() == ["Step 'p' depends on unknown step 'ghost'"]

    def test_prerequisite_declared_later(self):
        topology = Topology("t")
        topology.add(ResourceStep(key="p", kind=ResourceKind.PROCESSOR, name="P", scope="g"))
        topology.process_group("g", ProcessGroupSpec(name="A"))
        assert topology.validate() == ["Step 'p' depends on 'g', which is declared after it"]

    def test_scope_must_be_a_process_group(self):
        topology = Topology("t")
        topology.process_group("g", ProcessGroupSpec(name="A"))
        topology.processor("p", ProcessorSpec(type=LOG, name="P"), scope="g")
        topology.processor("q", ProcessorSpec(type=LOG, name="Q"), scope="p")
        assert "Step 'q' is scoped to 'p', which is not a process group" in topology.validate()

    def test_scoped_kinds_need_a_group(self):
        topology = Topology("t")
        topology.add(ResourceStep(key="p", kind=ResourceKind.PROCESSOR, name="P"))
        assert topology.validate() == ["Step 'p' needs an enclosing process group"]

    def test_parameter_context_cannot_be_scoped(self):
        topology = Topology("t")
        topology.process_group("g", ProcessGroupSpec(name="A"))
        topology.add(ResourceStep(key="c", kind=ResourceKind.PARAMETER_CONTEXT, name="C", scope="g"))
        assert "Parameter context step 'c' cannot be scoped" in topology.validate()

    def test_check_raises_with_all_issues(self):
        topology = Topology("t")
        topology.add(ResourceStep(key="p", kind=ResourceKind.PROCESSOR, name="P"))
        topology.add(ResourceStep(key="p", kind=ResourceKind.PROCESSOR, name="P"))
        with pytest.raises(TopologyError) as excinfo:
            topology.check()
        assert len(excinfo.value.issues) == 3
