"""Declarative desired topology.

A ``Topology`` is an ordered list of ``ResourceStep`` objects. Each step names
one remote resource (kind + name), the process group it lives in, the steps
it needs first, and the payloads to create and configure it with. Payloads
that reference other resources are callables receiving the ids resolved so
far, keyed by step key.

ARCHITECTURE
────────────
::

    Topology("cdc")
    ├── parameter_context("params", ...)
    ├── process_group("group", ..., parameter_context="params")
    ├── controller_service("dbcp", ..., scope="group")
    ├── processor("read", ..., scope="group", depends_on=("dbcp",))
    └── connection("read-convert", scope="group", source="read", ...)

    validate() → list[str]     check() → raises TopologyError

Steps run in declaration order, so a prerequisite must be declared before
the steps that need it.

Example::

    topology = Topology("demo")
    topology.process_group("group", ProcessGroupSpec(name="Demo"))
    topology.processor("log", ProcessorSpec(type=LOG_ATTRIBUTE, name="Log"), scope="group")
    topology.check()
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any, Union

from flowspine.core.errors import TopologyError
from flowspine.nifi.models import ResourceKind
from flowspine.nifi.payloads import (
    ConnectableRef,
    ConnectionSpec,
    ControllerServiceSpec,
    ParameterContextSpec,
    ProcessGroupSpec,
    ProcessorConfig,
    ProcessorSpec,
    connection_name,
    parameter_context_assignment,
)

# step key -> resolved remote id (real or synthetic) as a string
Resolved = Mapping[str, str]
Payload = Union[dict[str, Any], Callable[[Resolved], dict[str, Any]]]


def render(payload: Payload | None, resolved: Resolved) -> dict[str, Any] | None:
    """Materialise a payload against the ids resolved so far."""
    if payload is None:
        return None
    if callable(payload):
        return payload(resolved)
    return dict(payload)


@dataclass(frozen=True)
class ResourceStep:
    """One desired remote resource.

    Attributes:
        key: Unique key within the topology
        kind: Resource kind
        name: Component name, the find-or-create key
        create: Component body for creation (``name`` is added by the client)
        scope: Key of the enclosing process-group step; None for the root canvas
        depends_on: Keys of further prerequisite steps
        configure: Component body applied with a revisioned write, also on reuse
        enable: Enable the resource after configuration (controller services)
    """

    key: str
    kind: ResourceKind
    name: str
    create: Payload = field(default_factory=dict)
    scope: str | None = None
    depends_on: tuple[str, ...] = ()
    configure: Payload | None = None
    enable: bool = False

    @property
    def prerequisites(self) -> tuple[str, ...]:
        """Scope first, then declared dependencies, without duplicates."""
        keys = ((self.scope,) if self.scope else ()) + tuple(self.depends_on)
        return tuple(dict.fromkeys(keys))


@dataclass
class Topology:
    """Ordered collection of resource steps with builder helpers."""

    name: str
    steps: list[ResourceStep] = field(default_factory=list)

    def __iter__(self) -> Iterator[ResourceStep]:
        return iter(self.steps)

    def __len__(self) -> int:
        return len(self.steps)

    def add(self, step: ResourceStep) -> ResourceStep:
        self.steps.append(step)
        return step

    def step(self, key: str) -> ResourceStep:
        for candidate in self.steps:
            if candidate.key == key:
                return candidate
        raise KeyError(key)

    # ── builders ─────────────────────────────────────────────────

    def parameter_context(self, key: str, spec: ParameterContextSpec) -> ResourceStep:
        return self.add(ResourceStep(
            key=key,
            kind=ResourceKind.PARAMETER_CONTEXT,
            name=spec.name,
            create=spec.create_component(),
        ))

    def process_group(
        self,
        key: str,
        spec: ProcessGroupSpec,
        *,
        scope: str | None = None,
        parameter_context: str | None = None,
    ) -> ResourceStep:
        configure: Payload | None = None
        depends_on: tuple[str, ...] = ()
        if parameter_context is not None:
            depends_on = (parameter_context,)

            def assign(ids: Resolved) -> dict[str, Any]:
                return parameter_context_assignment(ids[parameter_context])

            configure = assign

        return self.add(ResourceStep(
            key=key,
            kind=ResourceKind.PROCESS_GROUP,
            name=spec.name,
            create=spec.create_component(),
            scope=scope,
            depends_on=depends_on,
            configure=configure,
        ))

    def controller_service(
        self,
        key: str,
        spec: ControllerServiceSpec,
        *,
        scope: str,
        enable: bool = True,
    ) -> ResourceStep:
        return self.add(ResourceStep(
            key=key,
            kind=ResourceKind.CONTROLLER_SERVICE,
            name=spec.name,
            create=spec.create_component(),
            scope=scope,
            enable=enable,
        ))

    def processor(
        self,
        key: str,
        spec: ProcessorSpec,
        *,
        scope: str,
        depends_on: tuple[str, ...] = (),
        config: Callable[[Resolved], ProcessorConfig] | None = None,
    ) -> ResourceStep:
        """Add a processor.

        ``config`` builds the configuration from resolved ids when it
        references controller services; otherwise ``spec.config`` is used.
        """
        if config is None:
            configure: Payload = spec.configure_component()
        else:
            def build(ids: Resolved) -> dict[str, Any]:
                return {"config": config(ids).to_wire()}

            configure = build

        return self.add(ResourceStep(
            key=key,
            kind=ResourceKind.PROCESSOR,
            name=spec.name,
            create=spec.create_component(),
            scope=scope,
            depends_on=tuple(depends_on),
            configure=configure,
        ))

    def connection(
        self,
        key: str,
        *,
        scope: str,
        source: str,
        relationship: str,
        destination: str,
    ) -> ResourceStep:
        """Connect two processor steps of the same process group."""
        source_name = self.step(source).name if self.has(source) else source
        destination_name = self.step(destination).name if self.has(destination) else destination

        def create(ids: Resolved) -> dict[str, Any]:
            group_id = ids[scope]
            return ConnectionSpec(
                source=ConnectableRef(id=ids[source], group_id=group_id),
                destination=ConnectableRef(id=ids[destination], group_id=group_id),
                selected_relationships=[relationship],
            ).create_component()

        return self.add(ResourceStep(
            key=key,
            kind=ResourceKind.CONNECTION,
            name=connection_name(source_name, relationship, destination_name),
            create=create,
            scope=scope,
            depends_on=(source, destination),
        ))

    # ── validation ───────────────────────────────────────────────

    def has(self, key: str) -> bool:
        return any(step.key == key for step in self.steps)

    def validate(self) -> list[str]:
        """Return every consistency issue; empty when the topology is usable."""
        issues: list[str] = []
        if not self.steps:
            issues.append(f"Topology '{self.name}' has no steps")

        keys = [s.key for s in self.steps]
        dupes = sorted({k for k in keys if keys.count(k) > 1})
        if dupes:
            issues.append(f"Duplicate step keys: {', '.join(dupes)}")

        kinds = {s.key: s.kind for s in self.steps}
        seen: set[str] = set()
        for step in self.steps:
            for prereq in step.prerequisites:
                if prereq not in kinds:
                    issues.append(f"Step '{step.key}' depends on unknown step '{prereq}'")
                elif prereq not in seen:
                    issues.append(f"Step '{step.key}' depends on '{prereq}', which is declared after it")
            if step.scope is not None and kinds.get(step.scope, ResourceKind.PROCESS_GROUP) is not ResourceKind.PROCESS_GROUP:
                issues.append(f"Step '{step.key}' is scoped to '{step.scope}', which is not a process group")
            if step.kind is ResourceKind.PARAMETER_CONTEXT and step.scope is not None:
                issues.append(f"Parameter context step '{step.key}' cannot be scoped")
            if step.kind not in (ResourceKind.PROCESS_GROUP, ResourceKind.PARAMETER_CONTEXT) and step.scope is None:
                issues.append(f"Step '{step.key}' needs an enclosing process group")
            seen.add(step.key)
        return issues

    def check(self) -> None:
        """Raise ``TopologyError`` listing every issue found by ``validate``."""
        issues = self.validate()
        if issues:
            raise TopologyError(issues)
