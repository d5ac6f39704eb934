"""Local mirror of the engine's object model.

These types only drive convergence decisions; the engine owns the real
objects.

- ``ResourceKind`` — the five resource kinds and their REST paths.
- ``Revision`` — optimistic-concurrency stamp ``{version, clientId?}``.
- ``RealId`` / ``SyntheticId`` — the ``ResourceId`` sum type. Dry-run runs
  produce ``SyntheticId``; real runs produce ``RealId``. Both expose
  ``.value`` and ``str()`` so downstream steps never branch on mode.
- ``FetchedResource`` — payload plus revision from a read.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union


class ResourceKind(str, Enum):
    """Remote resource kinds managed by the convergence engine."""

    PROCESS_GROUP = "process-group"
    PARAMETER_CONTEXT = "parameter-context"
    CONTROLLER_SERVICE = "controller-service"
    PROCESSOR = "processor"
    CONNECTION = "connection"

    @property
    def label(self) -> str:
        return self.value.replace("-", " ")

    @property
    def scoped(self) -> bool:
        """Parameter contexts are global; everything else lives in a process group."""
        return self is not ResourceKind.PARAMETER_CONTEXT

    def list_path(self, scope: str | None) -> str:
        if self is ResourceKind.PROCESS_GROUP:
            return f"/flow/process-groups/{scope}"
        if self is ResourceKind.PARAMETER_CONTEXT:
            return "/flow/parameter-contexts"
        if self is ResourceKind.CONTROLLER_SERVICE:
            return f"/flow/process-groups/{scope}/controller-services"
        if self is ResourceKind.PROCESSOR:
            return f"/process-groups/{scope}/processors"
        return f"/process-groups/{scope}/connections"

    def list_items(self, body: dict[str, Any]) -> list[dict[str, Any]]:
        """Extract the entity list from a list response."""
        if self is ResourceKind.PROCESS_GROUP:
            flow = (body.get("processGroupFlow") or {}).get("flow") or {}
            return flow.get("processGroups") or []
        key = {
            ResourceKind.PARAMETER_CONTEXT: "parameterContexts",
            ResourceKind.CONTROLLER_SERVICE: "controllerServices",
            ResourceKind.PROCESSOR: "processors",
            ResourceKind.CONNECTION: "connections",
        }[self]
        return body.get(key) or []

    def create_path(self, scope: str | None) -> str:
        if self is ResourceKind.PARAMETER_CONTEXT:
            return "/parameter-contexts"
        collection = {
            ResourceKind.PROCESS_GROUP: "process-groups",
            ResourceKind.CONTROLLER_SERVICE: "controller-services",
            ResourceKind.PROCESSOR: "processors",
            ResourceKind.CONNECTION: "connections",
        }[self]
        return f"/process-groups/{scope}/{collection}"

    def item_path(self, resource_id: str) -> str:
        return f"/{self.value}s/{resource_id}"


@dataclass(frozen=True)
class Revision:
    """Optimistic-concurrency stamp attached to every mutable resource."""

    version: int = 0
    client_id: str | None = None

    def __post_init__(self) -> None:
        if self.version < 0:
            raise ValueError(f"revision version must be >= 0, got {self.version}")

    def to_wire(self) -> dict[str, Any]:
        wire: dict[str, Any] = {"version": self.version}
        if self.client_id:
            wire["clientId"] = self.client_id
        return wire

    @classmethod
    def from_wire(cls, data: dict[str, Any] | None) -> Revision:
        data = data or {}
        version = data.get("version")
        return cls(
            version=int(version) if version is not None else 0,
            client_id=data.get("clientId") or None,
        )

    def next(self) -> Revision:
        return Revision(self.version + 1, self.client_id)


_SLUG = re.compile(r"[^A-Za-z0-9]+")


def slugify(name: str) -> str:
    return _SLUG.sub("-", name).strip("-") or "unnamed"


@dataclass(frozen=True)
class RealId:
    """Server-issued resource id."""

    value: str

    is_synthetic = False

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class SyntheticId:
    """Dry-run placeholder id, accepted wherever a real id is."""

    value: str

    is_synthetic = True

    def __str__(self) -> str:
        return self.value

    @classmethod
    def for_resource(cls, kind: ResourceKind, name: str, token: str) -> SyntheticId:
        return cls(f"dry-{kind.value}-{slugify(name)}-{token}")


ResourceId = Union[RealId, SyntheticId]


@dataclass(frozen=True)
class ResourceIdentity:
    """``(kind, name)`` key plus the id it resolved to."""

    kind: ResourceKind
    name: str
    remote_id: ResourceId


@dataclass(frozen=True)
class SessionToken:
    """Bearer token returned by the engine's access endpoint."""

    value: str
    synthetic: bool = False

    def __str__(self) -> str:
        return self.value

    def __repr__(self) -> str:
        return f"SessionToken(synthetic={self.synthetic})"


@dataclass(frozen=True)
class Credentials:
    username: str
    password: str = field(repr=False)


@dataclass(frozen=True)
class FetchedResource:
    """Current state of a resource and the revision to present on the next write."""

    resource_id: ResourceId
    payload: dict[str, Any]
    revision: Revision

    @property
    def component(self) -> dict[str, Any]:
        return self.payload.get("component") or {}
