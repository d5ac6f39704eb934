"""
Revisioned resource client for the NiFi REST API.

Wraps a synchronous ``httpx.Client`` with the handful of operations the
convergence engine needs: probe, authenticate, list-by-name, create, fetch,
revisioned write and run-status write. Responses are mapped onto the typed
error hierarchy in ``flowspine.core.errors``; transport failures become
``NetworkError``.

Dry-run is a flag on the client, not a second implementation. With
``dry_run=True`` no request is ever issued: lookups report "absent", creates
return ``SyntheticId`` values, fetches return revision 0 and writes log the
intended change and return ``revision + 1``. Everything above the client
runs the same code in both modes.

Architecture:
    ::

        ConvergenceEngine / retry controller
                 │
                 ▼
        RevisionedResourceClient ──dry_run──► synthetic ids, no I/O
                 │
                 ▼
        httpx.Client  ──►  {nifi_url}/nifi-api/...

Examples:
    >>> client = RevisionedResourceClient("https://localhost:8443/nifi-api", dry_run=True)
    >>> client.authenticate(Credentials("admin", "secret")).value
    'DRY_RUN_TOKEN'
    >>> client.find_resource_by_name(ResourceKind.PROCESSOR, "dry-root", "Read CDC Slot") is None
    True

Tags:
    nifi, httpx, optimistic-concurrency, dry-run
"""

from __future__ import annotations

import itertools
from collections.abc import Callable
from typing import Any

import httpx

from flowspine.core.errors import (
    ApiError,
    AuthenticationError,
    ConfigurationError,
    CreateError,
    NetworkError,
    NotFoundError,
    OrchestrationError,
    RevisionConflict,
)
from flowspine.core.logging import get_logger
from flowspine.nifi.classify import WriteFailureKind, classify_write_failure
from flowspine.nifi.models import (
    Credentials,
    FetchedResource,
    RealId,
    ResourceId,
    ResourceKind,
    Revision,
    SessionToken,
    SyntheticId,
)

logger = get_logger(__name__)

DRY_RUN_TOKEN = "DRY_RUN_TOKEN"
DRY_RUN_ROOT = SyntheticId("dry-root")


def _counter() -> Callable[[], str]:
    counter = itertools.count(1)
    return lambda: str(next(counter))


class RevisionedResourceClient:
    """Client for revisioned NiFi resources.

    Args:
        base_url: API root, e.g. ``https://localhost:8443/nifi-api``
        http: Transport. Required unless ``dry_run`` is set; the caller owns it.
        dry_run: Short-circuit every remote call.
        disambiguator: Produces the suffix of synthetic ids. Defaults to a
            per-client counter so dry-run output is reproducible.
    """

    def __init__(
        self,
        base_url: str,
        http: httpx.Client | None = None,
        *,
        dry_run: bool = False,
        disambiguator: Callable[[], str] | None = None,
    ):
        if http is None and not dry_run:
            raise ValueError("an httpx.Client is required unless dry_run is set")
        self.base_url = base_url.rstrip("/")
        self.dry_run = dry_run
        self._http = http
        self._token: SessionToken | None = None
        self._disambiguator = disambiguator or _counter()

    @property
    def token(self) -> SessionToken | None:
        return self._token

    # ── transport ────────────────────────────────────────────────

    def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        data: dict[str, str] | None = None,
        authenticated: bool = True,
    ) -> httpx.Response:
        if self._http is None:
            raise OrchestrationError(f"{method} {path} attempted by a dry-run client")
        url = f"{self.base_url}{path}"
        headers: dict[str, str] = {}
        if authenticated and self._token is not None:
            headers["Authorization"] = f"Bearer {self._token.value}"

        logger.debug("http.request", method=method, url=url)
        try:
            response = self._http.request(method, url, json=json, data=data, headers=headers)
        except httpx.TransportError as exc:
            raise NetworkError(f"{method} {url} failed: {exc}", cause=exc).with_context(url=url)
        logger.debug("http.response", method=method, url=url, status=response.status_code)
        return response

    @staticmethod
    def _body(response: httpx.Response) -> dict[str, Any]:
        try:
            body = response.json()
        except ValueError:
            return {}
        return body if isinstance(body, dict) else {}

    # ── session ──────────────────────────────────────────────────

    def probe(self) -> bool:
        """Unauthenticated readiness probe. Any failure means "not ready"."""
        if self.dry_run:
            return True
        try:
            response = self._request("GET", "/system-about", authenticated=False)
        except NetworkError as exc:
            logger.debug("probe.unreachable", error=str(exc.cause or exc))
            return False
        return response.is_success

    def authenticate(self, credentials: Credentials) -> SessionToken:
        """Exchange single-user credentials for a bearer token.

        The token is attached to every later request made by this client.

        Raises:
            AuthenticationError: non-2xx response or empty token body
            NetworkError: the engine could not be reached
        """
        if self.dry_run:
            logger.info("auth.dry_run", username=credentials.username)
            self._token = SessionToken(DRY_RUN_TOKEN, synthetic=True)
            return self._token

        response = self._request(
            "POST",
            "/access/token",
            data={"username": credentials.username, "password": credentials.password},
            authenticated=False,
        )
        token = response.text.strip()
        if not response.is_success or not token:
            raise AuthenticationError(
                f"Failed to obtain an access token for '{credentials.username}' "
                f"(HTTP {response.status_code})"
            ).with_context(http_status=response.status_code, body=response.text)

        logger.info("auth.token_acquired", username=credentials.username)
        self._token = SessionToken(token)
        return self._token

    def root_group_id(self) -> ResourceId:
        """Id of the root process group."""
        if self.dry_run:
            return DRY_RUN_ROOT

        response = self._request("GET", "/flow/process-groups/root")
        if not response.is_success:
            raise ApiError(response.status_code, response.text, "Failed to read the root process group")
        root_id = (self._body(response).get("processGroupFlow") or {}).get("id")
        if not root_id:
            raise NotFoundError(
                "Root process group id missing from response",
                http_status=response.status_code,
                body=response.text,
            )
        return RealId(root_id)

    # ── resources ────────────────────────────────────────────────

    def find_resource_by_name(
        self, kind: ResourceKind, scope: ResourceId | str | None, name: str
    ) -> ResourceId | None:
        """First resource of ``kind`` in ``scope`` whose component name equals ``name``."""
        if self.dry_run:
            return None

        response = self._request("GET", kind.list_path(self._scope(kind, scope)))
        if not response.is_success:
            raise ApiError(
                response.status_code, response.text, f"Failed to list {kind.label}s"
            ).with_context(resource_kind=kind.value, resource_name=name)

        for item in kind.list_items(self._body(response)):
            component = item.get("component") or {}
            if component.get("name") == name:
                found = item.get("id") or component.get("id")
                if found:
                    return RealId(found)
        return None

    def create_resource(
        self,
        kind: ResourceKind,
        scope: ResourceId | str | None,
        name: str,
        component: dict[str, Any],
    ) -> tuple[ResourceId, Revision]:
        """Create a resource at revision 0.

        Raises:
            CreateError: non-2xx response or a response without an id
        """
        if self.dry_run:
            synthetic = SyntheticId.for_resource(kind, name, self._disambiguator())
            logger.info("resource.create.dry_run", kind=kind.value, name=name, id=synthetic.value)
            logger.debug("resource.create.intended", kind=kind.value, name=name, component=component)
            return synthetic, Revision(0)

        path = kind.create_path(self._scope(kind, scope))
        body = {"revision": Revision(0).to_wire(), "component": {**component, "name": name}}
        response = self._request("POST", path, json=body)
        if not response.is_success:
            raise CreateError(response.status_code, response.text).with_context(
                resource_kind=kind.value, resource_name=name, url=f"{self.base_url}{path}"
            )

        payload = self._body(response)
        created = payload.get("id")
        if not created:
            raise CreateError(
                response.status_code, response.text, "Create response carried no id"
            ).with_context(resource_kind=kind.value, resource_name=name)
        return RealId(created), Revision.from_wire(payload.get("revision"))

    def fetch_resource(self, kind: ResourceKind, resource_id: ResourceId) -> FetchedResource:
        """Current payload and revision of a resource.

        Raises:
            NotFoundError: non-2xx response, or the payload id is absent or null
        """
        if self.dry_run:
            return FetchedResource(resource_id, {}, Revision(0))

        response = self._request("GET", kind.item_path(str(resource_id)))
        payload = self._body(response) if response.is_success else {}
        if not payload.get("id"):
            raise NotFoundError(
                f"Could not read {kind.label} {resource_id}",
                http_status=response.status_code,
                body=response.text,
            ).with_context(resource_kind=kind.value, resource_id=str(resource_id))
        return FetchedResource(resource_id, payload, Revision.from_wire(payload.get("revision")))

    def write_resource(
        self,
        kind: ResourceKind,
        resource_id: ResourceId,
        revision: Revision,
        component: dict[str, Any],
    ) -> Revision:
        """Revisioned update; ``revision`` must come from a fetch in the same operation.

        Raises:
            RevisionConflict: the revision was stale
            ConfigurationError: any other rejected write
        """
        if self.dry_run:
            logger.info(
                "resource.write.dry_run",
                kind=kind.value,
                id=str(resource_id),
                fields=sorted(component),
            )
            logger.debug("resource.write.intended", kind=kind.value, id=str(resource_id), component=component)
            return revision.next()

        body = {"revision": revision.to_wire(), "component": {**component, "id": str(resource_id)}}
        response = self._request("PUT", kind.item_path(str(resource_id)), json=body)
        return self._accepted_revision(response, kind, resource_id, revision)

    def write_run_status(
        self,
        kind: ResourceKind,
        resource_id: ResourceId,
        revision: Revision,
        state: str,
    ) -> Revision:
        """Revisioned run-status change, e.g. enabling a controller service."""
        if self.dry_run:
            logger.info("resource.run_status.dry_run", kind=kind.value, id=str(resource_id), state=state)
            return revision.next()

        body = {"revision": revision.to_wire(), "state": state}
        response = self._request("PUT", f"{kind.item_path(str(resource_id))}/run-status", json=body)
        return self._accepted_revision(response, kind, resource_id, revision)

    # ── helpers ──────────────────────────────────────────────────

    def _accepted_revision(
        self,
        response: httpx.Response,
        kind: ResourceKind,
        resource_id: ResourceId,
        presented: Revision,
    ) -> Revision:
        if response.status_code == 200:
            wire = self._body(response).get("revision")
            return Revision.from_wire(wire) if wire else presented.next()

        context = {"resource_kind": kind.value, "resource_id": str(resource_id)}
        if classify_write_failure(response.status_code, response.text) is WriteFailureKind.RETRYABLE:
            raise RevisionConflict(response.status_code, response.text).with_context(**context)
        raise ConfigurationError(response.status_code, response.text).with_context(**context)

    @staticmethod
    def _scope(kind: ResourceKind, scope: ResourceId | str | None) -> str | None:
        if not kind.scoped:
            return None
        if scope is None:
            raise ValueError(f"{kind.label} requires an enclosing process group")
        return str(scope)
