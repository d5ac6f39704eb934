"""Setup runner: readiness gate → authenticate → root group → converge."""

from __future__ import annotations

import time
from collections.abc import Callable

import httpx

from flowspine.core.logging import LogContext, get_logger
from flowspine.core.settings import FlowSpineSettings
from flowspine.execution.readiness import wait_until_ready
from flowspine.nifi.client import RevisionedResourceClient
from flowspine.nifi.models import Credentials
from flowspine.orchestration.converge import ConvergenceEngine
from flowspine.orchestration.report import ConvergenceReport
from flowspine.orchestration.topology import Topology

logger = get_logger(__name__)


class SetupRunner:
    """Runs one topology end to end against the engine described by ``settings``.

    Owns the ``httpx.Client`` it creates. Pass ``http`` to supply a client
    (tests use one backed by ``httpx.MockTransport``); a supplied client is
    left open.

    Example::

        settings = FlowSpineSettings()
        settings.validate_required()
        report = SetupRunner(settings, dry_run=True).run(build_cdc_topology(settings))
        print(report.summary())
    """

    def __init__(
        self,
        settings: FlowSpineSettings,
        *,
        dry_run: bool = False,
        http: httpx.Client | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.settings = settings
        self.dry_run = dry_run
        self._http = http
        self._sleep = sleep
        self._clock = clock

    def _open_http(self) -> httpx.Client:
        return httpx.Client(
            verify=self.settings.verify_tls,
            timeout=self.settings.request_timeout,
        )

    def run(self, topology: Topology) -> ConvergenceReport:
        """Converge ``topology``.

        Raises:
            TopologyError: inconsistent topology (checked before any remote call)
            ReadinessTimeoutError: the engine never answered its probe
            AuthenticationError: credentials rejected
            NetworkError: transport failure after readiness
        """
        topology.check()

        owned = self._http is None
        http = self._http if self._http is not None else self._open_http()
        try:
            with LogContext(flow=topology.name, dry_run=self.dry_run):
                return self._run(topology, http)
        finally:
            if owned:
                http.close()

    def _run(self, topology: Topology, http: httpx.Client) -> ConvergenceReport:
        settings = self.settings
        client = RevisionedResourceClient(settings.nifi_api_url, http, dry_run=self.dry_run)

        logger.info("run.started", nifi_url=settings.nifi_url)
        wait_until_ready(
            client.probe,
            settings.readiness_max_attempts,
            settings.readiness_interval,
            dry_run=self.dry_run,
            sleep=self._sleep,
            clock=self._clock,
        )
        client.authenticate(
            Credentials(settings.nifi_username, settings.nifi_password.get_secret_value())
        )
        root = client.root_group_id()
        logger.info("run.root_group", id=str(root))

        engine = ConvergenceEngine(
            client,
            write_max_attempts=settings.write_max_attempts,
            write_retry_delay=settings.write_retry_delay,
            sleep=self._sleep,
        )
        report = engine.converge(topology, root)
        logger.info("run.finished", summary=report.summary(), ok=report.ok)
        return report
