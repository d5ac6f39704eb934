"""Idempotent resource convergence.

``ConvergenceEngine`` walks a ``Topology`` in declared order and drives each
step towards its desired state with find-or-create semantics:

    1. any prerequisite unresolved   → SKIPPED (no remote call)
    2. found by name in its scope    → REUSED
    3. otherwise created             → CREATED  (create failure → FAILED)
    4. configure payload, if any     → revisioned write with conflict retry
    5. enable, if requested          → revisioned run-status write

A failure is recorded on its step and the run continues; dependents of a
failed step are skipped. Authentication, transport and other unexpected
errors propagate to the caller.

Re-running against an engine that already holds every resource creates
nothing: every step reports REUSED.
"""

from __future__ import annotations

import time
from collections.abc import Callable

from flowspine.core.errors import CreateError, DependencyMissingError, FlowSpineError
from flowspine.core.logging import get_logger
from flowspine.execution.retry import (
    DEFAULT_DELAY,
    DEFAULT_MAX_ATTEMPTS,
    WriteOutcome,
    configure_with_retry,
    retry_revisioned_write,
)
from flowspine.nifi.client import RevisionedResourceClient
from flowspine.nifi.models import FetchedResource, ResourceId, Revision
from flowspine.orchestration.report import ConvergenceReport, StepOutcome, StepReport
from flowspine.orchestration.topology import ResourceStep, Topology, render

logger = get_logger(__name__)

ENABLED = "ENABLED"


class ConvergenceEngine:
    """Converges a topology through a ``RevisionedResourceClient``.

    The engine has no dry-run branch of its own; the client's ``dry_run``
    flag decides whether anything reaches the network.
    """

    def __init__(
        self,
        client: RevisionedResourceClient,
        *,
        write_max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        write_retry_delay: float = DEFAULT_DELAY,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.client = client
        self.write_max_attempts = write_max_attempts
        self.write_retry_delay = write_retry_delay
        self._sleep = sleep

    def converge(self, topology: Topology, root: ResourceId) -> ConvergenceReport:
        """Converge every step of ``topology`` under the root process group ``root``.

        Raises:
            TopologyError: the topology is inconsistent (raised before any remote call)
        """
        topology.check()

        report = ConvergenceReport(topology=topology.name, dry_run=self.client.dry_run)
        resolved: dict[str, ResourceId] = {}
        logger.info("converge.started", topology=topology.name, steps=len(topology))

        for step in topology:
            report.add(self._converge_step(step, root, resolved))

        report.mark_complete()
        logger.info(
            "converge.finished",
            topology=topology.name,
            ok=report.ok,
            **{k.lower(): v for k, v in report.counts().items()},
        )
        return report

    # ── per step ─────────────────────────────────────────────────

    def _converge_step(
        self,
        step: ResourceStep,
        root: ResourceId,
        resolved: dict[str, ResourceId],
    ) -> StepReport:
        log = logger.bind(step=step.key, kind=step.kind.value, name=step.name)

        missing = [key for key in step.prerequisites if key not in resolved]
        if missing:
            error = DependencyMissingError(step.key, missing).with_context(
                resource_kind=step.kind.value, resource_name=step.name
            )
            log.warning("dependency.missing", missing=missing)
            skipped = self._report(step, StepOutcome.SKIPPED)
            skipped.record_error(error)
            return skipped

        scope = resolved[step.scope] if step.scope else (root if step.kind.scoped else None)
        ids = {key: str(value) for key, value in resolved.items()}

        existing = self.client.find_resource_by_name(step.kind, scope, step.name)
        if existing is not None:
            log.info("resource.reusing", id=str(existing))
            resource_id = existing
            outcome = StepOutcome.REUSED
        else:
            try:
                resource_id, _ = self.client.create_resource(
                    step.kind, scope, step.name, render(step.create, ids) or {}
                )
            except CreateError as exc:
                log.error("resource.create_failed", http_status=exc.http_status, body=exc.body)
                failed = self._report(step, StepOutcome.FAILED)
                failed.record_error(exc)
                return failed
            log.info("resource.created", id=str(resource_id))
            outcome = StepOutcome.CREATED

        # the resource exists from here on, even if configuring it fails
        resolved[step.key] = resource_id
        result = self._report(step, outcome, resource_id)

        component = render(step.configure, ids)
        if component:
            write = configure_with_retry(
                self.client,
                step.kind,
                resource_id,
                component,
                max_attempts=self.write_max_attempts,
                delay=self.write_retry_delay,
                sleep=self._sleep,
                label=step.name,
            )
            result.write_attempts += write.attempts
            if not write.ok:
                return self._fail(result, write)
            result.configured = True

        if step.enable:
            write = self._enable(step, resource_id)
            result.write_attempts += write.attempts
            if not write.ok:
                return self._fail(result, write)
            result.enabled = True

        return result

    def _enable(self, step: ResourceStep, resource_id: ResourceId) -> WriteOutcome:
        def enable(fetched: FetchedResource) -> Revision:
            if fetched.component.get("state") == ENABLED:
                logger.info("resource.already_enabled", kind=step.kind.value, name=step.name)
                return fetched.revision
            return self.client.write_run_status(step.kind, resource_id, fetched.revision, ENABLED)

        return retry_revisioned_write(
            self.client,
            step.kind,
            resource_id,
            enable,
            max_attempts=self.write_max_attempts,
            delay=self.write_retry_delay,
            sleep=self._sleep,
            label=step.name,
        )

    @staticmethod
    def _fail(result: StepReport, write: WriteOutcome) -> StepReport:
        result.outcome = StepOutcome.FAILED
        if isinstance(write.error, FlowSpineError):
            result.record_error(write.error.with_context(resource_name=result.name))
        return result

    @staticmethod
    def _report(
        step: ResourceStep, outcome: StepOutcome, resource_id: ResourceId | None = None
    ) -> StepReport:
        return StepReport(
            key=step.key,
            kind=step.kind.value,
            name=step.name,
            outcome=outcome,
            resource_id=resource_id.value if resource_id is not None else None,
            synthetic=bool(resource_id is not None and resource_id.is_synthetic),
        )
