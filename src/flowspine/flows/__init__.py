"""Canonical flow topologies, keyed by the name used on the command line."""

from collections.abc import Callable

from flowspine.core.settings import FlowSpineSettings
from flowspine.flows.cdc import build_cdc_topology
from flowspine.flows.outbox import build_outbox_topology
from flowspine.orchestration.topology import Topology

FLOWS: dict[str, Callable[[FlowSpineSettings], Topology]] = {
    "cdc": build_cdc_topology,
    "outbox": build_outbox_topology,
}


def build_topology(flow: str, settings: FlowSpineSettings) -> Topology:
    try:
        builder = FLOWS[flow]
    except KeyError:
        raise ValueError(f"Unknown flow '{flow}'. Available: {', '.join(sorted(FLOWS))}") from None
    return builder(settings)


__all__ = ["FLOWS", "build_cdc_topology", "build_outbox_topology", "build_topology"]
