"""Orchestration: desired topology, convergence engine, run report and setup runner."""

from flowspine.orchestration.converge import ConvergenceEngine
from flowspine.orchestration.report import ConvergenceReport, StepOutcome, StepReport
from flowspine.orchestration.runner import SetupRunner
from flowspine.orchestration.topology import ResourceStep, Topology

__all__ = [
    "ConvergenceEngine",
    "ConvergenceReport",
    "ResourceStep",
    "SetupRunner",
    "StepOutcome",
    "StepReport",
    "Topology",
]
