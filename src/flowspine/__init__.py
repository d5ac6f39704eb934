"""
flow-spine - provision CDC and Outbox flows in Apache NiFi.

Subpackages:
- flowspine.core: errors, logging, settings
- flowspine.nifi: revisioned REST client and payload builders
- flowspine.execution: retry controller and readiness gate
- flowspine.orchestration: desired topology and convergence engine
- flowspine.flows: the canonical CDC and Outbox topologies
- flowspine.database: PostgreSQL preflight checks
- flowspine.cli: the ``flowspine`` command
"""

__version__ = "0.1.0"
