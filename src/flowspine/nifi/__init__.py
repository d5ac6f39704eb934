"""NiFi REST API: resource model, payloads and the revisioned client."""

from flowspine.nifi.classify import WriteFailureKind, classify_write_failure, is_revision_conflict
from flowspine.nifi.client import DRY_RUN_ROOT, DRY_RUN_TOKEN, RevisionedResourceClient
from flowspine.nifi.models import (
    Credentials,
    FetchedResource,
    RealId,
    ResourceId,
    ResourceIdentity,
    ResourceKind,
    Revision,
    SessionToken,
    SyntheticId,
)

__all__ = [
    "DRY_RUN_ROOT",
    "DRY_RUN_TOKEN",
    "Credentials",
    "FetchedResource",
    "RealId",
    "ResourceId",
    "ResourceIdentity",
    "ResourceKind",
    "Revision",
    "RevisionedResourceClient",
    "SessionToken",
    "SyntheticId",
    "WriteFailureKind",
    "classify_write_failure",
    "is_revision_conflict",
]
