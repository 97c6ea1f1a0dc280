"""Public domain model surface."""

from __future__ import annotations

from flowregistry.domain.model.entity import Entity, new_id, utcnow
from flowregistry.domain.model.enums import BucketItemType, BundleType, PortType
from flowregistry.domain.model.flow_contents import (
    BundleCoordinate,
    ExternalControllerServiceReference,
    Position,
    VersionedComponent,
    VersionedConnection,
    VersionedControllerService,
    VersionedPort,
    VersionedProcessGroup,
    VersionedProcessor,
)
from flowregistry.domain.model.registry import (
    Bucket,
    BucketItem,
    BundleVersionMetadata,
    ExtensionBundle,
    FlowSnapshot,
    FlowSnapshotMetadata,
    VersionedFlow,
)
from flowregistry.domain.model.revision import EntityModification, Revision, RevisionUpdate

__all__ = [  # noqa: RUF022
    # base
    "Entity",
    "new_id",
    "utcnow",
    # revisions
    "Revision",
    "EntityModification",
    "RevisionUpdate",
    # registry records
    "Bucket",
    "BucketItem",
    "VersionedFlow",
    "ExtensionBundle",
    "FlowSnapshotMetadata",
    "FlowSnapshot",
    "BundleVersionMetadata",
    # flow contents
    "Position",
    "BundleCoordinate",
    "VersionedComponent",
    "VersionedProcessor",
    "VersionedPort",
    "VersionedConnection",
    "VersionedControllerService",
    "ExternalControllerServiceReference",
    "VersionedProcessGroup",
    # enums
    "BucketItemType",
    "BundleType",
    "PortType",
]
