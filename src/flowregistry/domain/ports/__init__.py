"""Domain port definitions for adapters."""

from __future__ import annotations

from .content import ContentProvider, ContentVersion
from .persistence import (
    BucketRepository,
    BundleVersionRepository,
    ExtensionBundleRepository,
    FlowRepository,
    FlowSnapshotRepository,
    Repository,
    RevisionRepository,
)
from .unit_of_work import (
    RegistryRepositories,
    RegistryUnitOfWork,
    RepositoryCollection,
    UnitOfWork,
)

__all__ = [
    "BucketRepository",
    "BundleVersionRepository",
    "ContentProvider",
    "ContentVersion",
    "ExtensionBundleRepository",
    "FlowRepository",
    "FlowSnapshotRepository",
    "RegistryRepositories",
    "RegistryUnitOfWork",
    "Repository",
    "RepositoryCollection",
    "RevisionRepository",
    "UnitOfWork",
]
