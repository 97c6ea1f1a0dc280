"""SQLAlchemy adapter package for the registry metadata store."""

from __future__ import annotations

from .mappings import create_all_tables, mapper_registry, start_mappers
from .repositories import (
    SqlAlchemyBucketRepository,
    SqlAlchemyBundleVersionRepository,
    SqlAlchemyExtensionBundleRepository,
    SqlAlchemyFlowRepository,
    SqlAlchemyFlowSnapshotRepository,
    SqlAlchemyRevisionRepository,
)
from .unit_of_work import (
    SqlAlchemyRegistryUnitOfWork,
    StartupError,
    configured_engine,
    shutdown,
    startup,
)

__all__ = [
    "SqlAlchemyBucketRepository",
    "SqlAlchemyBundleVersionRepository",
    "SqlAlchemyExtensionBundleRepository",
    "SqlAlchemyFlowRepository",
    "SqlAlchemyFlowSnapshotRepository",
    "SqlAlchemyRegistryUnitOfWork",
    "SqlAlchemyRevisionRepository",
    "StartupError",
    "configured_engine",
    "create_all_tables",
    "mapper_registry",
    "shutdown",
    "start_mappers",
    "startup",
]
