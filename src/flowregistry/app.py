"""Application composition: wire adapters into a ready registry service."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from flowregistry.adapters.content import build_content_providers
from flowregistry.adapters.snapshot_codecs import build_process_group_serializer
from flowregistry.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyRegistryUnitOfWork,
    is_started,
    startup,
)
from flowregistry.config import get_registry_config
from flowregistry.domain.coordinator import MutationCoordinator
from flowregistry.domain.registry_service import RegistryService
from flowregistry.domain.revision import RevisionManager

if TYPE_CHECKING:
    from collections.abc import Callable

    from sqlalchemy.engine import Engine

    from flowregistry.config import RegistryConfig
    from flowregistry.domain.ports import ContentProvider, RegistryUnitOfWork

type UnitOfWorkFactory = Callable[[], RegistryUnitOfWork]

log = getLogger(__name__)


def build_registry_service(
    config: RegistryConfig | None = None,
    *,
    engine: Engine | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    flow_content: ContentProvider | None = None,
    bundle_content: ContentProvider | None = None,
) -> RegistryService:
    """Build a ``RegistryService`` from configuration.

    Any collaborator passed explicitly replaces the configured one. Without a
    ``unit_of_work_factory`` the SQLAlchemy adapter is started (and migrated)
    on first use.
    """

    effective_config = config or get_registry_config()

    if unit_of_work_factory is None:
        if not is_started():
            startup(engine=engine, database_uri=effective_config.database.uri)
        unit_of_work_factory = SqlAlchemyRegistryUnitOfWork

    if flow_content is None or bundle_content is None:
        configured_flow, configured_bundle = build_content_providers(effective_config.content)
        if flow_content is None:
            flow_content = configured_flow
        if bundle_content is None:
            bundle_content = configured_bundle

    log.info("Building registry service with %s content", effective_config.content.backend)
    coordinator = MutationCoordinator(RevisionManager(unit_of_work_factory))
    return RegistryService(
        unit_of_work_factory=unit_of_work_factory,
        coordinator=coordinator,
        flow_content=flow_content,
        bundle_content=bundle_content,
        serializer=build_process_group_serializer(),
    )
