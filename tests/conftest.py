from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.pool import StaticPool

from flowregistry.adapters.content import InMemoryContentProvider
from flowregistry.adapters.snapshot_codecs import build_process_group_serializer
from flowregistry.adapters.sqlalchemy import start_mappers
from flowregistry.adapters.sqlalchemy.migrations import upgrade_head
from flowregistry.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyRegistryUnitOfWork,
    shutdown,
    startup,
)
from flowregistry.domain.coordinator import MutationCoordinator
from flowregistry.domain.registry_service import RegistryService
from flowregistry.domain.revision import RevisionManager
from tests.support.fake_unit_of_work import InMemoryRegistryStore

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    start_mappers()
    upgrade_head(engine=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_unit_of_work(
    sqlite_engine: Engine,
) -> Iterator[Callable[[], SqlAlchemyRegistryUnitOfWork]]:
    startup(engine=sqlite_engine, force=True)

    def factory() -> SqlAlchemyRegistryUnitOfWork:
        return SqlAlchemyRegistryUnitOfWork()

    try:
        yield factory
    finally:
        shutdown()


@pytest.fixture
def registry_store() -> InMemoryRegistryStore:
    return InMemoryRegistryStore()


@pytest.fixture
def flow_content() -> InMemoryContentProvider:
    return InMemoryContentProvider()


@pytest.fixture
def bundle_content() -> InMemoryContentProvider:
    return InMemoryContentProvider()


@pytest.fixture
def registry_service(
    registry_store: InMemoryRegistryStore,
    flow_content: InMemoryContentProvider,
    bundle_content: InMemoryContentProvider,
) -> RegistryService:
    factory = registry_store.unit_of_work_factory()
    return RegistryService(
        unit_of_work_factory=factory,
        coordinator=MutationCoordinator(RevisionManager(factory)),
        flow_content=flow_content,
        bundle_content=bundle_content,
        serializer=build_process_group_serializer(),
    )


@pytest.fixture
def sqlite_registry_service(
    sqlite_unit_of_work: Callable[[], SqlAlchemyRegistryUnitOfWork],
    flow_content: InMemoryContentProvider,
    bundle_content: InMemoryContentProvider,
) -> RegistryService:
    return RegistryService(
        unit_of_work_factory=sqlite_unit_of_work,
        coordinator=MutationCoordinator(RevisionManager(sqlite_unit_of_work)),
        flow_content=flow_content,
        bundle_content=bundle_content,
        serializer=build_process_group_serializer(),
    )
