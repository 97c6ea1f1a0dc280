from __future__ import annotations

import hashlib
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine

from flowregistry.adapters.content import FilesystemContentProvider, InMemoryContentProvider
from flowregistry.adapters.snapshot_codecs import build_process_group_serializer
from flowregistry.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyRegistryUnitOfWork,
    shutdown,
    startup,
)
from flowregistry.app import build_registry_service
from flowregistry.config import (
    ContentBackend,
    ContentConfig,
    DatabaseConfig,
    RegistryConfig,
    StorageConfig,
)
from flowregistry.domain.coordinator import MutationCoordinator
from flowregistry.domain.errors import (
    AlreadyExistsError,
    ConstraintViolationError,
    NotFoundError,
    StaleRevisionError,
)
from flowregistry.domain.model import BundleType, Revision
from flowregistry.domain.registry_service import RegistryService
from flowregistry.domain.revision import RevisionManager
from tests.helpers.flow_contents import make_process_group
from tests.support.racing_unit_of_work import racing_unit_of_work

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator
    from pathlib import Path

    from flowregistry.domain.ports import ContentProvider, RegistryUnitOfWork

ACTOR = "alice"


@pytest.fixture(autouse=True)
def reset_unit_of_work_state() -> Iterator[None]:
    shutdown()
    yield
    shutdown()


def test_flow_revision_scenario(sqlite_registry_service: RegistryService) -> None:
    service = sqlite_registry_service
    bucket = service.create_bucket("Team", ACTOR).entity

    created = service.create_flow(bucket.id, "Ingest", ACTOR, flow_id="flow1")
    updated = service.update_flow(created.revision, ACTOR, description="edited")

    assert created.revision.version == 0
    assert updated.revision.version == 1
    with pytest.raises(StaleRevisionError):
        service.update_flow(Revision("flow1", 0), ACTOR, description="stale")
    assert service.get_flow("flow1").description == "edited"


def test_snapshots_persist_through_metadata_store(
    sqlite_registry_service: RegistryService,
) -> None:
    service = sqlite_registry_service
    bucket = service.create_bucket("Team", ACTOR).entity
    flow = service.create_flow(bucket.id, "Ingest", ACTOR).entity
    contents = make_process_group()

    first = service.create_snapshot(Revision(flow.id, 0), ACTOR, contents, comments="initial")
    second = service.create_snapshot(first.revision, ACTOR, contents)

    assert second.entity.metadata.version == 2
    latest = service.get_latest_snapshot(flow.id)
    assert latest.metadata.version == 2
    assert latest.contents == contents
    assert latest.bucket is not None
    assert latest.bucket.id == bucket.id
    assert [item.comments for item in service.list_snapshots(flow.id)] == [None, "initial"]
    with pytest.raises(AlreadyExistsError):
        service.create_snapshot(second.revision, ACTOR, contents, version=2)


def test_names_are_unique_in_metadata_store(sqlite_registry_service: RegistryService) -> None:
    service = sqlite_registry_service
    bucket = service.create_bucket("Team", ACTOR).entity
    service.create_flow(bucket.id, "Ingest", ACTOR)

    with pytest.raises(ConstraintViolationError):
        service.create_bucket("TEAM", ACTOR)
    with pytest.raises(ConstraintViolationError):
        service.create_flow(bucket.id, "ingest", ACTOR)


def test_bucket_delete_cascades_in_metadata_store(
    sqlite_registry_service: RegistryService,
    flow_content: InMemoryContentProvider,
    bundle_content: InMemoryContentProvider,
) -> None:
    service = sqlite_registry_service
    bucket = service.create_bucket("Team", ACTOR, allow_bundle_redeploy=True).entity
    flow = service.create_flow(bucket.id, "Ingest", ACTOR).entity
    service.create_snapshot(Revision(flow.id, 0), ACTOR, make_process_group())
    bundle = service.create_bundle(
        bucket.id,
        ACTOR,
        bundle_type=BundleType.NIFI_NAR,
        group_id="org.example",
        artifact_id="example-nar",
    ).entity
    first = service.create_bundle_version(Revision(bundle.id, 0), ACTOR, "1.0.0", b"a")
    redeployed = service.create_bundle_version(first.revision, ACTOR, "1.0.0", b"b")
    assert redeployed.entity.sha256_hex == hashlib.sha256(b"b").hexdigest()
    assert len(service.list_bundle_versions(bundle.id)) == 1

    service.delete_bucket(Revision(bucket.id, 0), ACTOR)

    assert service.list_buckets() == []
    assert len(flow_content) == 0
    assert len(bundle_content) == 0
    for entity_id in (bucket.id, flow.id, bundle.id):
        with pytest.raises(NotFoundError):
            service.get_revision(entity_id)


def test_build_registry_service_from_config(tmp_path: Path) -> None:
    storage = StorageConfig(data_dir=tmp_path)
    config = RegistryConfig(
        storage=storage,
        database=DatabaseConfig(uri=storage.database_uri()),
        content=ContentConfig(
            backend=ContentBackend.FILESYSTEM,
            flow_storage_dir=storage.flow_storage_dir(),
            bundle_storage_dir=storage.bundle_storage_dir(),
        ),
    )

    service = build_registry_service(config)
    bucket = service.create_bucket("Team", ACTOR).entity
    flow = service.create_flow(bucket.id, "Ingest", ACTOR).entity
    service.create_snapshot(Revision(flow.id, 0), ACTOR, make_process_group())

    provider = FilesystemContentProvider(storage.flow_storage_dir(), suffix=".snapshot")
    assert provider.content_path(flow.id, 1).is_file()
    assert (tmp_path / "flowregistry.db").is_file()
    assert service.get_snapshot(flow.id, 1).contents == make_process_group()


def test_build_registry_service_accepts_explicit_collaborators(tmp_path: Path) -> None:
    storage = StorageConfig(data_dir=tmp_path)
    config = RegistryConfig(
        storage=storage,
        database=DatabaseConfig(uri="sqlite+pysqlite:///:memory:"),
        content=ContentConfig(
            backend=ContentBackend.S3,
            flow_storage_dir=tmp_path,
            bundle_storage_dir=tmp_path,
        ),
    )
    flows = InMemoryContentProvider()
    bundles = InMemoryContentProvider()

    service = build_registry_service(config, flow_content=flows, bundle_content=bundles)
    bucket = service.create_bucket("Team", ACTOR).entity
    flow = service.create_flow(bucket.id, "Ingest", ACTOR).entity
    service.create_snapshot(Revision(flow.id, 0), ACTOR, make_process_group())

    assert len(flows) == 1


def _registry_service(
    unit_of_work_factory: Callable[[], RegistryUnitOfWork],
    flow_content: ContentProvider,
) -> RegistryService:
    return RegistryService(
        unit_of_work_factory=unit_of_work_factory,
        coordinator=MutationCoordinator(RevisionManager(unit_of_work_factory)),
        flow_content=flow_content,
        bundle_content=InMemoryContentProvider(),
        serializer=build_process_group_serializer(),
    )


def test_snapshot_lost_to_another_process_keeps_winning_content(tmp_path: Path) -> None:
    startup(
        engine=create_engine(f"sqlite+pysqlite:///{tmp_path / 'registry.db'}", future=True),
        force=True,
    )
    flow_content = InMemoryContentProvider()
    winner = _registry_service(SqlAlchemyRegistryUnitOfWork, flow_content)
    bucket = winner.create_bucket("Team", ACTOR).entity
    flow = winner.create_flow(bucket.id, "Ingest", ACTOR).entity
    winning = make_process_group("Winner", identifier="winner-group")

    loser = _registry_service(
        racing_unit_of_work(
            lambda: winner.create_snapshot(Revision(flow.id, 0), ACTOR, winning)
        ),
        flow_content,
    )

    with pytest.raises(StaleRevisionError) as excinfo:
        loser.create_snapshot(
            Revision(flow.id, 0), "bob", make_process_group("Loser", identifier="loser-group")
        )

    assert excinfo.value.current_version == 1
    snapshot = winner.get_snapshot(flow.id, 1)
    assert snapshot.metadata.author == ACTOR
    assert snapshot.contents == winning
    assert [item.version for item in winner.list_snapshots(flow.id)] == [1]


def test_case_distinct_flow_ids_keep_separate_content(
    sqlite_unit_of_work: Callable[[], SqlAlchemyRegistryUnitOfWork], tmp_path: Path
) -> None:
    service = _registry_service(
        sqlite_unit_of_work,
        FilesystemContentProvider(tmp_path / "flows", suffix=".snapshot"),
    )
    bucket = service.create_bucket("Team", ACTOR).entity
    upper = service.create_flow(bucket.id, "Upper", ACTOR, flow_id="Flow-1").entity
    lower = service.create_flow(bucket.id, "Lower", ACTOR, flow_id="flow-1").entity
    service.create_snapshot(
        Revision(upper.id, 0), ACTOR, make_process_group("Upper", identifier="upper-group")
    )
    lower_snapshot = service.create_snapshot(
        Revision(lower.id, 0), ACTOR, make_process_group("Lower", identifier="lower-group")
    )

    service.delete_flow(lower_snapshot.revision, ACTOR)

    assert service.get_snapshot(upper.id, 1).contents.identifier == "upper-group"
    assert [flow.id for flow in service.list_flows(bucket.id)] == ["Flow-1"]
