"""Tests for SQLAlchemy repositories."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import pytest

from flowregistry.domain.errors import AlreadyExistsError
from flowregistry.domain.model import (
    Bucket,
    BundleType,
    BundleVersionMetadata,
    ExtensionBundle,
    FlowSnapshotMetadata,
    Revision,
    VersionedFlow,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from flowregistry.adapters.sqlalchemy import SqlAlchemyRegistryUnitOfWork

type UnitOfWorkFactory = Callable[[], SqlAlchemyRegistryUnitOfWork]


def _seed_bucket(factory: UnitOfWorkFactory, name: str = "Team") -> Bucket:
    bucket = Bucket(name=name, description="shared")
    with factory() as uow:
        uow.repositories.buckets.add(bucket)
        uow.commit()
    return bucket


def test_bucket_repository_round_trip(sqlite_unit_of_work: UnitOfWorkFactory) -> None:
    bucket = _seed_bucket(sqlite_unit_of_work)

    with sqlite_unit_of_work() as uow:
        loaded = uow.repositories.buckets.get(bucket.id)
        by_name = uow.repositories.buckets.find_by_name("TEAM")

    assert loaded is not None
    assert loaded.name == "Team"
    assert loaded.created_at.tzinfo is not None
    assert loaded.allow_bundle_redeploy is False
    assert [item.id for item in by_name] == [bucket.id]


def test_flow_repository_filters_by_bucket(sqlite_unit_of_work: UnitOfWorkFactory) -> None:
    first = _seed_bucket(sqlite_unit_of_work, "First")
    second = _seed_bucket(sqlite_unit_of_work, "Second")
    with sqlite_unit_of_work() as uow:
        uow.repositories.flows.add(VersionedFlow(bucket_id=first.id, name="b-flow"))
        uow.repositories.flows.add(VersionedFlow(bucket_id=first.id, name="a-flow"))
        uow.repositories.flows.add(VersionedFlow(bucket_id=second.id, name="a-flow"))
        uow.commit()

    with sqlite_unit_of_work() as uow:
        flows = uow.repositories.flows.list_by_bucket(first.id)
        matches = uow.repositories.flows.find_by_name(first.id, "A-FLOW")

    assert [flow.name for flow in flows] == ["a-flow", "b-flow"]
    assert len(matches) == 1
    assert matches[0].bucket_id == first.id


def test_snapshot_repository_orders_versions(sqlite_unit_of_work: UnitOfWorkFactory) -> None:
    bucket = _seed_bucket(sqlite_unit_of_work)
    flow = VersionedFlow(bucket_id=bucket.id, name="Ingest")
    with sqlite_unit_of_work() as uow:
        uow.repositories.flows.add(flow)
        for version in (1, 3, 2):
            uow.repositories.snapshots.add(
                FlowSnapshotMetadata(bucket_id=bucket.id, flow_id=flow.id, version=version)
            )
        uow.commit()

    with sqlite_unit_of_work() as uow:
        snapshots = uow.repositories.snapshots
        latest = snapshots.latest(flow.id)
        versions = [item.version for item in snapshots.list_by_flow(flow.id)]
        second = snapshots.get(flow.id, 2)
        missing = snapshots.get(flow.id, 4)

    assert latest is not None
    assert latest.version == 3
    assert versions == [3, 2, 1]
    assert second is not None
    assert missing is None


def test_bundle_repositories(sqlite_unit_of_work: UnitOfWorkFactory) -> None:
    bucket = _seed_bucket(sqlite_unit_of_work)
    bundle = ExtensionBundle(
        bucket_id=bucket.id,
        name="example-nar",
        bundle_type=BundleType.MINIFI_CPP,
        group_id="org.example",
        artifact_id="example-nar",
    )
    base = datetime.now(tz=UTC)
    with sqlite_unit_of_work() as uow:
        uow.repositories.bundles.add(bundle)
        for offset, version in enumerate(("1.1.0", "1.0.0")):
            uow.repositories.bundle_versions.add(
                BundleVersionMetadata(
                    bundle_id=bundle.id,
                    bucket_id=bucket.id,
                    version=version,
                    sha256_hex="0" * 64,
                    content_size=3,
                    created_at=base + timedelta(seconds=offset),
                )
            )
        uow.commit()

    with sqlite_unit_of_work() as uow:
        found = uow.repositories.bundles.find_by_coordinate(
            bucket.id, "org.example", "example-nar"
        )
        absent = uow.repositories.bundles.find_by_coordinate(bucket.id, "org.example", "other")
        versions = uow.repositories.bundle_versions.list_by_bundle(bundle.id)
        one = uow.repositories.bundle_versions.get(bundle.id, "1.0.0")

    assert found is not None
    assert found.bundle_type is BundleType.MINIFI_CPP
    assert absent is None
    assert [item.version for item in versions] == ["1.1.0", "1.0.0"]
    assert one is not None
    assert one.content_size == 3


def test_revision_repository_compare_and_set(sqlite_unit_of_work: UnitOfWorkFactory) -> None:
    with sqlite_unit_of_work() as uow:
        uow.repositories.revisions.add(Revision("flow1", 0, "client-a"))
        uow.commit()

    with sqlite_unit_of_work() as uow:
        revisions = uow.repositories.revisions
        assert revisions.compare_and_set(Revision("flow1", 1), expected_version=0) is True
        assert revisions.compare_and_set(Revision("flow1", 1), expected_version=0) is False
        assert revisions.compare_and_set(Revision("missing", 1), expected_version=0) is False
        uow.commit()

    with sqlite_unit_of_work() as uow:
        stored = uow.repositories.revisions.get("flow1")

    assert stored == Revision("flow1", 1)


def test_revision_repository_rejects_duplicates(sqlite_unit_of_work: UnitOfWorkFactory) -> None:
    with sqlite_unit_of_work() as uow:
        uow.repositories.revisions.add(Revision("flow1"))
        uow.commit()

    with sqlite_unit_of_work() as uow, pytest.raises(AlreadyExistsError):
        uow.repositories.revisions.add(Revision("flow1"))


def test_revision_repository_conditional_remove(sqlite_unit_of_work: UnitOfWorkFactory) -> None:
    with sqlite_unit_of_work() as uow:
        uow.repositories.revisions.add(Revision("flow1", 0))
        uow.commit()

    with sqlite_unit_of_work() as uow:
        revisions = uow.repositories.revisions
        assert revisions.remove("flow1", expected_version=5) is False
        assert revisions.remove("flow1", expected_version=0) is True
        assert revisions.remove("flow1") is False
        uow.commit()

    with sqlite_unit_of_work() as uow:
        assert uow.repositories.revisions.get("flow1") is None
