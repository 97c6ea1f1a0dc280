"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.exc import IntegrityError

from flowregistry.adapters.sqlalchemy.mappings import (
    bucket_table,
    bundle_version_table,
    extension_bundle_table,
    flow_snapshot_table,
    flow_table,
    revision_table,
)
from flowregistry.domain.errors import AlreadyExistsError
from flowregistry.domain.model import (
    Bucket,
    BundleVersionMetadata,
    ExtensionBundle,
    FlowSnapshotMetadata,
    Revision,
    VersionedFlow,
)

if TYPE_CHECKING:
    from sqlalchemy.orm import Session


class SqlAlchemyRepository[TEntity]:
    """Shared add/remove for mapped records.

    ``remove`` flushes straight away so deletes reach the database in the order
    they were issued, which keeps child rows ahead of their parents.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: TEntity) -> None:
        self.session.add(entity)

    def remove(self, entity: TEntity) -> None:
        self.session.delete(entity)
        self.session.flush()


class SqlAlchemyBucketRepository(SqlAlchemyRepository[Bucket]):
    def get(self, bucket_id: str) -> Bucket | None:
        return self.session.get(Bucket, bucket_id)

    def find_by_name(self, name: str) -> list[Bucket]:
        stmt = select(Bucket).where(func.lower(bucket_table.c.name) == name.lower())
        return list(self.session.scalars(stmt))

    def list_all(self) -> list[Bucket]:
        return list(self.session.scalars(select(Bucket).order_by(bucket_table.c.name)))


class SqlAlchemyFlowRepository(SqlAlchemyRepository[VersionedFlow]):
    def get(self, flow_id: str) -> VersionedFlow | None:
        return self.session.get(VersionedFlow, flow_id)

    def find_by_name(self, bucket_id: str, name: str) -> list[VersionedFlow]:
        stmt = (
            select(VersionedFlow)
            .where(flow_table.c.bucket_id == bucket_id)
            .where(func.lower(flow_table.c.name) == name.lower())
        )
        return list(self.session.scalars(stmt))

    def list_by_bucket(self, bucket_id: str) -> list[VersionedFlow]:
        stmt = (
            select(VersionedFlow)
            .where(flow_table.c.bucket_id == bucket_id)
            .order_by(flow_table.c.name)
        )
        return list(self.session.scalars(stmt))


class SqlAlchemyFlowSnapshotRepository(SqlAlchemyRepository[FlowSnapshotMetadata]):
    def get(self, flow_id: str, version: int) -> FlowSnapshotMetadata | None:
        return self.session.get(FlowSnapshotMetadata, (flow_id, version))

    def latest(self, flow_id: str) -> FlowSnapshotMetadata | None:
        stmt = (
            select(FlowSnapshotMetadata)
            .where(flow_snapshot_table.c.flow_id == flow_id)
            .order_by(flow_snapshot_table.c.version.desc())
            .limit(1)
        )
        return self.session.scalars(stmt).first()

    def list_by_flow(self, flow_id: str) -> list[FlowSnapshotMetadata]:
        stmt = (
            select(FlowSnapshotMetadata)
            .where(flow_snapshot_table.c.flow_id == flow_id)
            .order_by(flow_snapshot_table.c.version.desc())
        )
        return list(self.session.scalars(stmt))


class SqlAlchemyExtensionBundleRepository(SqlAlchemyRepository[ExtensionBundle]):
    def get(self, bundle_id: str) -> ExtensionBundle | None:
        return self.session.get(ExtensionBundle, bundle_id)

    def find_by_coordinate(
        self, bucket_id: str, group_id: str, artifact_id: str
    ) -> ExtensionBundle | None:
        stmt = (
            select(ExtensionBundle)
            .where(extension_bundle_table.c.bucket_id == bucket_id)
            .where(extension_bundle_table.c.group_id == group_id)
            .where(extension_bundle_table.c.artifact_id == artifact_id)
        )
        return self.session.scalars(stmt).one_or_none()

    def list_by_bucket(self, bucket_id: str) -> list[ExtensionBundle]:
        stmt = (
            select(ExtensionBundle)
            .where(extension_bundle_table.c.bucket_id == bucket_id)
            .order_by(extension_bundle_table.c.group_id, extension_bundle_table.c.artifact_id)
        )
        return list(self.session.scalars(stmt))


class SqlAlchemyBundleVersionRepository(SqlAlchemyRepository[BundleVersionMetadata]):
    def get(self, bundle_id: str, version: str) -> BundleVersionMetadata | None:
        stmt = (
            select(BundleVersionMetadata)
            .where(bundle_version_table.c.bundle_id == bundle_id)
            .where(bundle_version_table.c.version == version)
        )
        return self.session.scalars(stmt).one_or_none()

    def list_by_bundle(self, bundle_id: str) -> list[BundleVersionMetadata]:
        stmt = (
            select(BundleVersionMetadata)
            .where(bundle_version_table.c.bundle_id == bundle_id)
            .order_by(bundle_version_table.c.created_at)
        )
        return list(self.session.scalars(stmt))


class SqlAlchemyRevisionRepository:
    """Revision rows, written with conditional Core statements.

    ``compare_and_set`` and the conditional ``remove`` only touch the row when its
    stored version still equals the expected one, so two transactions that both
    read the same version cannot both advance it.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, entity_id: str) -> Revision | None:
        stmt = select(
            revision_table.c.entity_id,
            revision_table.c.version,
            revision_table.c.client_id,
        ).where(revision_table.c.entity_id == entity_id)
        row = self.session.execute(stmt).one_or_none()
        if row is None:
            return None
        return Revision(entity_id=row.entity_id, version=row.version, client_id=row.client_id)

    def add(self, revision: Revision) -> None:
        stmt = insert(revision_table).values(
            entity_id=revision.entity_id,
            version=revision.version,
            client_id=revision.client_id,
        )
        try:
            self.session.execute(stmt)
        except IntegrityError as exc:
            raise AlreadyExistsError(
                f"A revision already exists for entity {revision.entity_id}"
            ) from exc

    def compare_and_set(self, revision: Revision, *, expected_version: int) -> bool:
        stmt = (
            update(revision_table)
            .where(revision_table.c.entity_id == revision.entity_id)
            .where(revision_table.c.version == expected_version)
            .values(version=revision.version, client_id=revision.client_id)
        )
        return self.session.execute(stmt).rowcount == 1

    def remove(self, entity_id: str, *, expected_version: int | None = None) -> bool:
        stmt = delete(revision_table).where(revision_table.c.entity_id == entity_id)
        if expected_version is not None:
            stmt = stmt.where(revision_table.c.version == expected_version)
        return self.session.execute(stmt).rowcount > 0
