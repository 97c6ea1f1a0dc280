"""Ports for persisting registry metadata records and revisions."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from flowregistry.domain.model import (
        Bucket,
        BundleVersionMetadata,
        ExtensionBundle,
        FlowSnapshotMetadata,
        Revision,
        VersionedFlow,
    )


@runtime_checkable
class Repository[TEntity](Protocol):
    """Minimal repository contract for a persistent record store."""

    def add(self, entity: TEntity) -> None: ...

    def remove(self, entity: TEntity) -> None: ...


@runtime_checkable
class RevisionRepository(Protocol):
    """Storage of one revision row per entity id."""

    def get(self, entity_id: str) -> Revision | None: ...

    def add(self, revision: Revision) -> None: ...

    def compare_and_set(self, revision: Revision, *, expected_version: int) -> bool:
        """Store ``revision`` only if the stored version still equals ``expected_version``."""
        ...

    def remove(self, entity_id: str, *, expected_version: int | None = None) -> bool: ...


@runtime_checkable
class BucketRepository(Repository["Bucket"], Protocol):
    def get(self, bucket_id: str) -> Bucket | None: ...

    def find_by_name(self, name: str) -> Sequence[Bucket]: ...

    def list_all(self) -> Sequence[Bucket]: ...


@runtime_checkable
class FlowRepository(Repository["VersionedFlow"], Protocol):
    def get(self, flow_id: str) -> VersionedFlow | None: ...

    def find_by_name(self, bucket_id: str, name: str) -> Sequence[VersionedFlow]: ...

    def list_by_bucket(self, bucket_id: str) -> Sequence[VersionedFlow]: ...


@runtime_checkable
class FlowSnapshotRepository(Repository["FlowSnapshotMetadata"], Protocol):
    def get(self, flow_id: str, version: int) -> FlowSnapshotMetadata | None: ...

    def latest(self, flow_id: str) -> FlowSnapshotMetadata | None: ...

    def list_by_flow(self, flow_id: str) -> Sequence[FlowSnapshotMetadata]: ...


@runtime_checkable
class ExtensionBundleRepository(Repository["ExtensionBundle"], Protocol):
    def get(self, bundle_id: str) -> ExtensionBundle | None: ...

    def find_by_coordinate(
        self, bucket_id: str, group_id: str, artifact_id: str
    ) -> ExtensionBundle | None: ...

    def list_by_bucket(self, bucket_id: str) -> Sequence[ExtensionBundle]: ...


@runtime_checkable
class BundleVersionRepository(Repository["BundleVersionMetadata"], Protocol):
    def get(self, bundle_id: str, version: str) -> BundleVersionMetadata | None: ...

    def list_by_bundle(self, bundle_id: str) -> Sequence[BundleVersionMetadata]: ...
