"""Registry operations on buckets, flows, snapshots and extension bundles.

Every mutation goes through ``MutationCoordinator`` so it is revision checked
and attributed to an actor. Reads open their own unit of work.
"""

from __future__ import annotations

import hashlib
from logging import getLogger
from typing import TYPE_CHECKING

from flowregistry.domain.errors import (
    AlreadyExistsError,
    ConstraintViolationError,
    InvalidRequestError,
    NotFoundError,
    PersistenceError,
)
from flowregistry.domain.model import (
    Bucket,
    BundleVersionMetadata,
    ExtensionBundle,
    FlowSnapshot,
    FlowSnapshotMetadata,
    Revision,
    VersionedFlow,
    new_id,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from flowregistry.domain.coordinator import MutationCoordinator
    from flowregistry.domain.model import (
        BucketItem,
        BundleType,
        RevisionUpdate,
        VersionedProcessGroup,
    )
    from flowregistry.domain.ports import ContentProvider, RegistryRepositories, RegistryUnitOfWork
    from flowregistry.domain.serialization import MultiVersionSerializer

log = getLogger(__name__)


class RegistryService:
    def __init__(
        self,
        *,
        unit_of_work_factory: Callable[[], RegistryUnitOfWork],
        coordinator: MutationCoordinator,
        flow_content: ContentProvider,
        bundle_content: ContentProvider,
        serializer: MultiVersionSerializer[VersionedProcessGroup],
    ) -> None:
        self._unit_of_work_factory = unit_of_work_factory
        self._coordinator = coordinator
        self._flow_content = flow_content
        self._bundle_content = bundle_content
        self._serializer = serializer

    def get_revision(self, entity_id: str) -> Revision:
        return self._coordinator.revisions.get_revision(entity_id)

    # ------------------------------------------------------------------
    # buckets
    # ------------------------------------------------------------------

    def create_bucket(
        self,
        name: str,
        actor: str,
        *,
        description: str | None = None,
        allow_bundle_redeploy: bool = False,
        bucket_id: str | None = None,
        client_id: str | None = None,
    ) -> RevisionUpdate[Bucket]:
        bucket = Bucket(
            id=bucket_id or new_id(),
            name=_require_name(name, "Bucket"),
            description=description,
            allow_bundle_redeploy=allow_bundle_redeploy,
        )

        def mutation(repos: RegistryRepositories) -> Bucket:
            _ensure_unique_bucket_name(repos, bucket.name, bucket.id)
            repos.buckets.add(bucket)
            return bucket

        claim = Revision(entity_id=bucket.id, version=0, client_id=client_id)
        return self._coordinator.create_entity(claim, actor, mutation)

    def get_bucket(self, bucket_id: str) -> Bucket:
        with self._unit_of_work_factory() as uow:
            return _require_bucket(uow.repositories, bucket_id)

    def list_buckets(self) -> list[Bucket]:
        with self._unit_of_work_factory() as uow:
            buckets = list(uow.repositories.buckets.list_all())
        return sorted(buckets, key=lambda bucket: bucket.name.casefold())

    def update_bucket(
        self,
        claim: Revision,
        actor: str,
        *,
        name: str | None = None,
        description: str | None = None,
        allow_bundle_redeploy: bool | None = None,
    ) -> RevisionUpdate[Bucket]:
        """Apply the given fields; ``None`` leaves a field unchanged."""

        new_name = _require_name(name, "Bucket") if name is not None else None

        def mutation(repos: RegistryRepositories) -> Bucket:
            bucket = _require_bucket(repos, claim.entity_id)
            if new_name is not None and new_name != bucket.name:
                _ensure_unique_bucket_name(repos, new_name, bucket.id)
                bucket.name = new_name
            if description is not None:
                bucket.description = description
            if allow_bundle_redeploy is not None:
                bucket.allow_bundle_redeploy = allow_bundle_redeploy
            return bucket

        return self._coordinator.update_entity(claim, actor, mutation)

    def delete_bucket(self, claim: Revision, actor: str) -> RevisionUpdate[Bucket]:
        """Delete a bucket with every flow, snapshot and bundle it holds."""

        def delete_content(repos: RegistryRepositories) -> None:
            for flow in repos.flows.list_by_bucket(claim.entity_id):
                self._flow_content.delete_all_content(flow.id)
            for bundle in repos.bundles.list_by_bucket(claim.entity_id):
                self._bundle_content.delete_all_content(bundle.id)

        def delete_record(repos: RegistryRepositories) -> Bucket:
            bucket = _require_bucket(repos, claim.entity_id)
            for flow in repos.flows.list_by_bucket(bucket.id):
                _remove_flow(repos, flow)
            for bundle in repos.bundles.list_by_bucket(bucket.id):
                _remove_bundle(repos, bundle)
            repos.buckets.remove(bucket)
            return bucket

        return self._coordinator.delete_entity(
            claim, actor, delete_content=delete_content, delete_record=delete_record
        )

    def list_bucket_items(self, bucket_id: str) -> list[BucketItem]:
        with self._unit_of_work_factory() as uow:
            repos = uow.repositories
            _require_bucket(repos, bucket_id)
            items: list[BucketItem] = [
                *repos.flows.list_by_bucket(bucket_id),
                *repos.bundles.list_by_bucket(bucket_id),
            ]
        return sorted(items, key=lambda item: (item.name.casefold(), item.item_type.value))

    # ------------------------------------------------------------------
    # flows
    # ------------------------------------------------------------------

    def create_flow(
        self,
        bucket_id: str,
        name: str,
        actor: str,
        *,
        description: str | None = None,
        flow_id: str | None = None,
        client_id: str | None = None,
    ) -> RevisionUpdate[VersionedFlow]:
        flow = VersionedFlow(
            id=flow_id or new_id(),
            bucket_id=bucket_id,
            name=_require_name(name, "Flow"),
            description=description,
        )

        def mutation(repos: RegistryRepositories) -> VersionedFlow:
            _require_bucket(repos, bucket_id)
            _ensure_unique_flow_name(repos, bucket_id, flow.name, flow.id)
            repos.flows.add(flow)
            return flow

        claim = Revision(entity_id=flow.id, version=0, client_id=client_id)
        return self._coordinator.create_entity(claim, actor, mutation)

    def get_flow(self, flow_id: str) -> VersionedFlow:
        with self._unit_of_work_factory() as uow:
            return _require_flow(uow.repositories, flow_id)

    def list_flows(self, bucket_id: str) -> list[VersionedFlow]:
        with self._unit_of_work_factory() as uow:
            repos = uow.repositories
            _require_bucket(repos, bucket_id)
            flows = list(repos.flows.list_by_bucket(bucket_id))
        return sorted(flows, key=lambda flow: flow.name.casefold())

    def update_flow(
        self,
        claim: Revision,
        actor: str,
        *,
        name: str | None = None,
        description: str | None = None,
    ) -> RevisionUpdate[VersionedFlow]:
        new_name = _require_name(name, "Flow") if name is not None else None

        def mutation(repos: RegistryRepositories) -> VersionedFlow:
            flow = _require_flow(repos, claim.entity_id)
            if new_name is not None and new_name != flow.name:
                _ensure_unique_flow_name(repos, flow.bucket_id, new_name, flow.id)
                flow.name = new_name
            if description is not None:
                flow.description = description
            flow.touch()
            return flow

        return self._coordinator.update_entity(claim, actor, mutation)

    def delete_flow(self, claim: Revision, actor: str) -> RevisionUpdate[VersionedFlow]:
        def delete_content(repos: RegistryRepositories) -> None:
            _ = repos
            self._flow_content.delete_all_content(claim.entity_id)

        def delete_record(repos: RegistryRepositories) -> VersionedFlow:
            flow = _require_flow(repos, claim.entity_id)
            for snapshot in repos.snapshots.list_by_flow(flow.id):
                repos.snapshots.remove(snapshot)
            repos.flows.remove(flow)
            return flow

        return self._coordinator.delete_entity(
            claim, actor, delete_content=delete_content, delete_record=delete_record
        )

    # ------------------------------------------------------------------
    # flow snapshots
    # ------------------------------------------------------------------

    def create_snapshot(
        self,
        claim: Revision,
        actor: str,
        contents: VersionedProcessGroup,
        *,
        version: int | None = None,
        comments: str | None = None,
    ) -> RevisionUpdate[FlowSnapshot]:
        """Store a new snapshot of the flow named by ``claim``.

        Snapshot versions are one-up: the first is 1 and each next one is the
        previous plus one. ``version=None`` picks the next number. The flow's
        revision advances with the snapshot.
        """

        def mutation(repos: RegistryRepositories) -> FlowSnapshot:
            flow = _require_flow(repos, claim.entity_id)
            bucket = _require_bucket(repos, flow.bucket_id)
            latest = repos.snapshots.latest(flow.id)
            next_version = 1 if latest is None else latest.version + 1
            snapshot_version = next_version if version is None else version
            _check_snapshot_version(flow.id, snapshot_version, next_version)

            payload = self._serializer.serialize(contents)
            metadata = FlowSnapshotMetadata(
                bucket_id=bucket.id,
                flow_id=flow.id,
                version=snapshot_version,
                author=actor,
                comments=comments,
            )
            repos.snapshots.add(metadata)
            flow.touch()
            self._flow_content.save_content(flow.id, snapshot_version, payload)
            log.info(
                "Stored snapshot %s of flow %s (%d bytes)", snapshot_version, flow.id, len(payload)
            )
            return FlowSnapshot(metadata=metadata, contents=contents, flow=flow, bucket=bucket)

        return self._coordinator.update_entity(claim, actor, mutation)

    def get_snapshot(self, flow_id: str, version: int) -> FlowSnapshot:
        """Return a snapshot with its contents decoded in the format they were written in."""

        with self._unit_of_work_factory() as uow:
            repos = uow.repositories
            flow = _require_flow(repos, flow_id)
            bucket = _require_bucket(repos, flow.bucket_id)
            metadata = repos.snapshots.get(flow_id, version)
        if metadata is None:
            raise NotFoundError(f"Flow {flow_id} has no snapshot with version {version}")
        contents = self._serializer.deserialize(self._flow_content.get_content(flow_id, version))
        return FlowSnapshot(metadata=metadata, contents=contents, flow=flow, bucket=bucket)

    def get_latest_snapshot(self, flow_id: str) -> FlowSnapshot:
        with self._unit_of_work_factory() as uow:
            repos = uow.repositories
            _require_flow(repos, flow_id)
            latest = repos.snapshots.latest(flow_id)
        if latest is None:
            raise NotFoundError(f"Flow {flow_id} has no snapshots")
        return self.get_snapshot(flow_id, latest.version)

    def list_snapshots(self, flow_id: str) -> list[FlowSnapshotMetadata]:
        """Return snapshot metadata, newest version first."""

        with self._unit_of_work_factory() as uow:
            repos = uow.repositories
            _require_flow(repos, flow_id)
            snapshots = list(repos.snapshots.list_by_flow(flow_id))
        return sorted(snapshots, key=lambda snapshot: snapshot.version, reverse=True)

    def export_snapshot(self, flow_id: str, version: int) -> bytes:
        """Return the snapshot re-encoded in the current data model version."""

        return self._serializer.serialize(self.get_snapshot(flow_id, version).contents)

    # ------------------------------------------------------------------
    # extension bundles
    # ------------------------------------------------------------------

    def create_bundle(
        self,
        bucket_id: str,
        actor: str,
        *,
        bundle_type: BundleType,
        group_id: str,
        artifact_id: str,
        description: str | None = None,
        bundle_id: str | None = None,
        client_id: str | None = None,
    ) -> RevisionUpdate[ExtensionBundle]:
        bundle = ExtensionBundle(
            id=bundle_id or new_id(),
            bucket_id=bucket_id,
            name=_require_name(artifact_id, "Bundle artifact"),
            description=description,
            bundle_type=bundle_type,
            group_id=_require_name(group_id, "Bundle group"),
            artifact_id=artifact_id.strip(),
        )

        def mutation(repos: RegistryRepositories) -> ExtensionBundle:
            _require_bucket(repos, bucket_id)
            existing = repos.bundles.find_by_coordinate(
                bucket_id, bundle.group_id, bundle.artifact_id
            )
            if existing is not None:
                raise ConstraintViolationError(
                    f"Bucket {bucket_id} already contains bundle {bundle.coordinate}"
                )
            repos.bundles.add(bundle)
            return bundle

        claim = Revision(entity_id=bundle.id, version=0, client_id=client_id)
        return self._coordinator.create_entity(claim, actor, mutation)

    def get_bundle(self, bundle_id: str) -> ExtensionBundle:
        with self._unit_of_work_factory() as uow:
            return _require_bundle(uow.repositories, bundle_id)

    def list_bundles(self, bucket_id: str) -> list[ExtensionBundle]:
        with self._unit_of_work_factory() as uow:
            repos = uow.repositories
            _require_bucket(repos, bucket_id)
            bundles = list(repos.bundles.list_by_bucket(bucket_id))
        return sorted(bundles, key=lambda bundle: bundle.coordinate)

    def delete_bundle(self, claim: Revision, actor: str) -> RevisionUpdate[ExtensionBundle]:
        def delete_content(repos: RegistryRepositories) -> None:
            _ = repos
            self._bundle_content.delete_all_content(claim.entity_id)

        def delete_record(repos: RegistryRepositories) -> ExtensionBundle:
            bundle = _require_bundle(repos, claim.entity_id)
            for bundle_version in repos.bundle_versions.list_by_bundle(bundle.id):
                repos.bundle_versions.remove(bundle_version)
            repos.bundles.remove(bundle)
            return bundle

        return self._coordinator.delete_entity(
            claim, actor, delete_content=delete_content, delete_record=delete_record
        )

    def create_bundle_version(
        self,
        claim: Revision,
        actor: str,
        version: str,
        content: bytes,
        *,
        description: str | None = None,
    ) -> RevisionUpdate[BundleVersionMetadata]:
        """Upload ``content`` as ``version`` of the bundle named by ``claim``.

        An existing version may only be replaced when the bucket allows bundle
        redeploy and the new content differs.
        """

        version = _require_name(version, "Bundle version")
        sha256_hex = hashlib.sha256(content).hexdigest()

        def mutation(repos: RegistryRepositories) -> BundleVersionMetadata:
            bundle = _require_bundle(repos, claim.entity_id)
            bucket = _require_bucket(repos, bundle.bucket_id)
            existing = repos.bundle_versions.get(bundle.id, version)
            if existing is not None:
                if not bucket.allow_bundle_redeploy:
                    raise AlreadyExistsError(
                        f"Bundle {bundle.coordinate} already has version {version}"
                    )
                if existing.sha256_hex == sha256_hex:
                    raise AlreadyExistsError(
                        f"Bundle {bundle.coordinate} version {version} already has this content"
                    )
                log.info("Redeploying bundle %s version %s", bundle.coordinate, version)
                repos.bundle_versions.remove(existing)

            metadata = BundleVersionMetadata(
                bundle_id=bundle.id,
                bucket_id=bucket.id,
                version=version,
                sha256_hex=sha256_hex,
                content_size=len(content),
                author=actor,
                description=description,
            )
            repos.bundle_versions.add(metadata)
            bundle.touch()
            self._bundle_content.save_content(bundle.id, version, content)
            return metadata

        return self._coordinator.update_entity(claim, actor, mutation)

    def get_bundle_version(self, bundle_id: str, version: str) -> BundleVersionMetadata:
        with self._unit_of_work_factory() as uow:
            repos = uow.repositories
            _require_bundle(repos, bundle_id)
            metadata = repos.bundle_versions.get(bundle_id, version)
        if metadata is None:
            raise NotFoundError(f"Bundle {bundle_id} has no version {version}")
        return metadata

    def get_bundle_version_content(self, bundle_id: str, version: str) -> bytes:
        self.get_bundle_version(bundle_id, version)
        return self._bundle_content.get_content(bundle_id, version)

    def list_bundle_versions(self, bundle_id: str) -> list[BundleVersionMetadata]:
        with self._unit_of_work_factory() as uow:
            repos = uow.repositories
            _require_bundle(repos, bundle_id)
            versions = list(repos.bundle_versions.list_by_bundle(bundle_id))
        return sorted(versions, key=lambda metadata: metadata.created_at)

    def delete_bundle_version(
        self, claim: Revision, actor: str, version: str
    ) -> RevisionUpdate[BundleVersionMetadata]:
        """Remove one version; the bundle's revision advances.

        Content is deleted once the metadata change has committed. If that
        fails the error propagates and the bytes are left behind.
        """

        def mutation(repos: RegistryRepositories) -> BundleVersionMetadata:
            bundle = _require_bundle(repos, claim.entity_id)
            metadata = repos.bundle_versions.get(bundle.id, version)
            if metadata is None:
                raise NotFoundError(f"Bundle {bundle.id} has no version {version}")
            repos.bundle_versions.remove(metadata)
            bundle.touch()
            return metadata

        result = self._coordinator.update_entity(claim, actor, mutation)
        try:
            self._bundle_content.delete_content(claim.entity_id, version)
        except PersistenceError:
            log.warning(
                "Bundle %s version %s was removed but its content could not be deleted",
                claim.entity_id,
                version,
            )
            raise
        return result


# ----------------------------------------------------------------------
# helpers
# ----------------------------------------------------------------------


def _require_name(value: str | None, label: str) -> str:
    if value is None or not value.strip():
        raise InvalidRequestError(f"{label} name cannot be blank")
    return value.strip()


def _require_bucket(repos: RegistryRepositories, bucket_id: str) -> Bucket:
    bucket = repos.buckets.get(bucket_id)
    if bucket is None:
        raise NotFoundError(f"Bucket {bucket_id} does not exist")
    return bucket


def _require_flow(repos: RegistryRepositories, flow_id: str) -> VersionedFlow:
    flow = repos.flows.get(flow_id)
    if flow is None:
        raise NotFoundError(f"Flow {flow_id} does not exist")
    return flow


def _require_bundle(repos: RegistryRepositories, bundle_id: str) -> ExtensionBundle:
    bundle = repos.bundles.get(bundle_id)
    if bundle is None:
        raise NotFoundError(f"Bundle {bundle_id} does not exist")
    return bundle


def _ensure_unique_bucket_name(repos: RegistryRepositories, name: str, bucket_id: str) -> None:
    for other in repos.buckets.find_by_name(name):
        if other.id != bucket_id:
            raise ConstraintViolationError(f"A bucket named {name!r} already exists")


def _ensure_unique_flow_name(
    repos: RegistryRepositories, bucket_id: str, name: str, flow_id: str
) -> None:
    for other in repos.flows.find_by_name(bucket_id, name):
        if other.id != flow_id:
            raise ConstraintViolationError(
                f"Bucket {bucket_id} already contains a flow named {name!r}"
            )


def _check_snapshot_version(flow_id: str, requested: int, expected: int) -> None:
    if requested < 1:
        raise InvalidRequestError(f"Snapshot versions start at 1, got {requested}")
    if requested < expected:
        raise AlreadyExistsError(f"Flow {flow_id} already has a snapshot with version {requested}")
    if requested > expected:
        raise ConstraintViolationError(
            f"Snapshot version {requested} for flow {flow_id} must be one greater than the "
            f"latest version {expected - 1}"
        )


def _remove_flow(repos: RegistryRepositories, flow: VersionedFlow) -> None:
    for snapshot in repos.snapshots.list_by_flow(flow.id):
        repos.snapshots.remove(snapshot)
    repos.flows.remove(flow)
    repos.revisions.remove(flow.id)


def _remove_bundle(repos: RegistryRepositories, bundle: ExtensionBundle) -> None:
    for bundle_version in repos.bundle_versions.list_by_bundle(bundle.id):
        repos.bundle_versions.remove(bundle_version)
    repos.bundles.remove(bundle)
    repos.revisions.remove(bundle.id)
