"""Registry records: buckets and the items (flows, extension bundles) they hold."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, ClassVar

from .entity import Entity, new_id, utcnow
from .enums import BucketItemType, BundleType

if TYPE_CHECKING:
    from datetime import datetime

    from .flow_contents import VersionedProcessGroup


@dataclass(eq=False, kw_only=True)
class Bucket(Entity):
    """Namespace that owns flows and extension bundles."""

    name: str
    description: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    allow_bundle_redeploy: bool = False


@dataclass(eq=False, kw_only=True)
class BucketItem(Entity):
    ITEM_TYPE: ClassVar[BucketItemType]

    bucket_id: str
    name: str
    description: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    modified_at: datetime = field(default_factory=utcnow)

    @property
    def item_type(self) -> BucketItemType:
        return self.ITEM_TYPE

    def touch(self) -> None:
        self.modified_at = utcnow()


@dataclass(eq=False, kw_only=True)
class VersionedFlow(BucketItem):
    ITEM_TYPE: ClassVar[BucketItemType] = BucketItemType.FLOW


@dataclass(eq=False, kw_only=True)
class ExtensionBundle(BucketItem):
    """A bundle is identified inside its bucket by ``group_id:artifact_id``."""

    ITEM_TYPE: ClassVar[BucketItemType] = BucketItemType.BUNDLE

    bundle_type: BundleType
    group_id: str
    artifact_id: str

    @property
    def coordinate(self) -> str:
        return f"{self.group_id}:{self.artifact_id}"


@dataclass(eq=False, kw_only=True)
class FlowSnapshotMetadata:
    """Metadata row of one immutable flow version; keyed by ``(flow_id, version)``."""

    bucket_id: str
    flow_id: str
    version: int
    author: str | None = None
    comments: str | None = None
    created_at: datetime = field(default_factory=utcnow)


@dataclass(eq=False, kw_only=True)
class FlowSnapshot:
    metadata: FlowSnapshotMetadata
    contents: VersionedProcessGroup
    flow: VersionedFlow | None = None
    bucket: Bucket | None = None


@dataclass(eq=False, kw_only=True)
class BundleVersionMetadata:
    bundle_id: str
    bucket_id: str
    version: str
    sha256_hex: str
    content_size: int
    id: str = field(default_factory=new_id)
    author: str | None = None
    description: str | None = None
    created_at: datetime = field(default_factory=utcnow)
