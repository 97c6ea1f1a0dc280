"""SQLAlchemy mapping metadata for the registry model."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from functools import cache
from typing import TYPE_CHECKING, Final

from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    DateTime,
    Dialect,
    Enum,
    ForeignKey,
    Integer,
    String,
    Table,
    Text,
    TypeDecorator,
    UniqueConstraint,
    orm,
)

from flowregistry.domain.model import (
    Bucket,
    BundleType,
    BundleVersionMetadata,
    ExtensionBundle,
    FlowSnapshotMetadata,
    VersionedFlow,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)

ID_LENGTH: Final = 50
NAME_LENGTH: Final = 1000


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_N_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

bucket_table = Table(
    "bucket",
    mapper_registry.metadata,
    Column("id", String(ID_LENGTH), primary_key=True),
    Column("name", String(NAME_LENGTH), nullable=False),
    Column("description", Text, nullable=True),
    Column("created_at", UTCDateTime, nullable=False),
    Column("allow_bundle_redeploy", Boolean, nullable=False, default=False),
    UniqueConstraint("name"),
)

flow_table = Table(
    "flow",
    mapper_registry.metadata,
    Column("id", String(ID_LENGTH), primary_key=True),
    Column("bucket_id", String(ID_LENGTH), ForeignKey("bucket.id"), nullable=False, index=True),
    Column("name", String(NAME_LENGTH), nullable=False),
    Column("description", Text, nullable=True),
    Column("created_at", UTCDateTime, nullable=False),
    Column("modified_at", UTCDateTime, nullable=False),
    UniqueConstraint("bucket_id", "name"),
)

extension_bundle_table = Table(
    "extension_bundle",
    mapper_registry.metadata,
    Column("id", String(ID_LENGTH), primary_key=True),
    Column("bucket_id", String(ID_LENGTH), ForeignKey("bucket.id"), nullable=False, index=True),
    Column("name", String(NAME_LENGTH), nullable=False),
    Column("description", Text, nullable=True),
    Column("created_at", UTCDateTime, nullable=False),
    Column("modified_at", UTCDateTime, nullable=False),
    Column(
        "bundle_type",
        Enum(
            BundleType,
            native_enum=False,
            length=32,
            values_callable=lambda enum: [member.value for member in enum],
        ),
        nullable=False,
    ),
    Column("group_id", String(NAME_LENGTH), nullable=False),
    Column("artifact_id", String(NAME_LENGTH), nullable=False),
    UniqueConstraint("bucket_id", "group_id", "artifact_id"),
)

flow_snapshot_table = Table(
    "flow_snapshot",
    mapper_registry.metadata,
    Column("flow_id", String(ID_LENGTH), ForeignKey("flow.id"), primary_key=True),
    Column("version", Integer, primary_key=True),
    Column("bucket_id", String(ID_LENGTH), ForeignKey("bucket.id"), nullable=False),
    Column("author", String(NAME_LENGTH), nullable=True),
    Column("comments", Text, nullable=True),
    Column("created_at", UTCDateTime, nullable=False),
)

bundle_version_table = Table(
    "bundle_version",
    mapper_registry.metadata,
    Column("id", String(ID_LENGTH), primary_key=True),
    Column(
        "bundle_id",
        String(ID_LENGTH),
        ForeignKey("extension_bundle.id"),
        nullable=False,
        index=True,
    ),
    Column("bucket_id", String(ID_LENGTH), ForeignKey("bucket.id"), nullable=False),
    Column("version", String(NAME_LENGTH), nullable=False),
    Column("sha256_hex", String(64), nullable=False),
    Column("content_size", BigInteger, nullable=False),
    Column("author", String(NAME_LENGTH), nullable=True),
    Column("description", Text, nullable=True),
    Column("created_at", UTCDateTime, nullable=False),
    UniqueConstraint("bundle_id", "version"),
)

# Revisions are immutable values and are read and written with Core statements only.
revision_table = Table(
    "entity_revision",
    mapper_registry.metadata,
    Column("entity_id", String(ID_LENGTH), primary_key=True),
    Column("version", BigInteger, nullable=False),
    Column("client_id", String(NAME_LENGTH), nullable=True),
)


@cache
def start_mappers() -> orm.registry:
    """Map the registry records onto their tables; safe to call repeatedly."""

    log.info("Starting SQLAlchemy mappers")

    mapper_registry.map_imperatively(Bucket, bucket_table)
    mapper_registry.map_imperatively(VersionedFlow, flow_table)
    mapper_registry.map_imperatively(ExtensionBundle, extension_bundle_table)
    mapper_registry.map_imperatively(FlowSnapshotMetadata, flow_snapshot_table)
    mapper_registry.map_imperatively(BundleVersionMetadata, bundle_version_table)
    orm.configure_mappers()
    return mapper_registry


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the mapped metadata."""

    log.info("Creating all tables")
    mapper_registry.metadata.create_all(engine)
