"""Initial registry schema.

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 00:00:00
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "0001_initial_schema"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

ID = sa.String(50)
NAME = sa.String(1000)
TIMESTAMP = sa.DateTime(timezone=True)


def upgrade() -> None:
    op.create_table(
        "bucket",
        sa.Column("id", ID, nullable=False),
        sa.Column("name", NAME, nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_at", TIMESTAMP, nullable=False),
        sa.Column("allow_bundle_redeploy", sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_bucket")),
        sa.UniqueConstraint("name", name=op.f("uq_bucket_name")),
    )
    op.create_table(
        "flow",
        sa.Column("id", ID, nullable=False),
        sa.Column("bucket_id", ID, nullable=False),
        sa.Column("name", NAME, nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_at", TIMESTAMP, nullable=False),
        sa.Column("modified_at", TIMESTAMP, nullable=False),
        sa.ForeignKeyConstraint(
            ["bucket_id"], ["bucket.id"], name=op.f("fk_flow_bucket_id_bucket")
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_flow")),
        sa.UniqueConstraint("bucket_id", "name", name=op.f("uq_flow_bucket_id_name")),
    )
    op.create_index(op.f("ix_flow_bucket_id"), "flow", ["bucket_id"])
    op.create_table(
        "extension_bundle",
        sa.Column("id", ID, nullable=False),
        sa.Column("bucket_id", ID, nullable=False),
        sa.Column("name", NAME, nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_at", TIMESTAMP, nullable=False),
        sa.Column("modified_at", TIMESTAMP, nullable=False),
        sa.Column("bundle_type", sa.String(32), nullable=False),
        sa.Column("group_id", NAME, nullable=False),
        sa.Column("artifact_id", NAME, nullable=False),
        sa.ForeignKeyConstraint(
            ["bucket_id"], ["bucket.id"], name=op.f("fk_extension_bundle_bucket_id_bucket")
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_extension_bundle")),
        sa.UniqueConstraint(
            "bucket_id",
            "group_id",
            "artifact_id",
            name=op.f("uq_extension_bundle_bucket_id_group_id_artifact_id"),
        ),
    )
    op.create_index(op.f("ix_extension_bundle_bucket_id"), "extension_bundle", ["bucket_id"])
    op.create_table(
        "flow_snapshot",
        sa.Column("flow_id", ID, nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("bucket_id", ID, nullable=False),
        sa.Column("author", NAME, nullable=True),
        sa.Column("comments", sa.Text(), nullable=True),
        sa.Column("created_at", TIMESTAMP, nullable=False),
        sa.ForeignKeyConstraint(
            ["flow_id"], ["flow.id"], name=op.f("fk_flow_snapshot_flow_id_flow")
        ),
        sa.ForeignKeyConstraint(
            ["bucket_id"], ["bucket.id"], name=op.f("fk_flow_snapshot_bucket_id_bucket")
        ),
        sa.PrimaryKeyConstraint("flow_id", "version", name=op.f("pk_flow_snapshot")),
    )
    op.create_table(
        "bundle_version",
        sa.Column("id", ID, nullable=False),
        sa.Column("bundle_id", ID, nullable=False),
        sa.Column("bucket_id", ID, nullable=False),
        sa.Column("version", NAME, nullable=False),
        sa.Column("sha256_hex", sa.String(64), nullable=False),
        sa.Column("content_size", sa.BigInteger(), nullable=False),
        sa.Column("author", NAME, nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_at", TIMESTAMP, nullable=False),
        sa.ForeignKeyConstraint(
            ["bundle_id"],
            ["extension_bundle.id"],
            name=op.f("fk_bundle_version_bundle_id_extension_bundle"),
        ),
        sa.ForeignKeyConstraint(
            ["bucket_id"], ["bucket.id"], name=op.f("fk_bundle_version_bucket_id_bucket")
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_bundle_version")),
        sa.UniqueConstraint(
            "bundle_id", "version", name=op.f("uq_bundle_version_bundle_id_version")
        ),
    )
    op.create_index(op.f("ix_bundle_version_bundle_id"), "bundle_version", ["bundle_id"])
    op.create_table(
        "entity_revision",
        sa.Column("entity_id", ID, nullable=False),
        sa.Column("version", sa.BigInteger(), nullable=False),
        sa.Column("client_id", NAME, nullable=True),
        sa.PrimaryKeyConstraint("entity_id", name=op.f("pk_entity_revision")),
    )


def downgrade() -> None:
    op.drop_table("entity_revision")
    op.drop_index(op.f("ix_bundle_version_bundle_id"), table_name="bundle_version")
    op.drop_table("bundle_version")
    op.drop_table("flow_snapshot")
    op.drop_index(op.f("ix_extension_bundle_bucket_id"), table_name="extension_bundle")
    op.drop_table("extension_bundle")
    op.drop_index(op.f("ix_flow_bucket_id"), table_name="flow")
    op.drop_table("flow")
    op.drop_table("bucket")
