"""Content provider adapters for snapshot and bundle bytes."""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

from flowregistry.config import ConfigurationError, ContentBackend

from .filesystem import FilesystemContentProvider
from .memory import InMemoryContentProvider
from .s3 import S3ContentProvider, build_s3_client

if TYPE_CHECKING:
    from flowregistry.config import ContentConfig
    from flowregistry.domain.ports import ContentProvider

SNAPSHOT_SUFFIX: Final = ".snapshot"
BUNDLE_SUFFIX: Final = ".bundle"


def build_content_providers(config: ContentConfig) -> tuple[ContentProvider, ContentProvider]:
    """Return ``(flow content provider, bundle content provider)`` for ``config``."""

    match config.backend:
        case ContentBackend.FILESYSTEM:
            return (
                FilesystemContentProvider(config.flow_storage_dir, suffix=SNAPSHOT_SUFFIX),
                FilesystemContentProvider(config.bundle_storage_dir, suffix=BUNDLE_SUFFIX),
            )
        case ContentBackend.S3:
            if config.s3 is None:
                raise ConfigurationError("S3 content backend selected without S3 configuration")
            client = build_s3_client(config.s3)
            return (
                S3ContentProvider(
                    client,
                    bucket=config.s3.bucket,
                    prefix=config.s3.flow_prefix(),
                    suffix=SNAPSHOT_SUFFIX,
                ),
                S3ContentProvider(
                    client,
                    bucket=config.s3.bucket,
                    prefix=config.s3.bundle_prefix(),
                    suffix=BUNDLE_SUFFIX,
                ),
            )
        case ContentBackend.MEMORY:
            return InMemoryContentProvider(), InMemoryContentProvider()


__all__ = [
    "BUNDLE_SUFFIX",
    "SNAPSHOT_SUFFIX",
    "FilesystemContentProvider",
    "InMemoryContentProvider",
    "S3ContentProvider",
    "build_content_providers",
    "build_s3_client",
]
