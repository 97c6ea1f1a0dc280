"""Content provider configuration values."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path

from .env import optional_env_var, require_env_vars
from .errors import ConfigurationError
from .storage import StorageConfig, get_storage_config

DEFAULT_S3_PREFIX = "flowregistry"


class ContentBackend(StrEnum):
    FILESYSTEM = "filesystem"
    S3 = "s3"
    MEMORY = "memory"


@dataclass(frozen=True, slots=True)
class S3Config:
    bucket: str
    region: str
    prefix: str = DEFAULT_S3_PREFIX
    endpoint_url: str | None = None

    def flow_prefix(self) -> str:
        return _join_prefix(self.prefix, "flows")

    def bundle_prefix(self) -> str:
        return _join_prefix(self.prefix, "bundles")


@dataclass(frozen=True, slots=True)
class ContentConfig:
    """Where snapshot and bundle content lives."""

    backend: ContentBackend
    flow_storage_dir: Path
    bundle_storage_dir: Path
    s3: S3Config | None = None


def _join_prefix(prefix: str, name: str) -> str:
    clean = prefix.strip("/")
    return f"{clean}/{name}" if clean else name


def _parse_backend(value: str | None) -> ContentBackend:
    if value is None:
        return ContentBackend.FILESYSTEM
    try:
        return ContentBackend(value.lower())
    except ValueError as exc:
        allowed = ", ".join(backend.value for backend in ContentBackend)
        raise ConfigurationError(
            f"FLOWREGISTRY_CONTENT_BACKEND must be one of {allowed}, got {value!r}"
        ) from exc


def get_s3_config() -> S3Config:
    values = require_env_vars(("FLOWREGISTRY_S3_BUCKET", "AWS_REGION"))
    prefix = optional_env_var("FLOWREGISTRY_S3_PREFIX")
    return S3Config(
        bucket=values["FLOWREGISTRY_S3_BUCKET"],
        region=values["AWS_REGION"],
        prefix=DEFAULT_S3_PREFIX if prefix is None else prefix,
        endpoint_url=optional_env_var("FLOWREGISTRY_S3_ENDPOINT_URL"),
    )


def get_content_config(*, storage: StorageConfig | None = None) -> ContentConfig:
    storage_config = storage or get_storage_config()
    backend = _parse_backend(optional_env_var("FLOWREGISTRY_CONTENT_BACKEND"))
    flow_dir = optional_env_var("FLOWREGISTRY_FLOW_STORAGE_DIR")
    bundle_dir = optional_env_var("FLOWREGISTRY_BUNDLE_STORAGE_DIR")
    return ContentConfig(
        backend=backend,
        flow_storage_dir=Path(flow_dir) if flow_dir else storage_config.flow_storage_dir(),
        bundle_storage_dir=Path(bundle_dir) if bundle_dir else storage_config.bundle_storage_dir(),
        s3=get_s3_config() if backend is ContentBackend.S3 else None,
    )
