"""Top-level configuration for building a registry service."""

from __future__ import annotations

from dataclasses import dataclass

from .content import ContentConfig, get_content_config
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config


@dataclass(frozen=True, slots=True)
class RegistryConfig:
    storage: StorageConfig
    database: DatabaseConfig
    content: ContentConfig


def get_registry_config() -> RegistryConfig:
    storage = get_storage_config()
    return RegistryConfig(
        storage=storage,
        database=get_database_config(storage=storage),
        content=get_content_config(storage=storage),
    )
