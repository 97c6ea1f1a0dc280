"""Application configuration helpers."""

from __future__ import annotations

from .content import ContentBackend, ContentConfig, S3Config, get_content_config, get_s3_config
from .env import optional_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .logging import configure_logging
from .registry import RegistryConfig, get_registry_config
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "ConfigurationError",
    "ContentBackend",
    "ContentConfig",
    "DatabaseConfig",
    "MissingConfigurationError",
    "RegistryConfig",
    "S3Config",
    "StorageConfig",
    "configure_logging",
    "get_content_config",
    "get_database_config",
    "get_registry_config",
    "get_s3_config",
    "get_storage_config",
    "optional_env_var",
    "require_env_vars",
]
