# SPDX-License-Identifier: MIT
"""Configuration management for elective-sync."""

import copy
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

from .constants import (
    DEFAULT_CACHE_TTL_MINUTES,
    DEFAULT_REALTIME_HEARTBEAT_SECONDS,
    DEFAULT_RECORD_STORE_MAX_RETRIES,
    DEFAULT_RECORD_STORE_SCHEMA,
    DEFAULT_RECORD_STORE_TIMEOUT,
)
from .enums import StorageBackend


class CacheConfig(BaseModel):
    """Configuration for the local cache."""

    ttl_minutes: int = Field(
        DEFAULT_CACHE_TTL_MINUTES, ge=1, description="Entry time-to-live in minutes"
    )
    backend: StorageBackend = Field(
        StorageBackend.SQLITE, description="Storage medium: sqlite or memory"
    )
    db_path: str = Field(
        ".elective-sync/cache.db", description="SQLite file for the sqlite backend"
    )
    coalesce_requests: bool = Field(
        False, description="Share one in-flight fetch between concurrent loads of a key"
    )
    fetch_timeout_seconds: float | None = Field(
        None, gt=0, description="Abandon a load after this many seconds (None: no limit)"
    )


class RecordStoreConfig(BaseModel):
    """Configuration for the hosted Record Store."""

    url: str = Field("", description="Project URL, e.g. https://xyz.supabase.co")
    api_key: str = Field("", description="Anon or service API key")
    db_schema: str = Field(
        DEFAULT_RECORD_STORE_SCHEMA, description="Database schema to query"
    )
    timeout_seconds: float = Field(
        DEFAULT_RECORD_STORE_TIMEOUT, gt=0, description="Per-request timeout"
    )
    max_retries: int = Field(
        DEFAULT_RECORD_STORE_MAX_RETRIES,
        ge=0,
        description="Retries for reads on connection errors (writes never retry)",
    )


class RealtimeConfig(BaseModel):
    """Configuration for realtime change subscriptions."""

    enabled: bool = Field(True, description="Open realtime channels for views")
    heartbeat_seconds: float = Field(
        DEFAULT_REALTIME_HEARTBEAT_SECONDS, gt=0, description="Heartbeat interval"
    )


class AppConfig(BaseModel):
    """Main application configuration."""

    cache: CacheConfig = CacheConfig()
    record_store: RecordStoreConfig = RecordStoreConfig()
    realtime: RealtimeConfig = RealtimeConfig()


class ConfigManager:
    """Manages application configuration from files and environment."""

    ENV_OVERRIDES: dict[str, tuple[str, str]] = {
        "SUPABASE_URL": ("record_store", "url"),
        "SUPABASE_ANON_KEY": ("record_store", "api_key"),
        "ELECTIVE_SYNC_CACHE_TTL_MINUTES": ("cache", "ttl_minutes"),
        "ELECTIVE_SYNC_CACHE_BACKEND": ("cache", "backend"),
        "ELECTIVE_SYNC_CACHE_DB_PATH": ("cache", "db_path"),
    }

    def __init__(self, config_path: Path | None = None):
        self.config_path = config_path or self._find_config_file()
        self._config: AppConfig | None = None

    def _find_config_file(self) -> Path | None:
        """Find configuration file in standard locations."""
        search_paths = [
            Path.cwd() / ".elective-sync" / "config.yaml",
            Path.cwd() / "config" / "config.yaml",
            Path.cwd() / "config.yaml",
            Path.home() / ".config" / "elective-sync" / "config.yaml",
        ]

        for path in search_paths:
            if path.exists():
                return path

        return None

    def load_config(self) -> AppConfig:
        """Load configuration from file or create default."""
        if self._config is not None:
            return self._config

        default_config = self.get_default_config()

        if self.config_path and self.config_path.exists():
            with open(self.config_path, encoding="utf-8") as f:
                file_config = yaml.safe_load(f) or {}

            config_data = self._deep_merge_configs(default_config, file_config)
        else:
            config_data = default_config

        config_data = self._apply_env_overrides(config_data)

        self._config = AppConfig(**config_data)
        return self._config

    def _deep_merge_configs(
        self, default_config: dict[str, Any], override_config: dict[str, Any]
    ) -> dict[str, Any]:
        """Merge override config into default config, one section at a time.

        Sections are merged key by key so a file that only sets
        ``cache.ttl_minutes`` keeps every other cache default.

        Example:
            Default: {"cache": {"ttl_minutes": 60, "backend": "sqlite"}}
            Override: {"cache": {"ttl_minutes": 30}}
            Result: {"cache": {"ttl_minutes": 30, "backend": "sqlite"}}
        """
        result = copy.deepcopy(default_config)

        for key, value in override_config.items():
            if (
                key in result
                and isinstance(result[key], dict)
                and isinstance(value, dict)
            ):
                result[key].update(value)
            else:
                result[key] = value

        return result

    def _apply_env_overrides(self, config_data: dict[str, Any]) -> dict[str, Any]:
        """Apply environment variable overrides to config."""
        for env_name, (section, field_name) in self.ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value:
                config_data.setdefault(section, {})[field_name] = value

        return config_data

    def get_complete_config_dict(self) -> dict[str, Any]:
        """Get the complete configuration as a dictionary for display."""
        config = self.load_config()
        return config.model_dump(mode="json")

    def show_config(self) -> str:
        """Show the complete configuration in YAML format.

        The API key is masked.

        Returns:
            YAML formatted configuration string
        """
        config_dict = self.get_complete_config_dict()
        if config_dict["record_store"]["api_key"]:
            config_dict["record_store"]["api_key"] = "***"
        return yaml.dump(config_dict, default_flow_style=False, sort_keys=False)

    def get_default_config(self) -> dict[str, Any]:
        """Get the default configuration as a plain dictionary."""
        return {
            "cache": {
                "ttl_minutes": DEFAULT_CACHE_TTL_MINUTES,
                "backend": StorageBackend.SQLITE.value,
                "db_path": ".elective-sync/cache.db",
                "coalesce_requests": False,
                "fetch_timeout_seconds": None,
            },
            "record_store": {
                "url": "",
                "api_key": "",
                "db_schema": DEFAULT_RECORD_STORE_SCHEMA,
                "timeout_seconds": DEFAULT_RECORD_STORE_TIMEOUT,
                "max_retries": DEFAULT_RECORD_STORE_MAX_RETRIES,
            },
            "realtime": {
                "enabled": True,
                "heartbeat_seconds": DEFAULT_REALTIME_HEARTBEAT_SECONDS,
            },
        }

    def create_default_config(self, output_path: Path) -> None:
        """Write the default configuration to ``output_path``."""
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w", encoding="utf-8") as f:
            yaml.dump(
                self.get_default_config(), f, default_flow_style=False, sort_keys=False
            )


# Global config manager instance with factory pattern
_config_manager_instance: ConfigManager | None = None


def get_config_manager(config_path: Path | None = None) -> ConfigManager:
    """Get or create the global config manager instance.

    Args:
        config_path: Optional path to config file (only used on first call)

    Returns:
        The global ConfigManager instance
    """
    global _config_manager_instance
    if _config_manager_instance is None:
        _config_manager_instance = ConfigManager(config_path)
    return _config_manager_instance


def set_config_manager(manager: ConfigManager) -> None:
    """Set the config manager instance (primarily for testing).

    Args:
        manager: ConfigManager instance to use globally
    """
    global _config_manager_instance
    _config_manager_instance = manager


def reset_config_manager() -> None:
    """Reset the config manager instance (primarily for testing)."""
    global _config_manager_instance
    _config_manager_instance = None
