"""Configuration management for the index service.

This module centralizes environment-driven configuration. It builds on
``pydantic_settings.BaseSettings`` so configuration can be provided via
environment variables, ``.env`` files, or defaults. Field names map to
environment variables case-insensitively (``ml_index_port`` <-> ``ML_INDEX_PORT``).

Highlights
- Strongly-typed settings with sensible defaults
- One place to discover commonly used environment variables
- Small service-specific subclasses to keep concerns clear

Usage
- Inject the appropriate config in your service entrypoint:
  ``config = IndexServiceConfig()``
- Or select dynamically: ``config = get_config("index")``
"""

import os
from pathlib import Path
from typing import Dict, Optional, Type

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _xdg_cache_home() -> Path:
    return Path(os.environ.get("XDG_CACHE_HOME", Path.home() / ".cache"))


def _default_cache_path() -> str:
    return str(_xdg_cache_home() / "index-service" / "indices.json")


class BaseConfig(BaseSettings):
    """Base configuration class for all services.

    Parameters are read from the process environment with the given names.
    Defaults keep local development convenient while still being explicit.

    Notes
    - Add new shared settings here so downstream services inherit them.
    - Prefer a typed field here over reading ``os.environ`` directly.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    ml_env: str = Field(default="local")

    # Redis (location cache backend)
    ml_redis_url: str = Field(default="redis://localhost:6379")

    # Logging
    ml_log_level: str = Field(default="INFO")
    ml_log_format: str = Field(default="json")


class IndexServiceConfig(BaseConfig):
    """Configuration for the index service.

    Adds listener, engine and location cache settings on top of ``BaseConfig``.
    """

    # Listener (ignored when a socket is handed over by systemd)
    ml_index_host: str = Field(default="127.0.0.1")
    ml_index_port: int = Field(default=3004)

    # Search engine backend
    ml_index_engine: str = Field(default="whoosh")
    # Name of the index inside each Whoosh directory (None: Whoosh default)
    ml_index_whoosh_indexname: Optional[str] = Field(default=None)

    # Location cache
    ml_index_cache_backend: str = Field(default="file")  # "file" | "redis"
    ml_index_cache_path: str = Field(default_factory=_default_cache_path)
    ml_index_cache_key: str = Field(default="index_service:locations")


def get_config(service_name: str) -> BaseConfig:
    """Get configuration for a specific service.

    Parameters
    - service_name: Literal name, currently only ``index``.

    Returns
    - A concrete ``BaseConfig`` subclass pre-wired to read the right env vars.
    """
    config_map: Dict[str, Type[BaseConfig]] = {
        "index": IndexServiceConfig,
    }

    # Default to ``BaseConfig`` to avoid surprising crashes for unknown names.
    config_class = config_map.get(service_name, BaseConfig)
    return config_class()
