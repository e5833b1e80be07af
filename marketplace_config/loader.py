"""
Configuration Loader (``marketplace_config.loader``).

Responsibility
--------------
Loads a YAML settings file and parses it into a ``MarketplaceSettings``
instance, then applies environment overrides.  Runtime callers go through
``marketplace_config.get_settings()``.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing ``database.url``  -> ``KeyError`` propagates.
* Wrong value types  -> ``ValueError``.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import replace
from pathlib import Path
from typing import Any

import yaml

from marketplace_config.schema import MarketplaceSettings

ENV_DATABASE_URL = "MARKETPLACE_DATABASE_URL"
ENV_LOG_LEVEL = "MARKETPLACE_LOG_LEVEL"


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping")
    return data


def _parse_int(section: str, key: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{section}.{key} must be an integer, got {value!r}")
    return value


def _parse_bool(section: str, key: str, value: Any) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"{section}.{key} must be true or false, got {value!r}")
    return value


def parse_settings(data: Mapping[str, Any]) -> MarketplaceSettings:
    """
    Parse a ``MarketplaceSettings`` from a dict.

    Expected shape::

        database:
          url: postgresql://...
          echo: false
          pool: {size: 5, max_overflow: 10, timeout: 30, recycle: 1800}
        logging:
          level: INFO

    Raises:
        KeyError: if ``database.url`` is missing.
        ValueError: if a value has the wrong type.
    """
    database = data["database"]
    pool = database.get("pool") or {}
    logging_section = data.get("logging") or {}

    defaults = MarketplaceSettings(database_url=str(database["url"]))
    return MarketplaceSettings(
        database_url=str(database["url"]),
        echo=_parse_bool("database", "echo", database.get("echo", defaults.echo)),
        pool_size=_parse_int("database.pool", "size", pool.get("size", defaults.pool_size)),
        max_overflow=_parse_int(
            "database.pool", "max_overflow", pool.get("max_overflow", defaults.max_overflow)
        ),
        pool_timeout=_parse_int(
            "database.pool", "timeout", pool.get("timeout", defaults.pool_timeout)
        ),
        pool_recycle=_parse_int(
            "database.pool", "recycle", pool.get("recycle", defaults.pool_recycle)
        ),
        log_level=str(logging_section.get("level", defaults.log_level)).upper(),
    )


def apply_env_overrides(
    settings: MarketplaceSettings,
    environ: Mapping[str, str] | None = None,
) -> MarketplaceSettings:
    """Overlay MARKETPLACE_DATABASE_URL / MARKETPLACE_LOG_LEVEL when set."""
    env = os.environ if environ is None else environ
    overrides: dict[str, Any] = {}
    if env.get(ENV_DATABASE_URL):
        overrides["database_url"] = env[ENV_DATABASE_URL]
    if env.get(ENV_LOG_LEVEL):
        overrides["log_level"] = env[ENV_LOG_LEVEL].upper()
    return replace(settings, **overrides) if overrides else settings
