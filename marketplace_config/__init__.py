"""
marketplace_config -- single public entrypoint for runtime settings.

Responsibility:
    ``get_settings()`` is the only way runtime code obtains settings.  It
    reads one YAML file (the packaged ``defaults.yaml``, the file named by
    ``$MARKETPLACE_CONFIG``, or an explicit path) and overlays environment
    overrides.

Architecture position:
    Configuration -- sits beside ``marketplace_kernel``.  The kernel only
    consumes the resulting ``MarketplaceSettings`` through
    ``init_engine_from_settings``.

Failure modes:
    - ``FileNotFoundError`` -- the configured file does not exist.
    - ``KeyError`` / ``ValueError`` -- missing or mistyped settings.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from marketplace_config.loader import apply_env_overrides, load_yaml_file, parse_settings
from marketplace_config.schema import MarketplaceSettings

_logger = logging.getLogger("marketplace_kernel.config")

ENV_CONFIG_PATH = "MARKETPLACE_CONFIG"
DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"


def get_settings(path: Path | str | None = None) -> MarketplaceSettings:
    """
    Load settings from ``path`` (or ``$MARKETPLACE_CONFIG``, or the
    packaged defaults) and apply environment overrides.
    """
    if path is None:
        path = os.environ.get(ENV_CONFIG_PATH) or DEFAULT_CONFIG_PATH
    path = Path(path)

    settings = apply_env_overrides(parse_settings(load_yaml_file(path)))
    _logger.info(
        "settings_loaded",
        extra={
            "config_path": str(path),
            "sqlite": settings.is_sqlite,
            "log_level": settings.log_level,
        },
    )
    return settings


__all__ = [
    "MarketplaceSettings",
    "get_settings",
    "load_yaml_file",
    "parse_settings",
]
