"""
Typed runtime settings (``marketplace_config.schema``).

Frozen dataclass produced by ``marketplace_config.loader.parse_settings``.
Nothing in here reads files or the environment.
"""

from __future__ import annotations

from dataclasses import dataclass

LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


@dataclass(frozen=True)
class MarketplaceSettings:
    """
    Database and logging settings for one process.

    Pool settings are ignored for SQLite URLs.
    """

    database_url: str
    echo: bool = False
    pool_size: int = 5
    max_overflow: int = 10
    pool_timeout: int = 30
    pool_recycle: int = 1800
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if not self.database_url:
            raise ValueError("database_url must not be empty")
        if self.log_level not in LOG_LEVELS:
            raise ValueError(
                f"log_level must be one of {sorted(LOG_LEVELS)}, got {self.log_level!r}"
            )
        for name in ("pool_size", "max_overflow", "pool_timeout", "pool_recycle"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative")

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")
