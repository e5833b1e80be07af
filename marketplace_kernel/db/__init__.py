"""Database layer - engine, base classes and column types."""

from marketplace_kernel.db.base import Base, TrackedBase, UUIDString
from marketplace_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    get_session_factory,
)

__all__ = [
    "get_engine",
    "get_session",
    "get_session_factory",
    "create_tables",
    "Base",
    "TrackedBase",
    "UUIDString",
]
