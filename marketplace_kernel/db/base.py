"""
Module: marketplace_kernel.db.base
Responsibility: Declarative bases shared by every marketplace table: the
    string-stored UUID key, the Python-type to column-type map, and the
    created_at / updated_at pair.
Architecture position: Kernel > DB.  Imported by models/ only.  MUST NOT
    import from models/, services/, selectors/, domain/, or outer layers.

Invariants enforced:
    - Every row is keyed by a uuid4 held in a String(36) column, so the same
      schema runs on PostgreSQL and on the SQLite test database.
    - A bare ``Mapped[Decimal]`` is Numeric(38, 9); columns with a tighter
      domain (payment percentages) declare their own Numeric.
    - Services write created_at / updated_at from an injected Clock.  The
      server default only covers rows inserted outside the services.
"""

from datetime import datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID, uuid4

from sqlalchemy import DateTime, Numeric, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """``uuid.UUID`` in Python, 36-character text in the database."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else str(value)

    def process_result_value(self, value, dialect):
        return None if value is None else UUID(value)


class Base(DeclarativeBase):
    type_annotation_map: ClassVar[dict] = {
        UUID: UUIDString(),
        Decimal: Numeric(38, 9),
        datetime: DateTime(timezone=True),
    }

    id: Mapped[UUID] = mapped_column(UUIDString(), primary_key=True, default=uuid4)


class TrackedBase(Base):
    """Base for tables whose rows carry creation and modification times."""

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(),
        onupdate=func.now(),
    )
