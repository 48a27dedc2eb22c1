"""
Module: workflow_kernel.db.base
Responsibility: Declarative base classes for the kernel's SQLAlchemy ORM
    models and for integrator entities that carry a workflow attribute.
    Provides the UUID primary key convention, the type annotation map and
    the TrackedBase mixin for row timestamps.
Architecture position: Kernel > DB.  Lowest-level import target within the
    kernel.  MUST NOT import from models/, services/ or domain/.

Invariants enforced:
    - UUID primary keys: every model inherits a uuid4-generated primary key,
      so snapshots and history rows can reference entities across processes.
    - Timestamps are timezone-aware.

Failure modes:
    - IntegrityError if a model attempts to INSERT a duplicate UUID.
"""

from datetime import datetime
from typing import Any, ClassVar
from uuid import UUID as PyUUID, uuid4

from sqlalchemy import JSON, DateTime, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """
    UUID type stored as String(36) for cross-database portability.

    Guarantees:
        - process_bind_param: UUID -> str on INSERT/UPDATE.
        - process_result_value: str -> UUID on SELECT.
        - cache_ok=True enables SQLAlchemy statement caching.
    """

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None:
            return str(value)
        return None

    def process_result_value(self, value, dialect):
        if value is not None:
            return PyUUID(value)
        return None


class Base(DeclarativeBase):
    """
    Declarative base for all SQLAlchemy models.

    Guarantees:
        - id is always a uuid4-generated UUID stored as String(36).
        - datetime maps to DateTime(timezone=True).
        - dict maps to JSON (transition payloads, metadata).
    """

    type_annotation_map: ClassVar[dict] = {
        datetime: DateTime(timezone=True),
        PyUUID: UUIDString(),
        dict[str, Any]: JSON,
    }

    id: Mapped[PyUUID] = mapped_column(
        UUIDString(),
        primary_key=True,
        default=uuid4,
    )


class TrackedBase(Base):
    """
    Abstract base with creation and modification timestamps.

    Guarantees:
        - created_at is set on INSERT and never changes.
        - updated_at is set on INSERT and refreshed on every UPDATE.
        - Callers may supply both explicitly (history rows take them from
          an injected Clock).
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


# Re-export UUID for convenience
UUID = PyUUID
