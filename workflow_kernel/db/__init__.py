"""Database layer - engine, base classes and ORM accessors."""

from workflow_kernel.db.accessor import OrmAttributeAccessor, session_loader
from workflow_kernel.db.base import UUID, Base, TrackedBase, UUIDString
from workflow_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_engine,
    get_session,
    init_engine_from_url,
    reset_engine,
    session_scope,
)

__all__ = [
    "init_engine_from_url",
    "get_engine",
    "get_session",
    "session_scope",
    "create_tables",
    "drop_tables",
    "reset_engine",
    "Base",
    "TrackedBase",
    "UUIDString",
    "UUID",
    "OrmAttributeAccessor",
    "session_loader",
]
