"""
Module: workflow_kernel.db.accessor
Responsibility: EntityAccessor and EntityLoader implementations for mapped
    SQLAlchemy entities.
Architecture position: Kernel > DB.  Bridges the engine's ports to the ORM.

Invariants enforced:
    - ``original`` and ``is_dirty`` read SQLAlchemy attribute history, so
      "unsaved change" means exactly what the unit of work will flush.
    - Values written through the accessor are kept in the instance state's
      ``info`` mapping, never on the mapped object.
"""

from collections.abc import Callable
from typing import Any
from uuid import UUID

from sqlalchemy import inspect
from sqlalchemy.orm import Session

from workflow_kernel.db.base import UUIDString
from workflow_kernel.logging_config import get_logger

logger = get_logger("db.accessor")

_WRITTEN_KEY = "workflow_written"


class OrmAttributeAccessor:
    """EntityAccessor for mapped instances."""

    def get(self, entity: Any, attribute: str) -> Any:
        return getattr(entity, attribute)

    def set(self, entity: Any, attribute: str, value: Any) -> None:
        setattr(entity, attribute, value)
        inspect(entity).info.setdefault(_WRITTEN_KEY, {})[attribute] = value

    def original(self, entity: Any, attribute: str) -> Any:
        state = inspect(entity)
        history = state.attrs[attribute].history
        if history.deleted:
            return history.deleted[0]
        if history.unchanged:
            return history.unchanged[0]
        if state.transient or state.pending:
            return None
        return self.get(entity, attribute)

    def is_dirty(self, entity: Any, attribute: str) -> bool:
        return inspect(entity).attrs[attribute].history.has_changes()

    def written(self, entity: Any, attribute: str) -> Any:
        return inspect(entity).info.get(_WRITTEN_KEY, {}).get(attribute)


def _entity_type(cls: type) -> str:
    return f"{cls.__module__}:{cls.__qualname__}"


def _coerce_identity(cls: type, entity_id: Any) -> Any:
    pk = inspect(cls).primary_key
    if len(pk) == 1 and isinstance(pk[0].type, UUIDString) and isinstance(entity_id, str):
        return UUID(entity_id)
    return entity_id


def session_loader(session: Session, *classes: type) -> Callable[[str, Any], Any]:
    """
    Build an EntityLoader over the given mapped classes.

    The returned callable resolves ``(entity_type, entity_id)`` pairs as
    written by ``StateMachineEngine.snapshot()`` and returns None for an
    unknown type or a missing row.
    """
    by_type = {_entity_type(cls): cls for cls in classes}

    def load(entity_type: str, entity_id: Any) -> Any:
        cls = by_type.get(entity_type)
        if cls is None:
            logger.warning("entity_type_unknown", extra={"entity_type": entity_type})
            return None
        return session.get(cls, _coerce_identity(cls, entity_id))

    return load
