"""
Entity attribute accessors (``workflow_kernel.services.accessors``).

``ObjectAttributeAccessor`` implements the ``EntityAccessor`` port for
plain Python objects with ``getattr`` / ``setattr``.  Plain objects have
no persistence history, so the accessor remembers the value an attribute
held before its first write through the accessor; ``mark_clean`` resets
that memory once the caller has persisted the entity. The value last
written through the accessor is kept too, so an engine can tell its own
writes from assignments made around it.

Mapped SQLAlchemy entities use ``workflow_kernel.db.accessor`` instead.
"""

from __future__ import annotations

from typing import Any

_CLEAN_KEY = "__workflow_clean__"
_WRITTEN_KEY = "__workflow_written__"
_MISSING = object()


class ObjectAttributeAccessor:
    """EntityAccessor for plain objects."""

    def get(self, entity: Any, attribute: str) -> Any:
        return getattr(entity, attribute, None)

    def set(self, entity: Any, attribute: str, value: Any) -> None:
        clean = self._clean(entity)
        if attribute not in clean:
            clean[attribute] = self.get(entity, attribute)
        setattr(entity, attribute, value)
        vars(entity).setdefault(_WRITTEN_KEY, {})[attribute] = value

    def original(self, entity: Any, attribute: str) -> Any:
        value = self._clean(entity).get(attribute, _MISSING)
        return self.get(entity, attribute) if value is _MISSING else value

    def is_dirty(self, entity: Any, attribute: str) -> bool:
        value = self._clean(entity).get(attribute, _MISSING)
        return value is not _MISSING and value != self.get(entity, attribute)

    def written(self, entity: Any, attribute: str) -> Any:
        return vars(entity).get(_WRITTEN_KEY, {}).get(attribute)

    def mark_clean(self, entity: Any, attribute: str | None = None) -> None:
        """Forget remembered values after the entity has been persisted."""
        clean = self._clean(entity)
        if attribute is None:
            clean.clear()
        else:
            clean.pop(attribute, None)

    @staticmethod
    def _clean(entity: Any) -> dict[str, Any]:
        return vars(entity).setdefault(_CLEAN_KEY, {})
