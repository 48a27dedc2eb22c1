"""
Static capability provider (``workflow_kernel.services.authorization``).

Default in-memory implementation of the ``AuthorizationProvider`` port,
backed by a plain dict.  Can be replaced with a policy-engine or
directory-backed implementation without touching blueprints.
"""

from __future__ import annotations

from collections.abc import Callable, Collection, Mapping
from typing import TYPE_CHECKING, Any

from workflow_kernel.logging_config import get_logger

if TYPE_CHECKING:
    from workflow_kernel.domain.transition import Transition

logger = get_logger("services.authorization")

Grant = Callable[[Any, Any, Any], bool] | Collection[Any]


def _actor_key(actor: Any) -> Any:
    return getattr(actor, "id", actor)


class StaticCapabilityProvider:
    """Capability checks from a ``capability -> grant`` mapping.

    A grant is either a collection of actor ids allowed to use the
    capability, or a callable ``(actor, entity, transition) -> bool``.
    Unknown capabilities are denied.
    """

    def __init__(self, grants: Mapping[str, Grant] | None = None) -> None:
        self._grants: dict[str, Grant] = dict(grants or {})

    def grant(self, capability: str, grant: Grant) -> None:
        self._grants[capability] = grant

    def allows(self, capability: str, entity: Any, transition: Transition, actor: Any) -> bool:
        grant = self._grants.get(capability)
        if grant is None:
            logger.debug("capability_unknown", extra={"capability": capability})
            return False
        if callable(grant):
            return bool(grant(actor, entity, transition))
        return actor is not None and _actor_key(actor) in grant
