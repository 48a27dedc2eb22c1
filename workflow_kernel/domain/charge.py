"""
Progressive transitions (``workflow_kernel.domain.charge``).

Responsibility
--------------
Some transitions commit only after several contributions, e.g. three
reviewers must approve before an article is published.  A charge keeps
"record a contribution" apart from "notice completion":

1. ``may_charge`` -- may the current actor still contribute?
2. ``charge``     -- apply the contribution (side effects live on the entity).
3. ``charging``   -- recompute progress in [0, 1].
4. ``charged``    -- progress >= 1; only then the engine commits the state.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  The callbacks they wrap
may mutate the entity; the objects themselves hold no per-entity state.

Invariants enforced
-------------------
* ``charging`` is clamped to [0, 1].
* ``may_charge`` defaults to True when no allow-callback is declared.

Non-goals
---------
* No atomicity between ``may_charge`` and ``charge``.  Integrators must
  serialize contributions per entity (row lock, optimistic version).
"""

from __future__ import annotations

from collections.abc import Callable, Hashable
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from workflow_kernel.domain.context import Context


@runtime_checkable
class Chargeable(Protocol):
    """Structural protocol shared by Charge and Threshold."""

    def may_charge(self, entity: Any, context: Context) -> bool: ...

    def charge(self, entity: Any, context: Context) -> None: ...

    def charging(self, entity: Any, context: Context) -> float: ...

    def charged(self, entity: Any, context: Context) -> bool: ...

    def history(self, entity: Any, context: Context) -> list[Any]: ...


def _clamp(progress: float) -> float:
    return max(0.0, min(1.0, float(progress)))


@dataclass(frozen=True)
class Charge:
    """Charge built from blueprint-author callbacks.

    Every callback receives ``(entity, context)``; ``context.actor`` is the
    contributor.
    """

    progress: Callable[[Any, Context], float]
    contribute: Callable[[Any, Context], None]
    allow: Callable[[Any, Context], bool] | None = None
    history_callback: Callable[[Any, Context], list[Any]] | None = None

    def allowing(self, allow: Callable[[Any, Context], bool]) -> Charge:
        return replace(self, allow=allow)

    def with_history(self, history: Callable[[Any, Context], list[Any]]) -> Charge:
        return replace(self, history_callback=history)

    def may_charge(self, entity: Any, context: Context) -> bool:
        return self.allow is None or bool(self.allow(entity, context))

    def charge(self, entity: Any, context: Context) -> None:
        self.contribute(entity, context)

    def charging(self, entity: Any, context: Context) -> float:
        return _clamp(self.progress(entity, context))

    def charged(self, entity: Any, context: Context) -> bool:
        return self.charging(entity, context) >= 1

    def history(self, entity: Any, context: Context) -> list[Any]:
        if self.history_callback is None:
            return []
        return list(self.history_callback(entity, context))


def _actor_key(actor: Any) -> Hashable:
    return getattr(actor, "id", actor)


@dataclass(frozen=True)
class Threshold:
    """Quorum of distinct contributors recorded on an entity list attribute.

    ``ledger`` names the entity attribute holding contributor keys;
    ``required`` distinct contributors fully charge the transition.
    """

    ledger: str
    required: int
    contributor: Callable[[Any], Hashable] = _actor_key

    def __post_init__(self) -> None:
        if self.required < 1:
            raise ValueError("Threshold requires at least one contributor")

    def contributors(self, entity: Any) -> list[Any]:
        return list(getattr(entity, self.ledger, None) or [])

    def may_charge(self, entity: Any, context: Context) -> bool:
        if context.actor is None:
            return False
        return self.contributor(context.actor) not in self.contributors(entity)

    def charge(self, entity: Any, context: Context) -> None:
        # Assign a new list so change tracking (ORM JSON columns) notices.
        setattr(
            entity,
            self.ledger,
            [*self.contributors(entity), self.contributor(context.actor)],
        )

    def charging(self, entity: Any, context: Context) -> float:
        return _clamp(len(set(self.contributors(entity))) / self.required)

    def charged(self, entity: Any, context: Context) -> bool:
        return self.charging(entity, context) >= 1

    def history(self, entity: Any, context: Context) -> list[Any]:
        return self.contributors(entity)
