"""
workflow_kernel.services.history_service -- Durable transition history.

Responsibility:
    ``TransitionHistoryRecorder`` is the audit sink that writes one
    ``TransitionHistory`` row per committed initialization or transition
    into the caller's SQLAlchemy session.  ``TransitionHistoryReader``
    lists an entity's history and rebuilds the ``Context`` (and, while it
    is still declared, the ``Transition``) of a recorded row.

Architecture position:
    Kernel services layer.  May import from db/, models/ and domain/.

Invariants enforced:
    * The recorder never commits or flushes history on its own; the row
      becomes durable with the caller's commit, together with the entity.
    * Timestamps are strictly increasing per recorder, so newest-first
      ordering is stable even when the clock does not move.

Failure modes:
    * UnmappedInstanceError when an entity without identity is not mapped.
    * BlueprintNotFoundError when a recorded blueprint cannot be resolved.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from workflow_kernel.domain.blueprint import BlueprintRegistry, default_registry
from workflow_kernel.domain.clock import Clock, SystemClock
from workflow_kernel.domain.context import Context
from workflow_kernel.domain.ports import EntityLoader
from workflow_kernel.domain.state import State
from workflow_kernel.domain.transition import Transition
from workflow_kernel.exceptions import StateNotFoundError, TransitionNotFoundError
from workflow_kernel.logging_config import get_logger
from workflow_kernel.models.transition_history import TransitionHistory
from workflow_kernel.services.state_machine_engine import default_identity, entity_type_of

if TYPE_CHECKING:
    from workflow_kernel.services.state_machine_engine import StateMachineEngine

logger = get_logger("services.history_service")


def _performer(actor: Any) -> tuple[str | None, str | None]:
    if actor is None:
        return None, None
    return entity_type_of(actor), str(getattr(actor, "id", actor))


class TransitionHistoryRecorder:
    """Audit sink writing ``TransitionHistory`` rows to a session."""

    def __init__(self, session: Session, clock: Clock | None = None, identity=None):
        self._session = session
        self._clock = clock or SystemClock()
        self._identity = identity or default_identity
        self._last: datetime | None = None

    def _stamp(self) -> datetime:
        now = self._clock.now()
        if self._last is not None and now <= self._last:
            now = self._last + timedelta(microseconds=1)
        self._last = now
        return now

    def record(self, engine: StateMachineEngine, context: Context) -> TransitionHistory:
        entity = engine.entity
        entity_id = self._identity(entity)
        if entity_id is None:
            # Primary key defaults are applied at flush time.
            self._session.add(entity)
            self._session.flush()
            entity_id = self._identity(entity)

        performer_type, performer_id = _performer(context.actor)
        stamp = self._stamp()
        row = TransitionHistory(
            performer_type=performer_type,
            performer_id=performer_id,
            transitionable_type=entity_type_of(entity),
            transitionable_id=str(entity_id),
            blueprint=engine.blueprint_id,
            attribute=engine.attribute,
            source=str(context.source.value) if context.source is not None else None,
            target=str(context.target.value),
            context=context.to_dict(),
            created_at=stamp,
            updated_at=stamp,
        )
        self._session.add(row)
        logger.info(
            "transition_history_recorded",
            extra={
                "blueprint_id": engine.blueprint_id,
                "attribute": engine.attribute,
                "source": row.source,
                "target": row.target,
            },
        )
        return row


class TransitionHistoryReader:
    """
    Queries and reconstructs recorded transitions.

    ``loader`` (optional) resolves performers back to actor objects;
    without it the reconstructed ``Context.actor`` is the recorded
    performer id.
    """

    def __init__(
        self,
        session: Session,
        registry: BlueprintRegistry | None = None,
        loader: EntityLoader | None = None,
        identity=None,
    ):
        self._session = session
        self._registry = registry or default_registry
        self._loader = loader
        self._identity = identity or default_identity

    def history_for(
        self,
        entity_type: str,
        entity_id: Any,
        attribute: str | None = None,
    ) -> list[TransitionHistory]:
        """History rows of one entity, newest first."""
        stmt = select(TransitionHistory).where(
            TransitionHistory.transitionable_type == entity_type,
            TransitionHistory.transitionable_id == str(entity_id),
        )
        if attribute is not None:
            stmt = stmt.where(TransitionHistory.attribute == attribute)
        stmt = stmt.order_by(TransitionHistory.created_at.desc())
        return list(self._session.scalars(stmt))

    def history_of(self, entity: Any, attribute: str | None = None) -> list[TransitionHistory]:
        entity_id = self._identity(entity)
        if entity_id is None:
            return []
        return self.history_for(entity_type_of(entity), entity_id, attribute)

    def latest(self, entity: Any, attribute: str | None = None) -> TransitionHistory | None:
        rows = self.history_of(entity, attribute)
        return rows[0] if rows else None

    def context_of(self, record: TransitionHistory) -> Context:
        """Rebuild the recorded Context with states resolved through the blueprint."""
        states = self._registry.resolve(record.blueprint).state_collection()
        data = record.context or {}

        def resolve(value: Any) -> State:
            try:
                return states.one(value)
            except StateNotFoundError:
                return State(value)

        source = data.get("source", record.source)
        target = data.get("target", record.target)
        return Context(
            source=resolve(source) if source is not None else None,
            target=resolve(target),
            actor=self._actor_of(record),
            data=data.get("data") or {},
        )

    def transition_of(self, record: TransitionHistory) -> Transition | None:
        """The declared Transition a row was made through, if still declared."""
        if record.is_initialization:
            return None
        context = self.context_of(record)
        transitions = self._registry.resolve(record.blueprint).transition_collection()
        try:
            return transitions.sole(context.source.value, context.target.value)
        except TransitionNotFoundError:
            return None

    def _actor_of(self, record: TransitionHistory) -> Any:
        if record.performer_id is None:
            return None
        if self._loader is not None and record.performer_type is not None:
            return self._loader(record.performer_type, record.performer_id)
        return record.performer_id
