"""
workflow_kernel.services.state_machine_engine -- Per-entity workflow engine.

Responsibility:
    Binds one blueprint to one attribute of one entity and drives it:
    initialization, transit (with the charge protocol for progressive
    transitions), authorization and pre-flight checks, snapshot/restore,
    and the serializable view of "current state plus what can happen
    next".  Thin coordinator -- guard evaluation lives on Transition,
    payload validation and authorization on injected ports, persistence
    on the audit sink.

Architecture position:
    Kernel services layer.  Imports kernel domain only; never imports
    workflow_config.  The caller owns persistence of the entity.

Invariants enforced:
    * The attribute is assigned only by ``init`` (exactly once) and by
      ``transit`` after the route and its charge resolved.
    * A change of the attribute made outside the engine, before or after
      the engine was built, aborts the next ``transit`` with
      ``StateMachineConsistencyError``.
    * Callbacks run strictly after the assignment and after the audit
      record; their exceptions propagate and nothing is rolled back.
    * ``states()`` and ``all_transitions()`` are computed once per engine.

Failure modes:
    * WorkflowNotInitializedError / WorkflowAlreadyInitializedError.
    * TransitionNotFoundError / AmbiguousTransitionError for bad routes.
    * PayloadValidationError from the injected validator.
    * AuthorizationDeniedError, TransitionRecoverableError,
      TransitionFatalError from ``authorize`` / ``check`` (and from
      ``transit`` when guard enforcement is switched on).
    * AlreadyChargedError when silent charge denial is switched off.
    * MissingCollaboratorError when rules exist but no validator is set.

Audit relevance:
    Every committed initialization and transition produces exactly one
    ``Context`` handed to the audit sink: source, target, actor, payload.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Mapping
from typing import Any

from workflow_kernel.domain.blueprint import (
    BlueprintRegistry,
    WorkflowBlueprint,
    default_registry,
)
from workflow_kernel.domain.context import Context
from workflow_kernel.domain.ports import (
    AuditSink,
    AuthorizationProvider,
    EntityAccessor,
    EntityLoader,
    PayloadValidator,
    PrincipalResolver,
)
from workflow_kernel.domain.settings import DEFAULT_SETTINGS, EngineSettings
from workflow_kernel.domain.snapshot import EngineSnapshot
from workflow_kernel.domain.state import State, StateCollection
from workflow_kernel.domain.transition import Transition, TransitionCollection
from workflow_kernel.domain.values import scalar
from workflow_kernel.exceptions import (
    AlreadyChargedError,
    AmbiguousTransitionError,
    AuthorizationDeniedError,
    EntityNotFoundError,
    MissingCollaboratorError,
    StateMachineConsistencyError,
    TransitionNotFoundError,
    WorkflowAlreadyInitializedError,
    WorkflowNotInitializedError,
)
from workflow_kernel.logging_config import LogContext, get_logger
from workflow_kernel.services.accessors import ObjectAttributeAccessor

logger = get_logger("services.state_machine_engine")


def entity_type_of(entity: Any) -> str:
    """Durable type name of an entity: ``module:QualName``."""
    cls = type(entity)
    return f"{cls.__module__}:{cls.__qualname__}"


def default_identity(entity: Any) -> Any:
    return getattr(entity, "id", None)


class StateMachineEngine:
    """Workflow engine for one attribute of one entity.

    Collaborators are injected; only the blueprint, the entity and the
    attribute name are required.  Without an ``accessor`` the attribute
    is read and written with ``getattr`` / ``setattr``.  Without a
    ``principal_resolver`` the blueprint's own resolver is used.
    """

    def __init__(
        self,
        blueprint: WorkflowBlueprint,
        entity: Any,
        attribute: str,
        *,
        accessor: EntityAccessor | None = None,
        authorizer: AuthorizationProvider | None = None,
        validator: PayloadValidator | None = None,
        audit_sink: AuditSink | None = None,
        principal_resolver: PrincipalResolver | None = None,
        settings: EngineSettings | None = None,
        identity: Callable[[Any], Any] | None = None,
    ) -> None:
        self._blueprint = blueprint
        self._entity = entity
        self._attribute = attribute
        self._accessor = accessor or ObjectAttributeAccessor()
        self._authorizer = authorizer
        self._validator = validator
        self._audit_sink = audit_sink
        self._principal_resolver = principal_resolver or blueprint.principal_resolver()
        self._settings = settings or DEFAULT_SETTINGS
        self._identity = identity or default_identity

        self._states: StateCollection | None = None
        self._declared: TransitionCollection | None = None
        self._baseline = self._legitimate_value()
        self._pending_context: Context | None = None

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def blueprint(self) -> WorkflowBlueprint:
        return self._blueprint

    @property
    def blueprint_id(self) -> str:
        return self._blueprint.blueprint_id

    @property
    def entity(self) -> Any:
        return self._entity

    @property
    def attribute(self) -> str:
        return self._attribute

    @property
    def settings(self) -> EngineSettings:
        return self._settings

    @property
    def pending_context(self) -> Context | None:
        """Context of the last committed init/transit of this engine."""
        return self._pending_context

    @property
    def needs_persist(self) -> bool:
        """True when the attribute holds a change the caller has not saved."""
        return self._accessor.is_dirty(self._entity, self._attribute)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def actor(self) -> Any:
        return self._principal_resolver()

    def states(self) -> StateCollection:
        if self._states is None:
            self._states = self._blueprint.state_collection()
        return self._states

    def all_transitions(self) -> TransitionCollection:
        """Every declared transition, bound to this entity and actor."""
        if self._declared is None:
            self._declared = self._blueprint.transition_collection()
        return self._declared.bind(
            entity=self._entity,
            actor=self.actor(),
            states=self.states(),
            authorizer=self._authorizer,
        )

    def state(self) -> State | None:
        """Current state, or None before initialization."""
        value = self._accessor.get(self._entity, self._attribute)
        if value is None:
            return None
        return self.states().one(value)

    def transitions(self) -> TransitionCollection:
        """Declared transitions leaving the current state."""
        current = self.state()
        if current is None:
            return self.all_transitions().filter(lambda t: False)
        return self.all_transitions().from_state(current)

    def available(self) -> TransitionCollection:
        """Outgoing transitions that are not fatally blocked and are authorized."""
        return self.transitions().without_forbidden().authorized()

    def transition_to(self, target: Any) -> Transition | None:
        """The single route from the current state to ``target``, if any.

        Raises:
            AmbiguousTransitionError: the route is declared more than once.
        """
        current = self.state()
        if current is None:
            return None
        matches = self.transitions().to_state(target)
        if not matches:
            return None
        if len(matches) > 1:
            raise AmbiguousTransitionError(current.value, scalar(target), len(matches))
        return matches[0]

    def is_(self, target: Any) -> bool:
        current = self.state()
        return current is not None and current.is_(target)

    def is_not(self, target: Any) -> bool:
        return not self.is_(target)

    def charging(self, target: Any) -> float | None:
        """Progress of the charged route to ``target`` (None when uncharged)."""
        transition = self._resolve(target)
        if transition.charge is None:
            return None
        return transition.charge.charging(self._entity, self._context(transition, None))

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def init(self, payload: Mapping[str, Any] | None = None, state: Any = None) -> Any:
        """Assign the initial state (or ``state``) exactly once.

        Raises:
            WorkflowAlreadyInitializedError: the attribute already holds a value.
            StateNotFoundError: ``state`` is not declared.
            PayloadValidationError: payload fails the state's rules.
        """
        current = self._accessor.get(self._entity, self._attribute)
        if current is not None:
            raise WorkflowAlreadyInitializedError(self._attribute, scalar(current))

        target = self.states().one(state) if state is not None else self.states().initial()
        data = dict(payload or {})
        self._validate(target.rules, data, f"initialization into {target.value!r}")

        context = Context(target=target, source=None, actor=self.actor(), data=data)
        with LogContext.bind(blueprint_id=self.blueprint_id, entity_id=self._entity_key()):
            self._commit(context)
            logger.info(
                "workflow_initialized",
                extra={"attribute": self._attribute, "target": target.value},
            )
        return self._entity

    def transit(self, target: Any, payload: Mapping[str, Any] | None = None) -> Any:
        """Move the entity along the route from its current state to ``target``.

        For a charged route the actor's contribution is recorded first;
        the state changes only once the charge is complete.

        Returns:
            The entity, for chaining.
        """
        start = time.monotonic()
        with LogContext.bind(blueprint_id=self.blueprint_id, entity_id=self._entity_key()):
            current = self.state()
            if current is None:
                raise WorkflowNotInitializedError(self._attribute)
            self._ensure_consistent()

            transition = self.transition_to(target)
            if transition is None:
                logger.warning(
                    "transition_not_found",
                    extra={"source": current.value, "target": scalar(target)},
                )
                raise TransitionNotFoundError(current.value, scalar(target))

            data = dict(payload or {})
            context = self._context(transition, data)
            if self._settings.enforce_guards_on_transit:
                self._enforce(transition, context)
            self._validate(
                transition.validation_rules(),
                data,
                f"transition {transition.source!r} -> {transition.target!r}",
            )

            if transition.charge is not None and not self._charge(transition, context):
                return self._entity

            self._commit(context)
            logger.info(
                "workflow_transited",
                extra={
                    "attribute": self._attribute,
                    "source": transition.source,
                    "target": transition.target,
                    "duration_ms": round((time.monotonic() - start) * 1000, 3),
                },
            )
            if transition.callbacks:
                transition.invoke(self._entity, context)
                logger.debug(
                    "transition_callbacks_invoked",
                    extra={"count": len(transition.callbacks)},
                )
        return self._entity

    def authorize(self, target: Any) -> Transition:
        """Resolve the route to ``target`` and require the actor be allowed on it.

        Raises:
            TransitionNotFoundError: no such route from the current state.
            AuthorizationDeniedError: the route's authorization rule denies.
        """
        transition = self._resolve(target)
        context = self._context(transition, None)
        self._require_authorized(transition, context)
        return transition

    def check(self, target: Any, payload: Mapping[str, Any] | None = None) -> Transition:
        """Pre-flight a transit without touching the entity.

        Runs the guards, the authorization rule and the payload rules in
        that order and raises the first typed failure.
        """
        transition = self._resolve(target)
        data = dict(payload or {})
        context = self._context(transition, data)
        self._enforce(transition, context)
        self._validate(
            transition.validation_rules(),
            data,
            f"transition {transition.source!r} -> {transition.target!r}",
        )
        return transition

    def refresh(self) -> None:
        """Adopt the attribute's current value after the caller reloaded the entity."""
        self._baseline = scalar(self._accessor.get(self._entity, self._attribute))

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------

    def snapshot(self) -> EngineSnapshot:
        """Durable description of this engine.

        Raises:
            ValueError: the entity has no identity yet (not persisted).
        """
        entity_id = self._identity(self._entity)
        if entity_id is None:
            raise ValueError(
                f"Cannot snapshot {entity_type_of(self._entity)} without an identity"
            )
        return EngineSnapshot(
            blueprint_id=self.blueprint_id,
            attribute=self._attribute,
            entity_type=entity_type_of(self._entity),
            entity_id=entity_id,
        )

    @classmethod
    def restore(
        cls,
        snapshot: EngineSnapshot,
        loader: EntityLoader,
        *,
        registry: BlueprintRegistry | None = None,
        **collaborators: Any,
    ) -> StateMachineEngine:
        """Rebuild an engine from a snapshot with freshly injected collaborators.

        Raises:
            BlueprintNotFoundError: the blueprint id cannot be resolved.
            EntityNotFoundError: the loader returns None.
        """
        blueprint = (registry or default_registry).resolve(snapshot.blueprint_id)
        entity = loader(snapshot.entity_type, snapshot.entity_id)
        if entity is None:
            raise EntityNotFoundError(snapshot.entity_type, snapshot.entity_id)
        engine = cls(blueprint, entity, snapshot.attribute, **collaborators)
        logger.info(
            "engine_restored",
            extra={
                "blueprint_id": snapshot.blueprint_id,
                "attribute": snapshot.attribute,
                "entity_type": snapshot.entity_type,
                "entity_id": snapshot.entity_id,
            },
        )
        return engine

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any] | None:
        current = self.state()
        if current is None:
            return None
        data = current.to_dict(self._entity)
        data["transitions"] = self.available().to_list()
        return data

    def __str__(self) -> str:
        current = self.state()
        return current.label(self._entity) if current is not None else ""

    def __repr__(self) -> str:
        return f"<StateMachineEngine {self.blueprint_id} {self._attribute}={self._baseline!r}>"

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _entity_key(self) -> str | None:
        key = self._identity(self._entity)
        return str(key) if key is not None else None

    def _resolve(self, target: Any) -> Transition:
        current = self.state()
        if current is None:
            raise WorkflowNotInitializedError(self._attribute)
        transition = self.transition_to(target)
        if transition is None:
            raise TransitionNotFoundError(current.value, scalar(target))
        return transition

    def _context(self, transition: Transition, data: Mapping[str, Any] | None) -> Context:
        return self.all_transitions().context_for(transition, data)

    def _legitimate_value(self) -> Any:
        """Current value, or the last trusted one when it was changed around the engine."""
        actual = scalar(self._accessor.get(self._entity, self._attribute))
        if not self._accessor.is_dirty(self._entity, self._attribute):
            return actual
        written = scalar(self._accessor.written(self._entity, self._attribute))
        if written == actual:
            return actual
        if written is not None:
            return written
        return scalar(self._accessor.original(self._entity, self._attribute))

    def _ensure_consistent(self) -> None:
        actual = scalar(self._accessor.get(self._entity, self._attribute))
        if actual != self._baseline:
            logger.error(
                "state_machine_inconsistent",
                extra={
                    "attribute": self._attribute,
                    "expected": self._baseline,
                    "actual": actual,
                },
            )
            raise StateMachineConsistencyError(self._attribute, self._baseline, actual)

    def _validate(self, rules: Mapping[str, Any], payload: Mapping[str, Any], purpose: str) -> None:
        if not rules:
            return
        if self._validator is None:
            raise MissingCollaboratorError("payload validator", purpose)
        self._validator.validate(rules, payload)

    def _require_authorized(self, transition: Transition, context: Context) -> None:
        if transition.is_authorized(self._entity, context, self._authorizer):
            return
        capability = transition.authorization.capability if transition.authorization else None
        logger.warning(
            "authorization_denied",
            extra={
                "source": transition.source,
                "target": transition.target,
                "capability": capability,
            },
        )
        raise AuthorizationDeniedError(transition.source, transition.target, capability)

    def _enforce(self, transition: Transition, context: Context) -> None:
        transition.assert_open(self._entity, context)
        self._require_authorized(transition, context)

    def _charge(self, transition: Transition, context: Context) -> bool:
        """Record the actor's contribution; True once the charge is complete."""
        charge = transition.charge
        if not charge.may_charge(self._entity, context):
            logger.info(
                "transition_charge_denied",
                extra={"source": transition.source, "target": transition.target},
            )
            if not self._settings.silent_charge_denial:
                raise AlreadyChargedError(transition.source, transition.target, context.actor)
            return False

        charge.charge(self._entity, context)
        progress = charge.charging(self._entity, context)
        if progress < 1:
            logger.info(
                "transition_charging",
                extra={
                    "source": transition.source,
                    "target": transition.target,
                    "progress": progress,
                },
            )
            return False
        return True

    def _commit(self, context: Context) -> None:
        self._accessor.set(self._entity, self._attribute, context.target.value)
        self._baseline = context.target.value
        self._pending_context = context
        if self._settings.record_history and self._audit_sink is not None:
            self._audit_sink.record(self, context)
