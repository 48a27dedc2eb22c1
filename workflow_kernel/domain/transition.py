"""
Transitions and transition collections (``workflow_kernel.domain.transition``).

Responsibility
--------------
A ``Transition`` is a declared route between two states together with
everything that decides whether and how it may be taken: ordered guards,
an authorization rule, payload rules, post-commit callbacks and an
optional charge.  ``TransitionCollection`` is the ordered sequence a
blueprint declares, with filtered views used to answer "what can this
actor do with this entity now?".

Architecture position
---------------------
**Kernel domain layer** -- value objects plus pure filtering.  Callbacks
supplied by blueprint authors are invoked, never inspected.

Invariants enforced
-------------------
* Identity of a transition is ``(source, target)``, compared by scalar value.
* Guards run in declaration order; the first blocking outcome wins and
  later guards never run.
* Filtered views never mutate the collection they derive from, and keep
  declaration order (first-match resolution depends on it).
* ``sole`` fails loudly on zero or several matches.

Failure modes
-------------
* ``TransitionNotFoundError`` / ``AmbiguousTransitionError`` from ``sole``.
* ``TransitionRecoverableError`` / ``TransitionFatalError`` from
  ``assert_open`` when a blocked route is forced.
* ``GuardContractError`` when a guard returns a non-``GuardOutcome``.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from workflow_kernel.domain.charge import Chargeable
from workflow_kernel.domain.context import Context
from workflow_kernel.domain.guard import OPEN, Guard, GuardOutcome, evaluate_guards
from workflow_kernel.domain.state import Caption, State, StateCollection
from workflow_kernel.domain.values import StateValue, default_caption, scalar
from workflow_kernel.exceptions import (
    AmbiguousTransitionError,
    StateNotFoundError,
    TransitionFatalError,
    TransitionNotFoundError,
    TransitionRecoverableError,
)
from workflow_kernel.logging_config import get_logger

if TYPE_CHECKING:
    from workflow_kernel.domain.ports import AuthorizationProvider

logger = get_logger("domain.transition")

Callback = Callable[[Any, Context], None]


# ---------------------------------------------------------------------------
# Authorization rule
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Authorization:
    """Who may take a transition.

    Exactly one form is set: a ``capability`` name delegated to the
    injected authorization provider, or a ``predicate(entity, context)``
    evaluated directly.
    """

    capability: str | None = None
    predicate: Callable[[Any, Context], bool] | None = None

    def __post_init__(self) -> None:
        if (self.capability is None) == (self.predicate is None):
            raise ValueError("Authorization needs exactly one of capability or predicate")

    @classmethod
    def of(cls, rule: str | Callable[[Any, Context], bool]) -> Authorization:
        if isinstance(rule, str):
            return cls(capability=rule)
        return cls(predicate=rule)

    def allows(
        self,
        entity: Any,
        transition: Transition,
        context: Context,
        provider: AuthorizationProvider | None,
    ) -> bool:
        if self.predicate is not None:
            return bool(self.predicate(entity, context))
        if provider is None:
            logger.warning(
                "authorization_provider_missing",
                extra={
                    "capability": self.capability,
                    "source": transition.source,
                    "target": transition.target,
                },
            )
            return False
        return bool(provider.allows(self.capability, entity, transition, context.actor))


# ---------------------------------------------------------------------------
# Transition
# ---------------------------------------------------------------------------


def _explode(rule: Any) -> list[Any]:
    if isinstance(rule, str):
        return [part for part in rule.split("|") if part]
    return list(rule)


@dataclass(frozen=True, eq=False)
class Transition:
    """A declared route from ``source`` to ``target``.

    Contract: frozen; the ``with``-style builders return modified copies.
    Post-commit ``callbacks`` receive ``(entity, context)`` strictly after
    the attribute has been assigned; their exceptions are not caught.
    """

    source: StateValue
    target: StateValue
    caption: Caption | None = None
    guards: tuple[Guard, ...] = ()
    authorization: Authorization | None = None
    rules: Mapping[str, Any] = field(default_factory=dict)
    callbacks: tuple[Callback, ...] = ()
    charge: Chargeable | None = None
    additional: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "source", scalar(self.source))
        object.__setattr__(self, "target", scalar(self.target))
        object.__setattr__(self, "guards", tuple(self.guards))
        object.__setattr__(self, "callbacks", tuple(self.callbacks))
        object.__setattr__(self, "rules", MappingProxyType(dict(self.rules)))
        object.__setattr__(self, "additional", MappingProxyType(dict(self.additional)))

    @classmethod
    def make(cls, source: Any, target: Any) -> Transition:
        return cls(source=source, target=target)

    @classmethod
    def coerce(cls, item: Any) -> Transition:
        """Accept a Transition or a ``(source, target)`` pair."""
        if isinstance(item, Transition):
            return item
        if isinstance(item, (tuple, list)) and len(item) == 2:
            return cls.make(item[0], item[1])
        raise TypeError(f"Cannot declare a transition from {item!r}")

    # -- builders ----------------------------------------------------------

    def as_(self, caption: Caption) -> Transition:
        return replace(self, caption=caption)

    def before(self, *guards: Guard) -> Transition:
        """Append guards, evaluated in the order given."""
        return replace(self, guards=(*self.guards, *guards))

    def authorized_by(self, rule: str | Callable[[Any, Context], bool]) -> Transition:
        return replace(self, authorization=Authorization.of(rule))

    def with_rules(self, rules: Mapping[str, Any]) -> Transition:
        return replace(self, rules=rules)

    def after(self, callback: Callback) -> Transition:
        return replace(self, callbacks=(*self.callbacks, callback))

    def charged_by(self, charge: Chargeable) -> Transition:
        return replace(self, charge=charge)

    def set(self, key: str, value: Any) -> Transition:
        return replace(self, additional={**self.additional, key: value})

    # -- identity ----------------------------------------------------------

    @property
    def key(self) -> tuple[StateValue, StateValue]:
        return (self.source, self.target)

    def connects(self, source: Any, target: Any) -> bool:
        return self.source == scalar(source) and self.target == scalar(target)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Transition):
            return self.key == other.key
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.key)

    def __repr__(self) -> str:
        return f"Transition({self.source!r} -> {self.target!r})"

    # -- behaviour ---------------------------------------------------------

    def label(self, entity: Any = None) -> str:
        if callable(self.caption):
            return self.caption(entity)
        if self.caption:
            return self.caption
        return f"{default_caption(self.source)} -> {default_caption(self.target)}"

    def evaluate(self, entity: Any, context: Context) -> GuardOutcome:
        """Run the guards; OPEN when none blocks."""
        if not self.guards:
            return OPEN
        return evaluate_guards(self.guards, entity, context)

    def has_problem(self, entity: Any, context: Context) -> str | None:
        """First blocking guard's reason, or None when the route is open."""
        return self.evaluate(entity, context).reason

    def assert_open(self, entity: Any, context: Context) -> None:
        """Raise the typed guard error when the route is blocked."""
        outcome = self.evaluate(entity, context)
        if outcome.is_fatal:
            raise TransitionFatalError(self.source, self.target, outcome.reason)
        if outcome.is_recoverable:
            raise TransitionRecoverableError(self.source, self.target, outcome.reason)

    def is_authorized(
        self,
        entity: Any,
        context: Context,
        provider: AuthorizationProvider | None = None,
    ) -> bool:
        if self.authorization is None:
            return True
        return self.authorization.allows(entity, self, context, provider)

    def invoke(self, entity: Any, context: Context) -> None:
        """Run post-commit callbacks in declaration order."""
        for callback in self.callbacks:
            callback(entity, context)

    def validation_rules(self, explode: bool = False) -> dict[str, Any]:
        if not explode:
            return dict(self.rules)
        return {name: _explode(rule) for name, rule in self.rules.items()}

    def merge_rules(self, rules: Mapping[str, Any]) -> dict[str, str]:
        """Combine own rules with extra ones; duplicates are kept once."""
        merged: dict[str, str] = {}
        extra = dict(rules)
        for name, rule in self.rules.items():
            parts = _explode(rule)
            if name in extra:
                for more in _explode(extra.pop(name)):
                    if more not in parts:
                        parts.append(more)
            merged[name] = "|".join(str(p) for p in parts)
        for name, rule in extra.items():
            merged[name] = rule if isinstance(rule, str) else "|".join(str(p) for p in rule)
        return merged

    def required_fields(self) -> list[str]:
        return [
            name for name, parts in self.validation_rules(explode=True).items()
            if "required" in parts
        ]

    def to_dict(self, entity: Any = None, context: Context | None = None) -> dict[str, Any]:
        row: dict[str, Any] = {
            "source": self.source,
            "target": self.target,
            "caption": self.label(entity),
            "problem": self.has_problem(entity, context) if context is not None else None,
            "requires": self.required_fields(),
            **self.additional,
        }
        if self.charge is not None and context is not None:
            row["charge"] = {
                "progress": self.charge.charging(entity, context),
                "history": self.charge.history(entity, context),
            }
        return row


# ---------------------------------------------------------------------------
# TransitionCollection
# ---------------------------------------------------------------------------


class TransitionCollection(Sequence[Transition]):
    """Ordered transitions, optionally bound to an entity and actor.

    Binding is what lets guard- and authorization-based views run:
    ``without_forbidden``, ``without_recoverable`` and ``authorized``
    evaluate each transition against the bound ``entity`` with a context
    built from the bound ``actor`` and ``states``.  Every view returns a
    new collection with the same binding.
    """

    def __init__(
        self,
        transitions: Iterable[Any] = (),
        *,
        entity: Any = None,
        actor: Any = None,
        states: StateCollection | None = None,
        authorizer: AuthorizationProvider | None = None,
    ):
        self._items: tuple[Transition, ...] = tuple(Transition.coerce(t) for t in transitions)
        self.entity = entity
        self.actor = actor
        self.states = states
        self.authorizer = authorizer

    # -- sequence protocol -------------------------------------------------

    def __getitem__(self, index):  # type: ignore[override]
        if isinstance(index, slice):
            return self._derive(self._items[index])
        return self._items[index]

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Transition]:
        return iter(self._items)

    def __repr__(self) -> str:
        return f"TransitionCollection({self.keys()!r})"

    def _derive(self, items: Iterable[Transition]) -> TransitionCollection:
        return TransitionCollection(
            items,
            entity=self.entity,
            actor=self.actor,
            states=self.states,
            authorizer=self.authorizer,
        )

    def bind(
        self,
        *,
        entity: Any = None,
        actor: Any = None,
        states: StateCollection | None = None,
        authorizer: AuthorizationProvider | None = None,
    ) -> TransitionCollection:
        return TransitionCollection(
            self._items,
            entity=entity if entity is not None else self.entity,
            actor=actor if actor is not None else self.actor,
            states=states if states is not None else self.states,
            authorizer=authorizer if authorizer is not None else self.authorizer,
        )

    def filter(self, predicate: Callable[[Transition], bool]) -> TransitionCollection:
        return self._derive(t for t in self._items if predicate(t))

    def keys(self) -> list[tuple[StateValue, StateValue]]:
        return [t.key for t in self._items]

    def first(self) -> Transition | None:
        return self._items[0] if self._items else None

    # -- evaluation --------------------------------------------------------

    def _state(self, value: StateValue) -> State:
        if self.states is not None:
            try:
                return self.states.one(value)
            except StateNotFoundError:
                pass
        return State(value)

    def context_for(self, transition: Transition, payload: Mapping[str, Any] | None = None) -> Context:
        return Context(
            source=self._state(transition.source),
            target=self._state(transition.target),
            actor=self.actor,
            data=payload or {},
        )

    def outcome(self, transition: Transition) -> GuardOutcome:
        return transition.evaluate(self.entity, self.context_for(transition))

    def problem_of(self, transition: Transition) -> str | None:
        return self.outcome(transition).reason

    # -- views -------------------------------------------------------------

    def from_state(self, state: Any) -> TransitionCollection:
        wanted = scalar(state)
        return self.filter(lambda t: t.source == wanted)

    def to_state(self, state: Any) -> TransitionCollection:
        wanted = scalar(state)
        return self.filter(lambda t: t.target == wanted)

    def without_forbidden(self) -> TransitionCollection:
        """Drop transitions a guard blocks fatally."""
        return self.filter(lambda t: not self.outcome(t).is_fatal)

    def without_recoverable(self) -> TransitionCollection:
        """Keep only transitions blocked recoverably (the "why can't I" view)."""
        return self.filter(lambda t: self.outcome(t).is_recoverable)

    def only_open(self) -> TransitionCollection:
        return self.filter(lambda t: self.outcome(t).is_open)

    def authorized(self) -> TransitionCollection:
        return self.filter(
            lambda t: t.is_authorized(self.entity, self.context_for(t), self.authorizer)
        )

    def sole(self, source: Any = None, target: Any = None) -> Transition:
        """Exactly one transition matching the given endpoints.

        Raises:
            TransitionNotFoundError: nothing matches.
            AmbiguousTransitionError: several transitions match.
        """
        view = self
        if source is not None:
            view = view.from_state(source)
        if target is not None:
            view = view.to_state(target)
        if not view:
            raise TransitionNotFoundError(scalar(source), scalar(target))
        if len(view) > 1:
            raise AmbiguousTransitionError(scalar(source), scalar(target), len(view))
        return view[0]

    def duplicates(self) -> list[tuple[StateValue, StateValue]]:
        seen: dict[tuple[StateValue, StateValue], int] = {}
        for t in self._items:
            seen[t.key] = seen.get(t.key, 0) + 1
        return [key for key, count in seen.items() if count > 1]

    def to_list(self) -> list[dict[str, Any]]:
        return [t.to_dict(self.entity, self.context_for(t)) for t in self._items]
