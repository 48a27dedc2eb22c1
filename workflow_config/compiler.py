"""
Blueprint Compiler -- BlueprintDef -> DeclarativeBlueprint.

The compiler resolves every guard name through a ``GuardRegistry`` of
boolean predicates and produces a ``DeclarativeBlueprint``, the runtime
artifact a ``StateMachineEngine`` accepts like any hand-written
blueprint.

Compilation validates:
  - Every guard name is registered
  - Every state and transition builds into a kernel value object

Compilation does not re-run structural validation; callers go through
``workflow_config.load_blueprint()`` which validates first.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any

from workflow_config.schema import BlueprintDef, TransitionDef
from workflow_kernel.domain.blueprint import WorkflowBlueprint
from workflow_kernel.domain.context import Context
from workflow_kernel.domain.guard import Guard, Severity
from workflow_kernel.domain.state import State
from workflow_kernel.domain.transition import Authorization, Transition
from workflow_kernel.exceptions import BlueprintError

GuardPredicate = Callable[[Any, Context], bool]


# ---------------------------------------------------------------------------
# Guard registry
# ---------------------------------------------------------------------------


class GuardRegistry:
    """Named boolean predicates available to YAML blueprints.

    Usable as a decorator::

        guards = GuardRegistry()

        @guards.register("has_content")
        def has_content(article, context):
            return bool(article.body)
    """

    def __init__(self, guards: Mapping[str, GuardPredicate] | None = None) -> None:
        self._guards: dict[str, GuardPredicate] = dict(guards or {})

    def register(self, name: str, predicate: GuardPredicate | None = None):
        if predicate is not None:
            self._guards[name] = predicate
            return predicate

        def decorator(fn: GuardPredicate) -> GuardPredicate:
            self._guards[name] = fn
            return fn

        return decorator

    def get(self, name: str) -> GuardPredicate | None:
        return self._guards.get(name)

    def names(self) -> list[str]:
        return sorted(self._guards)

    def __contains__(self, name: object) -> bool:
        return name in self._guards

    def __iter__(self) -> Iterator[str]:
        return iter(self.names())


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CompilationError:
    """A single compilation error."""

    category: str
    message: str
    severity: str = "error"


class CompilationFailedError(BlueprintError):
    """Blueprint definition could not be compiled."""

    code: str = "BLUEPRINT_COMPILATION_FAILED"

    def __init__(self, blueprint_id: str, errors: list[CompilationError]):
        self.blueprint_id = blueprint_id
        self.errors = errors
        messages = [f"  [{e.category}] {e.message}" for e in errors if e.severity == "error"]
        super().__init__(
            f"Compilation of {blueprint_id} failed with {len(messages)} error(s):\n"
            + "\n".join(messages)
        )


# ---------------------------------------------------------------------------
# Runtime artifact
# ---------------------------------------------------------------------------


class DeclarativeBlueprint(WorkflowBlueprint):
    """Blueprint compiled from a YAML definition."""

    def __init__(
        self,
        definition: BlueprintDef,
        states: list[State],
        transitions: list[Transition],
        principal_resolver: Callable[[], Any] | None = None,
    ) -> None:
        self._definition = definition
        self._states = tuple(states)
        self._transitions = tuple(transitions)
        self._principal_resolver = principal_resolver

    @property
    def definition(self) -> BlueprintDef:
        return self._definition

    @property
    def blueprint_id(self) -> str:
        return self._definition.name

    @property
    def attribute(self) -> str:
        return self._definition.attribute

    @property
    def checksum(self) -> str:
        return self._definition.checksum

    def states(self) -> list[State]:
        return list(self._states)

    def transitions(self) -> list[Transition]:
        return list(self._transitions)

    def principal_resolver(self) -> Callable[[], Any]:
        if self._principal_resolver is not None:
            return self._principal_resolver
        return super().principal_resolver()


# ---------------------------------------------------------------------------
# Compiler
# ---------------------------------------------------------------------------


def compile_blueprint(
    definition: BlueprintDef,
    guards: GuardRegistry | None = None,
    principal_resolver: Callable[[], Any] | None = None,
) -> DeclarativeBlueprint:
    """Compile a BlueprintDef into a DeclarativeBlueprint.

    Raises:
        CompilationFailedError: a guard name is not registered.
    """
    registry = guards or GuardRegistry()
    errors: list[CompilationError] = []

    states = [
        State(
            value=s.value,
            caption=s.caption,
            additional=s.additional,
            rules=s.rules,
        )
        for s in definition.states
    ]
    transitions = [_compile_transition(t, registry, errors) for t in definition.transitions]

    if errors:
        raise CompilationFailedError(definition.name, errors)

    return DeclarativeBlueprint(definition, states, transitions, principal_resolver)


def _compile_transition(
    definition: TransitionDef,
    registry: GuardRegistry,
    errors: list[CompilationError],
) -> Transition:
    compiled_guards: list[Guard] = []
    for guard in definition.guards:
        predicate = registry.get(guard.name)
        if predicate is None:
            errors.append(
                CompilationError(
                    category="guard",
                    message=(
                        f"Transition {definition.source!r} -> {definition.target!r} "
                        f"references unknown guard '{guard.name}'"
                    ),
                )
            )
            continue
        compiled_guards.append(
            Guard.requires(
                guard.name,
                predicate,
                reason=guard.reason or guard.name,
                severity=Severity(guard.severity),
            )
        )

    return Transition(
        source=definition.source,
        target=definition.target,
        caption=definition.caption,
        guards=tuple(compiled_guards),
        authorization=(
            Authorization(capability=definition.capability)
            if definition.capability
            else None
        ),
        rules=definition.rules,
        additional=definition.additional,
    )
