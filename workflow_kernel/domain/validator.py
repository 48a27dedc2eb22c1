"""
Static blueprint validation (``workflow_kernel.domain.validator``).

Responsibility
--------------
Entity-independent check of a blueprint: every state declared once,
every transition endpoint declared, every route declared once.  Produces
one validity flag plus one row per state and per transition, the shape
the ``workflow validate`` command prints.

Architecture position
---------------------
**Kernel domain layer** -- build/CI tooling.  Never called on the live
transition path.

Invariants enforced
-------------------
* Source and target of each transition are checked independently, so a
  row can carry both "Source Not Found" and "Target Not Found".
* Guards and authorization rules are reported, never evaluated.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from workflow_kernel.domain.blueprint import WorkflowBlueprint
from workflow_kernel.domain.state import StateCollection
from workflow_kernel.domain.transition import TransitionCollection
from workflow_kernel.domain.values import StateValue
from workflow_kernel.exceptions import (
    AmbiguousStateError,
    InvalidBlueprintError,
    StateNotFoundError,
)
from workflow_kernel.logging_config import get_logger

logger = get_logger("domain.validator")

SOURCE_NOT_FOUND = "Source Not Found"
TARGET_NOT_FOUND = "Target Not Found"
DUPLICATE_TRANSITION = "Transition defined few times"


@dataclass(frozen=True)
class StateRow:
    value: StateValue
    caption: str
    additional: str
    error: str | None = None


@dataclass(frozen=True)
class TransitionRow:
    source: StateValue
    target: StateValue
    caption: str
    prerequisites: str
    authorization: str
    rules: str
    additional: str
    errors: tuple[str, ...] = ()


@dataclass
class BlueprintValidationResult:
    """Rows plus validity; ``valid`` is False when any row has an error."""

    blueprint_id: str
    states: list[StateRow] = field(default_factory=list)
    transitions: list[TransitionRow] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return all(r.error is None for r in self.states) and all(
            not r.errors for r in self.transitions
        )

    @property
    def errors(self) -> list[str]:
        found = [r.error for r in self.states if r.error]
        for r in self.transitions:
            found.extend(f"{r.source} -> {r.target}: {e}" for e in r.errors)
        return found


def _json(value: Any) -> str:
    return json.dumps(value, default=str, sort_keys=True)


class BlueprintValidator:
    """Validates one blueprint's declarations."""

    def __init__(self, blueprint: WorkflowBlueprint):
        self.blueprint = blueprint
        self.states: StateCollection = blueprint.state_collection()
        self.transitions: TransitionCollection = blueprint.transition_collection()

    def validate(self) -> BlueprintValidationResult:
        result = BlueprintValidationResult(
            blueprint_id=self.blueprint.blueprint_id,
            states=self.state_rows(),
            transitions=self.transition_rows(),
        )
        logger.info(
            "blueprint_validated",
            extra={
                "blueprint_id": result.blueprint_id,
                "valid": result.valid,
                "state_count": len(result.states),
                "transition_count": len(result.transitions),
                "error_count": len(result.errors),
            },
        )
        return result

    @property
    def valid(self) -> bool:
        return self.validate().valid

    def state_rows(self) -> list[StateRow]:
        rows = []
        for state in self.states:
            error = None
            try:
                self.states.one(state.value)
            except AmbiguousStateError:
                error = f"State {state.value} defined few times."
            rows.append(
                StateRow(
                    value=state.value,
                    caption=state.label(),
                    additional=_json(dict(state.additional)),
                    error=error,
                )
            )
        return rows

    def transition_rows(self) -> list[TransitionRow]:
        duplicates = set(self.transitions.duplicates())
        rows = []
        for transition in self.transitions:
            errors: list[str] = []
            for endpoint, message in (
                (transition.source, SOURCE_NOT_FOUND),
                (transition.target, TARGET_NOT_FOUND),
            ):
                try:
                    self.states.one(endpoint)
                except StateNotFoundError:
                    errors.append(message)
                except AmbiguousStateError:
                    # Reported on the state row.
                    pass
            if transition.key in duplicates:
                errors.append(DUPLICATE_TRANSITION)
            rows.append(
                TransitionRow(
                    source=transition.source,
                    target=transition.target,
                    caption=transition.label(),
                    prerequisites="Yes" if transition.guards else "No",
                    authorization="Yes" if transition.authorization else "No",
                    rules=_json(transition.validation_rules(explode=True)),
                    additional=_json(dict(transition.additional)),
                    errors=tuple(errors),
                )
            )
        return rows


def assert_valid(blueprint: WorkflowBlueprint) -> None:
    """Raise InvalidBlueprintError when the blueprint has any error."""
    result = BlueprintValidator(blueprint).validate()
    if not result.valid:
        raise InvalidBlueprintError(result.blueprint_id, result.errors)
