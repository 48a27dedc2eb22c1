"""
Blueprint Definition Validator (``workflow_config.validator``).

Responsibility
--------------
Validates a ``BlueprintDef`` before it is compiled, so that structural
mistakes in YAML surface with every problem listed at once instead of
one exception at a time.

Architecture position
---------------------
**Config layer** -- build-time validation.  Called by
``workflow_config.load_blueprint()`` after loading and before
compilation.  Has no dependency on the kernel.

Invariants enforced
-------------------
* State values are unique.
* Every transition endpoint is a declared state.
* Every ``(source, target)`` pair is declared once.
* Guard severities are ``recoverable`` or ``fatal``.

Failure modes
-------------
* Validation errors (``ConfigValidationResult.errors``)  -> the definition
  MUST NOT be compiled.
* Validation warnings (``ConfigValidationResult.warnings``)  -> the
  definition may be compiled but should be reviewed (unreachable states,
  self-loops).
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field

from workflow_config.schema import GUARD_SEVERITIES, BlueprintDef


@dataclass
class ConfigValidationResult:
    """
    Result of definition validation.

    Contract
    --------
    * ``is_valid`` returns ``True`` only when ``errors`` is empty.
    * Warnings do not block compilation but should be reviewed.
    """

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)


def validate_blueprint_def(definition: BlueprintDef) -> ConfigValidationResult:
    """
    Validate a blueprint definition.

    Postconditions:
        - Returns a ``ConfigValidationResult`` with errors and warnings.
        - A definition with errors MUST NOT be compiled.
    """
    result = ConfigValidationResult()

    _validate_header(definition, result)
    _validate_states(definition, result)
    _validate_transitions(definition, result)
    _validate_guards(definition, result)
    _validate_reachability(definition, result)

    return result


def _validate_header(definition: BlueprintDef, result: ConfigValidationResult) -> None:
    if not str(definition.name).strip():
        result.add_error("Blueprint name must not be empty")
    if not str(definition.attribute).isidentifier():
        result.add_error(f"Attribute '{definition.attribute}' is not a valid identifier")


def _validate_states(definition: BlueprintDef, result: ConfigValidationResult) -> None:
    if not definition.states:
        result.add_error("Blueprint declares no states")
        return
    seen: set = set()
    for state in definition.states:
        if isinstance(state.value, bool) or not isinstance(state.value, (str, int)):
            result.add_error(f"State value {state.value!r} must be a string or integer")
            continue
        if state.value in seen:
            result.add_error(f"Duplicate state: {state.value!r} appears more than once")
        seen.add(state.value)


def _validate_transitions(definition: BlueprintDef, result: ConfigValidationResult) -> None:
    declared = {s.value for s in definition.states if isinstance(s.value, (str, int))}
    seen: set = set()
    for transition in definition.transitions:
        route = f"{transition.source!r} -> {transition.target!r}"
        endpoints = (transition.source, transition.target)
        if not all(isinstance(e, (str, int)) for e in endpoints):
            result.add_error(f"Transition {route}: endpoints must be strings or integers")
            continue
        if transition.source not in declared:
            result.add_error(f"Transition {route}: source state is not declared")
        if transition.target not in declared:
            result.add_error(f"Transition {route}: target state is not declared")
        key = (transition.source, transition.target)
        if key in seen:
            result.add_error(f"Duplicate transition: {route} appears more than once")
        seen.add(key)
        if transition.source == transition.target:
            result.add_warning(f"Transition {route} loops on the same state")
        if transition.capability is not None and not str(transition.capability).strip():
            result.add_error(f"Transition {route}: capability must not be empty")


def _validate_guards(definition: BlueprintDef, result: ConfigValidationResult) -> None:
    for transition in definition.transitions:
        route = f"{transition.source!r} -> {transition.target!r}"
        for guard in transition.guards:
            if not guard.name:
                result.add_error(f"Transition {route}: guard without a name")
            if guard.severity not in GUARD_SEVERITIES:
                result.add_error(
                    f"Transition {route}: guard '{guard.name}' has unknown severity "
                    f"'{guard.severity}' (expected one of {', '.join(GUARD_SEVERITIES)})"
                )
            if not guard.reason:
                result.add_warning(
                    f"Transition {route}: guard '{guard.name}' has no reason; "
                    "the guard name is used"
                )


def _validate_reachability(definition: BlueprintDef, result: ConfigValidationResult) -> None:
    """Warn about states no transition path from the initial state reaches."""
    if not definition.states:
        return
    edges: dict = {}
    for transition in definition.transitions:
        if not all(isinstance(e, (str, int)) for e in (transition.source, transition.target)):
            continue
        edges.setdefault(transition.source, []).append(transition.target)

    initial = definition.states[0].value
    if not isinstance(initial, (str, int)):
        return
    reached = {initial}
    queue = deque([initial])
    while queue:
        for nxt in edges.get(queue.popleft(), ()):
            if nxt not in reached:
                reached.add(nxt)
                queue.append(nxt)

    for state in definition.states:
        if isinstance(state.value, (str, int)) and state.value not in reached:
            result.add_warning(f"State {state.value!r} is unreachable from {initial!r}")
