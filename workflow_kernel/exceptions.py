"""
Typed Exception Hierarchy for the Workflow Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of a state machine need to tell "this route does not exist" from
"this route exists but is blocked right now" from "the blueprint itself is
broken".  Generic exceptions force callers to parse messages.  Instead:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example - WRONG way to handle errors:
    try:
        engine.transit("published")
    except Exception as e:
        if "no transition" in str(e):  # FRAGILE - message might change
            ...

Example - RIGHT way (what this module enables):
    try:
        engine.transit("correction", {"comment": text})
    except PayloadValidationError as e:
        api_response(code=e.code, errors=e.field_errors)
    except TransitionNotFoundError as e:
        log.warning(f"No route {e.source} -> {e.target}")

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from WorkflowError:

    WorkflowError (base)
    |
    +-- NotFoundError
    |   +-- StateNotFoundError
    |   +-- TransitionNotFoundError
    |   +-- EntityNotFoundError
    |   +-- BlueprintNotFoundError
    |
    +-- AmbiguousMatchError
    |   +-- AmbiguousStateError
    |   +-- AmbiguousTransitionError
    |
    +-- TransitionBlockedError
    |   +-- TransitionRecoverableError
    |   +-- TransitionFatalError
    |
    +-- AuthorizationDeniedError
    |
    +-- PayloadValidationError
    |
    +-- StateMachineConsistencyError
    |   +-- WorkflowNotInitializedError
    |   +-- WorkflowAlreadyInitializedError
    |
    +-- ChargeError
    |   +-- AlreadyChargedError
    |
    +-- BlueprintError
        +-- InvalidBlueprintError
        +-- GuardContractError
        +-- MissingCollaboratorError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                          | When Raised
----------------|-------------------------------|---------------------------------------
Lookup          | STATE_NOT_FOUND               | No declared state has the value
                | TRANSITION_NOT_FOUND          | No declared route source -> target
                | ENTITY_NOT_FOUND              | Snapshot entity no longer exists
                | BLUEPRINT_NOT_FOUND           | Snapshot names an unknown blueprint
----------------|-------------------------------|---------------------------------------
Ambiguity       | AMBIGUOUS_STATE               | State value declared more than once
                | AMBIGUOUS_TRANSITION          | Route declared more than once
----------------|-------------------------------|---------------------------------------
Guards          | TRANSITION_RECOVERABLE        | Blocked, the actor can fix it
                | TRANSITION_FATAL              | Blocked, permanently
----------------|-------------------------------|---------------------------------------
Authorization   | AUTHORIZATION_DENIED          | Authorization rule denies the actor
----------------|-------------------------------|---------------------------------------
Payload         | PAYLOAD_VALIDATION_FAILED     | Payload fails the transition rules
----------------|-------------------------------|---------------------------------------
Consistency     | STATE_MACHINE_CONSISTENCY     | Attribute assigned outside transit()
                | WORKFLOW_NOT_INITIALIZED      | transit() before init()
                | WORKFLOW_ALREADY_INITIALIZED  | init() twice
----------------|-------------------------------|---------------------------------------
Charge          | ALREADY_CHARGED               | Actor may not contribute (strict mode)
----------------|-------------------------------|---------------------------------------
Blueprint       | INVALID_BLUEPRINT             | Static validation failed
                | GUARD_CONTRACT_VIOLATION      | Guard returned a non-GuardOutcome
                | MISSING_COLLABORATOR          | Required provider not injected

===============================================================================
HANDLING PATTERNS
===============================================================================

1. LOOKUP FAILURES ARE USAGE ERRORS (never retried):

    except TransitionNotFoundError:
        return http_404()

2. RECOVERABLE vs FATAL:

    except TransitionRecoverableError as e:
        show_form_error(e.reason)        # the actor may fix and retry
    except TransitionFatalError as e:
        hide_action(e.target)            # never offer this route again

3. AMBIGUITY IS A CONFIGURATION DEFECT (fail loud, fix the blueprint):

    except AmbiguousMatchError as e:
        alert_maintainers(e)

===============================================================================
"""

from typing import Any


class WorkflowError(Exception):
    """
    Base exception for all workflow kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "WORKFLOW_ERROR"


# Lookup exceptions


class NotFoundError(WorkflowError):
    """Base exception for lookups that matched nothing."""

    code: str = "NOT_FOUND"


class StateNotFoundError(NotFoundError):
    """No declared state has the given value."""

    code: str = "STATE_NOT_FOUND"

    def __init__(self, value: Any):
        self.value = value
        super().__init__(f"State not found: {value!r}")


class TransitionNotFoundError(NotFoundError):
    """No declared transition connects source to target."""

    code: str = "TRANSITION_NOT_FOUND"

    def __init__(self, source: Any, target: Any):
        self.source = source
        self.target = target
        super().__init__(f"There is no transition from {source!r} to {target!r}")


class EntityNotFoundError(NotFoundError):
    """Entity referenced by a snapshot or history record no longer exists."""

    code: str = "ENTITY_NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: Any):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"Entity not found: {entity_type} {entity_id!r}")


class BlueprintNotFoundError(NotFoundError):
    """Blueprint identifier cannot be resolved."""

    code: str = "BLUEPRINT_NOT_FOUND"

    def __init__(self, blueprint_id: str, reason: str = ""):
        self.blueprint_id = blueprint_id
        self.reason = reason
        message = f"Blueprint not found: {blueprint_id}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


# Ambiguity exceptions


class AmbiguousMatchError(WorkflowError):
    """Base exception for lookups that matched more than one item."""

    code: str = "AMBIGUOUS_MATCH"


class AmbiguousStateError(AmbiguousMatchError):
    """State value is declared more than once."""

    code: str = "AMBIGUOUS_STATE"

    def __init__(self, value: Any, count: int):
        self.value = value
        self.count = count
        super().__init__(f"State {value!r} defined {count} times")


class AmbiguousTransitionError(AmbiguousMatchError):
    """Transition source -> target is declared more than once."""

    code: str = "AMBIGUOUS_TRANSITION"

    def __init__(self, source: Any, target: Any, count: int):
        self.source = source
        self.target = target
        self.count = count
        super().__init__(
            f"Transition from {source!r} to {target!r} defined {count} times"
        )


# Guard exceptions


class TransitionBlockedError(WorkflowError):
    """Base exception for a transition vetoed by one of its guards."""

    code: str = "TRANSITION_BLOCKED"

    def __init__(self, source: Any, target: Any, reason: str):
        self.source = source
        self.target = target
        self.reason = reason
        super().__init__(reason)


class TransitionRecoverableError(TransitionBlockedError):
    """
    Transition is blocked but the actor may resolve the problem.

    Recoverable transitions stay listed (with the reason) so a client can
    render them disabled.
    """

    code: str = "TRANSITION_RECOVERABLE"


class TransitionFatalError(TransitionBlockedError):
    """
    Transition is blocked permanently for this entity.

    Fatal transitions are excluded from every available-transitions view.
    """

    code: str = "TRANSITION_FATAL"


# Authorization exceptions


class AuthorizationDeniedError(WorkflowError):
    """The transition's authorization rule denies the current actor."""

    code: str = "AUTHORIZATION_DENIED"

    def __init__(self, source: Any, target: Any, capability: str | None = None):
        self.source = source
        self.target = target
        self.capability = capability
        message = f"Not authorized to transit from {source!r} to {target!r}"
        if capability:
            message = f"{message} (capability '{capability}')"
        super().__init__(message)


# Payload exceptions


class PayloadValidationError(WorkflowError):
    """
    Transition payload does not satisfy the transition's rules.

    ``field_errors`` maps each offending field to its list of messages.
    """

    code: str = "PAYLOAD_VALIDATION_FAILED"

    def __init__(self, field_errors: dict[str, list[str]]):
        self.field_errors = {k: list(v) for k, v in field_errors.items()}
        fields = ", ".join(sorted(self.field_errors))
        super().__init__(
            f"Payload validation failed: {len(self.field_errors)} field(s) [{fields}]"
        )


# Consistency exceptions


class StateMachineConsistencyError(WorkflowError):
    """
    The workflow attribute changed outside the engine.

    The mutation is aborted; the engine never guesses which value is right.
    """

    code: str = "STATE_MACHINE_CONSISTENCY"

    def __init__(self, attribute: str, expected: Any, actual: Any, message: str | None = None):
        self.attribute = attribute
        self.expected = expected
        self.actual = actual
        super().__init__(
            message
            or f"Attribute '{attribute}' was changed outside the state machine: "
            f"expected {expected!r}, found {actual!r}"
        )


class WorkflowNotInitializedError(StateMachineConsistencyError):
    """transit() was called before init()."""

    code: str = "WORKFLOW_NOT_INITIALIZED"

    def __init__(self, attribute: str):
        super().__init__(
            attribute,
            expected="<initialized>",
            actual=None,
            message=f"Workflow attribute '{attribute}' is not initialized",
        )


class WorkflowAlreadyInitializedError(StateMachineConsistencyError):
    """init() was called on an attribute that already holds a state."""

    code: str = "WORKFLOW_ALREADY_INITIALIZED"

    def __init__(self, attribute: str, actual: Any):
        super().__init__(
            attribute,
            expected=None,
            actual=actual,
            message=f"Workflow attribute '{attribute}' is already initialized with {actual!r}",
        )


# Charge exceptions


class ChargeError(WorkflowError):
    """Base exception for progressive (charged) transitions."""

    code: str = "CHARGE_ERROR"


class AlreadyChargedError(ChargeError):
    """The actor may not contribute to the charge any further."""

    code: str = "ALREADY_CHARGED"

    def __init__(self, source: Any, target: Any, actor: Any):
        self.source = source
        self.target = target
        self.actor = actor
        super().__init__(
            f"Actor {actor!r} may not charge transition {source!r} -> {target!r}"
        )


# Blueprint exceptions


class BlueprintError(WorkflowError):
    """Base exception for blueprint definition defects."""

    code: str = "BLUEPRINT_ERROR"


class InvalidBlueprintError(BlueprintError):
    """Blueprint failed static validation."""

    code: str = "INVALID_BLUEPRINT"

    def __init__(self, blueprint_id: str, errors: list[str]):
        self.blueprint_id = blueprint_id
        self.errors = list(errors)
        super().__init__(
            f"Blueprint {blueprint_id} is invalid: {'; '.join(self.errors)}"
        )


class GuardContractError(BlueprintError):
    """A guard returned something other than a GuardOutcome."""

    code: str = "GUARD_CONTRACT_VIOLATION"

    def __init__(self, guard_name: str, returned_type: str):
        self.guard_name = guard_name
        self.returned_type = returned_type
        super().__init__(
            f"Guard '{guard_name}' must return GuardOutcome, got {returned_type}"
        )


class MissingCollaboratorError(BlueprintError):
    """A blueprint feature needs a provider the engine was not given."""

    code: str = "MISSING_COLLABORATOR"

    def __init__(self, collaborator: str, purpose: str):
        self.collaborator = collaborator
        self.purpose = purpose
        super().__init__(f"No {collaborator} configured: required for {purpose}")
