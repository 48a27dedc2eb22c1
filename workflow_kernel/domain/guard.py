"""
Guard contract (``workflow_kernel.domain.guard``).

Responsibility
--------------
A guard inspects the entity and the prospective transition context and
returns a typed ``GuardOutcome``: open, recoverable (the actor can fix the
problem) or fatal (the route is closed for this entity).  Severities are
returned, never raised, so listing available transitions stays cheap and
side-effect free.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* A guard callable must return a ``GuardOutcome``; anything else raises
  ``GuardContractError``.
* Blocking outcomes always carry a non-empty reason.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from workflow_kernel.exceptions import GuardContractError

if TYPE_CHECKING:
    from workflow_kernel.domain.context import Context


class Severity(str, Enum):
    """Guard outcome severities."""

    OPEN = "open"
    RECOVERABLE = "recoverable"
    FATAL = "fatal"


@dataclass(frozen=True)
class GuardOutcome:
    """Result of evaluating one guard (or a whole guard list)."""

    severity: Severity
    reason: str | None = None

    def __post_init__(self) -> None:
        if self.severity is not Severity.OPEN and not self.reason:
            raise ValueError(f"{self.severity.value} guard outcome requires a reason")

    @classmethod
    def open(cls) -> GuardOutcome:
        return OPEN

    @classmethod
    def recoverable(cls, reason: str) -> GuardOutcome:
        return cls(Severity.RECOVERABLE, reason)

    @classmethod
    def fatal(cls, reason: str) -> GuardOutcome:
        return cls(Severity.FATAL, reason)

    @property
    def is_open(self) -> bool:
        return self.severity is Severity.OPEN

    @property
    def is_recoverable(self) -> bool:
        return self.severity is Severity.RECOVERABLE

    @property
    def is_fatal(self) -> bool:
        return self.severity is Severity.FATAL


OPEN = GuardOutcome(Severity.OPEN)

GuardCheck = Callable[[Any, "Context"], GuardOutcome]


@dataclass(frozen=True)
class Guard:
    """A named precondition on a transition.

    Contract: ``check(entity, context)`` returns a ``GuardOutcome``.
    Non-goals: guards must not mutate the entity; they run every time a
    transition listing is computed.
    """

    name: str
    check: GuardCheck
    description: str = ""

    def evaluate(self, entity: Any, context: Context) -> GuardOutcome:
        outcome = self.check(entity, context)
        if not isinstance(outcome, GuardOutcome):
            raise GuardContractError(self.name, type(outcome).__name__)
        return outcome

    @classmethod
    def requires(
        cls,
        name: str,
        predicate: Callable[[Any, Context], bool],
        reason: str,
        severity: Severity = Severity.RECOVERABLE,
        description: str = "",
    ) -> Guard:
        """Build a guard from a boolean predicate.

        The guard is open when the predicate holds, otherwise it blocks
        with ``severity`` and ``reason``.
        """
        blocked = GuardOutcome(Severity(severity), reason)

        def check(entity: Any, context: Context) -> GuardOutcome:
            return OPEN if predicate(entity, context) else blocked

        return cls(name=name, check=check, description=description or reason)


def evaluate_guards(guards: tuple[Guard, ...], entity: Any, context: Context) -> GuardOutcome:
    """Run guards in declaration order; the first blocking outcome wins."""
    for guard in guards:
        outcome = guard.evaluate(entity, context)
        if not outcome.is_open:
            return outcome
    return OPEN
