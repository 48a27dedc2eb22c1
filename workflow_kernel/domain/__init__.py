"""
Pure domain layer.

Value objects and pure filtering for workflows, with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- Global services

Blueprint-author callbacks (guards, captions, charges) are invoked, never
inspected.
"""

from workflow_kernel.domain.blueprint import (
    BlueprintRegistry,
    WorkflowBlueprint,
    default_registry,
)
from workflow_kernel.domain.charge import Charge, Chargeable, Threshold
from workflow_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from workflow_kernel.domain.context import Context
from workflow_kernel.domain.guard import OPEN, Guard, GuardOutcome, Severity
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
from workflow_kernel.domain.transition import (
    Authorization,
    Transition,
    TransitionCollection,
)
from workflow_kernel.domain.validator import (
    BlueprintValidationResult,
    BlueprintValidator,
    assert_valid,
)

__all__ = [
    # Blueprints
    "WorkflowBlueprint",
    "BlueprintRegistry",
    "default_registry",
    "BlueprintValidator",
    "BlueprintValidationResult",
    "assert_valid",
    # States and transitions
    "State",
    "StateCollection",
    "Transition",
    "TransitionCollection",
    "Authorization",
    "Context",
    # Guards
    "Guard",
    "GuardOutcome",
    "Severity",
    "OPEN",
    # Charges
    "Charge",
    "Chargeable",
    "Threshold",
    # Engine support
    "EngineSettings",
    "DEFAULT_SETTINGS",
    "EngineSnapshot",
    "Clock",
    "SystemClock",
    "DeterministicClock",
    # Ports
    "EntityAccessor",
    "AuthorizationProvider",
    "PayloadValidator",
    "AuditSink",
    "PrincipalResolver",
    "EntityLoader",
]
