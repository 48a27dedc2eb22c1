"""
Collaborator ports (``workflow_kernel.domain.ports``).

Responsibility
--------------
Structural protocols for everything the engine consumes but does not
own: entity attribute access, the current principal, authorization,
payload validation and the audit sink.  Implementations are injected
into ``StateMachineEngine`` through its constructor; the kernel never
reaches for global services.

Architecture position
---------------------
**Kernel domain layer** -- protocols only.  ZERO I/O.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from workflow_kernel.domain.context import Context
    from workflow_kernel.domain.transition import Transition
    from workflow_kernel.services.state_machine_engine import StateMachineEngine

PrincipalResolver = Callable[[], Any]
EntityLoader = Callable[[str, Any], Any]


@runtime_checkable
class EntityAccessor(Protocol):
    """Reads and writes one named attribute of an entity."""

    def get(self, entity: Any, attribute: str) -> Any: ...

    def set(self, entity: Any, attribute: str, value: Any) -> None: ...

    def original(self, entity: Any, attribute: str) -> Any:
        """Value the attribute had when last persisted (or first seen)."""
        ...

    def is_dirty(self, entity: Any, attribute: str) -> bool:
        """True when the attribute holds an unpersisted change."""
        ...

    def written(self, entity: Any, attribute: str) -> Any:
        """Value last written through this accessor type, or None."""
        ...


@runtime_checkable
class AuthorizationProvider(Protocol):
    """Answers capability checks for an (entity, transition) pair."""

    def allows(self, capability: str, entity: Any, transition: Transition, actor: Any) -> bool: ...


@runtime_checkable
class PayloadValidator(Protocol):
    """Validates a payload against a field -> rule-spec map.

    Must raise ``PayloadValidationError`` with field-keyed messages when
    the payload fails; returns ``None`` when it passes.
    """

    def validate(self, rules: Mapping[str, Any], payload: Mapping[str, Any]) -> None: ...


@runtime_checkable
class AuditSink(Protocol):
    """Receives every successful initialization and transition."""

    def record(self, engine: StateMachineEngine, context: Context) -> None: ...
