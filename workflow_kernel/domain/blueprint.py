"""
Workflow blueprints (``workflow_kernel.domain.blueprint``).

Responsibility
--------------
A blueprint declares the ordered states (the first one is initial) and
the ordered transitions of one workflow, plus who the acting principal
is.  Blueprints are stateless value producers: engines may share one
instance, and each engine caches what the blueprint produces for its own
lifetime only.

``BlueprintRegistry`` maps durable blueprint identifiers to factories so
that an engine snapshot can be restored in another process.

Architecture position
---------------------
**Kernel domain layer**.  The registry's import fallback is the only
place the kernel loads code by name.

Invariants enforced
-------------------
* ``blueprint_id`` is stable across processes: explicit ``name`` when
  set, else ``module:QualName``.
"""

from __future__ import annotations

import importlib
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from typing import Any, ClassVar

from workflow_kernel.domain.state import StateCollection
from workflow_kernel.domain.transition import TransitionCollection
from workflow_kernel.exceptions import BlueprintNotFoundError
from workflow_kernel.logging_config import get_logger

logger = get_logger("domain.blueprint")


class WorkflowBlueprint(ABC):
    """Declarative definition of a workflow.

    Subclasses implement ``states()`` and ``transitions()``.  States may be
    raw scalars, ``Enum`` members or ``State`` objects; transitions may be
    ``Transition`` objects or ``(source, target)`` pairs.
    """

    #: Optional explicit identifier; defaults to ``module:QualName``.
    name: ClassVar[str | None] = None

    @abstractmethod
    def states(self) -> Sequence[Any]:
        """Ordered states; the first one is initial."""

    @abstractmethod
    def transitions(self) -> Sequence[Any]:
        """Ordered transitions; declaration order is significant."""

    def principal_resolver(self) -> Callable[[], Any]:
        """Zero-argument callable returning the current actor (or None)."""
        return lambda: None

    @property
    def blueprint_id(self) -> str:
        return self.name or f"{type(self).__module__}:{type(self).__qualname__}"

    def state_collection(self) -> StateCollection:
        return StateCollection(self.states())

    def transition_collection(self) -> TransitionCollection:
        return TransitionCollection(self.transitions())

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.blueprint_id}>"


class BlueprintRegistry:
    """Resolves blueprint identifiers to blueprint instances.

    Explicitly registered factories win; otherwise ``module:QualName``
    identifiers are imported.  Resolved instances are memoized per
    identifier, never through class-level statics.
    """

    def __init__(self) -> None:
        self._factories: dict[str, Callable[[], WorkflowBlueprint]] = {}
        self._instances: dict[str, WorkflowBlueprint] = {}

    def register(
        self,
        blueprint_id: str,
        factory: Callable[[], WorkflowBlueprint],
    ) -> None:
        self._factories[blueprint_id] = factory
        self._instances.pop(blueprint_id, None)

    def register_instance(self, blueprint: WorkflowBlueprint) -> None:
        self._factories[blueprint.blueprint_id] = lambda: blueprint
        self._instances[blueprint.blueprint_id] = blueprint

    def resolve(self, blueprint_id: str) -> WorkflowBlueprint:
        """Return the blueprint for an identifier.

        Raises:
            BlueprintNotFoundError: unknown identifier, import failure, or
                the named object is not a ``WorkflowBlueprint``.
        """
        if blueprint_id in self._instances:
            return self._instances[blueprint_id]

        factory = self._factories.get(blueprint_id)
        if factory is None:
            factory = self._import(blueprint_id)

        blueprint = factory()
        if not isinstance(blueprint, WorkflowBlueprint):
            raise BlueprintNotFoundError(blueprint_id, "not a WorkflowBlueprint")
        self._instances[blueprint_id] = blueprint
        return blueprint

    def _import(self, blueprint_id: str) -> Callable[[], WorkflowBlueprint]:
        module_name, sep, qualname = blueprint_id.partition(":")
        if not sep or not module_name or not qualname:
            raise BlueprintNotFoundError(blueprint_id, "expected 'module:QualName'")
        try:
            target: Any = importlib.import_module(module_name)
        except ImportError as exc:
            raise BlueprintNotFoundError(blueprint_id, str(exc)) from exc
        for part in qualname.split("."):
            target = getattr(target, part, None)
            if target is None:
                raise BlueprintNotFoundError(blueprint_id, f"no attribute '{part}'")
        if isinstance(target, type):
            if not issubclass(target, WorkflowBlueprint):
                raise BlueprintNotFoundError(blueprint_id, "not a WorkflowBlueprint")
            logger.debug("blueprint_imported", extra={"blueprint_id": blueprint_id})
            return target
        if isinstance(target, WorkflowBlueprint):
            return lambda: target
        raise BlueprintNotFoundError(blueprint_id, "not a WorkflowBlueprint")


default_registry = BlueprintRegistry()
