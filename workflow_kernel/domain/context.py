"""
Transition context (``workflow_kernel.domain.context``).

Responsibility
--------------
Immutable snapshot of one transition: where the entity came from, where
it goes, who performs it and the payload that came with it.  The same
type describes a prospective transition (guards, charges) and a
reconstructed one (transition history).

Architecture position
---------------------
**Kernel domain layer** -- pure value object.  ZERO I/O.

Invariants enforced
-------------------
* ``source`` is ``None`` only for initialization.
* ``target`` is always present.
* ``data`` is read-only.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from workflow_kernel.domain.state import State


@dataclass(frozen=True)
class Context:
    """Source, target, actor and payload of a transition."""

    target: State
    source: State | None = None
    actor: Any = None
    data: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "target", State.make(self.target))
        if self.source is not None:
            object.__setattr__(self, "source", State.make(self.source))
        object.__setattr__(self, "data", MappingProxyType(dict(self.data or {})))

    @property
    def is_initialization(self) -> bool:
        return self.source is None

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source.value if self.source is not None else None,
            "target": self.target.value,
            "data": dict(self.data),
        }
