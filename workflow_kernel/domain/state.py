"""
States and state collections (``workflow_kernel.domain.state``).

Responsibility
--------------
``State`` pairs a scalar value with an optional caption and free-form
metadata.  ``StateCollection`` is the ordered list a blueprint declares;
the first state is the initial one.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* Equality and hashing use the scalar value only, never identity.
* ``StateCollection.one`` fails loudly on zero or several matches, so a
  blueprint declaring a state twice is surfaced instead of silently
  resolved.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Any

from workflow_kernel.domain.values import StateValue, default_caption, scalar
from workflow_kernel.exceptions import AmbiguousStateError, StateNotFoundError

Caption = str | Callable[[Any], str]


@dataclass(frozen=True, eq=False)
class State:
    """A named value of a workflow attribute.

    ``caption`` is either a static string or a callable receiving the
    entity.  ``rules`` are payload rules checked when the engine is
    initialized into this state.
    """

    value: StateValue
    caption: Caption | None = None
    additional: Mapping[str, Any] = field(default_factory=dict)
    rules: Mapping[str, Any] = field(default_factory=dict)
    name: str | None = None

    def __post_init__(self) -> None:
        raw = self.value
        if isinstance(raw, Enum) and self.name is None:
            object.__setattr__(self, "name", raw.name)
        object.__setattr__(self, "value", scalar(raw))
        object.__setattr__(self, "additional", MappingProxyType(dict(self.additional)))
        object.__setattr__(self, "rules", MappingProxyType(dict(self.rules)))

    @classmethod
    def make(cls, value: Any) -> State:
        """Normalize a raw scalar, enum member or State into a State."""
        if isinstance(value, State):
            return value
        return cls(value)

    def as_(self, caption: Caption) -> State:
        """Return a copy with the given caption."""
        return replace(self, caption=caption)

    def set(self, key: str, value: Any) -> State:
        """Return a copy with one more additional attribute."""
        return replace(self, additional={**self.additional, key: value})

    def with_rules(self, rules: Mapping[str, Any]) -> State:
        return replace(self, rules=rules)

    def label(self, entity: Any = None) -> str:
        """Caption of the state, resolved against the entity when callable."""
        if callable(self.caption):
            return self.caption(entity)
        if self.caption:
            return self.caption
        return self.name or default_caption(self.value)

    @property
    def group(self) -> str | None:
        return self.additional.get("group")

    def is_(self, other: Any) -> bool:
        return other is not None and self.value == scalar(other)

    def to_dict(self, entity: Any = None) -> dict[str, Any]:
        return {
            "value": self.value,
            "caption": self.label(entity),
            **self.additional,
        }

    def __eq__(self, other: object) -> bool:
        if isinstance(other, State):
            return self.value == other.value
        if isinstance(other, (str, int, Enum)) and not isinstance(other, bool):
            return self.value == scalar(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.value)

    def __str__(self) -> str:
        return str(self.value)


class StateCollection(Sequence[State]):
    """Ordered, read-only sequence of declared states."""

    def __init__(self, states: Iterable[Any] = ()):
        self._states: tuple[State, ...] = tuple(State.make(s) for s in states)

    def __getitem__(self, index):  # type: ignore[override]
        if isinstance(index, slice):
            return StateCollection(self._states[index])
        return self._states[index]

    def __len__(self) -> int:
        return len(self._states)

    def __iter__(self) -> Iterator[State]:
        return iter(self._states)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, StateCollection):
            return self._states == other._states
        return NotImplemented

    def __repr__(self) -> str:
        return f"StateCollection({[s.value for s in self._states]!r})"

    def one(self, value: Any) -> State:
        """Return the exact state with this value.

        Raises:
            StateNotFoundError: no state has the value.
            AmbiguousStateError: several states share the value.
        """
        wanted = scalar(value)
        matches = [s for s in self._states if s.value == wanted]
        if not matches:
            raise StateNotFoundError(wanted)
        if len(matches) > 1:
            raise AmbiguousStateError(wanted, len(matches))
        return matches[0]

    def first(self) -> State | None:
        return self._states[0] if self._states else None

    def initial(self) -> State:
        """The first declared state."""
        if not self._states:
            raise StateNotFoundError("<initial>")
        return self._states[0]

    def values(self) -> list[StateValue]:
        return [s.value for s in self._states]

    def grouped(self, group: str) -> StateCollection:
        return StateCollection(s for s in self._states if s.group == group)

    def contains(self, value: Any) -> bool:
        wanted = scalar(value)
        return any(s.value == wanted for s in self._states)

    def duplicates(self) -> list[StateValue]:
        """Values declared more than once, in first-seen order."""
        seen: dict[StateValue, int] = {}
        for s in self._states:
            seen[s.value] = seen.get(s.value, 0) + 1
        return [v for v, count in seen.items() if count > 1]
