"""
State value normalization (``workflow_kernel.domain.values``).

Responsibility
--------------
Blueprints may name states with raw scalars, ``Enum`` members or ``State``
objects.  Every boundary of the kernel reduces them to one canonical
scalar so that comparisons never depend on how a state was spelled.

Architecture position
---------------------
**Kernel domain layer** -- pure functions.  ZERO I/O.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Union

StateValue = Union[str, int]


def scalar(value: Any) -> StateValue | None:
    """Reduce a state reference to its scalar value.

    Accepts ``None`` (returned unchanged), ``Enum`` members (their
    ``.value``), anything exposing a ``value`` attribute (``State``), and
    raw ``str`` / ``int`` values.
    """
    if value is None:
        return None
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (str, int)) and not isinstance(value, bool):
        return value
    inner = getattr(value, "value", None)
    if inner is not None:
        return scalar(inner)
    raise TypeError(f"Cannot use {type(value).__name__} as a state value")


def default_caption(value: Any) -> str:
    """Human readable fallback caption: enum member name, else the raw value."""
    if isinstance(value, Enum):
        return value.name
    return str(scalar(value))
