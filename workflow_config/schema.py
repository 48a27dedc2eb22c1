"""
Blueprint definition schema.

Defines the human-authored, reviewable source artifact for a declarative
workflow.  YAML documents are parsed into these types by the loader,
checked by the validator, and compiled into a ``DeclarativeBlueprint`` by
the compiler.

Key distinction:
  BlueprintDef          = source artifact (human-authored, versioned)
  DeclarativeBlueprint  = runtime artifact (guards resolved, frozen)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

GUARD_SEVERITIES = ("recoverable", "fatal")


@dataclass(frozen=True)
class GuardDef:
    """A named guard attached to a transition.

    ``name`` is looked up in the GuardRegistry at compile time; when the
    predicate returns False the transition is blocked with ``severity``
    and ``reason``.
    """

    name: str
    severity: str = "recoverable"
    reason: str = ""


@dataclass(frozen=True)
class StateDef:
    """One declared state."""

    value: str | int
    caption: str | None = None
    additional: dict[str, Any] = field(default_factory=dict)
    rules: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class TransitionDef:
    """One declared route between two states."""

    source: str | int
    target: str | int
    caption: str | None = None
    guards: tuple[GuardDef, ...] = ()
    capability: str | None = None
    rules: dict[str, Any] = field(default_factory=dict)
    additional: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class BlueprintDef:
    """Complete declarative workflow as written in YAML."""

    name: str
    attribute: str
    states: tuple[StateDef, ...]
    transitions: tuple[TransitionDef, ...]
    description: str = ""
    checksum: str = ""
