"""
Blueprint Loader (``workflow_config.loader``).

Responsibility
--------------
Loads YAML blueprint documents and parses them into typed
``workflow_config.schema`` dataclass instances.  The public entry point
that also validates and compiles is ``workflow_config.load_blueprint()``.

Architecture position
---------------------
**Config layer** -- infrastructure tooling.  No dependency on the kernel.

Invariants enforced
-------------------
* Every parsed object is a frozen dataclass from ``schema.py``.
* A state may be written as a bare scalar or as a mapping with ``value``.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the raw
  document, for configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Wrong shapes (e.g. ``states`` not a list)  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from workflow_config.schema import BlueprintDef, GuardDef, StateDef, TransitionDef


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at the top level")
    return data


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def _mapping(value: Any, what: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"{what} must be a mapping, got {type(value).__name__}")
    return dict(value)


def _list(value: Any, what: str) -> list[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"{what} must be a list, got {type(value).__name__}")
    return value


def parse_state(data: Any) -> StateDef:
    """Parse a StateDef from a scalar or a mapping."""
    if isinstance(data, (str, int)) and not isinstance(data, bool):
        return StateDef(value=data)
    if not isinstance(data, dict):
        raise ValueError(f"Cannot parse state from {data!r}")
    return StateDef(
        value=data["value"],
        caption=data.get("caption"),
        additional=_mapping(data.get("additional"), "state additional"),
        rules=_mapping(data.get("rules"), "state rules"),
    )


def parse_guard(data: Any) -> GuardDef:
    """Parse a GuardDef from a bare name or a mapping."""
    if isinstance(data, str):
        return GuardDef(name=data)
    if not isinstance(data, dict):
        raise ValueError(f"Cannot parse guard from {data!r}")
    return GuardDef(
        name=data["name"],
        severity=str(data.get("severity", "recoverable")).lower(),
        reason=data.get("reason", ""),
    )


def parse_transition(data: dict[str, Any]) -> TransitionDef:
    """
    Parse a TransitionDef from a mapping.

    Raises:
        KeyError: if ``source`` or ``target`` is missing.
    """
    if not isinstance(data, dict):
        raise ValueError(f"Cannot parse transition from {data!r}")
    return TransitionDef(
        source=data["source"],
        target=data["target"],
        caption=data.get("caption"),
        guards=tuple(parse_guard(g) for g in _list(data.get("guards"), "transition guards")),
        capability=data.get("capability"),
        rules=_mapping(data.get("rules"), "transition rules"),
        additional=_mapping(data.get("additional"), "transition additional"),
    )


def parse_blueprint(data: dict[str, Any]) -> BlueprintDef:
    """
    Parse a complete BlueprintDef from a YAML document.

    Raises:
        KeyError: if ``name`` is missing.
    """
    return BlueprintDef(
        name=data["name"],
        attribute=data.get("attribute", "status"),
        description=data.get("description", ""),
        states=tuple(parse_state(s) for s in _list(data.get("states"), "states")),
        transitions=tuple(
            parse_transition(t) for t in _list(data.get("transitions"), "transitions")
        ),
        checksum=compute_checksum(data),
    )


def load_blueprint_def(path: Path) -> BlueprintDef:
    """Load and parse a YAML blueprint file."""
    return parse_blueprint(load_yaml_file(Path(path)))
