"""
workflow_config -- public entrypoints for workflow configuration.

Responsibility:
    Provides the two ways runtime code obtains configuration:
    ``get_engine_settings()`` for the engine's behaviour switches and
    ``load_blueprint()`` for YAML-declared workflows.  Loading, validation
    and compilation are internal steps behind these entrypoints.

Architecture position:
    Configuration -- YAML-driven, validated before use.  This package sits
    above ``workflow_kernel``; the kernel MUST NEVER import from
    ``workflow_config``.

Invariants enforced:
    - A YAML blueprint must pass structural validation before it is
      compiled; every error is reported together.
    - Deterministic identity: the same YAML document always produces the
      same checksum.

Failure modes:
    - ``FileNotFoundError`` -- the YAML file does not exist.
    - ``ValueError`` -- schema or structural validation failures, bad
      settings values.
    - ``CompilationFailedError`` -- unknown guard names.

Audit relevance:
    Every successful ``load_blueprint()`` emits a ``blueprint_loaded`` log
    entry with the blueprint name and checksum, tying engine activity back
    to the exact definition that governed it.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Mapping

from workflow_config.compiler import (
    CompilationFailedError,
    DeclarativeBlueprint,
    GuardRegistry,
    compile_blueprint,
)
from workflow_config.loader import load_blueprint_def
from workflow_config.settings import build_engine_settings
from workflow_config.validator import ConfigValidationResult, validate_blueprint_def
from workflow_kernel.domain.blueprint import BlueprintRegistry
from workflow_kernel.domain.settings import EngineSettings
from workflow_kernel.logging_config import get_logger

_logger = get_logger("config")

__all__ = [
    "get_engine_settings",
    "load_blueprint",
    "GuardRegistry",
    "DeclarativeBlueprint",
    "CompilationFailedError",
    "ConfigValidationResult",
]


def get_engine_settings(
    path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> EngineSettings:
    """The public settings entrypoint.

    Defaults, overridden by the ``engine:`` mapping of the YAML file at
    ``path`` (if given), overridden by ``WORKFLOW_*`` variables from
    ``environ`` (``os.environ`` when None).
    """
    settings = build_engine_settings(path, environ)
    _logger.debug(
        "engine_settings_resolved",
        extra={
            "silent_charge_denial": settings.silent_charge_denial,
            "enforce_guards_on_transit": settings.enforce_guards_on_transit,
            "record_history": settings.record_history,
        },
    )
    return settings


def load_blueprint(
    path: Path | str,
    guards: GuardRegistry | None = None,
    *,
    principal_resolver: Callable[[], Any] | None = None,
    registry: BlueprintRegistry | None = None,
) -> DeclarativeBlueprint:
    """Load, validate and compile a YAML blueprint.

    When ``registry`` is given the compiled blueprint is registered under
    its name, so snapshots of engines driven by it can be restored.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If structural validation fails.
        CompilationFailedError: If a guard name is not registered.
    """
    definition = load_blueprint_def(Path(path))

    validation = validate_blueprint_def(definition)
    if not validation.is_valid:
        raise ValueError(
            f"Blueprint validation failed for {path}:\n"
            + "\n".join(f"  - {e}" for e in validation.errors)
        )
    for warning in validation.warnings:
        _logger.warning("blueprint_warning", extra={"blueprint_id": definition.name, "warning": warning})

    blueprint = compile_blueprint(definition, guards, principal_resolver)
    if registry is not None:
        registry.register_instance(blueprint)

    _logger.info(
        "blueprint_loaded",
        extra={
            "blueprint_id": blueprint.blueprint_id,
            "checksum": blueprint.checksum,
            "state_count": len(definition.states),
            "transition_count": len(definition.transitions),
            "path": str(path),
        },
    )
    return blueprint
