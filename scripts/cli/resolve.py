"""CLI blueprint resolution: ``module:Class`` identifiers or YAML paths."""

import importlib
from pathlib import Path

import yaml

from workflow_config.compiler import CompilationFailedError, GuardRegistry, compile_blueprint
from workflow_config.loader import load_blueprint_def
from workflow_config.validator import validate_blueprint_def
from workflow_kernel.domain.blueprint import BlueprintRegistry, WorkflowBlueprint
from workflow_kernel.exceptions import BlueprintNotFoundError

YAML_SUFFIXES = (".yaml", ".yml")


class DefinitionInvalid(Exception):
    """YAML definition failed structural validation."""

    def __init__(self, path: str, errors: list[str]):
        self.path = path
        self.errors = errors
        super().__init__(f"{path}: {len(errors)} validation error(s)")


# Errors meaning "there is no blueprint to look at" (exit code 2).
RESOLUTION_ERRORS = (
    BlueprintNotFoundError,
    CompilationFailedError,
    FileNotFoundError,
    ImportError,
    KeyError,
    ValueError,
    yaml.YAMLError,
)


def load_guards(spec: str) -> GuardRegistry:
    """Import a GuardRegistry named ``module:attribute``."""
    module_name, sep, attr = spec.partition(":")
    if not sep:
        raise ValueError(f"Guard registry must be given as module:attribute, got {spec!r}")
    registry = getattr(importlib.import_module(module_name), attr, None)
    if not isinstance(registry, GuardRegistry):
        raise ValueError(f"{spec} is not a GuardRegistry")
    return registry


def resolve_blueprint(spec: str, guards: str | None = None) -> WorkflowBlueprint:
    """Resolve a blueprint from the command line.

    Raises:
        DefinitionInvalid: a YAML definition has structural errors.
        One of RESOLUTION_ERRORS: nothing could be resolved.
    """
    if spec.endswith(YAML_SUFFIXES):
        definition = load_blueprint_def(Path(spec))
        validation = validate_blueprint_def(definition)
        if not validation.is_valid:
            raise DefinitionInvalid(spec, validation.errors)
        registry = load_guards(guards) if guards else None
        return compile_blueprint(definition, registry)
    try:
        return BlueprintRegistry().resolve(spec)
    except TypeError as exc:
        # Blueprint class whose constructor needs arguments.
        raise BlueprintNotFoundError(spec, str(exc)) from exc
