"""
Engine settings loader (``workflow_config.settings``).

Builds a kernel ``EngineSettings`` from three layers, later layers
winning: the kernel defaults, the ``engine:`` mapping of an optional YAML
file, and ``WORKFLOW_*`` environment variables.

Failure modes
-------------
* Unknown keys under ``engine:``  -> ``ValueError``.
* Unparseable booleans (YAML or environment)  -> ``ValueError``.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import fields, replace
from pathlib import Path
from typing import Any

from workflow_config.loader import load_yaml_file
from workflow_kernel.domain.settings import DEFAULT_SETTINGS, EngineSettings

ENV_PREFIX = "WORKFLOW_"

_TRUE = frozenset({"1", "true", "yes", "on"})
_FALSE = frozenset({"0", "false", "no", "off"})


def parse_bool(value: Any, source: str) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ValueError(f"{source}: cannot interpret {value!r} as a boolean")


def _known_fields() -> list[str]:
    return [f.name for f in fields(EngineSettings)]


def settings_from_mapping(base: EngineSettings, data: Mapping[str, Any], source: str) -> EngineSettings:
    known = _known_fields()
    unknown = sorted(set(data) - set(known))
    if unknown:
        raise ValueError(f"{source}: unknown engine settings {', '.join(unknown)}")
    overrides = {key: parse_bool(value, f"{source}.{key}") for key, value in data.items()}
    return replace(base, **overrides)


def settings_from_environ(base: EngineSettings, environ: Mapping[str, str]) -> EngineSettings:
    overrides: dict[str, bool] = {}
    for name in _known_fields():
        key = f"{ENV_PREFIX}{name.upper()}"
        if key in environ:
            overrides[name] = parse_bool(environ[key], key)
    return replace(base, **overrides) if overrides else base


def build_engine_settings(
    path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> EngineSettings:
    settings = DEFAULT_SETTINGS
    if path is not None:
        document = load_yaml_file(Path(path))
        engine_section = document.get("engine") or {}
        if not isinstance(engine_section, dict):
            raise ValueError(f"{path}: 'engine' must be a mapping")
        settings = settings_from_mapping(settings, engine_section, f"{path}:engine")
    return settings_from_environ(settings, os.environ if environ is None else environ)
