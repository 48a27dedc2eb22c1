"""
Engine settings (``workflow_kernel.domain.settings``).

Frozen knobs that change engine behaviour.  The kernel only defines the
type; ``workflow_config.get_engine_settings()`` is the entrypoint that
builds one from YAML and the environment.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class EngineSettings:
    """Behaviour switches for ``StateMachineEngine``.

    ``silent_charge_denial``: a denied ``may_charge`` is a no-op (True) or
    raises ``AlreadyChargedError`` (False).
    ``enforce_guards_on_transit``: ``transit`` re-checks guards and
    authorization before committing.
    ``record_history``: pass committed contexts to the audit sink.
    """

    silent_charge_denial: bool = True
    enforce_guards_on_transit: bool = False
    record_history: bool = True


DEFAULT_SETTINGS = EngineSettings()
