"""
Engine snapshot (``workflow_kernel.domain.snapshot``).

Only three things about an engine are durable: which blueprint, which
attribute, which entity.  The live entity is looked up again on restore,
so the restored engine always reads the entity's current state.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from typing import Any


@dataclass(frozen=True)
class EngineSnapshot:
    blueprint_id: str
    attribute: str
    entity_type: str
    entity_id: Any

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EngineSnapshot:
        return cls(
            blueprint_id=data["blueprint_id"],
            attribute=data["attribute"],
            entity_type=data["entity_type"],
            entity_id=data["entity_id"],
        )

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str, sort_keys=True)

    @classmethod
    def from_json(cls, raw: str) -> EngineSnapshot:
        return cls.from_dict(json.loads(raw))
