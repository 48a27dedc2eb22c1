"""
In-process audit sinks (``workflow_kernel.services.audit``).

``InMemoryAuditSink`` keeps what it receives, for tests and tooling.
``CompositeAuditSink`` fans one record out to several sinks, in order.
The durable sink is ``TransitionHistoryRecorder``.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from workflow_kernel.domain.context import Context

if TYPE_CHECKING:
    from workflow_kernel.domain.ports import AuditSink
    from workflow_kernel.services.state_machine_engine import StateMachineEngine


@dataclass(frozen=True)
class AuditRecord:
    blueprint_id: str
    attribute: str
    entity: Any
    context: Context


class InMemoryAuditSink:
    def __init__(self) -> None:
        self.records: list[AuditRecord] = []

    def record(self, engine: StateMachineEngine, context: Context) -> None:
        self.records.append(
            AuditRecord(
                blueprint_id=engine.blueprint_id,
                attribute=engine.attribute,
                entity=engine.entity,
                context=context,
            )
        )

    @property
    def contexts(self) -> list[Context]:
        return [r.context for r in self.records]

    def clear(self) -> None:
        self.records.clear()


class CompositeAuditSink:
    def __init__(self, sinks: Iterable[AuditSink]) -> None:
        self.sinks = list(sinks)

    def record(self, engine: StateMachineEngine, context: Context) -> None:
        for sink in self.sinks:
            sink.record(engine, context)
