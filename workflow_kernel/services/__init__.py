"""Kernel services: the state machine engine and its default collaborators."""

from workflow_kernel.services.accessors import ObjectAttributeAccessor
from workflow_kernel.services.audit import AuditRecord, CompositeAuditSink, InMemoryAuditSink
from workflow_kernel.services.authorization import StaticCapabilityProvider
from workflow_kernel.services.history_service import (
    TransitionHistoryReader,
    TransitionHistoryRecorder,
)
from workflow_kernel.services.state_machine_engine import StateMachineEngine

__all__ = [
    "StateMachineEngine",
    "ObjectAttributeAccessor",
    "StaticCapabilityProvider",
    "InMemoryAuditSink",
    "CompositeAuditSink",
    "AuditRecord",
    "TransitionHistoryRecorder",
    "TransitionHistoryReader",
]
