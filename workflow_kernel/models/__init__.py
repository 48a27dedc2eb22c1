"""ORM models owned by the workflow kernel."""

from workflow_kernel.models.transition_history import TransitionHistory

__all__ = ["TransitionHistory"]
