"""
Module: workflow_kernel.models.transition_history
Responsibility: ORM persistence for committed workflow transitions.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - One row per committed initialization or transition.
    - ``source`` is NULL only for initialization rows.
    - Rows are append-only by convention; the recorder never updates them.

Audit relevance:
    TransitionHistory answers "who moved this entity from where to where,
    with which payload, and when".  ``context`` holds the transition payload.
"""

from typing import Any

from sqlalchemy import JSON, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from workflow_kernel.db.base import TrackedBase


class TransitionHistory(TrackedBase):
    """
    One committed transition of one workflow attribute.

    Guarantees:
        - ``transitionable_type`` / ``transitionable_id`` identify the entity
          the same way an engine snapshot does.
        - ``blueprint`` is the blueprint identifier, ``attribute`` the
          workflow attribute it drove.
        - ``performer_type`` / ``performer_id`` are NULL when no actor was
          resolved.
    """

    __tablename__ = "transition_history"

    __table_args__ = (
        Index("idx_transition_history_entity", "transitionable_type", "transitionable_id"),
        Index("idx_transition_history_created", "created_at"),
    )

    performer_type: Mapped[str | None] = mapped_column(String(255), nullable=True)
    performer_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    transitionable_type: Mapped[str] = mapped_column(String(255), nullable=False)
    transitionable_id: Mapped[str] = mapped_column(String(64), nullable=False)

    blueprint: Mapped[str] = mapped_column(String(255), nullable=False)
    attribute: Mapped[str] = mapped_column(String(100), nullable=False)

    source: Mapped[str | None] = mapped_column(String(100), nullable=True)
    target: Mapped[str] = mapped_column(String(100), nullable=False)

    context: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    @property
    def is_initialization(self) -> bool:
        return self.source is None

    def __repr__(self) -> str:
        return (
            f"<TransitionHistory {self.transitionable_type}:{self.transitionable_id} "
            f"{self.source!r} -> {self.target!r}>"
        )
