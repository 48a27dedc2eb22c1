"""
Article Domain Models (``workflow_modules.article.models``).

Plain mutable entities: the engine writes the workflow attribute
(``status``) and callbacks write content fields.  Persistence is the
caller's concern.
"""

from dataclasses import dataclass, field
from uuid import UUID, uuid4


@dataclass
class Member:
    """An editorial team member acting on articles."""

    id: str
    role: str = "author"

    @property
    def is_editor(self) -> bool:
        return self.role == "editor"


@dataclass
class Article:
    title: str
    body: str = ""
    author_id: str | None = None
    retracted: bool = False
    status: str | None = None
    approvals: list[str] = field(default_factory=list)
    id: UUID = field(default_factory=uuid4)
