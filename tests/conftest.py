"""
Pytest fixtures for the workflow kernel test suite.

Provides:
- Structured logging configured once per session, LogContext cleared per test
- ``captured_logs`` for asserting on emitted JSON log events
- A field-rule payload validator double
- Article entities, members and an engine factory
- An in-memory SQLite session with the transition history schema and a
  mapped ``ArticleRecord`` entity
"""

import json
import logging
from io import StringIO
from typing import Any, Generator

import pytest
from sqlalchemy import JSON, Boolean, String, Text
from sqlalchemy.orm import Mapped, Session, mapped_column

from workflow_kernel.db.base import TrackedBase
from workflow_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from workflow_kernel.exceptions import PayloadValidationError
from workflow_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from workflow_kernel.services.audit import InMemoryAuditSink
from workflow_kernel.services.state_machine_engine import StateMachineEngine
from workflow_modules.article import Article, ArticleWorkflow, Member


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture workflow_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, make_engine):
            make_engine().init()
            logs = captured_logs()
            assert any(r["message"] == "workflow_initialized" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("workflow_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Payload validation
# =============================================================================


class FieldRuleValidator:
    """
    Minimal PayloadValidator double understanding ``required``, ``string``
    and ``integer`` rules, written either as ``"a|b"`` or as a list.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[dict, dict]] = []

    def validate(self, rules, payload) -> None:
        self.calls.append((dict(rules), dict(payload)))
        errors: dict[str, list[str]] = {}
        for field_name, rule in rules.items():
            parts = rule.split("|") if isinstance(rule, str) else list(rule)
            value = payload.get(field_name)
            if value is None:
                if "required" in parts:
                    errors.setdefault(field_name, []).append(f"The {field_name} field is required.")
                continue
            if "string" in parts and not isinstance(value, str):
                errors.setdefault(field_name, []).append(f"The {field_name} must be a string.")
            if "integer" in parts and (isinstance(value, bool) or not isinstance(value, int)):
                errors.setdefault(field_name, []).append(f"The {field_name} must be an integer.")
        if errors:
            raise PayloadValidationError(errors)


@pytest.fixture
def validator() -> FieldRuleValidator:
    return FieldRuleValidator()


# =============================================================================
# Article fixtures
# =============================================================================


@pytest.fixture
def editor() -> Member:
    return Member(id="ed-1", role="editor")


@pytest.fixture
def author() -> Member:
    return Member(id="au-1", role="author")


@pytest.fixture
def article(author) -> Article:
    return Article(title="Kernel release notes", body="Draft body", author_id=author.id)


@pytest.fixture
def audit_sink() -> InMemoryAuditSink:
    return InMemoryAuditSink()


@pytest.fixture
def make_engine(article, editor, validator, audit_sink):
    """
    Factory for engines over the article workflow.

    Defaults: ``ArticleWorkflow`` on ``article.status``, acting as the
    editor, with the field-rule validator and the in-memory audit sink.
    Keyword arguments override any of them.
    """

    def _make(
        entity: Any = None,
        blueprint: Any = None,
        actor: Any = editor,
        attribute: str = "status",
        **collaborators: Any,
    ) -> StateMachineEngine:
        collaborators.setdefault("validator", validator)
        collaborators.setdefault("audit_sink", audit_sink)
        collaborators.setdefault("principal_resolver", lambda: actor)
        return StateMachineEngine(
            blueprint or ArticleWorkflow(),
            entity if entity is not None else article,
            attribute,
            **collaborators,
        )

    return _make


# =============================================================================
# Database fixtures
# =============================================================================


class ArticleRecord(TrackedBase):
    """Mapped article used to drive the engine through the ORM."""

    __tablename__ = "test_article_records"

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[str | None] = mapped_column(String(50), nullable=True)
    retracted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    author_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    approvals: Mapped[list] = mapped_column(JSON, nullable=False, default=list)


@pytest.fixture
def session() -> Generator[Session, None, None]:
    """Fresh in-memory SQLite database with every mapped table."""
    init_engine_from_url("sqlite:///:memory:")
    create_tables()
    db = get_session()
    try:
        yield db
    finally:
        db.rollback()
        db.close()
        drop_tables()
        reset_engine()


@pytest.fixture
def article_record(author) -> ArticleRecord:
    """Transient mapped article; Python-side defaults are spelled out."""
    return ArticleRecord(
        title="Mapped article",
        body="Mapped body",
        status=None,
        retracted=False,
        author_id=author.id,
        approvals=[],
    )
