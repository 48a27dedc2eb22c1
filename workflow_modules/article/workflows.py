"""
Article Workflows (``workflow_modules.article.workflows``).

Responsibility
--------------
Declares the article publishing lifecycle and its peer-review variant.
Guards express preconditions, authorization predicates decide who may
take a route, and callbacks apply the payload once the state changed.

Architecture position
---------------------
**Modules layer** -- declarative blueprints.  Imports ``State``,
``Transition``, ``Guard`` and ``Threshold`` from ``workflow_kernel.domain``.
Both blueprints resolve by their ``module:QualName`` identifier, so engine
snapshots restore without explicit registration.

Invariants enforced
-------------------
* ``new`` is the initial state of the article workflow.
* Publication of a retracted article is blocked fatally.
* A correction always carries a ``comment``; the callback copies it into
  the article body after the state changed.
"""

from enum import Enum
from typing import Any

from workflow_kernel.domain import (
    Context,
    Guard,
    Severity,
    State,
    Threshold,
    Transition,
    WorkflowBlueprint,
)
from workflow_kernel.logging_config import get_logger

logger = get_logger("modules.article.workflows")


class ArticleStatus(str, Enum):
    NEW = "new"
    REVIEW = "review"
    PUBLISHED = "published"
    CORRECTION = "correction"


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

HAS_CONTENT = Guard.requires(
    "has_content",
    lambda article, context: bool(article.body and article.body.strip()),
    reason="Article needs content before it can be reviewed",
)

NOT_RETRACTED = Guard.requires(
    "not_retracted",
    lambda article, context: not article.retracted,
    reason="Retracted articles can never be published",
    severity=Severity.FATAL,
)


# -----------------------------------------------------------------------------
# Authorization predicates and callbacks
# -----------------------------------------------------------------------------


def is_editor(article: Any, context: Context) -> bool:
    return bool(getattr(context.actor, "is_editor", False))


def is_author(article: Any, context: Context) -> bool:
    actor_id = getattr(context.actor, "id", None)
    return actor_id is not None and actor_id == article.author_id


def apply_correction(article: Any, context: Context) -> None:
    article.body = context.get("comment")


# -----------------------------------------------------------------------------
# Article Workflow
# -----------------------------------------------------------------------------


class ArticleWorkflow(WorkflowBlueprint):
    """new -> review -> published, with a correction loop from review."""

    def states(self):
        return [
            State(ArticleStatus.NEW, caption="New"),
            State(ArticleStatus.REVIEW, caption="In review").set("group", "editorial"),
            State(ArticleStatus.PUBLISHED, caption="Published").set("group", "public"),
            State(ArticleStatus.CORRECTION, caption="Needs correction").set("group", "editorial"),
        ]

    def transitions(self):
        return [
            Transition.make(ArticleStatus.NEW, ArticleStatus.REVIEW)
            .as_("Send to review")
            .before(HAS_CONTENT),
            Transition.make(ArticleStatus.REVIEW, ArticleStatus.PUBLISHED)
            .as_("Publish")
            .before(NOT_RETRACTED),
            Transition.make(ArticleStatus.REVIEW, ArticleStatus.CORRECTION)
            .as_("Request correction")
            .with_rules({"comment": "required|string"})
            .authorized_by(is_editor)
            .after(apply_correction)
            .set("style", "warning"),
            Transition.make(ArticleStatus.CORRECTION, ArticleStatus.REVIEW)
            .as_("Resubmit")
            .authorized_by(is_author),
        ]


# -----------------------------------------------------------------------------
# Peer Review Workflow
# -----------------------------------------------------------------------------

REQUIRED_APPROVALS = 2


class PeerReviewWorkflow(WorkflowBlueprint):
    """draft -> review -> approved once enough distinct reviewers approve."""

    def states(self):
        return [
            State("draft", caption="Draft"),
            State("review", caption="Under peer review"),
            State("approved", caption="Approved"),
            State("rejected", caption="Rejected"),
        ]

    def transitions(self):
        return [
            Transition.make("draft", "review").as_("Submit for peer review"),
            Transition.make("review", "approved")
            .as_("Approve")
            .charged_by(Threshold(ledger="approvals", required=REQUIRED_APPROVALS))
            .authorized_by("article.review"),
            Transition.make("review", "rejected")
            .as_("Reject")
            .authorized_by("article.review"),
        ]


logger.debug(
    "article_workflows_defined",
    extra={
        "blueprints": [
            ArticleWorkflow().blueprint_id,
            PeerReviewWorkflow().blueprint_id,
        ],
    },
)
