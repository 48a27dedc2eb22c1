"""
Article Publishing Module (``workflow_modules.article``).

Responsibility
--------------
Editorial lifecycle of an article: drafting, review, publication and
correction, plus a peer-review variant where publication needs several
distinct approvals.

Architecture position
---------------------
**Modules layer** -- declarative blueprints and plain entity types.  The
YAML variant (``article.yaml`` + ``ARTICLE_GUARDS``) describes the same
lifecycle for ``workflow_config.load_blueprint()``.
"""

from pathlib import Path

from workflow_modules.article.guards import ARTICLE_GUARDS
from workflow_modules.article.models import Article, Member
from workflow_modules.article.workflows import (
    ArticleStatus,
    ArticleWorkflow,
    PeerReviewWorkflow,
)

ARTICLE_YAML = Path(__file__).parent / "article.yaml"

__all__ = [
    "Article",
    "Member",
    "ArticleStatus",
    "ArticleWorkflow",
    "PeerReviewWorkflow",
    "ARTICLE_GUARDS",
    "ARTICLE_YAML",
]
