"""
End-to-end tests for the article publishing lifecycle.

The same lifecycle is exercised twice: through the hand-written
``ArticleWorkflow`` (authorization predicates) and through the YAML
blueprint (capabilities checked by a ``StaticCapabilityProvider``).
"""

import pytest

from workflow_config import load_blueprint
from workflow_kernel.domain.validator import BlueprintValidator
from workflow_kernel.exceptions import (
    AuthorizationDeniedError,
    PayloadValidationError,
    TransitionFatalError,
    TransitionNotFoundError,
    TransitionRecoverableError,
)
from workflow_kernel.services.authorization import StaticCapabilityProvider
from workflow_kernel.services.state_machine_engine import StateMachineEngine
from workflow_modules.article import (
    ARTICLE_GUARDS,
    ARTICLE_YAML,
    Article,
    ArticleStatus,
    ArticleWorkflow,
)


@pytest.fixture
def retracted(author):
    return Article(title="Withdrawn piece", body="Draft body", author_id=author.id, retracted=True)


# =============================================================================
# Declaration
# =============================================================================


class TestArticleWorkflowDeclaration:

    def test_blueprint_is_valid(self):
        assert BlueprintValidator(ArticleWorkflow()).valid

    def test_states_in_order(self):
        states = ArticleWorkflow().state_collection()
        assert states.values() == ["new", "review", "published", "correction"]
        assert states.initial() == ArticleStatus.NEW
        assert [s.value for s in states.grouped("editorial")] == ["review", "correction"]

    def test_enum_and_string_values_agree(self):
        transitions = ArticleWorkflow().transition_collection()
        assert transitions.sole(ArticleStatus.REVIEW, "published").label() == "Publish"


# =============================================================================
# Retracted article at review
# =============================================================================


class TestRetractedArticleAtReview:

    @pytest.fixture
    def engine(self, make_engine, retracted):
        engine = make_engine(retracted)
        engine.init(state="review")
        return engine

    def test_two_outgoing_transitions(self, engine):
        assert engine.transitions().keys() == [("review", "published"), ("review", "correction")]

    def test_without_forbidden_drops_publication(self, engine):
        assert engine.transitions().without_forbidden().keys() == [("review", "correction")]

    def test_publication_problem(self, engine):
        transitions = engine.transitions()
        publish = transitions.sole(target="published")
        assert transitions.problem_of(publish) == "Retracted articles can never be published"

    def test_correction_requires_comment(self, engine, retracted):
        with pytest.raises(PayloadValidationError) as exc_info:
            engine.transit("correction", {})
        assert exc_info.value.field_errors == {"comment": ["The comment field is required."]}
        assert engine.is_("review")
        assert retracted.body == "Draft body"

    def test_correction_with_comment(self, engine, retracted, audit_sink):
        engine.transit("correction", {"comment": "x"})
        assert engine.is_("correction")
        assert retracted.body == "x"
        assert audit_sink.records[-1].context.get("comment") == "x"

    def test_check_reports_fatal_publication(self, engine):
        with pytest.raises(TransitionFatalError):
            engine.check("published")

    def test_unknown_route(self, engine):
        with pytest.raises(TransitionNotFoundError):
            engine.transit("new")


# =============================================================================
# Full lifecycle
# =============================================================================


class TestArticleLifecycle:

    def test_editor_publishes(self, make_engine, article):
        engine = make_engine()
        engine.init()
        engine.transit("review")
        assert engine.available().keys() == [("review", "published"), ("review", "correction")]
        engine.transit("published")
        assert article.status == "published"
        assert engine.transitions().keys() == []

    def test_empty_article_cannot_enter_review(self, make_engine, article):
        article.body = ""
        engine = make_engine()
        engine.init()
        assert engine.transitions().without_recoverable().keys() == [("new", "review")]
        with pytest.raises(TransitionRecoverableError):
            engine.check("review")

    def test_correction_loop(self, make_engine, article, author):
        editor_engine = make_engine()
        editor_engine.init(state="review")
        editor_engine.transit("correction", {"comment": "Cite your sources"})

        author_engine = make_engine(actor=author)
        assert author_engine.available().keys() == [("correction", "review")]
        author_engine.authorize("review")
        author_engine.transit("review")
        assert article.status == "review"

    def test_author_cannot_request_correction(self, make_engine, author):
        engine = make_engine(actor=author)
        engine.init(state="review")
        assert ("review", "correction") not in engine.available().keys()
        with pytest.raises(AuthorizationDeniedError):
            engine.authorize("correction")

    def test_editor_cannot_resubmit(self, make_engine):
        engine = make_engine()
        engine.init(state="correction")
        assert engine.available().keys() == []

    def test_to_dict_lists_available(self, make_engine):
        engine = make_engine()
        engine.init(state="review")
        data = engine.to_dict()
        assert data["value"] == "review"
        assert [t["target"] for t in data["transitions"]] == ["published", "correction"]


# =============================================================================
# YAML variant
# =============================================================================


class TestYamlArticleWorkflow:

    @pytest.fixture
    def blueprint(self):
        return load_blueprint(ARTICLE_YAML, ARTICLE_GUARDS)

    @pytest.fixture
    def capabilities(self):
        return StaticCapabilityProvider(
            {
                "article.correct": lambda actor, entity, transition: actor.is_editor,
                "article.resubmit": lambda actor, entity, transition: actor.id == entity.author_id,
            }
        )

    def test_blueprint_is_valid(self, blueprint):
        assert BlueprintValidator(blueprint).valid

    def test_retracted_article_at_review(self, make_engine, blueprint, capabilities, retracted):
        engine = make_engine(retracted, blueprint, authorizer=capabilities)
        engine.init(state="review")

        assert len(engine.transitions()) == 2
        assert engine.transitions().without_forbidden().keys() == [("review", "correction")]
        with pytest.raises(PayloadValidationError):
            engine.transit("correction", {})

    def test_capabilities_decide_availability(self, make_engine, blueprint, capabilities, author):
        editor_engine = make_engine(blueprint=blueprint, authorizer=capabilities)
        editor_engine.init(state="review")
        assert editor_engine.available().keys() == [("review", "published"), ("review", "correction")]
        editor_engine.transit("correction", {"comment": "Tighten the lede"})

        author_engine = make_engine(blueprint=blueprint, actor=author, authorizer=capabilities)
        assert author_engine.available().keys() == [("correction", "review")]

    def test_without_provider_capabilities_deny(self, make_engine, blueprint, captured_logs):
        engine = make_engine(blueprint=blueprint)
        engine.init(state="review")
        assert engine.available().keys() == [("review", "published")]
        assert any(r["message"] == "authorization_provider_missing" for r in captured_logs())

    def test_correction_has_no_callback(self, make_engine, blueprint, capabilities, article):
        engine = make_engine(blueprint=blueprint, authorizer=capabilities)
        engine.init(state="review")
        engine.transit("correction", {"comment": "x"})
        assert article.status == "correction"
        assert article.body == "Draft body"
