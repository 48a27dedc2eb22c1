"""
Tests for Transition: identity, builders, authorization, rules and
serialization.
"""

import pytest

from workflow_kernel.domain.charge import Threshold
from workflow_kernel.domain.context import Context
from workflow_kernel.domain.guard import Guard, GuardOutcome
from workflow_kernel.domain.state import State
from workflow_kernel.domain.transition import Authorization, Transition
from workflow_kernel.services.authorization import StaticCapabilityProvider
from workflow_modules.article import ArticleStatus


def _context(actor=None, data=None):
    return Context(source=State("review"), target=State("published"), actor=actor, data=data or {})


class _Entity:
    approvals: list = []


# =============================================================================
# Identity
# =============================================================================


class TestTransitionIdentity:

    def test_identity_is_source_and_target(self):
        assert Transition.make("a", "b") == Transition.make("a", "b").as_("Caption")
        assert Transition.make("a", "b") != Transition.make("b", "a")
        assert hash(Transition.make("a", "b")) == hash(Transition.make("a", "b"))

    def test_endpoints_normalized(self):
        transition = Transition.make(ArticleStatus.NEW, State("review"))
        assert transition.key == ("new", "review")
        assert transition.connects("new", ArticleStatus.REVIEW)

    def test_coerce_from_pair(self):
        assert Transition.coerce(("a", "b")).key == ("a", "b")
        transition = Transition.make("x", "y")
        assert Transition.coerce(transition) is transition

    def test_coerce_rejects_other_shapes(self):
        with pytest.raises(TypeError):
            Transition.coerce("a->b")

    def test_builders_do_not_mutate(self):
        base = Transition.make("a", "b")
        built = base.as_("Go").set("style", "warning").with_rules({"x": "required"})
        assert base.caption is None
        assert base.additional == {}
        assert base.rules == {}
        assert built.label() == "Go"
        assert built.additional["style"] == "warning"

    def test_before_appends_guards_in_order(self):
        g1 = Guard("one", lambda e, c: GuardOutcome.open())
        g2 = Guard("two", lambda e, c: GuardOutcome.open())
        transition = Transition.make("a", "b").before(g1).before(g2)
        assert [g.name for g in transition.guards] == ["one", "two"]

    def test_default_label(self):
        assert Transition.make("a", "b").label() == "a -> b"
        assert Transition.make(ArticleStatus.NEW, "review").label() == "new -> review"

    def test_callable_caption(self):
        transition = Transition.make("a", "b").as_(lambda entity: f"Move {entity}")
        assert transition.label("memo") == "Move memo"


# =============================================================================
# Authorization
# =============================================================================


class TestAuthorization:

    def test_no_rule_always_allowed(self):
        assert Transition.make("a", "b").is_authorized(None, _context())

    def test_predicate_rule(self):
        transition = Transition.make("a", "b").authorized_by(
            lambda entity, context: context.actor == "boss"
        )
        assert transition.is_authorized(None, _context(actor="boss"))
        assert not transition.is_authorized(None, _context(actor="intern"))

    def test_capability_rule_delegates_to_provider(self):
        provider = StaticCapabilityProvider({"article.publish": {"boss"}})
        transition = Transition.make("a", "b").authorized_by("article.publish")
        assert transition.is_authorized(None, _context(actor="boss"), provider)
        assert not transition.is_authorized(None, _context(actor="intern"), provider)

    def test_capability_rule_without_provider_denies(self, captured_logs):
        transition = Transition.make("a", "b").authorized_by("article.publish")
        assert not transition.is_authorized(None, _context(actor="boss"))

        logs = captured_logs()
        denied = [r for r in logs if r["message"] == "authorization_provider_missing"]
        assert denied and denied[0]["capability"] == "article.publish"

    def test_authorization_needs_exactly_one_form(self):
        with pytest.raises(ValueError):
            Authorization()
        with pytest.raises(ValueError):
            Authorization(capability="x", predicate=lambda e, c: True)


# =============================================================================
# Rules and callbacks
# =============================================================================


class TestRulesAndCallbacks:

    def test_validation_rules_explode(self):
        transition = Transition.make("a", "b").with_rules(
            {"comment": "required|string", "score": ["integer"]}
        )
        assert transition.validation_rules() == {
            "comment": "required|string",
            "score": ["integer"],
        }
        assert transition.validation_rules(explode=True) == {
            "comment": ["required", "string"],
            "score": ["integer"],
        }

    def test_required_fields(self):
        transition = Transition.make("a", "b").with_rules(
            {"comment": "required|string", "note": "string"}
        )
        assert transition.required_fields() == ["comment"]

    def test_merge_rules_deduplicates(self):
        transition = Transition.make("a", "b").with_rules({"comment": "required|string"})
        merged = transition.merge_rules({"comment": "string|max:200", "score": ["integer", "min:1"]})
        assert merged == {
            "comment": "required|string|max:200",
            "score": "integer|min:1",
        }

    def test_callbacks_run_in_declaration_order(self):
        calls = []
        transition = (
            Transition.make("a", "b")
            .after(lambda entity, context: calls.append(("first", context.get("n"))))
            .after(lambda entity, context: calls.append(("second", context.get("n"))))
        )
        transition.invoke(None, _context(data={"n": 1}))
        assert calls == [("first", 1), ("second", 1)]


# =============================================================================
# Serialization
# =============================================================================


class TestTransitionSerialization:

    def test_to_dict_without_context(self):
        transition = (
            Transition.make("review", "correction")
            .as_("Request correction")
            .with_rules({"comment": "required|string"})
            .set("style", "warning")
        )
        assert transition.to_dict() == {
            "source": "review",
            "target": "correction",
            "caption": "Request correction",
            "problem": None,
            "requires": ["comment"],
            "style": "warning",
        }

    def test_to_dict_reports_problem(self):
        transition = Transition.make("review", "published").before(
            Guard("g", lambda e, c: GuardOutcome.recoverable("needs content"))
        )
        assert transition.to_dict(None, _context())["problem"] == "needs content"

    def test_to_dict_includes_charge_progress(self):
        entity = _Entity()
        entity.approvals = ["r1"]
        transition = Transition.make("review", "published").charged_by(
            Threshold(ledger="approvals", required=4)
        )
        row = transition.to_dict(entity, _context(actor="r2"))
        assert row["charge"] == {"progress": 0.25, "history": ["r1"]}
