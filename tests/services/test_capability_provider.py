"""Tests for StaticCapabilityProvider."""

import pytest

from workflow_kernel.domain.ports import AuthorizationProvider
from workflow_kernel.domain.transition import Transition
from workflow_kernel.services.authorization import StaticCapabilityProvider
from workflow_modules.article import Member

PUBLISH = Transition.make("review", "published")


class TestStaticCapabilityProvider:

    @pytest.fixture
    def provider(self):
        return StaticCapabilityProvider(
            {
                "article.publish": {"ed-1"},
                "article.correct": lambda actor, entity, transition: actor.is_editor,
            }
        )

    def test_implements_port(self, provider):
        assert isinstance(provider, AuthorizationProvider)

    def test_id_set_grant(self, provider):
        assert provider.allows("article.publish", None, PUBLISH, Member("ed-1"))
        assert not provider.allows("article.publish", None, PUBLISH, Member("au-1"))

    def test_plain_actor_ids(self, provider):
        assert provider.allows("article.publish", None, PUBLISH, "ed-1")

    def test_callable_grant(self, provider):
        assert provider.allows("article.correct", None, PUBLISH, Member("x", role="editor"))
        assert not provider.allows("article.correct", None, PUBLISH, Member("x"))

    def test_callable_grant_receives_entity_and_transition(self):
        seen = []
        provider = StaticCapabilityProvider(
            {"cap": lambda actor, entity, transition: seen.append((actor, entity, transition)) or True}
        )
        provider.allows("cap", "memo", PUBLISH, "alice")
        assert seen == [("alice", "memo", PUBLISH)]

    def test_unknown_capability_denied(self, provider, captured_logs):
        assert not provider.allows("article.delete", None, PUBLISH, Member("ed-1"))
        assert any(r["message"] == "capability_unknown" for r in captured_logs())

    def test_anonymous_actor_denied(self, provider):
        assert not provider.allows("article.publish", None, PUBLISH, None)

    def test_grant_added_later(self, provider):
        provider.grant("article.archive", {"au-1"})
        assert provider.allows("article.archive", None, PUBLISH, Member("au-1"))
