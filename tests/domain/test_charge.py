"""Tests for Charge and Threshold, the progressive transition protocol."""

from dataclasses import dataclass, field

import pytest

from workflow_kernel.domain.charge import Charge, Chargeable, Threshold
from workflow_kernel.domain.context import Context


@dataclass
class Reviewer:
    id: str


@dataclass
class Proposal:
    votes: list = field(default_factory=list)
    score: float = 0.0


def _context(actor):
    return Context(source="review", target="approved", actor=actor)


class TestCharge:

    @pytest.fixture
    def charge(self):
        return Charge(
            progress=lambda p, c: p.score,
            contribute=lambda p, c: setattr(p, "score", p.score + 0.5),
        )

    def test_satisfies_protocol(self, charge):
        assert isinstance(charge, Chargeable)
        assert isinstance(Threshold("votes", 1), Chargeable)

    def test_may_charge_defaults_to_true(self, charge):
        assert charge.may_charge(Proposal(), _context("anyone"))

    def test_allow_callback(self, charge):
        restricted = charge.allowing(lambda p, c: c.actor == "chair")
        assert restricted.may_charge(Proposal(), _context("chair"))
        assert not restricted.may_charge(Proposal(), _context("guest"))

    def test_charge_then_charged(self, charge):
        proposal = Proposal()
        charge.charge(proposal, _context("a"))
        assert charge.charging(proposal, _context("a")) == 0.5
        assert not charge.charged(proposal, _context("a"))
        charge.charge(proposal, _context("b"))
        assert charge.charged(proposal, _context("b"))

    @pytest.mark.parametrize("raw, clamped", [(-1, 0.0), (0.3, 0.3), (7, 1.0)])
    def test_progress_clamped(self, raw, clamped):
        charge = Charge(progress=lambda p, c: raw, contribute=lambda p, c: None)
        assert charge.charging(Proposal(), _context("a")) == clamped

    def test_history_empty_unless_configured(self, charge):
        assert charge.history(Proposal(), _context("a")) == []
        with_history = charge.with_history(lambda p, c: ["a", "b"])
        assert with_history.history(Proposal(), _context("a")) == ["a", "b"]


class TestThreshold:

    def test_requires_positive_quorum(self):
        with pytest.raises(ValueError):
            Threshold("votes", 0)

    def test_distinct_contributors_accumulate(self):
        threshold = Threshold("votes", 3)
        proposal = Proposal()
        for name in ("r1", "r2"):
            context = _context(Reviewer(name))
            assert threshold.may_charge(proposal, context)
            threshold.charge(proposal, context)

        assert proposal.votes == ["r1", "r2"]
        assert threshold.charging(proposal, _context(None)) == pytest.approx(2 / 3)
        assert not threshold.charged(proposal, _context(None))

    def test_same_contributor_may_not_charge_twice(self):
        threshold = Threshold("votes", 2)
        proposal = Proposal()
        threshold.charge(proposal, _context(Reviewer("r1")))
        assert not threshold.may_charge(proposal, _context(Reviewer("r1")))
        assert threshold.may_charge(proposal, _context(Reviewer("r2")))

    def test_anonymous_actor_may_not_charge(self):
        assert not Threshold("votes", 1).may_charge(Proposal(), _context(None))

    def test_charge_assigns_new_list(self):
        threshold = Threshold("votes", 2)
        proposal = Proposal()
        before = proposal.votes
        threshold.charge(proposal, _context(Reviewer("r1")))
        assert proposal.votes is not before

    def test_charged_at_quorum(self):
        threshold = Threshold("votes", 2)
        proposal = Proposal(votes=["r1", "r2"])
        assert threshold.charged(proposal, _context(None))
        assert threshold.history(proposal, _context(None)) == ["r1", "r2"]

    def test_custom_contributor_key(self):
        threshold = Threshold("votes", 2, contributor=lambda actor: actor.id.upper())
        proposal = Proposal()
        threshold.charge(proposal, _context(Reviewer("r1")))
        assert proposal.votes == ["R1"]

    def test_missing_ledger_treated_as_empty(self):
        class Bare:
            pass

        assert Threshold("votes", 1).contributors(Bare()) == []
