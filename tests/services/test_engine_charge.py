"""
Tests for charged (progressive) transitions driven through the engine.

A contribution is recorded on every allowed transit; the workflow
attribute changes only on the call that completes the charge.
"""

from dataclasses import dataclass, field

import pytest

from workflow_kernel.domain.blueprint import WorkflowBlueprint
from workflow_kernel.domain.charge import Charge, Threshold
from workflow_kernel.domain.settings import EngineSettings
from workflow_kernel.domain.transition import Transition
from workflow_kernel.exceptions import AlreadyChargedError
from workflow_modules.article import Member, PeerReviewWorkflow


class QuorumWorkflow(WorkflowBlueprint):
    """review -> approved once three distinct reviewers approved."""

    name = "quorum"

    def states(self):
        return ["review", "approved"]

    def transitions(self):
        return [
            Transition.make("review", "approved").charged_by(Threshold("approvals", 3)),
        ]


@dataclass
class Submission:
    status: str | None = "review"
    approvals: list = field(default_factory=list)


class Actor:
    """Mutable principal resolver."""

    def __init__(self, member=None):
        self.member = member

    def __call__(self):
        return self.member


@pytest.fixture
def current():
    return Actor()


@pytest.fixture
def submission():
    return Submission()


@pytest.fixture
def quorum_engine(make_engine, submission, current):
    def _make(**collaborators):
        return make_engine(submission, QuorumWorkflow(), principal_resolver=current, **collaborators)

    return _make


class TestChargeCommitBoundary:

    def test_commits_exactly_on_completing_contribution(
        self, quorum_engine, submission, current, audit_sink
    ):
        engine = quorum_engine()
        for n, reviewer in enumerate(("r1", "r2"), start=1):
            current.member = Member(reviewer)
            assert engine.transit("approved") is submission
            assert submission.status == "review"
            assert len(submission.approvals) == n
            assert audit_sink.records == []

        current.member = Member("r3")
        engine.transit("approved")
        assert submission.status == "approved"
        assert submission.approvals == ["r1", "r2", "r3"]
        (record,) = audit_sink.records
        assert record.context.actor.id == "r3"

    def test_progress_reported(self, quorum_engine, current):
        engine = quorum_engine()
        assert engine.charging("approved") == 0.0
        current.member = Member("r1")
        engine.transit("approved")
        assert engine.charging("approved") == pytest.approx(1 / 3)

    def test_uncharged_route_has_no_progress(self, make_engine):
        engine = make_engine()
        engine.init()
        assert engine.charging("review") is None

    def test_logs_partial_progress(self, quorum_engine, current, captured_logs):
        current.member = Member("r1")
        quorum_engine().transit("approved")
        (record,) = [r for r in captured_logs() if r["message"] == "transition_charging"]
        assert record["progress"] == pytest.approx(1 / 3)

    def test_serialized_transition_carries_charge(self, quorum_engine, current):
        current.member = Member("r1")
        engine = quorum_engine()
        engine.transit("approved")
        current.member = Member("r2")
        (row,) = engine.to_dict()["transitions"]
        assert row["charge"]["history"] == ["r1"]


class TestChargeIdempotence:

    def test_same_actor_twice_is_silent_noop(self, quorum_engine, submission, current, captured_logs):
        engine = quorum_engine()
        current.member = Member("r1")
        engine.transit("approved")
        progress = engine.charging("approved")

        engine.transit("approved")

        assert engine.charging("approved") == progress
        assert submission.approvals == ["r1"]
        assert submission.status == "review"
        assert any(r["message"] == "transition_charge_denied" for r in captured_logs())

    def test_denial_can_raise(self, quorum_engine, submission, current):
        engine = quorum_engine(settings=EngineSettings(silent_charge_denial=False))
        current.member = Member("r1")
        engine.transit("approved")

        with pytest.raises(AlreadyChargedError) as exc_info:
            engine.transit("approved")
        assert exc_info.value.actor.id == "r1"
        assert exc_info.value.code == "ALREADY_CHARGED"
        assert submission.approvals == ["r1"]

    def test_anonymous_actor_cannot_contribute(self, quorum_engine, submission):
        quorum_engine().transit("approved")
        assert submission.approvals == []
        assert submission.status == "review"


class TestCustomCharge:

    def test_callbacks_drive_commit(self, make_engine):
        class Budget(WorkflowBlueprint):
            def states(self):
                return ["collecting", "funded"]

            def transitions(self):
                return [
                    Transition.make("collecting", "funded").charged_by(
                        Charge(
                            progress=lambda e, c: e.raised / 100,
                            contribute=lambda e, c: setattr(e, "raised", e.raised + c.get("amount", 0)),
                            allow=lambda e, c: c.get("amount", 0) > 0,
                        )
                    )
                ]

        @dataclass
        class Fund:
            status: str = "collecting"
            raised: int = 0

        fund = Fund()
        engine = make_engine(fund, Budget())
        engine.transit("funded", {"amount": 60})
        engine.transit("funded", {"amount": 0})
        assert (fund.status, fund.raised) == ("collecting", 60)
        engine.transit("funded", {"amount": 40})
        assert fund.status == "funded"


class TestPeerReviewWorkflow:

    def test_two_reviewers_approve(self, make_engine, editor):
        entity = Submission(status=None)
        reviewers = Actor()
        engine = make_engine(entity, PeerReviewWorkflow(), principal_resolver=reviewers)
        engine.init()
        engine.transit("review")

        reviewers.member = editor
        engine.transit("approved")
        assert entity.status == "review"
        reviewers.member = Member("ed-2", role="editor")
        engine.transit("approved")
        assert entity.status == "approved"
