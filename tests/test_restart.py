"""Tests for the restart path after a tally without consensus.

Covers the end-to-end two-voter tie scenario, pruning of non-leaders,
contiguous re-indexing, ballot clearing, and the carry-over policy.
"""

from __future__ import annotations

import pytest

from ballotbox.config import ElectionPolicy
from ballotbox.engine.election import ElectionEngine
from ballotbox.engine.errors import AlreadyVoted, InvalidProposal, Unauthorized, WrongPhase
from ballotbox.models.election import Phase, Voter
from ballotbox.models.events import WorkflowStatusChange
from ballotbox.persistence.event_log import EventKind, EventLog

ADMIN = "admin"
VOTERS = ["v1", "v2", "v3", "v4", "v5", "v6", "v7", "v8"]


def _tied_election(
    ballots: dict[str, int],
    descriptions: list[str],
    policy: ElectionPolicy | None = None,
    event_log: EventLog | None = None,
) -> ElectionEngine:
    """Run one round with the given ballots; the result must be a tie."""
    engine = ElectionEngine.owned_by(ADMIN, event_sink=event_log, policy=policy)
    for voter in VOTERS:
        engine.register_voter(ADMIN, voter)
    engine.start_proposals_registration(ADMIN)
    for description in descriptions:
        engine.register_proposal(VOTERS[0], description)
    engine.end_proposals_registration(ADMIN)
    engine.start_voting_session(ADMIN)
    for voter, proposal_id in ballots.items():
        engine.vote_for_proposal(voter, proposal_id)
    engine.end_voting_session(ADMIN)
    outcome = engine.tally_votes(ADMIN)
    assert outcome.consensus is False
    return engine


class TestEndToEnd:
    def test_two_voter_tie_then_restart(self) -> None:
        log = EventLog()
        engine = ElectionEngine.owned_by(ADMIN, event_sink=log)
        engine.register_voter(ADMIN, "A")
        engine.register_voter(ADMIN, "B")
        engine.start_proposals_registration(ADMIN)
        assert engine.register_proposal("A", "X") == 0
        assert engine.register_proposal("B", "Y") == 1
        engine.end_proposals_registration(ADMIN)
        engine.start_voting_session(ADMIN)
        engine.vote_for_proposal("A", 0)
        engine.vote_for_proposal("B", 1)
        engine.end_voting_session(ADMIN)

        outcome = engine.tally_votes(ADMIN)
        assert outcome.consensus is False
        assert engine.phase == Phase.NO_CONSENSUS_FOUND

        survivors = engine.restart_voting_session(ADMIN)
        assert [p.description for p in survivors] == ["X", "Y"]
        assert [p.description for p in engine.proposals()] == ["X", "Y"]
        assert engine.phase == Phase.VOTING_SESSION_STARTED
        assert engine.round == 2

        changes = [e.payload for e in log.events(EventKind.WORKFLOW_STATUS_CHANGE)]
        assert changes[-2:] == [
            {"previous_phase": "VotingSessionEnded", "new_phase": "NoConsensusFound"},
            {"previous_phase": "NoConsensusFound", "new_phase": "VotingSessionStarted"},
        ]

    def test_second_round_can_elect(self) -> None:
        engine = _tied_election({"v1": 0, "v2": 1}, ["X", "Y"])
        engine.restart_voting_session(ADMIN)
        engine.vote_for_proposal("v1", 1)
        engine.vote_for_proposal("v2", 1)
        engine.vote_for_proposal("v3", 0)
        engine.end_voting_session(ADMIN)

        outcome = engine.tally_votes(ADMIN)

        assert outcome.consensus is True
        assert engine.get_winning_proposal().description == "Y"
        assert engine.get_winning_proposal().vote_count == 2


class TestPruning:
    def test_only_leaders_survive_reindexed(self) -> None:
        # counts [2, 1, 0, 2, 1] → leaders are ids 0 and 3
        engine = _tied_election(
            {"v1": 0, "v2": 0, "v3": 1, "v4": 3, "v5": 3, "v6": 4},
            ["A", "B", "C", "D", "E"],
        )
        engine.restart_voting_session(ADMIN)
        proposals = engine.proposals()
        assert [p.description for p in proposals] == ["A", "D"]
        assert engine.get_proposal("v1", 1).description == "D"
        with pytest.raises(InvalidProposal):
            engine.get_proposal("v1", 2)

    def test_three_way_tie(self) -> None:
        engine = _tied_election({"v1": 0, "v2": 1, "v3": 2}, ["A", "B", "C", "D"])
        engine.restart_voting_session(ADMIN)
        assert [p.description for p in engine.proposals()] == ["A", "B", "C"]

    def test_zero_vote_tie_keeps_everything(self) -> None:
        engine = _tied_election({}, ["A", "B", "C"])
        engine.restart_voting_session(ADMIN)
        assert engine.proposal_count == 3


class TestFreshRound:
    def test_vote_counts_reset(self) -> None:
        engine = _tied_election({"v1": 0, "v2": 1}, ["X", "Y", "Z"])
        engine.restart_voting_session(ADMIN)
        assert [p.vote_count for p in engine.proposals()] == [0, 0]

    def test_ballots_cleared(self) -> None:
        engine = _tied_election({"v1": 0, "v2": 1}, ["X", "Y"])
        engine.restart_voting_session(ADMIN)
        assert engine.get_voter("v1", "v1") == Voter(is_registered=True)
        engine.vote_for_proposal("v1", 0)

    def test_registrations_survive(self) -> None:
        engine = _tied_election({"v1": 0, "v2": 1}, ["X", "Y"])
        engine.restart_voting_session(ADMIN)
        assert all(engine.is_registered(v) for v in VOTERS)


class TestCarryOverPolicy:
    def test_counts_and_ballots_kept(self) -> None:
        policy = ElectionPolicy(
            reset_vote_counts_on_restart=False,
            clear_ballots_on_restart=False,
        )
        engine = _tied_election({"v1": 0, "v2": 1}, ["X", "Y", "Z"], policy=policy)
        engine.restart_voting_session(ADMIN)

        assert [p.vote_count for p in engine.proposals()] == [1, 1]
        assert engine.get_voter("v1", "v1").voted_proposal_id == 0
        with pytest.raises(AlreadyVoted):
            engine.vote_for_proposal("v1", 1)
        # Voters who sat out round one can still break the tie
        engine.vote_for_proposal("v3", 1)
        engine.end_voting_session(ADMIN)
        assert engine.tally_votes(ADMIN).winning_proposal_id == 1


class TestRestartGuards:
    def test_requires_admin(self) -> None:
        engine = _tied_election({"v1": 0, "v2": 1}, ["X", "Y"])
        with pytest.raises(Unauthorized):
            engine.restart_voting_session("v1")
        assert engine.phase == Phase.NO_CONSENSUS_FOUND
        assert engine.proposal_count == 2

    def test_requires_no_consensus(self) -> None:
        engine = ElectionEngine.owned_by(ADMIN)
        with pytest.raises(WrongPhase) as excinfo:
            engine.restart_voting_session(ADMIN)
        assert excinfo.value.expected == Phase.NO_CONSENSUS_FOUND

    def test_restart_emits_phase_change(self) -> None:
        events: list[object] = []

        class Sink:
            def emit(self, event: object) -> None:
                events.append(event)

        engine = ElectionEngine.owned_by(ADMIN, event_sink=Sink())
        for voter in ("a", "b"):
            engine.register_voter(ADMIN, voter)
        engine.start_proposals_registration(ADMIN)
        engine.register_proposal("a", "X")
        engine.register_proposal("b", "Y")
        engine.end_proposals_registration(ADMIN)
        engine.start_voting_session(ADMIN)
        engine.end_voting_session(ADMIN)
        engine.tally_votes(ADMIN)
        engine.restart_voting_session(ADMIN)
        assert events[-1] == WorkflowStatusChange(
            Phase.NO_CONSENSUS_FOUND, Phase.VOTING_SESSION_STARTED,
        )
