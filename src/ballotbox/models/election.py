"""Election data models — phases, voters, proposals, and tally outcomes.

Workflow:
    REGISTERING_VOTERS → PROPOSALS_REGISTRATION_STARTED
    → PROPOSALS_REGISTRATION_ENDED → VOTING_SESSION_STARTED
    → VOTING_SESSION_ENDED → VOTES_TALLIED

Side branch: VOTING_SESSION_ENDED → NO_CONSENSUS_FOUND (tie at tally),
then NO_CONSENSUS_FOUND → VOTING_SESSION_STARTED (restart among the
tied leaders).

A proposal's id is its position in the engine's proposal list. Restart
re-indexes the surviving proposals from 0.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional


class Phase(str, enum.Enum):
    """Workflow phase of an election."""
    REGISTERING_VOTERS = "RegisteringVoters"
    PROPOSALS_REGISTRATION_STARTED = "ProposalsRegistrationStarted"
    PROPOSALS_REGISTRATION_ENDED = "ProposalsRegistrationEnded"
    VOTING_SESSION_STARTED = "VotingSessionStarted"
    VOTING_SESSION_ENDED = "VotingSessionEnded"
    VOTES_TALLIED = "VotesTallied"
    NO_CONSENSUS_FOUND = "NoConsensusFound"


@dataclass
class Voter:
    """A whitelisted participant's ballot state."""
    is_registered: bool = False
    has_voted: bool = False
    voted_proposal_id: Optional[int] = None


@dataclass
class Proposal:
    """A candidate option with its vote counter."""
    description: str
    vote_count: int = 0


@dataclass(frozen=True)
class TallyOutcome:
    """Result of a single tally.

    leading_proposal_ids holds every proposal at max_votes: one id on
    consensus, two or more on a tie.
    """
    consensus: bool
    max_votes: int
    leading_proposal_ids: tuple[int, ...]
    winning_proposal_id: Optional[int] = None
