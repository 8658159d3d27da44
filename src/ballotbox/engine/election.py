"""Election engine — one election's entire state and every operation on it.

The engine holds the phase, voter registry, proposal list and winning id.
Nothing outside the engine mutates them; read accessors return copies.

Guarantees:
- Every check runs before any mutation. A rejected call leaves state
  untouched and emits no event.
- Each public operation runs under one lock covering validation and
  mutation, so concurrent callers see whole operations only.
- Events are emitted after the state change has been committed. A sink
  that raises is logged and ignored; the operation still succeeds.

Check order follows the role-then-phase convention: the caller's role is
checked first, then the phase, then operation-specific preconditions.
register_proposal is the exception: an empty description is rejected
before anything else.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import replace
from typing import Any, Optional

from ballotbox.access.authorizer import Authorizer, OwnerAuthorizer, require_identity
from ballotbox.config import ElectionPolicy
from ballotbox.engine.errors import (
    AlreadyVoted,
    EmptyDescription,
    InvalidProposal,
    NoConsensus,
    Unauthorized,
    WrongPhase,
)
from ballotbox.engine.tally import surviving_proposals, tally_proposals
from ballotbox.engine.workflow import PhaseOperation, WorkflowStateMachine
from ballotbox.models.election import Phase, Proposal, TallyOutcome, Voter
from ballotbox.models.events import (
    DomainEvent,
    EventSink,
    ProposalRegistered,
    Voted,
    VoterRegistered,
    WorkflowStatusChange,
)

logger = logging.getLogger(__name__)


class ElectionEngine:
    """Single-election voting workflow.

    Usage:
        engine = ElectionEngine.owned_by("admin", event_sink=EventLog())

        engine.register_voter("admin", "alice")
        engine.start_proposals_registration("admin")
        pid = engine.register_proposal("alice", "Plant trees")
        engine.end_proposals_registration("admin")
        engine.start_voting_session("admin")
        engine.vote_for_proposal("alice", pid)
        engine.end_voting_session("admin")
        outcome = engine.tally_votes("admin")
    """

    def __init__(
        self,
        authorizer: Authorizer,
        event_sink: Optional[EventSink] = None,
        policy: Optional[ElectionPolicy] = None,
    ) -> None:
        self._authorizer = authorizer
        self._event_sink = event_sink
        self._policy = policy or ElectionPolicy()
        self._lock = threading.RLock()

        self._phase = Phase.REGISTERING_VOTERS
        self._voters: dict[str, Voter] = {}
        self._proposals: list[Proposal] = []
        self._winning_proposal_id: Optional[int] = None
        self._last_tally: Optional[TallyOutcome] = None
        self._round = 1

    @classmethod
    def owned_by(
        cls,
        administrator_id: str,
        event_sink: Optional[EventSink] = None,
        policy: Optional[ElectionPolicy] = None,
    ) -> ElectionEngine:
        """Create an engine administered by one owner.

        Voter membership is answered from this engine's own registry.
        """
        authorizer = OwnerAuthorizer(administrator_id)
        engine = cls(authorizer, event_sink=event_sink, policy=policy)
        authorizer.bind_voter_lookup(engine.is_registered)
        return engine

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def policy(self) -> ElectionPolicy:
        return self._policy

    @property
    def round(self) -> int:
        """Voting round number; 1 until the first restart."""
        return self._round

    @property
    def winning_proposal_id(self) -> Optional[int]:
        """Winning id, or None unless the phase is VOTES_TALLIED."""
        if self._phase != Phase.VOTES_TALLIED:
            return None
        return self._winning_proposal_id

    @property
    def last_tally(self) -> Optional[TallyOutcome]:
        return self._last_tally

    @property
    def proposal_count(self) -> int:
        return len(self._proposals)

    def proposals(self) -> list[Proposal]:
        """Copies of all proposals; list index is the proposal id."""
        with self._lock:
            return [replace(p) for p in self._proposals]

    def is_registered(self, identity: str) -> bool:
        voter = self._voters.get(identity)
        return voter is not None and voter.is_registered

    # ------------------------------------------------------------------
    # Phase transitions (administrator only)
    # ------------------------------------------------------------------

    def start_proposals_registration(self, caller: str) -> None:
        self._advance(caller, PhaseOperation.START_PROPOSALS_REGISTRATION)

    def end_proposals_registration(self, caller: str) -> None:
        self._advance(caller, PhaseOperation.END_PROPOSALS_REGISTRATION)

    def start_voting_session(self, caller: str) -> None:
        self._advance(caller, PhaseOperation.START_VOTING_SESSION)

    def end_voting_session(self, caller: str) -> None:
        self._advance(caller, PhaseOperation.END_VOTING_SESSION)

    # ------------------------------------------------------------------
    # Registration and voting
    # ------------------------------------------------------------------

    def register_voter(self, caller: str, identity: str) -> None:
        """Whitelist a participant.

        Re-registering an already registered voter is accepted and resets
        their ballot. Registration is only open before any vote can be
        cast, so no cast vote is ever erased this way.

        Raises:
            Unauthorized: Caller is not the administrator.
            WrongPhase: Phase is not REGISTERING_VOTERS.
            ValueError: Identity is blank or has surrounding whitespace.
        """
        with self._lock:
            self._require_administrator(caller)
            WorkflowStateMachine.require_phase(self._phase, Phase.REGISTERING_VOTERS)
            require_identity(identity, "Voter identity")

            self._voters[identity] = Voter(is_registered=True)
            logger.debug("Registered voter %s", identity)
            self._emit(VoterRegistered(voter_id=identity))

    def register_proposal(self, caller: str, description: str) -> int:
        """Append a proposal and return its id.

        Raises:
            EmptyDescription: Description is empty or whitespace.
            Unauthorized: Caller is not a registered voter.
            WrongPhase: Phase is not PROPOSALS_REGISTRATION_STARTED.
        """
        with self._lock:
            if not description or not description.strip():
                raise EmptyDescription("Proposal description cannot be empty")
            self._require_voter(caller)
            WorkflowStateMachine.require_phase(
                self._phase, Phase.PROPOSALS_REGISTRATION_STARTED
            )

            self._proposals.append(Proposal(description=description.strip()))
            proposal_id = len(self._proposals) - 1
            logger.debug("Voter %s registered proposal %d", caller, proposal_id)
            self._emit(ProposalRegistered(proposal_id=proposal_id))
            return proposal_id

    def vote_for_proposal(self, caller: str, proposal_id: int) -> None:
        """Cast the caller's single vote.

        Raises:
            Unauthorized: Caller is not a registered voter.
            WrongPhase: Phase is not VOTING_SESSION_STARTED.
            AlreadyVoted: Caller has voted in this round.
            InvalidProposal: proposal_id is out of range.
        """
        with self._lock:
            self._require_voter(caller)
            WorkflowStateMachine.require_phase(self._phase, Phase.VOTING_SESSION_STARTED)
            voter = self._voters[caller]
            if voter.has_voted:
                raise AlreadyVoted(f"Voter {caller} has already voted")
            self._check_proposal_id(proposal_id)

            voter.has_voted = True
            voter.voted_proposal_id = proposal_id
            self._proposals[proposal_id].vote_count += 1
            logger.debug("Voter %s voted for proposal %d", caller, proposal_id)
            self._emit(Voted(voter_id=caller, proposal_id=proposal_id))

    def get_voter(self, caller: str, identity: str) -> Voter:
        """Return a copy of a voter record (unregistered default if unknown).

        Raises:
            Unauthorized: Caller is not a registered voter.
        """
        with self._lock:
            self._require_voter(caller)
            return replace(self._voters.get(identity, Voter()))

    def get_proposal(self, caller: str, proposal_id: int) -> Proposal:
        """Return a copy of one proposal.

        Raises:
            Unauthorized: Caller is not a registered voter.
            InvalidProposal: proposal_id is out of range.
        """
        with self._lock:
            self._require_voter(caller)
            self._check_proposal_id(proposal_id)
            return replace(self._proposals[proposal_id])

    # ------------------------------------------------------------------
    # Tally, restart, winner
    # ------------------------------------------------------------------

    def tally_votes(self, caller: str) -> TallyOutcome:
        """Count votes and move to VOTES_TALLIED or NO_CONSENSUS_FOUND.

        Raises:
            Unauthorized: Caller is not the administrator.
            WrongPhase: Phase is not VOTING_SESSION_ENDED.
            NoProposals: No proposal was ever registered.
        """
        with self._lock:
            self._require_administrator(caller)
            WorkflowStateMachine.require_phase(self._phase, Phase.VOTING_SESSION_ENDED)
            outcome = tally_proposals(self._proposals)

            if outcome.consensus:
                target = Phase.VOTES_TALLIED
                self._winning_proposal_id = outcome.winning_proposal_id
                logger.info(
                    "Round %d tallied: proposal %d wins with %d votes",
                    self._round, outcome.winning_proposal_id, outcome.max_votes,
                )
            else:
                target = Phase.NO_CONSENSUS_FOUND
                self._winning_proposal_id = None
                logger.warning(
                    "Round %d tallied: no consensus, proposals %s tied at %d votes",
                    self._round, list(outcome.leading_proposal_ids), outcome.max_votes,
                )
            self._last_tally = outcome
            self._transition(target)
            return outcome

    def restart_voting_session(self, caller: str) -> list[Proposal]:
        """Reopen voting among the proposals tied at the last tally.

        Survivors are re-indexed from 0 in their original order. Any id
        recorded before the restart no longer refers to the same proposal.

        Raises:
            Unauthorized: Caller is not the administrator.
            WrongPhase: Phase is not NO_CONSENSUS_FOUND.
        """
        with self._lock:
            self._require_administrator(caller)
            WorkflowStateMachine.require_phase(self._phase, Phase.NO_CONSENSUS_FOUND)
            # NO_CONSENSUS_FOUND is only reachable through tally_votes
            assert self._last_tally is not None

            survivors = surviving_proposals(
                self._proposals,
                self._last_tally.max_votes,
                reset_vote_counts=self._policy.reset_vote_counts_on_restart,
            )
            self._proposals = survivors
            if self._policy.clear_ballots_on_restart:
                for voter in self._voters.values():
                    voter.has_voted = False
                    voter.voted_proposal_id = None
            self._round += 1
            logger.info(
                "Restarting voting as round %d with %d proposals",
                self._round, len(survivors),
            )
            self._transition(Phase.VOTING_SESSION_STARTED)
            return [replace(p) for p in survivors]

    def get_winning_proposal(self) -> Proposal:
        """Return a copy of the winning proposal.

        Raises:
            NoConsensus: The tally ended in a tie.
            WrongPhase: Votes have not been tallied.
        """
        with self._lock:
            if self._phase == Phase.NO_CONSENSUS_FOUND:
                raise NoConsensus(
                    "No consensus found: proposals tied at the maximum vote count"
                )
            WorkflowStateMachine.require_phase(self._phase, Phase.VOTES_TALLIED)
            assert self._winning_proposal_id is not None
            return replace(self._proposals[self._winning_proposal_id])

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------

    def to_records(self) -> dict[str, Any]:
        """Serialise the election for audit digests.

        Returns:
            A JSON-serialisable dict. Voters are sorted by identity.
        """
        with self._lock:
            return {
                "phase": self._phase.value,
                "round": self._round,
                "winning_proposal_id": self.winning_proposal_id,
                "proposals": [
                    {"description": p.description, "vote_count": p.vote_count}
                    for p in self._proposals
                ],
                "voters": [
                    {
                        "voter_id": voter_id,
                        "is_registered": v.is_registered,
                        "has_voted": v.has_voted,
                        "voted_proposal_id": v.voted_proposal_id,
                    }
                    for voter_id, v in sorted(self._voters.items())
                ],
            }

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _advance(self, caller: str, operation: PhaseOperation) -> None:
        with self._lock:
            self._require_administrator(caller)
            target = WorkflowStateMachine.target_for(operation, self._phase)
            self._transition(target)

    def _transition(self, target: Phase) -> None:
        """Apply a validated transition and announce it. Caller holds the lock."""
        errors = WorkflowStateMachine.validate_transition(self._phase, target)
        if errors:
            # Unreachable behind the phase guards.
            raise WrongPhase(expected=target, actual=self._phase, message=errors[0])
        previous = self._phase
        self._phase = target
        logger.info("Workflow status changed: %s → %s", previous.value, target.value)
        self._emit(WorkflowStatusChange(previous_phase=previous, new_phase=target))

    def _require_administrator(self, caller: str) -> None:
        if not self._authorizer.is_administrator(caller):
            raise Unauthorized(f"{caller} is not the election administrator")

    def _require_voter(self, caller: str) -> None:
        if not self._authorizer.is_registered_voter(caller) or not self.is_registered(caller):
            raise Unauthorized(f"{caller} is not a registered voter")

    def _check_proposal_id(self, proposal_id: int) -> None:
        if (
            isinstance(proposal_id, bool)
            or not isinstance(proposal_id, int)
            or not 0 <= proposal_id < len(self._proposals)
        ):
            raise InvalidProposal(f"Proposal not found: {proposal_id}")

    def _emit(self, event: DomainEvent) -> None:
        if self._event_sink is None:
            return
        try:
            self._event_sink.emit(event)
        except Exception:
            logger.exception("Event sink failed on %s", type(event).__name__)
