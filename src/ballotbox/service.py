"""Election service — typed-result facade over one ElectionEngine.

Each engine operation maps to one service method that never raises for
election rule violations. The method returns a ServiceResult instead:
on success with data describing the new state, and on failure with the
error message and its kind (Unauthorized, WrongPhase, ...). This is the
shape an RPC or HTTP layer would return per call.

The service wires an EventLog as the engine's event sink, so every
committed change is on the audit trail, and can build and anchor an
audit commitment once the election is decided.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Optional

from ballotbox.config import ElectionPolicy
from ballotbox.crypto.anchor import (
    AnchorSettings,
    anchor_to_chain,
    commitment_digest,
    election_digest,
)
from ballotbox.crypto.merkle import MerkleTree
from ballotbox.engine.election import ElectionEngine
from ballotbox.engine.errors import ElectionError
from ballotbox.models.election import Phase
from ballotbox.persistence.event_log import EventLog

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ServiceResult:
    """Result of a service operation."""
    success: bool
    errors: list[str] = field(default_factory=list)
    data: dict[str, Any] = field(default_factory=dict)
    error_kind: Optional[str] = None


class ElectionService:
    """Election facade with an audit trail.

    Usage:
        service = ElectionService("admin")
        service.register_voter("admin", "alice")
        service.start_proposals_registration("admin")
        result = service.register_proposal("alice", "Plant trees")
        ...
        result = service.tally_votes("admin")
        commitment = service.audit_commitment()
    """

    def __init__(
        self,
        administrator_id: str,
        policy: Optional[ElectionPolicy] = None,
        event_log: Optional[EventLog] = None,
    ) -> None:
        self._event_log = event_log if event_log is not None else EventLog()
        self._engine = ElectionEngine.owned_by(
            administrator_id, event_sink=self._event_log, policy=policy,
        )

    @property
    def engine(self) -> ElectionEngine:
        return self._engine

    @property
    def event_log(self) -> EventLog:
        return self._event_log

    # ------------------------------------------------------------------
    # Phase transitions
    # ------------------------------------------------------------------

    def start_proposals_registration(self, caller: str) -> ServiceResult:
        return self._call(
            "start_proposals_registration",
            lambda: self._engine.start_proposals_registration(caller),
        )

    def end_proposals_registration(self, caller: str) -> ServiceResult:
        return self._call(
            "end_proposals_registration",
            lambda: self._engine.end_proposals_registration(caller),
        )

    def start_voting_session(self, caller: str) -> ServiceResult:
        return self._call(
            "start_voting_session",
            lambda: self._engine.start_voting_session(caller),
        )

    def end_voting_session(self, caller: str) -> ServiceResult:
        return self._call(
            "end_voting_session",
            lambda: self._engine.end_voting_session(caller),
        )

    # ------------------------------------------------------------------
    # Registration and voting
    # ------------------------------------------------------------------

    def register_voter(self, caller: str, identity: str) -> ServiceResult:
        return self._call(
            "register_voter",
            lambda: self._engine.register_voter(caller, identity),
            lambda _: {"voter_id": identity},
        )

    def register_proposal(self, caller: str, description: str) -> ServiceResult:
        return self._call(
            "register_proposal",
            lambda: self._engine.register_proposal(caller, description),
            lambda proposal_id: {"proposal_id": proposal_id},
        )

    def vote_for_proposal(self, caller: str, proposal_id: int) -> ServiceResult:
        return self._call(
            "vote_for_proposal",
            lambda: self._engine.vote_for_proposal(caller, proposal_id),
            lambda _: {"voter_id": caller, "proposal_id": proposal_id},
        )

    def get_voter(self, caller: str, identity: str) -> ServiceResult:
        return self._call(
            "get_voter",
            lambda: self._engine.get_voter(caller, identity),
            lambda voter: {"voter_id": identity, **asdict(voter)},
        )

    def get_proposal(self, caller: str, proposal_id: int) -> ServiceResult:
        return self._call(
            "get_proposal",
            lambda: self._engine.get_proposal(caller, proposal_id),
            lambda proposal: {"proposal_id": proposal_id, **asdict(proposal)},
        )

    # ------------------------------------------------------------------
    # Tally, restart, winner
    # ------------------------------------------------------------------

    def tally_votes(self, caller: str) -> ServiceResult:
        return self._call(
            "tally_votes",
            lambda: self._engine.tally_votes(caller),
            lambda outcome: {
                "consensus": outcome.consensus,
                "max_votes": outcome.max_votes,
                "leading_proposal_ids": list(outcome.leading_proposal_ids),
                "winning_proposal_id": outcome.winning_proposal_id,
            },
        )

    def restart_voting_session(self, caller: str) -> ServiceResult:
        return self._call(
            "restart_voting_session",
            lambda: self._engine.restart_voting_session(caller),
            lambda survivors: {
                "round": self._engine.round,
                "proposals": [asdict(p) for p in survivors],
            },
        )

    def get_winning_proposal(self) -> ServiceResult:
        return self._call(
            "get_winning_proposal",
            self._engine.get_winning_proposal,
            lambda proposal: {
                "proposal_id": self._engine.winning_proposal_id,
                **asdict(proposal),
            },
        )

    # ------------------------------------------------------------------
    # Status and audit
    # ------------------------------------------------------------------

    def status(self) -> dict[str, Any]:
        """Summary of the election for dashboards and health checks."""
        records = self._engine.to_records()
        return {
            "phase": records["phase"],
            "round": records["round"],
            "proposals": len(records["proposals"]),
            "registered_voters": sum(1 for v in records["voters"] if v["is_registered"]),
            "votes_cast": sum(1 for v in records["voters"] if v["has_voted"]),
            "winning_proposal_id": records["winning_proposal_id"],
            "events": self._event_log.count,
            "policy": self._engine.policy.to_dict(),
        }

    def audit_commitment(self) -> dict[str, Any]:
        """Merkle root of the event log combined with the snapshot digest."""
        event_root = MerkleTree(self._event_log.event_hashes()).root
        state_digest = election_digest(self._engine.to_records())
        return {
            "event_root": event_root,
            "event_count": self._event_log.count,
            "state_digest": state_digest,
            "commitment": commitment_digest(event_root, state_digest),
        }

    def anchor_result(
        self,
        settings: AnchorSettings,
        anchor: Callable[[str, AnchorSettings], Any] = anchor_to_chain,
    ) -> ServiceResult:
        """Anchor the audit commitment once a winner has been tallied."""
        phase = self._engine.phase
        if phase != Phase.VOTES_TALLIED:
            return ServiceResult(
                success=False,
                errors=[
                    f"Expected phase {Phase.VOTES_TALLIED.value}, "
                    f"current phase is {phase.value}"
                ],
                error_kind="WrongPhase",
            )
        commitment = self.audit_commitment()
        record = anchor(commitment["commitment"], settings)
        return ServiceResult(
            success=True,
            data={**commitment, "anchor": asdict(record)},
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _call(
        self,
        operation: str,
        action: Callable[[], Any],
        describe: Optional[Callable[[Any], dict[str, Any]]] = None,
    ) -> ServiceResult:
        try:
            value = action()
        except ElectionError as e:
            logger.warning("%s rejected (%s): %s", operation, e.kind, e)
            return ServiceResult(success=False, errors=[str(e)], error_kind=e.kind)

        data: dict[str, Any] = {"phase": self._engine.phase.value}
        if describe is not None:
            data.update(describe(value))
        return ServiceResult(success=True, data=data)
