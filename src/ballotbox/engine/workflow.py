"""Workflow state machine — enforces the election's phase transitions.

Election lifecycle:
    REGISTERING_VOTERS → PROPOSALS_REGISTRATION_STARTED
    → PROPOSALS_REGISTRATION_ENDED → VOTING_SESSION_STARTED
    → VOTING_SESSION_ENDED → VOTES_TALLIED
    VOTING_SESSION_ENDED → NO_CONSENSUS_FOUND (tie at tally)
    NO_CONSENSUS_FOUND → VOTING_SESSION_STARTED (restart)

Fail-closed: any transition not listed in the table is rejected. There
are no implicit transitions and VOTES_TALLIED is terminal.
"""

from __future__ import annotations

import enum

from ballotbox.engine.errors import WrongPhase
from ballotbox.models.election import Phase


# Valid transitions: {from_phase: {allowed_to_phases}}
_TRANSITIONS: dict[Phase, set[Phase]] = {
    Phase.REGISTERING_VOTERS: {Phase.PROPOSALS_REGISTRATION_STARTED},
    Phase.PROPOSALS_REGISTRATION_STARTED: {Phase.PROPOSALS_REGISTRATION_ENDED},
    Phase.PROPOSALS_REGISTRATION_ENDED: {Phase.VOTING_SESSION_STARTED},
    Phase.VOTING_SESSION_STARTED: {Phase.VOTING_SESSION_ENDED},
    Phase.VOTING_SESSION_ENDED: {
        Phase.VOTES_TALLIED,
        Phase.NO_CONSENSUS_FOUND,
    },
    Phase.NO_CONSENSUS_FOUND: {Phase.VOTING_SESSION_STARTED},
    # Terminal
    Phase.VOTES_TALLIED: set(),
}


class PhaseOperation(str, enum.Enum):
    """Administrator operations that advance the workflow by one step."""
    START_PROPOSALS_REGISTRATION = "start_proposals_registration"
    END_PROPOSALS_REGISTRATION = "end_proposals_registration"
    START_VOTING_SESSION = "start_voting_session"
    END_VOTING_SESSION = "end_voting_session"


# {operation: (required_phase, target_phase)}
PHASE_OPERATIONS: dict[PhaseOperation, tuple[Phase, Phase]] = {
    PhaseOperation.START_PROPOSALS_REGISTRATION: (
        Phase.REGISTERING_VOTERS,
        Phase.PROPOSALS_REGISTRATION_STARTED,
    ),
    PhaseOperation.END_PROPOSALS_REGISTRATION: (
        Phase.PROPOSALS_REGISTRATION_STARTED,
        Phase.PROPOSALS_REGISTRATION_ENDED,
    ),
    PhaseOperation.START_VOTING_SESSION: (
        Phase.PROPOSALS_REGISTRATION_ENDED,
        Phase.VOTING_SESSION_STARTED,
    ),
    PhaseOperation.END_VOTING_SESSION: (
        Phase.VOTING_SESSION_STARTED,
        Phase.VOTING_SESSION_ENDED,
    ),
}


class WorkflowStateMachine:
    """Validates phase transitions against the transition table.

    Pure computation: the engine owns the current phase and applies the
    returned target. Event emission is the engine's job.
    """

    @staticmethod
    def validate_transition(current: Phase, target: Phase) -> list[str]:
        """Check if a transition is valid. Returns errors (empty = OK)."""
        allowed = _TRANSITIONS.get(current, set())
        if target not in allowed:
            allowed_str = ", ".join(p.value for p in sorted(allowed, key=lambda x: x.value))
            return [
                f"Invalid workflow transition: {current.value} → {target.value}. "
                f"Allowed from {current.value}: [{allowed_str}]"
            ]
        return []

    @staticmethod
    def require_phase(current: Phase, required: Phase) -> None:
        """Raise WrongPhase unless the workflow is exactly in ``required``."""
        if current != required:
            raise WrongPhase(expected=required, actual=current)

    @staticmethod
    def target_for(operation: PhaseOperation, current: Phase) -> Phase:
        """Resolve the target of a phase-advancing operation.

        Raises WrongPhase if the operation's source phase is not current.
        """
        required, target = PHASE_OPERATIONS[operation]
        WorkflowStateMachine.require_phase(current, required)
        return target

    @staticmethod
    def is_terminal(phase: Phase) -> bool:
        return not _TRANSITIONS.get(phase)

    @staticmethod
    def valid_transitions(phase: Phase) -> set[Phase]:
        """Return the set of valid target phases from the given phase."""
        return set(_TRANSITIONS.get(phase, set()))
