"""Election engine — workflow state machine, tally, and restart."""

from ballotbox.engine.election import ElectionEngine
from ballotbox.engine.errors import (
    AlreadyVoted,
    ElectionError,
    EmptyDescription,
    InvalidProposal,
    NoConsensus,
    NoProposals,
    Unauthorized,
    WrongPhase,
)
from ballotbox.engine.workflow import PhaseOperation, WorkflowStateMachine

__all__ = [
    "ElectionEngine",
    "AlreadyVoted",
    "ElectionError",
    "EmptyDescription",
    "InvalidProposal",
    "NoConsensus",
    "NoProposals",
    "Unauthorized",
    "WrongPhase",
    "PhaseOperation",
    "WorkflowStateMachine",
]
