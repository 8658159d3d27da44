"""Core data models for ballotbox."""

from ballotbox.models.election import Phase, Proposal, TallyOutcome, Voter
from ballotbox.models.events import (
    DomainEvent,
    EventSink,
    ProposalRegistered,
    Voted,
    VoterRegistered,
    WorkflowStatusChange,
)

__all__ = [
    "Phase",
    "Proposal",
    "TallyOutcome",
    "Voter",
    "DomainEvent",
    "EventSink",
    "ProposalRegistered",
    "Voted",
    "VoterRegistered",
    "WorkflowStatusChange",
]
