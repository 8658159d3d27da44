"""Domain events produced by the election engine.

Events are emitted only after the corresponding state change has been
committed. A failed operation emits nothing.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Union

from ballotbox.models.election import Phase


@dataclass(frozen=True)
class VoterRegistered:
    voter_id: str


@dataclass(frozen=True)
class WorkflowStatusChange:
    previous_phase: Phase
    new_phase: Phase


@dataclass(frozen=True)
class ProposalRegistered:
    proposal_id: int


@dataclass(frozen=True)
class Voted:
    voter_id: str
    proposal_id: int


DomainEvent = Union[VoterRegistered, WorkflowStatusChange, ProposalRegistered, Voted]


class EventSink(Protocol):
    """Observer that receives every committed domain event."""

    def emit(self, event: DomainEvent) -> None:
        ...
