"""Election error kinds.

All errors are raised before any mutation and are non-retryable: they
report a caller or state mistake, never a transient failure.
"""

from __future__ import annotations

from typing import Optional

from ballotbox.models.election import Phase


class ElectionError(Exception):
    """Base class for every rejected election operation."""

    kind = "ElectionError"


class Unauthorized(ElectionError):
    """Caller lacks the administrator or registered-voter role."""

    kind = "Unauthorized"


class WrongPhase(ElectionError):
    """Operation invoked outside its required phase."""

    kind = "WrongPhase"

    def __init__(self, expected: Phase, actual: Phase, message: Optional[str] = None) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            message
            or f"Expected phase {expected.value}, current phase is {actual.value}"
        )


class AlreadyVoted(ElectionError):
    kind = "AlreadyVoted"


class InvalidProposal(ElectionError):
    kind = "InvalidProposal"


class EmptyDescription(ElectionError):
    kind = "EmptyDescription"


class NoProposals(ElectionError):
    kind = "NoProposals"


class NoConsensus(ElectionError):
    """Winner queried after a tally that ended in a tie."""

    kind = "NoConsensus"
