"""Tally and restart algorithms.

Both functions are pure: they read a proposal sequence and return a
result without touching engine state. The engine applies the result.

Tally is a single O(n) scan. A strictly greater count replaces the
leader and clears the tie flag; a count equal to the running maximum
sets it. The outcome therefore does not depend on where in the sequence
the tied proposals sit.
"""

from __future__ import annotations

from typing import Sequence

from ballotbox.engine.errors import NoProposals
from ballotbox.models.election import Proposal, TallyOutcome


def tally_proposals(proposals: Sequence[Proposal]) -> TallyOutcome:
    """Find the unique maximum-vote proposal, or report a tie.

    Raises:
        NoProposals: If the sequence is empty.
    """
    if not proposals:
        raise NoProposals("Cannot tally an election with no proposals")

    max_votes = proposals[0].vote_count
    leader = 0
    tied = False
    for proposal_id in range(1, len(proposals)):
        count = proposals[proposal_id].vote_count
        if count > max_votes:
            max_votes = count
            leader = proposal_id
            tied = False
        elif count == max_votes:
            tied = True

    if tied:
        leading = tuple(
            i for i, p in enumerate(proposals) if p.vote_count == max_votes
        )
        return TallyOutcome(
            consensus=False,
            max_votes=max_votes,
            leading_proposal_ids=leading,
        )
    return TallyOutcome(
        consensus=True,
        max_votes=max_votes,
        leading_proposal_ids=(leader,),
        winning_proposal_id=leader,
    )


def surviving_proposals(
    proposals: Sequence[Proposal],
    max_votes: int,
    reset_vote_counts: bool = True,
) -> list[Proposal]:
    """Build the proposal list for a restarted voting round.

    Keeps proposals with vote_count >= max_votes in their original order.
    The returned list holds new Proposal objects, so the caller's list is
    untouched until it swaps the result in. Ids become the new indices.
    """
    return [
        Proposal(
            description=p.description,
            vote_count=0 if reset_vote_counts else p.vote_count,
        )
        for p in proposals
        if p.vote_count >= max_votes
    ]
