"""Vote tallying — winner selection and result summaries.

Winner rule: the proposal with the strictly greatest vote count wins.
On a tie the proposal registered first wins, because the scan only
replaces the leader on a strict ``>``. With every count at zero the
first proposal is the winner.

Pure computation: nothing here mutates an election.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

from ballotbox.models.election import NO_PROPOSAL, Election, Proposal


def select_winner(proposals: Sequence[Proposal]) -> Optional[Proposal]:
    """Return the first proposal with the maximal vote count, or None if empty."""
    winner: Optional[Proposal] = None
    for proposal in proposals:
        if winner is None or proposal.vote_count > winner.vote_count:
            winner = proposal
    return winner


@dataclass(frozen=True)
class TallySummary:
    """Snapshot of an election's vote counts."""
    session: int
    status: str
    registered_voters: int
    ballots_cast: int
    counts: dict[int, int] = field(default_factory=dict)
    winning_proposal_id: int = NO_PROPOSAL

    @property
    def turnout(self) -> float:
        """Fraction of registered voters who voted (0.0 with no voters)."""
        if self.registered_voters == 0:
            return 0.0
        return self.ballots_cast / self.registered_voters

    def as_dict(self) -> dict[str, Any]:
        return {
            "session": self.session,
            "status": self.status,
            "registered_voters": self.registered_voters,
            "ballots_cast": self.ballots_cast,
            "turnout": round(self.turnout, 4),
            "counts": {str(pid): n for pid, n in self.counts.items()},
            "winning_proposal_id": self.winning_proposal_id,
        }


def summarize(election: Election) -> TallySummary:
    """Summarise vote counts. The winner is recomputed from the proposal list."""
    winner = select_winner(election.proposals)
    return TallySummary(
        session=election.session,
        status=election.status.value,
        registered_voters=election.voter_count,
        ballots_cast=election.ballots_cast,
        counts={p.id: p.vote_count for p in election.proposals},
        winning_proposal_id=winner.id if winner is not None else NO_PROPOSAL,
    )
