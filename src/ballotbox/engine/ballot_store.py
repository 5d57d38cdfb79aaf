"""Ballot store — voter registry, proposals, votes, tally and reset.

Every operation follows the same order:
1. Capability check (owner, or registered voter).
2. Workflow status check, delegated to the WorkflowController.
3. Operation-specific preconditions.
4. Mutation, then a notification.

Steps 1-3 never touch state, so a rejected call leaves the election
exactly as it was. Operations are serialized by the caller; a plain
read-check-write is enough to keep one vote per voter.

The registry is a dict paired with Election.voter_keys, an ordered list
of every registered address. Reset walks that list to clear the
registry, so no stale voter survives into the next session.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from ballotbox.engine.notifier import Notifier
from ballotbox.engine.tally import select_winner
from ballotbox.engine.workflow import WorkflowController
from ballotbox.errors import (
    AlreadyRegistered,
    AlreadyVoted,
    EmptyCollection,
    NotTalliedYet,
    Unauthorized,
    UnknownProposal,
)
from ballotbox.models.election import (
    NO_PROPOSAL,
    Election,
    ElectionEvent,
    EventKind,
    Proposal,
    Voter,
    WorkflowStatus,
)


class BallotStore:
    """Registration, proposal, voting and tally operations on an Election.

    The store is stateless between calls: all state lives in the Election
    passed to each method.
    """

    def __init__(
        self,
        workflow: Optional[WorkflowController] = None,
        notifier: Optional[Notifier] = None,
    ) -> None:
        if workflow is None:
            workflow = WorkflowController(notifier)
        self._workflow = workflow
        self._notifier = notifier or workflow.notifier

    @property
    def workflow(self) -> WorkflowController:
        return self._workflow

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register_voter(
        self,
        election: Election,
        caller: str,
        address: str,
        now: Optional[datetime] = None,
    ) -> Voter:
        """Whitelist an address. Owner only, during RegisteringVoters."""
        self._workflow.require_owner(election, caller)
        self._workflow.require(election, WorkflowStatus.REGISTERING_VOTERS)

        key = address.strip()
        if not key:
            raise ValueError("Cannot register voter with blank address")
        if election.is_registered(key):
            raise AlreadyRegistered(
                "Voter already registered", context={"address": key},
            )

        voter = Voter(
            is_registered=True,
            registered_utc=now or datetime.now(timezone.utc),
        )
        election.voters[key] = voter
        election.voter_keys.append(key)

        self._publish(EventKind.VOTER_REGISTERED, caller, {"voter": key})
        return voter

    def get_voter(self, election: Election, address: str) -> Voter:
        """Return the record for an address (blank record if unknown)."""
        return election.voter(address)

    # ------------------------------------------------------------------
    # Proposals
    # ------------------------------------------------------------------

    def submit_proposal(
        self,
        election: Election,
        caller: str,
        description: str,
    ) -> Proposal:
        """Append a proposal. Registered voters only.

        Descriptions are taken as given: empty text and duplicates are
        accepted.
        """
        self._require_voter(election, caller)
        self._workflow.require(election, WorkflowStatus.PROPOSALS_REGISTRATION_STARTED)

        proposal = Proposal(
            id=len(election.proposals) + 1,
            description=description,
            submitted_by=caller.strip(),
        )
        election.proposals.append(proposal)

        self._publish(
            EventKind.PROPOSAL_REGISTERED, caller, {"proposal_id": proposal.id},
        )
        return proposal

    def list_proposals(self, election: Election) -> list[Proposal]:
        """Return all proposals in id order. Raises EmptyCollection if none."""
        if not election.proposals:
            raise EmptyCollection("No proposals registered")
        return list(election.proposals)

    def get_proposal(self, election: Election, proposal_id: int) -> Proposal:
        proposal = election.proposal(proposal_id)
        if proposal is None:
            raise UnknownProposal(
                "Proposal not found",
                context={"proposal_id": proposal_id, "count": len(election.proposals)},
            )
        return proposal

    # ------------------------------------------------------------------
    # Voting
    # ------------------------------------------------------------------

    def cast_vote(self, election: Election, caller: str, proposal_id: int) -> Voter:
        """Record a single vote for a proposal. Registered voters only."""
        voter = self._require_voter(election, caller)
        self._workflow.require(election, WorkflowStatus.VOTING_SESSION_STARTED)

        if voter.has_voted:
            raise AlreadyVoted(
                "Voter has already voted",
                context={"voter": caller, "voted_proposal_id": voter.voted_proposal_id},
            )
        proposal = self.get_proposal(election, proposal_id)

        voter.has_voted = True
        voter.voted_proposal_id = proposal.id
        proposal.vote_count += 1

        self._publish(
            EventKind.VOTED, caller,
            {"voter": caller.strip(), "proposal_id": proposal.id},
        )
        return voter

    # ------------------------------------------------------------------
    # Tally
    # ------------------------------------------------------------------

    def tally(self, election: Election, caller: str) -> Optional[Proposal]:
        """Select the winner and close the election. Owner only.

        Returns the winning proposal, or None when the session closed
        without proposals.
        """
        self._workflow.require_owner(election, caller)
        self._workflow.require(election, WorkflowStatus.VOTING_SESSION_ENDED)

        winner = select_winner(election.proposals)
        election.winning_proposal_id = winner.id if winner is not None else NO_PROPOSAL
        self._workflow.advance(
            election, caller,
            WorkflowStatus.VOTING_SESSION_ENDED,
            WorkflowStatus.VOTES_TALLIED,
        )
        return winner

    def get_winner(self, election: Election) -> Proposal:
        """Return the proposal selected by tally()."""
        if election.status != WorkflowStatus.VOTES_TALLIED:
            raise NotTalliedYet(
                "Votes have not been tallied",
                context={"status": election.status.value},
            )
        winner = election.proposal(election.winning_proposal_id)
        if winner is None:
            raise EmptyCollection("Session closed without proposals")
        return winner

    # ------------------------------------------------------------------
    # Session reset
    # ------------------------------------------------------------------

    def reset_session(self, election: Election, caller: str) -> dict[str, int]:
        """Clear voters, proposals and winner, then reopen registration.

        Owner only, during VotesTallied. Returns how many voters and
        proposals were cleared.
        """
        self._workflow.require_owner(election, caller)
        self._workflow.require(election, WorkflowStatus.VOTES_TALLIED)

        cleared = {
            "voters": len(election.voter_keys),
            "proposals": len(election.proposals),
        }
        for key in election.voter_keys:
            election.voters.pop(key, None)
        election.voter_keys.clear()
        election.proposals.clear()
        election.winning_proposal_id = NO_PROPOSAL

        election.session += 1
        self._workflow.restart(election, caller)

        self._publish(
            EventKind.SESSION_RESET, caller,
            {"session": election.session, **cleared},
        )
        return cleared

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    @staticmethod
    def _require_voter(election: Election, caller: str) -> Voter:
        voter = election.voters.get(caller.strip())
        if voter is None or not voter.is_registered:
            raise Unauthorized(
                "Caller is not a registered voter", context={"caller": caller},
            )
        return voter

    def _publish(self, kind: EventKind, caller: str, payload: dict) -> None:
        self._notifier.publish(ElectionEvent(
            kind=kind, actor_id=caller.strip(), payload=payload,
        ))
