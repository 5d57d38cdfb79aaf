"""Workflow controller — enforces the one-way election phase chain.

Workflow:
    RegisteringVoters → ProposalsRegistrationStarted
    → ProposalsRegistrationEnded → VotingSessionStarted
    → VotingSessionEnded → VotesTallied

Rules:
- Only the owner may move the workflow.
- Each step names the status it expects to leave. A mismatch is rejected.
- No skipping, no going back. VotesTallied is terminal until a session
  reset returns the election to RegisteringVoters.

Fail-closed: anything not in the transition table is rejected.
"""

from __future__ import annotations

from typing import Optional

from ballotbox.engine.notifier import Notifier
from ballotbox.errors import InvalidPhaseTransition, Unauthorized, WrongPhase
from ballotbox.models.election import (
    Election,
    ElectionEvent,
    EventKind,
    WorkflowStatus,
)


# Forward transitions: {from_status: to_status}
_TRANSITIONS: dict[WorkflowStatus, WorkflowStatus] = {
    WorkflowStatus.REGISTERING_VOTERS: WorkflowStatus.PROPOSALS_REGISTRATION_STARTED,
    WorkflowStatus.PROPOSALS_REGISTRATION_STARTED: WorkflowStatus.PROPOSALS_REGISTRATION_ENDED,
    WorkflowStatus.PROPOSALS_REGISTRATION_ENDED: WorkflowStatus.VOTING_SESSION_STARTED,
    WorkflowStatus.VOTING_SESSION_STARTED: WorkflowStatus.VOTING_SESSION_ENDED,
    WorkflowStatus.VOTING_SESSION_ENDED: WorkflowStatus.VOTES_TALLIED,
}


class WorkflowController:
    """Owns the legal status transitions of an election.

    Every state-mutating operation asks the controller first, through
    require() and require_owner(). The controller itself only mutates
    Election.status.
    """

    def __init__(self, notifier: Optional[Notifier] = None) -> None:
        self._notifier = notifier or Notifier()

    @property
    def notifier(self) -> Notifier:
        return self._notifier

    @staticmethod
    def require(election: Election, *allowed: WorkflowStatus) -> None:
        """Raise WrongPhase unless the election is in one of the allowed statuses."""
        if election.status not in allowed:
            allowed_str = ", ".join(s.value for s in allowed)
            raise WrongPhase(
                f"Operation not allowed during {election.status.value}",
                context={"allowed": allowed_str},
            )

    @staticmethod
    def require_owner(election: Election, caller: str) -> None:
        if caller.strip() != election.owner:
            raise Unauthorized(
                "Only the election owner can do this",
                context={"caller": caller},
            )

    @staticmethod
    def next_status(status: WorkflowStatus) -> Optional[WorkflowStatus]:
        """Return the status that follows, or None for VotesTallied."""
        return _TRANSITIONS.get(status)

    @staticmethod
    def is_terminal(status: WorkflowStatus) -> bool:
        return status not in _TRANSITIONS

    def advance(
        self,
        election: Election,
        caller: str,
        expected: WorkflowStatus,
        target: WorkflowStatus,
    ) -> WorkflowStatus:
        """Move the election from ``expected`` to ``target``.

        Returns the previous status. Raises Unauthorized for non-owners
        and InvalidPhaseTransition when the election is not in
        ``expected`` or ``target`` is not the step that follows it.
        """
        self.require_owner(election, caller)

        if election.status != expected:
            raise InvalidPhaseTransition(
                f"Expected {expected.value}, election is in {election.status.value}",
                context={"target": target.value},
            )
        if _TRANSITIONS.get(expected) != target:
            raise InvalidPhaseTransition(
                f"Invalid workflow transition: {expected.value} → {target.value}"
            )

        previous = election.status
        election.status = target
        self._publish_change(election, caller, previous, target)
        return previous

    def start_proposals_registration(self, election: Election, caller: str) -> WorkflowStatus:
        return self.advance(
            election, caller,
            WorkflowStatus.REGISTERING_VOTERS,
            WorkflowStatus.PROPOSALS_REGISTRATION_STARTED,
        )

    def end_proposals_registration(self, election: Election, caller: str) -> WorkflowStatus:
        return self.advance(
            election, caller,
            WorkflowStatus.PROPOSALS_REGISTRATION_STARTED,
            WorkflowStatus.PROPOSALS_REGISTRATION_ENDED,
        )

    def start_voting_session(self, election: Election, caller: str) -> WorkflowStatus:
        return self.advance(
            election, caller,
            WorkflowStatus.PROPOSALS_REGISTRATION_ENDED,
            WorkflowStatus.VOTING_SESSION_STARTED,
        )

    def end_voting_session(self, election: Election, caller: str) -> WorkflowStatus:
        return self.advance(
            election, caller,
            WorkflowStatus.VOTING_SESSION_STARTED,
            WorkflowStatus.VOTING_SESSION_ENDED,
        )

    def restart(self, election: Election, caller: str) -> WorkflowStatus:
        """Return a tallied election to RegisteringVoters.

        Only reachable from VotesTallied. The ballot store calls this as
        the last step of a session reset, after clearing its collections.
        """
        self.require_owner(election, caller)
        if election.status != WorkflowStatus.VOTES_TALLIED:
            raise InvalidPhaseTransition(
                f"Cannot restart from {election.status.value}",
                context={"required": WorkflowStatus.VOTES_TALLIED.value},
            )
        previous = election.status
        election.status = WorkflowStatus.REGISTERING_VOTERS
        self._publish_change(election, caller, previous, election.status)
        return previous

    def _publish_change(
        self,
        election: Election,
        caller: str,
        previous: WorkflowStatus,
        current: WorkflowStatus,
    ) -> None:
        self._notifier.publish(ElectionEvent(
            kind=EventKind.WORKFLOW_STATUS_CHANGE,
            actor_id=caller,
            payload={
                "previous": previous.value,
                "current": current.value,
                "session": election.session,
            },
        ))
