"""Election data models — voters, proposals, workflow status and events.

One Election instance holds the whole state of a single voting cycle:
- The owner (administrator) identity.
- The current workflow status.
- The voter registry, paired with an ordered list of its keys.
- The proposal list (ids are 1-based; 0 means "no choice").
- The winning proposal id recorded at tally time.

Workflow:
    REGISTERING_VOTERS → PROPOSALS_REGISTRATION_STARTED
    → PROPOSALS_REGISTRATION_ENDED → VOTING_SESSION_STARTED
    → VOTING_SESSION_ENDED → VOTES_TALLIED
    VOTES_TALLIED → REGISTERING_VOTERS (session reset only)

Engines never keep election state of their own. Every call receives the
Election it operates on, so independent elections can live side by side.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional


NO_PROPOSAL = 0


class WorkflowStatus(str, enum.Enum):
    """Phases of the election workflow, in order."""
    REGISTERING_VOTERS = "RegisteringVoters"
    PROPOSALS_REGISTRATION_STARTED = "ProposalsRegistrationStarted"
    PROPOSALS_REGISTRATION_ENDED = "ProposalsRegistrationEnded"
    VOTING_SESSION_STARTED = "VotingSessionStarted"
    VOTING_SESSION_ENDED = "VotingSessionEnded"
    VOTES_TALLIED = "VotesTallied"


class EventKind(str, enum.Enum):
    """Classification of election notifications."""
    VOTER_REGISTERED = "voter_registered"
    WORKFLOW_STATUS_CHANGE = "workflow_status_change"
    PROPOSAL_REGISTERED = "proposal_registered"
    VOTED = "voted"
    SESSION_RESET = "session_reset"


@dataclass
class Voter:
    """A whitelisted participant.

    has_voted flips to True exactly once per session. voted_proposal_id
    stays at NO_PROPOSAL until then.
    """
    is_registered: bool = False
    has_voted: bool = False
    voted_proposal_id: int = NO_PROPOSAL
    registered_utc: Optional[datetime] = None


@dataclass
class Proposal:
    """A proposal put to the vote. Descriptions are not validated."""
    id: int
    description: str
    vote_count: int = 0
    submitted_by: Optional[str] = None


@dataclass(frozen=True)
class ElectionEvent:
    """A structured change record published by the engines."""
    kind: EventKind
    actor_id: str
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass
class Election:
    """State of a single election.

    Invariants:
    - voter_keys lists every key of voters, in registration order.
    - proposals[i].id == i + 1
    - sum(p.vote_count) == number of voters with has_voted
    - winning_proposal_id is NO_PROPOSAL unless status is VOTES_TALLIED
    """
    owner: str
    status: WorkflowStatus = WorkflowStatus.REGISTERING_VOTERS
    voters: dict[str, Voter] = field(default_factory=dict)
    voter_keys: list[str] = field(default_factory=list)
    proposals: list[Proposal] = field(default_factory=list)
    winning_proposal_id: int = NO_PROPOSAL
    session: int = 1

    def __post_init__(self) -> None:
        owner = self.owner.strip()
        if not owner:
            raise ValueError("Election owner cannot be blank")
        self.owner = owner

    def voter(self, address: str) -> Voter:
        """Return the voter record for an address.

        Unknown addresses get a blank, unregistered record that is not
        stored in the registry.
        """
        return self.voters.get(address.strip(), Voter())

    def is_registered(self, address: str) -> bool:
        return self.voter(address).is_registered

    def proposal(self, proposal_id: int) -> Optional[Proposal]:
        """Look up a proposal by id.

        Returns None for 0, out-of-range ids, and anything that is not a
        plain int (bools included).
        """
        if not isinstance(proposal_id, int) or isinstance(proposal_id, bool):
            return None
        if proposal_id < 1 or proposal_id > len(self.proposals):
            return None
        return self.proposals[proposal_id - 1]

    @property
    def voter_count(self) -> int:
        return len(self.voter_keys)

    @property
    def ballots_cast(self) -> int:
        return sum(1 for key in self.voter_keys if self.voters[key].has_voted)
