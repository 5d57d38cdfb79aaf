"""Election service — unified facade over the election engine.

This is the primary interface for programmatic access to an election.
It wires together:
- Workflow control (owner-driven status transitions)
- Voter registration, proposal submission and voting
- Tallying, results and session reset
- Read access policy (registered-only or public)
- Event recording (every accepted mutation is sealed into the event log)

All operations return a ServiceResult. Engine errors never escape the
facade: a rejected call comes back with success=False, the error text,
and the error code of the rejecting check. A rejected call changes
nothing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from ballotbox import __version__
from ballotbox.engine.ballot_store import BallotStore
from ballotbox.engine.notifier import Notifier
from ballotbox.engine.tally import summarize
from ballotbox.engine.workflow import WorkflowController
from ballotbox.errors import ElectionError, NotTalliedYet, Unauthorized
from ballotbox.log import get_logger
from ballotbox.models.election import (
    Election,
    ElectionEvent,
    Proposal,
    Voter,
    WorkflowStatus,
)
from ballotbox.persistence.event_log import EventLog, EventRecord
from ballotbox.policy.resolver import PolicyResolver, ReadPolicy


logger = get_logger(__name__)


@dataclass(frozen=True)
class ServiceResult:
    """Result of a service operation."""
    success: bool
    errors: list[str] = field(default_factory=list)
    data: dict[str, Any] = field(default_factory=dict)
    error_code: Optional[str] = None


def _proposal_data(proposal: Proposal) -> dict[str, Any]:
    return {
        "proposal_id": proposal.id,
        "description": proposal.description,
        "vote_count": proposal.vote_count,
    }


def _voter_data(address: str, voter: Voter) -> dict[str, Any]:
    return {
        "address": address,
        "is_registered": voter.is_registered,
        "has_voted": voter.has_voted,
        "voted_proposal_id": voter.voted_proposal_id,
    }


class ElectionService:
    """Election facade for one owner and one election.

    Usage:
        service = ElectionService("admin", PolicyResolver.from_config_dir(config_dir))

        service.register_voter("admin", "0xA1")
        service.start_proposals_registration("admin")
        service.add_proposal("0xA1", "Extend the library hours")
        service.end_proposals_registration("admin")
        service.start_voting_session("admin")
        service.set_vote("0xA1", 1)
        service.end_voting_session("admin")
        service.tally_votes("admin")
        service.get_winner("0xA1")

    Event recording (optional):
        service = ElectionService("admin", resolver, event_log=EventLog(path))
    """

    def __init__(
        self,
        owner: str,
        resolver: Optional[PolicyResolver] = None,
        event_log: Optional[EventLog] = None,
    ) -> None:
        self._resolver = resolver or PolicyResolver.default()
        self._election = Election(owner=owner)
        self._notifier = Notifier()
        self._workflow = WorkflowController(self._notifier)
        self._store = BallotStore(self._workflow, self._notifier)

        self._event_log = event_log if self._resolver.event_log_enabled() else None
        # Continue numbering from a reloaded log to avoid ID collisions
        self._event_counter = event_log.count if event_log is not None else 0
        # Set when an accepted mutation could not be written to the event
        # log. Election state stays correct; the log is missing records.
        self._event_log_degraded: bool = False

        self._log = logger.bind(owner=self._election.owner)
        self._notifier.subscribe(self._record_event)

    @property
    def election(self) -> Election:
        return self._election

    @property
    def notifier(self) -> Notifier:
        return self._notifier

    # ------------------------------------------------------------------
    # Owner actions
    # ------------------------------------------------------------------

    def register_voter(self, caller: str, address: str) -> ServiceResult:
        """Whitelist a voter address."""
        return self._execute(
            "register_voter", caller,
            lambda: _voter_data(
                address.strip(),
                self._store.register_voter(self._election, caller, address),
            ),
        )

    def start_proposals_registration(self, caller: str) -> ServiceResult:
        return self._transition(
            "start_proposals_registration", caller,
            self._workflow.start_proposals_registration,
        )

    def end_proposals_registration(self, caller: str) -> ServiceResult:
        return self._transition(
            "end_proposals_registration", caller,
            self._workflow.end_proposals_registration,
        )

    def start_voting_session(self, caller: str) -> ServiceResult:
        return self._transition(
            "start_voting_session", caller,
            self._workflow.start_voting_session,
        )

    def end_voting_session(self, caller: str) -> ServiceResult:
        return self._transition(
            "end_voting_session", caller,
            self._workflow.end_voting_session,
        )

    def tally_votes(self, caller: str) -> ServiceResult:
        """Select the winning proposal and move to VotesTallied."""
        def _tally() -> dict[str, Any]:
            winner = self._store.tally(self._election, caller)
            return {
                "status": self._election.status.value,
                "winning_proposal_id": self._election.winning_proposal_id,
                "winner": _proposal_data(winner) if winner is not None else None,
            }
        return self._execute("tally_votes", caller, _tally)

    def reset_session(self, caller: str) -> ServiceResult:
        """Clear the election and reopen voter registration."""
        def _reset() -> dict[str, Any]:
            cleared = self._store.reset_session(self._election, caller)
            return {
                "status": self._election.status.value,
                "session": self._election.session,
                "cleared_voters": cleared["voters"],
                "cleared_proposals": cleared["proposals"],
            }
        return self._execute("reset_session", caller, _reset)

    # ------------------------------------------------------------------
    # Participant actions
    # ------------------------------------------------------------------

    def add_proposal(self, caller: str, description: str) -> ServiceResult:
        """Submit a proposal during ProposalsRegistrationStarted."""
        return self._execute(
            "add_proposal", caller,
            lambda: _proposal_data(
                self._store.submit_proposal(self._election, caller, description),
            ),
        )

    def set_vote(self, caller: str, proposal_id: int) -> ServiceResult:
        """Cast the caller's single vote during VotingSessionStarted."""
        return self._execute(
            "set_vote", caller,
            lambda: _voter_data(
                caller.strip(),
                self._store.cast_vote(self._election, caller, proposal_id),
            ),
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_proposals(self, caller: str) -> ServiceResult:
        def _list() -> dict[str, Any]:
            self._require_reader(caller)
            proposals = self._store.list_proposals(self._election)
            return {"proposals": [_proposal_data(p) for p in proposals]}
        return self._execute("list_proposals", caller, _list, mutating=False)

    def get_proposal(self, caller: str, proposal_id: int) -> ServiceResult:
        def _get() -> dict[str, Any]:
            self._require_reader(caller)
            return _proposal_data(self._store.get_proposal(self._election, proposal_id))
        return self._execute("get_proposal", caller, _get, mutating=False)

    def get_voter(self, caller: str, address: str) -> ServiceResult:
        def _get() -> dict[str, Any]:
            self._require_reader(caller)
            key = address.strip()
            return _voter_data(key, self._store.get_voter(self._election, key))
        return self._execute("get_voter", caller, _get, mutating=False)

    def get_winner(self, caller: str) -> ServiceResult:
        def _get() -> dict[str, Any]:
            self._require_reader(caller)
            return _proposal_data(self._store.get_winner(self._election))
        return self._execute("get_winner", caller, _get, mutating=False)

    def results(self, caller: str) -> ServiceResult:
        """Per-proposal counts, turnout and winner, once votes are tallied."""
        def _results() -> dict[str, Any]:
            self._require_reader(caller)
            if self._election.status != WorkflowStatus.VOTES_TALLIED:
                raise NotTalliedYet(
                    "Results are published after tallying",
                    context={"status": self._election.status.value},
                )
            return summarize(self._election).as_dict()
        return self._execute("results", caller, _results, mutating=False)

    def status(self) -> dict[str, Any]:
        """Return an election status summary."""
        return {
            "version": __version__,
            "owner": self._election.owner,
            "status": self._election.status.value,
            "session": self._election.session,
            "voters": {
                "registered": self._election.voter_count,
                "voted": self._election.ballots_cast,
            },
            "proposals": len(self._election.proposals),
            "read_policy": self._resolver.read_policy().value,
            "events_recorded": self._event_log.count if self._event_log is not None else 0,
            "event_log_degraded": self._event_log_degraded,
        }

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _transition(
        self,
        action: str,
        caller: str,
        step: Callable[[Election, str], WorkflowStatus],
    ) -> ServiceResult:
        def _step() -> dict[str, Any]:
            previous = step(self._election, caller)
            return {"previous": previous.value, "status": self._election.status.value}
        return self._execute(action, caller, _step)

    def _execute(
        self,
        action: str,
        caller: str,
        operation: Callable[[], dict[str, Any]],
        mutating: bool = True,
    ) -> ServiceResult:
        """Run an engine operation and convert its outcome to a ServiceResult."""
        log = self._log.bind(action=action, caller=caller, session=self._election.session)
        try:
            data = operation()
        except ElectionError as e:
            log.warning("operation rejected", error_code=e.code, reason=str(e))
            return ServiceResult(success=False, errors=[str(e)], error_code=e.code)
        except ValueError as e:
            log.warning("operation rejected", error_code="invalid_argument", reason=str(e))
            return ServiceResult(
                success=False, errors=[str(e)], error_code="invalid_argument",
            )
        if mutating:
            log.info("operation accepted", status=self._election.status.value)
        else:
            log.debug("read served")
        return ServiceResult(success=True, data=data)

    def _require_reader(self, caller: str) -> None:
        if self._resolver.read_policy() == ReadPolicy.PUBLIC:
            return
        key = caller.strip()
        if key == self._election.owner or self._election.is_registered(key):
            return
        raise Unauthorized(
            "Reads are restricted to the owner and registered voters",
            context={"caller": caller},
        )

    def _next_event_id(self) -> str:
        """Generate a monotonically increasing unique event ID."""
        self._event_counter += 1
        return f"EVT-{self._event_counter:08d}"

    def _record_event(self, event: ElectionEvent) -> None:
        """Seal an engine notification into the event log.

        Runs after the mutation has been applied, so a log failure cannot
        undo it. The failure is flagged in status() instead.
        """
        self._log.debug("election event", kind=event.kind.value, **event.payload)
        if self._event_log is None:
            return
        try:
            record = EventRecord.create(
                event_id=self._next_event_id(),
                event_kind=event.kind,
                actor_id=event.actor_id,
                payload=dict(event.payload),
            )
            self._event_log.append(record)
        except (ValueError, OSError) as e:
            self._event_log_degraded = True
            self._log.error("event log failure", kind=event.kind.value, error=str(e))
