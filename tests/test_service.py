"""Tests for ElectionService — proves the facade orchestrates a full election."""

import pytest
from pathlib import Path

from ballotbox.models.election import EventKind, WorkflowStatus
from ballotbox.persistence.event_log import EventLog
from ballotbox.policy.resolver import PolicyResolver
from ballotbox.service import ElectionService


CONFIG_DIR = Path(__file__).resolve().parents[1] / "config"
OWNER = "admin"


@pytest.fixture
def resolver() -> PolicyResolver:
    return PolicyResolver.from_config_dir(CONFIG_DIR)


@pytest.fixture
def event_log() -> EventLog:
    return EventLog()


@pytest.fixture
def service(resolver: PolicyResolver, event_log: EventLog) -> ElectionService:
    return ElectionService(OWNER, resolver, event_log=event_log)


def _to_voting(service: ElectionService, voters: list[str], descriptions: list[str]) -> None:
    """Register voters, collect proposals, and open the voting session."""
    for v in voters:
        assert service.register_voter(OWNER, v).success
    assert service.start_proposals_registration(OWNER).success
    for i, text in enumerate(descriptions):
        assert service.add_proposal(voters[i % len(voters)], text).success
    assert service.end_proposals_registration(OWNER).success
    assert service.start_voting_session(OWNER).success


class TestFullElection:
    def test_two_voters_tie_goes_to_first_proposal(self, service: ElectionService) -> None:
        _to_voting(service, ["0xA1", "0xB2"], ["P1", "P2"])
        assert service.set_vote("0xA1", 1).success
        assert service.set_vote("0xB2", 2).success
        assert service.end_voting_session(OWNER).success

        result = service.tally_votes(OWNER)
        assert result.success
        assert result.data["winning_proposal_id"] == 1
        assert result.data["status"] == "VotesTallied"

        winner = service.get_winner("0xA1")
        assert winner.success
        assert winner.data["description"] == "P1"

    def test_majority_wins(self, service: ElectionService) -> None:
        _to_voting(service, ["0xA1", "0xB2", "0xC3"], ["P1", "P2"])
        service.set_vote("0xA1", 2)
        service.set_vote("0xB2", 2)
        service.set_vote("0xC3", 1)
        service.end_voting_session(OWNER)
        service.tally_votes(OWNER)

        results = service.results("0xC3")
        assert results.success
        assert results.data["counts"] == {"1": 1, "2": 2}
        assert results.data["winning_proposal_id"] == 2
        assert results.data["ballots_cast"] == 3

    def test_reset_starts_a_new_session(self, service: ElectionService) -> None:
        _to_voting(service, ["0xA1"], ["P1"])
        service.set_vote("0xA1", 1)
        service.end_voting_session(OWNER)
        service.tally_votes(OWNER)

        result = service.reset_session(OWNER)
        assert result.success
        assert result.data["session"] == 2
        assert result.data["cleared_voters"] == 1
        assert service.election.status == WorkflowStatus.REGISTERING_VOTERS
        assert service.get_voter(OWNER, "0xA1").data["is_registered"] is False


class TestRejections:
    def test_unregistered_proposal_rejected(self, service: ElectionService) -> None:
        service.register_voter(OWNER, "0xA1")
        service.start_proposals_registration(OWNER)
        result = service.add_proposal("0xNOBODY", "Sneaky")
        assert not result.success
        assert result.error_code == "unauthorized"
        assert service.election.proposals == []

    @pytest.mark.parametrize("bad_id", [0, 3])
    def test_unknown_proposal_vote(self, service: ElectionService, bad_id: int) -> None:
        _to_voting(service, ["0xA1", "0xB2"], ["P1", "P2"])
        result = service.set_vote("0xA1", bad_id)
        assert not result.success
        assert result.error_code == "unknown_proposal"

    @pytest.mark.parametrize("bad_id", ["1", True, 1.5])
    def test_non_integer_proposal_id(self, service: ElectionService, bad_id: object) -> None:
        _to_voting(service, ["0xA1", "0xB2"], ["P1", "P2"])
        result = service.set_vote("0xA1", bad_id)
        assert not result.success
        assert result.error_code == "unknown_proposal"
        assert service.get_voter("0xA1", "0xA1").data["has_voted"] is False
        assert all(p.vote_count == 0 for p in service.election.proposals)

        lookup = service.get_proposal("0xA1", bad_id)
        assert lookup.error_code == "unknown_proposal"

    def test_double_vote(self, service: ElectionService) -> None:
        _to_voting(service, ["0xA1"], ["P1", "P2"])
        assert service.set_vote("0xA1", 1).success
        result = service.set_vote("0xA1", 2)
        assert not result.success
        assert result.error_code == "already_voted"

    def test_non_owner_transition(self, service: ElectionService) -> None:
        service.register_voter(OWNER, "0xA1")
        result = service.start_proposals_registration("0xA1")
        assert not result.success
        assert result.error_code == "unauthorized"

    def test_out_of_order_transition(self, service: ElectionService) -> None:
        result = service.start_voting_session(OWNER)
        assert not result.success
        assert result.error_code == "invalid_phase_transition"

    def test_winner_before_tally(self, service: ElectionService) -> None:
        service.register_voter(OWNER, "0xA1")
        result = service.get_winner("0xA1")
        assert not result.success
        assert result.error_code == "not_tallied_yet"

    def test_results_before_tally(self, service: ElectionService) -> None:
        result = service.results(OWNER)
        assert result.error_code == "not_tallied_yet"

    def test_list_proposals_empty(self, service: ElectionService) -> None:
        result = service.list_proposals(OWNER)
        assert not result.success
        assert result.error_code == "empty_collection"

    def test_blank_address(self, service: ElectionService) -> None:
        result = service.register_voter(OWNER, "")
        assert not result.success
        assert result.error_code == "invalid_argument"

    def test_rejections_leave_no_events(
        self, service: ElectionService, event_log: EventLog,
    ) -> None:
        service.start_voting_session(OWNER)
        service.register_voter("0xA1", "0xB2")
        assert event_log.count == 0


class TestReadPolicy:
    def test_registered_policy_blocks_outsiders(self, service: ElectionService) -> None:
        _to_voting(service, ["0xA1"], ["P1"])
        assert service.list_proposals("0xA1").success
        assert service.list_proposals(OWNER).success
        result = service.list_proposals("0xNOBODY")
        assert not result.success
        assert result.error_code == "unauthorized"

    def test_public_policy_allows_anyone(self) -> None:
        resolver = PolicyResolver({"read_policy": "public", "event_log_enabled": False})
        service = ElectionService(OWNER, resolver)
        _to_voting(service, ["0xA1"], ["P1"])
        result = service.get_proposal("0xNOBODY", 1)
        assert result.success
        assert result.data["description"] == "P1"

    def test_get_voter_record(self, service: ElectionService) -> None:
        _to_voting(service, ["0xA1", "0xB2"], ["P1"])
        service.set_vote("0xB2", 1)
        data = service.get_voter("0xA1", "0xB2").data
        assert data == {
            "address": "0xB2",
            "is_registered": True,
            "has_voted": True,
            "voted_proposal_id": 1,
        }


class TestEventRecording:
    def test_every_mutation_recorded(
        self, service: ElectionService, event_log: EventLog,
    ) -> None:
        _to_voting(service, ["0xA1", "0xB2"], ["P1"])
        service.set_vote("0xA1", 1)
        kinds = [e.event_kind for e in event_log.events()]
        assert kinds == [
            EventKind.VOTER_REGISTERED,
            EventKind.VOTER_REGISTERED,
            EventKind.WORKFLOW_STATUS_CHANGE,
            EventKind.PROPOSAL_REGISTERED,
            EventKind.WORKFLOW_STATUS_CHANGE,
            EventKind.WORKFLOW_STATUS_CHANGE,
            EventKind.VOTED,
        ]
        assert event_log.last_event.payload == {"voter": "0xA1", "proposal_id": 1}
        assert event_log.last_event.event_id == "EVT-00000007"

    def test_event_log_disabled_by_policy(self, event_log: EventLog) -> None:
        resolver = PolicyResolver({"read_policy": "registered", "event_log_enabled": False})
        service = ElectionService(OWNER, resolver, event_log=event_log)
        service.register_voter(OWNER, "0xA1")
        assert event_log.count == 0
        assert service.status()["events_recorded"] == 0

    def test_log_failure_does_not_undo_mutation(
        self, resolver: PolicyResolver, tmp_path: Path,
    ) -> None:
        log = EventLog(storage_path=tmp_path / "missing-dir" / "events.jsonl")
        service = ElectionService(OWNER, resolver, event_log=log)
        result = service.register_voter(OWNER, "0xA1")
        assert result.success
        assert service.election.is_registered("0xA1")
        assert service.status()["event_log_degraded"] is True

    def test_status_summary(self, service: ElectionService) -> None:
        _to_voting(service, ["0xA1", "0xB2"], ["P1"])
        service.set_vote("0xA1", 1)
        status = service.status()
        assert status["status"] == "VotingSessionStarted"
        assert status["voters"] == {"registered": 2, "voted": 1}
        assert status["proposals"] == 1
        assert status["read_policy"] == "registered"
        assert status["events_recorded"] == 7
