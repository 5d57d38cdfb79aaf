"""Tests for the event log — proves append-only storage and tamper detection."""

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from ballotbox.models.election import EventKind
from ballotbox.persistence.event_log import EventLog, EventRecord


def _event(n: int, kind: EventKind = EventKind.VOTER_REGISTERED) -> EventRecord:
    return EventRecord.create(
        event_id=f"EVT-{n:08d}",
        event_kind=kind,
        actor_id="admin",
        payload={"voter": f"0x{n:02X}"},
        timestamp_utc=datetime(2026, 3, 1, tzinfo=timezone.utc),
    )


class TestEventRecord:
    def test_hash_is_deterministic(self) -> None:
        assert _event(1).event_hash == _event(1).event_hash
        assert _event(1).event_hash.startswith("sha256:")

    def test_hash_depends_on_payload(self) -> None:
        assert _event(1).event_hash != _event(2).event_hash

    def test_timestamp_format(self) -> None:
        assert _event(1).timestamp_utc == "2026-03-01T00:00:00Z"

    def test_from_dict_restores_record(self) -> None:
        original = _event(1, EventKind.VOTED)
        restored = EventRecord.from_dict(original.to_dict())
        assert restored == original
        assert restored.event_kind is EventKind.VOTED
        assert restored.verify()

    def test_verify_detects_edited_content(self) -> None:
        data = _event(1).to_dict()
        data["actor_id"] = "mallory"
        record = EventRecord.from_dict(data)
        assert not record.verify()
        assert record.computed_hash() != record.event_hash

    def test_from_dict_rejects_unknown_kind(self) -> None:
        data = _event(1).to_dict()
        data["event_kind"] = "ballot_stuffed"
        with pytest.raises(ValueError):
            EventRecord.from_dict(data)


class TestEventLog:
    def test_append_and_filter(self) -> None:
        log = EventLog()
        log.append(_event(1))
        log.append(_event(2, EventKind.VOTED))
        assert log.count == 2
        assert [e.event_id for e in log.events(EventKind.VOTED)] == ["EVT-00000002"]
        assert log.count_by_kind() == {"voted": 1, "voter_registered": 1}
        assert len(log.events_for_actor("admin")) == 2

    def test_duplicate_id_rejected(self) -> None:
        log = EventLog()
        log.append(_event(1))
        with pytest.raises(ValueError):
            log.append(_event(1))
        assert log.count == 1

    def test_empty_log(self) -> None:
        log = EventLog()
        assert log.last_event is None
        assert log.count_by_kind() == {}


class TestFilePersistence:
    def test_round_trip(self, tmp_path: Path) -> None:
        path = tmp_path / "events.jsonl"
        log = EventLog(storage_path=path)
        log.append(_event(1))
        log.append(_event(2, EventKind.SESSION_RESET))

        reloaded = EventLog(storage_path=path)
        assert reloaded.count == 2
        assert reloaded.last_event == log.last_event

    def test_tampered_record_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "events.jsonl"
        EventLog(storage_path=path).append(_event(1))

        record = json.loads(path.read_text(encoding="utf-8"))
        record["payload"]["voter"] = "0xEVIL"
        path.write_text(json.dumps(record) + "\n", encoding="utf-8")

        with pytest.raises(ValueError, match="Integrity check failed"):
            EventLog(storage_path=path)

    def test_duplicate_line_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "events.jsonl"
        EventLog(storage_path=path).append(_event(1))
        line = path.read_text(encoding="utf-8")
        path.write_text(line + line, encoding="utf-8")

        with pytest.raises(ValueError, match="Duplicate event ID"):
            EventLog(storage_path=path)

    def test_failed_write_not_kept_in_memory(self, tmp_path: Path) -> None:
        log = EventLog(storage_path=tmp_path / "no-such-dir" / "events.jsonl")
        with pytest.raises(OSError):
            log.append(_event(1))
        assert log.count == 0
