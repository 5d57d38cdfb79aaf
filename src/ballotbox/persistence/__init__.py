"""Event log persistence."""

from ballotbox.persistence.event_log import EventLog, EventRecord

__all__ = ["EventLog", "EventRecord"]
