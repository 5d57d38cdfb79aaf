"""Core data models for Ballotbox."""

from ballotbox.models.election import (
    NO_PROPOSAL,
    Election,
    ElectionEvent,
    EventKind,
    Proposal,
    Voter,
    WorkflowStatus,
)

__all__ = [
    "NO_PROPOSAL",
    "Election",
    "ElectionEvent",
    "EventKind",
    "Proposal",
    "Voter",
    "WorkflowStatus",
]
