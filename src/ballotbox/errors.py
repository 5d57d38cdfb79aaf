"""Election error taxonomy.

Every error is a rejected precondition: it is raised before any state is
touched, so a failed operation never leaves a partial change behind.
There is no fatal class and no retry policy. Callers decide whether to
try again.

Each class carries a stable ``code`` that the service layer reports as
``ServiceResult.error_code``.
"""

from __future__ import annotations

from typing import Any, Optional


class ElectionError(Exception):
    """Base class for all rejected election operations."""

    code: str = "election_error"

    def __init__(self, message: str, context: Optional[dict[str, Any]] = None) -> None:
        self.context = context or {}
        super().__init__(message)

    def __str__(self) -> str:
        base_msg = super().__str__()
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{base_msg} ({context_str})"
        return base_msg


class Unauthorized(ElectionError):
    """Caller lacks the owner role or is not a registered voter."""
    code = "unauthorized"


class WrongPhase(ElectionError):
    """Operation attempted outside its legal workflow phase."""
    code = "wrong_phase"


class InvalidPhaseTransition(WrongPhase):
    """Requested status change is not the next step of the workflow."""
    code = "invalid_phase_transition"


class AlreadyRegistered(ElectionError):
    code = "already_registered"


class AlreadyVoted(ElectionError):
    code = "already_voted"


class UnknownProposal(ElectionError):
    """Proposal id is 0 or beyond the current proposal count."""
    code = "unknown_proposal"


class EmptyCollection(ElectionError):
    """Listing or selecting from a collection that has no entries."""
    code = "empty_collection"


class NotTalliedYet(ElectionError):
    code = "not_tallied_yet"
