"""Election policy loading."""

from ballotbox.policy.resolver import PolicyResolver, ReadPolicy

__all__ = ["PolicyResolver", "ReadPolicy"]
