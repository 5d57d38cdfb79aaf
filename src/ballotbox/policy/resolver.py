"""Policy resolver — loads election policy from the config directory.

Policy lives in ``config/election_policy.json``:

    {
      "version": "1.0",
      "read_policy": "registered",
      "event_log_enabled": true
    }

read_policy decides who may call the read operations:
- "registered": the owner and registered voters only.
- "public": anyone.
"""

from __future__ import annotations

import enum
import json
from pathlib import Path
from typing import Any


POLICY_FILENAME = "election_policy.json"


class ReadPolicy(str, enum.Enum):
    REGISTERED = "registered"
    PUBLIC = "public"


class PolicyResolver:
    """Typed access to the election policy document."""

    def __init__(self, policy: dict[str, Any]) -> None:
        errors = self.validate(policy)
        if errors:
            raise ValueError("Invalid election policy: " + "; ".join(errors))
        self._policy = dict(policy)

    @classmethod
    def from_config_dir(cls, config_dir: Path) -> PolicyResolver:
        path = Path(config_dir) / POLICY_FILENAME
        with path.open("r", encoding="utf-8") as handle:
            return cls(json.load(handle))

    @classmethod
    def default(cls) -> PolicyResolver:
        return cls({"read_policy": ReadPolicy.REGISTERED.value, "event_log_enabled": True})

    @staticmethod
    def validate(policy: dict[str, Any]) -> list[str]:
        errors: list[str] = []
        read_policy = policy.get("read_policy", ReadPolicy.REGISTERED.value)
        if read_policy not in {p.value for p in ReadPolicy}:
            errors.append(f"read_policy must be one of registered/public, got {read_policy!r}")
        if not isinstance(policy.get("event_log_enabled", True), bool):
            errors.append("event_log_enabled must be a boolean")
        return errors

    def read_policy(self) -> ReadPolicy:
        return ReadPolicy(self._policy.get("read_policy", ReadPolicy.REGISTERED.value))

    def event_log_enabled(self) -> bool:
        return self._policy.get("event_log_enabled", True)

    def as_dict(self) -> dict[str, Any]:
        return {
            "version": self._policy.get("version"),
            "read_policy": self.read_policy().value,
            "event_log_enabled": self.event_log_enabled(),
        }
