"""Deployment settings read from the environment.

A ``.env`` file in the working directory (or the path given to
``Settings.from_env``) is loaded first; variables already set in the
environment take precedence.

    BALLOTBOX_CONFIG_DIR   policy directory (default: <repo>/config)
    BALLOTBOX_DATA_DIR     event log directory (default: <repo>/data)
    BALLOTBOX_LOG_LEVEL    DEBUG / INFO / WARNING / ERROR (default: INFO)
    BALLOTBOX_LOG_FORMAT   console / json (default: console)
    BALLOTBOX_OWNER        default owner identity for the CLI
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv


ROOT = Path(__file__).resolve().parents[2]
DEFAULT_CONFIG = ROOT / "config"
DEFAULT_DATA = ROOT / "data"

_LOG_FORMATS = ("console", "json")


@dataclass(frozen=True)
class Settings:
    config_dir: Path = DEFAULT_CONFIG
    data_dir: Path = DEFAULT_DATA
    log_level: str = "INFO"
    log_format: str = "console"
    owner: Optional[str] = None

    def __post_init__(self) -> None:
        if self.log_format not in _LOG_FORMATS:
            raise ValueError(
                f"BALLOTBOX_LOG_FORMAT must be one of {', '.join(_LOG_FORMATS)}, "
                f"got {self.log_format!r}"
            )

    @classmethod
    def from_env(cls, dotenv_path: Optional[Path] = None) -> Settings:
        load_dotenv(dotenv_path, override=False)
        return cls(
            config_dir=Path(os.getenv("BALLOTBOX_CONFIG_DIR", str(DEFAULT_CONFIG))),
            data_dir=Path(os.getenv("BALLOTBOX_DATA_DIR", str(DEFAULT_DATA))),
            log_level=os.getenv("BALLOTBOX_LOG_LEVEL", "INFO").upper(),
            log_format=os.getenv("BALLOTBOX_LOG_FORMAT", "console").lower(),
            owner=os.getenv("BALLOTBOX_OWNER") or None,
        )

    @property
    def json_logs(self) -> bool:
        return self.log_format == "json"

    def summary(self) -> dict[str, Any]:
        return {
            "config_dir": str(self.config_dir),
            "data_dir": str(self.data_dir),
            "log_level": self.log_level,
            "log_format": self.log_format,
            "owner": self.owner,
        }
