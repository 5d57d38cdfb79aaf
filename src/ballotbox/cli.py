"""Ballotbox CLI — run election scripts and inspect event logs.

Usage:
    python -m ballotbox.cli status
    python -m ballotbox.cli run examples/election.json --owner admin
    python -m ballotbox.cli run examples/election.json --owner admin --record --strict
    python -m ballotbox.cli verify-log data/events.jsonl

An election script is a JSON list of actions, executed in order against
a fresh election:

    [
      {"caller": "admin", "action": "register_voter", "args": {"address": "0xA1"}},
      {"caller": "admin", "action": "start_proposals_registration"},
      {"caller": "0xA1", "action": "add_proposal", "args": {"description": "P1"}}
    ]
"""

from __future__ import annotations

import argparse
import dataclasses
import json
import sys
from pathlib import Path
from typing import Any, Optional

from ballotbox.log import configure_logging
from ballotbox.persistence.event_log import EventLog
from ballotbox.policy.resolver import PolicyResolver
from ballotbox.service import ElectionService, ServiceResult
from ballotbox.settings import Settings


# Action name -> (service method, argument names)
ACTIONS: dict[str, tuple[str, tuple[str, ...]]] = {
    "register_voter": ("register_voter", ("address",)),
    "start_proposals_registration": ("start_proposals_registration", ()),
    "end_proposals_registration": ("end_proposals_registration", ()),
    "start_voting_session": ("start_voting_session", ()),
    "end_voting_session": ("end_voting_session", ()),
    "tally_votes": ("tally_votes", ()),
    "reset_session": ("reset_session", ()),
    "add_proposal": ("add_proposal", ("description",)),
    "set_vote": ("set_vote", ("proposal_id",)),
    "list_proposals": ("list_proposals", ()),
    "get_proposal": ("get_proposal", ("proposal_id",)),
    "get_voter": ("get_voter", ("address",)),
    "get_winner": ("get_winner", ()),
    "results": ("results", ()),
}


def _make_service(
    settings: Settings,
    owner: str,
    record: bool = False,
) -> ElectionService:
    resolver = PolicyResolver.from_config_dir(settings.config_dir)
    event_log: Optional[EventLog] = None
    if record:
        settings.data_dir.mkdir(parents=True, exist_ok=True)
        event_log = EventLog(storage_path=settings.data_dir / "events.jsonl")
    return ElectionService(owner, resolver, event_log=event_log)


def run_action(service: ElectionService, step: Any) -> ServiceResult:
    """Execute one script step against the service."""
    if not isinstance(step, dict):
        return ServiceResult(
            success=False,
            errors=[f"Script step must be an object, got {type(step).__name__}"],
            error_code="invalid_step",
        )
    action = step.get("action")
    if not isinstance(action, str) or action not in ACTIONS:
        return ServiceResult(
            success=False,
            errors=[f"Unknown action: {action}"],
            error_code="unknown_action",
        )
    method_name, arg_names = ACTIONS[action]
    args = step.get("args", {})
    if not isinstance(args, dict):
        return ServiceResult(
            success=False,
            errors=[f"{action}: args must be an object"],
            error_code="invalid_step",
        )
    missing = [name for name in arg_names if name not in args]
    if missing:
        return ServiceResult(
            success=False,
            errors=[f"{action}: missing argument(s): {', '.join(missing)}"],
            error_code="invalid_argument",
        )
    method = getattr(service, method_name)
    return method(str(step.get("caller", "")), *(args[name] for name in arg_names))


def cmd_status(args: argparse.Namespace) -> int:
    settings: Settings = args.settings
    resolver = PolicyResolver.from_config_dir(settings.config_dir)
    print(json.dumps(
        {"settings": settings.summary(), "policy": resolver.as_dict()}, indent=2,
    ))
    return 0


def cmd_run(args: argparse.Namespace) -> int:
    settings: Settings = args.settings
    owner = args.owner or settings.owner
    if not owner:
        print("Failed: no owner given (use --owner or BALLOTBOX_OWNER)", file=sys.stderr)
        return 1

    try:
        with Path(args.script).open("r", encoding="utf-8") as handle:
            steps = json.load(handle)
    except (OSError, json.JSONDecodeError) as e:
        print(f"Failed: cannot read script {args.script}: {e}", file=sys.stderr)
        return 1
    if not isinstance(steps, list):
        print("Failed: script must be a JSON list of actions", file=sys.stderr)
        return 1

    service = _make_service(settings, owner, record=args.record)
    failures = 0
    for index, step in enumerate(steps, 1):
        result = run_action(service, step)
        if not result.success:
            failures += 1
        fields = step if isinstance(step, dict) else {}
        print(json.dumps({
            "step": index,
            "action": fields.get("action"),
            "caller": fields.get("caller"),
            "success": result.success,
            "data": result.data,
            "errors": result.errors,
            "error_code": result.error_code,
        }))

    print(json.dumps({"final": service.status()}, indent=2))
    if args.strict and failures:
        print(f"Failed: {failures} action(s) rejected", file=sys.stderr)
        return 1
    return 0


def cmd_verify_log(args: argparse.Namespace) -> int:
    path = Path(args.path)
    if not path.exists():
        print(f"Failed: no such log: {path}", file=sys.stderr)
        return 1
    try:
        log = EventLog(storage_path=path)
    except (ValueError, KeyError, json.JSONDecodeError) as e:
        print(f"Failed: {e}", file=sys.stderr)
        return 1
    print(json.dumps({"events": log.count, "by_kind": log.count_by_kind()}, indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ballotbox",
        description="Ballotbox — single-election voting workflow CLI",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to config directory (default: BALLOTBOX_CONFIG_DIR or config/)",
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Path to a .env file (default: search from the working directory)",
    )
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("status", help="Show settings and election policy")

    p_run = sub.add_parser("run", help="Run an election script")
    p_run.add_argument("script", help="JSON file with a list of actions")
    p_run.add_argument("--owner", help="Owner identity (default: BALLOTBOX_OWNER)")
    p_run.add_argument(
        "--record", action="store_true",
        help="Append events to <data_dir>/events.jsonl",
    )
    p_run.add_argument(
        "--strict", action="store_true",
        help="Exit with status 1 if any action is rejected",
    )

    p_verify = sub.add_parser("verify-log", help="Verify a JSONL event log")
    p_verify.add_argument("path", help="Event log path")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    settings = Settings.from_env(args.env_file)
    if args.config is not None:
        settings = dataclasses.replace(settings, config_dir=args.config)
    args.settings = settings
    configure_logging(settings.log_level, json_output=settings.json_logs)

    commands = {
        "status": cmd_status,
        "run": cmd_run,
        "verify-log": cmd_verify_log,
    }

    handler = commands.get(args.command)
    if handler is None:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1

    return handler(args)


if __name__ == "__main__":
    raise SystemExit(main())
