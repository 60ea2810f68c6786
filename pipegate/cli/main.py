from __future__ import annotations

import argparse
import json
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, List, Tuple

from pipegate.bootstrap import build_gate
from pipegate.contract_store import ContractStore
from pipegate.core.context import CallContext
from pipegate.core.errors import (
    AuthorizationFailure,
    CancellationFailure,
    GateError,
    ResolutionFailure,
    StateViolation,
    ValidationError,
)
from pipegate.core.repo_state import RepoStatePolicy
from pipegate.core.types import Permission, Principal, RepoState, Session
from pipegate.settings import GateSettings, load_settings
from pipegate.trace.replay import Replay

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_VALIDATION = 2
EXIT_RESOLUTION = 3
EXIT_STATE = 4
EXIT_AUTHORIZATION = 5
EXIT_CANCELLED = 6

_EXIT_CODES: List[Tuple[type, int]] = [
    (ValidationError, EXIT_VALIDATION),
    (ResolutionFailure, EXIT_RESOLUTION),
    (StateViolation, EXIT_STATE),
    (AuthorizationFailure, EXIT_AUTHORIZATION),
    (CancellationFailure, EXIT_CANCELLED),
]


def _exit_code_for(e: Exception) -> int:
    for cls, code in _EXIT_CODES:
        if isinstance(e, cls):
            return code
    return EXIT_ERROR


def _format_cli_error(e: Exception) -> str:
    """
    Print-friendly error formatting for CLI commands.
    - Always includes code/message (via __str__) when it's a GateError
    - Includes structured `data` payload when present
    """
    if isinstance(e, GateError) and isinstance(e.data, dict) and e.data:
        return str(e) + "\n" + json.dumps(e.data, ensure_ascii=False, indent=2, default=str)
    return str(e)


def _settings_from_args(args: argparse.Namespace) -> GateSettings:
    settings = load_settings(Path(args.config) if args.config else None)
    overrides: Dict[str, Any] = {}
    if getattr(args, "repos", None):
        overrides["repos_path"] = Path(args.repos)
    if getattr(args, "grants", None):
        overrides["grants_path"] = Path(args.grants)
    if getattr(args, "trace", None):
        overrides["trace_path"] = Path(args.trace)
    if getattr(args, "timeout", None) is not None:
        overrides["timeout_seconds"] = float(args.timeout)
    if not overrides:
        return settings
    return replace(settings, **overrides)


def cmd_check_access(args: argparse.Namespace) -> int:
    settings = _settings_from_args(args)
    gate = build_gate(settings)

    session = Session(principal=Principal(id=0, uid=args.principal, admin=bool(args.admin)))
    if settings.timeout_seconds is not None:
        ctx = CallContext.with_timeout(settings.timeout_seconds, run_id=args.run_id, trace_path=settings.trace_path)
    else:
        ctx = CallContext(run_id=args.run_id, trace_path=settings.trace_path)

    repo = gate.check_access(
        ctx,
        session,
        args.repo,
        args.pipeline,
        args.permission,
        args.allowed_state,
    )
    print(json.dumps(repo.to_dict(), ensure_ascii=False, indent=2))
    return EXIT_OK


def cmd_check_config(args: argparse.Namespace) -> int:
    store = ContractStore().load()
    schema_errors = store.check_schemas()
    if schema_errors:
        print("Schema validation failed:")
        for name, err in schema_errors:
            print("- {}: {}".format(name, err))
        return EXIT_ERROR

    settings = _settings_from_args(args)
    ok = True
    for schema_name, path in (("repos.schema.json", settings.repos_path), ("grants.schema.json", settings.grants_path)):
        try:
            store.load_document(schema_name, path)
        except ValidationError as e:
            ok = False
            print(_format_cli_error(e))
    if not ok:
        return EXIT_VALIDATION

    # Cross-file checks (duplicate ids/paths) happen while building the gate.
    build_gate(settings, store)
    print("Config OK")
    return EXIT_OK


def cmd_list_permissions(args: argparse.Namespace) -> int:
    policy = RepoStatePolicy()
    matrix = {s.value: sorted(p.value for p in policy.permitted(s)) for s in RepoState}
    if args.json:
        print(json.dumps(matrix, ensure_ascii=False, indent=2))
    else:
        for state, perms in matrix.items():
            print("{}: {}".format(state, ", ".join(perms)))
    return EXIT_OK


def cmd_show_trace(args: argparse.Namespace) -> int:
    replay = Replay(Path(args.trace))
    filters = {"run_id": args.run_id or None, "event_type": args.event_type or None}
    if args.tail is not None and args.tail >= 0:
        events = replay.tail(args.tail, **filters)
    else:
        events = replay.iter_events(**filters)

    for e in events:
        if args.pretty:
            print(json.dumps(e, ensure_ascii=False, indent=2))
        else:
            print(json.dumps(e, ensure_ascii=False))
    return EXIT_OK


def _add_config_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--config", help="Settings YAML (default: $PIPEGATE_CONFIG or XDG config)")
    p.add_argument("--repos", help="Repository catalogue YAML (overrides settings)")
    p.add_argument("--grants", help="Grant table YAML (overrides settings)")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="pipegate", description="Scoped pipeline access gate")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_access = sub.add_parser("check-access", help="Resolve a repo and check pipeline access for a principal")
    _add_config_args(p_access)
    p_access.add_argument("--principal", required=True, help="Principal uid of the caller")
    p_access.add_argument("--admin", action="store_true", help="Treat the principal as an admin")
    p_access.add_argument("--repo", required=True, help="Repository ref (numeric id or path)")
    p_access.add_argument("--pipeline", required=True, help="Pipeline identifier inside the repository")
    p_access.add_argument(
        "--permission",
        required=True,
        choices=[p.value for p in Permission],
        help="Requested permission",
    )
    p_access.add_argument(
        "--allowed-state",
        action="append",
        default=[],
        choices=[s.value for s in RepoState],
        help="Acceptable repository state (repeatable; default: unrestricted)",
    )
    p_access.add_argument("--timeout", type=float, help="Deadline in seconds")
    p_access.add_argument("--trace", help="Trace output path (jsonl)")
    p_access.add_argument("--run-id", default="run_cli", help="Run ID for trace correlation")
    p_access.set_defaults(func=cmd_check_access)

    p_cfg = sub.add_parser("check-config", help="Validate settings, repos and grants files")
    _add_config_args(p_cfg)
    p_cfg.set_defaults(func=cmd_check_config)

    p_perms = sub.add_parser("list-permissions", help="Show permissions allowed per repository state")
    p_perms.add_argument("--json", action="store_true", help="Output JSON")
    p_perms.set_defaults(func=cmd_list_permissions)

    p_show_trace = sub.add_parser("show-trace", help="Show trace events from a JSONL file")
    p_show_trace.add_argument("--trace", required=True, help="Trace path (jsonl)")
    p_show_trace.add_argument("--event-type", help="Filter by event_type")
    p_show_trace.add_argument("--run-id", help="Filter by run_id")
    p_show_trace.add_argument("--tail", type=int, help="Show only last N events")
    p_show_trace.add_argument("--pretty", action="store_true", help="Pretty-print each event as JSON")
    p_show_trace.set_defaults(func=cmd_show_trace)

    ns = parser.parse_args(argv)
    try:
        return int(ns.func(ns))
    except Exception as e:  # noqa: BLE001
        print(_format_cli_error(e))
        return _exit_code_for(e)


if __name__ == "__main__":
    raise SystemExit(main())
