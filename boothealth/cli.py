"""CLI entrypoint for the boot health check."""

from __future__ import annotations

import argparse
import sys
import time
from typing import Any, Dict, Optional

from .executil import append_jsonl, error, resolve_log_path, trace
from .model import Settings
from .orchestrator import Mode, RunOutcome, run
from .report import Reporter

RESULT_CODES: Dict[str, int] = {
    "CHECK_OK": 0,
    "FIX_OK": 0,
    "REPAIR_OK": 0,
    "REPAIR_NOOP": 0,
    "FAIL_BACKUP": 2,
    "FAIL_REWRITE": 3,
    "FAIL_UNHANDLED": 9,
}

CLI_START_MONO = time.perf_counter()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="boot-health-check",
        description="Audit /etc/fstab against the mounted root and ESP; optionally repair.",
        allow_abbrev=False,
    )
    parser.add_argument("--fix", dest="selector", action="store_const", const="--fix",
                        help="refresh kernelstub/initramfs/bootloader (never edits fstab)")
    parser.add_argument("--interactive", dest="selector", action="store_const", const="--interactive",
                        help="back up and repair fstab, then refresh boot artifacts")
    parser.set_defaults(selector="")
    return parser


def select_mode(argv: Optional[list[str]] = None) -> Mode:
    """Map the single mode selector to a Mode.

    Only an exact ``--fix`` or ``--interactive`` selects a writing mode;
    prefixes, extra arguments and repeated selectors all mean check.
    """

    args = sys.argv[1:] if argv is None else list(argv)
    if args in (["-h"], ["--help"]):
        build_parser().parse_args(args)
    if len(args) > 1:
        trace("cli.unknown_arguments", argv=args)
        return Mode.CHECK
    return Mode.from_selector(args[0] if args else "")


def _emit_result(kind: str, extra: Optional[Dict[str, Any]] = None) -> int:
    code = RESULT_CODES.get(kind, RESULT_CODES["FAIL_UNHANDLED"])
    payload = {
        "ts": int(time.time()),
        "event": "RESULT",
        "result": kind,
        "rc": code,
        "duration_ms": int(max(0.0, (time.perf_counter() - CLI_START_MONO) * 1000)),
    }
    if extra:
        payload.update(extra)
    path = resolve_log_path()
    if path:
        append_jsonl(path, payload)
    return code


def _outcome_payload(outcome: RunOutcome) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "mode": outcome.mode.value,
        "failures": outcome.failures,
        **outcome.extra,
    }
    if outcome.plan is not None:
        payload["plan"] = [vars(e) for e in outcome.plan]
    if outcome.repair is not None:
        payload["backup"] = outcome.repair.backup_path
        payload["changed"] = outcome.repair.changed
    return payload


def main(argv: Optional[list[str]] = None) -> int:
    mode = select_mode(argv)
    settings = Settings.from_env()
    reporter = Reporter(color=settings.color)
    try:
        outcome = run(mode, settings, reporter)
    except Exception as exc:  # noqa: BLE001
        error("cli.unhandled", error=str(exc), type=type(exc).__name__)
        print(f"[DIAG] boot health check error: {exc}", file=sys.stderr)
        return _emit_result("FAIL_UNHANDLED", extra={"mode": mode.value, "error": str(exc)})
    return _emit_result(outcome.result, extra=_outcome_payload(outcome))


if __name__ == "__main__":
    sys.exit(main())
