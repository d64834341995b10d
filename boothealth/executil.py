from __future__ import annotations

"""Subprocess wrapper and JSONL trace log."""

import datetime as _dt
import json
import os
import subprocess
import time
from typing import Sequence

from .paths import logs_dir


LOG_DIRS: list[str] | None = None
LOG_PATH: str | None = None
LOG_NAME = "boot_health.jsonl"


def _log_dirs() -> list[str]:
    if LOG_DIRS:
        return list(LOG_DIRS)
    return [
        logs_dir(),
        "/tmp/boot-health-logs",
    ]


def _ensure_logger() -> str | None:
    global LOG_PATH
    if LOG_PATH:
        return LOG_PATH
    for d in _log_dirs():
        d_expanded = os.path.expanduser(d)
        try:
            os.makedirs(d_expanded, exist_ok=True)
            candidate = os.path.join(d_expanded, LOG_NAME)
            with open(candidate, "a", encoding="utf-8"):
                pass
            LOG_PATH = candidate
            return LOG_PATH
        except OSError:
            continue
    LOG_PATH = None
    return None


def resolve_log_path() -> str | None:
    """Return the active log path, creating directories when possible."""

    return _ensure_logger()


class Result:
    def __init__(self, rc: int, out: str, err: str, duration: float):
        self.rc, self.out, self.err, self.duration = rc, out, err, duration

    @property
    def ok(self) -> bool:
        return self.rc == 0


LEVELS = {"TRACE": 10, "INFO": 20, "WARN": 30, "ERROR": 40, "NONE": 100}
LOG_LEVEL = os.environ.get("BOOTHEALTH_LOG_LEVEL", "INFO").upper()


def _timestamp() -> str:
    return _dt.datetime.now(_dt.timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def _write_jsonl(obj: dict):
    path = _ensure_logger()
    try:
        if path:
            with open(path, "a", encoding="utf-8") as f:
                f.write(json.dumps(obj, default=str) + "\n")
    except OSError:
        pass


def log(level: str, event: str, **fields):
    lvl = LEVELS.get(level.upper(), 100)
    cur = LEVELS.get(LOG_LEVEL, 100)
    if lvl < cur:
        return
    rec = {"ts": _timestamp(), "level": level.upper(), "event": event}
    rec.update(fields)
    _write_jsonl(rec)


def trace(event: str, **fields):
    log("TRACE", event, **fields)


def info(event: str, **fields):
    log("INFO", event, **fields)


def warn(event: str, **fields):
    log("WARN", event, **fields)


def error(event: str, **fields):
    log("ERROR", event, **fields)


def elevate(cmd: Sequence[str], privileged: bool) -> list[str]:
    """Prefix ``cmd`` with ``sudo`` unless already privileged."""

    cmd_list = list(cmd)
    if privileged or not cmd_list or cmd_list[0] == "sudo":
        return cmd_list
    return ["sudo"] + cmd_list


def run(
    cmd: Sequence[str],
    check: bool = True,
    timeout: float | None = None,
    env: dict | None = None,
) -> Result:
    """Run ``cmd`` to completion and capture its output.

    An executable that cannot be launched is reported as ``rc=127`` (missing)
    or ``rc=126`` (not executable) instead of raising so that read-only
    probes degrade to an empty answer.  With ``check=True`` those and any
    non-zero exit raise :class:`subprocess.CalledProcessError`.
    """

    trace("exec.start", cmd=list(cmd))
    started = time.time()
    try:
        proc = subprocess.run(
            list(cmd),
            capture_output=True,
            text=True,
            timeout=timeout,
            env=env,
        )
    except OSError as exc:
        dur = time.time() - started
        rc = 127 if isinstance(exc, FileNotFoundError) else 126
        warn("exec.launch_failed", cmd=list(cmd), rc=rc, error=str(exc))
        if check:
            raise subprocess.CalledProcessError(rc, list(cmd), "", str(exc)) from exc
        return Result(rc, "", str(exc), dur)
    dur = time.time() - started
    trace("exec.done", cmd=list(cmd), rc=proc.returncode, dur=dur,
          out=proc.stdout, err=proc.stderr)
    if check and proc.returncode != 0:
        raise subprocess.CalledProcessError(proc.returncode, list(cmd), proc.stdout, proc.stderr)
    return Result(proc.returncode, proc.stdout, proc.stderr, dur)


def append_jsonl(path: str, obj: dict):
    try:
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "a", encoding="utf-8", errors="surrogateescape") as f:
            f.write(json.dumps(obj, ensure_ascii=False, default=str) + "\n")
    except OSError:
        pass
