"""Back up and atomically rewrite the fstab according to a RepairPlan."""

from __future__ import annotations

import datetime as _dt
import os
import shutil
import tempfile
from dataclasses import dataclass, field

from .errors import BackupError, RewriteError
from .executil import info, trace, warn
from .fstab import FIELD_INDEX, first_row_index, read_lines, rewrite_fields
from .model import Edit, RepairPlan


@dataclass
class RepairResult:
    backup_path: str
    edits: list[Edit] = field(default_factory=list)
    changed: bool = False


def backup_name(table_path: str, now: _dt.datetime | None = None) -> str:
    """``/etc/fstab`` -> ``/etc/fstab.backup-2025-01-31T10-04-59+01-00``."""

    stamp = (now or _dt.datetime.now().astimezone()).isoformat(timespec="seconds")
    return f"{table_path}.backup-{stamp.replace(':', '-')}"


def create_backup(table_path: str, now: _dt.datetime | None = None) -> str:
    backup = backup_name(table_path, now)
    if os.path.lexists(backup):
        raise BackupError(
            f"refusing to overwrite existing backup {backup}",
            state={"table": table_path, "backup": backup},
        )
    try:
        shutil.copy2(table_path, backup)
    except OSError as exc:
        raise BackupError(
            f"backup of {table_path} failed: {exc}",
            state={"table": table_path, "backup": backup, "errno": exc.errno},
        ) from exc
    info("repair.backup", table=table_path, backup=backup)
    return backup


def render(lines: list[str], plan: RepairPlan) -> list[str]:
    """Return ``lines`` with the plan's fields replaced.

    Only the first row per targeted mountpoint is touched; every other line
    is returned as the same string object.
    """

    out = list(lines)
    for mountpoint in plan.mountpoints():
        idx = first_row_index(out, mountpoint)
        if idx is None:
            raise RewriteError(
                f"no fstab row for {mountpoint} at rewrite time",
                state={"mountpoint": mountpoint},
            )
        replacements = {FIELD_INDEX[e.field]: e.new_value for e in plan.for_mountpoint(mountpoint)}
        try:
            out[idx] = rewrite_fields(out[idx], replacements)
        except IndexError as exc:
            raise RewriteError(str(exc), state={"mountpoint": mountpoint}) from exc
        trace("repair.row", mountpoint=mountpoint, before=lines[idx].rstrip("\n"), after=out[idx].rstrip("\n"))
    return out


def replace_atomically(table_path: str, content: str) -> None:
    directory = os.path.dirname(os.path.abspath(table_path))
    try:
        fd, tmp_path = tempfile.mkstemp(prefix=".fstab.", dir=directory)
    except OSError as exc:
        raise RewriteError(
            f"cannot create temporary file next to {table_path}: {exc}",
            state={"table": table_path},
        ) from exc
    try:
        with os.fdopen(fd, "w", encoding="utf-8", errors="surrogateescape", newline="") as fh:
            fh.write(content)
            fh.flush()
            os.fsync(fh.fileno())
        shutil.copymode(table_path, tmp_path)
        os.replace(tmp_path, table_path)
    except OSError as exc:
        try:
            os.unlink(tmp_path)
        except FileNotFoundError:
            pass
        raise RewriteError(
            f"rewrite of {table_path} failed: {exc}",
            state={"table": table_path, "tmp": tmp_path},
        ) from exc
    _fsync_directory(directory)


def _fsync_directory(directory: str) -> None:
    # the rename is only durable once the directory entry is on disk
    try:
        dir_fd = os.open(directory, os.O_RDONLY)
    except OSError as exc:
        warn("repair.dir_fsync_failed", directory=directory, error=str(exc))
        return
    try:
        os.fsync(dir_fd)
    except OSError as exc:
        warn("repair.dir_fsync_failed", directory=directory, error=str(exc))
    finally:
        os.close(dir_fd)


def apply_plan(plan: RepairPlan, table_path: str, now: _dt.datetime | None = None) -> RepairResult:
    """Back up ``table_path`` and swap in the edited table.

    The backup must succeed before anything else happens.  The new content
    is rendered from the snapshot read here, written to a temporary file in
    the same directory and renamed over the live table.
    """

    if not plan:
        raise ValueError("apply_plan requires a non-empty plan")
    try:
        snapshot = read_lines(table_path)
    except OSError as exc:
        raise BackupError(
            f"cannot read {table_path}: {exc}",
            state={"table": table_path},
        ) from exc
    backup = create_backup(table_path, now)
    new_lines = render(snapshot, plan)
    result = RepairResult(backup_path=backup, edits=list(plan.edits))
    if new_lines == snapshot:
        trace("repair.noop", table=table_path)
        return result
    replace_atomically(table_path, "".join(new_lines))
    result.changed = True
    info("repair.applied", table=table_path, backup=backup, edits=[vars(e) for e in plan.edits])
    return result
