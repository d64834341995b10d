"""Turn mismatches and hardening findings into field-level fstab edits."""

from __future__ import annotations

from typing import Iterable

from .executil import trace
from .fstab import option_key
from .model import (
    DEFAULT_UMASK_TOKEN,
    DeviceSpec,
    Edit,
    HardeningFinding,
    Mismatch,
    RepairPlan,
)


def merge_option(options: Iterable[str], required: str) -> list[str]:
    """Add ``required`` to ``options`` keeping order and key uniqueness.

    Existing tokens stay verbatim.  A token with the same key but another
    value is replaced in place; otherwise ``required`` is appended.
    """

    key = option_key(required)
    merged: list[str] = []
    placed = False
    for opt in options:
        candidate = opt.strip()
        if not candidate:
            continue
        if option_key(candidate) == key and "=" in required:
            if not placed:
                merged.append(required)
                placed = True
            continue
        if candidate == required:
            placed = True
        merged.append(candidate)
    if not placed:
        merged.append(required)
    return merged


def _spec_edit(mismatch: Mismatch | None) -> Edit | None:
    if mismatch is None:
        return None
    if not mismatch.actual:
        trace("planner.spec_skipped", mountpoint=mismatch.mountpoint, kind=mismatch.kind.value)
        return None
    spec = DeviceSpec(mismatch.kind, mismatch.actual)
    return Edit(mismatch.mountpoint, "spec", spec.token)


def plan_repairs(
        root_mismatch: Mismatch | None,
        esp_mismatch: Mismatch | None,
        findings: Iterable[HardeningFinding],
        umask_token: str = DEFAULT_UMASK_TOKEN,
) -> RepairPlan:
    """Compute the minimal edits for one run.

    Identifier edits reuse the namespace the row already declares, so a
    PARTUUID row is rewritten with the real PARTUUID.  No edit is planned
    when the real value is missing.
    """

    plan = RepairPlan()
    for mismatch in (root_mismatch, esp_mismatch):
        edit = _spec_edit(mismatch)
        if edit is not None:
            plan.edits.append(edit)

    for finding in findings:
        if finding.missing_umask:
            new_opts = merge_option(finding.entry.options, umask_token)
            plan.edits.append(Edit(finding.mountpoint, "options", ",".join(new_opts)))
        if finding.wrong_pass:
            plan.edits.append(Edit(finding.mountpoint, "pass", "0"))

    trace("planner.plan", edits=[vars(e) for e in plan.edits])
    return plan
