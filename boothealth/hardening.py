from __future__ import annotations

from typing import Iterable

from .model import DEFAULT_UMASK_TOKEN, ConfigEntry, HardeningFinding

HARDENED_FSTYPES = {"vfat"}


def audit_entry(entry: ConfigEntry | None, umask_token: str = DEFAULT_UMASK_TOKEN) -> HardeningFinding | None:
    """Flag a FAT row that lacks ``umask_token`` or asks fsck to check it."""

    if entry is None or entry.fstype not in HARDENED_FSTYPES:
        return None
    finding = HardeningFinding(
        mountpoint=entry.mountpoint,
        entry=entry,
        missing_umask=umask_token not in entry.options,
        wrong_pass=entry.passno != 0,
    )
    return finding if finding else None


def audit(entries: Iterable[ConfigEntry | None], umask_token: str = DEFAULT_UMASK_TOKEN) -> list[HardeningFinding]:
    findings = []
    for entry in entries:
        finding = audit_entry(entry, umask_token)
        if finding is not None:
            findings.append(finding)
    return findings
