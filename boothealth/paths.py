from __future__ import annotations

import os
from pathlib import Path

_DEFAULT_LOG_DIR = "/var/log/boot-health"
_DEFAULT_FSTAB = "/etc/fstab"
_DEFAULT_CRYPTTAB = "/etc/crypttab"

ROOT_MOUNT = "/"
ESP_MOUNT = "/boot/efi"
RECOVERY_MOUNT = "/recovery"
INITRD_GLOB = "/boot/initrd.img*"


def _expand(path: str) -> str:
    candidate = Path(path).expanduser()
    try:
        return str(candidate.resolve())
    except (FileNotFoundError, RuntimeError):
        return str(candidate)


def logs_dir() -> str:
    """Return the directory for the JSONL trace log.

    The location can be overridden via the ``BOOTHEALTH_LOG_DIR`` environment
    variable.
    """

    override = os.environ.get("BOOTHEALTH_LOG_DIR")
    if override:
        return _expand(override)
    return _DEFAULT_LOG_DIR


def fstab_path(environ: dict | None = None) -> str:
    env = os.environ if environ is None else environ
    override = env.get("BOOTHEALTH_FSTAB")
    if override:
        return _expand(override)
    return _DEFAULT_FSTAB


def crypttab_path(environ: dict | None = None) -> str:
    env = os.environ if environ is None else environ
    override = env.get("BOOTHEALTH_CRYPTTAB")
    if override:
        return _expand(override)
    return _DEFAULT_CRYPTTAB
