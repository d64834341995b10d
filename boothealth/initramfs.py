"""Rebuild initramfs images and list installed kernels."""

from __future__ import annotations

import glob
import os
import subprocess
from dataclasses import dataclass

from .errors import CollaboratorError
from .executil import elevate, info, run, trace
from .paths import INITRD_GLOB

KERNEL_PACKAGE_PREFIX = "linux-image-"


@dataclass
class InitrdImage:
    path: str
    size: int

    @property
    def human_size(self) -> str:
        size = float(self.size)
        for unit in ("B", "K", "M", "G"):
            if size < 1024 or unit == "G":
                return f"{size:.0f}{unit}" if unit == "B" else f"{size:.1f}{unit}"
            size /= 1024
        return f"{self.size}B"


def rebuild_all(privileged: bool) -> None:
    """Run ``update-initramfs -u -k all``; raise CollaboratorError on failure."""

    cmd = elevate(["update-initramfs", "-u", "-k", "all"], privileged)
    try:
        run(cmd, check=True)
    except subprocess.CalledProcessError as exc:
        msg = (exc.stderr or exc.stdout or "").strip() or f"exit status {exc.returncode}"
        raise CollaboratorError(
            f"update-initramfs failed: {msg}",
            state={"cmd": cmd, "rc": exc.returncode},
        ) from exc
    info("initramfs.rebuilt")


def initrd_images(pattern: str = INITRD_GLOB) -> list[InitrdImage]:
    images = []
    for path in sorted(glob.glob(pattern)):
        try:
            size = os.path.getsize(path)
        except OSError as exc:
            trace("initramfs.stat_error", path=path, error=str(exc))
            continue
        images.append(InitrdImage(path=path, size=size))
    return images


def parse_installed_kernels(dpkg_list: str) -> list[str]:
    """Keep the ``ii`` rows of ``dpkg -l`` that name a kernel image package."""

    rows = []
    for line in dpkg_list.splitlines():
        parts = line.split()
        if len(parts) >= 2 and parts[0] == "ii" and parts[1].startswith(KERNEL_PACKAGE_PREFIX):
            rows.append(line.rstrip())
    return rows


def installed_kernels() -> list[str]:
    r = run(["dpkg", "-l"], check=False)
    if r.rc != 0:
        trace("initramfs.dpkg_failed", rc=r.rc, err=(r.err or "").strip())
        return []
    return parse_installed_kernels(r.out or "")
