from __future__ import annotations

import re
from dataclasses import dataclass

from .devices import mount_state
from .executil import run, trace
from .paths import ESP_MOUNT

EXPECTED_FSTYPE = "vfat"


@dataclass
class EspStatus:
    mountpoint: str
    mounted: bool
    fstype: str = ""
    usage_pct: int | None = None
    df_text: str = ""

    @property
    def fstype_ok(self) -> bool:
        return not self.mounted or self.fstype == EXPECTED_FSTYPE


def parse_usage_pct(df_text: str) -> int | None:
    lines = [line for line in df_text.splitlines() if line.strip()]
    if len(lines) < 2:
        return None
    m = re.search(r"(\d+)%", lines[-1])
    return int(m.group(1)) if m else None


def inspect_esp(mountpoint: str = ESP_MOUNT) -> EspStatus:
    """Check that the ESP is mounted, is FAT, and report its fill level."""

    state = mount_state(mountpoint)
    status = EspStatus(mountpoint=mountpoint, mounted=state.mounted, fstype=state.fstype)
    if not state.mounted:
        return status
    r = run(["df", "-h", mountpoint], check=False)
    if r.rc == 0:
        status.df_text = (r.out or "").rstrip()
        status.usage_pct = parse_usage_pct(status.df_text)
    else:
        trace("esp.df_failed", mountpoint=mountpoint, rc=r.rc, err=(r.err or "").strip())
    return status
