from __future__ import annotations

import enum
import os
import sys
from dataclasses import dataclass, field
from typing import Optional

from . import paths

DEFAULT_UMASK_TOKEN = "umask=0077"
DEFAULT_ESP_USAGE_LIMIT = 85


class SpecKind(enum.Enum):
    UUID = "UUID"
    PARTUUID = "PARTUUID"
    RAW = "RAW"


@dataclass(frozen=True)
class DeviceSpec:
    kind: SpecKind
    value: str

    @classmethod
    def parse(cls, token: str) -> "DeviceSpec":
        for kind in (SpecKind.UUID, SpecKind.PARTUUID):
            prefix = f"{kind.value}="
            if token.startswith(prefix):
                return cls(kind, token[len(prefix):])
        return cls(SpecKind.RAW, token)

    @property
    def token(self) -> str:
        if self.kind is SpecKind.RAW:
            return self.value
        return f"{self.kind.value}={self.value}"


@dataclass(frozen=True)
class ConfigEntry:
    mountpoint: str
    spec: DeviceSpec
    fstype: str
    options: tuple[str, ...]
    dump: int = 0
    passno: int = 0
    line_no: int = 0
    raw: str = ""


@dataclass(frozen=True)
class MountState:
    mounted: bool
    source: str = ""
    fstype: str = ""


@dataclass(frozen=True)
class RealDevice:
    mountpoint: str
    device_path: str
    uuid: str = ""
    partuuid: str = ""
    fstype: str = ""

    def identifier(self, kind: SpecKind) -> str:
        if kind is SpecKind.UUID:
            return self.uuid
        if kind is SpecKind.PARTUUID:
            return self.partuuid
        return ""


@dataclass(frozen=True)
class Mismatch:
    mountpoint: str
    kind: SpecKind
    configured: str
    actual: str


@dataclass(frozen=True)
class Comparison:
    status: str  # "match", "mismatch" or "unknown"
    kind: SpecKind | None = None
    configured: str = ""
    actual: str = ""
    reason: str = ""
    mismatch: Mismatch | None = None


@dataclass(frozen=True)
class HardeningFinding:
    mountpoint: str
    entry: ConfigEntry
    missing_umask: bool = False
    wrong_pass: bool = False

    def __bool__(self) -> bool:
        return self.missing_umask or self.wrong_pass


@dataclass(frozen=True)
class Edit:
    mountpoint: str
    field: str  # "spec", "options" or "pass"
    new_value: str


@dataclass
class RepairPlan:
    edits: list[Edit] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.edits)

    def __iter__(self):
        return iter(self.edits)

    def __len__(self) -> int:
        return len(self.edits)

    def for_mountpoint(self, mountpoint: str) -> list[Edit]:
        return [e for e in self.edits if e.mountpoint == mountpoint]

    def mountpoints(self) -> list[str]:
        seen: list[str] = []
        for e in self.edits:
            if e.mountpoint not in seen:
                seen.append(e.mountpoint)
        return seen


@dataclass
class Settings:
    fstab_path: str = "/etc/fstab"
    crypttab_path: str = "/etc/crypttab"
    privileged: bool = False
    color: bool = False
    esp_usage_limit: int = DEFAULT_ESP_USAGE_LIMIT
    umask_token: str = DEFAULT_UMASK_TOKEN

    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> "Settings":
        env = os.environ if environ is None else environ
        limit_raw = env.get("BOOTHEALTH_ESP_USAGE_LIMIT", "")
        try:
            limit = int(limit_raw) if limit_raw else DEFAULT_ESP_USAGE_LIMIT
        except ValueError:
            limit = DEFAULT_ESP_USAGE_LIMIT
        color = sys.stdout.isatty() and not env.get("NO_COLOR")
        return cls(
            fstab_path=paths.fstab_path(env),
            crypttab_path=paths.crypttab_path(env),
            privileged=os.geteuid() == 0,
            color=bool(color),
            esp_usage_limit=limit,
        )
