"""Sequence the read, plan and execute phases for one run."""

from __future__ import annotations

import datetime as _dt
import enum
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from . import boot_plumbing, devices, initramfs
from .classify import compare
from .errors import BackupError, CollaboratorError, RewriteError
from .esp import EspStatus, inspect_esp
from .executil import info, trace
from .fstab import read_entries
from .hardening import audit
from .model import Comparison, ConfigEntry, HardeningFinding, RealDevice, RepairPlan, Settings
from .paths import ESP_MOUNT, RECOVERY_MOUNT, ROOT_MOUNT
from .planner import plan_repairs
from .repair import RepairResult, apply_plan
from .report import Reporter

MOUNTPOINTS = (ROOT_MOUNT, ESP_MOUNT, RECOVERY_MOUNT)
HARDENED_MOUNTPOINTS = (ESP_MOUNT, RECOVERY_MOUNT)


class Mode(enum.Enum):
    CHECK = "check"
    FIX = "fix"
    INTERACTIVE = "interactive"

    @classmethod
    def from_selector(cls, selector: Optional[str]) -> "Mode":
        mode = _SELECTORS.get(selector or "")
        if mode is None:
            trace("orchestrator.unknown_selector", selector=selector)
            return cls.CHECK
        return mode


_SELECTORS = {"": Mode.CHECK, "--fix": Mode.FIX, "--interactive": Mode.INTERACTIVE}


@dataclass
class Inventory:
    crypttab: str = ""
    kernelstub: str = ""
    kernelstub_ok: bool = False
    boot_entries: str = ""
    boot_entries_ok: bool = False
    initrd_images: list = field(default_factory=list)
    kernels: list = field(default_factory=list)


@dataclass
class Observation:
    entries: Dict[str, Optional[ConfigEntry]]
    devices: Dict[str, Optional[RealDevice]]
    root: Comparison
    esp: Comparison
    findings: list[HardeningFinding]
    esp_status: EspStatus
    inventory: Optional[Inventory] = None

    @property
    def root_mismatch(self):
        return self.root.mismatch

    @property
    def esp_mismatch(self):
        return self.esp.mismatch

    @property
    def real_root_uuid(self) -> str:
        dev = self.devices.get(ROOT_MOUNT)
        return dev.uuid if dev else ""


@dataclass
class RunOutcome:
    mode: Mode
    result: str
    plan: Optional[RepairPlan] = None
    repair: Optional[RepairResult] = None
    failures: list[str] = field(default_factory=list)
    extra: Dict[str, Any] = field(default_factory=dict)


def take_inventory(settings: Settings) -> Inventory:
    inv = Inventory()
    inv.crypttab = boot_plumbing.read_crypttab(settings.crypttab_path)
    r = boot_plumbing.print_config(settings.privileged)
    inv.kernelstub_ok = r.rc == 0
    inv.kernelstub = ((r.out or "") + (r.err or "")).rstrip()
    r = boot_plumbing.list_boot_entries(settings.privileged)
    inv.boot_entries_ok = r.rc == 0
    inv.boot_entries = (r.out or r.err or "").rstrip()
    inv.initrd_images = initramfs.initrd_images()
    inv.kernels = initramfs.installed_kernels()
    return inv


def observe(settings: Settings, *, with_inventory: bool = True) -> Observation:
    """Read phase: nothing here writes or escalates beyond blkid."""

    entries = read_entries(settings.fstab_path, MOUNTPOINTS)
    resolved = {
        ROOT_MOUNT: devices.resolve(ROOT_MOUNT, settings.privileged),
        ESP_MOUNT: devices.resolve(ESP_MOUNT, settings.privileged),
    }
    findings = audit((entries.get(mp) for mp in HARDENED_MOUNTPOINTS), settings.umask_token)
    obs = Observation(
        entries=entries,
        devices=resolved,
        root=compare(entries.get(ROOT_MOUNT), resolved[ROOT_MOUNT]),
        esp=compare(entries.get(ESP_MOUNT), resolved[ESP_MOUNT]),
        findings=findings,
        esp_status=inspect_esp(ESP_MOUNT),
        inventory=take_inventory(settings) if with_inventory else None,
    )
    trace(
        "orchestrator.observe",
        root=obs.root.status,
        esp=obs.esp.status,
        findings=[f.mountpoint for f in findings],
        esp_mounted=obs.esp_status.mounted,
    )
    return obs


def _describe_device(label: str, dev: Optional[RealDevice], with_partuuid: bool) -> str:
    if dev is None:
        return f"{label} dev=? UUID=?" + (" PARTUUID=?" if with_partuuid else "")
    text = f"{label} dev={dev.device_path or '?'} UUID={dev.uuid or '?'}"
    if with_partuuid:
        text += f" PARTUUID={dev.partuuid or '?'}"
    return text


def _report_comparison(label: str, cmp: Comparison, reporter: Reporter) -> None:
    if cmp.status == "mismatch":
        reporter.warn(
            f"{label} {cmp.kind.value} mismatch: fstab={cmp.configured} actual={cmp.actual}"
        )
    elif cmp.status == "unknown" and cmp.reason != "none configured":
        reporter.dim(f"{label} identifier check: unknown ({cmp.reason})")


def report_observation(obs: Observation, settings: Settings, reporter: Reporter) -> None:
    reporter.section("fstab entries")
    for label, mp in (("root    ", ROOT_MOUNT), ("esp     ", ESP_MOUNT), ("recovery", RECOVERY_MOUNT)):
        entry = obs.entries.get(mp)
        reporter.line(f"{label}: {entry.raw.strip() if entry else '<none>'}")
    reporter.line()

    reporter.section("actual devices")
    reporter.line(_describe_device("root", obs.devices.get(ROOT_MOUNT), False))
    reporter.line(_describe_device("esp ", obs.devices.get(ESP_MOUNT), True))
    reporter.line()

    _report_comparison("Root", obs.root, reporter)
    _report_comparison("ESP", obs.esp, reporter)
    reporter.line()

    status = obs.esp_status
    if not status.mounted:
        reporter.warn(f"{status.mountpoint} is not mounted! Bootloader updates will fail.")
    elif not status.fstype_ok:
        reporter.warn(f"ESP is {status.fstype}, expected vfat (FAT32).")
    reporter.line()

    for finding in obs.findings:
        if finding.missing_umask:
            reporter.warn(f"{finding.mountpoint} missing {settings.umask_token}")
        if finding.wrong_pass:
            reporter.warn(f"{finding.mountpoint} fsck pass should be 0")
    if obs.findings:
        reporter.line()

    inv = obs.inventory
    if inv is None:
        return
    reporter.section("crypttab")
    if inv.crypttab.strip():
        reporter.warn(f"{settings.crypttab_path} is not empty; check for stale entries")
    reporter.verbatim(inv.crypttab)
    reporter.line()

    reporter.section("kernelstub")
    reporter.verbatim(inv.kernelstub, empty="(kernelstub unavailable)")
    reporter.line()
    reporter.section("bootctl")
    reporter.verbatim(inv.boot_entries, empty="(bootctl unavailable)")
    reporter.line()

    reporter.section("ESP usage")
    if status.df_text:
        reporter.line(status.df_text)
    if status.usage_pct is None:
        reporter.dim("ESP usage unknown.")
    elif status.usage_pct > settings.esp_usage_limit:
        reporter.warn(f"ESP is {status.usage_pct}% full. Remove old kernels.")
    else:
        reporter.ok(f"ESP usage OK ({status.usage_pct}%).")
    reporter.line()

    reporter.section("Initramfs images")
    for image in inv.initrd_images:
        reporter.line(f"{image.human_size:>8}  {image.path}")
    if not inv.initrd_images:
        reporter.line("(none)")
    reporter.line()
    reporter.section("Installed kernel images")
    for row in inv.kernels:
        reporter.line(row)
    if not inv.kernels:
        reporter.line("(none)")
    reporter.line()


def _attempt(label: str, fn, reporter: Reporter, failures: list[str]) -> None:
    try:
        fn()
    except CollaboratorError as exc:
        failures.append(label)
        reporter.error(str(exc))
        trace("orchestrator.collaborator_failed", step=label, error=str(exc), state=exc.state)


def refresh_artifacts(obs: Observation, settings: Settings, reporter: Reporter, *, set_root: bool) -> list[str]:
    """Best-effort downstream refresh; returns the labels of failed steps."""

    failures: list[str] = []
    uuid = obs.real_root_uuid
    if set_root and uuid:
        reporter.line(f"Updating kernelstub root=UUID={uuid} ...")
        _attempt("kernelstub", lambda: boot_plumbing.set_root_uuid(uuid, settings.privileged), reporter, failures)
        if "kernelstub" not in failures:
            reporter.ok("kernelstub root updated.")
    reporter.line("Rebuilding initramfs...")
    _attempt("initramfs", lambda: initramfs.rebuild_all(settings.privileged), reporter, failures)
    reporter.line("Refreshing systemd-boot on ESP...")
    _attempt("bootctl", lambda: boot_plumbing.refresh_bootloader(settings.privileged), reporter, failures)
    return failures


def run_check(obs: Observation, settings: Settings, reporter: Reporter) -> RunOutcome:
    return RunOutcome(Mode.CHECK, "CHECK_OK")


def run_fix(obs: Observation, settings: Settings, reporter: Reporter) -> RunOutcome:
    reporter.heading("--fix: correcting kernelstub/initramfs/bootloader if root UUID mismatch")
    set_root = obs.root_mismatch is not None and bool(obs.real_root_uuid)
    if not set_root:
        reporter.line("Root UUID matches or cannot resolve; no kernelstub change.")
    failures = refresh_artifacts(obs, settings, reporter, set_root=set_root)
    reporter.ok("--fix complete.")
    return RunOutcome(Mode.FIX, "FIX_OK", failures=failures, extra={"kernel_root_updated": set_root})


def run_interactive(
        obs: Observation,
        settings: Settings,
        reporter: Reporter,
        now: _dt.datetime | None = None,
) -> RunOutcome:
    reporter.heading("--interactive: repairing fstab")
    plan = plan_repairs(obs.root_mismatch, obs.esp_mismatch, obs.findings, settings.umask_token)
    if not plan:
        reporter.line("No fstab changes needed.")
        return RunOutcome(Mode.INTERACTIVE, "REPAIR_NOOP", plan=plan)

    for edit in plan:
        reporter.line(f"Fix {edit.mountpoint} {edit.field} → {edit.new_value}")
    try:
        result = apply_plan(plan, settings.fstab_path, now=now)
    except BackupError as exc:
        reporter.error(f"{exc}; no changes were made.")
        return RunOutcome(Mode.INTERACTIVE, "FAIL_BACKUP", plan=plan, extra={"error": str(exc), **exc.state})
    except RewriteError as exc:
        reporter.error(f"{exc}; {settings.fstab_path} left unchanged.")
        return RunOutcome(Mode.INTERACTIVE, "FAIL_REWRITE", plan=plan, extra={"error": str(exc), **exc.state})
    reporter.line(f"Backup saved: {result.backup_path}")

    failures: list[str] = []
    if result.changed:
        failures = refresh_artifacts(obs, settings, reporter, set_root=True)
        reporter.ok("Interactive repair complete.")
    else:
        reporter.line("No fstab changes needed.")
    return RunOutcome(Mode.INTERACTIVE, "REPAIR_OK", plan=plan, repair=result, failures=failures)


_HANDLERS = {
    Mode.CHECK: run_check,
    Mode.FIX: run_fix,
    Mode.INTERACTIVE: run_interactive,
}


def run(mode: Mode, settings: Settings, reporter: Reporter) -> RunOutcome:
    """Observe, report, then hand over to exactly one mode handler."""

    reporter.line("== Boot Health Check ==")
    reporter.line(f"Date: {_dt.datetime.now().astimezone().strftime('%a %b %d %H:%M:%S %Z %Y')}")
    reporter.line()
    info("orchestrator.start", mode=mode.value, fstab=settings.fstab_path, privileged=settings.privileged)
    obs = observe(settings)
    report_observation(obs, settings, reporter)
    outcome = _HANDLERS[mode](obs, settings, reporter)
    outcome.extra.setdefault("warnings", list(reporter.warnings))
    info("orchestrator.done", mode=mode.value, result=outcome.result, failures=outcome.failures)
    reporter.line("== Done ==")
    return outcome
