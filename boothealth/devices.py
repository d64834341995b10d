"""Resolve the live device behind a mountpoint (read-only)."""
from __future__ import annotations

from .executil import elevate, run, trace
from .model import MountState, RealDevice


def _strip_subvolume(source: str) -> str:
    # findmnt reports btrfs sources as ``/dev/sda2[/@]``
    if source.endswith("]") and "[" in source:
        return source[: source.index("[")]
    return source


def mount_state(mountpoint: str) -> MountState:
    """Ask ``findmnt`` what is mounted exactly at ``mountpoint``."""

    r = run(
        ["findmnt", "-n", "-o", "SOURCE,FSTYPE", "--mountpoint", mountpoint],
        check=False,
    )
    out = (r.out or "").strip()
    if r.rc != 0 or not out:
        trace("devices.mount_state.unmounted", mountpoint=mountpoint, rc=r.rc)
        return MountState(mounted=False)
    parts = out.splitlines()[0].split()
    source = _strip_subvolume(parts[0]) if parts else ""
    fstype = parts[1] if len(parts) > 1 else ""
    return MountState(mounted=True, source=source, fstype=fstype)


def blkid_value(device: str, tag: str, privileged: bool = True) -> str:
    """Return one blkid tag for ``device``, or ``""`` when unset or unreadable.

    Only this query is escalated when running unprivileged; blkid may serve
    stale cached values to ordinary users.
    """

    if not device:
        return ""
    cmd = elevate(["blkid", "-s", tag, "-o", "value", device], privileged)
    r = run(cmd, check=False)
    if r.rc != 0:
        trace("devices.blkid.empty", device=device, tag=tag, rc=r.rc, err=(r.err or "").strip())
        return ""
    return (r.out or "").strip()


def uuid_of(path: str, privileged: bool = True) -> str:
    return blkid_value(path, "UUID", privileged)


def partuuid_of(path: str, privileged: bool = True) -> str:
    return blkid_value(path, "PARTUUID", privileged)


def resolve(mountpoint: str, privileged: bool = True) -> RealDevice | None:
    """Resolve ``mountpoint`` to its backing device and identifiers.

    Returns ``None`` when nothing is mounted there.  A resolved device may
    still carry empty identifiers; callers treat those as unknown.
    """

    state = mount_state(mountpoint)
    if not state.mounted or not state.source:
        return None
    device = RealDevice(
        mountpoint=mountpoint,
        device_path=state.source,
        uuid=uuid_of(state.source, privileged),
        partuuid=partuuid_of(state.source, privileged),
        fstype=state.fstype,
    )
    trace(
        "devices.resolve",
        mountpoint=mountpoint,
        device=device.device_path,
        uuid=device.uuid,
        partuuid=device.partuuid,
        fstype=device.fstype,
    )
    return device
