"""Compare configured identifiers with the live device, namespace by namespace."""

from __future__ import annotations

from .model import Comparison, ConfigEntry, Mismatch, RealDevice, SpecKind


def compare(entry: ConfigEntry | None, device: RealDevice | None) -> Comparison:
    """Classify one mountpoint as ``match``, ``mismatch`` or ``unknown``.

    The real identifier is taken from the same namespace the row uses; a
    UUID row is never checked against a PARTUUID.  Missing data on either
    side is ``unknown``.
    """

    if entry is None:
        return Comparison("unknown", reason="none configured")
    kind = entry.spec.kind
    configured = entry.spec.value
    if kind is SpecKind.RAW:
        return Comparison("unknown", kind, configured, reason="raw device path, no identifier namespace")
    if device is None:
        return Comparison("unknown", kind, configured, reason="not mounted")
    actual = device.identifier(kind)
    if not configured or not actual:
        return Comparison("unknown", kind, configured, actual, reason=f"{kind.value} unavailable")
    if configured == actual:
        return Comparison("match", kind, configured, actual)
    return Comparison(
        "mismatch",
        kind,
        configured,
        actual,
        mismatch=Mismatch(entry.mountpoint, kind, configured, actual),
    )


def classify(entry: ConfigEntry | None, device: RealDevice | None) -> Mismatch | None:
    return compare(entry, device).mismatch
