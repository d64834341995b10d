"""Read fstab rows by mountpoint and rewrite single fields in place."""

from __future__ import annotations

import re
from typing import Iterable, Mapping

from .executil import trace
from .model import ConfigEntry, DeviceSpec

FIELD_INDEX = {"spec": 0, "options": 3, "pass": 5}

_TOKEN = re.compile(r"\S+")


def _is_comment_or_blank(line: str) -> bool:
    stripped = line.strip()
    return not stripped or stripped.startswith("#")


def split_options(options: str) -> tuple[str, ...]:
    return tuple(opt for opt in options.split(",") if opt)


def option_key(token: str) -> str:
    return token.split("=", 1)[0]


def parse_line(line: str, line_no: int = 0) -> ConfigEntry | None:
    """Parse one table row, returning ``None`` for comments, blanks and junk."""

    if _is_comment_or_blank(line):
        return None
    parts = line.split()
    if len(parts) < 4:
        trace("fstab.malformed", line_no=line_no, line=line.rstrip("\r\n"), reason="too few fields")
        return None
    try:
        dump = int(parts[4]) if len(parts) > 4 else 0
        passno = int(parts[5]) if len(parts) > 5 else 0
    except ValueError:
        trace("fstab.malformed", line_no=line_no, line=line.rstrip("\r\n"), reason="non-integer dump/pass")
        return None
    return ConfigEntry(
        mountpoint=parts[1],
        spec=DeviceSpec.parse(parts[0]),
        fstype=parts[2],
        options=split_options(parts[3]),
        dump=dump,
        passno=passno,
        line_no=line_no,
        raw=line.rstrip("\r\n"),
    )


def find_entry(lines: Iterable[str], mountpoint: str) -> ConfigEntry | None:
    """Return the first row whose mountpoint column equals ``mountpoint``.

    Matching is exact, so ``/boot/efi`` never picks up ``/boot/efi/extra``.
    Later duplicates are ignored.
    """

    for idx, line in enumerate(lines, start=1):
        entry = parse_line(line, idx)
        if entry is not None and entry.mountpoint == mountpoint:
            return entry
    return None


def read_lines(path: str) -> list[str]:
    with open(path, "r", encoding="utf-8", errors="surrogateescape", newline="") as fh:
        return fh.read().splitlines(keepends=True)


def read_entries(path: str, mountpoints: Iterable[str]) -> dict[str, ConfigEntry | None]:
    """Read ``path`` fresh and extract one entry per requested mountpoint."""

    try:
        lines = read_lines(path)
    except FileNotFoundError:
        trace("fstab.missing", path=path)
        lines = []
    except OSError as exc:
        trace("fstab.read_error", path=path, error=str(exc))
        lines = []
    return {mp: find_entry(lines, mp) for mp in mountpoints}


def rewrite_fields(line: str, replacements: Mapping[int, str]) -> str:
    """Replace whitespace-separated fields of ``line`` by index.

    Separators, leading whitespace and the line ending are kept byte for
    byte; only the characters of the replaced fields change.
    """

    body = line.rstrip("\r\n")
    ending = line[len(body):]
    spans = [m.span() for m in _TOKEN.finditer(body)]
    for idx in replacements:
        if idx >= len(spans):
            raise IndexError(f"field {idx} missing in line {body!r}")
    out = body
    for idx in sorted(replacements, reverse=True):
        start, end = spans[idx]
        out = out[:start] + replacements[idx] + out[end:]
    return out + ending


def first_row_index(lines: list[str], mountpoint: str) -> int | None:
    for idx, line in enumerate(lines):
        entry = parse_line(line, idx + 1)
        if entry is not None and entry.mountpoint == mountpoint:
            return idx
    return None
