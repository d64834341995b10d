"""Kernel command line, systemd-boot and crypttab collaborators."""
import re
import subprocess

from .errors import CollaboratorError
from .executil import Result, elevate, info, run, trace

_BOOT_OPTIONS = re.compile(r"Kernel Boot Options[ \t]*:[. \t]*(.*)$", re.M)


def _failure(what: str, exc: subprocess.CalledProcessError) -> CollaboratorError:
    msg = (exc.stderr or exc.stdout or "").strip() or f"exit status {exc.returncode}"
    return CollaboratorError(
        f"{what} failed: {msg}",
        state={"cmd": exc.cmd, "rc": exc.returncode},
    )


def print_config(privileged: bool) -> Result:
    return run(elevate(["kernelstub", "--print-config"], privileged), check=False)


def parse_boot_options(text: str) -> str:
    """Pull the option string out of ``kernelstub --print-config`` output.

    kernelstub pads the label with dots (``Kernel Boot Options:....quiet``)
    and logs through stderr on some releases, so callers pass both streams.
    """

    m = _BOOT_OPTIONS.search(text or "")
    return m.group(1).strip() if m else ""


def current_boot_options(privileged: bool) -> str:
    r = print_config(privileged)
    return parse_boot_options((r.out or "") + "\n" + (r.err or ""))


def root_tokens(options: str) -> list[str]:
    return [tok for tok in options.split() if tok.startswith("root=")]


def set_root_uuid(uuid: str, privileged: bool) -> list[str]:
    """Point the kernel ``root=`` parameter at ``UUID=<uuid>``.

    Every existing ``root=`` token is removed first; a failed removal is
    traced and does not stop the final add.  Returns the removed tokens.
    """

    if not uuid:
        raise ValueError("set_root_uuid requires a UUID")
    removed = root_tokens(current_boot_options(privileged))
    for tok in removed:
        r = run(elevate(["kernelstub", "--remove-options", tok], privileged), check=False)
        if r.rc != 0:
            trace("boot_plumbing.remove_option_failed", token=tok, rc=r.rc, err=(r.err or "").strip())
    try:
        run(elevate(["kernelstub", "--add-options", f"root=UUID={uuid}"], privileged), check=True)
    except subprocess.CalledProcessError as exc:
        raise _failure("kernelstub --add-options", exc) from exc
    info("boot_plumbing.root_uuid", uuid=uuid, removed=removed)
    return removed


def list_boot_entries(privileged: bool) -> Result:
    return run(elevate(["bootctl", "list"], privileged), check=False)


def refresh_bootloader(privileged: bool) -> None:
    try:
        run(elevate(["bootctl", "install"], privileged), check=True)
    except subprocess.CalledProcessError as exc:
        raise _failure("bootctl install", exc) from exc
    info("boot_plumbing.bootctl_install")


def read_crypttab(path: str) -> str:
    """Return crypttab content, ``""`` when missing or empty."""

    try:
        with open(path, "r", encoding="utf-8", errors="ignore") as fh:
            return fh.read()
    except FileNotFoundError:
        return ""
    except OSError as exc:
        trace("boot_plumbing.crypttab_unreadable", path=path, error=str(exc))
        return ""
