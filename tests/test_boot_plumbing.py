import subprocess

import pytest

from boothealth import boot_plumbing
from boothealth.errors import CollaboratorError

PRINT_CONFIG = """\
kernelstub.Config    : INFO     Looking for configuration...
kernelstub           : INFO     System information:

    OS:..................Pop!_OS 22.04
    Root partition:....../dev/nvme0n1p3
    Root FS UUID:........BBBB-2222
    ESP Path:............/boot/efi
    Kernel Boot Options:.quiet loglevel=0 root=UUID=AAAA-1111 splash
    Kernel Image Path:.../boot/vmlinuz
"""


class DummyResult:
    def __init__(self, out: str = "", rc: int = 0, err: str = "") -> None:
        self.out = out
        self.rc = rc
        self.err = err


def test_parse_boot_options_dotted_and_colon_forms():
    assert boot_plumbing.parse_boot_options(PRINT_CONFIG) == "quiet loglevel=0 root=UUID=AAAA-1111 splash"
    assert boot_plumbing.parse_boot_options("Kernel Boot Options: quiet splash\n") == "quiet splash"
    assert boot_plumbing.parse_boot_options("Kernel Boot Options:\nnext line") == ""
    assert boot_plumbing.parse_boot_options("") == ""


def test_set_root_uuid_removes_old_root_then_adds(monkeypatch):
    commands: list[list[str]] = []

    def fake_run(cmd, check=True, **_kwargs):  # noqa: ARG001
        commands.append(cmd)
        if cmd[-1] == "--print-config":
            # kernelstub logs through stderr
            return DummyResult(err=PRINT_CONFIG)
        return DummyResult()

    monkeypatch.setattr(boot_plumbing, "run", fake_run)

    removed = boot_plumbing.set_root_uuid("BBBB-2222", privileged=True)

    assert removed == ["root=UUID=AAAA-1111"]
    assert commands == [
        ["kernelstub", "--print-config"],
        ["kernelstub", "--remove-options", "root=UUID=AAAA-1111"],
        ["kernelstub", "--add-options", "root=UUID=BBBB-2222"],
    ]


def test_set_root_uuid_uses_sudo_when_unprivileged(monkeypatch):
    commands: list[list[str]] = []

    def fake_run(cmd, check=True, **_kwargs):  # noqa: ARG001
        commands.append(cmd)
        return DummyResult(out="Kernel Boot Options:.quiet splash\n")

    monkeypatch.setattr(boot_plumbing, "run", fake_run)

    assert boot_plumbing.set_root_uuid("BBBB", privileged=False) == []
    assert all(cmd[0] == "sudo" for cmd in commands)
    assert commands[-1] == ["sudo", "kernelstub", "--add-options", "root=UUID=BBBB"]


def test_set_root_uuid_failure_raises_collaborator_error(monkeypatch):
    def fake_run(cmd, check=True, **_kwargs):  # noqa: ARG001
        if "--add-options" in cmd and check:
            raise subprocess.CalledProcessError(1, cmd, "", "ESP not mounted")
        return DummyResult(rc=1)

    monkeypatch.setattr(boot_plumbing, "run", fake_run)

    with pytest.raises(CollaboratorError, match="ESP not mounted"):
        boot_plumbing.set_root_uuid("BBBB", privileged=True)


def test_set_root_uuid_requires_value():
    with pytest.raises(ValueError):
        boot_plumbing.set_root_uuid("", privileged=True)


def test_refresh_bootloader(monkeypatch):
    commands: list[list[str]] = []

    def fake_run(cmd, check=True, **_kwargs):  # noqa: ARG001
        commands.append(cmd)
        return DummyResult()

    monkeypatch.setattr(boot_plumbing, "run", fake_run)
    boot_plumbing.refresh_bootloader(privileged=True)
    assert commands == [["bootctl", "install"]]

    def failing_run(cmd, check=True, **_kwargs):  # noqa: ARG001
        raise subprocess.CalledProcessError(1, cmd, "", "")

    monkeypatch.setattr(boot_plumbing, "run", failing_run)
    with pytest.raises(CollaboratorError, match="exit status 1"):
        boot_plumbing.refresh_bootloader(privileged=True)


def test_read_crypttab(tmp_path):
    ct = tmp_path / "crypttab"
    assert boot_plumbing.read_crypttab(str(ct)) == ""
    ct.write_text("cryptdata UUID=abcd none luks\n", encoding="utf-8")
    assert boot_plumbing.read_crypttab(str(ct)).startswith("cryptdata")
