import subprocess

import pytest

from boothealth import initramfs
from boothealth.errors import CollaboratorError


class DummyResult:
    def __init__(self, out: str = "", rc: int = 0, err: str = "") -> None:
        self.out = out
        self.rc = rc
        self.err = err


DPKG_LIST = """\
Desired=Unknown/Install/Remove/Purge/Hold
||/ Name                              Version          Architecture Description
+++-=================================-================-============-===========
ii  linux-image-6.9.3-76060903-generic 6.9.3-76060903.202405300957~1718348209 amd64 Linux kernel image
rc  linux-image-6.8.0-76060800-generic 6.8.0-76060800.202403131158~1711393930 amd64 Linux kernel image
ii  linux-headers-6.9.3-76060903-generic 6.9.3 amd64 headers
ii  linux-image-generic               6.9.3.76060903   amd64        Generic Linux kernel image
"""


def test_rebuild_all(monkeypatch):
    commands: list[list[str]] = []

    def fake_run(cmd, check=True, **_kwargs):  # noqa: ARG001
        commands.append(cmd)
        return DummyResult()

    monkeypatch.setattr(initramfs, "run", fake_run)
    initramfs.rebuild_all(privileged=False)
    assert commands == [["sudo", "update-initramfs", "-u", "-k", "all"]]


def test_rebuild_all_failure(monkeypatch):
    def fake_run(cmd, check=True, **_kwargs):  # noqa: ARG001
        raise subprocess.CalledProcessError(1, cmd, "", "E: /boot/efi not mounted")

    monkeypatch.setattr(initramfs, "run", fake_run)
    with pytest.raises(CollaboratorError) as excinfo:
        initramfs.rebuild_all(privileged=True)
    assert excinfo.value.state["rc"] == 1


def test_parse_installed_kernels_keeps_installed_images():
    rows = initramfs.parse_installed_kernels(DPKG_LIST)
    assert len(rows) == 2
    assert rows[0].split()[1] == "linux-image-6.9.3-76060903-generic"
    assert rows[1].split()[1] == "linux-image-generic"


def test_installed_kernels_degrades_without_dpkg(monkeypatch):
    monkeypatch.setattr(initramfs, "run", lambda cmd, check=True, **_: DummyResult(rc=127))
    assert initramfs.installed_kernels() == []


def test_initrd_images(tmp_path):
    (tmp_path / "initrd.img-6.9.3").write_bytes(b"x" * 2048)
    (tmp_path / "initrd.img").write_bytes(b"")
    (tmp_path / "vmlinuz").write_bytes(b"k")
    images = initramfs.initrd_images(str(tmp_path / "initrd.img*"))
    assert [img.path.rsplit("/", 1)[-1] for img in images] == ["initrd.img", "initrd.img-6.9.3"]
    assert images[1].size == 2048
    assert images[1].human_size == "2.0K"
    assert images[0].human_size == "0B"
