from boothealth.fstab import parse_line
from boothealth.hardening import audit, audit_entry


def test_compliant_vfat_entry_has_no_finding():
    esp = parse_line("PARTUUID=1234  /boot/efi  vfat  umask=0077  0  0")
    assert audit_entry(esp) is None


def test_missing_umask_and_wrong_pass():
    esp = parse_line("UUID=DEAD  /boot/efi  vfat  defaults  0  1")
    finding = audit_entry(esp)
    assert finding.mountpoint == "/boot/efi"
    assert finding.missing_umask
    assert finding.wrong_pass
    assert finding.entry is esp


def test_umask_must_match_exactly():
    rec = parse_line("UUID=R  /recovery  vfat  defaults,umask=0022  0  0")
    finding = audit_entry(rec)
    assert finding.missing_umask
    assert not finding.wrong_pass


def test_non_vfat_rows_are_exempt():
    rec = parse_line("UUID=R  /recovery  ext4  defaults  0  2")
    assert audit_entry(rec) is None


def test_audit_skips_absent_entries():
    esp = parse_line("UUID=DEAD  /boot/efi  vfat  umask=0077  0  1")
    findings = audit([esp, None])
    assert len(findings) == 1
    assert not findings[0].missing_umask
    assert findings[0].wrong_pass
