from boothealth.classify import classify
from boothealth.fstab import parse_line
from boothealth.hardening import audit
from boothealth.model import Edit, Mismatch, RealDevice, SpecKind
from boothealth.planner import merge_option, plan_repairs


def test_root_mismatch_rewrites_spec():
    root = parse_line("UUID=AAAA-1111  /  ext4  defaults  0  1")
    mismatch = classify(root, RealDevice("/", "/dev/sda2", uuid="BBBB-2222"))
    plan = plan_repairs(mismatch, None, [])
    assert plan.edits == [Edit("/", "spec", "UUID=BBBB-2222")]


def test_esp_partuuid_namespace_is_preserved():
    esp = parse_line("PARTUUID=1234  /boot/efi  vfat  umask=0077  0  0")
    mismatch = classify(esp, RealDevice("/boot/efi", "/dev/sda1", uuid="CCCC", partuuid="9999"))
    plan = plan_repairs(None, mismatch, [])
    assert plan.edits == [Edit("/boot/efi", "spec", "PARTUUID=9999")]


def test_esp_uuid_row_gets_real_uuid():
    esp = parse_line("UUID=OLD  /boot/efi  vfat  umask=0077  0  0")
    mismatch = classify(esp, RealDevice("/boot/efi", "/dev/sda1", uuid="NEW", partuuid="9999"))
    plan = plan_repairs(None, mismatch, [])
    assert plan.edits == [Edit("/boot/efi", "spec", "UUID=NEW")]


def test_root_partuuid_row_keeps_partuuid_namespace():
    """Root follows the same namespace rule as the ESP.

    This deliberately departs from always writing ``UUID=`` for root: a
    PARTUUID-addressed root row is rewritten with the real PARTUUID.
    """

    root = parse_line("PARTUUID=0001-02  /  ext4  defaults  0  1")
    mismatch = classify(root, RealDevice("/", "/dev/sda2", uuid="BBBB", partuuid="0001-03"))
    plan = plan_repairs(mismatch, None, [])
    assert plan.edits == [Edit("/", "spec", "PARTUUID=0001-03")]


def test_empty_real_value_plans_nothing():
    mismatch = Mismatch("/boot/efi", SpecKind.UUID, "OLD", "")
    assert not plan_repairs(None, mismatch, [])


def test_scenario_hardening_only():
    esp = parse_line("UUID=DEAD  /boot/efi  vfat  defaults  0  1")
    dev = RealDevice("/boot/efi", "/dev/sda1", uuid="DEAD")
    plan = plan_repairs(None, classify(esp, dev), audit([esp]))
    assert plan.edits == [
        Edit("/boot/efi", "options", "defaults,umask=0077"),
        Edit("/boot/efi", "pass", "0"),
    ]


def test_compliant_table_gives_empty_plan():
    esp = parse_line("PARTUUID=1234  /boot/efi  vfat  umask=0077  0  0")
    dev = RealDevice("/boot/efi", "/dev/sda1", uuid="CCCC", partuuid="1234")
    assert not plan_repairs(None, classify(esp, dev), audit([esp]))


def test_absent_recovery_plans_nothing():
    assert not plan_repairs(None, None, audit([None, None]))


def test_all_edits_in_one_plan_in_order():
    root = parse_line("UUID=A  /  ext4  defaults  0  1")
    esp = parse_line("UUID=B  /boot/efi  vfat  defaults  0  0")
    rec = parse_line("UUID=C  /recovery  vfat  umask=0077  0  2")
    plan = plan_repairs(
        classify(root, RealDevice("/", "/dev/sda2", uuid="A2")),
        classify(esp, RealDevice("/boot/efi", "/dev/sda1", uuid="B2")),
        audit([esp, rec]),
    )
    assert [(e.mountpoint, e.field) for e in plan] == [
        ("/", "spec"),
        ("/boot/efi", "spec"),
        ("/boot/efi", "options"),
        ("/recovery", "pass"),
    ]


def test_merge_option_appends_and_keeps_order():
    assert merge_option(("rw", "noatime"), "umask=0077") == ["rw", "noatime", "umask=0077"]


def test_merge_option_replaces_conflicting_value_in_place():
    assert merge_option(("umask=0022", "shortname=mixed"), "umask=0077") == ["umask=0077", "shortname=mixed"]


def test_merge_option_bare_flag():
    assert merge_option(("defaults",), "noexec") == ["defaults", "noexec"]
    assert merge_option(("noexec",), "noexec") == ["noexec"]
