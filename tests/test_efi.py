import pytest

from cryptboot import efi
from cryptboot.errors import ExternalToolFailure

from conftest import DummyResult, Recorder

LISTING = (
    "BootCurrent: 0002\n"
    "Timeout: 1 seconds\n"
    "BootOrder: 0002,0001,0003\n"
    "Boot0001 Foo\n"
    "Boot0002* Bar\n"
    "Boot0003 Foo\n"
)


def test_parse_entries_skips_header_lines():
    entries = efi.parse_entries(LISTING)
    assert [(e.entry_id, e.label, e.active) for e in entries] == [
        ("0001", "Foo", False),
        ("0002", "Bar", True),
        ("0003", "Foo", False),
    ]


def test_parse_entries_strips_device_path():
    text = "Boot000A* GRUB\tHD(1,GPT,28c77f6b,0x800,0x12c000)/File(\\EFI\\grub\\grubx64.efi)\n"
    (entry,) = efi.parse_entries(text)
    assert entry.entry_id == "000A"
    assert entry.label == "GRUB"
    assert entry.active is True


def test_parse_entries_keeps_spaces_in_label():
    (entry,) = efi.parse_entries("Boot0004* Linux Boot Manager\n")
    assert entry.label == "Linux Boot Manager"


def test_remove_by_label_removes_all_matches(monkeypatch):
    fake = Recorder(lambda cmd: DummyResult(LISTING) if cmd == ["efibootmgr"] else DummyResult())
    monkeypatch.setattr(efi, "run", fake)

    assert efi.remove_by_label("Foo") == 2

    assert fake.commands == [
        ["efibootmgr"],
        ["efibootmgr", "-b", "0001", "-B", "-q"],
        ["efibootmgr", "-b", "0003", "-B", "-q"],
    ]


def test_remove_by_label_removes_active_entry(monkeypatch):
    fake = Recorder(lambda cmd: DummyResult(LISTING) if cmd == ["efibootmgr"] else DummyResult())
    monkeypatch.setattr(efi, "run", fake)

    assert efi.remove_by_label("Bar") == 1
    assert fake.commands[-1] == ["efibootmgr", "-b", "0002", "-B", "-q"]


def test_remove_by_label_without_match(monkeypatch):
    fake = Recorder(lambda cmd: DummyResult(LISTING))
    monkeypatch.setattr(efi, "run", fake)

    assert efi.remove_by_label("GRUB") == 0
    assert fake.commands == [["efibootmgr"]]


def test_remove_failure_propagates(monkeypatch):
    def respond(cmd):
        if cmd == ["efibootmgr"]:
            return DummyResult(LISTING)
        return DummyResult(rc=5, err="Could not delete variable")

    fake = Recorder(respond)
    monkeypatch.setattr(efi, "run", fake)

    with pytest.raises(ExternalToolFailure) as excinfo:
        efi.remove_by_label("Foo")

    assert "Could not delete variable" in str(excinfo.value)
    # no further removals after the first failure
    assert len(fake.commands) == 2
