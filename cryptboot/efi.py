"""UEFI boot entries as reported by ``efibootmgr``."""
from __future__ import annotations

import re

from .executil import run, trace
from .model import EfiBootEntry

# e.g. "Boot0003* GRUB" or, with newer efibootmgr, "Boot0003* GRUB\tHD(1,GPT,...)"
_ENTRY_RE = re.compile(r"^Boot(?P<entry_id>[0-9A-Fa-f]+)(?P<active>\*?)\s+(?P<label>.+)$")


def parse_entries(text: str) -> list[EfiBootEntry]:
    """Parse a listing; lines that are not boot entries are skipped."""

    entries: list[EfiBootEntry] = []
    for line in text.splitlines():
        m = _ENTRY_RE.match(line)
        if not m:
            continue
        label = m.group("label").split("\t", 1)[0].rstrip()
        entries.append(
            EfiBootEntry(
                entry_id=m.group("entry_id"),
                label=label,
                active=m.group("active") == "*",
            )
        )
    return entries


def list_entries(timeout: float | None = None) -> list[EfiBootEntry]:
    r = run(["efibootmgr"], check=True, timeout=timeout)
    entries = parse_entries(r.out)
    trace("efi.entries", entries=[[e.entry_id, e.label, e.active] for e in entries])
    return entries


def remove_entry(entry_id: str, timeout: float | None = None) -> None:
    run(["efibootmgr", "-b", entry_id, "-B", "-q"], check=True, timeout=timeout)


def remove_by_label(label: str, timeout: float | None = None) -> int:
    """Delete every boot entry named ``label`` and return how many went.

    The listing is read once; entries created after that are not seen.
    """

    removed = 0
    for entry in list_entries(timeout=timeout):
        if entry.label != label:
            continue
        trace("efi.remove", entry_id=entry.entry_id, label=label, active=entry.active)
        remove_entry(entry.entry_id, timeout=timeout)
        removed += 1
    return removed
