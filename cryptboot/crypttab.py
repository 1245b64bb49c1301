"""Resolve the device backing a crypttab mapping."""
from __future__ import annotations

import re
from typing import Iterable, Iterator

from .errors import ConfigError
from .executil import trace
from .model import CrypttabEntry
from .paths import CRYPTTAB_PATH

_WHITESPACE = re.compile(r"\s+")


def parse_line(line: str) -> CrypttabEntry | None:
    stripped = _WHITESPACE.sub(" ", line).strip()
    if not stripped or stripped.startswith("#"):
        return None
    cols = stripped.split(" ")
    cols += [None] * (4 - len(cols))
    return CrypttabEntry(
        mapping_name=cols[0],
        device_spec=cols[1],
        key_spec=cols[2],
        options=cols[3],
    )


def parse_entries(lines: Iterable[str]) -> Iterator[CrypttabEntry]:
    for line in lines:
        entry = parse_line(line)
        if entry is not None:
            yield entry


def find_entry(mapping_name: str, lines: Iterable[str]) -> CrypttabEntry | None:
    # first match wins; later duplicates are never looked at
    for entry in parse_entries(lines):
        if entry.mapping_name == mapping_name:
            return entry
    return None


def resolve_device(mapping_name: str, path: str | None = None) -> str:
    path = path or CRYPTTAB_PATH
    try:
        with open(path, "r", encoding="utf-8") as fh:
            entry = find_entry(mapping_name, fh)
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError(f"cannot read {path}: {exc}") from exc
    if entry is None or not entry.device_spec:
        raise ConfigError(f"no device for mapping {mapping_name!r} in {path}")
    trace("crypttab.resolved", name=mapping_name, device=entry.device_spec, path=path)
    return entry.device_spec
