"""Open and close the encrypted boot mapping."""

from __future__ import annotations

from .executil import run


def open_mapping(device: str, name: str, timeout: float | None = None):
    # interactive: cryptsetup asks for the passphrase on the terminal
    run(["cryptsetup", "open", device, name], check=True, timeout=timeout, interactive=True)


def close_mapping(name: str, timeout: float | None = None):
    run(["cryptsetup", "close", name], check=True, timeout=timeout)
