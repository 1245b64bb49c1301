"""Locate and run the Secure Boot signing helper."""
from __future__ import annotations

import os
import shutil

from .executil import run, trace
from .paths import install_dir

SIGNER_NAME = "cryptboot-efikeys"


def resolve_signer(name: str = SIGNER_NAME) -> str:
    """Return the signing helper from ``PATH`` or next to the installation."""

    found = shutil.which(name)
    if found:
        return found
    fallback = os.path.join(install_dir(), name)
    trace("signing.fallback", name=name, path=fallback)
    return fallback


def sign(signer: str, path: str, timeout: float | None = None):
    run([signer, "sign", path], check=True, timeout=timeout)
