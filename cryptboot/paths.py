from __future__ import annotations

import os
from pathlib import Path

_DEFAULT_LOG_DIR = "/var/log/cryptboot"
_FALLBACK_LOG_DIR = "/tmp/cryptboot-logs"

SYSTEM_CONFIG_PATH = "/etc/cryptboot.conf"
CRYPTTAB_PATH = "/etc/crypttab"


def _expand(path: str) -> str:
    candidate = Path(path).expanduser()
    try:
        return str(candidate.resolve())
    except FileNotFoundError:
        return str(candidate)


def install_dir() -> str:
    """Return the directory the tool is installed in.

    Helpers shipped next to the package (the signing script, a bundled
    ``cryptboot.conf``) are looked up relative to this location.  The
    ``CRYPTBOOT_INSTALL_DIR`` environment variable overrides it.
    """

    override = os.environ.get("CRYPTBOOT_INSTALL_DIR")
    if override:
        return _expand(override)
    return str(Path(__file__).resolve().parent.parent)


def config_candidates() -> list[str]:
    return [SYSTEM_CONFIG_PATH, str(Path(install_dir()) / "cryptboot.conf")]


def log_dirs() -> list[str]:
    dirs = []
    override = os.environ.get("CRYPTBOOT_LOG_DIR")
    if override:
        dirs.append(_expand(override))
    dirs += [_DEFAULT_LOG_DIR, _FALLBACK_LOG_DIR]
    return dirs
