"""Load ``cryptboot.conf`` on top of the built-in defaults.

The file uses shell variable syntax so existing configurations keep working::

    BOOT_CRYPT_NAME="cryptboot"
    PKG_UPGRADE_CMD="pacman -Syu"
    EFI_PATH_GRUB="EFI/${EFI_ID_GRUB}/grubx64.efi"

$NAME and ${NAME} refer to keys assigned earlier in the same file.
Only the first existing file from :func:`paths.config_candidates` is read.
"""

from __future__ import annotations

import dataclasses
import os
import shlex
import string
from typing import Iterable

from .errors import ConfigError
from .executil import log, trace
from .model import Config
from .paths import config_candidates

KEYS = {
    "BOOT_CRYPT_NAME": "boot_crypt_name",
    "BOOT_DIR": "boot_dir",
    "EFI_DIR": "efi_dir",
    "BOOT_LOADER": "boot_loader_kind",
    "EFI_ID_GRUB": "efi_entry_label",
    "EFI_PATH_GRUB": "efi_loader_path",
    "PKG_UPGRADE_CMD": "package_upgrade_command",
    "UNMOUNT_ON_UPGRADE_FAILURE": "unmount_on_upgrade_failure",
    "COMMAND_TIMEOUT": "command_timeout",
}

_TRUE = {"1", "yes", "true", "on"}
_FALSE = {"0", "no", "false", "off"}


def _parse_bool(key: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ConfigError(f"{key}: expected yes/no, got {value!r}")


def _parse_timeout(key: str, value: str) -> float | None:
    if not value.strip():
        return None
    try:
        timeout = float(value)
    except ValueError:
        raise ConfigError(f"{key}: expected seconds, got {value!r}") from None
    if timeout <= 0:
        raise ConfigError(f"{key}: timeout must be positive")
    return timeout


def parse_assignments(lines: Iterable[str], source: str = "<config>") -> dict[str, str]:
    values: dict[str, str] = {}
    for lineno, line in enumerate(lines, 1):
        try:
            tokens = shlex.split(line, comments=True)
        except ValueError as exc:
            raise ConfigError(f"{source}:{lineno}: {exc}") from exc
        if not tokens:
            continue
        if len(tokens) > 1 or "=" not in tokens[0]:
            raise ConfigError(f"{source}:{lineno}: expected KEY=value")
        key, value = tokens[0].split("=", 1)
        try:
            value = string.Template(value).substitute(values)
        except KeyError as exc:
            raise ConfigError(f"{source}:{lineno}: ${exc.args[0]} is not set earlier in the file") from None
        except ValueError as exc:
            raise ConfigError(f"{source}:{lineno}: {exc}") from None
        values[key.strip()] = value
    return values


def build_config(values: dict[str, str], source: str = "<config>") -> Config:
    overrides = {}
    for key, value in values.items():
        field = KEYS.get(key)
        if field is None:
            log("WARN", "config.unknown_key", key=key, source=source)
            continue
        if field == "unmount_on_upgrade_failure":
            overrides[field] = _parse_bool(key, value)
        elif field == "command_timeout":
            overrides[field] = _parse_timeout(key, value)
        else:
            if not value:
                raise ConfigError(f"{source}: {key} must not be empty")
            overrides[field] = value
    return dataclasses.replace(Config(), **overrides)


def find_config_file(candidates: Iterable[str] | None = None) -> str | None:
    for path in candidates if candidates is not None else config_candidates():
        if os.path.isfile(path):
            return path
    return None


def load_config(path: str | None = None) -> Config:
    """Return the effective configuration.

    With an explicit ``path`` that file must exist; otherwise the default
    locations are searched and the defaults are used when none exists.
    """

    if path is None:
        path = find_config_file()
        if path is None:
            trace("config.defaults")
            return Config()
    try:
        with open(path, "r", encoding="utf-8") as fh:
            values = parse_assignments(fh, source=path)
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError(f"cannot read {path}: {exc}") from exc
    config = build_config(values, source=path)
    trace("config.loaded", path=path, config=dataclasses.asdict(config))
    return config
