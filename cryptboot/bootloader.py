"""Boot loader strategies.

Each strategy knows how to regenerate its configuration and how to put its
EFI binary on the ESP.  The lifecycle code only talks to this small surface,
so supporting another loader means adding a class and registering it in
``LOADERS``.
"""

from __future__ import annotations

import os
from typing import Protocol

from .errors import ConfigError
from .executil import run
from .model import Config


class BootLoader(Protocol):
    kind: str
    update_on_upgrade: bool
    registers_efi_entry: bool

    @property
    def loader_binary(self) -> str: ...

    def regenerate_config(self, timeout: float | None = None): ...

    def install(self, timeout: float | None = None): ...


class GrubLoader:
    kind = "grub"
    # package hooks do not refresh the ESP copy of GRUB
    update_on_upgrade = True
    registers_efi_entry = True
    target = "x86_64-efi"

    def __init__(self, config: Config):
        self.config = config

    @property
    def config_file(self) -> str:
        return os.path.join(self.config.boot_dir, "grub", "grub.cfg")

    @property
    def loader_binary(self) -> str:
        return os.path.join(self.config.efi_dir, self.config.efi_loader_path)

    def regenerate_config(self, timeout: float | None = None):
        run(["grub-mkconfig", "-o", self.config_file], check=True, timeout=timeout)

    def install(self, timeout: float | None = None):
        cmd = [
            "grub-install",
            f"--target={self.target}",
            f"--boot-directory={self.config.boot_dir}",
            f"--efi-directory={self.config.efi_dir}",
            f"--bootloader-id={self.config.efi_entry_label}",
        ]
        run(cmd, check=True, timeout=timeout)


LOADERS = {
    GrubLoader.kind: GrubLoader,
}


def get_loader(config: Config) -> BootLoader:
    try:
        cls = LOADERS[config.boot_loader_kind]
    except KeyError:
        known = ", ".join(sorted(LOADERS))
        raise ConfigError(
            f"unsupported boot loader {config.boot_loader_kind!r} (known: {known})"
        ) from None
    return cls(config)
