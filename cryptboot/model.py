from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Config:
    boot_crypt_name: str = "cryptboot"
    boot_dir: str = "/boot"
    efi_dir: str = "/boot/efi"
    boot_loader_kind: str = "grub"
    efi_entry_label: str = "GRUB"
    efi_loader_path: str = "EFI/grub/grubx64.efi"
    package_upgrade_command: str = "pacman -Syu"
    unmount_on_upgrade_failure: bool = True
    command_timeout: Optional[float] = None


@dataclass(frozen=True)
class CrypttabEntry:
    mapping_name: str
    device_spec: Optional[str] = None
    key_spec: Optional[str] = None
    options: Optional[str] = None


@dataclass(frozen=True)
class EfiBootEntry:
    entry_id: str
    label: str
    active: bool = False


@dataclass(frozen=True)
class MountPoint:
    path: str
    is_mounted: bool
