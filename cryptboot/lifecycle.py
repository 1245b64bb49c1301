"""Preflight checks and the mount/umount/update-grub/upgrade operations.

Every operation is a fixed sequence of collaborator calls.  Nothing is rolled
back when a step fails: the error propagates and the last announced step tells
the operator where the sequence stopped.  Two invocations racing on the same
mapping are not coordinated; the mount guards are checked once, right before
the first mutating call.
"""

from __future__ import annotations

import os
import shlex
from dataclasses import dataclass

from . import crypttab, efi, luks, mounts, signing
from .bootloader import BootLoader, get_loader
from .config import load_config
from .errors import ConfigError, CryptbootError, GuardViolation, PermissionDenied
from .executil import run, step, trace
from .model import Config


@dataclass(frozen=True)
class Context:
    config: Config
    boot_device: str
    signer: str
    loader: BootLoader

    @property
    def timeout(self) -> float | None:
        return self.config.command_timeout


def _require_root():
    if os.geteuid() != 0:
        raise PermissionDenied("cryptboot must be run as root")


def preflight(config_path: str | None = None) -> Context:
    _require_root()
    config = load_config(config_path)
    signer = signing.resolve_signer()
    boot_device = crypttab.resolve_device(config.boot_crypt_name)
    for path in (config.boot_dir, config.efi_dir):
        if not mounts.has_mount_definition(path, timeout=config.command_timeout):
            raise ConfigError(f"no mountpoint for {path} defined in /etc/fstab")
    loader = get_loader(config)
    trace(
        "lifecycle.preflight",
        boot_device=boot_device,
        signer=signer,
        loader=config.boot_loader_kind,
    )
    return Context(config=config, boot_device=boot_device, signer=signer, loader=loader)


def mount(ctx: Context):
    cfg = ctx.config
    states = [mounts.mount_state(p, timeout=ctx.timeout) for p in (cfg.boot_dir, cfg.efi_dir)]
    busy = [s.path for s in states if s.is_mounted]
    if busy:
        raise GuardViolation(f"{', '.join(busy)} already mounted, refusing to mount")

    step(f"Unlocking encrypted boot partition {ctx.boot_device} as {cfg.boot_crypt_name}...",
         op="mount", action="unlock")
    luks.open_mapping(ctx.boot_device, cfg.boot_crypt_name, timeout=ctx.timeout)
    step(f"Mounting {cfg.boot_dir}...", op="mount", action="mount", path=cfg.boot_dir)
    mounts.mount(cfg.boot_dir, timeout=ctx.timeout)
    step(f"Mounting {cfg.efi_dir}...", op="mount", action="mount", path=cfg.efi_dir)
    mounts.mount(cfg.efi_dir, timeout=ctx.timeout)


def umount(ctx: Context):
    cfg = ctx.config
    states = [mounts.mount_state(p, timeout=ctx.timeout) for p in (cfg.boot_dir, cfg.efi_dir)]
    missing = [s.path for s in states if not s.is_mounted]
    if missing:
        raise GuardViolation(f"{', '.join(missing)} not mounted, refusing to unmount")

    step(f"Unmounting {cfg.efi_dir}...", op="umount", action="umount", path=cfg.efi_dir)
    mounts.umount(cfg.efi_dir, timeout=ctx.timeout)
    step(f"Unmounting {cfg.boot_dir}...", op="umount", action="umount", path=cfg.boot_dir)
    mounts.umount(cfg.boot_dir, timeout=ctx.timeout)
    step(f"Locking encrypted boot partition {cfg.boot_crypt_name}...", op="umount", action="lock")
    luks.close_mapping(cfg.boot_crypt_name, timeout=ctx.timeout)


def update_boot_loader(ctx: Context):
    """Regenerate, reinstall and re-sign the boot loader.

    Assumes the boot and EFI directories are already mounted.
    """

    cfg = ctx.config
    loader = ctx.loader
    step(f"Generating {cfg.boot_loader_kind} configuration...", op="update", action="config")
    loader.regenerate_config(timeout=ctx.timeout)
    if loader.registers_efi_entry:
        step(f"Removing EFI boot entries labelled {cfg.efi_entry_label}...",
             op="update", action="efi_cleanup")
        removed = efi.remove_by_label(cfg.efi_entry_label, timeout=ctx.timeout)
        trace("lifecycle.efi_removed", label=cfg.efi_entry_label, count=removed)
    step(f"Installing {cfg.boot_loader_kind} into {cfg.efi_dir}...", op="update", action="install")
    loader.install(timeout=ctx.timeout)
    step(f"Signing {loader.loader_binary}...", op="update", action="sign")
    signing.sign(ctx.signer, loader.loader_binary, timeout=ctx.timeout)
    step("Flushing filesystem buffers...", op="update", action="sync")
    run(["sync"], check=True, timeout=ctx.timeout)


def _upgrade_packages(ctx: Context):
    cmd = shlex.split(ctx.config.package_upgrade_command)
    step(f"Upgrading packages ({ctx.config.package_upgrade_command})...", op="upgrade", action="packages")
    run(cmd, check=True, timeout=ctx.timeout, interactive=True)


def upgrade(ctx: Context):
    """Mount, upgrade packages, update the boot loader if needed, unmount.

    A failed package upgrade or boot loader update still unmounts and locks
    the boot partition when ``unmount_on_upgrade_failure`` is set; the
    original error is reported either way.
    """

    mount(ctx)
    try:
        _upgrade_packages(ctx)
        if ctx.loader.update_on_upgrade:
            update_boot_loader(ctx)
    except CryptbootError as exc:
        trace("lifecycle.upgrade_failed", error=str(exc),
              unmount=ctx.config.unmount_on_upgrade_failure)
        if ctx.config.unmount_on_upgrade_failure:
            step("Upgrade failed, unmounting boot partition...", op="upgrade", action="cleanup")
            umount(ctx)
        raise
    umount(ctx)


OPERATIONS = {
    "mount": mount,
    "umount": umount,
    "update-grub": update_boot_loader,
    "upgrade": upgrade,
}
