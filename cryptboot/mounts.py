"""Mount state queries and fstab-driven mount helpers."""
from .executil import run, trace
from .model import MountPoint


def is_mounted(path: str, timeout: float | None = None) -> bool:
    # asked every time; mount state can change between two checks
    r = run(["mountpoint", "-q", path], check=False, timeout=timeout)
    trace("mounts.state", path=path, mounted=r.rc == 0)
    return r.rc == 0


def mount_state(path: str, timeout: float | None = None) -> MountPoint:
    return MountPoint(path=path, is_mounted=is_mounted(path, timeout=timeout))


def has_mount_definition(path: str, timeout: float | None = None) -> bool:
    """Return ``True`` when fstab defines a mountpoint for ``path``."""

    r = run(["findmnt", "-s", "-n", path], check=False, timeout=timeout)
    return r.rc == 0 and bool((r.out or "").strip())


def mount(path: str, timeout: float | None = None):
    run(["mount", path], check=True, timeout=timeout)


def umount(path: str, timeout: float | None = None):
    run(["umount", path], check=True, timeout=timeout)
