"""Error kinds raised by cryptboot; every one of them ends the invocation."""

from __future__ import annotations

from typing import Sequence


class CryptbootError(RuntimeError):
    exit_code = 1


class PermissionDenied(CryptbootError):
    """Raised when the tool is not running as root."""


class ConfigError(CryptbootError):
    """Raised when the host configuration cannot support the operation."""


class GuardViolation(CryptbootError):
    """Raised when a mount/unmount precondition is not met."""


class ExternalToolFailure(CryptbootError):
    """Raised when a collaborator exits non-zero, times out or is missing."""

    def __init__(
            self,
            cmd: Sequence[str],
            returncode: int | None = None,
            stderr: str | None = None,
            *,
            reason: str | None = None,
    ) -> None:
        self.cmd = list(cmd)
        self.returncode = returncode
        self.stderr = stderr or ""
        why = reason or f"exit status {returncode}"
        detail = self.stderr.strip()
        message = f"command failed ({why}): {' '.join(self.cmd)}"
        if detail:
            message += f": {detail}"
        super().__init__(message)
