from __future__ import annotations

"""Subprocess wrapper and JSONL event log."""

import datetime as _dt
import json
import os
import subprocess
import time
from typing import Sequence

from .errors import ExternalToolFailure
from .paths import log_dirs


LOG_DIRS: list[str] | None = None
LOG_PATH: str | None = None


def _log_dirs() -> list[str]:
    if LOG_DIRS:
        return list(LOG_DIRS)
    return log_dirs()


def _ensure_logger() -> str | None:
    global LOG_PATH
    if LOG_PATH:
        return LOG_PATH
    for d in _log_dirs():
        d_expanded = os.path.expanduser(d)
        try:
            os.makedirs(d_expanded, exist_ok=True)
            LOG_PATH = os.path.join(d_expanded, "cryptboot.jsonl")
            return LOG_PATH
        except OSError:
            continue
    LOG_PATH = None
    return None


def resolve_log_path() -> str | None:
    """Return the active log path, creating directories when possible."""

    return _ensure_logger()


class Result:
    def __init__(self, rc: int, out: str, err: str, duration: float):
        self.rc, self.out, self.err, self.duration = rc, out, err, duration


LEVELS = {"TRACE": 10, "INFO": 20, "WARN": 30, "ERROR": 40, "NONE": 100}
LOG_LEVEL = os.environ.get("CRYPTBOOT_LOG_LEVEL", "TRACE").upper()


def _write_jsonl(obj: dict):
    path = _ensure_logger()
    try:
        if path:
            with open(path, "a", encoding="utf-8") as f:
                f.write(json.dumps(obj) + "\n")
    except OSError:
        pass


def log(level: str, event: str, **fields):
    lvl = LEVELS.get(level.upper(), 100)
    cur = LEVELS.get(LOG_LEVEL, 100)
    if lvl < cur:
        return
    ts = _dt.datetime.now(_dt.timezone.utc).isoformat()
    rec = {"ts": ts, "level": level.upper(), "event": event, "pid": os.getpid()}
    rec.update(fields)
    _write_jsonl(rec)


def trace(event: str, **fields):
    log("TRACE", event, **fields)


def step(message: str, **fields):
    """Announce a step on stdout before it runs and record it in the log."""

    print(message, flush=True)
    log("INFO", "step", message=message, **fields)


def run(
    cmd: Sequence[str],
    check: bool = True,
    timeout: float | None = None,
    interactive: bool = False,
    env: dict | None = None,
) -> Result:
    """Run ``cmd`` and wait for it.

    ``interactive`` commands inherit the terminal (passphrase prompts,
    package manager confirmations) so their output is not captured.
    ``timeout`` is unbounded unless given.  With ``check`` a non-zero exit
    raises :class:`ExternalToolFailure`; a timeout or an executable that
    cannot be started always does.
    """

    argv = list(cmd)
    trace("exec.start", cmd=argv, timeout=timeout, interactive=interactive)
    started = time.time()
    try:
        proc = subprocess.run(
            argv,
            capture_output=not interactive,
            text=True,
            timeout=timeout,
            env=env,
        )
    except subprocess.TimeoutExpired as exc:
        trace("exec.timeout", cmd=argv, timeout=timeout)
        raise ExternalToolFailure(argv, reason=f"timed out after {timeout}s") from exc
    except FileNotFoundError as exc:
        trace("exec.missing", cmd=argv)
        raise ExternalToolFailure(argv, reason="executable not found") from exc
    except OSError as exc:
        # not executable, bad interpreter line, ...
        trace("exec.error", cmd=argv, errno=exc.errno, error=exc.strerror)
        raise ExternalToolFailure(argv, reason=exc.strerror or str(exc)) from exc
    dur = time.time() - started
    out = proc.stdout or ""
    err = proc.stderr or ""
    trace("exec.done", cmd=argv, rc=proc.returncode, dur=dur, out=out, err=err)
    if check and proc.returncode != 0:
        raise ExternalToolFailure(argv, proc.returncode, err)
    return Result(proc.returncode, out, err, dur)


def append_jsonl(path: str, obj: dict):
    try:
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "a", encoding="utf-8") as f:
            f.write(json.dumps(obj, ensure_ascii=False) + "\n")
    except OSError:
        pass
