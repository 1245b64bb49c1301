"""CLI entrypoint for cryptboot."""

from __future__ import annotations

import argparse
import sys
import time
from typing import Any, Dict, Optional

from . import lifecycle
from .errors import CryptbootError
from .executil import append_jsonl, log, resolve_log_path

COMMANDS = {
    "mount": "Unlock and mount your encrypted boot partition and EFI System Partition",
    "umount": "Unmount and lock your encrypted boot partition and EFI System Partition",
    "update-grub": "Update GRUB2 boot loader and sign it with your UEFI Secure Boot keys",
    "upgrade": "Mount, upgrade the system with your package manager, update GRUB2 and unmount",
}

CLI_START_MONO = time.perf_counter()


class _Parser(argparse.ArgumentParser):
    def error(self, message):
        # usage errors share the exit status of every other failure
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def _record_result(kind: str, extra: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "result": kind,
        "ts": int(time.time()),
        "timing_total_ms": int(max(0.0, (time.perf_counter() - CLI_START_MONO) * 1000)),
    }
    if extra:
        payload.update(extra)
    path = resolve_log_path()
    if path:
        append_jsonl(path, payload)
    return payload


def _commands_epilog() -> str:
    width = max(len(name) for name in COMMANDS)
    lines = ["commands:"]
    lines += [f"  {name:<{width}}  {text}" for name, text in COMMANDS.items()]
    return "\n".join(lines)


def build_parser() -> argparse.ArgumentParser:
    parser = _Parser(
        prog="cryptboot",
        description="Encrypted boot partition manager with UEFI Secure Boot support",
        epilog=_commands_epilog(),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("command", nargs="?", metavar="{" + ",".join(COMMANDS) + "}")
    parser.add_argument("--config", default=None, help="read this configuration file instead of the defaults")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0
    if args.command not in COMMANDS:
        parser.print_help(sys.stderr)
        print(f"\ncryptboot: unknown command {args.command!r}", file=sys.stderr)
        return 1

    log("INFO", "cli.start", command=args.command, config=args.config)
    try:
        ctx = lifecycle.preflight(args.config)
        lifecycle.OPERATIONS[args.command](ctx)
    except CryptbootError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        _record_result(
            "FAIL",
            {"command": args.command, "error": type(exc).__name__, "why": str(exc)},
        )
        return exc.exit_code
    _record_result("OK", {"command": args.command})
    return 0


if __name__ == "__main__":
    sys.exit(main())
