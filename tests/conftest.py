import ast
import sys
from collections import defaultdict
from pathlib import Path
from typing import Callable, Dict, Set

import pytest

from cryptboot import executil

_ROOT_DIR = Path(__file__).absolute().parent.parent
_PACKAGE_DIR = (_ROOT_DIR / "cryptboot").absolute()

_EXECUTED_LINES: Dict[Path, Set[int]] = defaultdict(set)
_CANDIDATE_LINES: Dict[Path, Set[int]] = {}
_PREVIOUS_TRACE = None


def _statement_lines(path: Path) -> Set[int]:
    try:
        tree = ast.parse(path.read_text(encoding="utf-8"), filename=str(path))
    except SyntaxError:
        return set()
    lines = set()
    for node in ast.walk(tree):
        if isinstance(node, ast.stmt) and not isinstance(node, (ast.Import, ast.ImportFrom)):
            lines.add(node.lineno)
    return lines


for _path in sorted(_PACKAGE_DIR.glob("*.py")):
    _CANDIDATE_LINES[_path.absolute()] = _statement_lines(_path)


def _trace(frame, event, arg):
    if event == "line":
        filename = Path(frame.f_code.co_filename)
        if filename in _CANDIDATE_LINES:
            _EXECUTED_LINES[filename].add(frame.f_lineno)
    return _trace


def pytest_sessionstart(session):
    global _PREVIOUS_TRACE
    _PREVIOUS_TRACE = sys.gettrace()
    sys.settrace(_trace)


def pytest_sessionfinish(session, exitstatus):
    sys.settrace(_PREVIOUS_TRACE)
    terminal = session.config.pluginmanager.get_plugin("terminalreporter")
    write_line = terminal.write_line if terminal else print
    write_line("")
    write_line("Coverage summary for 'cryptboot':")
    for path, candidates in _CANDIDATE_LINES.items():
        if not candidates:
            continue
        hit = _EXECUTED_LINES.get(path, set()) & candidates
        pct = len(hit) / len(candidates) * 100.0
        write_line(f"{str(path.relative_to(_ROOT_DIR)):<40} {len(candidates):>5} {pct:>6.1f}%")


class DummyResult:
    def __init__(self, out: str = "", rc: int = 0, err: str = "") -> None:
        self.out = out
        self.rc = rc
        self.err = err


class Recorder:
    """Stand-in for ``executil.run`` that records argv lists."""

    def __init__(self, respond: Callable[[list], DummyResult] | None = None):
        self.commands: list[list[str]] = []
        self.kwargs: list[dict] = []
        self.respond = respond

    def __call__(self, cmd, check=True, **kwargs):
        cmd = list(cmd)
        self.commands.append(cmd)
        self.kwargs.append(dict(kwargs, check=check))
        result = self.respond(cmd) if self.respond else DummyResult()
        if check and result.rc != 0:
            raise executil.ExternalToolFailure(cmd, result.rc, result.err)
        return result


@pytest.fixture(autouse=True)
def isolated_log(tmp_path, monkeypatch):
    log_dir = tmp_path / "logs"
    monkeypatch.setattr(executil, "LOG_DIRS", [str(log_dir)])
    monkeypatch.setattr(executil, "LOG_PATH", None)
    return log_dir / "cryptboot.jsonl"
