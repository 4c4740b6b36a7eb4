"""Pytest configuration and fixtures for bangfix tests."""

import re
from pathlib import Path
from typing import Callable, Dict, List

import pytest

from bangfix.diff_engine import DiffEngine
from bangfix.models import Diagnostic
from bangfix.project import Project
from bangfix.syntax import SourceFile

UNDEFINED_MESSAGE = "Object is possibly 'undefined'."


@pytest.fixture(autouse=True)
def _isolated_home(tmp_path: Path, monkeypatch):
    """Keep backups out of the real ~/.bangfix during tests."""
    monkeypatch.setattr("bangfix.config.BACKUP_DIR", tmp_path / "home" / "backups")


class PatternAnalyzer:
    """Stand-in type checker driven by regular expressions.

    Every match of a pattern in a ``.ts``/``.tsx`` file under the project
    root becomes a diagnostic at the match start. Because it re-reads the
    files on every call, fixed code stops being reported, the way tsc
    behaves.
    """

    def __init__(self, patterns: Dict[str, str]):
        self.patterns = {re.compile(p): message for p, message in patterns.items()}
        self.calls = 0

    def diagnostics(self, project: Project) -> List[Diagnostic]:
        self.calls += 1
        found = []
        files = sorted(project.root_dir.glob("*.ts")) + sorted(project.root_dir.glob("*.tsx"))
        for path in files:
            text = path.read_text(encoding="utf-8")
            for pattern, message in self.patterns.items():
                for match in pattern.finditer(text):
                    found.append(Diagnostic(
                        file_path=path.resolve(),
                        start_offset=match.start(),
                        line=text.count("\n", 0, match.start()) + 1,
                        message=message,
                        code=2532,
                    ))
        return sorted(found, key=lambda d: (str(d.file_path), d.start_offset))


@pytest.fixture
def pattern_analyzer() -> Callable[..., PatternAnalyzer]:
    return PatternAnalyzer


@pytest.fixture
def ts_project(tmp_path: Path) -> Callable[..., Path]:
    """Write a tsconfig plus the given sources; returns the tsconfig path."""

    def _make(files: Dict[str, str]) -> Path:
        root = tmp_path / "project"
        root.mkdir(exist_ok=True)
        tsconfig = root / "tsconfig.json"
        tsconfig.write_text('{"compilerOptions": {"strict": true, "noEmit": true}}\n')
        for name, text in files.items():
            (root / name).write_text(text, encoding="utf-8")
        return tsconfig

    return _make


@pytest.fixture
def load_project(tmp_path: Path) -> Callable[..., Project]:
    def _load(tsconfig: Path, analyzer, backup: bool = True) -> Project:
        return Project.load(
            tsconfig,
            analyzer=analyzer,
            diff_engine=DiffEngine(backup_dir=tmp_path / "backups"),
            backup=backup,
        )

    return _load


@pytest.fixture
def parse() -> Callable[..., SourceFile]:
    """Parse TypeScript text without touching the filesystem."""

    def _parse(text: str, name: str = "sample.ts") -> SourceFile:
        return SourceFile(Path("/virtual") / name, text)

    return _parse


def offset_of(text: str, needle: str, occurrence: int = 0) -> int:
    """Character offset of the *occurrence*-th match of *needle*."""
    start = -1
    for _ in range(occurrence + 1):
        start = text.index(needle, start + 1)
    return start
