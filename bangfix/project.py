"""A TypeScript project snapshot: its tsconfig, parsed sources and pending edits."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional, Union

from . import config
from .analyzer import Analyzer, TscAnalyzer, find_root_path
from .diff_engine import DiffEngine
from .errors import ConfigError, PersistError
from .models import ApplyResult, Diagnostic, FileChange
from .syntax import SourceFile

logger = logging.getLogger(__name__)


class Project:
    """Owns the parsed sources of one generation and writes them back.

    Sources are parsed lazily and cached until the next ``save()``, which
    persists every dirty file and drops the cache so the following
    generation starts from disk.
    """

    def __init__(
        self,
        config_path: Path,
        analyzer: Optional[Analyzer] = None,
        diff_engine: Optional[DiffEngine] = None,
        backup: bool = True,
    ) -> None:
        self.config_path = Path(config_path).resolve()
        if not self.config_path.is_file():
            raise ConfigError(self.config_path, "file not found")
        self.root_dir = self.config_path.parent
        self.lib_dir = find_root_path(self.root_dir, config.TYPESCRIPT_LIB_PATH)
        self.analyzer: Analyzer = analyzer or TscAnalyzer()
        self.diff_engine = diff_engine or DiffEngine()
        self.backup = backup
        self.backup_id: Optional[str] = None
        self._sources: Dict[Path, SourceFile] = {}
        # Text of every file as it was before this run first changed it.
        self._originals: Dict[Path, str] = {}

    @classmethod
    def load(cls, config_path: Union[str, Path], **kwargs) -> "Project":
        return cls(Path(config_path), **kwargs)

    def resolve_path(self, file_name: Union[str, Path]) -> Path:
        return (self.root_dir / file_name).resolve()

    def source(self, path: Path) -> SourceFile:
        path = self.resolve_path(path)
        source = self._sources.get(path)
        if source is None:
            source = SourceFile.read(path)
            self._sources[path] = source
        return source

    def diagnostics(self) -> List[Diagnostic]:
        return self.analyzer.diagnostics(self)

    def pending_changes(self) -> List[FileChange]:
        changes = []
        for path, source in self._sources.items():
            if not source.dirty:
                continue
            original = source.on_disk(source.saved_text)
            self._originals.setdefault(path, original)
            changes.append(FileChange(
                file_path=str(path),
                change_type="modify",
                original_content=original,
                new_content=source.on_disk(source.text),
            ))
        return changes

    def save(self) -> ApplyResult:
        """Persist all pending edits and discard the parsed snapshot.

        Raises:
            PersistError: if any file could not be written
        """
        changes = self.pending_changes()
        if changes:
            result = self.diff_engine.apply_changes(
                changes,
                backup=self.backup,
                backup_id=self.backup_id,
                description=f"bangfix run on {self.config_path}",
            )
            if not result.success:
                raise PersistError(f"Saving {len(changes)} file(s) failed: {result.error}")
            self.backup_id = result.backup_id or self.backup_id
        else:
            result = ApplyResult(success=True, files_changed=[])

        self._sources.clear()
        return result

    def changes(self) -> List[FileChange]:
        """Every file changed during this run, original vs current text."""
        changes = []
        for path, original in sorted(self._originals.items()):
            cached = self._sources.get(path)
            if cached is not None:
                current = cached.on_disk(cached.text)
            else:
                current = path.read_text(encoding="utf-8")
            if current != original:
                changes.append(FileChange(
                    file_path=str(path),
                    change_type="modify",
                    original_content=original,
                    new_content=current,
                ))
        return changes
