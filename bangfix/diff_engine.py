"""DiffEngine for previewing, persisting and rolling back source edits."""

from __future__ import annotations

import difflib
import json
import logging
import shutil
import uuid
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from . import config
from .models import ApplyResult, FileChange

logger = logging.getLogger(__name__)


class DiffEngine:
    """Handles previewing and applying file changes safely."""

    def __init__(self, backup_dir: Optional[Path] = None):
        """Initialize DiffEngine.

        Args:
            backup_dir: Directory to store backups. Defaults to ~/.bangfix/backups/
        """
        self.backup_dir = backup_dir or config.BACKUP_DIR

    def create_diff(self, original: str, modified: str, filename: str = "file") -> str:
        """Create unified diff between two versions.

        Args:
            original: Original content
            modified: Modified content
            filename: Name of file for diff header

        Returns:
            Unified diff string
        """
        diff = difflib.unified_diff(
            original.splitlines(keepends=True),
            modified.splitlines(keepends=True),
            fromfile=f"a/{filename}",
            tofile=f"b/{filename}",
        )
        return "".join(diff)

    def preview_changes(self, changes: List[FileChange], root: Optional[Path] = None) -> str:
        """Render every change as a unified diff, paths relative to *root*."""
        parts = []
        for change in changes:
            name = change.file_path
            if root is not None:
                try:
                    name = str(Path(change.file_path).relative_to(root))
                except ValueError:
                    pass
            parts.append(
                change.diff
                or self.create_diff(change.original_content or "", change.new_content or "", name)
            )
        return "\n".join(part for part in parts if part)

    def apply_changes(
        self,
        changes: List[FileChange],
        backup: bool = True,
        backup_id: Optional[str] = None,
        description: str = "",
    ) -> ApplyResult:
        """Write changed files to disk.

        Args:
            changes: File changes to write
            backup: Whether to back up originals before writing
            backup_id: Existing backup to add to; files already in it are
                not backed up again, so it keeps the state before the run
            description: Stored in the backup metadata

        Returns:
            ApplyResult with success status and details
        """
        if backup:
            backup_id = self._create_backup(changes, backup_id, description)
        else:
            backup_id = None

        files_changed = []
        try:
            for change in changes:
                file_path = Path(change.file_path)
                if not file_path.exists():
                    raise FileNotFoundError(f"File not found: {file_path}")
                file_path.write_text(change.new_content or "", encoding="utf-8")
                files_changed.append(str(file_path))
        except OSError as e:
            logger.error("Writing changes failed: %s", e)
            if backup_id:
                self.rollback(backup_id)
            return ApplyResult(success=False, files_changed=[], error=str(e))

        return ApplyResult(success=True, files_changed=files_changed, backup_id=backup_id)

    def _create_backup(
        self,
        changes: List[FileChange],
        backup_id: Optional[str],
        description: str,
    ) -> str:
        """Copy originals of not-yet-backed-up files into the backup.

        Returns:
            Backup ID for rollback
        """
        if backup_id is None:
            backup_id = f"{datetime.now().strftime('%Y%m%d_%H%M%S')}_{uuid.uuid4().hex[:8]}"
        backup_path = self.backup_dir / backup_id
        backup_path.mkdir(parents=True, exist_ok=True)

        metadata_file = backup_path / "metadata.json"
        if metadata_file.exists():
            metadata = json.loads(metadata_file.read_text())
        else:
            metadata = {
                "description": description,
                "timestamp": datetime.now().isoformat(),
                "files": [],
            }

        known = {entry["original"] for entry in metadata["files"]}
        for change in changes:
            file_path = Path(change.file_path)
            if str(file_path) in known or not file_path.exists():
                continue
            # Index prefix keeps same-named files from different folders apart.
            backup_file = backup_path / f"{len(metadata['files']):04d}_{file_path.name}"
            shutil.copy2(file_path, backup_file)
            metadata["files"].append({
                "original": str(file_path),
                "backup": str(backup_file),
            })
            known.add(str(file_path))

        metadata_file.write_text(json.dumps(metadata, indent=2))
        return backup_id

    def rollback(self, backup_id: str) -> bool:
        """Rollback changes using a backup.

        Args:
            backup_id: ID of backup to restore

        Returns:
            True if successful, False otherwise
        """
        backup_path = self.backup_dir / backup_id
        if not backup_path.exists():
            return False

        try:
            metadata = json.loads((backup_path / "metadata.json").read_text())
            for file_info in metadata["files"]:
                backup_file = Path(file_info["backup"])
                if backup_file.exists():
                    shutil.copy2(backup_file, Path(file_info["original"]))
            return True
        except (OSError, ValueError, KeyError) as exc:
            logger.error("Rollback of %s failed: %s", backup_id, exc)
            return False

    def list_backups(self) -> list[dict]:
        """List all available backups, newest first."""
        backups = []
        if not self.backup_dir.exists():
            return backups

        for backup_dir in self.backup_dir.iterdir():
            metadata_file = backup_dir / "metadata.json"
            if backup_dir.is_dir() and metadata_file.exists():
                metadata = json.loads(metadata_file.read_text())
                metadata["backup_id"] = backup_dir.name
                backups.append(metadata)

        return sorted(backups, key=lambda x: x["timestamp"], reverse=True)
