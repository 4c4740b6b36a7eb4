"""Data models shared by the analyzer, fix engine and persistence layers."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Literal, NamedTuple, Optional


class DiagnosticKey(NamedTuple):
    """Identity of a diagnostic across generations.

    Offsets shift after every edit, so they are not part of the key.
    """
    message: str
    line: int
    file_path: Path


@dataclass(frozen=True)
class Diagnostic:
    """A single compiler diagnostic for one project snapshot."""
    file_path: Path
    start_offset: int
    line: int
    message: str
    code: int = 0

    @property
    def key(self) -> DiagnosticKey:
        return DiagnosticKey(self.message, self.line, self.file_path)

    def __str__(self) -> str:
        return f"{self.file_path}:{self.line} TS{self.code}: {self.message}"


@dataclass
class FileChange:
    """Represents changes to a single file."""
    file_path: str
    change_type: Literal["modify"]
    original_content: Optional[str] = None
    new_content: Optional[str] = None
    diff: str = ""

    def __post_init__(self):
        """Validate change type constraints."""
        if self.change_type != "modify":
            raise ValueError(f"Unsupported change type: {self.change_type}")
        if self.original_content is None or self.new_content is None:
            raise ValueError("Modify changes must have both original and new content")


@dataclass
class ApplyResult:
    """Result of applying changes."""
    success: bool
    files_changed: List[str]
    backup_id: Optional[str] = None
    error: Optional[str] = None

    def __str__(self) -> str:
        if self.success:
            return f"Applied changes to {len(self.files_changed)} files"
        return f"Failed: {self.error}"


@dataclass
class FixRecord:
    """One successful edit made by the engine."""
    diagnostic: Diagnostic
    generation: int
    file_path: Path
    before: str
    after: str


@dataclass
class RunReport:
    """Outcome of a complete fix run."""
    fixes: List[FixRecord] = field(default_factory=list)
    skipped: List[Diagnostic] = field(default_factory=list)
    generations: int = 0
    # Absent-value diagnostic count seen at the start of each generation.
    absent_counts: List[int] = field(default_factory=list)
    backup_id: Optional[str] = None

    @property
    def num_fixed(self) -> int:
        return len(self.fixes)

    @property
    def num_skipped(self) -> int:
        return len(self.skipped)

    def fixes_by_file(self) -> Dict[Path, int]:
        counts: Dict[Path, int] = {}
        for record in self.fixes:
            counts[record.file_path] = counts.get(record.file_path, 0) + 1
        return counts
