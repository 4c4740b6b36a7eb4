"""Exception taxonomy for bangfix.

Per-diagnostic failures such as ``StaleNodeError`` are caught
by the fix engine and the diagnostic is skipped. ``ProjectError`` and its
subclasses mean the environment is broken and abort the run.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional


class BangfixError(Exception):
    """Base class for all bangfix errors."""


class StaleNodeError(BangfixError):
    """Raised when a syntax node is used after its file was edited."""

    def __init__(self, path: Path, node_generation: int, file_generation: int) -> None:
        self.path = path
        self.node_generation = node_generation
        self.file_generation = file_generation
        super().__init__(
            f"Node from generation {node_generation} of {path} used at generation "
            f"{file_generation}"
        )


class ProjectError(BangfixError):
    """Fatal error: the project cannot be loaded, analyzed or written."""


class ConfigError(ProjectError):
    """Raised when the tsconfig file is missing or rejected by the compiler."""

    def __init__(self, config_path: Path, detail: Optional[str] = None) -> None:
        self.config_path = config_path
        self.detail = detail
        message = f"Cannot use project configuration {config_path}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class AnalyzerError(ProjectError):
    """Raised when the type checker cannot be run or its output is unusable."""


class PersistError(ProjectError):
    """Raised when edited files cannot be written back to disk."""
