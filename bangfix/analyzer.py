"""Run the TypeScript compiler and turn its output into ``Diagnostic`` objects."""

from __future__ import annotations

import logging
import re
import shlex
import subprocess
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional, Protocol, Sequence

from . import config
from .errors import AnalyzerError, ConfigError
from .models import Diagnostic

if TYPE_CHECKING:
    from .project import Project

logger = logging.getLogger(__name__)

# src/a.ts(3,11): error TS2532: Object is possibly 'undefined'.
_LOCATED = re.compile(
    r"^(?P<file>.+?)\((?P<line>\d+),(?P<col>\d+)\): "
    r"(?P<category>error|warning|message|suggestion) TS(?P<code>\d+): (?P<message>.*)$"
)
# error TS5058: The specified path does not exist: 'missing.json'.
_GLOBAL = re.compile(r"^(?P<category>error|warning) TS(?P<code>\d+): (?P<message>.*)$")
_LINE_BREAK = re.compile(r"\r\n|[\n\r\u2028\u2029]")

# tsc exit codes: 0 clean, 1 diagnostics (outputs skipped), 2 diagnostics (outputs generated)
_TSC_OK_EXIT_CODES = {0, 1, 2}

# Global errors after which tsc never reaches the sources: the tsconfig is
# missing or cannot be read as a JSON object.
_FATAL_CONFIG_CODES = frozenset({5057, 5058, 5081, 5083, 5092})


class Analyzer(Protocol):
    """Produces the ordered diagnostics for the current state of a project."""

    def diagnostics(self, project: "Project") -> List[Diagnostic]:
        ...


def find_root_path(start: Path, target: str) -> Optional[Path]:
    """Walk upward from *start* until ``<dir>/<target>`` exists.

    Args:
        start: File or directory to start from
        target: Relative path to look for in every directory

    Returns:
        The existing path, or None once the filesystem root is passed
    """
    current = start.resolve()
    while True:
        candidate = current / target
        if candidate.exists():
            return candidate
        if current.parent == current:
            return None
        current = current.parent


def offset_from_position(text: str, line: int, column: int) -> int:
    """Convert a 1-based line and UTF-16 column into a character offset."""
    line_start = 0
    for _ in range(line - 1):
        match = _LINE_BREAK.search(text, line_start)
        if match is None:
            break
        line_start = match.end()

    units = column - 1
    offset = line_start
    while units > 0 and offset < len(text):
        units -= 2 if ord(text[offset]) > 0xFFFF else 1
        offset += 1
    return offset


class TscAnalyzer:
    """Diagnostics from ``tsc --noEmit``."""

    def __init__(
        self,
        tsc_command: Optional[str] = None,
        node_binary: Optional[str] = None,
        extra_args: Optional[Sequence[str]] = None,
    ) -> None:
        self.tsc_command = tsc_command if tsc_command is not None else config.TSC_COMMAND
        self.node_binary = node_binary or config.NODE_BINARY
        self.extra_args = list(extra_args if extra_args is not None else config.TSC_EXTRA_ARGS)

    def command(self, project: "Project") -> List[str]:
        if self.tsc_command:
            base = shlex.split(self.tsc_command)
        elif project.lib_dir is not None and (project.lib_dir / "tsc.js").exists():
            base = [self.node_binary, str(project.lib_dir / "tsc.js")]
        else:
            base = ["tsc"]
        return base + [
            "--noEmit",
            "--pretty",
            "false",
            "-p",
            str(project.config_path),
            *self.extra_args,
        ]

    def diagnostics(self, project: "Project") -> List[Diagnostic]:
        cmd = self.command(project)
        logger.debug("Running %s", " ".join(cmd))
        try:
            result = subprocess.run(
                cmd,
                cwd=project.root_dir,
                capture_output=True,
                text=True,
                encoding="utf-8",
            )
        except OSError as exc:
            raise AnalyzerError(f"Could not run {cmd[0]}: {exc}") from exc

        diagnostics = self.parse_output(result.stdout, project)
        if result.returncode not in _TSC_OK_EXIT_CODES:
            raise AnalyzerError(
                f"{cmd[0]} exited with code {result.returncode}: "
                f"{(result.stderr or result.stdout).strip()[:500]}"
            )
        return diagnostics

    def parse_output(self, output: str, project: "Project") -> List[Diagnostic]:
        """Parse ``--pretty false`` output into diagnostics in compiler order.

        Indented continuation lines belong to the previous diagnostic's
        message chain; only its head message is kept.
        """
        diagnostics: List[Diagnostic] = []
        for raw in output.splitlines():
            if not raw.strip() or raw[0].isspace():
                continue

            located = _LOCATED.match(raw)
            if located is not None:
                diagnostic = self._located(located, project)
                if diagnostic is not None:
                    diagnostics.append(diagnostic)
                continue

            unlocated = _GLOBAL.match(raw)
            if unlocated is not None:
                code = int(unlocated.group("code"))
                message = unlocated.group("message")
                if code in _FATAL_CONFIG_CODES:
                    raise ConfigError(project.config_path, f"TS{code}: {message}")
                logger.warning("tsc: TS%d %s", code, message)
            else:
                logger.debug("Unrecognised tsc output: %s", raw)
        return diagnostics

    def _located(self, match: "re.Match[str]", project: "Project") -> Optional[Diagnostic]:
        path = project.resolve_path(match.group("file"))
        code = int(match.group("code"))
        message = match.group("message")
        line = int(match.group("line"))

        if path == project.config_path:
            # TS1xxx here is a JSON syntax error; anything else (deprecated or
            # unknown options) still lets tsc check the sources.
            if code < 2000:
                raise ConfigError(project.config_path, f"TS{code}: {message}")
            logger.warning("%s: TS%d %s", path.name, code, message)
            return None
        if "node_modules" in path.parts:
            logger.debug("Ignoring diagnostic in dependency %s", path)
            return None

        try:
            text = project.source(path).text
        except OSError as exc:
            logger.warning("Cannot read %s for diagnostic TS%d: %s", path, code, exc)
            return None

        return Diagnostic(
            file_path=path,
            start_offset=offset_from_position(text, line, int(match.group("col"))),
            line=line,
            message=message,
            code=code,
        )
