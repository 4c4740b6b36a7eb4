"""Fixed-point driver: diagnose, assert, persist, repeat.

One generation walks the diagnostic list once. Every absent-value
diagnostic that is not known to be unfixable gets one resolve+mutate
attempt; failures go to the skip set for the rest of the run. After a
successful edit the remaining diagnostics of that file carry stale
offsets, so they are passed over until the project has been saved and
re-diagnosed. The run stops after a generation that fixed nothing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Set

from . import config
from .errors import ProjectError
from .models import Diagnostic, DiagnosticKey, FixRecord, RunReport
from .mutator import Edit, TextMutator
from .project import Project
from .resolver import NodeResolver, at_offset

logger = logging.getLogger(__name__)


class Phase(Enum):
    SCANNING = "scanning"
    FIXING = "fixing"
    RELOADING = "reloading"
    DONE = "done"


@dataclass
class DriverState:
    """Everything the driver carries between steps."""
    phase: Phase = Phase.SCANNING
    diagnostics: List[Diagnostic] = field(default_factory=list)
    cursor: int = 0
    generation: int = 0
    skip: Set[DiagnosticKey] = field(default_factory=set)
    # Files edited in the current generation; their offsets are stale.
    dirty_files: Set[Path] = field(default_factory=set)
    fixed_this_pass: int = 0

    @property
    def current(self) -> Optional[Diagnostic]:
        if self.cursor < len(self.diagnostics):
            return self.diagnostics[self.cursor]
        return None


class FixEngine:
    """Drives the project to a fixed point of absent-value diagnostics."""

    def __init__(
        self,
        project: Project,
        resolver: Optional[NodeResolver] = None,
        mutator: Optional[TextMutator] = None,
        keyword: Optional[str] = None,
    ) -> None:
        self.project = project
        self.resolver = resolver or NodeResolver()
        self.mutator = mutator or TextMutator()
        self.keyword = keyword or config.ABSENT_VALUE_KEYWORD

    def is_absent_value(self, diagnostic: Diagnostic) -> bool:
        return self.keyword in diagnostic.message

    def run(self, state: Optional[DriverState] = None) -> RunReport:
        """Run until a generation makes no successful edit.

        Raises:
            ProjectError: if the project cannot be analyzed or saved
        """
        state = state or DriverState()
        report = RunReport()
        self._begin_generation(state, report, self.project.diagnostics())

        while state.phase is not Phase.DONE:
            if state.phase is Phase.SCANNING:
                self._scan(state)
            elif state.phase is Phase.FIXING:
                self._fix(state, report)
            elif state.phase is Phase.RELOADING:
                self._reload(state, report)

        report.generations = state.generation + 1
        report.backup_id = self.project.backup_id
        return report

    def fix_diagnostic(self, diagnostic: Diagnostic) -> Optional[Edit]:
        """Resolve and apply one assertion; None when there is no safe node."""
        source = self.project.source(diagnostic.file_path)
        offset = source.byte_offset(diagnostic.start_offset)
        resolution = self.resolver.resolve(source.root(), at_offset(offset))
        if resolution is None:
            return None
        return self.mutator.apply(resolution)

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    def _begin_generation(
        self,
        state: DriverState,
        report: RunReport,
        diagnostics: List[Diagnostic],
    ) -> None:
        state.diagnostics = diagnostics
        state.cursor = 0
        state.dirty_files.clear()
        state.fixed_this_pass = 0
        state.phase = Phase.SCANNING
        absent = sum(1 for d in diagnostics if self.is_absent_value(d))
        report.absent_counts.append(absent)
        logger.debug(
            "generation %d: %d diagnostic(s), %d absent-value",
            state.generation, len(diagnostics), absent,
        )

    def _scan(self, state: DriverState) -> None:
        while state.current is not None:
            diagnostic = state.current
            if (
                not self.is_absent_value(diagnostic)
                or diagnostic.key in state.skip
                or diagnostic.file_path in state.dirty_files
            ):
                state.cursor += 1
                continue
            state.phase = Phase.FIXING
            return
        state.phase = Phase.RELOADING if state.fixed_this_pass else Phase.DONE

    def _fix(self, state: DriverState, report: RunReport) -> None:
        diagnostic = state.current
        if diagnostic is None:
            state.phase = Phase.SCANNING
            return
        logger.info(
            "fixing %s:%d offset %d %s",
            diagnostic.file_path, diagnostic.line, diagnostic.start_offset, diagnostic.message,
        )

        try:
            edit = self.fix_diagnostic(diagnostic)
        except ProjectError:
            raise
        except Exception as exc:
            logger.warning(
                "could not fix %s: %s", diagnostic, exc,
                exc_info=logger.isEnabledFor(logging.DEBUG),
            )
            edit = None

        if edit is None:
            state.skip.add(diagnostic.key)
            report.skipped.append(diagnostic)
        else:
            state.dirty_files.add(edit.path)
            state.fixed_this_pass += 1
            report.fixes.append(FixRecord(
                diagnostic=diagnostic,
                generation=state.generation,
                file_path=edit.path,
                before=edit.before,
                after=edit.after,
            ))

        state.cursor += 1
        state.phase = Phase.SCANNING

    def _reload(self, state: DriverState, report: RunReport) -> None:
        logger.info(
            "saving project after generation %d (%d fix(es))",
            state.generation, state.fixed_this_pass,
        )
        result = self.project.save()
        for path in result.files_changed:
            logger.info("saved %s", path)
        state.generation += 1
        self._begin_generation(state, report, self.project.diagnostics())
