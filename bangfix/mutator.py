"""Apply a resolved non-null assertion to the source text."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from .resolver import AssertionAction, Resolution
from .syntax import SourceFile

logger = logging.getLogger(__name__)

ASSERTION = "!"


@dataclass(frozen=True)
class Edit:
    """A single textual replacement made in one file."""
    path: Path
    line: int
    before: str
    after: str


def with_assertion(text: str) -> str:
    """Append the assertion, keeping a trailing ``;`` (and what follows it) last."""
    stripped = text.rstrip()
    if stripped.endswith(";"):
        return stripped[:-1] + ASSERTION + ";" + text[len(stripped):]
    return text + ASSERTION


def expanded_shorthand(text: str) -> str:
    """Rewrite shorthand ``name`` as ``name: name!``."""
    name = text.strip()
    return f"{name}: {name}{ASSERTION}"


class TextMutator:
    """Rewrites exactly one node's span per call."""

    def apply(self, resolution: Resolution) -> Edit:
        node = resolution.node
        source: SourceFile = node.source
        before = node.text
        line = node.line

        if resolution.action is AssertionAction.EXPAND_SHORTHAND:
            after = expanded_shorthand(before)
        else:
            after = with_assertion(before)

        logger.info("replacing %s -> %s", before, after)
        source.replace_span(node, after)
        return Edit(path=source.path, line=line, before=before, after=after)
