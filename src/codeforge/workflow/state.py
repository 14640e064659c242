from __future__ import annotations

"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

This module defines the per-run agent state shared by the loop and the tools.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, Mapping


@dataclass(frozen=True, slots=True)
class FileEdit:
    path: str
    content: str


def apply_edits(files: Mapping[str, str], edits: Iterable[FileEdit]) -> Dict[str, str]:
    """Return a copy of `files` with `edits` applied in order; the last write to a path wins."""
    out = dict(files)
    for edit in edits:
        out[edit.path] = edit.content
    return out


@dataclass(slots=True)
class AgentState:
    """
    Mutable state of one workflow run.

    Attributes:
        summary: Final assistant text containing the completion marker. Empty
            until the agent declares completion; never changes after that.
        files: Every file the agent wrote, keyed by path.
    """

    summary: str = ""
    files: Dict[str, str] = field(default_factory=dict)

    @property
    def done(self) -> bool:
        return bool(self.summary)

    def set_summary(self, text: str) -> bool:
        """Record the completion summary once. Returns whether it changed."""
        if self.summary or not text:
            return False
        self.summary = text
        return True

    def commit_files(self, files: Mapping[str, str]) -> None:
        self.files = dict(files)
