# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Collect step findings and render them as diffs, JSON lines or text.

Rendering functions are pure: they depend only on the text and lints passed
in. :class:`DiagnosticsCollector` is the only stateful piece and is safe to
share between the worker threads of a run.
"""

from __future__ import annotations

import difflib
import json
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from pathlib import Path, PurePath
from threading import Lock
from typing import TYPE_CHECKING, Final, Literal

from pydantic import BaseModel, ConfigDict

from ..lint import Lint

if TYPE_CHECKING:
    from ..steps.base import FormatterStep

SOURCE: Final[str] = "fmtchain"
FINDING_LEVEL: Final[Literal["warning"]] = "warning"
DIFF_MESSAGE: Final[str] = "File requires formatting"
NO_NEWLINE_MARKER: Final[str] = "\\ No newline at end of file\n"


def display_path(file: Path | str) -> str:
    """Return ``file`` with forward slashes, as used in diffs and records."""

    return file.as_posix() if isinstance(file, PurePath) else str(file).replace("\\", "/")


def render_unified_diff(file: Path | str, before: str, after: str) -> str:
    """Return a unified diff from ``before`` to ``after``.

    Headers are ``--- a/<file>`` and ``+++ b/<file>``. Lines lacking a final
    newline are followed by the standard ``\\ No newline at end of file``
    marker. Returns an empty string when the texts are equal.
    """

    if before == after:
        return ""
    name = display_path(file)
    lines = difflib.unified_diff(
        before.splitlines(keepends=True),
        after.splitlines(keepends=True),
        fromfile=f"a/{name}",
        tofile=f"b/{name}",
    )
    rendered: list[str] = []
    for line in lines:
        if line.endswith("\n"):
            rendered.append(line)
        else:
            rendered.append(f"{line}\n{NO_NEWLINE_MARKER}")
    return "".join(rendered)


class FindingRecord(BaseModel):
    """One lint rendered as a machine-readable finding."""

    model_config = ConfigDict(frozen=True)

    source: str = SOURCE
    code: str
    level: Literal["warning"] = FINDING_LEVEL
    message: str
    path: str
    line: int
    column: int = 1

    def to_json(self) -> str:
        return self.model_dump_json()


def _step_name(step: FormatterStep[object] | str) -> str:
    return step if isinstance(step, str) else step.name


def render_structured_findings(
    file: Path | str,
    steps: Sequence[FormatterStep[object] | str],
    lints_per_step: Sequence[Sequence[Lint]],
) -> list[FindingRecord]:
    """Return one :class:`FindingRecord` per lint.

    Args:
        file: Path the lints refer to.
        steps: Steps (or step names) that produced the lints.
        lints_per_step: Lints of each step, aligned with ``steps``.

    Returns:
        list[FindingRecord]: Records in step order, then lint order.

    Raises:
        ValueError: If ``steps`` and ``lints_per_step`` differ in length.
    """

    path = display_path(file)
    return [
        FindingRecord(code=_step_name(step), message=lint.message, path=path, line=lint.line_start)
        for step, lints in zip(steps, lints_per_step, strict=True)
        for lint in lints
    ]


def rdjsonl_lints(
    file: Path | str,
    steps: Sequence[FormatterStep[object] | str],
    lints_per_step: Sequence[Sequence[Lint]],
) -> str:
    """Return the findings as JSON lines, empty when there are none."""

    return "\n".join(record.to_json() for record in render_structured_findings(file, steps, lints_per_step))


def rdjsonl_diff(file: Path | str, before: str, after: str) -> str:
    """Return the diff record for ``file``, or an empty string when unchanged."""

    diff = render_unified_diff(file, before, after)
    if not diff:
        return ""
    return json.dumps({"message": {"path": display_path(file), "message": DIFF_MESSAGE, "diff": diff}})


@dataclass(frozen=True, slots=True)
class DiagnosticEntry:
    step_name: str
    path: str
    lints: tuple[Lint, ...]


class DiagnosticsCollector:
    """Thread-safe, insertion-ordered record of lints per step per file."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._entries: list[DiagnosticEntry] = []

    def record_lints(self, step_name: str, file: Path | str, lints: Iterable[Lint]) -> None:
        """Record ``lints`` reported by ``step_name`` for ``file``; empty input is ignored."""

        captured = tuple(lints)
        if not captured:
            return
        entry = DiagnosticEntry(step_name=step_name, path=display_path(file), lints=captured)
        with self._lock:
            self._entries.append(entry)

    def entries(self) -> tuple[DiagnosticEntry, ...]:
        with self._lock:
            return tuple(self._entries)

    def __len__(self) -> int:
        with self._lock:
            return sum(len(entry.lints) for entry in self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def findings(self) -> list[FindingRecord]:
        """Return every recorded lint as a :class:`FindingRecord`."""

        records: list[FindingRecord] = []
        for entry in self.entries():
            records.extend(render_structured_findings(entry.path, [entry.step_name], [entry.lints]))
        return records

    def render_jsonl(self) -> str:
        return "\n".join(record.to_json() for record in self.findings())

    def render_report(self) -> str:
        """Return one ``path:line: step(rule) detail`` line per recorded lint."""

        return "\n".join(
            lint.describe(entry.step_name, entry.path) for entry in self.entries() for lint in entry.lints
        )


__all__ = [
    "DIFF_MESSAGE",
    "DiagnosticEntry",
    "DiagnosticsCollector",
    "FINDING_LEVEL",
    "FindingRecord",
    "SOURCE",
    "display_path",
    "rdjsonl_diff",
    "rdjsonl_lints",
    "render_structured_findings",
    "render_unified_diff",
]
