# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Run a formatter over many files on a worker pool."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor, as_completed
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from ..cache.tool_versions import save_versions
from ..errors import OperationCancelled, SetupError
from ..line_endings import to_unix
from ..lint import Lint
from ..reporting.diagnostics import DiagnosticsCollector, display_path, render_unified_diff
from ..tool_env.models import ToolBinary
from .formatter import ExceptionPolicy, Formatter
from .padded_cell import DirtyState

LOGGER = logging.getLogger(__name__)


class FileStatus(str, Enum):
    CLEAN = "clean"
    DIRTY = "dirty"
    FORMATTED = "formatted"
    DID_NOT_CONVERGE = "did_not_converge"
    FAILED = "failed"
    CANCELLED = "cancelled"


class FileOutcome(BaseModel):
    """Result of checking or formatting one file."""

    model_config = ConfigDict(frozen=True)

    path: str
    status: FileStatus
    lints: dict[str, tuple[Lint, ...]] = Field(default_factory=dict)
    diff: str = ""
    error: str | None = None

    @property
    def has_lints(self) -> bool:
        return any(self.lints.values())


class RunSummary(BaseModel):
    """Outcomes of one run, in the order the files were given."""

    model_config = ConfigDict(frozen=True)

    outcomes: tuple[FileOutcome, ...]
    tool_versions: dict[str, str] = Field(default_factory=dict)

    def with_status(self, status: FileStatus) -> tuple[FileOutcome, ...]:
        return tuple(outcome for outcome in self.outcomes if outcome.status is status)

    @property
    def failed(self) -> tuple[FileOutcome, ...]:
        return self.with_status(FileStatus.FAILED)

    @property
    def ok(self) -> bool:
        """Return ``True`` when every file is clean or was formatted and none has lints."""

        return all(
            outcome.status in (FileStatus.CLEAN, FileStatus.FORMATTED) and not outcome.has_lints
            for outcome in self.outcomes
        )


class FormatRunner:
    """Check or format files in parallel, one file per worker at a time.

    Steps realize their state on first use, so the first files processed pay
    for provisioning and version probes while other workers wait on the same
    state. Setup errors abort the whole run under every policy. Other per-file
    errors abort under :attr:`ExceptionPolicy.FAIL_FAST` and are recorded as
    :attr:`FileStatus.FAILED` otherwise.
    """

    def __init__(
        self,
        formatter: Formatter,
        *,
        jobs: int = 1,
        collector: DiagnosticsCollector | None = None,
        root: Path | None = None,
        versions_dir: Path | None = None,
    ) -> None:
        if jobs < 1:
            raise ValueError("jobs must be at least 1")
        self._formatter = formatter
        self._jobs = jobs
        self._collector = collector if collector is not None else DiagnosticsCollector()
        self._root = root
        self._versions_dir = versions_dir
        self._cancelled = threading.Event()

    @property
    def jobs(self) -> int:
        return self._jobs

    @property
    def collector(self) -> DiagnosticsCollector:
        return self._collector

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def check(self, files: Iterable[Path]) -> RunSummary:
        """Report which files differ from their formatted form without writing."""

        return self._run(files, write=False)

    def apply(self, files: Iterable[Path]) -> RunSummary:
        """Rewrite files that differ from their formatted form."""

        return self._run(files, write=True)

    def cancel(self) -> None:
        """Stop scheduling files and kill subprocesses started by the steps.

        Closing the formatter is final: files in flight end as
        :attr:`FileStatus.CANCELLED` and are never written.
        """

        self._cancelled.set()
        self._formatter.close()

    def _run(self, files: Iterable[Path], *, write: bool) -> RunSummary:
        paths = list(files)
        if self._jobs == 1 or len(paths) <= 1:
            outcomes = [self._process(path, write) for path in paths]
        else:
            outcomes = self._run_parallel(paths, write)
        versions = self._tool_versions()
        if self._versions_dir is not None:
            for step_name, (old, new) in save_versions(self._versions_dir, versions).items():
                LOGGER.warning("%s now runs version %s (was %s); formatting may change", step_name, new, old)
        return RunSummary(outcomes=tuple(outcomes), tool_versions=versions)

    def _run_parallel(self, paths: list[Path], write: bool) -> list[FileOutcome]:
        results: dict[int, FileOutcome] = {}
        with ThreadPoolExecutor(max_workers=self._jobs) as executor:
            future_map = {executor.submit(self._process, path, write): index for index, path in enumerate(paths)}
            try:
                for future in as_completed(future_map):
                    results[future_map[future]] = future.result()
            except BaseException:
                for future in future_map:
                    future.cancel()
                raise
        return [results[index] for index in range(len(paths))]

    def _display(self, path: Path) -> str:
        if self._root is not None:
            try:
                return display_path(path.resolve().relative_to(self._root.resolve()))
            except ValueError:
                pass
        return display_path(path)

    def _process(self, path: Path, write: bool) -> FileOutcome:
        display = self._display(path)
        if self._cancelled.is_set():
            return FileOutcome(path=display, status=FileStatus.CANCELLED)
        try:
            return self._format_file(path, display, write)
        except SetupError:
            raise
        except Exception as exc:
            if self._cancelled.is_set():
                LOGGER.debug("cancelled while formatting %s: %s", display, exc)
                return FileOutcome(path=display, status=FileStatus.CANCELLED)
            if isinstance(exc, OperationCancelled):
                raise
            if self._formatter.exception_policy is ExceptionPolicy.FAIL_FAST:
                raise
            LOGGER.warning("unable to format %s: %s", display, exc)
            return FileOutcome(path=display, status=FileStatus.FAILED, error=str(exc))

    def _format_file(self, path: Path, display: str, write: bool) -> FileOutcome:
        raw = path.read_bytes()
        text = self._formatter.decode(raw)
        result = self._formatter.apply(text, path)
        if self._cancelled.is_set():
            return FileOutcome(path=display, status=FileStatus.CANCELLED)
        lints = result.lints_per_step
        for step_name, step_lints in lints.items():
            self._collector.record_lints(step_name, display, step_lints)
        if lints:
            LOGGER.warning("%s: rejected by %s", display, ", ".join(lints))
        dirty = DirtyState.of(self._formatter, path, raw, formatted=to_unix(result.text))
        if self._cancelled.is_set():
            return FileOutcome(path=display, status=FileStatus.CANCELLED)
        if dirty.did_not_converge:
            return FileOutcome(path=display, status=FileStatus.DID_NOT_CONVERGE, lints=lints)
        if dirty.canonical_bytes is None:
            return FileOutcome(path=display, status=FileStatus.CLEAN, lints=lints)
        if write:
            path.write_bytes(dirty.canonical_bytes)
            LOGGER.debug("formatted %s", display)
            return FileOutcome(path=display, status=FileStatus.FORMATTED, lints=lints)
        canonical = self._formatter.decode(dirty.canonical_bytes)
        diff = render_unified_diff(display, to_unix(text), to_unix(canonical))
        return FileOutcome(path=display, status=FileStatus.DIRTY, lints=lints, diff=diff)

    def _tool_versions(self) -> dict[str, str]:
        versions: dict[str, str] = {}
        for step in self._formatter.steps:
            binary = getattr(step.peek_state(), "binary", None)
            if isinstance(binary, ToolBinary):
                versions[step.name] = binary.discovered_version
        return versions


__all__ = ["FileOutcome", "FileStatus", "FormatRunner", "RunSummary"]
