# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Apply ordered steps to files and check the result is stable."""

from __future__ import annotations

from .formatter import ExceptionPolicy, Formatter, PipelineResult, StepOutcome, StepResult, apply_steps
from .padded_cell import MAX_CYCLE, DirtyState, PaddedCell, PaddedCellKind
from .runner import FileOutcome, FileStatus, FormatRunner, RunSummary

__all__ = [
    "DirtyState",
    "ExceptionPolicy",
    "FileOutcome",
    "FileStatus",
    "FormatRunner",
    "Formatter",
    "MAX_CYCLE",
    "PaddedCell",
    "PaddedCellKind",
    "PipelineResult",
    "RunSummary",
    "StepOutcome",
    "StepResult",
    "apply_steps",
]
