# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Core package metadata and the most used entry points."""

from __future__ import annotations

from importlib import metadata

from .errors import FmtchainError, LintRejection, SetupError, StepFailure
from .line_endings import LineEnding
from .lint import Lint
from .pipeline import ExceptionPolicy, Formatter, FormatRunner
from .steps import FormatterStep

__all__ = [
    "ExceptionPolicy",
    "FmtchainError",
    "FormatRunner",
    "Formatter",
    "FormatterStep",
    "LineEnding",
    "Lint",
    "LintRejection",
    "SetupError",
    "StepFailure",
    "__version__",
]

try:
    __version__ = metadata.version("fmtchain")
except metadata.PackageNotFoundError:  # pragma: no cover - local development fallback
    __version__ = "0.0.0"
