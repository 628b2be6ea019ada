# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Formatting step descriptors and the built-in steps."""

from __future__ import annotations

from .base import ClosableFunc, Closeable, FormatterFunc, FormatterStep, StepState, closeable
from .fence import Fence, FenceMode, FenceState, apply_within, preserve_within, toggle_off_on
from .foreign import ForeignToolState, black, clang_format, foreign_step, gofmt, shfmt
from .generic import IndentKind, end_with_newline, indent, lint_regex, replace, replace_regex, trim_trailing_whitespace
from .library import LibraryState, library_step

__all__ = [
    "ClosableFunc",
    "Closeable",
    "Fence",
    "FenceMode",
    "FenceState",
    "ForeignToolState",
    "FormatterFunc",
    "FormatterStep",
    "IndentKind",
    "LibraryState",
    "StepState",
    "apply_within",
    "black",
    "clang_format",
    "closeable",
    "end_with_newline",
    "foreign_step",
    "gofmt",
    "indent",
    "library_step",
    "lint_regex",
    "preserve_within",
    "replace",
    "replace_regex",
    "shfmt",
    "toggle_off_on",
    "trim_trailing_whitespace",
]
