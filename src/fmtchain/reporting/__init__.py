# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Diagnostics collection and rendering."""

from __future__ import annotations

from .diagnostics import (
    DIFF_MESSAGE,
    SOURCE,
    DiagnosticEntry,
    DiagnosticsCollector,
    FindingRecord,
    display_path,
    rdjsonl_diff,
    rdjsonl_lints,
    render_structured_findings,
    render_unified_diff,
)
from .presenters import create_summary_panel, print_summary

__all__ = [
    "DIFF_MESSAGE",
    "DiagnosticEntry",
    "DiagnosticsCollector",
    "FindingRecord",
    "SOURCE",
    "create_summary_panel",
    "display_path",
    "print_summary",
    "rdjsonl_diff",
    "rdjsonl_lints",
    "render_structured_findings",
    "render_unified_diff",
]
