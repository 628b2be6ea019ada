# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Foreign executable resolution and version contracts."""

from __future__ import annotations

from .discovery import (
    DEFAULT_DISCOVERY,
    CompanionRuntimeBin,
    DiscoveryStrategy,
    PathLookup,
    PythonEnvironmentBin,
    WellKnownDirectories,
)
from .foreign_exe import ForeignExe, render_template
from .models import ToolBinary
from .versioning import SuggestionPolicy, VersionSupport, versions_match

__all__ = [
    "CompanionRuntimeBin",
    "DEFAULT_DISCOVERY",
    "DiscoveryStrategy",
    "ForeignExe",
    "PathLookup",
    "PythonEnvironmentBin",
    "SuggestionPolicy",
    "ToolBinary",
    "VersionSupport",
    "WellKnownDirectories",
    "render_template",
    "versions_match",
]
