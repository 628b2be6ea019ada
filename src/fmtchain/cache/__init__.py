# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Caching primitives used by steps and helpers."""

from __future__ import annotations

from .in_memory import CacheInfo, memoize
from .lazy import LazyStateCache
from .tool_versions import VERSION_MANIFEST, changed_versions, load_versions, save_versions

__all__ = [
    "CacheInfo",
    "LazyStateCache",
    "VERSION_MANIFEST",
    "changed_versions",
    "load_versions",
    "memoize",
    "save_versions",
]
