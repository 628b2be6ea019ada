# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Remember which tool version every step ran with, across runs.

A new tool version can reformat files that an older one left alone. The runner
records the versions it used and reports steps whose tool changed since the
manifest was last written.
"""

from __future__ import annotations

import json
import os
import tempfile
from collections.abc import Mapping
from pathlib import Path
from typing import Final

VERSION_MANIFEST: Final[str] = "tool-versions.json"

VersionChange = tuple[str, str]


def load_versions(cache_dir: Path) -> dict[str, str]:
    """Return the step name to tool version record kept in ``cache_dir``.

    A missing or corrupt manifest reads as empty; entries that are not
    string pairs are skipped.
    """
    path = cache_dir / VERSION_MANIFEST
    if not path.is_file():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError:
        return {}
    if not isinstance(data, dict):
        return {}
    return {step: version for step, version in data.items() if isinstance(step, str) and isinstance(version, str)}


def changed_versions(previous: Mapping[str, str], current: Mapping[str, str]) -> dict[str, VersionChange]:
    """Return ``{step: (old, new)}`` for steps recorded in both with different versions."""

    return {
        step: (previous[step], version)
        for step, version in sorted(current.items())
        if step in previous and previous[step] != version
    }


def save_versions(cache_dir: Path, versions: Mapping[str, str]) -> dict[str, VersionChange]:
    """Merge ``versions`` into the manifest and return the steps whose tool changed.

    Steps absent from ``versions`` keep their recorded entry, so a run that
    skips a step does not forget it. The manifest is replaced atomically.
    """
    if not versions:
        return {}
    previous = load_versions(cache_dir)
    merged = {**previous, **versions}
    if merged == previous:
        return {}
    cache_dir.mkdir(parents=True, exist_ok=True)
    handle, staging = tempfile.mkstemp(prefix=".tool-versions-", suffix=".json", dir=cache_dir)
    try:
        with os.fdopen(handle, "w", encoding="utf-8") as stream:
            json.dump(dict(sorted(merged.items())), stream, indent=2)
        os.replace(staging, cache_dir / VERSION_MANIFEST)
    except BaseException:
        Path(staging).unlink(missing_ok=True)
        raise
    return changed_versions(previous, versions)


__all__ = ["VERSION_MANIFEST", "VersionChange", "changed_versions", "load_versions", "save_versions"]
