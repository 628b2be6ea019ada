# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Strategies that propose candidate locations for a foreign executable."""

from __future__ import annotations

import logging
import os
import shutil
import sys
import sysconfig
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Final, Protocol, runtime_checkable

from ..errors import ProcessError
from ..process import ProcessRunner

LOGGER = logging.getLogger(__name__)

WELL_KNOWN_DIRECTORIES: Final[tuple[Path, ...]] = (
    Path("~/.local/bin"),
    Path("/usr/local/bin"),
    Path("/opt/homebrew/bin"),
    Path("/opt/local/bin"),
    Path("~/go/bin"),
    Path("~/.cargo/bin"),
)


@runtime_checkable
class DiscoveryStrategy(Protocol):
    """Yield paths where an executable called ``name`` may live."""

    def candidates(self, name: str) -> Iterator[Path]:
        """Yield candidate paths in preference order; they need not exist."""
        ...


def executable_names(name: str) -> tuple[str, ...]:
    """Return the file names an executable called ``name`` may have on this platform."""

    if os.name == "nt" and not Path(name).suffix:
        return (f"{name}.exe", f"{name}.cmd", f"{name}.bat", name)
    return (name,)


def is_executable(path: Path) -> bool:
    """Return ``True`` when ``path`` is a file the current user may execute."""

    return path.is_file() and os.access(path, os.X_OK)


@dataclass(frozen=True, slots=True)
class PathLookup:
    """Search the ``PATH`` environment variable, or an explicit search path."""

    search_path: str | None = None

    def candidates(self, name: str) -> Iterator[Path]:
        found = shutil.which(name, path=self.search_path)
        if found is not None:
            yield Path(found)


@dataclass(frozen=True, slots=True)
class WellKnownDirectories:
    """Probe install directories package managers commonly use."""

    directories: tuple[Path, ...] = WELL_KNOWN_DIRECTORIES

    def candidates(self, name: str) -> Iterator[Path]:
        for directory in self.directories:
            base = directory.expanduser()
            for filename in executable_names(name):
                yield base / filename


@dataclass(frozen=True, slots=True)
class PythonEnvironmentBin:
    """Look next to the running interpreter, where ``pip`` installs console scripts."""

    def candidates(self, name: str) -> Iterator[Path]:
        scripts = sysconfig.get_path("scripts")
        directories = [Path(scripts)] if scripts else []
        directories.append(Path(sys.executable).parent)
        for directory in directories:
            for filename in executable_names(name):
                yield directory / filename


@dataclass(frozen=True, slots=True)
class CompanionRuntimeBin:
    """Ask a companion runtime where its own tools are installed.

    ``gofmt`` ships inside the Go toolchain, so the runtime ``go`` is located
    first; its sibling directory is probed, then ``go env GOROOT`` is queried and
    ``<GOROOT>/bin`` probed as well.

    Attributes:
        runtime: Name of the companion runtime executable.
        root_query: Arguments that make the runtime print its installation root.
        subdirectory: Directory under the root holding executables.
    """

    runtime: str
    root_query: tuple[str, ...] = ()
    subdirectory: str = "bin"

    def candidates(self, name: str) -> Iterator[Path]:
        runtime = shutil.which(self.runtime)
        if runtime is None:
            LOGGER.debug("companion runtime %s not on PATH", self.runtime)
            return
        runtime_dir = Path(runtime).resolve().parent
        for filename in executable_names(name):
            yield runtime_dir / filename
        root = self._query_root(runtime)
        if root is None:
            return
        for filename in executable_names(name):
            yield root / self.subdirectory / filename

    def _query_root(self, runtime: str) -> Path | None:
        if not self.root_query:
            return None
        try:
            with ProcessRunner() as runner:
                result = runner.exec([runtime, *self.root_query])
        except ProcessError as exc:
            LOGGER.debug("unable to query %s for its root: %s", self.runtime, exc)
            return None
        value = result.stdout_text().strip()
        if result.exit_code != 0 or not value:
            return None
        return Path(value)


DEFAULT_DISCOVERY: Final[tuple[DiscoveryStrategy, ...]] = (
    PathLookup(),
    WellKnownDirectories(),
    PythonEnvironmentBin(),
)


__all__ = [
    "CompanionRuntimeBin",
    "DEFAULT_DISCOVERY",
    "DiscoveryStrategy",
    "PathLookup",
    "PythonEnvironmentBin",
    "WELL_KNOWN_DIRECTORIES",
    "WellKnownDirectories",
    "executable_names",
    "is_executable",
]
