# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Resolve artifact coordinates to files in a local cache."""

from __future__ import annotations

import json
import logging
import shutil
import sys
import tempfile
from collections.abc import Sequence
from pathlib import Path
from typing import Final, Protocol, runtime_checkable

from ..errors import ProcessError, ResolutionError
from ..process import ProcessRunner
from .artifacts import ArtifactSet
from .boundary import IsolatedBoundary, SharedBoundary
from .coordinates import ArtifactCoordinate
from .signature import FileSignature

LOGGER = logging.getLogger(__name__)

METADATA_FILE: Final[str] = "artifact.json"
ARCHIVE_SUFFIXES: Final[frozenset[str]] = frozenset({".whl", ".zip", ".egg"})


@runtime_checkable
class Provisioner(Protocol):
    """Repository client turning coordinates into local files."""

    def provision(self, coordinates: Sequence[ArtifactCoordinate], *, transitive: bool) -> set[Path]:
        """Return local files for ``coordinates``, downloading or reusing cached copies.

        Raises:
            ResolutionError: If a coordinate is not available from any repository.
        """
        ...


class ArtifactProvisioner:
    """Resolve coordinates through a :class:`Provisioner` and build loading boundaries."""

    def __init__(self, provisioner: Provisioner) -> None:
        self._provisioner = provisioner

    def resolve(self, coordinates: str | Sequence[str], *, transitive: bool = True) -> ArtifactSet:
        """Resolve one coordinate string or several to an :class:`ArtifactSet`.

        Raises:
            ResolutionError: If a coordinate is malformed or unavailable, or if
                resolution produces no files.
        """

        raw = [coordinates] if isinstance(coordinates, str) else list(coordinates)
        parsed = sorted({ArtifactCoordinate.parse(item) for item in raw}, key=str)
        labels = tuple(str(coordinate) for coordinate in parsed)
        files = self._provisioner.provision(parsed, transitive=transitive) if parsed else set()
        if not files:
            raise ResolutionError(f"Resolved to an empty result: {', '.join(labels) or '<no coordinates>'}")
        resolved = frozenset(path.resolve() for path in files)
        LOGGER.debug("resolved %s to %d file(s)", ", ".join(labels), len(resolved))
        return ArtifactSet(coordinates=labels, files=resolved, signature=FileSignature.of(resolved))

    def isolated_boundary(
        self,
        artifacts: ArtifactSet,
        *,
        bridge_loggers: Sequence[str] = (),
        timeout: float | None = None,
    ) -> IsolatedBoundary:
        """Return a boundary that runs artifact code in a fresh interpreter per call."""

        return IsolatedBoundary(artifacts, bridge_loggers=bridge_loggers, timeout=timeout)

    def shared_boundary(self, artifacts: ArtifactSet) -> SharedBoundary:
        """Return a boundary that imports artifact code into the host interpreter."""

        return SharedBoundary(artifacts)


def _import_roots(directory: Path) -> list[Path]:
    """Return ``directory`` plus any archives it contains."""

    archives = sorted(child for child in directory.iterdir() if child.suffix in ARCHIVE_SUFFIXES)
    return [directory, *archives]


class LocalRepositoryProvisioner:
    """Copy artifacts from repository directories into a local cache.

    A repository stores ``group:artifact:version`` under
    ``<repo>/<group as directories>/<artifact>/<version>/``. That directory is
    an import root and may also hold ``.whl``/``.zip`` archives plus an
    ``artifact.json`` file whose ``dependencies`` list names further
    coordinates.
    """

    def __init__(self, repositories: Sequence[Path], cache_dir: Path) -> None:
        self._repositories = tuple(repositories)
        self._cache_dir = cache_dir

    def provision(self, coordinates: Sequence[ArtifactCoordinate], *, transitive: bool) -> set[Path]:
        resolved: set[Path] = set()
        seen: set[str] = set()
        pending = list(coordinates)
        while pending:
            coordinate = pending.pop(0)
            if str(coordinate) in seen:
                continue
            seen.add(str(coordinate))
            cached = self._cache(coordinate, self._locate(coordinate))
            resolved.update(_import_roots(cached))
            if transitive:
                pending.extend(ArtifactCoordinate.parse(dep) for dep in self._dependencies(cached))
        return resolved

    def _locate(self, coordinate: ArtifactCoordinate) -> Path:
        for repository in self._repositories:
            candidate = repository / coordinate.relative_path()
            if candidate.is_dir():
                return candidate
        searched = ", ".join(str(repository) for repository in self._repositories) or "<no repositories>"
        raise ResolutionError(f"Could not find artifact {coordinate} in any repository: {searched}")

    def _cache(self, coordinate: ArtifactCoordinate, source: Path) -> Path:
        target = self._cache_dir / coordinate.relative_path()
        if target.is_dir():
            LOGGER.debug("reusing cached %s", coordinate)
            return target
        target.parent.mkdir(parents=True, exist_ok=True)
        staging = Path(tempfile.mkdtemp(prefix=f".{coordinate.artifact}-", dir=target.parent))
        try:
            shutil.copytree(source, staging, dirs_exist_ok=True)
            try:
                staging.rename(target)
            except OSError:
                if not target.is_dir():
                    raise
        finally:
            if staging.exists():
                shutil.rmtree(staging)
        LOGGER.debug("cached %s from %s", coordinate, source)
        return target

    @staticmethod
    def _dependencies(cached: Path) -> list[str]:
        metadata = cached / METADATA_FILE
        if not metadata.is_file():
            return []
        try:
            data = json.loads(metadata.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise ResolutionError(f"Malformed artifact metadata {metadata}: {exc}") from exc
        dependencies = data.get("dependencies", []) if isinstance(data, dict) else None
        if not isinstance(dependencies, list) or not all(isinstance(dep, str) for dep in dependencies):
            raise ResolutionError(f"Artifact metadata {metadata} must hold a list of dependency coordinates")
        return dependencies


class PipProvisioner:
    """Install artifacts from a package index into per-coordinate target directories.

    The coordinate's artifact and version become the requirement
    ``artifact==version``; the group is only used to name the cache entry.
    pip installs into a staging directory that is renamed into place only
    after it succeeds, so a failed install never leaves a cache entry behind.
    """

    META_FILE = ".fmtchain-meta.json"

    def __init__(
        self,
        cache_dir: Path,
        *,
        python: str = sys.executable,
        index_url: str | None = None,
        runner: ProcessRunner | None = None,
    ) -> None:
        self._cache_dir = cache_dir
        self._python = python
        self._index_url = index_url
        self._runner = runner or ProcessRunner()

    def provision(self, coordinates: Sequence[ArtifactCoordinate], *, transitive: bool) -> set[Path]:
        return {self._install(coordinate, transitive=transitive) for coordinate in coordinates}

    def _install(self, coordinate: ArtifactCoordinate, *, transitive: bool) -> Path:
        suffix = "" if transitive else "-nodeps"
        target = self._cache_dir / f"{coordinate.slug()}{suffix}"
        meta_path = target / self.META_FILE
        requirement = coordinate.requirement()
        if self._cached(meta_path, requirement, transitive):
            LOGGER.debug("reusing cached %s", requirement)
            return target
        target.parent.mkdir(parents=True, exist_ok=True)
        staging = Path(tempfile.mkdtemp(prefix=f".{coordinate.artifact}-", dir=target.parent))
        command = [
            self._python,
            "-m",
            "pip",
            "install",
            "--quiet",
            "--disable-pip-version-check",
            "--target",
            str(staging),
        ]
        if not transitive:
            command.append("--no-deps")
        if self._index_url:
            command.extend(["--index-url", self._index_url])
        command.append(requirement)
        try:
            try:
                self._runner.exec(command).assert_exit_zero()
            except ProcessError as exc:
                raise ResolutionError(f"Unable to install {coordinate}:\n{exc}") from exc
            (staging / self.META_FILE).write_text(
                json.dumps({"requirement": requirement, "transitive": transitive}),
                encoding="utf-8",
            )
            if target.exists() and not self._cached(meta_path, requirement, transitive):
                shutil.rmtree(target)
            try:
                staging.rename(target)
            except OSError:
                if not self._cached(meta_path, requirement, transitive):
                    raise
        finally:
            if staging.exists():
                shutil.rmtree(staging)
        LOGGER.debug("installed %s into %s", requirement, target)
        return target

    @staticmethod
    def _cached(meta_path: Path, requirement: str, transitive: bool) -> bool:
        if not meta_path.is_file():
            return False
        try:
            data = json.loads(meta_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            return False
        return data.get("requirement") == requirement and data.get("transitive") == transitive


__all__ = [
    "ArtifactProvisioner",
    "LocalRepositoryProvisioner",
    "METADATA_FILE",
    "PipProvisioner",
    "Provisioner",
]
