# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Steps backed by a provisioned Python library."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from ..provisioning.artifacts import ArtifactSet
from ..provisioning.boundary import IsolationBoundary
from ..provisioning.provisioner import ArtifactProvisioner
from ..tool_env.versioning import VersionSupport
from .base import ClosableFunc, FormatterStep, StepState, closeable


class LibraryState(StepState):
    """Resolved artifacts and the entry point called inside their boundary.

    Attributes:
        artifacts: Files resolved for the step's coordinates.
        entry_point: ``module:attribute`` of the format callable.
        version: Formatter version, used for compatibility hints.
        isolated: Whether calls run in a separate interpreter.
        error_logger: Logger whose error records fail the call.
    """

    artifacts: ArtifactSet
    entry_point: str
    version: str | None = None
    isolated: bool = True
    error_logger: str | None = None


@dataclass(frozen=True, slots=True)
class _ResolveLibrary:
    provisioner: ArtifactProvisioner
    coordinates: tuple[str, ...]
    entry_point: str
    version: str | None
    transitive: bool
    isolated: bool
    error_logger: str | None
    version_support: VersionSupport | None

    def __call__(self) -> LibraryState:
        if self.version_support is not None and self.version is not None:
            self.version_support.assert_formatter_supported(self.version)
        artifacts = self.provisioner.resolve(self.coordinates, transitive=self.transitive)
        return LibraryState(
            artifacts=artifacts,
            entry_point=self.entry_point,
            version=self.version,
            isolated=self.isolated,
            error_logger=self.error_logger,
        )


@dataclass(frozen=True, slots=True)
class _LoadLibrary:
    provisioner: ArtifactProvisioner
    version_support: VersionSupport | None
    timeout: float | None

    def __call__(self, state: LibraryState) -> ClosableFunc:
        boundary: IsolationBoundary
        if state.isolated:
            loggers = (state.error_logger,) if state.error_logger else ()
            isolated = self.provisioner.isolated_boundary(state.artifacts, bridge_loggers=loggers, timeout=self.timeout)
            boundary = isolated
            fn = isolated.load(state.entry_point)
        else:
            shared = self.provisioner.shared_boundary(state.artifacts)
            boundary = shared
            fn = shared.load(state.entry_point, error_logger=state.error_logger)
        if self.version_support is not None and state.version is not None:
            fn = self.version_support.suggest_later_version_on_error(state.version, fn)
        return closeable(fn, boundary)


def library_step(
    name: str,
    coordinates: str | Sequence[str],
    entry_point: str,
    provisioner: ArtifactProvisioner,
    *,
    version: str | None = None,
    transitive: bool = True,
    isolated: bool = True,
    error_logger: str | None = None,
    version_support: VersionSupport | None = None,
    timeout: float | None = None,
) -> FormatterStep[LibraryState]:
    """Return a step that formats with ``entry_point`` from provisioned artifacts.

    Provisioning happens when the step's state is first realized. The
    boundary is built and the entry point loaded when the first file is
    formatted, and released when the step is closed.

    Args:
        name: Step name.
        coordinates: One coordinate string or several.
        entry_point: ``module:attribute`` naming the format callable.
        provisioner: Resolves coordinates and builds boundaries.
        version: Formatter version checked against ``version_support``.
        transitive: Whether dependencies of the coordinates are provisioned.
        isolated: Run in a separate interpreter instead of the host's.
        error_logger: Logger the library reports failures through.
        version_support: Runtime compatibility table for the formatter.
        timeout: Seconds after which an isolated call is killed.

    Returns:
        FormatterStep[LibraryState]: Lazy step.
    """

    raw = (coordinates,) if isinstance(coordinates, str) else tuple(coordinates)
    supplier = _ResolveLibrary(
        provisioner=provisioner,
        coordinates=raw,
        entry_point=entry_point,
        version=version,
        transitive=transitive,
        isolated=isolated,
        error_logger=error_logger,
        version_support=version_support,
    )
    return FormatterStep.create_lazy(name, supplier, _LoadLibrary(provisioner, version_support, timeout))


__all__ = ["LibraryState", "library_step"]
