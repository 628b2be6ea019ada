# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Artifact provisioning and loading boundaries."""

from __future__ import annotations

from .artifacts import ArtifactSet
from .boundary import FormatFunction, IsolatedBoundary, IsolationBoundary, SharedBoundary, split_entry_point
from .coordinates import ArtifactCoordinate
from .error_sink import ErrorSink, capture_errors
from .provisioner import ArtifactProvisioner, LocalRepositoryProvisioner, PipProvisioner, Provisioner
from .signature import FileSignature, FileStamp

__all__ = [
    "ArtifactCoordinate",
    "ArtifactProvisioner",
    "ArtifactSet",
    "ErrorSink",
    "FileSignature",
    "FileStamp",
    "FormatFunction",
    "IsolatedBoundary",
    "IsolationBoundary",
    "LocalRepositoryProvisioner",
    "PipProvisioner",
    "Provisioner",
    "SharedBoundary",
    "capture_errors",
    "split_entry_point",
]
