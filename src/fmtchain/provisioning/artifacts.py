# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""The resolved form of a set of artifact coordinates."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict

from .signature import FileSignature


class ArtifactSet(BaseModel):
    """Files resolved for a set of coordinates.

    The files stay in the provisioner's cache; nothing here owns or deletes them.

    Attributes:
        coordinates: Sorted coordinate strings that were requested.
        files: Import roots: directories and archives placed on a module search path.
        signature: Stamps of every file under ``files``.
    """

    model_config = ConfigDict(frozen=True)

    coordinates: tuple[str, ...]
    files: frozenset[Path]
    signature: FileSignature

    def search_path(self) -> list[str]:
        """Return ``files`` as sorted strings suitable for ``sys.path``."""
        return sorted(str(path) for path in self.files)

    def describe(self) -> str:
        return ", ".join(self.coordinates)


__all__ = ["ArtifactSet"]
