# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Artifact coordinates of the form ``group:artifact:version``."""

from __future__ import annotations

import re
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from ..errors import ResolutionError


def _slugify(value: str) -> str:
    """Return a filesystem-friendly slug for *value*."""
    return re.sub(r"[^A-Za-z0-9_.-]+", "-", value)


class ArtifactCoordinate(BaseModel):
    """Identity of one versioned library artifact."""

    model_config = ConfigDict(frozen=True)

    group: str
    artifact: str
    version: str

    @classmethod
    def parse(cls, raw: str) -> ArtifactCoordinate:
        """Parse ``group:artifact:version``.

        Raises:
            ResolutionError: If ``raw`` does not have exactly three non-empty parts.
        """

        parts = [part.strip() for part in raw.split(":")]
        if len(parts) != 3 or not all(parts):
            raise ResolutionError(f"Invalid artifact coordinate '{raw}', expected 'group:artifact:version'")
        group, artifact, version = parts
        return cls(group=group, artifact=artifact, version=version)

    def __str__(self) -> str:
        return f"{self.group}:{self.artifact}:{self.version}"

    def relative_path(self) -> Path:
        """Return the repository-relative directory holding this artifact."""
        return Path(*self.group.split("."), self.artifact, self.version)

    def requirement(self) -> str:
        """Return the pip requirement string for this artifact."""
        return f"{self.artifact}=={self.version}"

    def slug(self) -> str:
        return _slugify(f"{self.group}-{self.artifact}-{self.version}")


__all__ = ["ArtifactCoordinate"]
