# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Data structures describing resolved foreign executables."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict


class ToolBinary(BaseModel):
    """A located and version-verified executable."""

    model_config = ConfigDict(frozen=True)

    name: str
    requested_version: str
    path: Path
    discovered_version: str


__all__ = ["ToolBinary"]
