# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Content signatures for cached artifact files."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from pathlib import Path

from pydantic import BaseModel, ConfigDict


class FileStamp(BaseModel):
    """Size and modification time of one file at a canonical path."""

    model_config = ConfigDict(frozen=True)

    path: str
    size: int
    mtime_ns: int

    @classmethod
    def of(cls, path: Path) -> FileStamp:
        stat = path.stat()
        return cls(path=path.resolve().as_posix(), size=stat.st_size, mtime_ns=stat.st_mtime_ns)


def _iter_files(roots: Iterable[Path]) -> Iterator[Path]:
    for root in roots:
        if root.is_dir():
            yield from (child for child in root.rglob("*") if child.is_file() and "__pycache__" not in child.parts)
        elif root.exists():
            yield root


class FileSignature(BaseModel):
    """Stamps of every file under a set of roots, sorted by canonical path.

    Two signatures compare equal only when the same files exist with the same
    sizes and modification times, so a rebuilt cache entry changes the
    owning state's equality.
    """

    model_config = ConfigDict(frozen=True)

    stamps: tuple[FileStamp, ...] = ()

    @classmethod
    def of(cls, roots: Iterable[Path]) -> FileSignature:
        stamps = sorted((FileStamp.of(path) for path in _iter_files(roots)), key=lambda stamp: stamp.path)
        return cls(stamps=tuple(stamps))

    def paths(self) -> tuple[str, ...]:
        return tuple(stamp.path for stamp in self.stamps)


__all__ = ["FileSignature", "FileStamp"]
