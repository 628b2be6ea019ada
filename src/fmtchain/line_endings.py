# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Line-ending policies applied around the step pipeline."""

from __future__ import annotations

import os
from enum import Enum
from typing import Final

UNIX_SEPARATOR: Final[str] = "\n"
WINDOWS_SEPARATOR: Final[str] = "\r\n"


class LineEnding(str, Enum):
    """Policy deciding which line separator formatted output is written with."""

    UNIX = "unix"
    WINDOWS = "windows"
    PLATFORM_NATIVE = "platform_native"
    PRESERVE = "preserve"

    def separator(self, raw: str | None = None) -> str:
        """Return the separator to use for output derived from ``raw``.

        Args:
            raw: Original file content; consulted only by :attr:`PRESERVE`.

        Returns:
            str: The line separator.
        """

        if self is LineEnding.UNIX:
            return UNIX_SEPARATOR
        if self is LineEnding.WINDOWS:
            return WINDOWS_SEPARATOR
        if self is LineEnding.PLATFORM_NATIVE:
            return os.linesep
        return detect_separator(raw or "")


def detect_separator(text: str) -> str:
    """Return the first line separator found in ``text``, unix when there is none."""

    for index, char in enumerate(text):
        if char == "\n":
            return UNIX_SEPARATOR
        if char == "\r":
            return WINDOWS_SEPARATOR if text.startswith("\n", index + 1) else "\r"
    return UNIX_SEPARATOR


def to_unix(text: str) -> str:
    """Return ``text`` with every ``\\r\\n`` and lone ``\\r`` replaced by ``\\n``."""

    if "\r" not in text:
        return text
    return text.replace("\r\n", "\n").replace("\r", "\n")


def from_unix(text: str, separator: str) -> str:
    """Return unix ``text`` rewritten to use ``separator``."""

    if separator == UNIX_SEPARATOR:
        return text
    return text.replace("\n", separator)


__all__ = [
    "LineEnding",
    "UNIX_SEPARATOR",
    "WINDOWS_SEPARATOR",
    "detect_separator",
    "from_unix",
    "to_unix",
]
