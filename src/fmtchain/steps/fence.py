# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Steps that run other steps inside or around fenced regions of a file.

A fence is a regular expression with exactly one capturing group, usually
built from an opening and closing marker such as ``fmtchain:off`` and
``fmtchain:on``. :func:`preserve_within` formats the whole file but restores
the fenced content afterwards; :func:`apply_within` formats only the fenced
content.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Final

from ..errors import LintRejection
from ..line_endings import LineEnding
from ..lint import Lint
from ..pipeline.formatter import Formatter
from .base import FormatterStep, StepState

DEFAULT_TOGGLE_NAME: Final[str] = "toggle"
DEFAULT_TOGGLE_OFF: Final[str] = "fmtchain:off"
DEFAULT_TOGGLE_ON: Final[str] = "fmtchain:on"
FENCE_RULE: Final[str] = "fenceRemoved"


class FenceMode(str, Enum):
    PRESERVE = "preserve"
    APPLY = "apply"


class FenceState(StepState):
    """Fence pattern plus the state keys of the wrapped steps."""

    pattern: str
    description: str
    mode: FenceMode
    step_keys: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class Fence:
    """A regular expression selecting the fenced regions of a file."""

    pattern: str
    description: str

    @classmethod
    def open_close(cls, open_marker: str, close_marker: str) -> Fence:
        pattern = re.escape(open_marker) + r"([\s\S]*?)" + re.escape(close_marker)
        return cls(pattern, f"{open_marker} {close_marker}")

    @classmethod
    def regex(cls, pattern: str) -> Fence:
        if re.compile(pattern).groups != 1:
            raise ValueError(f"fence pattern /{pattern}/ must have exactly one capturing group")
        return cls(pattern, pattern)


@dataclass(frozen=True, slots=True)
class _FenceSupplier:
    fence: Fence
    mode: FenceMode
    steps: tuple[FormatterStep[object], ...]

    def __call__(self) -> FenceState:
        return FenceState(
            pattern=self.fence.pattern,
            description=self.fence.description,
            mode=self.mode,
            step_keys=tuple(step.state_key() for step in self.steps),
        )


class _FenceFunc:
    """Format function shared by both fence modes; owns an inner unix formatter."""

    def __init__(self, state: FenceState, steps: tuple[FormatterStep[object], ...]) -> None:
        self._regex = re.compile(state.pattern)
        self._description = state.description
        self._mode = state.mode
        self._formatter = Formatter(steps, line_ending=LineEnding.UNIX)

    def __call__(self, text: str, file: Path | None) -> str:
        if self._mode is FenceMode.PRESERVE:
            groups = [match.group(1) for match in self._regex.finditer(text)]
            return self._assemble(self._formatter.compute(text, file), groups)
        groups = [self._formatter.compute(match.group(1), file) for match in self._regex.finditer(text)]
        return self._assemble(text, groups)

    def _assemble(self, text: str, groups: list[str]) -> str:
        if not groups:
            return text
        pieces: list[str] = []
        last_end = 0
        matches = list(self._regex.finditer(text))
        for match, group in zip(matches, groups):
            pieces.append(text[last_end : match.start(1)])
            pieces.append(group)
            last_end = match.end(1)
        if len(matches) != len(groups):
            assembled = "".join(pieces)
            start = 1 + assembled.count("\n")
            end = max(start, 1 + text.count("\n"))
            raise LintRejection(
                [Lint.at_lines(start, end, FENCE_RULE, f"An intermediate step removed a match of {self._description}")],
            )
        pieces.append(text[last_end:])
        return "".join(pieces)

    def close(self) -> None:
        self._formatter.close()


@dataclass(frozen=True, slots=True)
class _ToFenceFunc:
    steps: tuple[FormatterStep[object], ...]

    def __call__(self, state: FenceState) -> _FenceFunc:
        return _FenceFunc(state, self.steps)


def _fence_step(name: str, fence: Fence, mode: FenceMode, steps: Sequence[FormatterStep[object]]) -> FormatterStep[FenceState]:
    wrapped = tuple(steps)
    return FormatterStep.create_lazy(name, _FenceSupplier(fence, mode, wrapped), _ToFenceFunc(wrapped))


def preserve_within(
    name: str,
    steps: Sequence[FormatterStep[object]],
    fence: Fence | None = None,
) -> FormatterStep[FenceState]:
    """Apply ``steps`` to the whole file, then restore every fenced region.

    The wrapped steps must leave the fence markers in place; otherwise the
    step rejects the file with a ``fenceRemoved`` lint.
    """

    return _fence_step(name, fence or Fence.open_close(DEFAULT_TOGGLE_OFF, DEFAULT_TOGGLE_ON), FenceMode.PRESERVE, steps)


def apply_within(
    name: str,
    steps: Sequence[FormatterStep[object]],
    fence: Fence,
) -> FormatterStep[FenceState]:
    """Apply ``steps`` only to the content of each fenced region."""

    return _fence_step(name, fence, FenceMode.APPLY, steps)


def toggle_off_on(steps: Sequence[FormatterStep[object]]) -> FormatterStep[FenceState]:
    """Return the ``toggle`` step honouring ``fmtchain:off`` / ``fmtchain:on`` markers."""

    return preserve_within(DEFAULT_TOGGLE_NAME, steps)


__all__ = [
    "DEFAULT_TOGGLE_NAME",
    "DEFAULT_TOGGLE_OFF",
    "DEFAULT_TOGGLE_ON",
    "FENCE_RULE",
    "Fence",
    "FenceMode",
    "FenceState",
    "apply_within",
    "preserve_within",
    "toggle_off_on",
]
