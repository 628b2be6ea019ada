# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Idempotence checking for formatters that are not projections.

A well-behaved formatter satisfies ``f(f(x)) == f(x)``. Some real tools do not:
repeated application may keep changing the text, either settling after a few
rounds, cycling between several outputs, or never settling. :class:`PaddedCell`
applies a formatter repeatedly to tell these cases apart, and
:class:`DirtyState` uses it to decide whether a file on disk is clean.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Final

from ..errors import FmtchainError
from ..line_endings import to_unix
from .formatter import Formatter

MAX_CYCLE: Final[int] = 10


class PaddedCellKind(str, Enum):
    CONVERGE = "converge"
    CYCLE = "cycle"
    DIVERGE = "diverge"


@dataclass(frozen=True, slots=True)
class PaddedCell:
    """Result of applying a formatter until it settles, cycles, or gives up.

    Attributes:
        file: File the formatter was applied to.
        kind: How repeated application behaved.
        steps: The distinct outputs observed. For a cycle, exactly the outputs
            that make up the cycle.
    """

    file: Path | None
    kind: PaddedCellKind
    steps: tuple[str, ...]

    @classmethod
    def check(
        cls,
        formatter: Formatter,
        file: Path | None,
        original: str,
        max_length: int = MAX_CYCLE,
    ) -> PaddedCell:
        """Apply ``formatter`` to ``original`` up to ``max_length`` times."""

        if max_length < 2:
            raise ValueError("max_length must be at least 2")
        original = to_unix(original)
        applied_once = formatter.compute(original, file)
        if applied_once == original:
            return cls(file, PaddedCellKind.CONVERGE, (applied_once,))
        applied_twice = formatter.compute(applied_once, file)
        if applied_twice == applied_once:
            return cls(file, PaddedCellKind.CONVERGE, (applied_once,))
        outputs = [applied_once, applied_twice]
        current = applied_twice
        while len(outputs) < max_length:
            output = formatter.compute(current, file)
            if output == current:
                return cls(file, PaddedCellKind.CONVERGE, tuple(outputs))
            if output in outputs:
                start = outputs.index(output)
                return cls(file, PaddedCellKind.CYCLE, tuple(outputs[start:]))
            outputs.append(output)
            current = output
        return cls(file, PaddedCellKind.DIVERGE, tuple(outputs))

    @property
    def is_resolvable(self) -> bool:
        return self.kind is not PaddedCellKind.DIVERGE

    def canonical(self) -> str:
        """Return the output a resolvable cell settles on.

        For convergence this is the last output; for a cycle, the shortest
        member, ties broken lexicographically.

        Raises:
            FmtchainError: If the formatter diverged.
        """

        if self.kind is PaddedCellKind.CONVERGE:
            return self.steps[-1]
        if self.kind is PaddedCellKind.CYCLE:
            return min(self.steps, key=lambda text: (len(text), text))
        raise FmtchainError(f"formatting {self.file or '<input>'} does not converge after {len(self.steps)} rounds")


@dataclass(frozen=True, slots=True)
class DirtyState:
    """Whether a file's bytes already equal their canonical formatted form.

    Attributes:
        canonical_bytes: Bytes the file should contain, ``None`` when clean or
            when the formatter did not converge.
        converged: ``False`` when repeated formatting never settled.
    """

    canonical_bytes: bytes | None
    converged: bool = True

    @property
    def is_clean(self) -> bool:
        return self.converged and self.canonical_bytes is None

    @property
    def did_not_converge(self) -> bool:
        return not self.converged

    @classmethod
    def clean(cls) -> DirtyState:
        return cls(None)

    @classmethod
    def diverged(cls) -> DirtyState:
        return cls(None, converged=False)

    @classmethod
    def of(
        cls,
        formatter: Formatter,
        file: Path | None,
        raw_bytes: bytes,
        *,
        formatted: str | None = None,
    ) -> DirtyState:
        """Compute the dirty state of ``raw_bytes``.

        Args:
            formatter: Formatter defining the canonical form.
            file: Path of the file, passed to steps.
            raw_bytes: Current file content.
            formatted: Unix-normalized output of one formatter pass over
                ``raw_bytes``, when the caller already computed it.

        Returns:
            DirtyState: Clean, dirty with the canonical bytes, or not converged.
        """

        raw = formatter.decode(raw_bytes)
        unix = to_unix(raw)
        once = formatted if formatted is not None else formatter.compute(unix, file)
        once_bytes = formatter.encode(once, raw)
        if once_bytes == raw_bytes:
            return cls.clean()
        if formatter.compute(once, file) == once:
            return cls(once_bytes)
        cell = PaddedCell.check(formatter, file, unix)
        if not cell.is_resolvable:
            return cls.diverged()
        canonical_bytes = formatter.encode(cell.canonical(), raw)
        if canonical_bytes == raw_bytes:
            return cls.clean()
        return cls(canonical_bytes)


__all__ = ["DirtyState", "MAX_CYCLE", "PaddedCell", "PaddedCellKind"]
