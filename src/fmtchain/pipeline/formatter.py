# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Sequential application of formatting steps to one file's text."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import TracebackType
from typing import TYPE_CHECKING

from ..errors import LintRejection, OperationCancelled, SetupError, StepFailure
from ..lint import Lint
from ..line_endings import LineEnding, from_unix, to_unix

if TYPE_CHECKING:
    from ..steps.base import FormatterStep

LOGGER = logging.getLogger(__name__)


class ExceptionPolicy(str, Enum):
    """What the pipeline does when a step rejects its input."""

    FAIL_FAST = "fail_fast"
    COLLECT_AND_CONTINUE = "collect_and_continue"


class StepOutcome(str, Enum):
    TRANSFORMED = "transformed"
    UNCHANGED = "unchanged"
    REJECTED = "rejected"


@dataclass(frozen=True, slots=True)
class StepResult:
    """What one step did to the text.

    Attributes:
        step_name: Name of the step.
        outcome: Whether the step transformed, kept or rejected the text.
        lints: Findings reported by a rejecting step.
        error: The exception a rejecting step raised.
    """

    step_name: str
    outcome: StepOutcome
    lints: tuple[Lint, ...] = ()
    error: BaseException | None = field(default=None, compare=False)


@dataclass(frozen=True, slots=True)
class PipelineResult:
    """Output of running every step over one input.

    Attributes:
        text: Final text. :func:`apply_steps` leaves it unix-normalized;
            :meth:`Formatter.apply` converts it to the configured line ending.
        steps: One result per step, in application order.
    """

    text: str
    steps: tuple[StepResult, ...]

    @property
    def rejected(self) -> tuple[StepResult, ...]:
        return tuple(result for result in self.steps if result.outcome is StepOutcome.REJECTED)

    @property
    def lints_per_step(self) -> dict[str, tuple[Lint, ...]]:
        """Return the lints of every rejecting step keyed by step name."""
        return {result.step_name: result.lints for result in self.rejected}

    @property
    def has_lints(self) -> bool:
        return any(result.lints for result in self.steps)


def _apply_step(
    step: FormatterStep[object],
    text: str,
    file: Path | None,
    policy: ExceptionPolicy,
) -> tuple[str, StepResult]:
    try:
        formatted = step.format(text, file)
    except (SetupError, OperationCancelled):
        raise
    except LintRejection as exc:
        lints, error = exc.lints, exc
    except Exception as exc:
        lints, error = (Lint.from_exception(exc),), exc
    else:
        if formatted is None:
            return text, StepResult(step.name, StepOutcome.UNCHANGED)
        formatted = to_unix(formatted)
        outcome = StepOutcome.TRANSFORMED if formatted != text else StepOutcome.UNCHANGED
        return formatted, StepResult(step.name, outcome)
    if policy is ExceptionPolicy.FAIL_FAST:
        raise StepFailure(step.name, file, lints) from error
    LOGGER.debug("step %s rejected %s: %s", step.name, file or "<input>", error)
    return text, StepResult(step.name, StepOutcome.REJECTED, lints, error)


def apply_steps(
    steps: Sequence[FormatterStep[object]],
    text: str,
    file: Path | None = None,
    *,
    policy: ExceptionPolicy = ExceptionPolicy.FAIL_FAST,
) -> PipelineResult:
    """Apply ``steps`` to ``text`` strictly in order.

    Line endings are normalized to ``\\n`` once before the first step, and every
    step output is normalized again, so steps only ever see unix text.

    Args:
        steps: Steps to apply; each receives the previous step's output.
        text: Input text with any line endings.
        file: Path of the file being formatted, passed to every step.
        policy: Whether a rejection aborts or is recorded.

    Returns:
        PipelineResult: Unix-normalized output and per-step results. A rejected
        step contributes no change; the next step receives its input.

    Raises:
        StepFailure: Under :attr:`ExceptionPolicy.FAIL_FAST`, on the first rejection.
        SetupError: Whenever a step's state cannot be constructed.
        OperationCancelled: Whenever a step was closed or its child killed.
    """

    current = to_unix(text)
    results: list[StepResult] = []
    for step in steps:
        current, result = _apply_step(step, current, file, policy)
        results.append(result)
    return PipelineResult(text=current, steps=tuple(results))


class Formatter:
    """An ordered list of steps plus the encoding and policies used to run them."""

    def __init__(
        self,
        steps: Iterable[FormatterStep[object]],
        *,
        encoding: str = "utf-8",
        line_ending: LineEnding = LineEnding.UNIX,
        exception_policy: ExceptionPolicy = ExceptionPolicy.FAIL_FAST,
    ) -> None:
        self.steps: tuple[FormatterStep[object], ...] = tuple(steps)
        self.encoding = encoding
        self.line_ending = line_ending
        self.exception_policy = exception_policy

    def compute(self, text: str, file: Path | None = None) -> str:
        """Return the unix-normalized result of applying every step."""

        return apply_steps(self.steps, text, file, policy=self.exception_policy).text

    def apply(self, text: str, file: Path | None = None) -> PipelineResult:
        """Apply every step and convert the result to the configured line ending."""

        result = apply_steps(self.steps, text, file, policy=self.exception_policy)
        separator = self.line_ending.separator(text)
        return PipelineResult(text=from_unix(result.text, separator), steps=result.steps)

    def lint(self, text: str, file: Path | None = None) -> PipelineResult:
        """Run every step collecting rejections instead of raising (check mode)."""

        return apply_steps(self.steps, text, file, policy=ExceptionPolicy.COLLECT_AND_CONTINUE)

    def encode(self, unix_text: str, raw: str | None = None) -> bytes:
        """Return ``unix_text`` with the configured line ending, encoded to bytes."""

        return from_unix(unix_text, self.line_ending.separator(raw)).encode(self.encoding)

    def decode(self, raw: bytes) -> str:
        return raw.decode(self.encoding)

    def is_clean(self, file: Path | None, raw_bytes: bytes) -> bool:
        """Return ``True`` when one formatting pass leaves ``raw_bytes`` unchanged."""

        raw = self.decode(raw_bytes)
        return self.encode(self.compute(raw, file), raw) == raw_bytes

    def close(self) -> None:
        """Close every step, releasing processes and boundaries they hold."""

        for step in self.steps:
            step.close()

    def __enter__(self) -> Formatter:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()


__all__ = [
    "ExceptionPolicy",
    "Formatter",
    "PipelineResult",
    "StepOutcome",
    "StepResult",
    "apply_steps",
]
