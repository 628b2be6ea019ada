# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Line-level findings reported by formatting steps."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Lint(BaseModel):
    """A problem a step found on a range of lines of its input.

    Attributes:
        line_start: First affected line, 1-based.
        line_end: Last affected line; equals ``line_start`` for single-line findings.
        rule_id: Short rule code such as ``TEST001``.
        detail: Human readable description of the problem.
    """

    model_config = ConfigDict(frozen=True)

    line_start: int = Field(ge=1)
    line_end: int | None = None
    rule_id: str
    detail: str

    @model_validator(mode="after")
    def _check_range(self) -> Lint:
        """Reject ranges whose end precedes their start."""
        if self.line_end is not None and self.line_end < self.line_start:
            raise ValueError(f"line_end {self.line_end} precedes line_start {self.line_start}")
        return self

    @classmethod
    def at_line(cls, line: int, rule_id: str, detail: str) -> Lint:
        """Return a lint covering a single line."""
        return cls(line_start=line, rule_id=rule_id, detail=detail)

    @classmethod
    def at_lines(cls, line_start: int, line_end: int, rule_id: str, detail: str) -> Lint:
        """Return a lint covering ``line_start`` through ``line_end`` inclusive."""
        return cls(line_start=line_start, line_end=line_end, rule_id=rule_id, detail=detail)

    @classmethod
    def from_exception(cls, exc: BaseException) -> Lint:
        """Convert an unexpected exception raised by a step into a lint.

        The exception class name becomes the rule id. Exceptions exposing an
        integer ``line`` (or ``lineno``, as ``SyntaxError`` does) keep that line.

        Args:
            exc: Exception raised while a step was formatting.

        Returns:
            Lint: Finding describing the failure.
        """

        line = getattr(exc, "line", None)
        if not isinstance(line, int):
            line = getattr(exc, "lineno", None)
        if not isinstance(line, int) or line < 1:
            line = 1
        detail = str(exc) or type(exc).__name__
        return cls(line_start=line, rule_id=type(exc).__name__, detail=detail)

    @property
    def last_line(self) -> int:
        """Return the last affected line."""
        return self.line_end if self.line_end is not None else self.line_start

    @property
    def message(self) -> str:
        """Return ``"<rule_id>: <detail>"``, or just the detail when no rule id is set."""
        return f"{self.rule_id}: {self.detail}" if self.rule_id else self.detail

    def describe(self, step_name: str, path: Path | str) -> str:
        """Return a single report line for this lint."""
        if self.last_line == self.line_start:
            location = f"{path}:{self.line_start}"
        else:
            location = f"{path}:{self.line_start}-{self.last_line}"
        return f"{location}: {step_name}({self.rule_id}) {self.detail}"


__all__ = ["Lint"]
