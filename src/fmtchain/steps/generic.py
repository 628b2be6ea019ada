# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Language-agnostic steps implemented in pure Python."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Final

from ..errors import LintRejection
from ..lint import Lint
from .base import FormatterFunc, FormatterStep, StepState

DEFAULT_SPACES_PER_TAB: Final[int] = 4

_TRAILING_WHITESPACE = re.compile(r"[ \t]+$", re.MULTILINE)


class BuiltinState(StepState):
    kind: str


@dataclass(frozen=True, slots=True)
class _StaticFunc:
    kind: str

    def __call__(self, text: str, file: Path | None) -> str | None:
        del file
        if self.kind == "trim_trailing_whitespace":
            return _TRAILING_WHITESPACE.sub("", text)
        if self.kind == "end_with_newline":
            stripped = text.rstrip()
            return stripped + "\n" if stripped else stripped
        raise ValueError(f"unknown step kind {self.kind}")


def _static_func(state: BuiltinState) -> FormatterFunc:
    return _StaticFunc(state.kind)


def trim_trailing_whitespace() -> FormatterStep[BuiltinState]:
    """Remove spaces and tabs at the end of every line."""
    return FormatterStep.create("trimTrailingWhitespace", BuiltinState(kind="trim_trailing_whitespace"), _static_func)


def end_with_newline() -> FormatterStep[BuiltinState]:
    """Strip trailing blank space and end non-empty text with exactly one newline."""
    return FormatterStep.create("endWithNewline", BuiltinState(kind="end_with_newline"), _static_func)


class IndentKind(str, Enum):
    TAB = "tab"
    SPACE = "space"


class IndentState(StepState):
    kind: IndentKind
    spaces_per_tab: int


@dataclass(frozen=True, slots=True)
class _Indenter:
    state: IndentState

    def __call__(self, text: str, file: Path | None) -> str:
        del file
        lines = text.split("\n")
        return "\n".join(self._reindent(line) for line in lines)

    def _reindent(self, line: str) -> str:
        content = line.lstrip(" \t")
        leading = line[: len(line) - len(content)]
        if not leading:
            return line
        width = sum(self.state.spaces_per_tab if char == "\t" else 1 for char in leading)
        if self.state.kind is IndentKind.SPACE:
            return " " * width + content
        return "\t" * (width // self.state.spaces_per_tab) + content


def indent(kind: IndentKind = IndentKind.SPACE, spaces_per_tab: int = DEFAULT_SPACES_PER_TAB) -> FormatterStep[IndentState]:
    """Normalize leading whitespace to tabs or spaces.

    A tab counts as ``spaces_per_tab`` spaces. When indenting with tabs, any
    remainder narrower than a full tab is dropped.
    """

    if spaces_per_tab < 1:
        raise ValueError("spaces_per_tab must be at least 1")
    name = "indentWithTabs" if kind is IndentKind.TAB else "indentWithSpaces"
    return FormatterStep.create(name, IndentState(kind=kind, spaces_per_tab=spaces_per_tab), _Indenter)


class RegexState(StepState):
    pattern: str
    replacement: str


class LintRegexState(StepState):
    pattern: str
    detail: str


@dataclass(frozen=True, slots=True)
class _Replacer:
    regex: re.Pattern[str]
    replacement: str

    def __call__(self, text: str, file: Path | None) -> str:
        del file
        return self.regex.sub(self.replacement, text)


def _replacer(state: RegexState) -> FormatterFunc:
    return _Replacer(re.compile(state.pattern, re.MULTILINE), state.replacement)


def replace(name: str, target: str, replacement: str) -> FormatterStep[RegexState]:
    """Replace every literal occurrence of ``target``."""
    return replace_regex(name, re.escape(target), replacement.replace("\\", "\\\\"))


def replace_regex(name: str, pattern: str, replacement: str) -> FormatterStep[RegexState]:
    """Replace matches of ``pattern`` (multiline mode) using :func:`re.sub` syntax."""
    return FormatterStep.create_lazy(name, _RegexSupplier(pattern, replacement), _replacer)


@dataclass(frozen=True, slots=True)
class _RegexSupplier:
    pattern: str
    text: str
    lint: bool = False

    def __call__(self) -> RegexState | LintRegexState:
        re.compile(self.pattern, re.MULTILINE)
        if self.lint:
            return LintRegexState(pattern=self.pattern, detail=self.text)
        return RegexState(pattern=self.pattern, replacement=self.text)


@dataclass(frozen=True, slots=True)
class _RegexLinter:
    regex: re.Pattern[str]
    detail: str

    def __call__(self, text: str, file: Path | None) -> None:
        del file
        lints = []
        for match in self.regex.finditer(text):
            line = 1 + text.count("\n", 0, match.start())
            rule_id = match.group(0).strip().split("\n", 1)[0]
            lints.append(Lint.at_line(line, rule_id, self.detail))
        if lints:
            raise LintRejection(lints)


def _linter(state: LintRegexState) -> FormatterFunc:
    return _RegexLinter(re.compile(state.pattern, re.MULTILINE), state.detail)


def lint_regex(name: str, pattern: str, detail: str) -> FormatterStep[LintRegexState]:
    """Reject input containing ``pattern``; each match becomes a lint.

    The matched text (first line, stripped) is the lint's rule id.
    """

    return FormatterStep.create_lazy(name, _RegexSupplier(pattern, detail, lint=True), _linter)


__all__ = [
    "DEFAULT_SPACES_PER_TAB",
    "IndentKind",
    "end_with_newline",
    "indent",
    "lint_regex",
    "replace",
    "replace_regex",
    "trim_trailing_whitespace",
]
