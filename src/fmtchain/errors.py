# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Exception hierarchy shared across fmtchain.

Setup errors (:class:`SetupError` and subclasses) describe configuration
problems. They are raised while a step's state is being realized and therefore
affect every file that uses the step. The remaining errors are scoped to a
single format invocation.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .lint import Lint


class FmtchainError(Exception):
    """Base class for every error raised by fmtchain."""


class SetupError(FmtchainError):
    """Configuration problem that prevents a step from being constructed."""


class ConfigError(SetupError):
    """Raised when configuration content is malformed or inconsistent."""


class ResolutionError(SetupError):
    """Raised when an artifact coordinate cannot be resolved to local files."""


class NotFoundError(SetupError):
    """Raised when a foreign executable cannot be located."""

    def __init__(self, message: str, *, name: str, version: str | None = None) -> None:
        super().__init__(message)
        self.name = name
        self.version = version


class WrongVersionError(SetupError):
    """Raised when a foreign executable reports an unexpected version."""

    def __init__(
        self,
        message: str,
        *,
        name: str,
        expected: str,
        found: str | None,
        path: Path,
    ) -> None:
        super().__init__(message)
        self.name = name
        self.expected = expected
        self.found = found
        self.path = path


class ProcessError(FmtchainError):
    """Raised when a subprocess fails to launch, exits non-zero, or is cancelled."""

    def __init__(
        self,
        message: str,
        *,
        command: Sequence[str] = (),
        exit_code: int | None = None,
        stderr: str = "",
    ) -> None:
        super().__init__(message)
        self.command = tuple(command)
        self.exit_code = exit_code
        self.stderr = stderr


class OperationCancelled(FmtchainError):
    """Raised when work stops because its runner or step was closed.

    The pipeline never turns this into a lint; it always propagates.
    """


class ProcessCancelled(ProcessError, OperationCancelled):
    """Raised when a child is killed by a cancellation or its runner is closed."""


class BoundaryError(FmtchainError):
    """Raised when code loaded behind an isolation boundary fails."""


class SuggestedVersionError(FmtchainError):
    """Formatter failure enriched with a hint about a later formatter version."""

    def __init__(self, message: str, *, suggested_version: str) -> None:
        super().__init__(message)
        self.suggested_version = suggested_version


class LintRejection(FmtchainError):
    """Raised by a step that found problems but did not transform the text."""

    def __init__(self, lints: Iterable[Lint], message: str | None = None) -> None:
        self.lints: tuple[Lint, ...] = tuple(lints)
        if message is None:
            message = "; ".join(f"{lint.rule_id}: {lint.detail}" for lint in self.lints) or "step rejected input"
        super().__init__(message)


class StepFailure(FmtchainError):
    """Raised by the pipeline when a step is rejected under the fail-fast policy."""

    def __init__(self, step_name: str, file: Path | None, lints: Sequence[Lint]) -> None:
        self.step_name = step_name
        self.file = file
        self.lints = tuple(lints)
        location = str(file) if file is not None else "<input>"
        details = "\n".join(f"  {location}:{lint.line_start}: {lint.rule_id} {lint.detail}" for lint in self.lints)
        super().__init__(f"Step '{step_name}' failed on {location}\n{details}".rstrip())


__all__ = [
    "BoundaryError",
    "ConfigError",
    "FmtchainError",
    "LintRejection",
    "NotFoundError",
    "OperationCancelled",
    "ProcessCancelled",
    "ProcessError",
    "ResolutionError",
    "SetupError",
    "StepFailure",
    "SuggestedVersionError",
    "WrongVersionError",
]
