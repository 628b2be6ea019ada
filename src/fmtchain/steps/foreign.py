# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Steps that pipe text through a version-checked foreign executable.

Each format call starts one process, writes the text to its stdin and reads
the formatted text from stdout. The executable is located and its version
verified once, when the step's state is first realized.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from ..errors import NotFoundError
from ..process import ProcessRunner
from ..tool_env.discovery import executable_names, is_executable
from ..tool_env.foreign_exe import ForeignExe
from ..tool_env.models import ToolBinary
from .base import ClosableFunc, FormatterStep, StepState, closeable

FILE_PLACEHOLDER: Final[str] = "{file}"
STDIN_FILENAME: Final[str] = "stdin"

BLACK_VERSION_REGEX: Final[str] = r"black,\s+(?:version\s+)?(\S+)"
GO_VERSION_REGEX: Final[str] = r"go version go(\S+)"
SHFMT_VERSION_REGEX: Final[str] = r"v?(\S+)"
CLANG_FORMAT_VERSION_REGEX: Final[str] = r"clang-format version (\S+)"


class ForeignToolState(StepState):
    """Verified executable plus the arguments it is run with.

    ``{file}`` in ``args`` is replaced by the path of the file being formatted,
    or ``stdin`` when there is none.
    """

    binary: ToolBinary
    args: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class _ResolveTool:
    exe: ForeignExe
    args: tuple[str, ...]

    def __call__(self) -> ForeignToolState:
        return ForeignToolState(binary=self.exe.resolve(), args=self.args)


@dataclass(frozen=True, slots=True)
class _ResolveSibling:
    """Verify the version through one executable, then run its sibling."""

    exe: ForeignExe
    sibling: str
    args: tuple[str, ...]

    def __call__(self) -> ForeignToolState:
        runtime = self.exe.resolve()
        candidates = [runtime.path.parent / filename for filename in executable_names(self.sibling)]
        for candidate in candidates:
            if is_executable(candidate):
                binary = ToolBinary(
                    name=self.sibling,
                    requested_version=self.exe.version,
                    path=candidate,
                    discovered_version=runtime.discovered_version,
                )
                return ForeignToolState(binary=binary, args=self.args)
        raise NotFoundError(
            f"Unable to find {self.sibling} {self.exe.version} next to {runtime.path}.\n"
            f"Searched:\n" + "\n".join(f"  {candidate}" for candidate in candidates),
            name=self.sibling,
            version=self.exe.version,
        )


@dataclass(frozen=True, slots=True)
class _StdinFormatter:
    binary: Path
    args: tuple[str, ...]
    runner: ProcessRunner
    timeout: float | None

    def __call__(self, text: str, file: Path | None) -> str:
        filename = str(file) if file is not None else STDIN_FILENAME
        args = [arg.replace(FILE_PLACEHOLDER, filename) for arg in self.args]
        result = self.runner.exec([self.binary, *args], text.encode("utf-8"), timeout=self.timeout)
        return result.assert_exit_zero()


@dataclass(frozen=True, slots=True)
class _ToStdinFormatter:
    timeout: float | None = None

    def __call__(self, state: ForeignToolState) -> ClosableFunc:
        runner = ProcessRunner()
        return closeable(_StdinFormatter(state.binary.path, state.args, runner, self.timeout), runner)


def foreign_step(
    name: str,
    exe: ForeignExe,
    args: Sequence[str] = (),
    *,
    timeout: float | None = None,
) -> FormatterStep[ForeignToolState]:
    """Return a step piping text through ``exe`` with ``args``.

    Args:
        name: Step name.
        exe: Executable contract, resolved on first use.
        args: Arguments placed after the executable path.
        timeout: Seconds after which one format call is killed.

    Returns:
        FormatterStep[ForeignToolState]: Lazy step; closing it kills running children.
    """

    return FormatterStep.create_lazy(name, _ResolveTool(exe, tuple(args)), _ToStdinFormatter(timeout))


def black(version: str, *, path_to_exe: Path | None = None, line_length: int | None = None) -> FormatterStep[ForeignToolState]:
    """Format Python with ``black`` reading from stdin."""

    exe = ForeignExe.name_and_version("black", version).with_version_regex(BLACK_VERSION_REGEX)
    exe = exe.with_path_to_exe(path_to_exe).with_fix_cant_find(
        "Try running `pip install black=={version}`, or configure an explicit path to black.",
    )
    args = ["-q"]
    if line_length is not None:
        args.extend(["--line-length", str(line_length)])
    args.append("-")
    return foreign_step("black", exe, args)


def shfmt(version: str, *, path_to_exe: Path | None = None) -> FormatterStep[ForeignToolState]:
    """Format shell scripts with ``shfmt`` reading from stdin."""

    exe = ForeignExe.name_and_version("shfmt", version).with_version_regex(SHFMT_VERSION_REGEX)
    exe = exe.with_path_to_exe(path_to_exe).with_fix_cant_find(
        "Try running `go install mvdan.cc/sh/v3/cmd/shfmt@v{version}`, or configure an explicit path to shfmt.",
    )
    return foreign_step("shfmt", exe, ["--filename", FILE_PLACEHOLDER])


def clang_format(
    version: str,
    *,
    style: str = "file",
    path_to_exe: Path | None = None,
) -> FormatterStep[ForeignToolState]:
    """Format C-family sources with ``clang-format``, naming the file for language detection."""

    exe = ForeignExe.name_and_version("clang-format", version).with_version_regex(CLANG_FORMAT_VERSION_REGEX)
    exe = exe.with_path_to_exe(path_to_exe).with_fix_cant_find(
        "Install clang-format {version} with your package manager (for example `brew install clang-format`), "
        "or configure an explicit path to clang-format.",
    )
    return foreign_step("clang", exe, [f"--style={style}", f"--assume-filename={FILE_PLACEHOLDER}"])


def gofmt(version: str, *, go_executable: Path | None = None) -> FormatterStep[ForeignToolState]:
    """Format Go with the ``gofmt`` shipped beside a ``go`` toolchain of ``version``.

    The version is verified with ``go version``; ``gofmt`` itself has no
    version flag.
    """

    exe = ForeignExe.name_and_version("go", version).with_version_flag("version")
    exe = exe.with_version_regex(GO_VERSION_REGEX).with_path_to_exe(go_executable).with_fix_cant_find(
        "gofmt is part of the Go toolchain; install Go {version} from https://go.dev/dl/ "
        "or configure an explicit path to the go executable.",
    )
    return FormatterStep.create_lazy("gofmt", _ResolveSibling(exe, "gofmt", ()), _ToStdinFormatter())


__all__ = [
    "FILE_PLACEHOLDER",
    "ForeignToolState",
    "black",
    "clang_format",
    "foreign_step",
    "gofmt",
    "shfmt",
]
