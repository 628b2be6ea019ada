# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Run foreign executables with piped standard streams.

:class:`ProcessRunner` launches a fresh child for every :meth:`ProcessRunner.exec`
call. The input buffer is written to the child's stdin and the stream closed,
while stdout and stderr are drained concurrently, so large outputs cannot
deadlock on full pipe buffers. Every child is reaped before ``exec`` returns or
raises, including when it is killed because of a timeout or a cancellation.
"""

from __future__ import annotations

import logging
import shutil

# Bandit: subprocess usage is intentional; commands are argument lists and
# ``shell=True`` is never used.
import subprocess  # nosec B404
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from threading import Lock
from types import TracebackType

from .errors import ProcessCancelled, ProcessError

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ProcessResult:
    """Captured outcome of one child process.

    Attributes:
        command: Argument list the child was launched with.
        exit_code: Exit status reported by the child.
        stdout: Raw bytes written to standard output.
        stderr: Raw bytes written to standard error.
    """

    command: tuple[str, ...]
    exit_code: int
    stdout: bytes
    stderr: bytes

    def stdout_text(self, encoding: str = "utf-8") -> str:
        return self.stdout.decode(encoding, errors="replace")

    def stderr_text(self, encoding: str = "utf-8") -> str:
        return self.stderr.decode(encoding, errors="replace")

    def describe(self, encoding: str = "utf-8") -> str:
        """Return a multi-line summary of the command, exit code and streams."""

        lines = [f"> {' '.join(self.command)}", f"exit code: {self.exit_code}"]
        stdout = self.stdout_text(encoding)
        stderr = self.stderr_text(encoding)
        if stdout:
            lines.append(f"stdout: {stdout.rstrip()}")
        if stderr:
            lines.append(f"stderr: {stderr.rstrip()}")
        return "\n".join(lines)

    def assert_exit_zero(self, encoding: str = "utf-8") -> str:
        """Return stdout decoded with ``encoding`` when the child exited cleanly.

        Args:
            encoding: Codec used to decode the captured streams.

        Returns:
            str: Decoded standard output.

        Raises:
            ProcessError: If the exit code is non-zero. The message embeds the
                exit code and the verbatim stderr text.
        """

        if self.exit_code == 0:
            return self.stdout.decode(encoding)
        raise ProcessError(
            self.describe(encoding),
            command=self.command,
            exit_code=self.exit_code,
            stderr=self.stderr_text(encoding),
        )


def _normalize_args(args: Sequence[str | Path]) -> list[str]:
    """Return ``args`` as strings with the executable resolved to a path.

    Raises:
        ProcessError: If no arguments are given or the executable cannot be found.
    """

    if not args:
        raise ProcessError("subprocess command requires at least one argument")
    head, *rest = (str(arg) for arg in args)
    head_path = Path(head)
    if head_path.is_absolute():
        return [head, *rest]
    resolved = shutil.which(head)
    if resolved is None:
        raise ProcessError(f"Executable '{head}' was not found on PATH", command=(head, *rest))
    return [resolved, *rest]


def _terminate(process: subprocess.Popen[bytes]) -> None:
    """Kill ``process``, drain and close its pipes, and reap it."""

    process.kill()
    process.communicate()


class ProcessRunner:
    """Launch child processes and track the ones still running.

    A runner can be reused for any number of sequential or concurrent calls.
    :meth:`cancel` kills every tracked child; :meth:`close` also refuses any
    further launches. Runners are context managers that close on exit.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._live: set[subprocess.Popen[bytes]] = set()
        self._killed: set[subprocess.Popen[bytes]] = set()
        self._closed = False

    def exec(
        self,
        args: Sequence[str | Path],
        stdin: bytes = b"",
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> ProcessResult:
        """Run ``args`` to completion feeding ``stdin`` to the child.

        Args:
            args: Executable followed by its arguments.
            stdin: Bytes written to the child's standard input before it is closed.
            cwd: Optional working directory.
            env: Optional full environment for the child.
            timeout: Optional number of seconds after which the child is killed.

        Returns:
            ProcessResult: Exit code and captured output. A non-zero exit code is
            reported here, not raised; use :meth:`ProcessResult.assert_exit_zero`.

        Raises:
            ProcessCancelled: If the runner is closed or the child is cancelled.
            ProcessError: If the child cannot be launched or the timeout expires.
        """

        command = _normalize_args(args)
        with self._lock:
            if self._closed:
                raise ProcessCancelled("process runner is closed", command=command)
            try:
                # Bandit: argument lists come from resolved tool paths, never a shell string.
                process = subprocess.Popen(  # nosec B603
                    command,
                    stdin=subprocess.PIPE,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.PIPE,
                    cwd=str(cwd) if cwd is not None else None,
                    env=dict(env) if env is not None else None,
                )
            except OSError as exc:
                raise ProcessError(f"Unable to launch '{command[0]}': {exc}", command=command) from exc
            self._live.add(process)
        try:
            stdout, stderr = process.communicate(input=stdin, timeout=timeout)
        except subprocess.TimeoutExpired as exc:
            _terminate(process)
            raise ProcessError(
                f"Command '{command[0]}' timed out after {timeout:.1f}s",
                command=command,
            ) from exc
        except BaseException:
            _terminate(process)
            raise
        finally:
            with self._lock:
                self._live.discard(process)
                cancelled = process in self._killed
                self._killed.discard(process)
        if cancelled:
            raise ProcessCancelled(f"Command '{command[0]}' was cancelled", command=command)
        LOGGER.debug("%s exited with %s", command[0], process.returncode)
        return ProcessResult(
            command=tuple(command),
            exit_code=process.returncode,
            stdout=stdout,
            stderr=stderr,
        )

    @property
    def live_count(self) -> int:
        """Return the number of children currently running."""

        with self._lock:
            return len(self._live)

    def cancel(self) -> None:
        """Kill every tracked child; their ``exec`` calls raise :class:`ProcessError`."""

        with self._lock:
            victims = list(self._live)
            self._killed.update(victims)
        for process in victims:
            LOGGER.debug("killing pid %s", process.pid)
            process.kill()

    def close(self) -> None:
        """Cancel tracked children and refuse further launches."""

        with self._lock:
            self._closed = True
        self.cancel()

    @property
    def closed(self) -> bool:
        return self._closed

    def __enter__(self) -> ProcessRunner:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()


__all__ = ["ProcessResult", "ProcessRunner"]
