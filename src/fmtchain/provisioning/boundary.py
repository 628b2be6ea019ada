# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Loading boundaries that turn artifact code into typed format functions.

A boundary is the only component that resolves symbols by name. It accepts an
entry point of the form ``module:attribute`` and returns a
:data:`FormatFunction`; everything downstream calls that function without
knowing where its code came from.

The entry callable is invoked as ``fn(text)``, or as ``fn(text, path)`` when it
declares a second positional parameter. Returning ``None`` means "unchanged".
"""

from __future__ import annotations

import importlib
import importlib.machinery
import inspect
import json
import logging
import sys
import threading
import zipfile
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path
from types import ModuleType
from typing import Final, Protocol, runtime_checkable

from pydantic import ValidationError

from ..errors import BoundaryError, LintRejection, ProcessError
from ..lint import Lint
from ..process import ProcessRunner
from .artifacts import ArtifactSet
from .error_sink import capture_errors

LOGGER = logging.getLogger(__name__)

BRIDGE_SCRIPT: Final[Path] = Path(__file__).with_name("bridge.py")

FormatFunction = Callable[[str, Path | None], str]

_SYS_PATH_LOCK = threading.Lock()

# Longest first, so ``.cpython-312-x86_64-linux-gnu.so`` wins over ``.so``.
_MODULE_SUFFIXES: Final[tuple[str, ...]] = tuple(
    sorted(importlib.machinery.all_suffixes(), key=len, reverse=True),
)


def split_entry_point(entry_point: str) -> tuple[str, str]:
    """Split ``module:attribute`` into its parts.

    Raises:
        BoundaryError: If either part is missing.
    """

    module_name, sep, attribute = entry_point.partition(":")
    if not sep or not module_name or not attribute:
        raise BoundaryError(f"Invalid entry point '{entry_point}', expected 'module:attribute'")
    return module_name, attribute


def _accepts_path(function: Callable[..., object]) -> bool:
    try:
        parameters = list(inspect.signature(function).parameters.values())
    except (TypeError, ValueError):
        return False
    positional = [
        parameter
        for parameter in parameters
        if parameter.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
    ]
    return len(positional) >= 2 or any(parameter.kind is inspect.Parameter.VAR_POSITIONAL for parameter in parameters)


@runtime_checkable
class IsolationBoundary(Protocol):
    """Execution scope for code shipped in an :class:`ArtifactSet`."""

    artifacts: ArtifactSet

    def load(self, entry_point: str) -> FormatFunction:
        """Resolve ``entry_point`` and return a callable format function."""
        ...

    def close(self) -> None:
        """Release resources held by the boundary."""
        ...


@dataclass(frozen=True, slots=True)
class _SharedFunction:
    target: Callable[..., object]
    entry_point: str
    pass_path: bool
    error_logger: str | None

    def __call__(self, text: str, file: Path | None) -> str:
        if self.error_logger is None:
            return self._invoke(text, file)
        with capture_errors(self.error_logger) as sink:
            output = self._invoke(text, file)
        sink.raise_if_errors(self.entry_point)
        return output

    def _invoke(self, text: str, file: Path | None) -> str:
        output = self.target(text, file) if self.pass_path else self.target(text)
        if output is None:
            return text
        if not isinstance(output, str):
            raise BoundaryError(f"{self.entry_point} returned {type(output).__name__}, expected str")
        return output


def _top_level_modules(root: Path) -> set[str]:
    """Return the names importable from the top of ``root``, a directory or archive."""

    if root.is_dir():
        entries = [(child.name, child.is_dir()) for child in root.iterdir()]
    elif zipfile.is_zipfile(root):
        with zipfile.ZipFile(root) as archive:
            entries = [(name.split("/", 1)[0], "/" in name) for name in archive.namelist()]
    else:
        return set()
    names: set[str] = set()
    for name, is_package in entries:
        if not is_package:
            suffix = next((suffix for suffix in _MODULE_SUFFIXES if name.endswith(suffix)), None)
            if suffix is None:
                continue
            name = name[: -len(suffix)]
        if name.isidentifier() and name != "__pycache__":
            names.add(name)
    return names


def _top_level(module_name: str) -> str:
    return module_name.partition(".")[0]


class SharedBoundary:
    """Import artifact code into the host interpreter.

    The artifact roots are placed at the front of ``sys.path`` while the
    boundary is open, so artifact modules win over host modules of the same
    name and anything missing from the artifacts falls back to the host.

    Modules shipped by the artifacts live in a namespace private to the
    boundary: they are only present in ``sys.modules`` while the boundary
    imports, so two boundaries shipping different versions of the same module
    each run their own copy. Imports an artifact function performs while it
    runs resolve through ``sys.path`` as usual.
    """

    def __init__(self, artifacts: ArtifactSet) -> None:
        self.artifacts = artifacts
        self._entries: list[str] = []
        self._owned: frozenset[str] = frozenset()
        self._modules: dict[str, ModuleType] = {}
        self._closed = False

    def _open(self) -> None:
        if self._entries or self._closed:
            return
        self._entries = self.artifacts.search_path()
        self._owned = frozenset(name for entry in self._entries for name in _top_level_modules(Path(entry)))
        sys.path[:0] = self._entries
        importlib.invalidate_caches()

    def _import(self, module_name: str) -> ModuleType:
        """Import ``module_name`` with this boundary's roots and modules in front.

        Must be called with ``_SYS_PATH_LOCK`` held.
        """

        displaced = {name: module for name, module in list(sys.modules.items()) if _top_level(name) in self._owned}
        for name in displaced:
            del sys.modules[name]
        sys.modules.update(self._modules)
        saved_path = list(sys.path)
        sys.path[:] = [*self._entries, *(entry for entry in saved_path if entry not in self._entries)]
        try:
            return importlib.import_module(module_name)
        finally:
            sys.path[:] = saved_path
            for name in [name for name in list(sys.modules) if _top_level(name) in self._owned]:
                self._modules[name] = sys.modules.pop(name)
            sys.modules.update(displaced)

    def load(self, entry_point: str, *, error_logger: str | None = None) -> FormatFunction:
        """Import ``entry_point`` and return it as a format function.

        Args:
            entry_point: ``module:attribute`` naming the format callable.
            error_logger: Logger the library reports failures through; errors
                logged there during a call are raised as :class:`BoundaryError`.

        Raises:
            BoundaryError: If the boundary is closed, the module cannot be
                imported, or the attribute is missing or not callable.
        """

        module_name, attribute = split_entry_point(entry_point)
        with _SYS_PATH_LOCK:
            if self._closed:
                raise BoundaryError(f"boundary for {self.artifacts.describe()} is closed")
            self._open()
            try:
                module = self._import(module_name)
            except ImportError as exc:
                raise BoundaryError(
                    f"Unable to import '{module_name}' from {self.artifacts.describe()}: {exc}",
                ) from exc
        target = _lookup(module, attribute, entry_point)
        return _SharedFunction(
            target=target,
            entry_point=entry_point,
            pass_path=_accepts_path(target),
            error_logger=error_logger,
        )

    def close(self) -> None:
        """Remove the artifact roots from ``sys.path`` and drop the private modules."""

        with _SYS_PATH_LOCK:
            self._closed = True
            for entry in self._entries:
                if entry in sys.path:
                    sys.path.remove(entry)
            self._entries = []
            self._modules.clear()


def _lookup(module: ModuleType, attribute: str, entry_point: str) -> Callable[..., object]:
    target: object = module
    for part in attribute.split("."):
        try:
            target = getattr(target, part)
        except AttributeError as exc:
            raise BoundaryError(f"Entry point '{entry_point}' does not exist: {exc}") from exc
    if not callable(target):
        raise BoundaryError(f"Entry point '{entry_point}' is not callable")
    return target


@dataclass(frozen=True, slots=True)
class _IsolatedFunction:
    boundary: IsolatedBoundary
    entry_point: str

    def __call__(self, text: str, file: Path | None) -> str:
        return self.boundary.invoke(self.entry_point, text, file)


class IsolatedBoundary:
    """Run artifact code in a fresh interpreter that cannot see host packages.

    Each call starts ``python -I -S bridge.py <artifact roots...>``. The child's
    module search path is the artifact roots plus the standard library; the
    bridge script is the only other code it runs.
    """

    def __init__(
        self,
        artifacts: ArtifactSet,
        *,
        python: str = sys.executable,
        bridge_loggers: Sequence[str] = (),
        timeout: float | None = None,
    ) -> None:
        self.artifacts = artifacts
        self._python = python
        self._bridge_loggers = tuple(bridge_loggers)
        self._timeout = timeout
        self._runner = ProcessRunner()

    def load(self, entry_point: str) -> FormatFunction:
        """Check that ``entry_point`` resolves inside the boundary and return it.

        Raises:
            BoundaryError: If the entry point cannot be resolved in the child.
        """

        split_entry_point(entry_point)
        self._request({"entry_point": entry_point, "action": "probe"})
        return _IsolatedFunction(self, entry_point)

    def invoke(self, entry_point: str, text: str, file: Path | None) -> str:
        """Format ``text`` with ``entry_point`` in a fresh child interpreter.

        Raises:
            LintRejection: If the artifact code raised an error carrying lints.
            BoundaryError: If the artifact code failed otherwise.
            ProcessError: If the child could not be run or was cancelled.
        """

        response = self._request(
            {
                "entry_point": entry_point,
                "action": "format",
                "text": text,
                "path": str(file) if file is not None else None,
            },
        )
        output = response.get("output")
        if not isinstance(output, str):
            raise BoundaryError(f"{entry_point} produced no output")
        return output

    def _request(self, payload: dict[str, object]) -> dict[str, object]:
        payload["loggers"] = list(self._bridge_loggers)
        command = [self._python, "-I", "-S", str(BRIDGE_SCRIPT), *self.artifacts.search_path()]
        result = self._runner.exec(command, json.dumps(payload).encode("utf-8"), timeout=self._timeout)
        try:
            raw = result.assert_exit_zero()
        except ProcessError as exc:
            raise BoundaryError(f"isolated interpreter for {self.artifacts.describe()} crashed:\n{exc}") from exc
        try:
            response = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise BoundaryError(f"isolated interpreter returned malformed output: {raw[:200]!r}") from exc
        error = response.get("error")
        if error is None:
            return response
        entry_point = payload["entry_point"]
        try:
            lints = [Lint.model_validate(item) for item in response.get("lints") or ()]
        except ValidationError as exc:
            raise BoundaryError(f"{entry_point} reported malformed lints: {exc}") from exc
        if lints:
            raise LintRejection(lints, f"{entry_point}: {error}")
        raise BoundaryError(f"{entry_point} failed in {self.artifacts.describe()}: {error}")

    def close(self) -> None:
        """Kill any child still running for this boundary."""

        self._runner.close()


__all__ = [
    "BRIDGE_SCRIPT",
    "FormatFunction",
    "IsolatedBoundary",
    "IsolationBoundary",
    "SharedBoundary",
    "split_entry_point",
]
