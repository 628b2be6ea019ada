# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Formatting step descriptors and their lazily realized state.

A :class:`FormatterStep` pairs a stable name with a supplier of state and a
function turning that state into a :data:`FormatterFunc`. The supplier runs at
most once per step (see :class:`~fmtchain.cache.lazy.LazyStateCache`), which is
where expensive work such as provisioning artifacts or locating executables
happens. Formatting itself only calls the function built from the state.

Steps compare equal when their names match and their realized states compare
equal; equal steps produce identical output for identical input.
"""

from __future__ import annotations

import json
import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Generic, Protocol, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic_core import to_jsonable_python

from ..cache.lazy import LazyStateCache
from ..errors import OperationCancelled

LOGGER = logging.getLogger(__name__)

StateT = TypeVar("StateT")

FormatterFunc = Callable[[str, Path | None], str | None]
"""Format ``text`` (unix line endings) for an optional file path.

Returning ``None`` or the input means the step left the text unchanged.
Raising :class:`~fmtchain.errors.LintRejection` rejects the input.
"""


class Closeable(Protocol):
    def close(self) -> None: ...


class StepState(BaseModel):
    """Base class for step states: frozen, hashable and JSON serializable."""

    model_config = ConfigDict(frozen=True)


@dataclass(frozen=True, slots=True)
class ClosableFunc:
    """A format function bundled with a resource released by :meth:`close`."""

    fn: FormatterFunc
    resource: Closeable

    def __call__(self, text: str, file: Path | None) -> str | None:
        return self.fn(text, file)

    def close(self) -> None:
        self.resource.close()


def closeable(fn: FormatterFunc, resource: Closeable) -> ClosableFunc:
    """Return ``fn`` with ``resource`` attached so closing the step closes it."""

    return ClosableFunc(fn, resource)


def _close_fn(fn: FormatterFunc) -> None:
    close = getattr(fn, "close", None)
    if callable(close):
        close()


class _NeverUpToDateState(StepState):
    token: str


@dataclass(frozen=True, slots=True)
class _ConstantFunc:
    fn: FormatterFunc

    def __call__(self, state: object) -> FormatterFunc:
        del state
        return self.fn


class FormatterStep(Generic[StateT]):
    """A named, lazily initialized formatting step."""

    __slots__ = ("_name", "_state", "_to_format_fn", "_format_fn", "_closed")

    def __init__(
        self,
        name: str,
        state_supplier: Callable[[], StateT],
        to_format_fn: Callable[[StateT], FormatterFunc],
    ) -> None:
        if not name:
            raise ValueError("step name must not be empty")
        self._name = name
        self._state: LazyStateCache[StateT] = LazyStateCache(state_supplier)
        self._to_format_fn = to_format_fn
        self._format_fn: LazyStateCache[FormatterFunc] = LazyStateCache(self._build_format_fn)
        self._closed = False

    @classmethod
    def create(
        cls,
        name: str,
        state: StateT,
        to_format_fn: Callable[[StateT], FormatterFunc],
    ) -> FormatterStep[StateT]:
        """Return a step whose state is already known."""

        return cls(name, _Constant(state), to_format_fn)

    @classmethod
    def create_lazy(
        cls,
        name: str,
        state_supplier: Callable[[], StateT],
        to_format_fn: Callable[[StateT], FormatterFunc],
    ) -> FormatterStep[StateT]:
        """Return a step whose state is computed on first use."""

        return cls(name, state_supplier, to_format_fn)

    @classmethod
    def never_up_to_date(cls, name: str, fn: FormatterFunc) -> FormatterStep[Any]:
        """Return a step whose state never equals another's, so it is never skipped."""

        state = _NeverUpToDateState(token=secrets.token_hex(16))
        return cls(name, _Constant(state), _ConstantFunc(fn))

    @property
    def name(self) -> str:
        return self._name

    def state(self) -> StateT:
        """Return the realized state, running the supplier on first use."""

        return self._state.get()

    def peek_state(self) -> StateT | None:
        """Return the state if it has been realized, without realizing it."""

        return self._state.peek()

    def _build_format_fn(self) -> FormatterFunc:
        return self._to_format_fn(self.state())

    @property
    def closed(self) -> bool:
        return self._closed

    def format(self, text: str, file: Path | None = None) -> str | None:
        """Apply this step to unix-normalized ``text``.

        Raises:
            OperationCancelled: If the step has been closed.
        """

        if self._closed:
            raise OperationCancelled(f"step '{self._name}' is closed")
        fn = self._format_fn.get()
        if self._closed:
            # close() may have run while the function was being built.
            _close_fn(fn)
            raise OperationCancelled(f"step '{self._name}' is closed")
        return fn(text, file)

    def state_key(self) -> str:
        """Return a stable JSON serialization of the step name and its state."""

        state = self.state()
        payload = state.model_dump(mode="json") if isinstance(state, BaseModel) else to_jsonable_python(state)
        return json.dumps({"name": self._name, "state": payload}, sort_keys=True)

    def close(self) -> None:
        """Release resources held by the format function and refuse further use.

        The realized state stays available, so a closed step still compares
        and hashes like an open one.
        """

        if self._closed:
            return
        self._closed = True
        fn = self._format_fn.peek()
        if fn is not None:
            LOGGER.debug("closing step %s", self._name)
            _close_fn(fn)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FormatterStep):
            return NotImplemented
        if self is other:
            return True
        return self._name == other._name and self.state() == other.state()

    def __hash__(self) -> int:
        return hash((self._name, self.state()))

    def __repr__(self) -> str:
        return f"FormatterStep(name={self._name!r})"


@dataclass(frozen=True, slots=True)
class _Constant:
    value: Any

    def __call__(self) -> Any:
        return self.value


__all__ = [
    "ClosableFunc",
    "Closeable",
    "FormatterFunc",
    "FormatterStep",
    "StepState",
    "closeable",
]
