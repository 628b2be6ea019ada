# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Publish-once memoization of expensive step state.

A :class:`LazyStateCache` wraps a zero-argument supplier. The first caller of
:meth:`LazyStateCache.get` runs the supplier while any concurrent caller waits
on the same attempt. A successful result is published and every later read
returns it without locking. A failed attempt is reported to every caller that
waited on it and then forgotten, so the next :meth:`~LazyStateCache.get`
starts a fresh attempt.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from concurrent.futures import Future
from threading import Lock
from typing import Final, Generic, TypeVar, cast

T = TypeVar("T")

LOGGER = logging.getLogger(__name__)

_UNSET: Final = object()


class LazyStateCache(Generic[T]):
    """Compute a value at most once per successful attempt, thread-safely."""

    __slots__ = ("_supplier", "_value", "_attempt", "_lock")

    def __init__(self, supplier: Callable[[], T]) -> None:
        self._supplier = supplier
        self._value: object = _UNSET
        self._attempt: Future[T] | None = None
        self._lock = Lock()

    def get(self) -> T:
        """Return the realized value, running the supplier on first use.

        Returns:
            T: The published value, identical for every caller.

        Raises:
            BaseException: Whatever the supplier raised for the attempt this
                caller joined. The failure is not cached.
        """

        value = self._value
        if value is not _UNSET:
            return cast(T, value)
        with self._lock:
            value = self._value
            if value is not _UNSET:
                return cast(T, value)
            attempt = self._attempt
            owner = attempt is None
            if attempt is None:
                attempt = self._attempt = Future()
        if not owner:
            return attempt.result()
        return self._realize(attempt)

    def _realize(self, attempt: Future[T]) -> T:
        try:
            value = self._supplier()
        except BaseException as exc:
            with self._lock:
                self._attempt = None
            attempt.set_exception(exc)
            raise
        with self._lock:
            self._value = value
            self._attempt = None
        attempt.set_result(value)
        LOGGER.debug("realized state via %r", self._supplier)
        return value

    def is_realized(self) -> bool:
        """Return ``True`` once a value has been published."""

        return self._value is not _UNSET

    def peek(self) -> T | None:
        """Return the published value, or ``None`` without triggering realization."""

        value = self._value
        return None if value is _UNSET else cast(T, value)


__all__ = ["LazyStateCache"]
