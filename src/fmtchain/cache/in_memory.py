# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Keyed in-memory memoization for process-wide helpers.

Unlike :class:`fmtchain.cache.lazy.LazyStateCache`, which guards a single
expensive value, the decorator defined here memoizes a callable per argument
tuple and exposes ``functools``-style cache helpers.
"""

from __future__ import annotations

from collections import OrderedDict
from collections.abc import Callable, Hashable, Mapping
from dataclasses import dataclass
from functools import partial, update_wrapper
from threading import Lock
from types import MethodType
from typing import Final, Generic, ParamSpec, TypeVar, cast

InstanceT = TypeVar("InstanceT")

P = ParamSpec("P")
R = TypeVar("R")

CacheKey = Hashable

_MISSING: Final = object()


@dataclass(frozen=True, slots=True)
class CacheInfo:
    """Describe the current state of a memoized callable.

    Attributes:
        current_size: Number of cached entries currently stored.
        hits: Number of cache hits that have occurred.
        maxsize: Configured maximum cache capacity, ``None`` when unbounded.
    """

    current_size: int
    hits: int
    maxsize: int | None


def _build_cache_key(args: tuple[object, ...], kwargs: Mapping[str, object]) -> CacheKey:
    """Construct a hashable cache key from call arguments.

    Args:
        args: Positional arguments supplied to the wrapped callable.
        kwargs: Keyword arguments supplied to the wrapped callable.

    Returns:
        CacheKey: Tuple-based key suitable for dict access.

    Raises:
        TypeError: If any argument is unhashable.
    """

    for index, value in enumerate(args):
        if not isinstance(value, Hashable):
            raise TypeError(f"positional argument {index} must be hashable to participate in caching")
    for key, value in kwargs.items():
        if not isinstance(value, Hashable):
            raise TypeError(f"keyword argument '{key}' must be hashable to participate in caching")
    if not kwargs:
        return args
    return args + (tuple(sorted(kwargs.items())),)


class _MemoizedCallable(Generic[P, R]):
    """Optional-size LRU cache around a callable."""

    def __init__(self, func: Callable[P, R], maxsize: int | None) -> None:
        self._func = func
        self._maxsize = maxsize
        self._store: OrderedDict[CacheKey, R] = OrderedDict()
        self._lock = Lock()
        self._hits = 0
        update_wrapper(self, func)

    def __call__(self, *args: P.args, **kwargs: P.kwargs) -> R:
        cache_key = _build_cache_key(args, kwargs)
        with self._lock:
            cached = self._store.get(cache_key, _MISSING)
            if cached is not _MISSING:
                self._store.move_to_end(cache_key)
                self._hits += 1
                return cast(R, cached)
        result = self._func(*args, **kwargs)
        with self._lock:
            self._store[cache_key] = result
            if self._maxsize is not None and len(self._store) > self._maxsize:
                self._store.popitem(last=False)
        return result

    def __get__(self, instance: InstanceT | None, owner: type[InstanceT] | None = None) -> Callable[P, R]:
        if instance is None:
            return self
        return cast(Callable[P, R], MethodType(self, instance))

    def cache_clear(self) -> None:
        """Drop cached entries and reset hit tracking."""

        with self._lock:
            self._store.clear()
            self._hits = 0

    def cache_info(self) -> CacheInfo:
        """Return the current cache size, hit count and capacity."""

        with self._lock:
            return CacheInfo(current_size=len(self._store), hits=self._hits, maxsize=self._maxsize)


def memoize(maxsize: int | None = None) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """Return a decorator implementing an optional-size LRU cache.

    Args:
        maxsize: Maximum number of entries to retain. ``None`` disables the cap.

    Returns:
        Callable[[Callable[P, R]], Callable[P, R]]: Decorator preserving cache helpers.
    """

    decorator = partial(_apply_memoize, maxsize=maxsize)
    return cast(Callable[[Callable[P, R]], Callable[P, R]], decorator)


def _apply_memoize(func: Callable[P, R], *, maxsize: int | None) -> Callable[P, R]:
    return cast(Callable[P, R], _MemoizedCallable(func, maxsize))


__all__: Final = ["CacheInfo", "memoize"]
