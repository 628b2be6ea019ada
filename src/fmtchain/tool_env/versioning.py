# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Version comparison and the formatter/runtime support table."""

from __future__ import annotations

import sys
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from packaging.version import InvalidVersion, Version

from ..errors import ConfigError, LintRejection, OperationCancelled, SuggestedVersionError

RuntimeVersion = tuple[int, int]
FormatFn = Callable[[str, Path | None], str | None]


def parse_version(raw: str) -> Version | None:
    """Return ``raw`` as a PEP 440 version, or ``None`` when it does not parse."""

    try:
        return Version(raw)
    except InvalidVersion:
        return None


def versions_match(found: str, expected: str) -> bool:
    """Return ``True`` when ``found`` and ``expected`` name the same version.

    Both strings are compared as PEP 440 versions when they parse, so
    ``1.2`` matches ``1.2.0`` and ``v1.2.1`` matches ``1.2.1.0``; otherwise
    they must be identical.
    """

    found_version = parse_version(found)
    expected_version = parse_version(expected)
    if found_version is None or expected_version is None:
        return found.strip() == expected.strip()
    return found_version == expected_version


def _runtime_label(runtime: RuntimeVersion) -> str:
    return f"{runtime[0]}.{runtime[1]}"


class SuggestionPolicy(str, Enum):
    """Which later formatter version to recommend when several are compatible."""

    LATEST = "latest"
    NEXT = "next"


class VersionSupport:
    """Table of the newest formatter version each host runtime can run.

    Entries map a minimum Python runtime ``(major, minor)`` to the maximum
    formatter version known to work on it. Later runtimes must map to later
    formatter versions.

    Example:
        >>> support = VersionSupport("ktfmt").add((3, 9), "0.40").add((3, 11), "0.47")
    """

    def __init__(
        self,
        formatter_name: str,
        *,
        runtime: RuntimeVersion | None = None,
        policy: SuggestionPolicy = SuggestionPolicy.LATEST,
    ) -> None:
        self._name = formatter_name
        self._runtime: RuntimeVersion = runtime if runtime is not None else (sys.version_info[0], sys.version_info[1])
        self._policy = policy
        self._table: dict[RuntimeVersion, Version] = {}

    @property
    def runtime(self) -> RuntimeVersion:
        return self._runtime

    def add(self, min_runtime: RuntimeVersion, max_version: str) -> VersionSupport:
        """Register ``max_version`` as the newest release usable from ``min_runtime``.

        Returns:
            VersionSupport: ``self`` for chaining.

        Raises:
            ValueError: If the runtime is already present, the version does not
                parse, or the table would stop being monotonic.
        """

        if min_runtime in self._table:
            raise ValueError(f"runtime {_runtime_label(min_runtime)} already registered for {self._name}")
        version = parse_version(max_version)
        if version is None:
            raise ValueError(f"{self._name} version '{max_version}' is not a valid version")
        for runtime, known in self._table.items():
            if (runtime < min_runtime) != (known < version):
                raise ValueError(
                    f"{self._name} {max_version} for Python {_runtime_label(min_runtime)} conflicts with "
                    f"{known} for Python {_runtime_label(runtime)}; later runtimes must map to later versions",
                )
        self._table[min_runtime] = version
        self._table = dict(sorted(self._table.items()))
        return self

    def latest_formatter_version(self) -> str | None:
        """Return the newest formatter version usable on the current runtime."""

        usable = [version for runtime, version in self._table.items() if runtime <= self._runtime]
        return str(max(usable)) if usable else None

    def assert_formatter_supported(self, version: str) -> None:
        """Raise :class:`ConfigError` when ``version`` needs a newer runtime.

        Raises:
            ConfigError: If a table entry requires a later runtime for ``version``.
        """

        required = self._required_runtime(version)
        if required is not None and required > self._runtime:
            raise ConfigError(
                f"You are running Python {_runtime_label(self._runtime)}, but {self._name} {version} "
                f"requires Python {_runtime_label(required)} or newer. "
                f"The newest {self._name} version for this runtime is {self.latest_formatter_version()}.",
            )

    def suggest_compatible_formatter_version(self, version: str) -> str:
        """Return ``version`` capped to the newest version usable on this runtime."""

        latest = self.latest_formatter_version()
        requested = parse_version(version)
        if latest is None or requested is None:
            return version
        return latest if requested > Version(latest) else version

    def later_version_hint(self, version: str) -> tuple[str, str] | None:
        """Return ``(suggested_version, message)`` for a failing ``version``, if any.

        Newer versions usable on the current runtime are preferred and chosen
        by the configured :class:`SuggestionPolicy`. When only versions needing
        a later runtime exist, the message names that runtime.
        """

        requested = parse_version(version)
        if requested is None:
            return None
        newer = {runtime: known for runtime, known in self._table.items() if known > requested}
        usable = [known for runtime, known in newer.items() if runtime <= self._runtime]
        if usable:
            chosen = max(usable) if self._policy is SuggestionPolicy.LATEST else min(usable)
            return str(chosen), (
                f"You are not using the latest version of {self._name} on Python "
                f"{_runtime_label(self._runtime)}: try version {chosen} instead, which may have fixed this problem."
            )
        if newer:
            runtime = min(newer)
            chosen = newer[runtime]
            return str(chosen), (
                f"{self._name} {version} may be fixed in a later release: try version {chosen} instead, "
                f"which requires Python {_runtime_label(runtime)} or newer."
            )
        return None

    def suggest_later_version_on_error(self, version: str, format_fn: FormatFn) -> FormatFn:
        """Wrap ``format_fn`` so its failures mention a later known-good version.

        The wrapper never retries; it only re-raises the failure as a
        :class:`SuggestedVersionError` chained to the original. Lint rejections,
        cancellations and failures with no available suggestion pass through
        untouched.
        """

        return _SuggestLaterVersion(self, version, format_fn)

    def _required_runtime(self, version: str) -> RuntimeVersion | None:
        requested = parse_version(version)
        if requested is None:
            return None
        for runtime, known in self._table.items():
            if requested <= known:
                return runtime
        return max(self._table) if self._table else None


@dataclass(frozen=True, slots=True)
class _SuggestLaterVersion:
    support: VersionSupport
    version: str
    format_fn: FormatFn

    def __call__(self, text: str, file: Path | None) -> str | None:
        try:
            return self.format_fn(text, file)
        except (LintRejection, OperationCancelled):
            raise
        except Exception as exc:
            hint = self.support.later_version_hint(self.version)
            if hint is None:
                raise
            suggested, message = hint
            raise SuggestedVersionError(f"{exc}\n{message}", suggested_version=suggested) from exc

    def close(self) -> None:
        close = getattr(self.format_fn, "close", None)
        if callable(close):
            close()


__all__ = [
    "SuggestionPolicy",
    "VersionSupport",
    "parse_version",
    "versions_match",
]
