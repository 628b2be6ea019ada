# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Locate a foreign executable and verify the version it reports.

:class:`ForeignExe` describes the contract with one external tool: what it is
called, which version is expected, how to ask it for its version, and what to
tell the user when it is missing or the wrong version. Resolution happens once
per instance and the result is reused for the instance's lifetime.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Final

from ..cache.lazy import LazyStateCache
from ..errors import NotFoundError, WrongVersionError
from ..process import ProcessRunner
from .discovery import DEFAULT_DISCOVERY, DiscoveryStrategy, is_executable
from .models import ToolBinary
from .versioning import versions_match

LOGGER = logging.getLogger(__name__)

DEFAULT_VERSION_FLAG: Final[str] = "--version"
DEFAULT_VERSION_REGEX: Final[str] = r"version (\S*)"
DEFAULT_FIX_CANT_FIND: Final[str] = (
    "Install {name} {version} with your package manager, or configure an explicit path to the executable."
)
DEFAULT_FIX_WRONG_VERSION: Final[str] = (
    "You can request the version you already have, {versionFound}, or install the expected version, {version}."
)


def render_template(template: str, *, name: str, version: str, version_found: str | None = None) -> str:
    """Substitute ``{name}``, ``{version}`` and ``{versionFound}`` in ``template``.

    Plain replacement is used so templates may contain other braces verbatim.
    """

    rendered = template.replace("{name}", name).replace("{version}", version)
    if version_found is not None:
        rendered = rendered.replace("{versionFound}", version_found)
    return rendered


@dataclass(frozen=True)
class ForeignExe:
    """Contract for locating and version-checking one foreign executable.

    Attributes:
        name: Executable name searched for by the discovery strategies.
        version: Version the executable must report.
        path_to_exe: Explicit executable path; disables discovery when set.
        version_flag: Argument that makes the executable print its version.
        version_regex: Pattern whose first group captures the version.
        fix_cant_find: Remediation template used when nothing is found.
        fix_wrong_version: Remediation template used on a version mismatch.
        discovery: Ordered strategies consulted when no explicit path is set.
    """

    name: str
    version: str
    path_to_exe: Path | None = None
    version_flag: str = DEFAULT_VERSION_FLAG
    version_regex: str = DEFAULT_VERSION_REGEX
    fix_cant_find: str = DEFAULT_FIX_CANT_FIND
    fix_wrong_version: str = DEFAULT_FIX_WRONG_VERSION
    discovery: tuple[DiscoveryStrategy, ...] = DEFAULT_DISCOVERY
    _resolution: LazyStateCache[ToolBinary] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        re.compile(self.version_regex)
        object.__setattr__(self, "_resolution", LazyStateCache(self._resolve))

    @classmethod
    def name_and_version(cls, name: str, version: str) -> ForeignExe:
        return cls(name=name, version=version)

    def with_path_to_exe(self, path: str | Path | None) -> ForeignExe:
        return replace(self, path_to_exe=Path(path) if path is not None else None)

    def with_version_flag(self, flag: str) -> ForeignExe:
        return replace(self, version_flag=flag)

    def with_version_regex(self, pattern: str) -> ForeignExe:
        return replace(self, version_regex=pattern)

    def with_fix_cant_find(self, template: str) -> ForeignExe:
        return replace(self, fix_cant_find=template)

    def with_fix_wrong_version(self, template: str) -> ForeignExe:
        return replace(self, fix_wrong_version=template)

    def with_discovery(self, *strategies: DiscoveryStrategy) -> ForeignExe:
        return replace(self, discovery=tuple(strategies))

    def confirm_version_and_get_absolute_path(self) -> Path:
        """Return the absolute path of the verified executable.

        Raises:
            NotFoundError: If no executable can be located.
            WrongVersionError: If the executable reports another version, or
                output the version pattern does not match.
            ProcessError: If the version probe itself fails.
        """

        return self.resolve().path

    def resolve(self) -> ToolBinary:
        """Return the located and verified executable, resolving it on first use."""

        return self._resolution.get()

    def _resolve(self) -> ToolBinary:
        candidate = self._locate()
        found = self._probe_version(candidate)
        if not versions_match(found, self.version):
            remediation = render_template(
                self.fix_wrong_version,
                name=self.name,
                version=self.version,
                version_found=found,
            )
            raise WrongVersionError(
                f"You specified {self.name} version {self.version}, but {candidate} reports version {found}.\n"
                f"{remediation}",
                name=self.name,
                expected=self.version,
                found=found,
                path=candidate,
            )
        LOGGER.debug("resolved %s %s at %s", self.name, found, candidate)
        return ToolBinary(
            name=self.name,
            requested_version=self.version,
            path=candidate,
            discovered_version=found,
        )

    def _locate(self) -> Path:
        if self.path_to_exe is not None:
            explicit = self.path_to_exe.expanduser()
            if is_executable(explicit):
                return explicit.resolve()
            raise NotFoundError(self._cant_find_message([explicit]), name=self.name, version=self.version)
        searched: list[Path] = []
        for strategy in self.discovery:
            for candidate in strategy.candidates(self.name):
                if is_executable(candidate):
                    return candidate.resolve()
                searched.append(candidate)
        raise NotFoundError(self._cant_find_message(searched), name=self.name, version=self.version)

    def _cant_find_message(self, searched: list[Path]) -> str:
        remediation = render_template(self.fix_cant_find, name=self.name, version=self.version)
        lines = [f"Unable to find {self.name} {self.version}."]
        if searched:
            lines.append("Searched:")
            lines.extend(f"  {path}" for path in dict.fromkeys(searched))
        else:
            lines.append(f"{self.name} is not on PATH.")
        lines.append(remediation)
        return "\n".join(lines)

    def _probe_version(self, candidate: Path) -> str:
        with ProcessRunner() as runner:
            result = runner.exec([candidate, self.version_flag])
        stdout = result.assert_exit_zero()
        pattern = re.compile(self.version_regex)
        for output in (stdout, result.stderr_text()):
            match = pattern.search(output)
            if match and match.group(1):
                return match.group(1)
        raise WrongVersionError(
            f"Unable to parse the version of {self.name} from the output of "
            f"'{candidate} {self.version_flag}' using /{self.version_regex}/:\n{stdout.strip() or result.stderr_text().strip()}\n"
            + render_template(self.fix_wrong_version, name=self.name, version=self.version, version_found="<unknown>"),
            name=self.name,
            expected=self.version,
            found=None,
            path=candidate,
        )


__all__ = [
    "DEFAULT_FIX_CANT_FIND",
    "DEFAULT_FIX_WRONG_VERSION",
    "DEFAULT_VERSION_FLAG",
    "DEFAULT_VERSION_REGEX",
    "ForeignExe",
    "render_template",
]
