# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Configuration models and loading for fmtchain.

Configuration lives in ``[tool.fmtchain]`` of ``pyproject.toml`` or at the top
level of ``.fmtchain.toml``. Steps are declared as sub-tables of ``steps`` and
run in declaration order::

    [tool.fmtchain]
    line_ending = "preserve"

    [tool.fmtchain.steps.trimTrailingWhitespace]

    [tool.fmtchain.steps.black]
    version = "24.4.2"
"""

from __future__ import annotations

import codecs
import math
import os
import tomllib
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any, Final

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigError
from .line_endings import LineEnding
from .pipeline.formatter import ExceptionPolicy, Formatter
from .pipeline.runner import FormatRunner
from .provisioning.provisioner import (
    ArtifactProvisioner,
    LocalRepositoryProvisioner,
    PipProvisioner,
    Provisioner,
)
from .steps import foreign, generic
from .steps.base import FormatterStep
from .steps.library import library_step

PYPROJECT_FILE: Final[str] = "pyproject.toml"
STANDALONE_FILE: Final[str] = ".fmtchain.toml"
PYPROJECT_TOOL_KEY: Final[str] = "tool"
PYPROJECT_SECTION_KEY: Final[str] = "fmtchain"


def default_parallel_jobs() -> int:
    """Return 75% of available CPU cores (minimum of 1)."""
    cores = os.cpu_count() or 1
    return max(1, math.floor(cores * 0.75))


def default_cache_dir() -> Path:
    return Path("~/.cache/fmtchain").expanduser()


class StepSettings(BaseModel):
    """Settings of one configured step.

    Tool steps need ``version``. Setting ``entry_point`` makes the step a
    library step resolved from ``coordinates``.
    """

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    version: str | None = None
    path: Path | None = None
    spaces_per_tab: int = Field(default=generic.DEFAULT_SPACES_PER_TAB, ge=1)
    line_length: int | None = Field(default=None, ge=1)
    style: str = "file"
    coordinates: list[str] = Field(default_factory=list)
    entry_point: str | None = None
    isolated: bool = True
    transitive: bool = True
    timeout: float | None = Field(default=None, gt=0)


class FormatterConfig(BaseModel):
    """Top-level configuration of a formatting run."""

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    encoding: str = "utf-8"
    line_ending: LineEnding = LineEnding.PRESERVE
    exception_policy: ExceptionPolicy = ExceptionPolicy.FAIL_FAST
    jobs: int = Field(default_factory=default_parallel_jobs, ge=1)
    cache_dir: Path = Field(default_factory=default_cache_dir)
    repositories: list[Path] = Field(default_factory=list)
    index_url: str | None = None
    steps: dict[str, StepSettings] = Field(default_factory=dict)

    @field_validator("encoding")
    @classmethod
    def _known_encoding(cls, value: str) -> str:
        try:
            codecs.lookup(value)
        except LookupError as exc:
            raise ValueError(f"unknown encoding '{value}'") from exc
        return value

    @field_validator("cache_dir")
    @classmethod
    def _expand_cache_dir(cls, value: Path) -> Path:
        return value.expanduser()

    def provisioner(self) -> ArtifactProvisioner:
        """Return a provisioner reading local repositories, or the package index when none are set."""

        artifacts = self.cache_dir / "artifacts"
        backend: Provisioner
        if self.repositories:
            backend = LocalRepositoryProvisioner(self.repositories, artifacts)
        else:
            backend = PipProvisioner(artifacts, index_url=self.index_url)
        return ArtifactProvisioner(backend)

    def build_steps(self) -> list[FormatterStep[Any]]:
        """Instantiate the configured steps in declaration order.

        Raises:
            ConfigError: If a step name is unknown or required settings are missing.
        """

        provisioner: ArtifactProvisioner | None = None
        built: list[FormatterStep[Any]] = []
        for name, settings in self.steps.items():
            if settings.entry_point is not None:
                if not settings.coordinates:
                    raise ConfigError(f"step '{name}' names an entry point but no coordinates")
                provisioner = provisioner or self.provisioner()
                built.append(
                    library_step(
                        name,
                        settings.coordinates,
                        settings.entry_point,
                        provisioner,
                        version=settings.version,
                        transitive=settings.transitive,
                        isolated=settings.isolated,
                        timeout=settings.timeout,
                    ),
                )
                continue
            factory = _STEP_FACTORIES.get(name)
            if factory is None:
                known = ", ".join(sorted(_STEP_FACTORIES))
                raise ConfigError(f"unknown step '{name}'; expected an entry_point or one of: {known}")
            built.append(factory(name, settings))
        return built

    def build_formatter(self, steps: list[FormatterStep[Any]] | None = None) -> Formatter:
        """Return a :class:`Formatter` for ``steps``, or for the configured steps."""

        return Formatter(
            self.build_steps() if steps is None else steps,
            encoding=self.encoding,
            line_ending=self.line_ending,
            exception_policy=self.exception_policy,
        )

    def build_runner(self, root: Path | None = None, formatter: Formatter | None = None) -> FormatRunner:
        return FormatRunner(
            formatter or self.build_formatter(),
            jobs=self.jobs,
            root=root,
            versions_dir=self.cache_dir,
        )


def _require_version(name: str, settings: StepSettings) -> str:
    if not settings.version:
        raise ConfigError(f"step '{name}' requires a version")
    return settings.version


def _black(name: str, settings: StepSettings) -> FormatterStep[Any]:
    return foreign.black(_require_version(name, settings), path_to_exe=settings.path, line_length=settings.line_length)


def _shfmt(name: str, settings: StepSettings) -> FormatterStep[Any]:
    return foreign.shfmt(_require_version(name, settings), path_to_exe=settings.path)


def _clang(name: str, settings: StepSettings) -> FormatterStep[Any]:
    return foreign.clang_format(_require_version(name, settings), style=settings.style, path_to_exe=settings.path)


def _gofmt(name: str, settings: StepSettings) -> FormatterStep[Any]:
    return foreign.gofmt(_require_version(name, settings), go_executable=settings.path)


_STEP_FACTORIES: Final[Mapping[str, Callable[[str, StepSettings], FormatterStep[Any]]]] = {
    "trimTrailingWhitespace": lambda name, settings: generic.trim_trailing_whitespace(),
    "endWithNewline": lambda name, settings: generic.end_with_newline(),
    "indentWithSpaces": lambda name, settings: generic.indent(generic.IndentKind.SPACE, settings.spaces_per_tab),
    "indentWithTabs": lambda name, settings: generic.indent(generic.IndentKind.TAB, settings.spaces_per_tab),
    "black": _black,
    "shfmt": _shfmt,
    "clang": _clang,
    "gofmt": _gofmt,
}


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML in {path}: {exc}") from exc


def _config_section(root: Path) -> tuple[Path | None, Mapping[str, Any]]:
    pyproject = root / PYPROJECT_FILE
    if pyproject.is_file():
        tool_section = _read_toml(pyproject).get(PYPROJECT_TOOL_KEY)
        if isinstance(tool_section, Mapping):
            section = tool_section.get(PYPROJECT_SECTION_KEY)
            if section is not None:
                if not isinstance(section, Mapping):
                    raise ConfigError(f"[tool.{PYPROJECT_SECTION_KEY}] in {pyproject} must be a table")
                return pyproject, section
    standalone = root / STANDALONE_FILE
    if standalone.is_file():
        return standalone, _read_toml(standalone)
    return None, {}


def load_config(root: Path) -> FormatterConfig:
    """Load the configuration for the project rooted at ``root``.

    ``[tool.fmtchain]`` in ``pyproject.toml`` wins over ``.fmtchain.toml``.
    Relative repository paths are resolved against ``root``. Without either
    file the defaults apply.

    Raises:
        ConfigError: If the file is not valid TOML or the content does not
            validate; the message names the file.
    """

    source, data = _config_section(root)
    try:
        config = FormatterConfig.model_validate(dict(data))
    except ValidationError as exc:
        raise ConfigError(f"Invalid fmtchain configuration in {source}:\n{exc}") from exc
    if config.repositories:
        config.repositories = [path if path.is_absolute() else root / path for path in config.repositories]
    return config


__all__ = [
    "FormatterConfig",
    "StepSettings",
    "default_cache_dir",
    "default_parallel_jobs",
    "load_config",
]
