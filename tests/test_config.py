# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tests for configuration loading and step construction."""

from __future__ import annotations

from pathlib import Path

import pytest

from fmtchain.config import FormatterConfig, StepSettings, default_parallel_jobs, load_config
from fmtchain.errors import ConfigError
from fmtchain.line_endings import LineEnding
from fmtchain.pipeline import ExceptionPolicy
from fmtchain.provisioning import LocalRepositoryProvisioner, PipProvisioner


def _write(path: Path, content: str) -> Path:
    path.write_text(content, encoding="utf-8")
    return path


def test_defaults_without_config_files(tmp_path: Path) -> None:
    config = load_config(tmp_path)

    assert config.line_ending is LineEnding.PRESERVE
    assert config.exception_policy is ExceptionPolicy.FAIL_FAST
    assert config.jobs == default_parallel_jobs()
    assert config.steps == {}


def test_pyproject_section_is_loaded(tmp_path: Path) -> None:
    _write(
        tmp_path / "pyproject.toml",
        """
[project]
name = "demo"

[tool.fmtchain]
line_ending = "unix"
exception_policy = "collect_and_continue"
jobs = 3
repositories = ["artifacts"]

[tool.fmtchain.steps.trimTrailingWhitespace]

[tool.fmtchain.steps.indentWithSpaces]
spaces_per_tab = 2
""",
    )

    config = load_config(tmp_path)

    assert config.line_ending is LineEnding.UNIX
    assert config.exception_policy is ExceptionPolicy.COLLECT_AND_CONTINUE
    assert config.jobs == 3
    assert config.repositories == [tmp_path / "artifacts"]
    assert list(config.steps) == ["trimTrailingWhitespace", "indentWithSpaces"]
    assert config.steps["indentWithSpaces"].spaces_per_tab == 2


def test_pyproject_wins_over_standalone_file(tmp_path: Path) -> None:
    _write(tmp_path / "pyproject.toml", "[tool.fmtchain]\njobs = 2\n")
    _write(tmp_path / ".fmtchain.toml", "jobs = 5\n")

    assert load_config(tmp_path).jobs == 2


def test_standalone_file_used_without_pyproject_section(tmp_path: Path) -> None:
    _write(tmp_path / "pyproject.toml", "[project]\nname = 'demo'\n")
    _write(tmp_path / ".fmtchain.toml", "jobs = 5\nencoding = 'latin-1'\n")

    config = load_config(tmp_path)

    assert config.jobs == 5
    assert config.encoding == "latin-1"


def test_invalid_toml_names_the_file(tmp_path: Path) -> None:
    _write(tmp_path / ".fmtchain.toml", "jobs = \n")

    with pytest.raises(ConfigError, match=r"\.fmtchain\.toml"):
        load_config(tmp_path)


@pytest.mark.parametrize(
    "content",
    [
        "jobs = 0\n",
        "encoding = 'no-such-codec'\n",
        "unexpected = true\n",
        "[steps.black]\nunknown_setting = 1\n",
    ],
)
def test_invalid_values_name_the_file(tmp_path: Path, content: str) -> None:
    _write(tmp_path / ".fmtchain.toml", content)

    with pytest.raises(ConfigError, match=r"Invalid fmtchain configuration in .*\.fmtchain\.toml"):
        load_config(tmp_path)


def test_non_table_section_is_rejected(tmp_path: Path) -> None:
    _write(tmp_path / "pyproject.toml", "[tool]\nfmtchain = 3\n")

    with pytest.raises(ConfigError, match="must be a table"):
        load_config(tmp_path)


def test_build_steps_in_declaration_order() -> None:
    config = FormatterConfig(
        steps={
            "endWithNewline": StepSettings(),
            "trimTrailingWhitespace": StepSettings(),
            "black": StepSettings(version="24.4.2", line_length=100),
            "gofmt": StepSettings(version="1.21.0"),
        },
    )

    steps = config.build_steps()

    assert [step.name for step in steps] == ["endWithNewline", "trimTrailingWhitespace", "black", "gofmt"]


def test_unknown_step_is_rejected() -> None:
    config = FormatterConfig(steps={"prettier": StepSettings(version="3.0.0")})

    with pytest.raises(ConfigError, match="unknown step 'prettier'"):
        config.build_steps()


def test_tool_step_requires_version() -> None:
    config = FormatterConfig(steps={"shfmt": StepSettings()})

    with pytest.raises(ConfigError, match="step 'shfmt' requires a version"):
        config.build_steps()


def test_library_step_requires_coordinates() -> None:
    config = FormatterConfig(steps={"custom": StepSettings(entry_point="pkg:fmt")})

    with pytest.raises(ConfigError, match="no coordinates"):
        config.build_steps()


def test_library_step_is_built(tmp_path: Path) -> None:
    config = FormatterConfig(
        cache_dir=tmp_path,
        repositories=[tmp_path / "repo"],
        steps={"custom": StepSettings(entry_point="pkg:fmt", coordinates=["g:a:1"], isolated=False)},
    )

    (step,) = config.build_steps()

    assert step.name == "custom"
    assert step.peek_state() is None


def test_provisioner_backend_follows_repositories(tmp_path: Path) -> None:
    local = FormatterConfig(cache_dir=tmp_path, repositories=[tmp_path])
    remote = FormatterConfig(cache_dir=tmp_path)

    assert isinstance(local.provisioner()._provisioner, LocalRepositoryProvisioner)
    assert isinstance(remote.provisioner()._provisioner, PipProvisioner)


def test_build_formatter_and_runner_use_settings(tmp_path: Path) -> None:
    config = FormatterConfig(
        encoding="latin-1",
        line_ending=LineEnding.WINDOWS,
        jobs=2,
        cache_dir=tmp_path,
        steps={"trimTrailingWhitespace": StepSettings()},
    )

    formatter = config.build_formatter()
    runner = config.build_runner(tmp_path, formatter)

    assert formatter.encoding == "latin-1"
    assert formatter.line_ending is LineEnding.WINDOWS
    assert [step.name for step in formatter.steps] == ["trimTrailingWhitespace"]
    assert runner.jobs == 2


def test_cache_dir_expands_user() -> None:
    config = FormatterConfig(cache_dir=Path("~/fmtchain-cache"))

    assert "~" not in str(config.cache_dir)
