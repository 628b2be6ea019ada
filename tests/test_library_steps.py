# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tests for steps backed by provisioned libraries."""

from __future__ import annotations

import sys
import textwrap
from pathlib import Path

import pytest

from fmtchain.errors import BoundaryError, ConfigError, ResolutionError, SuggestedVersionError
from fmtchain.provisioning import ArtifactCoordinate, ArtifactProvisioner, LocalRepositoryProvisioner
from fmtchain.steps.library import library_step
from fmtchain.tool_env.versioning import VersionSupport

LIBRARY_SOURCE = """
import logging


def format(text, path):
    return text.replace("\\t", "    ")


def crash(text):
    raise ValueError("unsupported syntax")


def logs(text):
    logging.getLogger("fixture.lib").error("could not parse")
    return text
"""


@pytest.fixture
def provisioner(tmp_path: Path) -> ArtifactProvisioner:
    repo = tmp_path / "repo"
    directory = repo / ArtifactCoordinate.parse("org.fixture:detab:1.0").relative_path()
    directory.mkdir(parents=True)
    (directory / "fmtchain_fixture_lib.py").write_text(textwrap.dedent(LIBRARY_SOURCE), encoding="utf-8")
    return ArtifactProvisioner(LocalRepositoryProvisioner([repo], tmp_path / "cache"))


def _support() -> VersionSupport:
    return VersionSupport("detab", runtime=(3, 11)).add((3, 9), "1.0").add((3, 11), "2.0")


@pytest.mark.parametrize("isolated", [True, False])
def test_library_step_formats(provisioner: ArtifactProvisioner, isolated: bool) -> None:
    step = library_step(
        "detab",
        "org.fixture:detab:1.0",
        "fmtchain_fixture_lib:format",
        provisioner,
        isolated=isolated,
        timeout=60,
    )
    try:
        assert step.format("\tx\n") == "    x\n"
    finally:
        step.close()


def test_shared_step_releases_search_path(provisioner: ArtifactProvisioner) -> None:
    step = library_step("detab", "org.fixture:detab:1.0", "fmtchain_fixture_lib:format", provisioner, isolated=False)
    step.format("x")
    roots = step.state().artifacts.search_path()
    assert set(roots) <= set(sys.path)

    step.close()

    assert not set(roots) & set(sys.path)


def test_shared_steps_run_their_own_module_version(tmp_path: Path) -> None:
    repo = tmp_path / "repo"
    for version in ("1.0", "2.0"):
        directory = repo / ArtifactCoordinate.parse(f"org.fixture:tagger:{version}").relative_path()
        directory.mkdir(parents=True)
        (directory / "fmtchain_fixture_tagger.py").write_text(
            f"def format(text):\n    return 'v{version}:' + text\n",
            encoding="utf-8",
        )
    provisioner = ArtifactProvisioner(LocalRepositoryProvisioner([repo], tmp_path / "cache"))
    one = library_step("one", "org.fixture:tagger:1.0", "fmtchain_fixture_tagger:format", provisioner, isolated=False)
    two = library_step("two", "org.fixture:tagger:2.0", "fmtchain_fixture_tagger:format", provisioner, isolated=False)
    try:
        assert one.format("x") == "v1.0:x"
        assert two.format("x") == "v2.0:x"
        assert one.format("y") == "v1.0:y"
        assert "fmtchain_fixture_tagger" not in sys.modules
    finally:
        one.close()
        two.close()


def test_equal_coordinates_give_equal_steps(provisioner: ArtifactProvisioner) -> None:
    first = library_step("detab", "org.fixture:detab:1.0", "fmtchain_fixture_lib:format", provisioner)
    second = library_step("detab", ["org.fixture:detab:1.0"], "fmtchain_fixture_lib:format", provisioner)
    other_entry = library_step("detab", "org.fixture:detab:1.0", "fmtchain_fixture_lib:crash", provisioner)

    assert first == second
    assert hash(first) == hash(second)
    assert first != other_entry


def test_unresolvable_coordinates_fail_on_first_use(provisioner: ArtifactProvisioner) -> None:
    step = library_step("missing", "org.fixture:missing:9.9", "mod:fn", provisioner)

    with pytest.raises(ResolutionError):
        step.format("x")


def test_unsupported_version_is_a_setup_error(provisioner: ArtifactProvisioner) -> None:
    support = VersionSupport("detab", runtime=(3, 10)).add((3, 9), "1.0").add((3, 11), "2.0")
    step = library_step(
        "detab",
        "org.fixture:detab:1.0",
        "fmtchain_fixture_lib:format",
        provisioner,
        version="2.0",
        version_support=support,
    )

    with pytest.raises(ConfigError, match="requires Python 3.11"):
        step.state()


@pytest.mark.parametrize("isolated", [True, False])
def test_failures_suggest_later_version(provisioner: ArtifactProvisioner, isolated: bool) -> None:
    step = library_step(
        "detab",
        "org.fixture:detab:1.0",
        "fmtchain_fixture_lib:crash",
        provisioner,
        version="1.0",
        isolated=isolated,
        version_support=_support(),
    )
    try:
        with pytest.raises(SuggestedVersionError, match="unsupported syntax") as excinfo:
            step.format("x")
    finally:
        step.close()

    assert excinfo.value.suggested_version == "2.0"


@pytest.mark.parametrize("isolated", [True, False])
def test_logged_errors_fail_the_call(provisioner: ArtifactProvisioner, isolated: bool) -> None:
    step = library_step(
        "detab",
        "org.fixture:detab:1.0",
        "fmtchain_fixture_lib:logs",
        provisioner,
        isolated=isolated,
        error_logger="fixture.lib",
    )
    try:
        with pytest.raises(BoundaryError, match="could not parse"):
            step.format("x")
    finally:
        step.close()
