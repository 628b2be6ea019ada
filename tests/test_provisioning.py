# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tests for artifact resolution and the loading boundaries."""

from __future__ import annotations

import json
import logging
import sys
import textwrap
from collections.abc import Callable
from pathlib import Path

import pytest

from fmtchain.errors import BoundaryError, LintRejection, ResolutionError
from fmtchain.provisioning import (
    ArtifactCoordinate,
    ArtifactProvisioner,
    FileSignature,
    LocalRepositoryProvisioner,
    PipProvisioner,
    capture_errors,
    split_entry_point,
)

MakeExecutable = Callable[[str, str], Path]


def _publish(repo: Path, coordinate: str, modules: dict[str, str], dependencies: list[str] | None = None) -> Path:
    directory = repo / ArtifactCoordinate.parse(coordinate).relative_path()
    directory.mkdir(parents=True)
    for name, source in modules.items():
        (directory / f"{name}.py").write_text(textwrap.dedent(source), encoding="utf-8")
    if dependencies is not None:
        (directory / "artifact.json").write_text(json.dumps({"dependencies": dependencies}), encoding="utf-8")
    return directory


@pytest.fixture
def repository(tmp_path: Path) -> Path:
    repo = tmp_path / "repo"
    _publish(
        repo,
        "com.example:upper:1.0",
        {
            "fmtchain_fixture_upper": """
                from fmtchain_fixture_helper import shout


                def format(text):
                    return shout(text)


                def with_path(text, path):
                    return f"{path}:{text}"


                def unchanged(text):
                    return None


                class Rejection(Exception):
                    lints = [{"line_start": 2, "rule_id": "UP001", "detail": "lowercase only"}]


                def reject(text):
                    raise Rejection("nope")


                def crash(text):
                    raise RuntimeError("exploded")


                def noisy(text):
                    import logging

                    logging.getLogger("fixture.upper").error("logged failure")
                    return text


                NOT_CALLABLE = 3
            """,
        },
        dependencies=["com.example:helper:2.0"],
    )
    _publish(
        repo,
        "com.example:helper:2.0",
        {
            "fmtchain_fixture_helper": """
                def shout(text):
                    return text.upper()
            """,
        },
    )
    return repo


@pytest.fixture
def provisioner(repository: Path, tmp_path: Path) -> ArtifactProvisioner:
    return ArtifactProvisioner(LocalRepositoryProvisioner([repository], tmp_path / "cache"))


@pytest.mark.parametrize("raw", ["group:artifact", "a:b:c:d", "group::1.0", ""])
def test_invalid_coordinates(raw: str) -> None:
    with pytest.raises(ResolutionError, match="Invalid artifact coordinate"):
        ArtifactCoordinate.parse(raw)


def test_coordinate_parts() -> None:
    coordinate = ArtifactCoordinate.parse("com.example:upper:1.0")

    assert str(coordinate) == "com.example:upper:1.0"
    assert coordinate.relative_path() == Path("com/example/upper/1.0")
    assert coordinate.requirement() == "upper==1.0"


def test_resolve_follows_dependencies_when_transitive(provisioner: ArtifactProvisioner, tmp_path: Path) -> None:
    artifacts = provisioner.resolve("com.example:upper:1.0")

    names = {path.name for path in artifacts.files}
    assert names == {"1.0", "2.0"}
    assert all(str(path).startswith(str((tmp_path / "cache").resolve())) for path in artifacts.files)
    assert artifacts.coordinates == ("com.example:upper:1.0",)
    assert any(path.endswith("fmtchain_fixture_helper.py") for path in artifacts.signature.paths())


def test_resolve_without_transitive_dependencies(provisioner: ArtifactProvisioner) -> None:
    artifacts = provisioner.resolve(["com.example:upper:1.0"], transitive=False)

    assert {path.name for path in artifacts.files} == {"1.0"}


def test_resolve_is_stable_for_cached_artifacts(provisioner: ArtifactProvisioner) -> None:
    first = provisioner.resolve("com.example:upper:1.0")
    second = provisioner.resolve("com.example:upper:1.0")

    assert first == second


def test_resolve_errors(provisioner: ArtifactProvisioner) -> None:
    with pytest.raises(ResolutionError, match="Could not find artifact com.example:missing:1.0"):
        provisioner.resolve("com.example:missing:1.0")
    with pytest.raises(ResolutionError, match="empty result"):
        provisioner.resolve([])


def test_malformed_metadata(tmp_path: Path) -> None:
    repo = tmp_path / "repo"
    directory = _publish(repo, "g:a:1", {"mod": "X = 1\n"})
    (directory / "artifact.json").write_text(json.dumps({"dependencies": "g:b:1"}), encoding="utf-8")
    provisioner = ArtifactProvisioner(LocalRepositoryProvisioner([repo], tmp_path / "cache"))

    with pytest.raises(ResolutionError, match="list of dependency coordinates"):
        provisioner.resolve("g:a:1")


def test_signature_tracks_file_changes(tmp_path: Path) -> None:
    target = tmp_path / "lib" / "a.py"
    target.parent.mkdir()
    target.write_text("x = 1\n")
    before = FileSignature.of([target.parent])

    target.write_text("x = 12345\n")

    assert FileSignature.of([target.parent]) != before
    assert FileSignature.of([target.parent]) == FileSignature.of([target.parent])


@pytest.mark.parametrize("entry_point", ["module", ":attr", "module:"])
def test_invalid_entry_points(entry_point: str) -> None:
    with pytest.raises(BoundaryError, match="expected 'module:attribute'"):
        split_entry_point(entry_point)


def test_shared_boundary_loads_into_host(provisioner: ArtifactProvisioner) -> None:
    artifacts = provisioner.resolve("com.example:upper:1.0")
    boundary = provisioner.shared_boundary(artifacts)
    try:
        fmt = boundary.load("fmtchain_fixture_upper:format")
        with_path = boundary.load("fmtchain_fixture_upper:with_path")
        unchanged = boundary.load("fmtchain_fixture_upper:unchanged")

        assert fmt("abc", None) == "ABC"
        assert with_path("x", Path("a.txt")) == "a.txt:x"
        assert unchanged("keep", None) == "keep"
        assert set(artifacts.search_path()) <= set(sys.path)
        with pytest.raises(BoundaryError, match="not callable"):
            boundary.load("fmtchain_fixture_upper:NOT_CALLABLE")
        with pytest.raises(BoundaryError, match="does not exist"):
            boundary.load("fmtchain_fixture_upper:missing")
        with pytest.raises(BoundaryError, match="Unable to import"):
            boundary.load("fmtchain_fixture_absent:format")
    finally:
        boundary.close()

    assert not set(artifacts.search_path()) & set(sys.path)
    with pytest.raises(BoundaryError, match="closed"):
        boundary.load("fmtchain_fixture_upper:format")


def test_shared_boundary_raises_logged_errors(provisioner: ArtifactProvisioner) -> None:
    boundary = provisioner.shared_boundary(provisioner.resolve("com.example:upper:1.0"))
    try:
        noisy = boundary.load("fmtchain_fixture_upper:noisy", error_logger="fixture.upper")

        with pytest.raises(BoundaryError, match="logged failure"):
            noisy("x", None)
    finally:
        boundary.close()

    assert not logging.getLogger("fixture.upper").handlers


def test_capture_errors_ignores_warnings() -> None:
    with capture_errors("fixture.quiet") as sink:
        logging.getLogger("fixture.quiet").warning("just a warning")

    sink.raise_if_errors("quiet")
    assert sink.messages == []


def test_isolated_boundary_formats_in_child(provisioner: ArtifactProvisioner) -> None:
    artifacts = provisioner.resolve("com.example:upper:1.0")
    boundary = provisioner.isolated_boundary(artifacts, bridge_loggers=["fixture.upper"], timeout=60)
    try:
        assert boundary.load("fmtchain_fixture_upper:format")("abc", None) == "ABC"
        assert boundary.load("fmtchain_fixture_upper:with_path")("x", Path("a.txt")) == "a.txt:x"
        assert boundary.load("fmtchain_fixture_upper:unchanged")("keep", None) == "keep"

        with pytest.raises(LintRejection) as excinfo:
            boundary.load("fmtchain_fixture_upper:reject")("abc", None)
        assert excinfo.value.lints[0].rule_id == "UP001"
        assert excinfo.value.lints[0].line_start == 2

        with pytest.raises(BoundaryError, match="RuntimeError: exploded"):
            boundary.load("fmtchain_fixture_upper:crash")("abc", None)
        with pytest.raises(BoundaryError, match="logged failure"):
            boundary.load("fmtchain_fixture_upper:noisy")("abc", None)
        with pytest.raises(BoundaryError, match="ModuleNotFoundError"):
            boundary.load("fmtchain_fixture_absent:format")
    finally:
        boundary.close()


def test_isolated_boundary_cannot_see_host_packages(tmp_path: Path) -> None:
    repo = tmp_path / "repo"
    _publish(
        repo,
        "g:leaky:1",
        {
            "fmtchain_fixture_leaky": """
                def format(text):
                    import pydantic

                    return text
            """,
        },
    )
    provisioner = ArtifactProvisioner(LocalRepositoryProvisioner([repo], tmp_path / "cache"))
    boundary = provisioner.isolated_boundary(provisioner.resolve("g:leaky:1"))
    try:
        with pytest.raises(BoundaryError, match="No module named 'pydantic'"):
            boundary.load("fmtchain_fixture_leaky:format")("x", None)
    finally:
        boundary.close()


def test_pip_failure_leaves_no_partial_install(tmp_path: Path, make_executable: MakeExecutable) -> None:
    attempts = tmp_path / "attempts"
    python = make_executable(
        "python",
        f"""
        import pathlib
        import sys
        args = sys.argv[1:]
        target = pathlib.Path(args[args.index("--target") + 1])
        attempts = pathlib.Path({str(attempts)!r})
        count = int(attempts.read_text()) if attempts.exists() else 0
        attempts.write_text(str(count + 1))
        package = target / "fmtchain_fixture_pip"
        if package.exists():
            sys.stderr.write("Target directory already exists")
            sys.exit(0)
        package.mkdir(parents=True)
        if count == 0:
            (package / "partial").write_text("")
            sys.stderr.write("connection reset")
            sys.exit(1)
        (package / "__init__.py").write_text("VALUE = 1\\n")
        """,
    )
    cache = tmp_path / "pip-cache"
    provisioner = PipProvisioner(cache, python=str(python))
    coordinate = ArtifactCoordinate.parse("org.example:fixture-pip:1.0")

    with pytest.raises(ResolutionError, match="connection reset"):
        provisioner.provision([coordinate], transitive=True)
    assert list(cache.iterdir()) == []

    (root,) = provisioner.provision([coordinate], transitive=True)

    assert (root / "fmtchain_fixture_pip" / "__init__.py").is_file()
    assert not (root / "fmtchain_fixture_pip" / "partial").exists()
    assert provisioner.provision([coordinate], transitive=True) == {root}
    assert attempts.read_text() == "2"
    assert [child.name for child in cache.iterdir()] == [root.name]
