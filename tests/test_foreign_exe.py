# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tests for locating and version-checking foreign executables."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from fmtchain.errors import NotFoundError, WrongVersionError
from fmtchain.tool_env.discovery import PathLookup, WellKnownDirectories
from fmtchain.tool_env.foreign_exe import ForeignExe, render_template


def test_matching_version_resolves_absolute_path(versioned_tool: Callable[[str, str], Path]) -> None:
    tool = versioned_tool("fakefmt", "1.2.1")
    exe = ForeignExe.name_and_version("fakefmt", "1.2.1").with_discovery(PathLookup(str(tool.parent)))

    resolved = exe.resolve()

    assert exe.confirm_version_and_get_absolute_path() == tool.resolve()
    assert resolved.discovered_version == "1.2.1"
    assert resolved.requested_version == "1.2.1"
    assert resolved.path.is_absolute()


def test_wrong_version_names_both_versions_and_remediation(versioned_tool: Callable[[str, str], Path]) -> None:
    tool = versioned_tool("fakefmt", "1.2.1")
    exe = ForeignExe.name_and_version("fakefmt", "1.2.0").with_path_to_exe(tool)

    with pytest.raises(WrongVersionError) as excinfo:
        exe.confirm_version_and_get_absolute_path()

    message = str(excinfo.value)
    assert "You specified fakefmt version 1.2.0" in message
    assert "reports version 1.2.1" in message
    assert "You can request the version you already have, 1.2.1, or install the expected version, 1.2.0." in message
    assert excinfo.value.found == "1.2.1"
    assert excinfo.value.expected == "1.2.0"


def test_missing_tool_lists_search_locations_and_fix(tmp_path: Path) -> None:
    empty = tmp_path / "empty"
    empty.mkdir()
    exe = (
        ForeignExe.name_and_version("nosuchtool", "3.0")
        .with_discovery(PathLookup(str(empty)), WellKnownDirectories((empty,)))
        .with_fix_cant_find("Install {name} {version} from example.com")
    )

    with pytest.raises(NotFoundError) as excinfo:
        exe.resolve()

    message = str(excinfo.value)
    assert message.startswith("Unable to find nosuchtool 3.0.")
    assert str(empty / "nosuchtool") in message
    assert "Install nosuchtool 3.0 from example.com" in message


def test_explicit_path_that_is_not_executable(tmp_path: Path) -> None:
    exe = ForeignExe.name_and_version("fakefmt", "1.0").with_path_to_exe(tmp_path / "missing")

    with pytest.raises(NotFoundError, match="Unable to find fakefmt 1.0"):
        exe.resolve()


def test_custom_version_flag_and_regex(make_executable: Callable[[str, str], Path]) -> None:
    tool = make_executable(
        "gotool",
        """
        import sys
        if sys.argv[1:] == ["version"]:
            print("go version go1.21.5 linux/amd64")
        """,
    )
    exe = (
        ForeignExe.name_and_version("gotool", "1.21.5")
        .with_path_to_exe(tool)
        .with_version_flag("version")
        .with_version_regex(r"go version go(\S+)")
    )

    assert exe.resolve().discovered_version == "1.21.5"


def test_unparseable_version_output(make_executable: Callable[[str, str], Path]) -> None:
    tool = make_executable("quiet", "print('no numbers here')\n")
    exe = ForeignExe.name_and_version("quiet", "1.0").with_path_to_exe(tool)

    with pytest.raises(WrongVersionError, match="Unable to parse the version of quiet"):
        exe.resolve()


def test_resolution_runs_once(make_executable: Callable[[str, str], Path], tmp_path: Path) -> None:
    counter = tmp_path / "count.txt"
    tool = make_executable(
        "counted",
        f"""
        from pathlib import Path
        counter = Path({str(counter)!r})
        counter.write_text(counter.read_text() + "x" if counter.exists() else "x")
        print("counted version 2.0")
        """,
    )
    exe = ForeignExe.name_and_version("counted", "2.0").with_path_to_exe(tool)

    exe.resolve()
    exe.resolve()

    assert counter.read_text() == "x"


def test_render_template_leaves_other_braces() -> None:
    rendered = render_template("{name}@{version} ({versionFound}) {other}", name="t", version="1", version_found="2")

    assert rendered == "t@1 (2) {other}"
