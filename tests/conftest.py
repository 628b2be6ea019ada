# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Shared pytest fixtures."""

from __future__ import annotations

import sys
import textwrap
from collections.abc import Callable
from pathlib import Path

import pytest

MakeExecutable = Callable[[str, str], Path]


@pytest.fixture
def make_executable(tmp_path: Path) -> MakeExecutable:
    """Return a factory writing small Python scripts that act as foreign tools."""

    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()

    def _make(name: str, body: str) -> Path:
        path = bin_dir / name
        path.write_text(f"#!{sys.executable}\n" + textwrap.dedent(body), encoding="utf-8")
        path.chmod(0o755)
        return path

    return _make


@pytest.fixture
def versioned_tool(make_executable: MakeExecutable) -> Callable[[str, str], Path]:
    """Return a factory for a tool that reports ``version <v>`` and uppercases stdin."""

    def _make(name: str, version: str) -> Path:
        return make_executable(
            name,
            f"""
            import sys
            if sys.argv[1:] == ["--version"]:
                print("{name} version {version}")
                sys.exit(0)
            sys.stdout.write(sys.stdin.read().upper())
            """,
        )

    return _make
