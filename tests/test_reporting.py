# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tests for console helpers and run summaries."""

from __future__ import annotations

import io

import pytest
from rich.console import Console

from fmtchain.console import RichConsoleManager, color_disabled_by_environment, get_console_manager
from fmtchain.lint import Lint
from fmtchain.logging import emoji, fail, info, ok, section, warn
from fmtchain.pipeline import FileOutcome, FileStatus, RunSummary
from fmtchain.reporting import DiagnosticsCollector, create_summary_panel, print_summary


def _summary() -> RunSummary:
    return RunSummary(
        outcomes=(
            FileOutcome(path="clean.txt", status=FileStatus.CLEAN),
            FileOutcome(path="dirty.txt", status=FileStatus.DIRTY, diff="--- a/dirty.txt\n+++ b/dirty.txt\n"),
            FileOutcome(path="grow.txt", status=FileStatus.DID_NOT_CONVERGE),
        ),
        tool_versions={"black": "24.4.2"},
    )


def _recording_console() -> Console:
    return Console(file=io.StringIO(), record=True, width=100, color_system=None, force_terminal=False)


def test_console_manager_is_shared_and_keyed() -> None:
    manager = get_console_manager()

    assert manager is get_console_manager()
    assert manager.get(color=False, emoji=False) is manager.get(color=False, emoji=False)
    assert manager.get(color=False, emoji=True) is not manager.get(color=False, emoji=False)


def test_no_color_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("NO_COLOR", "1")
    assert color_disabled_by_environment()
    assert RichConsoleManager().get(color=True, emoji=False).no_color

    monkeypatch.delenv("NO_COLOR")
    assert not color_disabled_by_environment()


def test_message_helpers(capsys: pytest.CaptureFixture[str]) -> None:
    info("starting", use_emoji=False, use_color=False)
    ok("done", use_emoji=True, use_color=False)
    warn("careful", use_emoji=False, use_color=False)
    fail("broken", use_emoji=False, use_color=False)
    section("Lints", use_color=False)

    out = capsys.readouterr().out
    assert "starting" in out
    assert "✅ done" in out
    assert "careful" in out
    assert "broken" in out
    assert "--- Lints ---" in out
    assert emoji("✅", False) == ""


def test_summary_panel_counts_statuses() -> None:
    console = _recording_console()

    console.print(create_summary_panel(_summary(), color=False))

    text = console.export_text()
    assert "fmtchain" in text
    assert "Files" in text
    assert "- clean" in text
    assert "- did not converge" in text
    assert "black version" in text
    assert "24.4.2" in text


def test_print_summary_shows_problems(capsys: pytest.CaptureFixture[str]) -> None:
    console = _recording_console()
    collector = DiagnosticsCollector()
    collector.record_lints("testStep", "clean.txt", [Lint.at_line(2, "TEST001", "bad line")])

    print_summary(_summary(), collector=collector, color=False, emoji=False, console=console)

    text = console.export_text()
    assert "--- a/dirty.txt" in text
    assert "grow.txt: formatting does not converge" in text
    assert "--- Lints ---" in text
    assert "clean.txt:2: testStep(TEST001) bad line" in text
    assert text.rstrip().endswith("Some files need attention")
    assert capsys.readouterr().out == ""


def test_print_summary_without_diffs(capsys: pytest.CaptureFixture[str]) -> None:
    console = _recording_console()
    clean = RunSummary(outcomes=(FileOutcome(path="a.txt", status=FileStatus.CLEAN),), tool_versions={})

    print_summary(clean, color=False, emoji=False, show_diffs=False, console=console)

    text = console.export_text()
    assert "--- a/" not in text
    assert text.rstrip().endswith("All files are formatted")
    assert capsys.readouterr().out == ""


def test_print_summary_reports_failures_on_given_console() -> None:
    console = _recording_console()
    failed = RunSummary(
        outcomes=(FileOutcome(path="bad.txt", status=FileStatus.FAILED, error="boom"),),
        tool_versions={},
    )

    print_summary(failed, color=False, emoji=False, console=console)

    text = console.export_text()
    assert "bad.txt: boom" in text
    assert text.rstrip().endswith("1 file(s) could not be formatted")


def test_message_helpers_accept_a_console() -> None:
    console = _recording_console()

    ok("done", use_emoji=False, use_color=False, console=console)
    section("Next", use_color=False, console=console)

    assert console.export_text() == "done\n\n--- Next ---\n"
