# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tests for diff and finding rendering."""

from __future__ import annotations

import json
import threading
from pathlib import Path

import pytest

from fmtchain.lint import Lint
from fmtchain.reporting import (
    DIFF_MESSAGE,
    DiagnosticsCollector,
    rdjsonl_diff,
    rdjsonl_lints,
    render_structured_findings,
    render_unified_diff,
)


def test_unified_diff_for_dirty_file() -> None:
    diff = render_unified_diff(Path("test.txt"), "hello  \nworld\n", "hello\nworld\n")

    assert diff == "--- a/test.txt\n+++ b/test.txt\n@@ -1,2 +1,2 @@\n-hello  \n+hello\n world\n"


def test_unified_diff_is_empty_for_clean_file() -> None:
    assert render_unified_diff("test.txt", "same\n", "same\n") == ""


def test_unified_diff_marks_missing_final_newline() -> None:
    diff = render_unified_diff("test.txt", "a", "a\n")

    assert diff == "--- a/test.txt\n+++ b/test.txt\n@@ -1 +1 @@\n-a\n\\ No newline at end of file\n+a\n"


def test_structured_findings() -> None:
    lints = [Lint.at_line(7, "TEST001", "bad thing")]

    records = render_structured_findings(Path("src/main.java"), ["testStep"], [lints])

    assert len(records) == 1
    assert records[0].model_dump() == {
        "source": "fmtchain",
        "code": "testStep",
        "level": "warning",
        "message": "TEST001: bad thing",
        "path": "src/main.java",
        "line": 7,
        "column": 1,
    }


def test_structured_findings_require_aligned_inputs() -> None:
    with pytest.raises(ValueError):
        render_structured_findings("a.txt", ["one", "two"], [[]])


def test_rdjsonl_outputs() -> None:
    lints_line = rdjsonl_lints("src/main.java", ["testStep"], [[Lint.at_line(1, "R", "d")]])
    diff_line = rdjsonl_diff("test.txt", "a \n", "a\n")

    assert json.loads(lints_line)["code"] == "testStep"
    record = json.loads(diff_line)
    assert record["message"]["path"] == "test.txt"
    assert record["message"]["message"] == DIFF_MESSAGE
    assert record["message"]["diff"].startswith("--- a/test.txt")
    assert rdjsonl_diff("test.txt", "a\n", "a\n") == ""
    assert rdjsonl_lints("x", ["s"], [[]]) == ""


def test_collector_keeps_order_and_ignores_empty() -> None:
    collector = DiagnosticsCollector()
    collector.record_lints("first", "a.txt", [Lint.at_line(1, "A1", "one")])
    collector.record_lints("empty", "a.txt", [])
    collector.record_lints("second", Path("dir/b.txt"), [Lint.at_lines(2, 4, "B2", "range")])

    assert len(collector) == 2
    assert [entry.step_name for entry in collector.entries()] == ["first", "second"]
    assert collector.render_report() == "a.txt:1: first(A1) one\ndir/b.txt:2-4: second(B2) range"
    assert [record.code for record in collector.findings()] == ["first", "second"]
    assert len(collector.render_jsonl().splitlines()) == 2

    collector.clear()
    assert len(collector) == 0


def test_collector_is_thread_safe() -> None:
    collector = DiagnosticsCollector()

    def record(index: int) -> None:
        for line in range(1, 51):
            collector.record_lints(f"step{index}", "f.txt", [Lint.at_line(line, "R", "d")])

    threads = [threading.Thread(target=record, args=(index,)) for index in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(collector) == 400
