# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Rich rendering of run summaries."""

from __future__ import annotations

from collections import Counter
from typing import TYPE_CHECKING

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..console import detect_tty, get_console_manager
from ..logging import fail, ok, section, warn
from .diagnostics import DiagnosticsCollector

if TYPE_CHECKING:
    from ..pipeline.runner import FileStatus, RunSummary

_STATUS_STYLES = {
    "clean": "green",
    "formatted": "cyan",
    "dirty": "yellow",
    "did_not_converge": "magenta",
    "failed": "red",
    "cancelled": "dim",
}


def create_summary_panel(summary: RunSummary, *, color: bool) -> Panel:
    """Create a panel counting files per status plus the tool versions used.

    Args:
        summary: Completed run.
        color: Whether styles are applied.

    Returns:
        Panel: Rich panel ready to print.
    """

    table = Table(show_header=False, box=box.SIMPLE, pad_edge=False, expand=False)
    table.add_column(justify="left", no_wrap=True)
    table.add_column(justify="right", no_wrap=True)
    counts: Counter[FileStatus] = Counter(outcome.status for outcome in summary.outcomes)
    table.add_row("Files", str(len(summary.outcomes)))
    for status, count in sorted(counts.items(), key=lambda item: item[0].value):
        style = _STATUS_STYLES.get(status.value) if color else None
        label = f"- {status.value.replace('_', ' ')}"
        table.add_row(Text(label, style=style or ""), Text(str(count), style=style or ""))
    for step_name, version in sorted(summary.tool_versions.items()):
        table.add_row(f"{step_name} version", version)
    return Panel(table, title="fmtchain", expand=False, border_style="cyan" if color else "none")


def _print_problems(console: Console, summary: RunSummary, *, show_diffs: bool) -> None:
    # The pipeline imports this package, so the enum is imported at call time.
    from ..pipeline.runner import FileStatus

    for outcome in summary.outcomes:
        if outcome.status is FileStatus.DIRTY and show_diffs and outcome.diff:
            console.print(Text(outcome.diff.rstrip("\n")))
        elif outcome.status is FileStatus.DID_NOT_CONVERGE:
            console.print(Text(f"{outcome.path}: formatting does not converge"))
        elif outcome.status is FileStatus.FAILED:
            console.print(Text(f"{outcome.path}: {outcome.error}"))


def print_summary(
    summary: RunSummary,
    *,
    collector: DiagnosticsCollector | None = None,
    color: bool | None = None,
    emoji: bool = True,
    show_diffs: bool = True,
    console: Console | None = None,
) -> None:
    """Print diffs, lints and a summary panel for ``summary``.

    Args:
        summary: Completed run.
        collector: Lints recorded during the run, printed one per line.
        color: Explicit colour preference; defaults to TTY detection.
        emoji: Whether status lines carry emoji.
        show_diffs: Whether diffs of dirty files are printed.
        console: Console every line is printed to instead of the shared one.
    """

    use_color = detect_tty() if color is None else color
    target = console or get_console_manager().get(color=use_color, emoji=emoji)
    _print_problems(target, summary, show_diffs=show_diffs)
    if collector is not None and len(collector):
        section("Lints", use_color=use_color, console=target)
        target.print(Text(collector.render_report()))
    target.print(create_summary_panel(summary, color=use_color))
    failed = len(summary.failed)
    if failed:
        fail(f"{failed} file(s) could not be formatted", use_emoji=emoji, use_color=use_color, console=target)
    elif summary.ok:
        ok("All files are formatted", use_emoji=emoji, use_color=use_color, console=target)
    else:
        warn("Some files need attention", use_emoji=emoji, use_color=use_color, console=target)


__all__ = ["create_summary_panel", "print_summary"]
