"""
Output rendering and formatting.

Result lines go to stdout, one per package. The batch summary is an
aligned table; widths are measured with wcwidth so emoji icons line up.
"""

from __future__ import annotations

import sys
from typing import Any, Sequence, TextIO

from wcwidth import wcswidth

from .checker import BatchResult, PackageResult, PackageStatus
from .common import env_flag


# Environment options
USE_EMOJI = env_flag("AUTO_UPDATABLE_EMOJI", True)
USE_COLOR = env_flag("AUTO_UPDATABLE_COLOR", True)

# ANSI color codes
GREEN = "\033[32m"
BOLD_GREEN = "\033[1;32m"
YELLOW = "\033[33m"
BLUE = "\033[34m"
RED = "\033[31m"
RESET = "\033[0m"

STATUS_COLORS = {
    PackageStatus.UPDATABLE: BOLD_GREEN,
    PackageStatus.ALREADY_DECLARED: GREEN,
    PackageStatus.NOT_UPDATABLE: RED,
    PackageStatus.INVALID: YELLOW,
}


def status_icon(status: PackageStatus) -> str:
    """Get status icon for a package result."""
    if not USE_EMOJI:
        if status is PackageStatus.UPDATABLE:
            return "✓"
        if status is PackageStatus.ALREADY_DECLARED:
            return "="
        if status is PackageStatus.NOT_UPDATABLE:
            return "x"
        return "?"

    if status is PackageStatus.UPDATABLE:
        return "✅"
    if status is PackageStatus.ALREADY_DECLARED:
        return "🔒"
    if status is PackageStatus.NOT_UPDATABLE:
        return "❌"
    return "❓"


def colorize(text: str, color: str, stream: TextIO | None = None) -> str:
    """Apply color to text.

    Args:
        text: Text to colorize
        color: ANSI color code
        stream: Destination; colors are dropped when it is not a terminal

    Returns:
        Colored text or plain text if colors disabled
    """
    if not USE_COLOR or not text:
        return text
    if stream is not None and not stream.isatty():
        return text
    return f"{color}{text}{RESET}"


def format_result(result: PackageResult, stream: TextIO | None = None) -> str:
    """One line describing a package result."""
    if result.status is PackageStatus.UPDATABLE:
        line = f"{result.package}: can be auto-updated ({result.message})"
        if result.written:
            line += f"; added {', '.join(result.written)}"
    elif result.status is PackageStatus.ALREADY_DECLARED:
        line = f"{result.package}: {result.message}"
    elif result.status is PackageStatus.NOT_UPDATABLE:
        line = f"{result.package}: cannot be auto-updated"
    else:
        line = f"{result.package}: {result.message}"

    color = STATUS_COLORS.get(result.status, BLUE)
    return f"{status_icon(result.status)} {colorize(line, color, stream)}"


def print_result(result: PackageResult, stream: TextIO | None = None) -> None:
    """Print the final line for one package."""
    stream = stream or sys.stdout
    print(format_result(result, stream), file=stream)


def print_fatal(message: str, stream: TextIO | None = None) -> None:
    """Print a fatal error; shown even in silent mode."""
    stream = stream or sys.stderr
    print(colorize(f"ERROR: {message}", RED, stream), file=stream)


def _pad(text: str, width: int) -> str:
    visible = wcswidth(text)
    if visible < 0:
        visible = len(text)
    return text + " " * max(0, width - visible)


def render_table(rows: Sequence[Sequence[str]], headers: Sequence[str]) -> list[str]:
    """Align rows into columns by display width.

    Args:
        rows: Table cells
        headers: Column titles

    Returns:
        Formatted lines, header and rule first
    """
    table = [list(headers)] + [list(row) for row in rows]
    widths = [0] * len(headers)
    for row in table:
        for i, cell in enumerate(row):
            w = wcswidth(cell)
            widths[i] = max(widths[i], w if w >= 0 else len(cell))

    lines = ["  ".join(_pad(cell, widths[i]) for i, cell in enumerate(row)).rstrip() for row in table]
    lines.insert(1, "  ".join("-" * w for w in widths))
    return lines


def print_summary(batch: BatchResult, stream: TextIO | None = None) -> None:
    """Print summary table and counts for a batch run.

    Args:
        batch: Results of the run
        stream: Output stream (stderr by default)
    """
    stream = stream or sys.stderr
    rows = [
        (status_icon(r.status), r.package, r.status.value, r.message)
        for r in batch.results
    ]
    print("", file=stream)
    for line in render_table(rows, ("", "package", "state", "detail")):
        print(line, file=stream)

    counts: dict[str, Any] = batch.get_summary()
    parts = [f"{len(batch.results)} packages"]
    parts.extend(f"{count} {state}" for state, count in counts.items() if count)
    print(f"\nSummary: {', '.join(parts)}", file=stream)
