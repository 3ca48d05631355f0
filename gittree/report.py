# gittree/report.py
"""
Dry run reporting.

Responsibilities:
- Summarise tips, bases and the computed boundary
- Render a deterministic, human readable output

This module does NOT:
- call git
- classify commits
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Sequence
import shlex

from gittree.engine import Boundary
from gittree.ids import CommitId


# Row order in the table
_ROLES = ("tip", "base", "include", "exclude")


@dataclass(frozen=True)
class ReportEntry:
    role: str
    hash_prefix: str


def build_entries(
    tips: Iterable[CommitId],
    bases: Iterable[CommitId],
    boundary: Boundary,
    *,
    hash_len: int = 12,
) -> List[ReportEntry]:
    """
    One entry per (role, commit) pair, sorted by role then hash.

    Raises:
        ValueError: if hash_len is invalid.
    """
    if hash_len <= 0:
        raise ValueError("hash_len must be a positive integer")

    groups = {
        "tip": tips,
        "base": bases,
        "include": boundary.includes,
        "exclude": boundary.excludes,
    }

    entries: List[ReportEntry] = []

    for role in _ROLES:
        for c in sorted(set(groups[role])):
            entries.append(ReportEntry(role=role, hash_prefix=c.short(hash_len)))

    return entries


def render_dryrun_report(
    *,
    tip_count: int,
    base_count: int,
    boundary: Boundary,
    entries: Sequence[ReportEntry],
    log_args: Sequence[str],
    hash_len: int,
) -> str:
    """
    Render a dry run report as plain text.
    """
    stats = boundary.stats
    lines: List[str] = []

    lines.append(f"Interesting commits: {tip_count}")
    lines.append(f"Merge bases: {base_count}")
    lines.append(f"Includes: {len(boundary.includes)}")
    lines.append(f"Excludes: {len(boundary.excludes)}")
    lines.append(f"Records streamed: {stats.records}")
    lines.append(f"Unresolved parents: {stats.unresolved_parents}")
    lines.append(f"Peak active commits: {stats.peak_active}")

    if log_args:
        lines.append("Command: " + shlex.join(["git", "log", *log_args]))
    else:
        lines.append("Command: <nothing to show>")

    if not entries:
        return "\n".join(lines)

    lines.append("")
    lines.append(f"Hash shown as {hash_len} character prefix")
    lines.append("")

    headers = ["role", "hash"]
    rows = [[e.role, e.hash_prefix] for e in entries]

    lines.extend(_format_table(headers, rows))
    return "\n".join(lines)


def _format_table(headers: List[str], rows: List[List[str]]) -> List[str]:
    widths = [len(h) for h in headers]

    for row in rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(cell))

    def fmt_row(items: List[str]) -> str:
        return "  ".join(items[i].ljust(widths[i]) for i in range(len(items))).rstrip()

    lines: List[str] = []
    lines.append(fmt_row(headers))
    lines.append(fmt_row(["-" * w for w in widths]))

    for row in rows:
        lines.append(fmt_row(row))

    return lines
