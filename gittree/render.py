# gittree/render.py
"""
Translate a boundary into `git log` arguments.

git log shows every commit reachable from its positive revisions and not
reachable from the ones after `--not`. The positive side is the boundary's
includes plus the merge bases themselves; the negative side is each base's
parents (`<base>^@`) followed by the excludes, which cuts off everything
below the window.
"""

from __future__ import annotations

from typing import Iterable, List, Sequence

from gittree.engine import Boundary
from gittree.ids import CommitId
from gittree.validation import LogOptions


def has_revisions(boundary: Boundary, bases: Iterable[CommitId]) -> bool:
    return bool(boundary.includes or set(bases))


def revision_args(boundary: Boundary, bases: Iterable[CommitId]) -> List[str]:
    base_list = sorted(set(bases))

    positive = sorted(set(boundary.includes) | set(base_list))
    args = [c.hex for c in positive]

    negative = [f"{b.hex}^@" for b in base_list] + [c.hex for c in sorted(boundary.excludes)]
    if negative:
        args.append("--not")
        args.extend(negative)

    return args


def build_log_args(
    boundary: Boundary,
    bases: Iterable[CommitId],
    options: LogOptions,
    extra: Sequence[str] = (),
) -> List[str]:
    """
    Full argument list for `git log`, without the leading "log".

    Options come first, revisions last, so user supplied options can never be
    mistaken for revisions. Output is sorted and therefore deterministic.
    """
    args = ["--graph"]

    if options.format is not None:
        args.append(f"--format={options.format}")

    args.extend(options.args)
    args.extend(extra)
    args.extend(revision_args(boundary, bases))
    return args
