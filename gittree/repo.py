# gittree/repo.py
"""
Git backend.

Responsibilities:
- Discover the interesting tips (HEAD, branches, upstreams, extra revisions)
- Compute the common merge bases of the tips
- Stream `git rev-list --parents` output as edge records
- Launch `git log` for the final rendering

Handles Git Bash ↔ Windows path normalisation.

This module does NOT:
- classify commits
- decide how includes and excludes are rendered
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from subprocess import PIPE, CompletedProcess, Popen, run
import tempfile
from typing import Dict, FrozenSet, Iterable, Iterator, List, Optional, Sequence, Set

from gittree.engine import EdgeRecord
from gittree.ids import CommitId, NotHexError
from gittree.stream import iter_edge_records
from gittree.validation import TipOptions


logger = logging.getLogger(__name__)


# Single source of truth for git field separation
_FIELD_SEP = "\x00"

_LOCAL_PREFIX = "refs/heads/"
_REMOTE_PREFIX = "refs/remotes/"


class GitRepositoryError(RuntimeError):
    pass


def _normalise_repo_path(repo_path: Path) -> Path:
    """
    Convert Git Bash paths (/c/Users/...) to native Windows paths (C:\\Users\\...).
    No-op on non-Windows systems.
    """
    if os.name != "nt":
        return repo_path

    p = str(repo_path)

    if p.startswith("/") and len(p) >= 3 and p[2] == "/":
        drive = p[1]
        if drive.isalpha():
            return Path(f"{drive.upper()}:/{p[3:]}")

    return Path(p)


def _git_argv(repo_path: Path, args: Sequence[str]) -> List[str]:
    return ["git", "-C", str(_normalise_repo_path(repo_path))] + list(args)


def _run_git(
    repo_path: Path,
    args: Sequence[str],
    *,
    accept: Sequence[int] = (0,),
) -> CompletedProcess:
    argv = _git_argv(repo_path, args)
    logger.debug("running %s", " ".join(argv))

    try:
        result = run(
            argv,
            stdout=PIPE,
            stderr=PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
            check=False,
        )
    except OSError as e:
        raise GitRepositoryError(f"Failed to run git: {e}") from e

    if result.returncode not in accept:
        stderr = (result.stderr or "").strip()
        raise GitRepositoryError(stderr if stderr else f"git {args[0]} failed with status {result.returncode}")

    return result


def _run_git_command(repo_path: Path, args: Sequence[str]) -> str:
    # Do not strip spaces, only trailing newlines
    return _run_git(repo_path, args).stdout.rstrip("\n")


def _parse_id(text: str, context: str) -> CommitId:
    try:
        return CommitId.from_hex(text.strip())
    except NotHexError as e:
        raise GitRepositoryError(f"Malformed object id from git {context}: {text!r}") from e


def ensure_git_repository(repo_path: Path) -> None:
    try:
        _run_git_command(repo_path, ["rev-parse", "--is-inside-work-tree"])
    except GitRepositoryError as e:
        raise GitRepositoryError(f"Not a git repository: {repo_path}") from e


def resolve_revision(repo_path: Path, revision: str) -> Optional[CommitId]:
    """
    Resolve a revision to the commit it names.

    Returns None when the revision does not exist (for example HEAD in a
    repository without commits).
    """
    result = _run_git(
        repo_path,
        ["rev-parse", "--verify", "--quiet", f"{revision}^{{commit}}"],
        accept=(0, 1),
    )
    out = result.stdout.strip()

    if result.returncode != 0 or not out:
        return None

    return _parse_id(out, "rev-parse")


def _list_branch_refs(repo_path: Path) -> List[List[str]]:
    raw = _run_git_command(
        repo_path,
        [
            "for-each-ref",
            "--format=%(objectname)%00%(refname)%00%(upstream)",
            "refs/heads",
            "refs/remotes",
        ],
    )

    rows: List[List[str]] = []

    if not raw:
        return rows

    for line in raw.splitlines():
        parts = line.split(_FIELD_SEP)

        if len(parts) != 3:
            raise GitRepositoryError(f"Malformed for-each-ref line: {line!r}")

        rows.append(parts)

    return rows


def discover_tips(repo_path: Path, options: TipOptions) -> FrozenSet[CommitId]:
    """
    Collect the interesting commits to show history for.

    Sources, each controlled by TipOptions:
    - HEAD
    - every local branch
    - the upstream of each local branch, when it still exists
    - remote branches with the same short name as a local branch
    - explicitly listed revisions
    """
    tips: Set[CommitId] = set()

    if options.head:
        head = resolve_revision(repo_path, "HEAD")
        if head is None:
            logger.warning("HEAD does not point at a commit; skipping it")
        else:
            tips.add(head)

    if options.local_branches or options.upstreams or options.same_name_remotes:
        rows = _list_branch_refs(repo_path)
        objects: Dict[str, CommitId] = {
            refname: _parse_id(oid, "for-each-ref") for oid, refname, _upstream in rows
        }

        local_names = set()
        for _oid, refname, upstream in rows:
            if not refname.startswith(_LOCAL_PREFIX):
                continue

            local_names.add(refname[len(_LOCAL_PREFIX):])

            if options.local_branches:
                tips.add(objects[refname])

            if options.upstreams and upstream:
                if upstream in objects:
                    tips.add(objects[upstream])
                else:
                    logger.info("upstream %s of %s no longer exists", upstream, refname)

        if options.same_name_remotes:
            for refname, oid in objects.items():
                if not refname.startswith(_REMOTE_PREFIX):
                    continue

                # refs/remotes/<remote>/<branch>
                parts = refname[len(_REMOTE_PREFIX):].split("/", 1)
                if len(parts) == 2 and parts[1] in local_names:
                    tips.add(oid)

    for revision in options.extra:
        commit = resolve_revision(repo_path, revision)
        if commit is None:
            raise GitRepositoryError(f"Unknown revision: {revision}")
        tips.add(commit)

    logger.debug("interesting commits: %s", sorted(str(t) for t in tips))
    return frozenset(tips)


def find_merge_bases(repo_path: Path, tips: Iterable[CommitId]) -> FrozenSet[CommitId]:
    """
    Common ancestors of all tips, via `git merge-base -a --octopus`.

    Tips without any common history yield an empty set.
    """
    tip_list = sorted(tips)

    if not tip_list:
        return frozenset()

    result = _run_git(
        repo_path,
        ["merge-base", "-a", "--octopus"] + [t.hex for t in tip_list],
        accept=(0, 1),
    )
    out = result.stdout.strip()

    if result.returncode == 1 and not out:
        logger.warning("interesting commits share no history; nothing will be shown as connected")
        return frozenset()

    bases = frozenset(_parse_id(line, "merge-base") for line in out.splitlines() if line.strip())
    logger.debug("merge bases: %s", sorted(str(b) for b in bases))
    return bases


def stream_rev_list(
    repo_path: Path,
    tips: Iterable[CommitId],
    bases: Iterable[CommitId],
    *,
    topo_order: bool = True,
) -> Iterator[EdgeRecord]:
    """
    Yield edge records for every commit reachable from tips but not bases.

    Records come parents first (`--reverse --topo-order`) and are read from
    the pipe one line at a time. With topo_order=False git's default order is
    used instead, which starts output sooner but only suits resolve_unordered.

    A failing git process raises GitRepositoryError after its last line; a
    consumer that stops early gets the process killed. stderr goes to a
    temporary file and is read only after git exits.
    """
    tip_list = sorted(tips)

    if not tip_list:
        return

    args = ["rev-list", "--parents"]
    if topo_order:
        args += ["--reverse", "--topo-order"]
    args += [t.hex for t in tip_list]
    base_list = sorted(bases)
    if base_list:
        args += ["--not"] + [b.hex for b in base_list]

    argv = _git_argv(repo_path, args)
    logger.debug("streaming %s", " ".join(argv))

    with tempfile.TemporaryFile(mode="w+", encoding="utf-8", errors="replace") as err:
        try:
            proc = Popen(
                argv,
                stdout=PIPE,
                stderr=err,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as e:
            raise GitRepositoryError(f"Failed to run git: {e}") from e

        finished = False
        try:
            yield from iter_edge_records(proc.stdout)
            status = proc.wait()
            finished = True
        finally:
            if not finished:
                proc.kill()
                proc.wait()
            proc.stdout.close()

        if status != 0:
            err.seek(0)
            stderr = err.read().strip()
            raise GitRepositoryError(stderr if stderr else f"git rev-list failed with status {status}")


def run_git_log(repo_path: Path, args: Sequence[str]) -> int:
    """
    Run `git log` attached to the terminal and return its exit status.
    """
    argv = _git_argv(repo_path, ["log"] + list(args))
    logger.debug("running %s", " ".join(argv))

    try:
        return run(argv, check=False).returncode
    except OSError as e:
        raise GitRepositoryError(f"Failed to run git: {e}") from e
