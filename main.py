#!/usr/bin/env python3
"""git-tree CLI.

Shows `git log --graph` for the interesting commits of a repository (HEAD,
local branches and their upstreams) together with the history connecting
them, and nothing below their common merge bases.
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
import sys

from gittree.config import DEFAULT_SCHEMA_PATH, ConfigError, load_config
from gittree.engine import Boundary, EngineError, compute_boundary
from gittree.explore import resolve_unordered
from gittree.render import build_log_args, has_revisions
from gittree.report import build_entries, render_dryrun_report
from gittree.repo import (
    GitRepositoryError,
    discover_tips,
    ensure_git_repository,
    find_merge_bases,
    run_git_log,
    stream_rev_list,
)
from gittree.validation import ValidationError, validate_config


logger = logging.getLogger("gittree")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="git-tree",
        description="Show git log --graph for the branches you care about",
    )

    parser.add_argument(
        "--repo",
        default=".",
        help="Path to the git repository (default: current directory)",
    )
    parser.add_argument(
        "--config",
        help="Path to a YAML config file",
    )
    parser.add_argument(
        "--schema",
        default=str(DEFAULT_SCHEMA_PATH),
        help="Path to schema.json",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the computed commits and git log command instead of running it",
    )
    parser.add_argument(
        "--unordered",
        action="store_true",
        help="Read rev-list without --topo-order and resolve the boundary by fixpoint",
    )
    parser.add_argument(
        "-d",
        "--debug",
        action="store_true",
        help="Log tips, bases and the computed boundary to stderr",
    )
    parser.add_argument(
        "--hash-len",
        type=int,
        default=12,
        help="Number of characters to show for commit hash in --dry-run",
    )
    parser.add_argument(
        "git_args",
        nargs="*",
        help="Extra arguments for git log, given after --",
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(name)s: %(levelname)s: %(message)s",
    )

    if int(args.hash_len) <= 0:
        print("error: --hash-len must be a positive integer", file=sys.stderr)
        return 2

    repo_path = Path(args.repo).expanduser().resolve()
    config_path = Path(args.config).expanduser().resolve() if args.config else None
    schema_path = Path(args.schema).expanduser().resolve()

    try:
        cfg = load_config(config_path, schema_path)
        validated = validate_config(cfg)

        ensure_git_repository(repo_path)

        tips = discover_tips(repo_path, validated.tips)
        bases = find_merge_bases(repo_path, tips)
        if not bases:
            # Unrelated histories: nothing connects the tips, skip the walk
            boundary = Boundary()
        elif args.unordered:
            records = stream_rev_list(repo_path, tips, bases, topo_order=False)
            boundary = resolve_unordered(bases, records)
        else:
            boundary = compute_boundary(bases, stream_rev_list(repo_path, tips, bases))

        logger.debug("includes: %s", sorted(str(c) for c in boundary.includes))
        logger.debug("excludes: %s", sorted(str(c) for c in boundary.excludes))

        if has_revisions(boundary, bases):
            log_args = build_log_args(boundary, bases, validated.log, args.git_args)
        else:
            log_args = []

        if args.dry_run:
            entries = build_entries(tips, bases, boundary, hash_len=int(args.hash_len))
            report = render_dryrun_report(
                tip_count=len(tips),
                base_count=len(bases),
                boundary=boundary,
                entries=entries,
                log_args=log_args,
                hash_len=int(args.hash_len),
            )
            print(report)
            return 0

        if not log_args:
            print("nothing to show", file=sys.stderr)
            return 0

        return run_git_log(repo_path, log_args)

    except (ConfigError, ValidationError, GitRepositoryError, EngineError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
