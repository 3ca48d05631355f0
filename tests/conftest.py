"""Temporary git repositories for backend and CLI tests."""

import shutil
import subprocess

import pytest

from gittree.ids import CommitId


requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git executable not available")


def git(repo, *args):
    result = subprocess.run(
        [
            "git",
            "-C",
            str(repo),
            "-c",
            "user.name=Test",
            "-c",
            "user.email=test@example.com",
            "-c",
            "commit.gpgsign=false",
            *args,
        ],
        check=True,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
    )
    return result.stdout.strip()


def commit(repo, message):
    git(repo, "commit", "-q", "--allow-empty", "-m", message)
    return CommitId.from_hex(git(repo, "rev-parse", "HEAD"))


@pytest.fixture
def isolated_git(monkeypatch, tmp_path):
    monkeypatch.setenv("GIT_CEILING_DIRECTORIES", str(tmp_path))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("GIT_PAGER", "cat")
    return tmp_path


@pytest.fixture
def branchy_repo(isolated_git):
    """
    main:    c1 - c2 - c3
                    \\
    feature:         f1 - f2 - m
                              /
    (deleted orphan):   o1 - o2

    HEAD is main. Returns (repo path, dict of commit ids by name).
    """
    repo = isolated_git / "repo"
    repo.mkdir()
    git(repo, "init", "-q")
    git(repo, "symbolic-ref", "HEAD", "refs/heads/main")

    ids = {}
    ids["c1"] = commit(repo, "c1")
    ids["c2"] = commit(repo, "c2")

    git(repo, "checkout", "-q", "-b", "feature")
    ids["f1"] = commit(repo, "f1")
    ids["f2"] = commit(repo, "f2")

    git(repo, "checkout", "-q", "--orphan", "orphan")
    ids["o1"] = commit(repo, "o1")
    ids["o2"] = commit(repo, "o2")

    git(repo, "checkout", "-q", "feature")
    git(repo, "merge", "-q", "--no-ff", "--allow-unrelated-histories", "-m", "m", "orphan")
    ids["m"] = CommitId.from_hex(git(repo, "rev-parse", "HEAD"))
    git(repo, "branch", "-q", "-D", "orphan")

    git(repo, "checkout", "-q", "main")
    ids["c3"] = commit(repo, "c3")

    return repo, ids
