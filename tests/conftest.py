"""Shared fixtures for the test suite."""

import shutil
import subprocess
from pathlib import Path
from typing import Any

import pytest

requires_git = pytest.mark.skipif(
    shutil.which("git") is None, reason="git executable not available"
)


def git(cwd: Path, *args: str) -> str:
    """Runs a git command for test setup and returns its stdout."""
    return subprocess.run(
        ["git", *args], cwd=cwd, check=True, capture_output=True, text=True
    ).stdout


@pytest.fixture
def git_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Isolates git from the user's configuration and provides an identity."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Test User")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "test@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Test User")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "test@example.com")


@pytest.fixture
def upstream(tmp_path: Path, git_env: Any) -> dict[str, Path]:
    """Creates a bare 'remote' repository seeded with one commit.

    Returns:
        dict[str, Path]: 'bare' (the remote) and 'seed' (a working copy that can
        push new commits to it).
    """
    bare = tmp_path / "remote" / "project.git"
    bare.mkdir(parents=True)
    git(bare, "init", "--bare", "--initial-branch=main")

    seed = tmp_path / "seed"
    seed.mkdir()
    git(seed, "init", "--initial-branch=main")
    (seed / "file.txt").write_text("one\n")
    (seed / "other.txt").write_text("alpha\n")
    git(seed, "add", ".")
    git(seed, "commit", "-m", "initial")
    git(seed, "remote", "add", "origin", str(bare))
    git(seed, "push", "-u", "origin", "main")

    return {"bare": bare, "seed": seed}


def push_change(seed: Path, filename: str, content: str) -> None:
    """Commits `content` to `filename` in the seed copy and pushes it."""
    (seed / filename).write_text(content)
    git(seed, "commit", "-am", f"update {filename}")
    git(seed, "push", "origin", "main")
