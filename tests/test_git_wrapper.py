import subprocess
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from git_reconcile.git_wrapper import GitCommandError, GitRepo, clone, run_git


@pytest.fixture
def repo(tmp_path: Path) -> GitRepo:
    (tmp_path / ".git").mkdir()
    return GitRepo(tmp_path, timeout=5)


def test_git_repo_rejects_non_repository(tmp_path: Path) -> None:
    """Verifies that a directory without .git is refused."""
    with pytest.raises(ValueError, match="Not a git repository"):
        GitRepo(tmp_path)


def test_run_git_wraps_non_zero_exit(mocker: MagicMock, tmp_path: Path) -> None:
    """Verifies that a failing command raises GitCommandError with its stderr."""
    mocker.patch(
        "subprocess.run",
        side_effect=subprocess.CalledProcessError(
            1, ["git", "pull"], stderr="fatal: no upstream\n"
        ),
    )

    with pytest.raises(GitCommandError) as excinfo:
        run_git(["pull", "--rebase"], cwd=tmp_path)

    err = excinfo.value
    assert err.returncode == 1
    assert not err.timed_out
    assert "'git pull --rebase' failed: fatal: no upstream" in str(err)


def test_run_git_maps_timeout(mocker: MagicMock, tmp_path: Path) -> None:
    """Verifies that a hung subprocess becomes a timed-out GitCommandError."""
    mocker.patch(
        "subprocess.run",
        side_effect=subprocess.TimeoutExpired(["git", "pull"], timeout=3),
    )

    with pytest.raises(GitCommandError) as excinfo:
        run_git(["pull", "--rebase"], cwd=tmp_path, timeout=3)

    assert excinfo.value.timed_out
    assert excinfo.value.returncode is None
    assert "timed out after 3s" in str(excinfo.value)


def test_run_git_passes_timeout_and_cwd(mocker: MagicMock, tmp_path: Path) -> None:
    """Verifies the subprocess invocation, and that a zero timeout means none."""
    mock_run = mocker.patch("subprocess.run")
    mock_run.return_value.stdout = "output\n"

    assert run_git(["status"], cwd=tmp_path, timeout=0) == "output"
    mock_run.assert_called_with(
        ["git", "status"],
        cwd=tmp_path,
        capture_output=True,
        text=True,
        check=True,
        timeout=None,
    )


def test_clone_targets_parent_directory(mocker: MagicMock, tmp_path: Path) -> None:
    """Verifies that clone runs in the destination's parent."""
    mock_run = mocker.patch("git_reconcile.git_wrapper.run_git")
    dest = tmp_path / "project"

    clone("git://example.com/project.git", dest, timeout=10)

    mock_run.assert_called_once_with(
        ["clone", "git://example.com/project.git", str(dest)],
        cwd=tmp_path,
        capture=False,
        timeout=10,
    )


def test_status_porcelain_splits_lines(mocker: MagicMock, repo: GitRepo) -> None:
    """Verifies that porcelain output is parsed line by line."""
    mock_run = mocker.patch.object(repo, "_run")

    mock_run.return_value = " M file.txt\n?? new.txt"
    assert repo.status_porcelain() == [" M file.txt", "?? new.txt"]

    mock_run.return_value = ""
    assert repo.status_porcelain() == []


@pytest.mark.parametrize(
    ("strategy", "flag"),
    [("rebase", "--rebase"), ("merge", "--no-rebase")],
)
def test_pull_maps_strategy_to_flag(
    mocker: MagicMock, repo: GitRepo, strategy: str, flag: str
) -> None:
    """Verifies the integration strategy flag passed to git pull."""
    mock_run = mocker.patch.object(repo, "_run")

    repo.pull(strategy)

    mock_run.assert_called_with(["pull", flag], capture=False)


def test_pull_rejects_unknown_strategy(repo: GitRepo) -> None:
    with pytest.raises(ValueError, match="Unknown integration strategy 'squash'"):
        repo.pull("squash")


def test_stash_commands(mocker: MagicMock, repo: GitRepo) -> None:
    """Verifies the stash push, pop and apply invocations."""
    mock_run = mocker.patch.object(repo, "_run")

    repo.stash_push("automated_backup_19.10.2026")
    mock_run.assert_called_with(
        ["stash", "push", "--include-untracked", "-m", "automated_backup_19.10.2026"],
        capture=False,
    )

    repo.stash_pop()
    mock_run.assert_called_with(["stash", "pop"], capture=False)

    repo.stash_apply("stash@{0}")
    mock_run.assert_called_with(["stash", "apply", "stash@{0}"], capture=False)


def test_latest_stash_ref_takes_first_entry(mocker: MagicMock, repo: GitRepo) -> None:
    """Verifies that the most recent stash reference is parsed from the list."""
    mock_run = mocker.patch.object(repo, "_run")
    mock_run.return_value = (
        "stash@{0}: On main: automated_backup_19.10.2026\n"
        "stash@{1}: On main: automated_backup_18.10.2026"
    )

    assert repo.stash_list() == [
        "stash@{0}: On main: automated_backup_19.10.2026",
        "stash@{1}: On main: automated_backup_18.10.2026",
    ]
    assert repo.latest_stash_ref() == "stash@{0}"

    mock_run.return_value = ""
    assert repo.latest_stash_ref() is None
