"""End-to-end protocol runs against real git repositories."""

import datetime
from pathlib import Path

import pytest
from conftest import git, push_change, requires_git

from git_reconcile.cloner import clone_missing
from git_reconcile.errors import CloneError
from git_reconcile.models import OutcomeKind, RepoRecord, repo_set
from git_reconcile.syncer import sync_repo

pytestmark = requires_git

TODAY = datetime.date(2026, 10, 19)


@pytest.fixture
def local_root(tmp_path: Path, upstream: dict[str, Path]) -> Path:
    """Clones the upstream into a local root as 'project'."""
    root = tmp_path / "repos"
    root.mkdir()
    git(root, "clone", str(upstream["bare"]), "project")
    return root


def test_clean_copy_is_pulled(local_root: Path, upstream: dict[str, Path]) -> None:
    push_change(upstream["seed"], "file.txt", "two\n")

    outcome = sync_repo("project", local_root, "rebase")

    project = local_root / "project"
    assert outcome.kind is OutcomeKind.PULLED_CLEAN
    assert (project / "file.txt").read_text() == "two\n"
    assert git(project, "stash", "list") == ""


def test_dirty_copy_keeps_local_changes(
    local_root: Path, upstream: dict[str, Path]
) -> None:
    """Verifies that uncommitted work survives a pull and the stash is dropped."""
    project = local_root / "project"
    (project / "other.txt").write_text("local edit\n")
    (project / "scratch.txt").write_text("untracked\n")
    push_change(upstream["seed"], "file.txt", "two\n")

    outcome = sync_repo("project", local_root, "rebase", today=TODAY)

    assert outcome.kind is OutcomeKind.PULLED_WITH_STASH_RESTORED
    assert (project / "file.txt").read_text() == "two\n"
    assert (project / "other.txt").read_text() == "local edit\n"
    assert (project / "scratch.txt").read_text() == "untracked\n"
    assert "automated_backup_19.10.2026" not in git(project, "stash", "list")


def test_conflicting_copy_preserves_stash(
    local_root: Path, upstream: dict[str, Path]
) -> None:
    """Verifies that a conflicting restore keeps the stash entry and reports it."""
    project = local_root / "project"
    (project / "file.txt").write_text("local\n")
    push_change(upstream["seed"], "file.txt", "remote\n")

    outcome = sync_repo("project", local_root, "merge", today=TODAY)

    assert outcome.kind is OutcomeKind.PULLED_WITH_STASH_CONFLICT
    assert outcome.stash_ref == "stash@{0}"
    stash_entries = git(project, "stash", "list").splitlines()
    assert stash_entries
    assert stash_entries[0].startswith("stash@{0}:")
    assert "automated_backup_19.10.2026" in stash_entries[0]


def test_clone_missing_creates_working_copies(
    tmp_path: Path, upstream: dict[str, Path]
) -> None:
    root = tmp_path / "fresh"
    root.mkdir()
    missing = repo_set([RepoRecord("project", remote_url=str(upstream["bare"]))])

    outcomes = clone_missing(missing, root=root)

    assert [o.kind for o in outcomes] == [OutcomeKind.CLONED]
    assert (root / "project" / ".git").exists()
    assert (root / "project" / "file.txt").read_text() == "one\n"


def test_clone_missing_reports_bad_url(tmp_path: Path, git_env: None) -> None:
    root = tmp_path / "fresh"
    root.mkdir()
    missing = repo_set([RepoRecord("ghost", remote_url=str(tmp_path / "nowhere"))])

    with pytest.raises(CloneError, match="Git 'clone' failed for 'ghost'"):
        clone_missing(missing, root=root)
    assert not (root / "ghost").exists()
