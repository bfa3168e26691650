"""Safe pull of working copies that may hold uncommitted changes.

Each repository runs a small state machine:

    INSPECT -> CLEAN -> DONE
    INSPECT -> DIRTY -> STASHED -> DONE                 (stash restored)
                               -> CONFLICT_PRESERVED    (stash kept, re-applied)
    any inspect/stash/pull failure -> ABORTED           (SyncError)

A stash that cannot be popped cleanly is not an error: the entry stays in the
stash list and its reference is reported for manual resolution.
"""

import datetime
import logging
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from pathlib import Path

from .constants import APP_NAME, STASH_LABEL_PREFIX
from .errors import SyncError
from .git_wrapper import GitCommandError, GitRepo
from .models import RepoSet, SyncOutcome

logger = logging.getLogger(APP_NAME)


class SyncState(Enum):
    INSPECT = "inspect"
    CLEAN = "clean"
    DIRTY = "dirty"
    STASHED = "stashed"
    DONE = "done"
    CONFLICT_PRESERVED = "conflict_preserved"
    ABORTED = "aborted"


def stash_label(today: datetime.date | None = None) -> str:
    """Builds the stash message for a run on `today` (e.g. automated_backup_19.10.2026).

    Runs on the same day share a label; the restore fallback always works on
    the most recent stash entry.
    """
    day = today or datetime.date.today()
    return f"{STASH_LABEL_PREFIX}{day.strftime('%d.%m.%Y')}"


class RepoSyncer:
    """Runs the stash / pull / restore protocol for a single working copy.

    All git commands for the repository are issued sequentially from `run`.

    Attributes:
        name (str): The repository name.
        path (Path): The working copy.
        strategy (str): 'rebase' or 'merge'.
        state (SyncState): The current protocol state.
    """

    def __init__(
        self,
        name: str,
        path: Path,
        strategy: str,
        timeout: float | None = None,
        today: datetime.date | None = None,
    ):
        self.name = name
        self.path = path
        self.strategy = strategy
        self.timeout = timeout
        self.today = today
        self.state = SyncState.INSPECT

    def _abort(self, cause: Exception) -> SyncError:
        self.state = SyncState.ABORTED
        return SyncError("pull", self.name, cause)

    def run(self) -> SyncOutcome:
        """Executes the protocol.

        Returns:
            SyncOutcome: PULLED_CLEAN, PULLED_WITH_STASH_RESTORED or
                         PULLED_WITH_STASH_CONFLICT.

        Raises:
            SyncError: If inspecting, stashing or pulling fails.
        """
        try:
            repo = GitRepo(self.path, timeout=self.timeout)
            changes = repo.status_porcelain()
            self.state = SyncState.DIRTY if changes else SyncState.CLEAN

            if self.state is SyncState.CLEAN:
                repo.pull(self.strategy)
                self.state = SyncState.DONE
                logger.info(f"PULLED {self.name}")
                return SyncOutcome.pulled_clean(self.name)

            label = stash_label(self.today)
            depth = len(repo.stash_list())
            repo.stash_push(label)
            if len(repo.stash_list()) == depth:
                # git exits 0 without creating an entry when nothing is stashable.
                logger.info(f"{self.name}: Nothing was stashed.")
                repo.pull(self.strategy)
                self.state = SyncState.DONE
                logger.info(f"PULLED {self.name}")
                return SyncOutcome.pulled_clean(self.name)
            self.state = SyncState.STASHED
            logger.info(f"STASHED {self.name}: {len(changes)} change(s) as '{label}'")

            repo.pull(self.strategy)
        except (GitCommandError, ValueError, OSError) as e:
            if self.state is SyncState.STASHED:
                logger.warning(
                    f"{self.name}: Local changes remain in the stash '{label}'."
                )
            raise self._abort(e) from e

        return self._restore(repo)

    def _restore(self, repo: GitRepo) -> SyncOutcome:
        try:
            repo.stash_pop()
        except GitCommandError as e:
            logger.debug(f"stash pop failed for {self.name}: {e}")
            return self._preserve(repo)

        self.state = SyncState.DONE
        logger.info(f"PULLED {self.name}: Local changes restored.")
        return SyncOutcome.stash_restored(self.name)

    def _preserve(self, repo: GitRepo) -> SyncOutcome:
        try:
            ref = repo.latest_stash_ref()
        except GitCommandError as e:
            raise self._abort(e) from e
        if ref is None:
            raise self._abort(
                RuntimeError("stash pop failed and no stash entry remains")
            )

        try:
            repo.stash_apply(ref)
        except GitCommandError as e:
            # The entry is still in the stash list; only the re-apply failed.
            logger.warning(f"Re-applying {ref} failed for {self.name}: {e}")

        self.state = SyncState.CONFLICT_PRESERVED
        logger.warning(
            f"Stash conflicts {self.name}. "
            f"Changes preserved in {ref}. Manual resolution required."
        )
        return SyncOutcome.stash_conflict(self.name, ref)


def sync_repo(
    name: str,
    root: Path,
    strategy: str,
    timeout: float | None = None,
    today: datetime.date | None = None,
) -> SyncOutcome:
    """Runs the protocol for `root / name`. See RepoSyncer.run."""
    return RepoSyncer(name, root / name, strategy, timeout=timeout, today=today).run()


def sync_matching(
    matching: RepoSet,
    *,
    root: Path,
    strategy: str,
    timeout: float | None = None,
    workers: int = 1,
    today: datetime.date | None = None,
) -> list[SyncOutcome]:
    """Pulls every repository present on both sides.

    A SyncError for one repository becomes a FAILED outcome and never stops
    the others.

    Args:
        matching (RepoSet): The matching partition.
        root (Path): The local root holding the working copies.
        strategy (str): 'rebase' or 'merge'.
        timeout (float | None, optional): Per-command timeout in seconds.
        workers (int, optional): Repositories processed in parallel. 1 runs
                                 sequentially.
        today (datetime.date | None, optional): Date used in stash labels.

    Returns:
        list[SyncOutcome]: One outcome per repository, sorted by name.
    """

    def attempt(name: str) -> SyncOutcome:
        try:
            return sync_repo(name, root, strategy, timeout=timeout, today=today)
        except SyncError as e:
            logger.error(str(e))
            return SyncOutcome.failed(name, e.cause)

    names = sorted(matching)
    if workers <= 1 or len(names) <= 1:
        return [attempt(name) for name in names]

    with ThreadPoolExecutor(max_workers=workers) as executor:
        results = list(executor.map(attempt, names))
    return sorted(results, key=lambda r: r.name)
