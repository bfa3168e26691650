import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path

from . import git_wrapper
from .constants import APP_NAME
from .errors import CloneError
from .models import RepoRecord, RepoSet, SyncOutcome

logger = logging.getLogger(APP_NAME)


def clone_repo(record: RepoRecord, root: Path, timeout: float | None = None) -> SyncOutcome:
    """Clones one repository into `root / record.name`.

    Raises:
        CloneError: If the record has no clone URL or git fails.
    """
    if not record.remote_url:
        raise CloneError(record.name, ValueError("no clone URL available"))

    logger.info(f"Cloning {record.name}...")
    try:
        git_wrapper.clone(record.remote_url, root / record.name, timeout=timeout)
    except (git_wrapper.GitCommandError, OSError) as e:
        raise CloneError(record.name, e) from e

    logger.info(f"CLONED {record.name}")
    return SyncOutcome.cloned(record.name)


def clone_missing(
    missing: RepoSet,
    *,
    root: Path,
    timeout: float | None = None,
    workers: int = 1,
) -> list[SyncOutcome]:
    """Clones every repository that exists only on the remote side.

    The first failure is fatal to the batch: no further clones are started.
    With a worker pool, clones already running are allowed to finish and
    queued ones are cancelled.

    Args:
        missing (RepoSet): The missing-locally partition.
        root (Path): The local root to clone into.
        timeout (float | None, optional): Per-clone timeout in seconds.
        workers (int, optional): Parallel clones. 1 runs sequentially.

    Returns:
        list[SyncOutcome]: One CLONED outcome per repository, sorted by name.

    Raises:
        CloneError: Naming the first repository that failed.
    """
    records = [missing[name] for name in sorted(missing)]
    results: list[SyncOutcome] = []

    if workers <= 1 or len(records) <= 1:
        for record in records:
            try:
                results.append(clone_repo(record, root, timeout))
            except CloneError as e:
                e.completed = results
                raise
        return results

    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = {
            executor.submit(clone_repo, record, root, timeout): record
            for record in records
        }
        for future in as_completed(futures):
            try:
                results.append(future.result())
            except CloneError as e:
                executor.shutdown(wait=True, cancel_futures=True)
                # Clones already running at the failure have finished by now.
                e.completed = sorted(
                    (
                        f.result()
                        for f in futures
                        if not f.cancelled() and f.exception() is None
                    ),
                    key=lambda r: r.name,
                )
                raise

    results.sort(key=lambda r: r.name)
    return results
