"""Error types raised by a reconciliation run.

Only genuinely aborting conditions are modelled here. Expected, recoverable
results (such as a stash that could not be restored cleanly) are reported as
`SyncOutcome` values instead.
"""

from pathlib import Path


class ReconcileError(Exception):
    """Base class for every error surfaced to the caller of a run."""


class ConfigError(ReconcileError):
    """Raised when required configuration is missing or invalid."""


class RemoteListError(ReconcileError):
    """Raised when the hosting API cannot list the account's repositories.

    Attributes:
        status (int | None): The HTTP status code, or None for transport failures.
        status_text (str): The HTTP reason phrase or a transport error description.
    """

    def __init__(
        self, status: int | None, status_text: str, cause: Exception | None = None
    ):
        self.status = status
        self.status_text = status_text
        self.cause = cause
        if status is None:
            message = f"GitHub API request failed: {status_text}"
        else:
            message = f"GitHub API Response: {status} {status_text}"
        super().__init__(message)


class LocalListError(ReconcileError):
    """Raised when the local repository root cannot be read."""

    def __init__(self, path: Path, cause: Exception):
        self.path = path
        self.cause = cause
        super().__init__(f"Failed to list local repositories in '{path}': {cause}")


class GitOperationError(ReconcileError):
    """A git operation failed for a specific repository.

    Attributes:
        command (str): The logical operation that failed (e.g. 'clone', 'pull').
        repo (str): The repository name.
        cause (Exception): The underlying failure.
    """

    def __init__(self, command: str, repo: str, cause: Exception):
        self.command = command
        self.repo = repo
        self.cause = cause
        super().__init__(f"Git '{command}' failed for '{repo}': {cause}")


class CloneError(GitOperationError):
    """Raised when cloning a repository fails. Aborts the rest of the clone batch.

    Attributes:
        completed (list[SyncOutcome]): Clones that succeeded before the failure.
        report (ReconcileReport | None): The partial run report, attached by
            `reconcile()` so pull outcomes are not lost.
    """

    def __init__(self, repo: str, cause: Exception):
        super().__init__("clone", repo, cause)
        self.completed: list = []
        self.report = None


class SyncError(GitOperationError):
    """Raised when stashing or pulling a repository fails.

    Aborts the protocol for that repository only.
    """
