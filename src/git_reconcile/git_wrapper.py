import logging
import subprocess
from pathlib import Path

from .constants import APP_NAME, STRATEGIES

logger = logging.getLogger(APP_NAME)


class GitCommandError(RuntimeError):
    """A git subprocess exited with a non-zero status or timed out.

    Attributes:
        args_list (list[str]): The git arguments that were run (without 'git').
        returncode (int | None): The exit status, or None if the command timed out.
        stderr (str): The captured standard error output.
        timed_out (bool): Whether the command was killed after exceeding its timeout.
    """

    def __init__(
        self,
        args: list[str],
        returncode: int | None,
        stderr: str = "",
        timed_out: bool = False,
        timeout: float | None = None,
    ):
        self.args_list = args
        self.returncode = returncode
        self.stderr = stderr
        self.timed_out = timed_out
        command = " ".join(["git", *args])
        if timed_out:
            message = f"'{command}' timed out after {timeout}s"
        else:
            detail = stderr.strip() or f"exit status {returncode}"
            message = f"'{command}' failed: {detail}"
        super().__init__(message)


def run_git(
    args: list[str],
    cwd: Path,
    capture: bool = True,
    timeout: float | None = None,
) -> str:
    """Executes a git command in `cwd`.

    Args:
        args (list[str]): Arguments passed to git.
        cwd (Path): The working directory for the subprocess.
        capture (bool, optional): Whether to capture and return stdout. Defaults to True.
        timeout (float | None, optional): Seconds before the subprocess is killed.
                                          None or 0 waits forever.

    Returns:
        str: The stdout of the command (trailing whitespace stripped) if captured,
             otherwise an empty string.

    Raises:
        GitCommandError: If git exits non-zero or the timeout expires.
    """
    logger.debug(f"git {' '.join(args)} (cwd={cwd})")
    try:
        res = subprocess.run(
            ["git", *args],
            cwd=cwd,
            capture_output=True,
            text=True,
            check=True,
            timeout=timeout or None,
        )
    except subprocess.CalledProcessError as e:
        raise GitCommandError(args, e.returncode, e.stderr or "") from e
    except subprocess.TimeoutExpired as e:
        raise GitCommandError(args, None, timed_out=True, timeout=e.timeout) from e
    return res.stdout.rstrip() if capture else ""


def clone(url: str, dest: Path, timeout: float | None = None) -> None:
    """Clones `url` into `dest`. The parent of `dest` must exist."""
    run_git(["clone", url, str(dest)], cwd=dest.parent, capture=False, timeout=timeout)


class GitRepo:
    """A wrapper around the Git command-line interface for a specific working copy.

    Every method runs exactly one git subprocess and waits for it, so calls made
    through one instance are strictly sequential.

    Attributes:
        path (Path): The file system path to the repository root.
        timeout (float | None): Per-command timeout in seconds.
    """

    def __init__(self, path: Path, timeout: float | None = None):
        """Initializes the GitRepo instance.

        Args:
            path (Path): The path to the repository root directory.
            timeout (float | None, optional): Per-command timeout. Defaults to None.

        Raises:
            ValueError: If the specified path does not contain a .git entry.
        """
        self.path = path
        self.timeout = timeout
        if not (self.path / ".git").exists():
            raise ValueError(f"Not a git repository: {self.path}")

    def _run(self, args: list[str], capture: bool = True) -> str:
        return run_git(args, cwd=self.path, capture=capture, timeout=self.timeout)

    def status_porcelain(self) -> list[str]:
        """Returns the lines of `git status --porcelain`.

        An empty list means the working tree is clean.
        """
        output = self._run(["status", "--porcelain"])
        return [line for line in output.splitlines() if line.strip()]

    def pull(self, strategy: str) -> None:
        """Pulls the upstream of the current branch.

        Args:
            strategy (str): 'rebase' or 'merge'.

        Raises:
            ValueError: If the strategy is unknown.
        """
        try:
            flag = STRATEGIES[strategy]
        except KeyError:
            raise ValueError(f"Unknown integration strategy '{strategy}'") from None
        self._run(["pull", flag], capture=False)

    def stash_push(self, message: str) -> None:
        """Stashes all changes, untracked files included, under `message`.

        Untracked files count as changes in `status_porcelain`, so they must be
        stashed too for a non-empty status to always yield a stash entry.
        """
        self._run(["stash", "push", "--include-untracked", "-m", message], capture=False)

    def stash_pop(self) -> None:
        """Restores the most recent stash and drops it on success."""
        self._run(["stash", "pop"], capture=False)

    def stash_list(self) -> list[str]:
        """Returns the lines of `git stash list`, most recent first."""
        output = self._run(["stash", "list"])
        return output.splitlines() if output else []

    def latest_stash_ref(self) -> str | None:
        """Returns the reference of the most recent stash (e.g. 'stash@{0}').

        Returns:
            str | None: The reference, or None if the stash list is empty.
        """
        entries = self.stash_list()
        if not entries:
            return None
        return entries[0].split(":", 1)[0]

    def stash_apply(self, ref: str) -> None:
        """Applies a stash without removing it from the stash list."""
        self._run(["stash", "apply", ref], capture=False)
