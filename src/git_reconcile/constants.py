import os
from pathlib import Path

"""Global constants and configuration path definitions for Git Reconcile.

This module defines the filesystem layout (adhering to XDG standards where applicable),
application identifiers, and the defaults used when talking to GitHub and git.
"""

# --- Identity ---
APP_NAME = "git-reconcile"
"""str: The human-readable application name."""

USER_AGENT = "git-reconcile/0.1"
"""str: The User-Agent header sent to the hosting API."""

# --- Paths ---
_XDG_STATE = os.environ.get("XDG_STATE_HOME")
_BASE_STATE = Path(_XDG_STATE) if _XDG_STATE else Path.home() / ".local/state"

STATE_DIR = _BASE_STATE / "git-reconcile"
"""Path: The directory for runtime state data (logs)."""

LOG_FILE = STATE_DIR / "reconcile.log"
"""Path: The file path for the rotating run log."""

# --- Configuration Paths ---
_XDG_CONFIG = os.environ.get("XDG_CONFIG_HOME")
CONFIG_DIR: Path = (
    Path(_XDG_CONFIG) if _XDG_CONFIG else Path.home() / ".config"
) / "git-reconcile"
"""Path: The directory for user configuration files."""

CONFIG_FILE: Path = CONFIG_DIR / "config.toml"
"""Path: The main configuration file path."""

# --- Remote / Git Constants ---
GITHUB_API_URL = "https://api.github.com"
"""str: Base URL of the hosting API."""

REPOS_PER_PAGE = 100
"""int: Page size requested from the repository listing endpoint."""

URL_FIELDS = ("git_url", "clone_url", "ssh_url")
"""tuple[str, ...]: Repository JSON fields that may be used as the clone URL."""

STRATEGIES = {
    "rebase": "--rebase",
    "merge": "--no-rebase",
}
"""dict[str, str]: Integration strategy name mapped to its `git pull` flag."""

STASH_LABEL_PREFIX = "automated_backup_"
"""str: Prefix of the message given to stashes created before a pull."""
