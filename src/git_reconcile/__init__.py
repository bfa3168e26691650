"""Git Reconcile: keep a local directory of repositories in step with a GitHub account.

This package lists the account's repositories and the local working copies,
clones the repositories missing locally, and pulls the ones present on both
sides while preserving uncommitted local work in a stash.
"""

from . import (
    cli,
    cloner,
    config,
    constants,
    differ,
    errors,
    git_wrapper,
    models,
    reconcile,
    sources,
    syncer,
)

__all__ = [
    "cli",
    "cloner",
    "config",
    "constants",
    "differ",
    "errors",
    "git_wrapper",
    "models",
    "reconcile",
    "sources",
    "syncer",
]
