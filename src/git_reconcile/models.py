"""Value types shared by the adapters, the differencer and the workers."""

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum


@dataclass(frozen=True)
class RepoRecord:
    """A repository known to one side of the reconciliation.

    Attributes:
        name (str): The repository name; the unique key on both sides.
        remote_url (str | None): The URL to clone from. None for local records.
        default_branch (str | None): The remote default branch. None for local records.
    """

    name: str
    remote_url: str | None = None
    default_branch: str | None = None


RepoSet = dict[str, RepoRecord]
"""Mapping of repository name to its record."""


def repo_set(records: Iterable[RepoRecord]) -> RepoSet:
    """Builds a RepoSet keyed by record name.

    Raises:
        ValueError: If two records share a name.
    """
    result: RepoSet = {}
    for record in records:
        if record.name in result:
            raise ValueError(f"Duplicate repository name: {record.name}")
        result[record.name] = record
    return result


@dataclass(frozen=True)
class Partition:
    """The three-way split of repository names computed for one run.

    Attributes:
        matching (RepoSet): Present on both sides (records from the remote set).
        missing_locally (RepoSet): Present only remotely.
        missing_remotely (RepoSet): Present only locally.
    """

    matching: RepoSet = field(default_factory=dict)
    missing_locally: RepoSet = field(default_factory=dict)
    missing_remotely: RepoSet = field(default_factory=dict)

    def names(self) -> set[str]:
        """Returns every repository name covered by the partition."""
        return (
            set(self.matching) | set(self.missing_locally) | set(self.missing_remotely)
        )


class OutcomeKind(Enum):
    CLONED = "cloned"
    PULLED_CLEAN = "pulled"
    PULLED_WITH_STASH_RESTORED = "pulled, stash restored"
    PULLED_WITH_STASH_CONFLICT = "pulled, stash conflict"
    FAILED = "failed"


@dataclass(frozen=True)
class SyncOutcome:
    """The reported result of cloning or syncing a single repository.

    Attributes:
        name (str): The repository name.
        kind (OutcomeKind): What happened.
        stash_ref (str | None): The preserved stash reference on a stash conflict.
        cause (str | None): The failure description when `kind` is FAILED.
    """

    name: str
    kind: OutcomeKind
    stash_ref: str | None = None
    cause: str | None = None

    @classmethod
    def cloned(cls, name: str) -> "SyncOutcome":
        return cls(name, OutcomeKind.CLONED)

    @classmethod
    def pulled_clean(cls, name: str) -> "SyncOutcome":
        return cls(name, OutcomeKind.PULLED_CLEAN)

    @classmethod
    def stash_restored(cls, name: str) -> "SyncOutcome":
        return cls(name, OutcomeKind.PULLED_WITH_STASH_RESTORED)

    @classmethod
    def stash_conflict(cls, name: str, stash_ref: str) -> "SyncOutcome":
        return cls(name, OutcomeKind.PULLED_WITH_STASH_CONFLICT, stash_ref=stash_ref)

    @classmethod
    def failed(cls, name: str, cause: Exception | str) -> "SyncOutcome":
        return cls(name, OutcomeKind.FAILED, cause=str(cause))

    @property
    def ok(self) -> bool:
        return self.kind is not OutcomeKind.FAILED

    @property
    def needs_attention(self) -> bool:
        """True when the operator has to follow up manually."""
        return self.kind in (
            OutcomeKind.FAILED,
            OutcomeKind.PULLED_WITH_STASH_CONFLICT,
        )
