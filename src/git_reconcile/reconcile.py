"""Entry point for a reconciliation run.

The run is driven entirely by the Config passed in; nothing is read from
process-wide state.
"""

import datetime
import logging
from dataclasses import dataclass, field

import httpx

from .cloner import clone_missing
from .config import Config
from .constants import APP_NAME
from .differ import diff_repos
from .errors import CloneError
from .models import OutcomeKind, Partition, SyncOutcome
from .sources import fetch_both
from .syncer import sync_matching

logger = logging.getLogger(APP_NAME)


@dataclass
class ReconcileReport:
    """What a run found and did.

    Attributes:
        partition (Partition): The computed three-way split.
        outcomes (list[SyncOutcome]): Pull outcomes followed by clone outcomes.
    """

    partition: Partition
    outcomes: list[SyncOutcome] = field(default_factory=list)

    def by_kind(self, kind: OutcomeKind) -> list[SyncOutcome]:
        return [o for o in self.outcomes if o.kind is kind]

    @property
    def failed(self) -> list[SyncOutcome]:
        return self.by_kind(OutcomeKind.FAILED)

    @property
    def conflicts(self) -> list[SyncOutcome]:
        return self.by_kind(OutcomeKind.PULLED_WITH_STASH_CONFLICT)


def plan(config: Config, client: httpx.Client | None = None) -> Partition:
    """Validates the configuration, fetches both sides and diffs them.

    Raises:
        ConfigError: If the configuration is incomplete.
        RemoteListError: If the remote listing fails.
        LocalListError: If the local listing fails.
    """
    config.validate()
    remote, local = fetch_both(config, client=client)
    partition = diff_repos(remote, local)
    logger.info(
        f"{len(partition.matching)} matching, "
        f"{len(partition.missing_locally)} missing locally, "
        f"{len(partition.missing_remotely)} missing remotely."
    )
    return partition


def reconcile(
    config: Config,
    *,
    clone: bool = True,
    pull: bool = True,
    client: httpx.Client | None = None,
    today: datetime.date | None = None,
) -> ReconcileReport:
    """Runs a full reconciliation: pull matching repositories, then clone missing ones.

    Pull failures are recorded per repository and never stop the run. A clone
    failure aborts the remaining clones and propagates with the partial report
    attached as `CloneError.report`.

    Args:
        config (Config): The run configuration.
        clone (bool, optional): Whether to clone missing repositories.
        pull (bool, optional): Whether to pull matching repositories.
        client (httpx.Client | None, optional): HTTP client for the remote listing.
        today (datetime.date | None, optional): Date used in stash labels.

    Returns:
        ReconcileReport: The partition and every outcome.

    Raises:
        ConfigError, RemoteListError, LocalListError, CloneError
    """
    partition = plan(config, client=client)
    report = ReconcileReport(partition)
    root = config.core.root_path
    timeout = config.sync.command_timeout or None

    if pull:
        report.outcomes.extend(
            sync_matching(
                partition.matching,
                root=root,
                strategy=config.core.strategy,
                timeout=timeout,
                workers=config.sync.workers,
                today=today,
            )
        )

    if clone:
        try:
            clone_outcomes = clone_missing(
                partition.missing_locally,
                root=root,
                timeout=timeout,
                workers=config.sync.workers,
            )
        except CloneError as e:
            report.outcomes.extend(e.completed)
            e.report = report
            raise
        report.outcomes.extend(clone_outcomes)

    return report
