from .models import Partition, RepoSet


def diff_repos(remote: RepoSet, local: RepoSet) -> Partition:
    """Splits repository names into matching, missing locally and missing remotely.

    Matching entries keep the remote record, which carries the clone metadata.
    Each output mapping is built in sorted-name order so repeated runs over
    the same names produce identical partitions.

    Args:
        remote (RepoSet): Repositories listed by the hosting API.
        local (RepoSet): Repositories found under the local root.

    Returns:
        Partition: Three pairwise-disjoint sets covering every input name.
    """
    return Partition(
        matching={name: remote[name] for name in sorted(remote) if name in local},
        missing_locally={
            name: remote[name] for name in sorted(remote) if name not in local
        },
        missing_remotely={
            name: local[name] for name in sorted(local) if name not in remote
        },
    )
