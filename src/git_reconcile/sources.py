"""Repository source adapters.

Each adapter turns one side of the reconciliation into a RepoSet: the remote
side from the hosting API, the local side from a directory listing.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import httpx

from .config import Config
from .constants import APP_NAME, GITHUB_API_URL, REPOS_PER_PAGE, USER_AGENT
from .errors import LocalListError, RemoteListError
from .models import RepoRecord, RepoSet, repo_set

logger = logging.getLogger(APP_NAME)


def _parse_repos(payload: object, url_field: str) -> list[RepoRecord]:
    if not isinstance(payload, list):
        raise ValueError(f"expected a JSON array, got {type(payload).__name__}")
    return [
        RepoRecord(
            name=item["name"],
            remote_url=item.get(url_field),
            default_branch=item.get("default_branch"),
        )
        for item in payload
    ]


def fetch_remote(
    account: str,
    *,
    api_url: str = GITHUB_API_URL,
    url_field: str = "git_url",
    timeout: float = 30,
    client: httpx.Client | None = None,
) -> RepoSet:
    """Lists every repository of `account` through the hosting API.

    Follows `Link: rel="next"` pagination until the last page.

    Args:
        account (str): The user whose repositories are listed.
        api_url (str, optional): Base URL of the API.
        url_field (str, optional): JSON field to use as the clone URL.
        timeout (float, optional): Per-request timeout in seconds.
        client (httpx.Client | None, optional): A client to reuse. One is created
                                                (and closed) when omitted.

    Returns:
        RepoSet: The remote repositories keyed by name.

    Raises:
        RemoteListError: On a non-success response, an unreadable body or a
                         transport failure.
    """
    url: str | None = f"{api_url.rstrip('/')}/users/{account}/repos"
    params: dict | None = {"per_page": REPOS_PER_PAGE}
    headers = {
        "Accept": "application/vnd.github+json",
        "User-Agent": USER_AGENT,
    }
    records: list[RepoRecord] = []

    owns_client = client is None
    http = client or httpx.Client(timeout=timeout)
    try:
        while url:
            try:
                response = http.get(url, params=params, headers=headers)
            except httpx.RequestError as e:
                raise RemoteListError(None, str(e) or type(e).__name__, e) from e

            if not response.is_success:
                raise RemoteListError(response.status_code, response.reason_phrase)

            try:
                records.extend(_parse_repos(response.json(), url_field))
            except (ValueError, KeyError, TypeError) as e:
                raise RemoteListError(
                    response.status_code, f"unreadable repository list ({e})", e
                ) from e

            # The next link already carries the query string.
            url = response.links.get("next", {}).get("url")
            params = None
    finally:
        if owns_client:
            http.close()

    # Pages can shift while being read; the later copy of a name wins.
    remote: RepoSet = {}
    for record in records:
        if record.name in remote:
            logger.debug(f"Duplicate remote repository '{record.name}' in listing.")
        remote[record.name] = record

    logger.info(f"Fetched {len(remote)} remote repositories for '{account}'.")
    return remote


def fetch_local(root: Path) -> RepoSet:
    """Lists the entries under `root`, treating each name as a repository.

    Non-repository entries are not filtered out.

    Raises:
        LocalListError: If `root` is missing, unreadable or not a directory.
    """
    try:
        names = sorted(entry.name for entry in root.iterdir())
    except OSError as e:
        raise LocalListError(root, e) from e

    logger.info(f"Found {len(names)} local entries in {root}.")
    return repo_set(RepoRecord(name) for name in names)


def fetch_both(
    config: Config, client: httpx.Client | None = None
) -> tuple[RepoSet, RepoSet]:
    """Fetches the remote and local sets concurrently.

    Both fetches always run to completion. A failure is re-raised unchanged,
    the remote one first when both fail.

    Returns:
        tuple[RepoSet, RepoSet]: (remote, local).
    """
    with ThreadPoolExecutor(max_workers=2) as executor:
        remote_future = executor.submit(
            fetch_remote,
            config.core.account,
            api_url=config.core.api_url,
            url_field=config.core.url_field,
            timeout=config.sync.http_timeout,
            client=client,
        )
        local_future = executor.submit(fetch_local, config.core.root_path)

        remote = remote_future.result()
        local = local_future.result()

    return remote, local
