"""Issue and pull request listings."""

from __future__ import annotations

from typing import Optional

from ..github_client import GitHubClient
from ..paginator import FetchResult
from .repos import split_repo


def list_issues(
    client: GitHubClient,
    repo: str,
    state: Optional[str] = None,
    labels: Optional[str] = None,
    assignee: Optional[str] = None,
    milestone: Optional[str] = None,
    since: Optional[str] = None,
) -> FetchResult:
    """List issues for ``owner/name``.

    Args:
        state: open, closed or all
        labels: Comma-separated label names
        assignee: Assignee login
        milestone: Milestone number, ``*`` or ``none``
        since: Only issues updated at or after this ISO 8601 time
    """
    owner, name = split_repo(repo)
    filters = {
        "state": state,
        "labels": labels,
        "assignee": assignee,
        "milestone": milestone,
        "since": since,
    }
    return client.fetch(client.descriptor(f"/repos/{owner}/{name}/issues", filters))


def list_pulls(
    client: GitHubClient,
    repo: str,
    state: Optional[str] = None,
    draft: Optional[bool] = None,
    base: Optional[str] = None,
) -> FetchResult:
    """List pull requests for ``owner/name``."""
    owner, name = split_repo(repo)
    filters = {"state": state, "draft": draft, "base": base}
    return client.fetch(client.descriptor(f"/repos/{owner}/{name}/pulls", filters))
