"""Repository security alerts."""

from __future__ import annotations

from typing import Optional

from ..github_client import GitHubClient
from ..paginator import FetchResult
from .repos import split_repo


def list_dependabot_alerts(
    client: GitHubClient,
    repo: str,
    state: Optional[str] = None,
    severity: Optional[str] = None,
) -> FetchResult:
    owner, name = split_repo(repo)
    filters = {"state": state, "severity": severity}
    return client.fetch(client.descriptor(f"/repos/{owner}/{name}/dependabot/alerts", filters))


def list_code_scanning_alerts(
    client: GitHubClient,
    repo: str,
    state: Optional[str] = None,
    severity: Optional[str] = None,
) -> FetchResult:
    owner, name = split_repo(repo)
    filters = {"state": state, "severity": severity}
    return client.fetch(client.descriptor(f"/repos/{owner}/{name}/code-scanning/alerts", filters))


def list_secret_scanning_alerts(
    client: GitHubClient,
    repo: str,
    state: Optional[str] = None,
    secret_type: Optional[str] = None,
) -> FetchResult:
    owner, name = split_repo(repo)
    filters = {"state": state, "secret_type": secret_type}
    return client.fetch(client.descriptor(f"/repos/{owner}/{name}/secret-scanning/alerts", filters))
