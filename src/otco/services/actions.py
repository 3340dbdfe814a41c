"""GitHub Actions workflows and runs."""

from __future__ import annotations

from typing import Optional

from ..github_client import GitHubClient
from ..paginator import FetchResult
from .repos import split_repo


def list_workflows(client: GitHubClient, repo: str) -> FetchResult:
    owner, name = split_repo(repo)
    return client.fetch(client.descriptor(f"/repos/{owner}/{name}/actions/workflows"))


def list_workflow_runs(
    client: GitHubClient,
    repo: str,
    branch: Optional[str] = None,
    status: Optional[str] = None,
    conclusion: Optional[str] = None,
) -> FetchResult:
    """List workflow runs; the API wraps them in ``workflow_runs``."""
    owner, name = split_repo(repo)
    filters = {"branch": branch, "status": status, "conclusion": conclusion}
    return client.fetch(client.descriptor(f"/repos/{owner}/{name}/actions/runs", filters))
