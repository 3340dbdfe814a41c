"""Organization and repository listings."""

from __future__ import annotations

from typing import Optional

from ..github_client import GitHubClient
from ..paginator import FetchResult

REPO_TYPES = ("all", "public", "private", "forks", "sources", "member")


def split_repo(repo: str) -> tuple[str, str]:
    """Split ``owner/name`` into its parts."""
    owner, _, name = repo.partition("/")
    if not owner or not name or "/" in name:
        raise ValueError(f"expected <owner>/<repo>, got '{repo}'")
    return owner, name


def list_org_repos(client: GitHubClient, org: str, repo_type: Optional[str] = None) -> FetchResult:
    if repo_type is not None and repo_type not in REPO_TYPES:
        raise ValueError(f"repo type must be one of {', '.join(REPO_TYPES)}, got '{repo_type}'")
    return client.fetch(client.descriptor(f"/orgs/{org}/repos", {"type": repo_type}))
