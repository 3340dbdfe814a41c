"""Single-resource lookups: current user and rate limits."""

from __future__ import annotations

from ..github_client import GitHubClient
from ..paginator import FetchResult


def current_user(client: GitHubClient) -> FetchResult:
    return client.get_object("/user")


def rate_limit(client: GitHubClient) -> FetchResult:
    return client.get_object("/rate_limit")
