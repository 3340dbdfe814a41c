"""Shared service layer: one function per GitHub listing."""

from .context import resolve_context_info, get_client
from .repos import REPO_TYPES, split_repo, list_org_repos
from .issues import list_issues, list_pulls
from .actions import list_workflows, list_workflow_runs
from .security import (
    list_dependabot_alerts,
    list_code_scanning_alerts,
    list_secret_scanning_alerts,
)
from .meta import current_user, rate_limit

__all__ = [
    "resolve_context_info",
    "get_client",
    "REPO_TYPES",
    "split_repo",
    "list_org_repos",
    "list_issues",
    "list_pulls",
    "list_workflows",
    "list_workflow_runs",
    "list_dependabot_alerts",
    "list_code_scanning_alerts",
    "list_secret_scanning_alerts",
    "current_user",
    "rate_limit",
]
