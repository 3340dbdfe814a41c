"""Context and client resolution helpers for the CLI."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from ..config import OtcoContext, get_context_help_message, resolve_context
from ..github_client import GitHubClient
from ..transport import Transport


def resolve_context_info(context: OtcoContext) -> dict:
    """Return context info plus help text."""
    info = context.to_dict()
    info["host"] = context.host
    info["help"] = get_context_help_message(context)
    return info


def get_client(
    context: Optional[OtcoContext] = None,
    config_path: Optional[Path] = None,
    fetch_all: bool = False,
    transport: Optional[Transport] = None,
) -> tuple[GitHubClient, OtcoContext]:
    """Return a GitHub client + the context it was built from."""
    if context is None:
        context = resolve_context(config_path)
    return GitHubClient.from_context(context, fetch_all=fetch_all, transport=transport), context
