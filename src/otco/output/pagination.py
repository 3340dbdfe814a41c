"""Pagination metadata for fetched record sets."""

from __future__ import annotations

from typing import Optional


def build_pagination(
    pages: int,
    record_count: int,
    truncated: bool,
    page_cap: Optional[int] = None,
    rate_remaining: Optional[int] = None,
) -> dict:
    """Build pagination metadata for a completed fetch."""
    return {
        "pages": pages,
        "record_count": record_count,
        "page_cap": page_cap,
        "truncated": truncated,
        "has_more": truncated,
        "rate_remaining": rate_remaining,
    }


def truncation_notice(pagination: dict) -> Optional[str]:
    """Human-readable warning when a page cap cut the results short."""
    if not pagination.get("truncated"):
        return None
    pages = pagination.get("pages", 0)
    return (
        f"Results truncated after {pages} page(s) "
        f"({pagination.get('record_count', 0)} records); pass --all to fetch everything."
    )
