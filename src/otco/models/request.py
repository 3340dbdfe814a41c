"""Request descriptor: one logical paginated query."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

DEFAULT_PAGE_SIZE = 30
MAX_PAGE_SIZE = 100
DEFAULT_PAGE_CAP = 10


@dataclass(frozen=True)
class RequestDescriptor:
    """Describes a paginated GET against the API.

    ``query`` is a tuple of ``(key, value)`` pairs so multi-valued filters
    can repeat a key. ``page_cap`` is ignored when ``fetch_all`` is set.
    A ``single_object`` request is one unpaginated GET of a resource whose
    body is a single record.
    """

    path: str
    query: tuple[tuple[str, str], ...] = ()
    page_size: int = DEFAULT_PAGE_SIZE
    fetch_all: bool = False
    page_cap: int = DEFAULT_PAGE_CAP
    single_object: bool = False

    def __post_init__(self) -> None:
        if not self.path.startswith("/"):
            raise ValueError(f"path must start with '/': {self.path!r}")
        if not 1 <= self.page_size <= MAX_PAGE_SIZE:
            raise ValueError(f"page_size must be between 1 and {MAX_PAGE_SIZE}, got {self.page_size}")
        if self.page_cap < 1:
            raise ValueError(f"page_cap must be positive, got {self.page_cap}")

    @classmethod
    def build(
        cls,
        path: str,
        filters: Optional[Mapping[str, Any]] = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        fetch_all: bool = False,
        page_cap: int = DEFAULT_PAGE_CAP,
    ) -> "RequestDescriptor":
        """Build a descriptor from loosely typed filter values.

        ``None`` values are dropped, booleans become ``true``/``false`` and
        list values expand into repeated keys.
        """
        query: list[tuple[str, str]] = []
        for key, value in (filters or {}).items():
            if value is None:
                continue
            values = value if isinstance(value, (list, tuple)) else [value]
            for item in values:
                query.append((key, _stringify(item)))
        return cls(
            path=path,
            query=tuple(query),
            page_size=page_size,
            fetch_all=fetch_all,
            page_cap=page_cap,
        )

    def query_for_page(self, page: int) -> list[tuple[str, str]]:
        """Query pairs for a given page number, pagination params last."""
        if self.single_object:
            return list(self.query)
        return [*self.query, ("per_page", str(self.page_size)), ("page", str(page))]


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
