"""Format-agnostic record model shared by the paginator, projector and renderers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Iterator, Optional

Record = dict[str, Any]

SORT_DESCENDING_PREFIX = "-"


@dataclass(frozen=True)
class RecordSet:
    """Ordered rows of JSON-like values.

    Records may be sparse. When ``pinned_fields`` is set (after a projection
    with an explicit field list) it is the column list; otherwise columns are
    the union of record keys in order of first appearance.
    """

    records: tuple[Record, ...] = ()
    pinned_fields: Optional[tuple[str, ...]] = None

    @classmethod
    def from_items(cls, items: Iterable[Any]) -> "RecordSet":
        """Wrap raw decoded JSON items; scalars become ``{"value": item}``."""
        return cls(records=tuple(as_record(item) for item in items))

    def fields(self) -> list[str]:
        if self.pinned_fields is not None:
            return list(self.pinned_fields)
        seen: dict[str, None] = {}
        for record in self.records:
            for key in record:
                seen.setdefault(key, None)
        return list(seen)

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[Record]:
        return iter(self.records)

    def to_list(self) -> list[Record]:
        """Plain list of plain dicts, e.g. for serialization."""
        return [dict(record) for record in self.records]


@dataclass(frozen=True)
class ProjectionSpec:
    """Field selection, sort and limit applied to a RecordSet.

    An empty ``fields`` tuple keeps every field. ``limit`` 0 means unlimited.
    """

    fields: tuple[str, ...] = ()
    sort_key: Optional[str] = None
    descending: bool = False
    limit: int = 0

    def __post_init__(self) -> None:
        if self.limit < 0:
            raise ValueError(f"limit must be non-negative, got {self.limit}")

    @classmethod
    def parse(
        cls,
        fields: Optional[str] = None,
        sort: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> "ProjectionSpec":
        """Parse CLI-style options: ``fields="a,b"``, ``sort="-a"``."""
        wanted = tuple(f.strip() for f in (fields or "").split(",") if f.strip())
        sort_key = None
        descending = False
        if sort and sort.strip():
            sort = sort.strip()
            descending = sort.startswith(SORT_DESCENDING_PREFIX)
            # Only one leading prefix marks direction; the rest is the key
            sort_key = (sort[len(SORT_DESCENDING_PREFIX):] if descending else sort).strip()
            if not sort_key:
                raise ValueError(f"sort key must not be empty, got {sort!r}")
        return cls(fields=wanted, sort_key=sort_key, descending=descending, limit=limit or 0)


def as_record(item: Any) -> Record:
    if isinstance(item, dict):
        return item
    return {"value": item}
