"""Field selection, sorting and limiting of record sets."""

from __future__ import annotations

import json
from typing import Any

from ..models.records import ProjectionSpec, Record, RecordSet


def project(record_set: RecordSet, spec: ProjectionSpec) -> RecordSet:
    """Return a new RecordSet with ``spec`` applied; the input is untouched.

    Order of operations is sort, then field selection, then limit. Sorting
    runs on the source records so the sort key does not have to be one of
    the selected fields.
    """
    records: list[Record] = list(record_set.records)

    if spec.sort_key:
        records = sort_records(records, spec.sort_key, spec.descending)

    if spec.fields:
        records = [{name: record.get(name) for name in spec.fields} for record in records]
        pinned = tuple(spec.fields)
    else:
        records = [dict(record) for record in records]
        pinned = record_set.pinned_fields

    if spec.limit:
        records = records[: spec.limit]

    return RecordSet(records=tuple(records), pinned_fields=pinned)


def sort_records(records: list[Record], key: str, descending: bool = False) -> list[Record]:
    """Stable sort by one field with nulls (and missing keys) always last."""
    present = [r for r in records if r.get(key) is not None]
    missing = [r for r in records if r.get(key) is None]
    # sorted() with reverse=True keeps equal keys in their original order
    present = sorted(present, key=lambda r: _sort_key(r[key]), reverse=descending)
    return present + missing


def _sort_key(value: Any) -> tuple:
    if isinstance(value, (bool, int, float)):
        return (0, value, "")
    if isinstance(value, str):
        return (1, 0, value)
    return (2, 0, json.dumps(value, sort_keys=True, default=str))
