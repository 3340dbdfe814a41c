"""Data models for otco."""

from .records import ProjectionSpec, Record, RecordSet
from .request import DEFAULT_PAGE_CAP, DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, RequestDescriptor

__all__ = [
    "ProjectionSpec",
    "Record",
    "RecordSet",
    "RequestDescriptor",
    "DEFAULT_PAGE_CAP",
    "DEFAULT_PAGE_SIZE",
    "MAX_PAGE_SIZE",
]
