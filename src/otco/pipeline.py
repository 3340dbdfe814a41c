"""Fetch → project → render entry points used by the command layer."""

from __future__ import annotations

from typing import Any, Optional, Union

from .models.records import ProjectionSpec, RecordSet
from .models.request import RequestDescriptor
from .output.format import OutputFormat, Sink, render
from .output.projection import project
from .paginator import FetchResult, Paginator
from .transport import Transport, UrllibTransport


def fetch_all(
    descriptor: RequestDescriptor,
    credential: Optional[str],
    base_url: str,
    transport: Optional[Transport] = None,
    **paginator_kwargs: Any,
) -> FetchResult:
    """Fetch every page the descriptor allows.

    Returns the accumulated records and whether a page cap truncated them.
    Transport and HTTP failures propagate as typed ``OtcoError`` subclasses.
    """
    paginator = Paginator(
        transport or UrllibTransport(),
        base_url,
        credential=credential,
        **paginator_kwargs,
    )
    return paginator.run(descriptor)


def project_and_render(
    record_set: RecordSet,
    projection: Optional[ProjectionSpec],
    output_format: Union[str, OutputFormat],
    sink: Sink = None,
) -> RecordSet:
    """Apply ``projection`` and render the result; returns what was rendered."""
    projected = project(record_set, projection or ProjectionSpec())
    render(projected, output_format, sink)
    return projected
