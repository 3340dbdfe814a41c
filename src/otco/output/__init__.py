"""Projection and rendering of record sets for the CLI."""

from .format import OutputFormat, Renderer, get_renderer, open_sink, render
from .pagination import build_pagination, truncation_notice
from .projection import project

__all__ = [
    "OutputFormat",
    "Renderer",
    "get_renderer",
    "open_sink",
    "render",
    "build_pagination",
    "truncation_notice",
    "project",
]
