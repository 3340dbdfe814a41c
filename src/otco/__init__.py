"""otco - GitHub data exploration CLI."""

__version__ = "0.1.0"
