"""Typed errors raised by the fetch engine, renderers and config layer."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Optional


class OtcoError(Exception):
    """Base class for every error the CLI knows how to report."""

    suggestions: list[str] = []


class ConfigError(OtcoError):
    """Raised when configuration or credentials are missing or invalid."""

    def __init__(self, message: str, suggestions: list[str] | None = None):
        super().__init__(message)
        self.suggestions = suggestions or []


class TransportError(OtcoError):
    """Network-level failure: connection refused, timeout or TLS."""

    def __init__(self, kind: str, message: str, url: Optional[str] = None):
        super().__init__(f"{kind} error: {message}")
        self.kind = kind
        self.message = message
        self.url = url


class RequestRejected(OtcoError):
    """Client error (401, 404, 422, ...). Retrying will not help."""

    def __init__(self, status: int, body: str, endpoint: str):
        super().__init__(f"{endpoint} rejected with HTTP {status}: {_excerpt(body)}")
        self.status = status
        self.body = body
        self.endpoint = endpoint

    @property
    def suggestions(self) -> list[str]:  # type: ignore[override]
        if self.status == 401:
            return [
                "Set: export GITHUB_TOKEN=ghp_xxx",
                "Or run: otco auth login",
            ]
        if self.status == 404:
            return ["Check the owner/repo spelling and that your token can see it."]
        return []


class RateLimitExceeded(OtcoError):
    """Secondary rate limit still in force after all retries."""

    def __init__(self, reset_at: Optional[float], attempts: int, endpoint: str):
        self.reset_at = reset_at
        self.attempts = attempts
        self.endpoint = endpoint
        when = "unknown"
        if reset_at is not None:
            when = datetime.fromtimestamp(reset_at, tz=timezone.utc).isoformat()
        super().__init__(
            f"Rate limit exceeded for {endpoint} after {attempts} attempt(s). Resets at {when}"
        )

    @property
    def suggestions(self) -> list[str]:  # type: ignore[override]
        if self.reset_at is None:
            return ["Retry later."]
        when = datetime.fromtimestamp(self.reset_at, tz=timezone.utc).strftime("%H:%M:%S UTC")
        return [f"Retry after {when}."]


class UpstreamUnavailable(OtcoError):
    """Server kept answering 5xx after all retries."""

    def __init__(self, status: int, attempts: int, endpoint: str):
        super().__init__(
            f"{endpoint} unavailable (HTTP {status}) after {attempts} attempt(s)"
        )
        self.status = status
        self.attempts = attempts
        self.endpoint = endpoint


class PaginationOverrun(OtcoError):
    """The hard page ceiling was reached before the server ran out of pages."""

    def __init__(self, pages: int, ceiling: int, endpoint: str):
        super().__init__(
            f"{endpoint} still had more pages after {pages} page(s) (ceiling {ceiling})"
        )
        self.pages = pages
        self.ceiling = ceiling
        self.endpoint = endpoint


class FetchCancelled(OtcoError):
    """The fetch was cancelled while waiting or between pages."""


class UnsupportedFormat(OtcoError):
    """Requested output format has no renderer."""

    def __init__(self, name: str, supported: tuple[str, ...] = ()):
        message = f"Unsupported output format: {name!r}"
        if supported:
            message += f" (choose from {', '.join(supported)})"
        super().__init__(message)
        self.name = name


class RenderIOError(OtcoError):
    """Writing rendered output to the sink failed."""

    def __init__(self, path: Optional[Path], cause: BaseException):
        target = str(path) if path else "output stream"
        super().__init__(f"Failed to write {target}: {cause}")
        self.path = path
        self.cause = cause


def _excerpt(body: str, limit: int = 200) -> str:
    body = (body or "").strip().replace("\n", " ")
    if len(body) > limit:
        return body[: limit - 3] + "..."
    return body
