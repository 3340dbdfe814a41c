"""Single-call HTTP transport for the GitHub REST API.

The transport performs exactly one request and hands back the status,
headers and raw body. It never retries and never interprets status codes:
HTTP error statuses come back as ordinary responses. Only network-level
failures (connection, timeout, TLS) raise, as ``TransportError``.
"""

from __future__ import annotations

import logging
import socket
import ssl
import urllib.error
import urllib.request
from dataclasses import dataclass, field
from typing import Mapping, Optional, Protocol

from . import __version__
from .errors import TransportError

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 30.0
API_VERSION = "2022-11-28"
ACCEPT = "application/vnd.github+json"
USER_AGENT = f"otco-cli/{__version__}"

FIXED_HEADERS = {
    "Accept": ACCEPT,
    "User-Agent": USER_AGENT,
    "X-GitHub-Api-Version": API_VERSION,
    "X-Api-Version": API_VERSION,
}


@dataclass
class HttpResponse:
    """Status, headers (lower-cased keys) and body bytes of one response."""

    status: int
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    def __post_init__(self) -> None:
        self.headers = {k.lower(): v for k, v in self.headers.items()}

    def header(self, name: str) -> Optional[str]:
        return self.headers.get(name.lower())

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")


class Transport(Protocol):
    """Anything that can perform one HTTP call."""

    def send(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: Optional[bytes] = None,
    ) -> HttpResponse: ...


def build_headers(token: Optional[str], extra: Optional[Mapping[str, str]] = None) -> dict[str, str]:
    """Fixed API headers plus the bearer credential, if any."""
    headers = dict(FIXED_HEADERS)
    if token:
        headers["Authorization"] = f"Bearer {token}"
    if extra:
        headers.update(extra)
    return headers


class UrllibTransport:
    """Transport backed by ``urllib.request`` with a fixed timeout."""

    def __init__(self, timeout: float = REQUEST_TIMEOUT):
        self.timeout = timeout

    def send(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: Optional[bytes] = None,
    ) -> HttpResponse:
        req = urllib.request.Request(url, data=body, headers=dict(headers), method=method)
        logger.debug("%s %s", method, url)

        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as response:
                return HttpResponse(
                    status=response.status,
                    headers=dict(response.headers.items()),
                    body=response.read(),
                )
        except urllib.error.HTTPError as e:
            # Non-2xx statuses are data for the paginator, not failures here
            try:
                payload = e.read()
            finally:
                e.close()
            return HttpResponse(
                status=e.code,
                headers=dict(e.headers.items()) if e.headers else {},
                body=payload,
            )
        except urllib.error.URLError as e:
            raise _classify(e.reason, url) from e
        except (socket.timeout, TimeoutError) as e:
            raise TransportError("timeout", f"no response within {self.timeout:g}s", url) from e
        except ssl.SSLError as e:
            raise TransportError("tls", str(e), url) from e
        except OSError as e:
            raise TransportError("connection", str(e), url) from e


def _classify(reason: object, url: str) -> TransportError:
    if isinstance(reason, ssl.SSLError):
        return TransportError("tls", str(reason), url)
    if isinstance(reason, (socket.timeout, TimeoutError)):
        return TransportError("timeout", "request timed out", url)
    return TransportError("connection", str(reason), url)
