"""Paginated, rate-limit-aware fetch loop.

The paginator drives a ``Transport`` across pages of one
``RequestDescriptor``. Each page is fetched by a small state machine:

    Fetching --2xx--------------------------> Done
    Fetching --403/429, 5xx, network error--> Backoff --> Fetching
    Fetching --other 4xx, retries used up---> Exhausted

Backoff sleeps go through a ``Sleeper`` so tests can run without real
time passing, and so a fetch can be cancelled while it waits.

Pages are fetched strictly one after another. The API's page links are
only known once the current page has arrived, so nothing is prefetched.
"""

from __future__ import annotations

import json
import logging
import random
import re
import threading
import time
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Iterator, Optional, Union
from urllib.parse import urlencode

from .errors import (
    FetchCancelled,
    OtcoError,
    PaginationOverrun,
    RateLimitExceeded,
    RequestRejected,
    TransportError,
    UpstreamUnavailable,
)
from .models.records import Record, RecordSet, as_record
from .models.request import RequestDescriptor
from .transport import HttpResponse, Transport, build_headers

logger = logging.getLogger(__name__)

_LINK_RE = re.compile(r'<([^>]*)>\s*((?:;\s*[^,;]+)*)')
_REL_RE = re.compile(r'rel\s*=\s*"?([^";]+)"?')


@dataclass(frozen=True)
class RetryPolicy:
    """Retry and safety limits for one fetch.

    ``max_*_retries`` count retries after the first attempt, so a page is
    requested at most ``1 + max_*_retries`` times for a given failure kind.
    """

    max_rate_limit_retries: int = 3
    max_server_retries: int = 3
    min_backoff: float = 1.0
    base_backoff: float = 1.0
    max_backoff: float = 60.0
    jitter: float = 1.0
    # Resets further out than this fail immediately instead of blocking
    max_rate_limit_wait: float = 900.0
    hard_ceiling: int = 1000


@dataclass
class RateState:
    """Rate-limit headers seen on the most recent response."""

    remaining: Optional[int] = None
    limit: Optional[int] = None
    reset_at: Optional[float] = None

    def update(self, response: HttpResponse) -> None:
        remaining = _int_header(response, "X-RateLimit-Remaining")
        if remaining is not None:
            self.remaining = remaining
        limit = _int_header(response, "X-RateLimit-Limit")
        if limit is not None:
            self.limit = limit
        reset = _int_header(response, "X-RateLimit-Reset")
        if reset is not None:
            self.reset_at = float(reset)

    def snapshot(self) -> "RateState":
        return replace(self)

    def to_dict(self) -> dict:
        return {"remaining": self.remaining, "limit": self.limit, "reset_at": self.reset_at}


@dataclass
class Page:
    """One decoded response page."""

    number: int
    records: list[Record]
    next_url: Optional[str] = None
    total_count: Optional[int] = None
    rate: RateState = field(default_factory=RateState)


@dataclass
class FetchResult:
    """Accumulated records of a fetch and whether a page cap cut it short."""

    records: RecordSet
    truncated: bool = False
    pages: int = 0
    rate: RateState = field(default_factory=RateState)


class Sleeper:
    """Interruptible sleep used for backoff waits."""

    def __init__(self) -> None:
        self._cancelled = threading.Event()

    def sleep(self, seconds: float) -> None:
        if seconds <= 0:
            self.check()
            return
        if self._cancelled.wait(seconds):
            raise FetchCancelled("fetch cancelled during backoff")

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def check(self) -> None:
        if self._cancelled.is_set():
            raise FetchCancelled("fetch cancelled")


# --- Page fetch states ---


@dataclass(frozen=True)
class Fetching:
    url: str
    rate_limit_retries: int = 0
    server_retries: int = 0

    @property
    def attempts(self) -> int:
        return 1 + self.rate_limit_retries + self.server_retries


@dataclass(frozen=True)
class Backoff:
    attempt: int
    wake_at: float
    reason: str
    resume: Fetching


@dataclass(frozen=True)
class Exhausted:
    error: OtcoError


@dataclass(frozen=True)
class Done:
    response: HttpResponse


PageState = Union[Fetching, Backoff, Exhausted, Done]


class Paginator:
    """Fetch every page of a descriptor, honouring rate limits and caps."""

    def __init__(
        self,
        transport: Transport,
        base_url: str,
        credential: Optional[str] = None,
        policy: Optional[RetryPolicy] = None,
        clock: Callable[[], float] = time.time,
        sleeper: Optional[Sleeper] = None,
        rng: Optional[random.Random] = None,
    ):
        self.transport = transport
        self.base_url = base_url.rstrip("/")
        self.credential = credential
        self.policy = policy or RetryPolicy()
        self.clock = clock
        self.sleeper = sleeper or Sleeper()
        self.rng = rng or random.Random()
        self.rate = RateState()
        self.requests_sent = 0

    def cancel(self) -> None:
        """Stop the fetch; an in-progress backoff wait returns immediately."""
        self.sleeper.cancel()

    def url_for(self, descriptor: RequestDescriptor, page: int = 1) -> str:
        query = urlencode(descriptor.query_for_page(page))
        url = f"{self.base_url}{descriptor.path}"
        return f"{url}?{query}" if query else url

    def run(self, descriptor: RequestDescriptor) -> FetchResult:
        """Fetch and accumulate all pages allowed by the descriptor."""
        records: list[Record] = []
        pages = 0
        last: Optional[Page] = None
        for page in self.iter_pages(descriptor):
            records.extend(page.records)
            pages += 1
            last = page

        truncated = last is not None and last.next_url is not None
        if truncated:
            logger.info(
                "Stopped %s after %d page(s); more results are available",
                descriptor.path,
                pages,
            )
        return FetchResult(
            records=RecordSet(records=tuple(records)),
            truncated=truncated,
            pages=pages,
            rate=self.rate.snapshot(),
        )

    def iter_pages(self, descriptor: RequestDescriptor) -> Iterator[Page]:
        """Yield pages lazily, in server order.

        The last page yielded still carries ``next_url`` when a page cap
        stopped the walk early.
        """
        url: Optional[str] = self.url_for(descriptor, 1)
        number = 1
        fetched = 0
        seen_so_far = 0

        while url is not None:
            self.sleeper.check()
            page = self._fetch_page(url, number, descriptor)
            fetched += 1
            seen_so_far += len(page.records)

            if page.total_count is not None and seen_so_far >= page.total_count:
                page.next_url = None

            logger.debug(
                "Page %d of %s: %d record(s), next=%s",
                number,
                descriptor.path,
                len(page.records),
                bool(page.next_url),
            )
            yield page

            if page.next_url is None:
                return
            if descriptor.fetch_all:
                if fetched >= self.policy.hard_ceiling:
                    raise PaginationOverrun(fetched, self.policy.hard_ceiling, descriptor.path)
            elif fetched >= descriptor.page_cap:
                return

            url = page.next_url
            number += 1

    # --- single page ---

    def _fetch_page(self, url: str, number: int, descriptor: RequestDescriptor) -> Page:
        state: PageState = Fetching(url)
        while True:
            if isinstance(state, Fetching):
                state = self._attempt(state, descriptor.path)
            elif isinstance(state, Backoff):
                delay = max(0.0, state.wake_at - self.clock())
                logger.warning(
                    "%s on %s; retrying in %.1fs (attempt %d)",
                    state.reason,
                    descriptor.path,
                    delay,
                    state.attempt,
                )
                self.sleeper.sleep(delay)
                state = state.resume
            elif isinstance(state, Exhausted):
                raise state.error
            else:
                return self._decode(state.response, number, descriptor)

    def _attempt(self, state: Fetching, endpoint: str) -> PageState:
        self.sleeper.check()
        self.requests_sent += 1
        try:
            response = self.transport.send("GET", state.url, build_headers(self.credential))
        except TransportError as e:
            if state.server_retries >= self.policy.max_server_retries:
                logger.error("Giving up on %s after %d attempt(s): %s", endpoint, state.attempts, e)
                return Exhausted(e)
            return self._server_backoff(state, f"{e.kind} error")

        self.rate.update(response)
        status = response.status

        if 200 <= status < 300:
            return Done(response)

        if status in (403, 429):
            reset_at = self._reset_at(response)
            if state.rate_limit_retries >= self.policy.max_rate_limit_retries:
                return Exhausted(RateLimitExceeded(reset_at, state.attempts, endpoint))
            now = self.clock()
            wait = self.policy.min_backoff
            if reset_at is not None:
                wait = max(reset_at - now, self.policy.min_backoff)
            if wait > self.policy.max_rate_limit_wait:
                return Exhausted(RateLimitExceeded(reset_at, state.attempts, endpoint))
            return Backoff(
                attempt=state.attempts,
                wake_at=now + wait,
                reason=f"rate limited (HTTP {status})",
                resume=replace(state, rate_limit_retries=state.rate_limit_retries + 1),
            )

        if status >= 500:
            if state.server_retries >= self.policy.max_server_retries:
                return Exhausted(UpstreamUnavailable(status, state.attempts, endpoint))
            return self._server_backoff(state, f"HTTP {status}")

        return Exhausted(RequestRejected(status, response.text, endpoint))

    def _server_backoff(self, state: Fetching, reason: str) -> Backoff:
        delay = min(
            self.policy.max_backoff,
            self.policy.base_backoff * (2 ** state.server_retries),
        ) + self.rng.uniform(0, self.policy.jitter)
        return Backoff(
            attempt=state.attempts,
            wake_at=self.clock() + delay,
            reason=reason,
            resume=replace(state, server_retries=state.server_retries + 1),
        )

    def _reset_at(self, response: HttpResponse) -> Optional[float]:
        retry_after = _int_header(response, "Retry-After")
        if retry_after is not None:
            return self.clock() + retry_after
        reset = _int_header(response, "X-RateLimit-Reset")
        if reset is not None:
            return float(reset)
        return self.rate.reset_at

    def _decode(self, response: HttpResponse, number: int, descriptor: RequestDescriptor) -> Page:
        items: list[Any] = []
        total_count = None
        single = False
        if response.body.strip():
            try:
                payload = json.loads(response.body)
            except ValueError as e:
                raise TransportError("decode", f"invalid JSON from {descriptor.path}: {e}") from e
            if descriptor.single_object:
                items, single = [payload], True
            else:
                items, total_count, single = _unwrap(payload)

        link = response.header("Link")
        if single or not items:
            next_url = None
        elif link is not None:
            next_url = parse_link_next(link)
        elif len(items) < descriptor.page_size:
            # A short page without a Link header is the last one
            next_url = None
        else:
            # No Link header: keep walking page numbers until an empty page
            next_url = self.url_for(descriptor, number + 1)

        return Page(
            number=number,
            records=[as_record(item) for item in items],
            next_url=next_url,
            total_count=total_count,
            rate=self.rate.snapshot(),
        )


def parse_link_next(header: Optional[str]) -> Optional[str]:
    """Return the ``rel="next"`` target of an RFC 5988 Link header."""
    if not header:
        return None
    for match in _LINK_RE.finditer(header):
        target, params = match.group(1), match.group(2)
        for rel in _REL_RE.findall(params):
            if "next" in rel.split():
                return target
    return None


def _unwrap(payload: Any) -> tuple[list[Any], Optional[int], bool]:
    """Split a decoded body into (items, total_count hint, is_single_object)."""
    if isinstance(payload, list):
        return payload, None, False
    if isinstance(payload, dict):
        total = payload.get("total_count")
        for value in payload.values():
            if isinstance(value, list):
                return value, total if isinstance(total, int) else None, False
        return [payload], None, True
    return [payload], None, True


def _int_header(response: HttpResponse, name: str) -> Optional[int]:
    raw = response.header(name)
    if raw is None:
        return None
    try:
        return int(float(raw))
    except ValueError:
        logger.warning("Non-numeric %s header: %r", name, raw)
        return None
