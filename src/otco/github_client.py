"""GitHub REST API client for otco."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, TYPE_CHECKING

from .models.request import DEFAULT_PAGE_CAP, DEFAULT_PAGE_SIZE, RequestDescriptor
from .paginator import FetchResult, Paginator, RetryPolicy, Sleeper
from .transport import Transport, UrllibTransport

if TYPE_CHECKING:
    from .config import OtcoContext

logger = logging.getLogger(__name__)

GITHUB_API_URL = "https://api.github.com"


class GitHubClient:
    """Client for the GitHub REST API.

    Holds the base URL, bearer token and pagination defaults; every list
    call goes through a fresh ``Paginator``.
    """

    def __init__(
        self,
        api_url: str = GITHUB_API_URL,
        token: Optional[str] = None,
        per_page: int = DEFAULT_PAGE_SIZE,
        max_pages: int = DEFAULT_PAGE_CAP,
        fetch_all: bool = False,
        transport: Optional[Transport] = None,
        policy: Optional[RetryPolicy] = None,
        sleeper: Optional[Sleeper] = None,
    ):
        self.api_url = api_url.rstrip("/")
        self.token = token
        self.per_page = per_page
        self.max_pages = max_pages
        self.fetch_all = fetch_all
        self.transport = transport or UrllibTransport()
        self.policy = policy
        self.sleeper = sleeper or Sleeper()

    @classmethod
    def from_context(
        cls,
        context: "OtcoContext",
        fetch_all: bool = False,
        transport: Optional[Transport] = None,
    ) -> "GitHubClient":
        """Create a client from resolved configuration."""
        return cls(
            api_url=context.api_url,
            token=context.token,
            per_page=context.per_page,
            max_pages=context.max_pages,
            fetch_all=fetch_all,
            transport=transport,
        )

    def descriptor(self, path: str, filters: Optional[Mapping[str, Any]] = None) -> RequestDescriptor:
        """Build a descriptor using this client's pagination defaults."""
        return RequestDescriptor.build(
            path,
            filters,
            page_size=self.per_page,
            fetch_all=self.fetch_all,
            page_cap=self.max_pages,
        )

    def fetch(self, descriptor: RequestDescriptor) -> FetchResult:
        """Run a paginated GET and return the accumulated records."""
        paginator = Paginator(
            self.transport,
            self.api_url,
            credential=self.token,
            policy=self.policy,
            sleeper=self.sleeper,
        )
        result = paginator.run(descriptor)
        logger.debug(
            "Fetched %d record(s) from %s in %d page(s) (truncated=%s)",
            len(result.records),
            descriptor.path,
            result.pages,
            result.truncated,
        )
        return result

    def get_object(self, path: str) -> FetchResult:
        """GET a single resource such as ``/user``, as a one-record result."""
        descriptor = RequestDescriptor(path=path, page_cap=1, single_object=True)
        return self.fetch(descriptor)

    def cancel(self) -> None:
        """Interrupt any backoff wait in progress."""
        self.sleeper.cancel()
