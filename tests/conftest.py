"""Shared fakes for driving the fetch engine without network or real time."""

import json

import pytest

from otco.paginator import Sleeper
from otco.transport import HttpResponse


def json_response(payload, status=200, headers=None):
    """Build an HttpResponse carrying ``payload`` as JSON."""
    return HttpResponse(
        status=status,
        headers=dict(headers or {}),
        body=json.dumps(payload).encode("utf-8"),
    )


def next_link(url):
    return f'<{url}>; rel="next", <https://api.example.test/last>; rel="last"'


class FakeTransport:
    """Replays queued responses and records every request.

    A queued item may be an HttpResponse, an exception to raise, or a
    callable taking the URL and returning either of those.
    """

    def __init__(self, responses=()):
        self.responses = list(responses)
        self.calls = []

    def queue(self, *responses):
        self.responses.extend(responses)

    @property
    def urls(self):
        return [url for _, url, _ in self.calls]

    def send(self, method, url, headers, body=None):
        self.calls.append((method, url, dict(headers)))
        if not self.responses:
            raise AssertionError(f"unexpected request: {method} {url}")
        item = self.responses.pop(0)
        if callable(item):
            item = item(url)
        if isinstance(item, BaseException):
            raise item
        return item


class FakeClock:
    def __init__(self, now=1_700_000_000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class FakeSleeper(Sleeper):
    """Records requested sleeps and advances the fake clock instead of waiting."""

    def __init__(self, clock):
        super().__init__()
        self.clock = clock
        self.sleeps = []

    def sleep(self, seconds):
        self.check()
        self.sleeps.append(seconds)
        self.clock.advance(seconds)


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sleeper(clock):
    return FakeSleeper(clock)


@pytest.fixture
def user_config_dir(tmp_path, monkeypatch):
    """Point the user config dir (and credentials file) at a temp directory."""
    directory = tmp_path / "user-config"
    monkeypatch.setattr("otco.config.USER_CONFIG_DIR", directory)
    return directory


@pytest.fixture
def clean_env(monkeypatch):
    """Remove otco-related environment variables."""
    for name in ("GITHUB_TOKEN", "GITHUB_API_URL", "OTCO_OUTPUT", "OTCO_PER_PAGE"):
        monkeypatch.delenv(name, raising=False)
