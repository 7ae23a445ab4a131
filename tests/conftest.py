"""Shared fixtures: upstream payloads, cache store doubles, mock HTTP."""

import json
from typing import Callable, Optional

import httpx
import pytest

from config.settings import OddsAPISettings
from arbfinder.feeds.cached import CachedMarketFetcher
from arbfinder.feeds.odds_api import OddsAPIClient


class InMemoryStore:
    """Dict-backed cache store that records every call."""

    def __init__(self):
        self.data: dict[str, bytes] = {}
        self.gets: list[str] = []
        self.sets: list[tuple[str, int]] = []

    async def get(self, key):
        self.gets.append(key)
        return self.data.get(key)

    async def set(self, key, value, ex=None):
        self.sets.append((key, ex))
        self.data[key] = value
        return True


class FailingStore:
    """Cache store that is always unreachable."""

    def __init__(self):
        self.calls = 0

    async def get(self, key):
        self.calls += 1
        raise ConnectionError("cache down (get)")

    async def set(self, key, value, ex=None):
        self.calls += 1
        raise ConnectionError("cache down (set)")


def h2h_bookmaker(key: str, prices: dict, last_update: Optional[str] = "2025-01-01T10:00:00Z") -> dict:
    """Bookmaker payload with one h2h market: prices maps outcome -> American odds."""
    market = {
        "key": "h2h",
        "outcomes": [{"name": name, "price": price} for name, price in prices.items()],
    }
    if last_update:
        market["last_update"] = last_update
    return {"key": key, "title": key.title(), "last_update": last_update, "markets": [market]}


def event_payload(event_id: str = "evt_123", bookmakers: Optional[list] = None, **overrides) -> dict:
    data = {
        "id": event_id,
        "sport_key": "test_sport",
        "sport_title": "Test Sport",
        "commence_time": "2025-01-01T12:00:00Z",
        "home_team": "Team A",
        "away_team": "Team B",
        "bookmakers": bookmakers if bookmakers is not None else [],
    }
    data.update(overrides)
    return data


@pytest.fixture
def make_bookmaker() -> Callable[..., dict]:
    return h2h_bookmaker


@pytest.fixture
def make_event_payload() -> Callable[..., dict]:
    return event_payload


@pytest.fixture
def arb_event_payload() -> dict:
    """
    Bookie 1: Team A +150 (2.50); Bookie 2: Team B +110 (2.10).
    1/2.50 + 1/2.10 = 0.8762 < 1.
    """
    return event_payload(bookmakers=[
        h2h_bookmaker("bookie_1", {"Team A": 150, "Team B": -180}),
        h2h_bookmaker("bookie_2", {"Team A": 120, "Team B": 110}),
    ])


@pytest.fixture
def no_arb_event_payload() -> dict:
    """Both sides -110 (1.909): 1/1.909 * 2 > 1."""
    return event_payload(
        event_id="evt_vig",
        bookmakers=[h2h_bookmaker("bookie_bad", {"Team A": -110, "Team B": -110})],
    )


@pytest.fixture
def odds_settings() -> OddsAPISettings:
    return OddsAPISettings(api_key="test-key-12345678", base_url="https://odds.test/v4")


@pytest.fixture
def memory_store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def failing_store() -> FailingStore:
    return FailingStore()


class Upstream:
    """Route table for httpx.MockTransport; records requests."""

    def __init__(self):
        self.routes: dict[str, object] = {}
        self.requests: list[httpx.Request] = []

    def add(self, path_suffix: str, body=None, status: int = 200, exc: Optional[Exception] = None):
        self.routes[path_suffix] = (body, status, exc)

    def calls_to(self, path_suffix: str) -> int:
        return sum(1 for r in self.requests if r.url.path.endswith(path_suffix))

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        for suffix, (body, status, exc) in self.routes.items():
            if request.url.path.endswith(suffix):
                if exc is not None:
                    raise exc
                return httpx.Response(
                    status,
                    content=json.dumps(body).encode(),
                    headers={
                        "content-type": "application/json",
                        "x-requests-remaining": "480",
                        "x-requests-used": "20",
                    },
                )
        return httpx.Response(404, json={"message": "Unknown sport"})


@pytest.fixture
def upstream() -> Upstream:
    return Upstream()


@pytest.fixture
def odds_client(odds_settings, upstream) -> OddsAPIClient:
    return OddsAPIClient(odds_settings, transport=httpx.MockTransport(upstream.handler))


@pytest.fixture
def fetcher(odds_client, memory_store) -> CachedMarketFetcher:
    return CachedMarketFetcher(odds_client, memory_store)
