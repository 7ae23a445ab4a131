"""
The Odds API client.

Aggregates head-to-head odds from dozens of sportsbooks.
Free tier: 500 requests/month, so every call goes through the cache
(see feeds/cached.py).

API Docs: https://the-odds-api.com/liveapi/guides/v4/

Key endpoints:
- /sports: List available sports
- /sports/{sport}/odds: Get odds for events
"""

import ssl
import time
from datetime import datetime, timezone
from typing import Any, Optional

import certifi
import httpx
import structlog

from config.settings import OddsAPISettings
from arbfinder.errors import UpstreamFetchError
from arbfinder.models.schemas import BookmakerOdds, Event, Quote

logger = structlog.get_logger()

H2H_MARKET = "h2h"


# =============================================================================
# Client
# =============================================================================

class OddsAPIClient:
    """
    HTTP client for The Odds API.

    Errors are raised (UpstreamFetchError), never retried here.

    Usage:
        async with OddsAPIClient(settings.odds_api) as client:
            sports = await client.get_json("/sports")
    """

    def __init__(
        self,
        config: OddsAPISettings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self.logger = logger.bind(feed="odds_api")
        self._transport = transport

        self._http_client: Optional[httpx.AsyncClient] = None

        # Quota tracking (from response headers)
        self._requests_remaining: Optional[int] = None
        self._requests_used: Optional[int] = None
        self._request_count: int = 0
        self._error_count: int = 0
        self._last_success_ms: int = 0

    @property
    def api_key(self) -> str:
        return self.config.api_key

    @property
    def base_url(self) -> str:
        return self.config.base_url.rstrip("/")

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> None:
        """Create the HTTP client."""
        if self._http_client:
            return

        if self._transport is not None:
            self._http_client = httpx.AsyncClient(
                transport=self._transport,
                timeout=self.config.timeout_seconds,
                headers={"Accept": "application/json"},
            )
        else:
            ssl_context = ssl.create_default_context(cafile=certifi.where())
            self._http_client = httpx.AsyncClient(
                verify=ssl_context,
                timeout=self.config.timeout_seconds,
                headers={"Accept": "application/json"},
            )

    async def stop(self) -> None:
        """Close the HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def __aenter__(self) -> "OddsAPIClient":
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()

    # =========================================================================
    # Requests
    # =========================================================================

    def url_for(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def request_params(self, params: Optional[dict] = None) -> dict:
        """Query params as sent upstream, credential included."""
        full_params = {"apiKey": self.api_key}
        if params:
            full_params.update(params)
        return full_params

    async def get_json(self, path: str, params: Optional[dict] = None) -> Any:
        """
        GET a path and decode the JSON body.

        Raises:
            UpstreamFetchError: transport failure, non-2xx status or bad JSON
        """
        if not self._http_client:
            await self.start()

        url = self.url_for(path)
        self._request_count += 1

        try:
            response = await self._http_client.get(url, params=self.request_params(params))
        except httpx.HTTPError as e:
            self._error_count += 1
            self.logger.error("Request failed", path=path, error=str(e))
            raise UpstreamFetchError(path, str(e) or type(e).__name__) from e

        self._track_quota(response)

        if not response.is_success:
            self._error_count += 1
            if response.status_code == 401:
                self.logger.error("Invalid API key", path=path)
            elif response.status_code == 429:
                self.logger.warning("Rate limited by API", path=path)
            else:
                self.logger.warning(
                    "API error",
                    path=path,
                    status=response.status_code,
                    body=response.text[:200],
                )
            raise UpstreamFetchError(path, response.text[:200], status_code=response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            self._error_count += 1
            raise UpstreamFetchError(path, f"invalid JSON: {e}", status_code=response.status_code) from e

        self._last_success_ms = int(time.time() * 1000)
        return data

    def _track_quota(self, response: httpx.Response) -> None:
        """Record usage from the x-requests-* headers."""
        remaining = response.headers.get("x-requests-remaining")
        used = response.headers.get("x-requests-used")
        try:
            if remaining is not None:
                self._requests_remaining = int(float(remaining))
            if used is not None:
                self._requests_used = int(float(used))
        except ValueError:
            return

        if remaining is not None or used is not None:
            self.logger.debug(
                "API quota",
                used=self._requests_used,
                remaining=self._requests_remaining,
            )

    # =========================================================================
    # Metrics
    # =========================================================================

    def get_metrics(self) -> dict:
        """Get client health metrics."""
        return {
            "name": "odds_api",
            "requests_sent": self._request_count,
            "requests_remaining": self._requests_remaining,
            "requests_used": self._requests_used,
            "error_count": self._error_count,
            "age_seconds": (int(time.time() * 1000) - self._last_success_ms) / 1000 if self._last_success_ms else None,
        }


# =============================================================================
# Parsing
# =============================================================================

def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO ("2025-01-01T12:00:00Z") or unix (dateFormat=unix) timestamp."""
    if not value:
        return None
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def parse_event(data: dict) -> Event:
    """
    Convert one upstream event into an Event.

    Only the head-to-head market is kept. A quote's timestamp falls back
    from the market's last_update to the bookmaker's, then to the event's
    commence time.

    Raises:
        ValueError, KeyError, TypeError: malformed event payload
    """
    if not isinstance(data, dict):
        raise TypeError(f"event must be an object, got {type(data).__name__}")

    commence_time = parse_timestamp(data.get("commence_time"))

    bookmakers = []
    for book_data in data.get("bookmakers") or []:
        bookmaker_id = book_data["key"]
        book_update = parse_timestamp(book_data.get("last_update"))

        h2h = next(
            (m for m in book_data.get("markets") or [] if m.get("key") == H2H_MARKET),
            None,
        )
        if h2h is None:
            continue

        observed_at = parse_timestamp(h2h.get("last_update")) or book_update or commence_time
        quotes = tuple(
            Quote(
                outcome_name=outcome["name"],
                bookmaker_id=bookmaker_id,
                price_native=outcome.get("price"),
                observed_at=observed_at,
            )
            for outcome in h2h.get("outcomes") or []
        )

        bookmakers.append(BookmakerOdds(
            bookmaker_id=bookmaker_id,
            title=book_data.get("title", ""),
            last_update=book_update,
            quotes=quotes,
        ))

    return Event(
        event_id=data["id"],
        sport_key=data.get("sport_key", ""),
        sport_title=data.get("sport_title", ""),
        home_team=data.get("home_team", ""),
        away_team=data.get("away_team", ""),
        commence_time=commence_time,
        bookmakers=tuple(bookmakers),
    )


def parse_events(data: Any) -> list[Event]:
    """Parse an event list; malformed events are logged and skipped."""
    if not isinstance(data, list):
        logger.warning("Expected an event list", got=type(data).__name__)
        return []

    events = []
    for raw in data:
        try:
            events.append(parse_event(raw))
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.warning(
                "Failed to parse event",
                event_id=raw.get("id") if isinstance(raw, dict) else None,
                error=repr(e),
            )
    return events
