"""
Upstream market data feeds.

- The Odds API: head-to-head odds from dozens of bookmakers
- CachedMarketFetcher: read-through cache in front of it
"""

from arbfinder.feeds.odds_api import OddsAPIClient, parse_event, parse_events
from arbfinder.feeds.cached import CachedMarketFetcher

__all__ = [
    "OddsAPIClient",
    "CachedMarketFetcher",
    "parse_event",
    "parse_events",
]
