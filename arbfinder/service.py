"""
Opportunity service: what callers (HTTP layer, CLI, bots) talk to.

Fetch a sport's odds through the cache, parse the events, and return
arbitrage opportunities sorted by rounded edge (best first).
"""

import asyncio
import math
from typing import Any, Optional, Sequence

import structlog

from config.settings import ArbSettings, OddsAPISettings
from arbfinder.engine.arbitrage import find_opportunities
from arbfinder.feeds.cached import CachedMarketFetcher
from arbfinder.feeds.odds_api import parse_events
from arbfinder.models.schemas import ArbScanResult, MultiSportScanResult

logger = structlog.get_logger()

# The price normalizer reads American odds only
SCAN_ODDS_FORMAT = "american"


def coerce_positive(value: Any, default: float) -> float:
    """
    Turn a user-supplied amount into a usable one.

    Missing, non-numeric, non-finite or zero values fall back to ``default``;
    everything is clamped to at least 1.
    """
    try:
        number = float(value)
    except (TypeError, ValueError):
        number = default
    if not math.isfinite(number) or number == 0:
        number = default
    return max(1.0, number)


class ArbService:
    """
    Sport-level arbitrage scans on top of the cached fetcher.

    Usage:
        service = ArbService(fetcher)
        result = await service.find_arbs("basketball_nba", bankroll=250)
        for arb in result.arbs:
            print(arb.get_display_name(), arb.rounded_edge_percent)
    """

    def __init__(
        self,
        fetcher: CachedMarketFetcher,
        odds_config: Optional[OddsAPISettings] = None,
        arb_config: Optional[ArbSettings] = None,
    ):
        self.fetcher = fetcher
        self.odds_config = odds_config or fetcher.client.config
        self.arb_config = arb_config or ArbSettings()
        self.logger = logger.bind(component="arb_service")

    # =========================================================================
    # Raw data
    # =========================================================================

    async def get_sports(self) -> Any:
        """Sports catalog (cached)."""
        return await self.fetcher.fetch("/sports")

    async def get_odds(
        self,
        sport_key: str,
        regions: Optional[str] = None,
        markets: Optional[str] = None,
        odds_format: Optional[str] = None,
        date_format: Optional[str] = None,
    ) -> Any:
        """Raw odds for one sport (cached)."""
        if not sport_key:
            raise ValueError("sport_key is required")

        params = {
            "regions": regions or self.odds_config.regions,
            "markets": markets or self.odds_config.markets,
            "oddsFormat": odds_format or self.odds_config.odds_format,
            "dateFormat": date_format or self.odds_config.date_format,
        }
        return await self.fetcher.fetch(f"/sports/{sport_key}/odds", params)

    # =========================================================================
    # Opportunities
    # =========================================================================

    async def find_arbs(
        self,
        sport_key: str,
        regions: Optional[str] = None,
        markets: Optional[str] = None,
        date_format: Optional[str] = None,
        bankroll: Any = None,
        rounding_unit: Any = None,
        require_positive_rounded: Optional[bool] = None,
    ) -> ArbScanResult:
        """
        Arbitrage opportunities for one sport.

        Raises:
            UpstreamFetchError: the sport's odds could not be fetched
            ValueError: sport_key is empty
        """
        bankroll = coerce_positive(bankroll, self.arb_config.bankroll)
        rounding_unit = coerce_positive(rounding_unit, self.arb_config.rounding_unit)
        if require_positive_rounded is None:
            require_positive_rounded = self.arb_config.require_positive_rounded

        raw = await self.get_odds(sport_key, regions, markets, SCAN_ODDS_FORMAT, date_format)
        events = parse_events(raw)

        arbs = find_opportunities(
            events,
            bankroll=bankroll,
            rounding_unit=rounding_unit,
            require_positive_rounded=require_positive_rounded,
        )

        self.logger.info(
            "Arb scan",
            sport=sport_key,
            events=len(events),
            arbs=len(arbs),
            best_edge=round(arbs[0].rounded_edge_percent, 3) if arbs else None,
        )

        return ArbScanResult(
            sport_key=sport_key,
            arbs=tuple(arbs),
            bankroll=bankroll,
            rounding_unit=rounding_unit,
            events_scanned=len(events),
        )

    async def find_arbs_many(
        self,
        sport_keys: Sequence[str],
        bankroll: Any = None,
        rounding_unit: Any = None,
        require_positive_rounded: Optional[bool] = None,
        **query: Any,
    ) -> MultiSportScanResult:
        """
        Scan several sports independently.

        A sport whose fetch fails contributes zero opportunities and is
        listed in ``failed_sports``; the others are unaffected.
        """
        bankroll = coerce_positive(bankroll, self.arb_config.bankroll)
        rounding_unit = coerce_positive(rounding_unit, self.arb_config.rounding_unit)

        outcomes = await asyncio.gather(
            *(
                self.find_arbs(
                    sport_key,
                    bankroll=bankroll,
                    rounding_unit=rounding_unit,
                    require_positive_rounded=require_positive_rounded,
                    **query,
                )
                for sport_key in sport_keys
            ),
            return_exceptions=True,
        )

        results = []
        failed = []
        for sport_key, outcome in zip(sport_keys, outcomes):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                failed.append(sport_key)
                self.logger.error("Sport scan failed", sport=sport_key, error=str(outcome))
                continue
            results.append(outcome)

        return MultiSportScanResult(
            results=tuple(results),
            failed_sports=tuple(failed),
            bankroll=bankroll,
            rounding_unit=rounding_unit,
        )

    def health(self) -> dict:
        """Liveness summary; never exposes the key itself."""
        return {
            "ok": True,
            "message": "Arb finder running",
            "has_api_key": bool(self.fetcher.client.api_key),
        }
