"""
Cache warm-up worker.

Keeps the odds of the busiest sports in the cache so the first user request
after expiry doesn't pay for the upstream round-trip. Runs once at start,
then on every wall-clock interval boundary (hourly: 13:00, 14:00, ...).
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Optional, Sequence

import structlog

from arbfinder.feeds.cached import CachedMarketFetcher

logger = structlog.get_logger()

DEFAULT_PRIORITY_SPORTS = (
    "basketball_nba",
    "americanfootball_nfl",
    "soccer_epl",
    "baseball_mlb",
    "icehockey_nhl",
)


def seconds_until_next_run(now: float, interval_seconds: float) -> float:
    """Seconds from ``now`` (unix time) to the next multiple of the interval."""
    remainder = now % interval_seconds
    return interval_seconds - remainder


@dataclass
class WarmUpReport:
    """Outcome of one warm-up pass."""
    started_at: float
    active_sports: list[str] = field(default_factory=list)
    warmed: dict[str, int] = field(default_factory=dict)    # sport -> events cached
    failed: dict[str, str] = field(default_factory=dict)    # sport -> error
    catalog_error: Optional[str] = None
    finished_at: float = 0.0

    @property
    def attempted(self) -> list[str]:
        return list(self.warmed) + list(self.failed)


class WarmUpScheduler:
    """
    Periodically pre-populates the cache for priority sports.

    Usage:
        scheduler = WarmUpScheduler(fetcher)
        task = asyncio.create_task(scheduler.run_forever())
        ...
        scheduler.stop()
    """

    def __init__(
        self,
        fetcher: CachedMarketFetcher,
        priority_sports: Sequence[str] = DEFAULT_PRIORITY_SPORTS,
        interval_seconds: float = 3600.0,
        inter_call_delay: float = 1.0,
        regions: str = "us",
        markets: str = "h2h",
    ):
        self.fetcher = fetcher
        self.priority_sports = list(priority_sports)
        self.interval_seconds = interval_seconds
        self.inter_call_delay = inter_call_delay
        self.regions = regions
        self.markets = markets

        self.logger = logger.bind(component="worker")

        self._running = False
        self._stop_event: Optional[asyncio.Event] = None
        self._runs = 0
        self.last_report: Optional[WarmUpReport] = None

    async def warm_cache(self) -> WarmUpReport:
        """
        One warm-up pass.

        A failed catalog fetch ends the pass; a failed sport is logged and
        the remaining sports are still warmed.
        """
        report = WarmUpReport(started_at=time.time())
        self.logger.info("Starting cache warm-up", priority_sports=self.priority_sports)

        try:
            catalog = await self.fetcher.fetch("/sports")
        except Exception as e:
            report.catalog_error = str(e)
            report.finished_at = time.time()
            self.logger.error("Failed to fetch sports list", error=str(e))
            self.last_report = report
            return report

        active = [
            s for s in catalog or []
            if isinstance(s, dict) and s.get("key") in self.priority_sports
        ]
        report.active_sports = [s["key"] for s in active]
        self.logger.info("Priority sports active", count=len(active), sports=report.active_sports)

        for index, sport in enumerate(active):
            sport_key = sport["key"]
            self.logger.info("Warming cache", sport=sport_key, title=sport.get("title", ""))
            try:
                data = await self.fetcher.fetch(
                    f"/sports/{sport_key}/odds",
                    {"regions": self.regions, "markets": self.markets},
                )
                report.warmed[sport_key] = len(data) if isinstance(data, list) else 0
                self.logger.info("Warmed", sport=sport_key, events=report.warmed[sport_key])
            except Exception as e:
                report.failed[sport_key] = str(e)
                self.logger.error("Failed to warm", sport=sport_key, error=str(e))

            if index < len(active) - 1 and self.inter_call_delay > 0:
                await asyncio.sleep(self.inter_call_delay)

        report.finished_at = time.time()
        self._runs += 1
        self.last_report = report
        self.logger.info(
            "Cache warm-up complete",
            warmed=len(report.warmed),
            failed=len(report.failed),
            seconds=round(report.finished_at - report.started_at, 2),
        )
        return report

    async def run_forever(self) -> None:
        """Warm once now, then on every interval boundary until stop()."""
        self._running = True
        self._stop_event = asyncio.Event()
        self.logger.info("Warm-up worker started", interval_seconds=self.interval_seconds)

        while self._running:
            try:
                await self.warm_cache()
            except asyncio.CancelledError:
                break
            except Exception as e:
                self.logger.error("Warm-up pass error", error=str(e))

            delay = seconds_until_next_run(time.time(), self.interval_seconds)
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
            except asyncio.TimeoutError:
                continue

        self._running = False
        self.logger.info("Warm-up worker stopped", runs=self._runs)

    def stop(self) -> None:
        """Ask run_forever() to exit at the next wake-up."""
        self._running = False
        if self._stop_event:
            self._stop_event.set()

    def get_metrics(self) -> dict:
        report = self.last_report
        return {
            "running": self._running,
            "runs": self._runs,
            "last_warmed": len(report.warmed) if report else 0,
            "last_failed": len(report.failed) if report else 0,
        }
