"""
Arbitrage Finder - Main Entry Point.

Runs the background side of the system:
1. Warm the odds cache for priority sports (at start, then hourly)
2. Optionally scan configured sports for arbitrage and log what it finds

Usage:
    python -m arbfinder.main

Environment Variables:
    ODDS_API_KEY                - Required: The Odds API key
    REDIS_URL / REDIS_HOST      - Cache store (default redis://localhost:6379)
    WORKER_ENABLED              - true|false (default: true)
    ARB_SCAN_SPORTS             - JSON list of sport keys to scan, e.g. '["basketball_nba"]'
    ARB_BANKROLL                - Bankroll used for stake sizing (default: 100)
    LOG_LEVEL                   - DEBUG|INFO|WARNING (default: INFO)
"""

import asyncio
import signal
import sys
from typing import Optional

import structlog

from config.settings import Settings, settings as default_settings
from arbfinder.cache.redis_client import RedisConnection
from arbfinder.errors import ConfigurationError
from arbfinder.feeds.cached import CachedMarketFetcher
from arbfinder.feeds.odds_api import OddsAPIClient
from arbfinder.service import ArbService
from arbfinder.utils.logging import mask_secret, setup_logging
from arbfinder.worker import WarmUpScheduler

logger = structlog.get_logger()


class ArbFinderApp:
    """Wires the client, cache, worker and service together."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or default_settings
        self.logger = logger.bind(component="app")

        if not self.settings.has_api_key:
            self.logger.error("ODDS_API_KEY environment variable required")
            raise ConfigurationError("Missing ODDS_API_KEY")

        self.client = OddsAPIClient(self.settings.odds_api)
        self.cache = RedisConnection(self.settings.redis)
        self.fetcher = CachedMarketFetcher(
            self.client,
            self.cache,
            ttl_seconds=self.settings.redis.ttl_seconds,
            key_prefix=self.settings.redis.key_prefix,
        )
        self.service = ArbService(
            self.fetcher,
            odds_config=self.settings.odds_api,
            arb_config=self.settings.arb,
        )
        self.scheduler = WarmUpScheduler(
            self.fetcher,
            priority_sports=self.settings.worker.priority_sports,
            interval_seconds=self.settings.worker.interval_seconds,
            inter_call_delay=self.settings.worker.inter_call_delay_seconds,
            regions=self.settings.worker.regions,
            markets=self.settings.worker.markets,
        )

        self._running = False

    async def start(self) -> None:
        """Start the worker and scan loops; returns when stopped."""
        self.logger.info(
            "Starting arbitrage finder",
            api_key=mask_secret(self.settings.odds_api.api_key),
            cluster=self.cache.cluster_mode,
            worker=self.settings.worker.enabled,
            scan_sports=self.settings.arb.scan_sports,
        )
        self._running = True
        await self.client.start()

        loops = []
        if self.settings.worker.enabled:
            loops.append(self.scheduler.run_forever())
        if self.settings.arb.scan_sports:
            loops.append(self._scan_loop())

        try:
            if loops:
                await asyncio.gather(*loops)
        except asyncio.CancelledError:
            self.logger.info("Cancelled")
        finally:
            await self.stop()

    async def stop(self) -> None:
        """Stop loops and release connections."""
        self._running = False
        self.scheduler.stop()
        await self.client.stop()
        await self.cache.close()
        self.logger.info(
            "Arbitrage finder stopped",
            odds_api=self.client.get_metrics(),
            cache=self.fetcher.get_metrics(),
        )

    def shutdown(self) -> None:
        """Trigger graceful shutdown."""
        self._running = False
        self.scheduler.stop()

    async def _scan_loop(self) -> None:
        """Periodically scan configured sports and log opportunities."""
        while self._running:
            try:
                result = await self.service.find_arbs_many(self.settings.arb.scan_sports)
                for arb in result.arbs:
                    self.logger.info(
                        "Arbitrage found",
                        sport=arb.sport_key,
                        event=arb.get_display_name(),
                        edge_pct=round(arb.edge_percent, 3),
                        rounded_edge_pct=round(arb.rounded_edge_percent, 3),
                        stakes={s.outcome_name: s.stake_amount for s in arb.rounded_allocation},
                        books={q.outcome_name: q.bookmaker_id for q in arb.best_quotes},
                    )
                if result.failed_sports:
                    self.logger.warning("Sports failed this scan", sports=list(result.failed_sports))
            except asyncio.CancelledError:
                break
            except Exception as e:
                self.logger.error("Scan loop error", error=str(e))

            # Sleep in short steps so shutdown is prompt
            waited = 0.0
            while self._running and waited < self.settings.arb.scan_interval_seconds:
                await asyncio.sleep(1.0)
                waited += 1.0


async def run(app: ArbFinderApp) -> None:
    """Run the app until SIGINT or SIGTERM."""
    loop = asyncio.get_running_loop()

    def signal_handler(sig: signal.Signals) -> None:
        logger.info("Shutdown requested", signal=sig.name)
        app.shutdown()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler, sig)

    try:
        await app.start()
    finally:
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(sig)


def main():
    """Main entry point."""
    setup_logging(default_settings.log_level, json_logs=not default_settings.debug)

    try:
        app = ArbFinderApp()
    except ConfigurationError as e:
        print(f"Configuration error: {e}")
        sys.exit(1)

    try:
        asyncio.run(run(app))
    except KeyboardInterrupt:
        print("Interrupted")


if __name__ == "__main__":
    main()
