"""
Moneyline Arbitrage Finder.

Finds risk-free arbitrage across bookmakers on head-to-head (moneyline)
markets and sizes a bankroll across the outcomes.

Layout:
- feeds/: The Odds API client and the cache-backed market fetcher
- cache/: Redis connection handle (single node or cluster)
- engine/: Best-price selection and arbitrage stake allocation
- models/: Event, quote and opportunity schemas
- worker: Hourly cache warm-up for high-traffic markets
- service: Per-sport opportunity scans exposed to callers
"""

__version__ = "0.1.0"
