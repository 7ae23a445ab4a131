"""
Arbitrage detection engine.

1. Normalize every bookmaker quote to a decimal price
2. Keep the best price per outcome across bookmakers
3. Test Σ 1/price < 1 and size exact and rounded stakes
"""

from arbfinder.engine.best_price import select_best_quotes
from arbfinder.engine.arbitrage import compute_opportunity, find_opportunities, round_to_unit

__all__ = [
    "select_best_quotes",
    "compute_opportunity",
    "find_opportunities",
    "round_to_unit",
]
