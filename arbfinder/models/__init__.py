"""Arbitrage data models and schemas."""

from arbfinder.models.schemas import (
    Quote,
    BookmakerOdds,
    Event,
    BestQuote,
    StakeAllocation,
    ArbitrageOpportunity,
    ArbScanResult,
    MultiSportScanResult,
)

__all__ = [
    "Quote",
    "BookmakerOdds",
    "Event",
    "BestQuote",
    "StakeAllocation",
    "ArbitrageOpportunity",
    "ArbScanResult",
    "MultiSportScanResult",
]
