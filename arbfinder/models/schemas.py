"""
Moneyline arbitrage data models and schemas.

Defines the core data structures for:
- Events and bookmaker quotes (as read from the upstream odds API)
- Best available price per outcome
- Stake allocations and arbitrage opportunities

All models are immutable once built.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from arbfinder.utils.odds import decimal_to_probability, try_american_to_decimal


def _iso(value: Optional[datetime]) -> Optional[str]:
    """Render a datetime the way the upstream API does (UTC, trailing Z)."""
    if value is None:
        return None
    text = value.isoformat()
    return text.replace("+00:00", "Z")


@dataclass(frozen=True)
class Quote:
    """A single bookmaker price for one outcome (e.g. Team A wins)."""
    outcome_name: str
    bookmaker_id: str
    price_native: Any               # American odds as sent upstream: +150, -200
    observed_at: Optional[datetime] = None

    @property
    def price_decimal(self) -> Optional[float]:
        """Decimal price, or None if the native price is unusable."""
        return try_american_to_decimal(self.price_native)


@dataclass(frozen=True)
class BookmakerOdds:
    """One bookmaker's head-to-head quotes for an event."""
    bookmaker_id: str
    title: str = ""
    last_update: Optional[datetime] = None
    quotes: tuple[Quote, ...] = ()


@dataclass(frozen=True)
class Event:
    """
    A single sports event (game/match).

    Bookmakers keep the upstream array order; best-price ties are
    resolved by that order.
    """
    event_id: str
    sport_key: str
    sport_title: str
    home_team: str
    away_team: str
    commence_time: Optional[datetime] = None
    bookmakers: tuple[BookmakerOdds, ...] = ()

    @property
    def quotes(self) -> list[Quote]:
        """All quotes, flattened in bookmaker order."""
        return [q for book in self.bookmakers for q in book.quotes]

    def get_display_name(self) -> str:
        """Get human-readable event name."""
        return f"{self.away_team} @ {self.home_team}"


@dataclass(frozen=True)
class BestQuote:
    """Highest decimal price found for one outcome across all bookmakers."""
    outcome_name: str
    price_decimal: float
    bookmaker_id: str
    source_quote_time: Optional[datetime] = None
    price_native: Any = None

    @property
    def implied_probability(self) -> float:
        return decimal_to_probability(self.price_decimal)

    def to_dict(self) -> dict:
        return {
            "name": self.outcome_name,
            "price_american": self.price_native,
            "price_decimal": self.price_decimal,
            "implied_probability": self.implied_probability,
            "bookmaker": self.bookmaker_id,
            "last_update": _iso(self.source_quote_time),
        }


@dataclass(frozen=True)
class StakeAllocation:
    """Amount to stake on one outcome."""
    outcome_name: str
    stake_amount: float

    def to_dict(self) -> dict:
        return {"name": self.outcome_name, "stake": self.stake_amount}


@dataclass(frozen=True)
class ArbitrageOpportunity:
    """
    A risk-free combination of bets on one event.

    Exact figures assume stakes can be any real amount; rounded figures use
    stakes snapped to ``rounding_unit`` and report the worst-case outcome.
    """
    event_id: str
    sport_key: str
    sport_title: str
    commence_time: Optional[datetime]
    home_team: str
    away_team: str

    best_quotes: tuple[BestQuote, ...]
    sum_inverse_price: float
    edge_percent: float

    # Exact (unrounded) allocation
    bankroll: float
    exact_allocation: tuple[StakeAllocation, ...]
    guaranteed_payout: float

    # Rounded allocation
    rounding_unit: float
    rounded_allocation: tuple[StakeAllocation, ...]
    total_rounded_stake: float
    rounded_guaranteed_payout: float
    rounded_edge_percent: float
    rounded_profit: float

    # Not part of equality: two scans of the same market compare equal
    computed_at: Optional[datetime] = field(default=None, compare=False)

    @property
    def profit(self) -> float:
        """Theoretical profit on the exact allocation."""
        return self.guaranteed_payout - self.bankroll

    def get_display_name(self) -> str:
        return f"{self.away_team} @ {self.home_team}"

    def to_dict(self) -> dict:
        """JSON-ready representation for callers."""
        return {
            "id": self.event_id,
            "sport_key": self.sport_key,
            "sport_title": self.sport_title,
            "commence_time": _iso(self.commence_time),
            "home_team": self.home_team,
            "away_team": self.away_team,
            "outcomes": [q.to_dict() for q in self.best_quotes],
            "sum_inverse": self.sum_inverse_price,
            "edge_percent": self.edge_percent,
            "bankroll": self.bankroll,
            "stakes": [s.to_dict() for s in self.exact_allocation],
            "guaranteed_payout": self.guaranteed_payout,
            "profit": self.profit,
            "rounding_unit": self.rounding_unit,
            "stakes_rounded": [s.to_dict() for s in self.rounded_allocation],
            "total_stake_rounded": self.total_rounded_stake,
            "guaranteed_payout_rounded": self.rounded_guaranteed_payout,
            "edge_rounded_percent": self.rounded_edge_percent,
            "profit_rounded": self.rounded_profit,
        }


@dataclass(frozen=True)
class ArbScanResult:
    """Opportunities found for one sport, plus the parameters actually used."""
    sport_key: str
    arbs: tuple[ArbitrageOpportunity, ...]
    bankroll: float
    rounding_unit: float
    events_scanned: int = 0

    @property
    def count(self) -> int:
        return len(self.arbs)

    def to_dict(self) -> dict:
        return {
            "count": self.count,
            "arbs": [a.to_dict() for a in self.arbs],
            "rounding_unit": self.rounding_unit,
            "bankroll": self.bankroll,
        }


@dataclass(frozen=True)
class MultiSportScanResult:
    """Aggregate over several sports; failed sports contribute nothing."""
    results: tuple[ArbScanResult, ...]
    failed_sports: tuple[str, ...]
    bankroll: float
    rounding_unit: float

    @property
    def arbs(self) -> list[ArbitrageOpportunity]:
        merged = [a for r in self.results for a in r.arbs]
        merged.sort(key=lambda a: a.rounded_edge_percent, reverse=True)
        return merged

    @property
    def count(self) -> int:
        return sum(r.count for r in self.results)

    def to_dict(self) -> dict:
        return {
            "count": self.count,
            "arbs": [a.to_dict() for a in self.arbs],
            "failed_sports": list(self.failed_sports),
            "rounding_unit": self.rounding_unit,
            "bankroll": self.bankroll,
        }
