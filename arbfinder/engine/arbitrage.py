"""
Arbitrage feasibility test and stake allocation.

Given the best price for every outcome of an event:

    sum_inv = Σ 1 / price

If sum_inv < 1, backing every outcome with stake_i = (B / price_i) / sum_inv
returns B / sum_inv whichever outcome wins - a guaranteed profit of
(1 / sum_inv - 1) on the bankroll B.

Bookmakers only accept practical amounts, so stakes are also rounded to a
unit (e.g. whole dollars). Rounding breaks the equal-payout property, so the
rounded figures report the worst-case outcome.
"""

import math
from datetime import datetime, timezone
from typing import Iterable, Mapping, Optional, Sequence

import structlog

from arbfinder.engine.best_price import select_best_quotes
from arbfinder.models.schemas import (
    ArbitrageOpportunity,
    BestQuote,
    Event,
    StakeAllocation,
)

logger = structlog.get_logger()


def round_to_unit(value: float, unit: float) -> float:
    """
    Round to the nearest multiple of ``unit``, halves away from zero.

    round_to_unit(45.5, 1) == 46, round_to_unit(-2.5, 1) == -3,
    round_to_unit(12.4, 5) == 10
    """
    steps = math.floor(abs(value) / unit + 0.5)
    return math.copysign(steps * unit, value)


def compute_opportunity(
    event: Event,
    best_quotes: Mapping[str, BestQuote] | Sequence[BestQuote],
    bankroll: float = 100.0,
    rounding_unit: float = 1.0,
    require_positive_rounded: bool = True,
) -> Optional[ArbitrageOpportunity]:
    """
    Test an event for arbitrage and size the stakes.

    Args:
        event: The event the quotes belong to
        best_quotes: Best quote per outcome (see select_best_quotes)
        bankroll: Total amount to spread across outcomes (positive, finite)
        rounding_unit: Stake granularity for the rounded plan (positive)
        require_positive_rounded: Drop opportunities whose edge does not
            survive rounding

    Returns:
        The opportunity, or None if the market has no (surviving) edge
    """
    quotes = list(best_quotes.values()) if isinstance(best_quotes, Mapping) else list(best_quotes)
    if len(quotes) < 2:
        return None

    sum_inv = sum(1 / q.price_decimal for q in quotes)
    if sum_inv >= 1:
        return None  # implied probabilities already cover 100%

    edge_percent = (1 / sum_inv - 1) * 100

    # Exact plan: stake * price is the same for every outcome
    exact = tuple(
        StakeAllocation(q.outcome_name, (bankroll / q.price_decimal) / sum_inv)
        for q in quotes
    )
    guaranteed_payout = bankroll / sum_inv

    # Rounded plan: worst-case payout decides the profit
    rounded = tuple(
        StakeAllocation(s.outcome_name, round_to_unit(s.stake_amount, rounding_unit))
        for s in exact
    )
    total_rounded = sum(s.stake_amount for s in rounded)
    rounded_payout = min(
        s.stake_amount * q.price_decimal for s, q in zip(rounded, quotes)
    )
    rounded_profit = rounded_payout - total_rounded
    if total_rounded > 0:
        rounded_edge_percent = rounded_profit / total_rounded * 100
    else:
        rounded_edge_percent = -math.inf

    if require_positive_rounded and rounded_edge_percent <= 0:
        logger.debug(
            "Edge lost to rounding",
            event_id=event.event_id,
            edge_percent=round(edge_percent, 4),
            rounded_edge_percent=rounded_edge_percent,
            rounding_unit=rounding_unit,
        )
        return None

    return ArbitrageOpportunity(
        event_id=event.event_id,
        sport_key=event.sport_key,
        sport_title=event.sport_title,
        commence_time=event.commence_time,
        home_team=event.home_team,
        away_team=event.away_team,
        best_quotes=tuple(quotes),
        sum_inverse_price=sum_inv,
        edge_percent=edge_percent,
        bankroll=bankroll,
        exact_allocation=exact,
        guaranteed_payout=guaranteed_payout,
        rounding_unit=rounding_unit,
        rounded_allocation=rounded,
        total_rounded_stake=total_rounded,
        rounded_guaranteed_payout=rounded_payout,
        rounded_edge_percent=rounded_edge_percent,
        rounded_profit=rounded_profit,
        computed_at=datetime.now(timezone.utc),
    )


def find_opportunities(
    events: Iterable[Event],
    bankroll: float = 100.0,
    rounding_unit: float = 1.0,
    require_positive_rounded: bool = True,
) -> list[ArbitrageOpportunity]:
    """
    Evaluate every event and return opportunities, best rounded edge first.

    A failure on one event is logged and skips that event only.
    """
    found: list[ArbitrageOpportunity] = []

    for event in events:
        try:
            best = select_best_quotes(event)
            opportunity = compute_opportunity(
                event,
                best,
                bankroll=bankroll,
                rounding_unit=rounding_unit,
                require_positive_rounded=require_positive_rounded,
            )
        except (ArithmeticError, AttributeError, TypeError, ValueError) as e:
            logger.warning(
                "Skipping event",
                event_id=getattr(event, "event_id", None),
                error=str(e),
            )
            continue

        if opportunity is not None:
            found.append(opportunity)

    found.sort(key=lambda o: o.rounded_edge_percent, reverse=True)
    return found
