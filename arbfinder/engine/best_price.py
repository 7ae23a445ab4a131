"""
Best-price selection across bookmakers.

For each outcome of an event, keep the single highest decimal price on
offer. Ties keep the first quote seen (bookmaker array order); the payout
is identical either way.
"""

import structlog

from arbfinder.models.schemas import BestQuote, Event

logger = structlog.get_logger()


def select_best_quotes(event: Event) -> dict[str, BestQuote]:
    """
    Pick the best quote per outcome name.

    Quotes with unusable prices are skipped. A result with fewer than two
    outcomes means the market could not be fully priced; the allocator
    treats that as "no opportunity".
    """
    best: dict[str, BestQuote] = {}
    skipped = 0

    for book in event.bookmakers:
        for quote in book.quotes:
            price = quote.price_decimal
            if price is None:
                skipped += 1
                continue

            current = best.get(quote.outcome_name)
            if current is None or price > current.price_decimal:
                best[quote.outcome_name] = BestQuote(
                    outcome_name=quote.outcome_name,
                    price_decimal=price,
                    bookmaker_id=quote.bookmaker_id,
                    source_quote_time=quote.observed_at,
                    price_native=quote.price_native,
                )

    if skipped:
        logger.debug(
            "Dropped invalid quotes",
            event_id=event.event_id,
            skipped=skipped,
        )

    return best
