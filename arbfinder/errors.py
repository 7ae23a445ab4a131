"""Exception types raised by the arbitrage finder."""

from typing import Optional


class ArbFinderError(Exception):
    """Base class for all arbitrage finder errors."""


class InvalidPrice(ArbFinderError, ValueError):
    """A bookmaker quote cannot be converted to a decimal price.

    Recoverable: the quote is dropped and the rest of the event is used.
    """

    def __init__(self, price: object):
        self.price = price
        super().__init__(f"Invalid American odds: {price!r}")


class UpstreamFetchError(ArbFinderError):
    """The upstream odds API failed (transport error or non-2xx status)."""

    def __init__(self, path: str, message: str, status_code: Optional[int] = None):
        self.path = path
        self.status_code = status_code
        detail = f" (status {status_code})" if status_code is not None else ""
        super().__init__(f"{path}: {message}{detail}")


class CacheUnavailable(ArbFinderError):
    """The cache store could not be reached. Logged, never surfaced to callers."""


class ConfigurationError(ArbFinderError):
    """Required configuration (e.g. the API key) is missing."""
