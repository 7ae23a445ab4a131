"""Utility modules."""

from arbfinder.utils.logging import setup_logging, mask_secret
from arbfinder.utils.odds import american_to_decimal, try_american_to_decimal

__all__ = [
    "setup_logging",
    "mask_secret",
    "american_to_decimal",
    "try_american_to_decimal",
]
