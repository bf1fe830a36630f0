"""
Services package.

Rate aggregation, the conversion pipeline and currency detection.
"""

from ticketfx.services.conversion import ConversionService
from ticketfx.services.currency_detection import detect_currency
from ticketfx.services.rate_aggregator import RateAggregator, build_rate_cache

__all__ = [
    "ConversionService",
    "RateAggregator",
    "build_rate_cache",
    "detect_currency",
]
