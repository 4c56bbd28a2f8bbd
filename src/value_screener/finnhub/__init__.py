"""
Finnhub Data Acquisition Module

Client, rate limiting and record mapping for Finnhub company fundamentals.
"""

from .client import FinnhubAPIError, FinnhubDataClient
from .data_models import (
    METRIC_FIELD_MAP,
    METRIC_FIELD_MAP_VERSION,
    METRIC_SENTINEL,
    FundamentalsRecord,
    StockSymbol,
)
from .fundamentals_fetcher import FundamentalsFetcher
from .rate_limiter import NoOpRateLimiter, RateLimiter, get_rate_limiter

__all__ = [
    "FinnhubAPIError",
    "FinnhubDataClient",
    "FundamentalsFetcher",
    "FundamentalsRecord",
    "StockSymbol",
    "METRIC_FIELD_MAP",
    "METRIC_FIELD_MAP_VERSION",
    "METRIC_SENTINEL",
    "RateLimiter",
    "NoOpRateLimiter",
    "get_rate_limiter",
]
