"""
Fetches one fundamentals record per symbol from Finnhub
"""

from typing import Any, Dict, List

from src.utils.core.logger import get_logger
from src.value_screener.finnhub.client import FinnhubAPIError, FinnhubDataClient
from src.value_screener.finnhub.data_models import (
    METRIC_FIELD_MAP,
    PROFILE_FIELD_MAP,
    QUOTE_FIELD_MAP,
    FundamentalsRecord,
    extract_metric,
)

logger = get_logger(__name__, utility="value_screener")


class FundamentalsFetcher:
    """
    Builds FundamentalsRecord objects from three provider queries:
    company profile, basic financials and live quote.

    The fetcher does no rate limiting of its own; callers acquire a permit
    from the shared RateLimiter before calling ``fetch``.
    """

    def __init__(self, client: FinnhubDataClient):
        self.client = client

    def fetch(self, symbol: str) -> FundamentalsRecord:
        """
        Fetch fundamentals for a single symbol

        Args:
            symbol: Display symbol, e.g. ``AAPL``

        Returns:
            The populated record

        Raises:
            FinnhubAPIError: Unknown symbol or provider error
            requests.RequestException: Network failure
        """
        profile = self.client.get_company_profile(symbol)
        if not profile:
            raise FinnhubAPIError(f"No company profile for {symbol}", 404, error_category="not_found")

        financials = self.client.get_basic_financials(symbol)
        quote = self.client.get_quote(symbol)

        metric = financials.get("metric")
        if not isinstance(metric, dict):
            metric = {}

        return self.build_record(symbol, profile, metric, quote)

    @staticmethod
    def build_record(
        symbol: str,
        profile: Dict[str, Any],
        metric: Dict[str, Any],
        quote: Dict[str, Any],
    ) -> FundamentalsRecord:
        """Map provider payloads to a record using the field tables"""
        values: Dict[str, Any] = {}
        missing: List[str] = []

        for source, field_map in (
            (metric, METRIC_FIELD_MAP),
            (profile, PROFILE_FIELD_MAP),
            (quote, QUOTE_FIELD_MAP),
        ):
            for field_name, key in field_map.items():
                value, present = extract_metric(source, key)
                values[field_name] = value
                if not present:
                    missing.append(field_name)

        if missing:
            logger.debug(f"{symbol}: {len(missing)} metrics missing, stored as sentinel: {missing}")

        name = profile.get("name")
        return FundamentalsRecord(
            symbol=symbol,
            company_name=name if isinstance(name, str) else "",
            missing_metrics=missing,
            **values,
        )
