"""
Finnhub API client with status classification

Requests are single-shot: rate limiting is handled by the caller through the
shared RateLimiter and failed requests are reported, not retried.
"""

from typing import Any, Dict, List, Optional
from urllib.parse import urljoin

import requests

from src.utils.core.credentials import require_api_key
from src.utils.core.logger import get_logger
from src.value_screener.config import ScreenerConfig, config as default_config

logger = get_logger(__name__, utility="value_screener")


class FinnhubAPIError(Exception):
    """Exception for Finnhub API errors with error classification"""

    AUTHENTICATION_ERRORS = (401, 403)
    RATE_LIMIT_ERRORS = (429,)

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_data: Optional[Any] = None,
        error_category: Optional[str] = None
    ) -> None:
        self.message: str = message
        self.status_code: Optional[int] = status_code
        self.response_data: Optional[Any] = response_data
        self.error_category: str = error_category or self._classify_error()
        super().__init__(self.message)

    def _classify_error(self) -> str:
        """Classify the error type based on status code"""
        if self.status_code:
            if self.status_code in self.AUTHENTICATION_ERRORS:
                return "authentication"
            elif self.status_code in self.RATE_LIMIT_ERRORS:
                return "rate_limited"
            elif self.status_code >= 500:
                return "server_error"
            elif self.status_code >= 400:
                return "client_error"
        return "unknown"

    def is_authentication_error(self) -> bool:
        return self.error_category == "authentication"


class FinnhubDataClient:
    """Thin client for the Finnhub REST endpoints used by the screener"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        settings: Optional[ScreenerConfig] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        """
        Initialize the Finnhub client

        Args:
            api_key: Finnhub API key (defaults to FINNHUB_API_KEY from config)
            settings: Configuration instance (defaults to the global config)
            session: Optional pre-built requests session

        Raises:
            CredentialValidationError: When no usable API key is available
        """
        self.settings: ScreenerConfig = settings or default_config
        self.api_key: str = require_api_key(
            api_key or self.settings.API_KEY, provider="finnhub", env_var="FINNHUB_API_KEY"
        )
        self.base_url: str = self.settings.BASE_URL.rstrip("/") + "/"
        self.session: requests.Session = session or requests.Session()
        self.session.headers.update(
            {
                "User-Agent": "value-screener/1.0",
                "Accept": "application/json",
                "X-Finnhub-Token": self.api_key,
            }
        )

    def _make_request(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        Make a single GET request and return the decoded JSON body

        Args:
            endpoint: API endpoint path relative to the base URL
            params: Query parameters

        Returns:
            JSON response data

        Raises:
            FinnhubAPIError: For HTTP and payload errors
            requests.RequestException: For network-level errors
        """
        url: str = urljoin(self.base_url, endpoint.lstrip("/"))
        logger.debug(f"Making request to {url} params={params}")

        response = self.session.get(url, params=params or {}, timeout=self.settings.REQUEST_TIMEOUT)

        if response.status_code == 200:
            try:
                return response.json()
            except ValueError as e:
                logger.error(f"Error parsing JSON response from {url}: {e}")
                raise FinnhubAPIError(
                    "Malformed JSON in response",
                    response.status_code,
                    error_category="client_error"
                ) from e

        elif response.status_code == 429:
            raise FinnhubAPIError("Rate limit exceeded", response.status_code)

        elif response.status_code == 401:
            raise FinnhubAPIError("Invalid API key", response.status_code)

        elif response.status_code == 403:
            raise FinnhubAPIError("Access forbidden - check subscription level", response.status_code)

        elif response.status_code >= 500:
            raise FinnhubAPIError(f"Server error {response.status_code}", response.status_code)

        try:
            error_data = response.json()
            error_msg = error_data.get("error", f"HTTP {response.status_code}")
        except (ValueError, AttributeError):
            error_msg = f"HTTP {response.status_code}"

        raise FinnhubAPIError(error_msg, response.status_code)

    def _get_object(self, endpoint: str, params: Dict[str, Any]) -> Dict[str, Any]:
        data = self._make_request(endpoint, params)
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise FinnhubAPIError(
                f"Unexpected payload type {type(data).__name__} from {endpoint}",
                200,
                data,
                error_category="client_error",
            )
        return data

    def get_company_profile(self, symbol: str) -> Dict[str, Any]:
        """Company profile (name, market capitalization...). Empty dict for unknown symbols."""
        return self._get_object("stock/profile2", {"symbol": symbol})

    def get_basic_financials(self, symbol: str) -> Dict[str, Any]:
        """Basic financials with ``metric=all``; the ratios live under the ``metric`` key"""
        return self._get_object("stock/metric", {"symbol": symbol, "metric": "all"})

    def get_quote(self, symbol: str) -> Dict[str, Any]:
        """Live quote; ``c`` is the current price"""
        return self._get_object("quote", {"symbol": symbol})

    def get_stock_symbols(self, exchange: str) -> List[Dict[str, Any]]:
        """All symbols listed on an exchange"""
        data = self._make_request("stock/symbol", {"exchange": exchange})
        if data is None:
            return []
        if not isinstance(data, list):
            raise FinnhubAPIError(
                f"Unexpected payload type {type(data).__name__} for symbol list",
                200,
                data,
                error_category="client_error",
            )
        logger.info(f"Fetched {len(data)} symbols for exchange {exchange}")
        return data

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "FinnhubDataClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
