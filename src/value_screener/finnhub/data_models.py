"""
Data models for Finnhub symbols and fundamentals records

JSON keys use the provider-facing names (``displaySymbol``, ``PERatio``...)
so files written by earlier versions of the tool stay readable. Python code
uses the snake_case attribute names.
"""

import math
from typing import Any, Dict, List, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Value stored when the provider omits a metric or returns a non-numeric value
METRIC_SENTINEL: float = 0.0

# Bump when a provider key below changes; recorded in every pipeline stats snapshot
METRIC_FIELD_MAP_VERSION = "2024.1"

# record attribute -> key inside the /stock/metric "metric" object
METRIC_FIELD_MAP: Dict[str, str] = {
    "pe_ratio": "peBasicExclExtraTTM",
    "eps": "epsExclExtraItemsTTM",
    "revenue_per_share": "revenuePerShareTTM",
    "profit_margin": "netProfitMarginTTM",
    "roe": "roeTTM",
    "roa": "roaTTM",
    "debt_to_equity": "totalDebt/totalEquityQuarterly",
    "dividend_yield": "currentDividendYieldTTM",
    "beta": "beta",
    "book_value_per_share": "bookValuePerShareQuarterly",
    "pb_ratio": "pbQuarterly",
}

# record attribute -> key inside the /stock/profile2 payload
PROFILE_FIELD_MAP: Dict[str, str] = {
    "market_cap": "marketCapitalization",
}

# record attribute -> key inside the /quote payload
QUOTE_FIELD_MAP: Dict[str, str] = {
    "current_price": "c",
}


def extract_metric(payload: Optional[Mapping[str, Any]], key: str) -> Tuple[float, bool]:
    """Return ``(value, present)`` for a numeric field of a provider payload.

    Missing keys, nulls, booleans, non-numeric and non-finite values give
    ``(METRIC_SENTINEL, False)``.
    """
    if not payload or key not in payload:
        return METRIC_SENTINEL, False

    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return METRIC_SENTINEL, False
    try:
        number = float(value)
    except OverflowError:
        return METRIC_SENTINEL, False
    if not math.isfinite(number):
        return METRIC_SENTINEL, False

    return number, True


class StockSymbol(BaseModel):
    """One entry of an exchange symbol list"""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    description: str = Field("", description="Company description")
    display_symbol: str = Field(..., alias="displaySymbol", min_length=1)
    market_id_code: str = Field("", alias="marketIdCode", description="Market identifier code (MIC)")

    @field_validator("display_symbol")
    @classmethod
    def validate_display_symbol(cls, v):
        if not v.strip():
            raise ValueError("displaySymbol cannot be blank")
        return v.strip()


class FundamentalsRecord(BaseModel):
    """
    Snapshot of a company's valuation and profitability metrics

    Records are immutable; the derived-ratio pass works on copies made with
    ``model_copy(update=...)``.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    symbol: str = Field(..., alias="Symbol", min_length=1)
    company_name: str = Field("", alias="CompanyName")
    pe_ratio: float = Field(METRIC_SENTINEL, alias="PERatio")
    eps: float = Field(METRIC_SENTINEL, alias="EPS")
    revenue_per_share: float = Field(METRIC_SENTINEL, alias="RevenuePerShare")
    profit_margin: float = Field(METRIC_SENTINEL, alias="ProfitMargin")
    roe: float = Field(METRIC_SENTINEL, alias="ROE")
    roa: float = Field(METRIC_SENTINEL, alias="ROA")
    debt_to_equity: float = Field(METRIC_SENTINEL, alias="DebtToEquity")
    market_cap: float = Field(METRIC_SENTINEL, alias="MarketCap")
    dividend_yield: float = Field(METRIC_SENTINEL, alias="DividendYield")
    beta: float = Field(METRIC_SENTINEL, alias="Beta")
    book_value_per_share: float = Field(METRIC_SENTINEL, alias="BookValuePerShare")
    current_price: float = Field(METRIC_SENTINEL, alias="CurrentPrice")
    pb_ratio: float = Field(METRIC_SENTINEL, alias="PBRatio")

    # Names of fields that fell back to METRIC_SENTINEL at fetch time; not persisted
    missing_metrics: List[str] = Field(default_factory=list, exclude=True)

    def to_json_dict(self) -> Dict[str, Any]:
        """Serialize using the persisted key names"""
        return self.model_dump(by_alias=True)

    @classmethod
    def from_json_dict(cls, data: Mapping[str, Any]) -> "FundamentalsRecord":
        return cls.model_validate(data)
