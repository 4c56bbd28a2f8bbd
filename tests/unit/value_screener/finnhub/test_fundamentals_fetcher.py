import json

import pytest

from src.value_screener.finnhub.client import FinnhubAPIError
from src.value_screener.finnhub.data_models import METRIC_SENTINEL
from src.value_screener.finnhub.fundamentals_fetcher import FundamentalsFetcher
from src.value_screener.storage import JsonArrayStore
from tests._fixtures import SAMPLE_METRIC, SAMPLE_PROFILE, SAMPLE_QUOTE


@pytest.fixture
def fake_client(mocker):
    client = mocker.Mock()
    client.get_company_profile.return_value = dict(SAMPLE_PROFILE)
    client.get_basic_financials.return_value = {"metric": dict(SAMPLE_METRIC["metric"])}
    client.get_quote.return_value = dict(SAMPLE_QUOTE)
    return client


@pytest.mark.unit
def test_fetch_maps_all_fields(fake_client):
    record = FundamentalsFetcher(fake_client).fetch("AAPL")

    assert record.symbol == "AAPL"
    assert record.company_name == "Apple Inc"
    assert record.pe_ratio == 29.5
    assert record.eps == 6.13
    assert record.revenue_per_share == 24.3
    assert record.profit_margin == 25.3
    assert record.roe == 160.1
    assert record.roa == 27.5
    assert record.debt_to_equity == 1.8
    assert record.market_cap == 2950000.5
    assert record.dividend_yield == 0.52
    assert record.beta == 1.29
    assert record.book_value_per_share == 4.4
    assert record.current_price == 181.25
    assert record.pb_ratio == 41.2
    assert record.missing_metrics == []


@pytest.mark.unit
def test_each_symbol_costs_three_queries(fake_client):
    FundamentalsFetcher(fake_client).fetch("AAPL")

    fake_client.get_company_profile.assert_called_once_with("AAPL")
    fake_client.get_basic_financials.assert_called_once_with("AAPL")
    fake_client.get_quote.assert_called_once_with("AAPL")


@pytest.mark.unit
def test_missing_and_non_numeric_metrics_fall_back_to_sentinel(fake_client):
    metric = dict(SAMPLE_METRIC["metric"])
    del metric["roeTTM"]
    metric["beta"] = None
    metric["pbQuarterly"] = "n/a"
    fake_client.get_basic_financials.return_value = {"metric": metric}

    record = FundamentalsFetcher(fake_client).fetch("AAPL")

    assert record.roe == METRIC_SENTINEL
    assert record.beta == METRIC_SENTINEL
    assert record.pb_ratio == METRIC_SENTINEL
    assert sorted(record.missing_metrics) == ["beta", "pb_ratio", "roe"]
    # missing metric names are never persisted
    assert "missing_metrics" not in record.to_json_dict()


@pytest.mark.unit
def test_financials_without_metric_object(fake_client):
    fake_client.get_basic_financials.return_value = {}

    record = FundamentalsFetcher(fake_client).fetch("AAPL")

    assert record.pe_ratio == METRIC_SENTINEL
    assert record.current_price == 181.25
    assert len(record.missing_metrics) == 11


@pytest.mark.unit
def test_empty_profile_is_not_found(fake_client):
    fake_client.get_company_profile.return_value = {}

    with pytest.raises(FinnhubAPIError) as exc_info:
        FundamentalsFetcher(fake_client).fetch("ZZZZ")

    assert exc_info.value.error_category == "not_found"
    fake_client.get_basic_financials.assert_not_called()


@pytest.mark.unit
def test_provider_errors_propagate(fake_client):
    fake_client.get_quote.side_effect = FinnhubAPIError("Rate limit exceeded", 429)

    with pytest.raises(FinnhubAPIError) as exc_info:
        FundamentalsFetcher(fake_client).fetch("AAPL")

    assert exc_info.value.error_category == "rate_limited"


@pytest.mark.unit
def test_non_finite_provider_values_fall_back_to_sentinel(tmp_path):
    # requests decodes the NaN / Infinity literals into floats
    financials = json.loads('{"metric": {"roeTTM": NaN, "beta": Infinity, "roaTTM": 12.5}}')

    record = FundamentalsFetcher.build_record(
        "AAPL", dict(SAMPLE_PROFILE), financials["metric"], dict(SAMPLE_QUOTE)
    )

    assert record.roe == METRIC_SENTINEL
    assert record.beta == METRIC_SENTINEL
    assert record.roa == 12.5
    assert "roe" in record.missing_metrics and "beta" in record.missing_metrics

    store = JsonArrayStore(tmp_path / "fundamentals_US.json")
    store.append(record)
    text = store.path.read_text(encoding="utf-8")
    # strict parse: reject the non-standard constants
    json.loads(text, parse_constant=lambda c: pytest.fail(f"non-standard JSON constant {c}"))
