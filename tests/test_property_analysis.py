from types import SimpleNamespace

import pytest

from dealscope.adapters.cache import TTLCache
from dealscope.adapters.market_client import MarketDataClient, MarketDataError
from dealscope.adapters.rate_limiter import TokenBucketRateLimiter
from dealscope.analysis.finance import InvalidFinancialInputError
from dealscope.domain.market import MarketData
from dealscope.services.property_analysis import analyze_listing


class StubMarketClient:
    def __init__(self, market=None, error=None):
        self.market = market
        self.error = error
        self.calls = []

    def get_market_data(self, zipcode):
        self.calls.append(zipcode)
        if self.error is not None:
            raise self.error
        return self.market


LISTING = {"address": "12 Elm St", "zipcode": "48201", "price": "$200,000", "rentEstimate": "$2,300"}


def test_listing_without_market_client():
    result = analyze_listing(LISTING)

    assert result.market is None
    assert result.analysis.inputs.purchase_price == 200_000
    assert result.analysis.inputs.monthly_rent == 2300
    assert result.warnings == []


def test_market_data_feeds_rent_and_appreciation():
    market = MarketData(zipcode="48201", median_rent=2100, appreciation_rate=5.0)
    stub = StubMarketClient(market=market)

    result = analyze_listing({**LISTING, "rentEstimate": None}, market_client=stub)

    assert stub.calls == ["48201"]
    assert result.market is market
    assert result.analysis.inputs.monthly_rent == 2100
    assert result.analysis.inputs.appreciation_rate == 5.0
    assert "rent estimated from market median" in result.warnings


def test_market_failure_is_not_fatal():
    stub = StubMarketClient(error=MarketDataError("upstream down"))
    result = analyze_listing(LISTING, market_client=stub)

    assert result.market is None
    assert any("market data unavailable" in w for w in result.warnings)


def test_negative_cash_flow_is_flagged():
    result = analyze_listing({**LISTING, "rentEstimate": "900"})
    assert any("no break-even" in w for w in result.warnings)


def test_missing_price_is_invalid():
    with pytest.raises(InvalidFinancialInputError):
        analyze_listing({"address": "nowhere", "zipcode": "48201"})


class _JsonSession:
    def __init__(self, payload):
        self.payload = payload

    def get(self, url, headers=None, params=None, timeout=None):
        return SimpleNamespace(status_code=200, headers={}, text="", json=lambda: self.payload)

    def close(self):
        pass


def test_malformed_upstream_payload_falls_back_to_defaults(clock):
    client = MarketDataClient(
        base_url="https://market.test/v1/",
        api_key="k",
        cache=TTLCache(sweep_interval_s=None, clock=clock),
        rate_limiter=TokenBucketRateLimiter(10, 1.0, clock=clock, sleep=clock.sleep),
        session=_JsonSession({"medianRent": "n/a"}),
    )

    result = analyze_listing(LISTING, market_client=client)

    assert result.market is None
    assert "market data unavailable for 48201" in result.warnings
    assert result.analysis.inputs.monthly_rent == 2300


@pytest.mark.parametrize("zipcode", ["  ", ""])
def test_blank_zipcode_skips_market_lookup(zipcode):
    stub = StubMarketClient(error=AssertionError("should not be called"))

    result = analyze_listing({**LISTING, "zipcode": zipcode}, market_client=stub)

    assert stub.calls == []
    assert result.market is None
    assert not any("market data" in w for w in result.warnings)


def test_zipcode_is_stripped_before_lookup():
    stub = StubMarketClient(market=MarketData(zipcode="48201", median_rent=2100))
    analyze_listing({**LISTING, "zipcode": " 48201 "}, market_client=stub)
    assert stub.calls == ["48201"]
