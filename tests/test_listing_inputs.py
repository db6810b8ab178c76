import pytest

from dealscope.analysis.inputs import (
    ListingDefaults,
    ListingRecord,
    build_inputs_from_listing,
    parse_amount,
)
from dealscope.domain.market import MarketData


@pytest.fixture
def defaults():
    return ListingDefaults(
        down_payment_pct=20,
        interest_rate_pct=7,
        loan_term_years=30,
        property_tax_rate_pct=1.5,
        insurance_rate_pct=0.5,
        maintenance_rate_pct=5,
        vacancy_rate_pct=8,
        management_fee_pct=10,
        closing_cost_pct=3,
        appreciation_rate_pct=3,
        rent_to_price_rule_pct=1,
    )


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("$300,000", 300000.0),
        ("2,450/mo", 2450.0),
        (1500, 1500.0),
        ("Contact agent", None),
        (None, None),
        ("$1.2M", 1_200_000.0),
        ("450K", 450_000.0),
        ("$1.5 million", 1_500_000.0),
        ("2000 mo", 2000.0),
        ("3 bd", 3.0),
        ("$310,000 (was $325,000)", 310_000.0),
    ],
)
def test_parse_amount(raw, expected):
    if expected is None:
        assert parse_amount(raw) is None
    else:
        assert parse_amount(raw) == pytest.approx(expected)


def test_listing_price_with_magnitude_suffix():
    listing = ListingRecord.model_validate({"price": "$1.2M", "rentEstimate": "$9.5k/mo"})
    assert listing.price == pytest.approx(1_200_000)
    assert listing.rent_estimate == pytest.approx(9_500)


def test_listing_record_parses_scraped_strings():
    listing = ListingRecord.model_validate(
        {"address": "1 Main", "zipcode": "48201", "price": "$300,000", "rentEstimate": "$2,400/mo", "yearBuilt": "1978"}
    )
    assert listing.price == 300000.0
    assert listing.rent_estimate == 2400.0
    assert listing.year_built == 1978


def test_one_percent_rule_when_no_rent(defaults):
    listing = ListingRecord(price=200_000)
    inputs = build_inputs_from_listing(listing, defaults=defaults)

    assert inputs.monthly_rent == pytest.approx(2000.0)
    assert inputs.maintenance_cost == pytest.approx(100.0)
    assert inputs.insurance_cost == pytest.approx(1000.0)
    assert inputs.closing_costs == pytest.approx(6000.0)
    assert inputs.property_tax_rate == 1.5
    assert inputs.down_payment == 20
    assert inputs.loan_term == 30


def test_listing_rent_and_tax_win(defaults):
    listing = ListingRecord(price=250_000, rent_estimate=2100, annual_tax=5000, hoa_fees=75)
    inputs = build_inputs_from_listing(listing, defaults=defaults)

    assert inputs.monthly_rent == 2100
    assert inputs.property_tax_rate == pytest.approx(2.0)
    assert inputs.hoa_fees == 75


def test_market_fills_rent_vacancy_and_appreciation(defaults):
    market = MarketData(zipcode="48201", median_rent=1750, vacancy_rate=6.5, appreciation_rate=4.0)
    inputs = build_inputs_from_listing(ListingRecord(price=180_000), market=market, defaults=defaults)

    assert inputs.monthly_rent == 1750
    assert inputs.vacancy_rate == 6.5
    assert inputs.appreciation_rate == 4.0


def test_defaults_from_config():
    d = ListingDefaults.from_config()
    assert d.loan_term_years > 0
    assert 0 <= d.down_payment_pct <= 100
