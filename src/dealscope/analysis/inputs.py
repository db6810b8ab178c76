# src/dealscope/analysis/inputs.py
from __future__ import annotations

import re
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from dealscope.adapters.config import config
from dealscope.domain.finance import FinancialInputs
from dealscope.domain.market import MarketData

# first number in the text, with an optional "K"/"M" (or spelled-out) multiplier
_AMOUNT = re.compile(r"(\d[\d,]*(?:\.\d+)?|\.\d+)\s*(k|m|thousand|million)?\b")
_MULTIPLIERS = {
    "k": 1e3,
    "thousand": 1e3,
    "m": 1e6,
    "million": 1e6,
}


def parse_amount(value: Any) -> Optional[float]:
    """
    Scraped listing values come through as "$300,000", "2,450/mo", "$1.2M",
    "450K", 1500 ... Only the first number counts. Returns None for anything
    that has no digits.
    """
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    m = _AMOUNT.search(str(value).lower())
    if m is None:
        return None
    amount = float(m.group(1).replace(",", ""))
    if m.group(2):
        amount *= _MULTIPLIERS[m.group(2)]
    return amount


class ListingRecord(BaseModel):
    """Raw listing as handed over by a scraper. Numbers may still be strings."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    address: str = ""
    zipcode: str = ""
    property_type: str | None = None
    price: float | None = None
    rent_estimate: float | None = None
    square_footage: float | None = None
    bedrooms: float | None = None
    bathrooms: float | None = None
    year_built: int | None = None
    hoa_fees: float | None = None          # monthly
    annual_tax: float | None = None

    @field_validator(
        "price",
        "rent_estimate",
        "square_footage",
        "bedrooms",
        "bathrooms",
        "hoa_fees",
        "annual_tax",
        mode="before",
    )
    @classmethod
    def _parse_amounts(cls, v: Any) -> Any:
        return parse_amount(v)

    @field_validator("year_built", mode="before")
    @classmethod
    def _parse_year(cls, v: Any) -> Any:
        parsed = parse_amount(v)
        return int(parsed) if parsed is not None else None


class ListingDefaults(BaseModel):
    """Underwriting assumptions filled in when the listing doesn't say."""
    down_payment_pct: float
    interest_rate_pct: float
    loan_term_years: int
    property_tax_rate_pct: float
    insurance_rate_pct: float       # annual, % of price
    maintenance_rate_pct: float     # % of monthly rent
    vacancy_rate_pct: float
    management_fee_pct: float
    closing_cost_pct: float         # % of price
    appreciation_rate_pct: float
    rent_to_price_rule_pct: float   # the "1% rule"

    @classmethod
    def from_config(cls) -> "ListingDefaults":
        return cls(
            down_payment_pct=config.DEFAULT_DOWN_PAYMENT_PCT,
            interest_rate_pct=config.DEFAULT_INTEREST_RATE_PCT,
            loan_term_years=config.DEFAULT_LOAN_TERM_YEARS,
            property_tax_rate_pct=config.DEFAULT_PROPERTY_TAX_RATE_PCT,
            insurance_rate_pct=config.DEFAULT_INSURANCE_RATE_PCT,
            maintenance_rate_pct=config.DEFAULT_MAINTENANCE_RATE_PCT,
            vacancy_rate_pct=config.DEFAULT_VACANCY_RATE_PCT,
            management_fee_pct=config.DEFAULT_MANAGEMENT_FEE_PCT,
            closing_cost_pct=config.DEFAULT_CLOSING_COST_PCT,
            appreciation_rate_pct=config.DEFAULT_APPRECIATION_RATE_PCT,
            rent_to_price_rule_pct=config.RENT_TO_PRICE_RULE_PCT,
        )


def estimate_monthly_rent(
    listing: ListingRecord,
    market: MarketData | None,
    defaults: ListingDefaults,
) -> float:
    """Listing estimate > market median > rent-to-price rule."""
    if listing.rent_estimate:
        return listing.rent_estimate
    if market is not None and market.median_rent:
        return market.median_rent
    return (listing.price or 0.0) * defaults.rent_to_price_rule_pct / 100.0


def build_inputs_from_listing(
    listing: ListingRecord,
    market: MarketData | None = None,
    defaults: ListingDefaults | None = None,
) -> FinancialInputs:
    d = defaults or ListingDefaults.from_config()
    price = listing.price or 0.0
    rent = estimate_monthly_rent(listing, market, d)

    # listing tax bill wins over the blanket rate
    if listing.annual_tax and price > 0:
        tax_rate = listing.annual_tax / price * 100.0
    else:
        tax_rate = d.property_tax_rate_pct

    vacancy = d.vacancy_rate_pct
    appreciation = d.appreciation_rate_pct
    if market is not None:
        if market.vacancy_rate is not None:
            vacancy = market.vacancy_rate
        if market.appreciation_rate is not None:
            appreciation = market.appreciation_rate

    return FinancialInputs(
        purchase_price=price,
        down_payment=d.down_payment_pct,
        interest_rate=d.interest_rate_pct,
        loan_term=d.loan_term_years,
        property_tax_rate=tax_rate,
        insurance_cost=price * d.insurance_rate_pct / 100.0,
        maintenance_cost=rent * d.maintenance_rate_pct / 100.0,
        hoa_fees=listing.hoa_fees or 0.0,
        utility_costs=0.0,
        vacancy_rate=min(100.0, max(0.0, vacancy)),
        monthly_rent=rent,
        property_management_fee=d.management_fee_pct,
        closing_costs=price * d.closing_cost_pct / 100.0,
        appreciation_rate=appreciation,
    )
