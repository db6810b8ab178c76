# src/dealscope/domain/market.py
from __future__ import annotations

from statistics import median
from typing import Iterable, Optional

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    # upstream APIs speak camelCase; internally we stay snake_case
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class ComparableProperty(_CamelModel):
    address: str
    price: float
    square_footage: float | None = None
    price_per_sq_ft: float | None = None
    bedrooms: float | None = None
    bathrooms: float | None = None
    year_built: int | None = None
    days_on_market: int | None = None
    distance: float | None = None         # miles from subject
    date_of_sale: str | None = None

    @model_validator(mode="after")
    def _derive_price_per_sq_ft(self) -> "ComparableProperty":
        if self.price_per_sq_ft is None and self.square_footage:
            self.price_per_sq_ft = self.price / self.square_footage
        return self


# weights of the 0-100 market health index
HEALTH_WEIGHTS = {
    "appreciation": 0.30,
    "days_on_market": 0.20,
    "price_to_rent": 0.20,
    "employment": 0.15,
    "population": 0.15,
}


def calculate_median_rent(rents: Iterable[float]) -> Optional[float]:
    """Median of the rental comps' monthly rents; None when there are none."""
    values = [float(r) for r in rents if r is not None and r > 0]
    if not values:
        return None
    return float(median(values))


def calculate_market_health_index(
    appreciation_rate: float | None,
    days_on_market: float | None,
    price_to_rent_ratio: float | None,
    employment_growth: float | None = None,
    population_growth: float | None = None,
) -> float:
    """
    Weighted 0-100 score of how healthy a rental market looks.

    Component scores (each 0-100 before weighting):
      appreciation    min(rate * 10, 100)       e.g. 5% a year -> 50
      days on market  max(0, 100 - dom * 2)     fast markets score high
      price-to-rent   max(0, 100 - ratio * 3)   cheap relative to rent scores high
      employment      growth% * 20
      population      growth% * 20

    Missing stats count as 0. The weighted sum is clamped to [0, 100].
    """
    appreciation = min((appreciation_rate or 0.0) * 10.0, 100.0)
    dom = max(0.0, 100.0 - days_on_market * 2.0) if days_on_market is not None else 0.0
    p2r = max(0.0, 100.0 - price_to_rent_ratio * 3.0) if price_to_rent_ratio is not None else 0.0
    employment = (employment_growth or 0.0) * 20.0
    population = (population_growth or 0.0) * 20.0

    score = (
        appreciation * HEALTH_WEIGHTS["appreciation"]
        + dom * HEALTH_WEIGHTS["days_on_market"]
        + p2r * HEALTH_WEIGHTS["price_to_rent"]
        + employment * HEALTH_WEIGHTS["employment"]
        + population * HEALTH_WEIGHTS["population"]
    )
    return min(100.0, max(0.0, score))


class MarketData(_CamelModel):
    """
    Market statistics for one zipcode. Every stat is optional because the
    upstream providers are patchy; consumers must check for None.

    When upstream omits them, median rent is derived from `rental_comps`,
    then price-to-rent from price and rent, then `market_score` from the
    health index (needs appreciation, days on market and price-to-rent).
    """
    zipcode: str
    median_home_price: float | None = None
    median_rent: float | None = None
    price_to_rent_ratio: float | None = None
    appreciation_rate: float | None = None     # annual percent
    vacancy_rate: float | None = None          # percent
    average_days_on_market: float | None = None
    market_score: float | None = None          # 0-100
    employment_growth: float | None = None     # annual percent
    population_growth: float | None = None     # annual percent
    median_income: float | None = None
    rental_comps: list[float] = []             # monthly rents of nearby rentals
    comparables: list[ComparableProperty] = []

    @model_validator(mode="after")
    def _derive_stats(self) -> "MarketData":
        if self.median_rent is None and self.rental_comps:
            self.median_rent = calculate_median_rent(self.rental_comps)
        if (
            self.price_to_rent_ratio is None
            and self.median_home_price
            and self.median_rent
        ):
            self.price_to_rent_ratio = self.median_home_price / (self.median_rent * 12)
        if self.market_score is None and None not in (
            self.appreciation_rate,
            self.average_days_on_market,
            self.price_to_rent_ratio,
        ):
            self.market_score = calculate_market_health_index(
                self.appreciation_rate,
                self.average_days_on_market,
                self.price_to_rent_ratio,
                self.employment_growth,
                self.population_growth,
            )
        return self



class ComparablesSummary(BaseModel):
    count: int
    median_price: float | None = None
    median_price_per_sq_ft: float | None = None


def summarize_comparables(comps: list[ComparableProperty]) -> ComparablesSummary:
    if not comps:
        return ComparablesSummary(count=0)

    ppsf = [c.price_per_sq_ft for c in comps if c.price_per_sq_ft is not None]
    return ComparablesSummary(
        count=len(comps),
        median_price=float(median(c.price for c in comps)),
        median_price_per_sq_ft=float(median(ppsf)) if ppsf else None,
    )
