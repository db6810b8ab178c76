# dealscope/services/property_analysis.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from loguru import logger

from dealscope.adapters.config import config
from dealscope.adapters.market_client import MarketDataClient, MarketDataError
from dealscope.analysis.finance import FinancialAnalysis, analyze_property
from dealscope.analysis.inputs import ListingDefaults, ListingRecord, build_inputs_from_listing
from dealscope.domain.market import ComparablesSummary, MarketData, summarize_comparables


@dataclass(frozen=True)
class ListingAnalysis:
    listing: ListingRecord
    market: Optional[MarketData]
    analysis: FinancialAnalysis
    warnings: list[str]
    comparables: Optional[ComparablesSummary] = None


def analyze_listing(
    raw_listing: Dict[str, Any] | ListingRecord,
    market_client: MarketDataClient | None = None,
    defaults: ListingDefaults | None = None,
    hold_years: int | None = None,
) -> ListingAnalysis:
    """
    Listing -> (optional market lookup) -> FinancialInputs -> analysis.

    A failed market lookup is not fatal: the listing is analyzed with the
    configured defaults and the failure shows up in `warnings`.
    Invalid inputs still raise InvalidFinancialInputError.
    """
    listing = (
        raw_listing
        if isinstance(raw_listing, ListingRecord)
        else ListingRecord.model_validate(raw_listing)
    )
    warnings: list[str] = []

    market: MarketData | None = None
    zipcode = (listing.zipcode or "").strip()
    if market_client is not None and zipcode:
        try:
            market = market_client.get_market_data(zipcode)
        except MarketDataError as exc:
            logger.warning("Market data unavailable, using defaults", zipcode=zipcode, exc=str(exc))
            warnings.append(f"market data unavailable for {zipcode}")

    if not listing.rent_estimate:
        source = "market median" if market is not None and market.median_rent else "rent-to-price rule"
        warnings.append(f"rent estimated from {source}")

    inputs = build_inputs_from_listing(listing, market=market, defaults=defaults)
    analysis = analyze_property(inputs, hold_years=hold_years or config.IRR_HOLD_YEARS)

    if not analysis.break_even.reachable:
        warnings.append("negative cash flow: no break-even on cash flow alone")
    if analysis.irr_is_estimate:
        warnings.append(f"IRR did not converge ({analysis.irr.reason})")

    logger.info(
        "Listing analyzed",
        address=listing.address,
        zipcode=listing.zipcode,
        cap_rate=round(analysis.metrics.cap_rate, 2),
        monthly_cash_flow=round(analysis.metrics.monthly_cash_flow, 2),
    )
    comps = summarize_comparables(market.comparables) if market is not None else None
    return ListingAnalysis(
        listing=listing,
        market=market,
        analysis=analysis,
        warnings=warnings,
        comparables=comps,
    )
