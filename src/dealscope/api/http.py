# src/dealscope/api/http.py
from __future__ import annotations

from functools import lru_cache
from typing import Any

from fastapi import Body, Depends, FastAPI, HTTPException
from pydantic import ValidationError

from dealscope.adapters.config import config
from dealscope.adapters.logging_utils import get_logger, log_context
from dealscope.adapters.market_client import MarketDataClient, MarketDataError, make_market_client
from dealscope.analysis.finance import InvalidFinancialInputError, analyze_property
from dealscope.domain.finance import FinancialInputs, generate_amortization_schedule
from dealscope.services.property_analysis import analyze_listing

from .schemas import (
    AmortizationRequest,
    AnalyzeResponse,
    analysis_to_payload,
    listing_analysis_to_payload,
    schedule_to_payload,
)

logger = get_logger(__name__)

app = FastAPI(title="dealscope")


@lru_cache(maxsize=1)
def _build_market_client() -> MarketDataClient | None:
    # single client per process: one cache + one rate limiter shared by all requests
    if not config.MARKET_API_KEY:
        return None
    return make_market_client()


def get_market_client() -> MarketDataClient | None:
    return _build_market_client()


def _validation_detail(err: ValidationError) -> str:
    parts = []
    for e in err.errors():
        loc = ".".join(str(p) for p in e.get("loc", ())) or "payload"
        if e.get("type") == "missing":
            parts.append(f"Missing required field: {loc}")
        else:
            parts.append(f"{loc}: {e.get('msg')}")
    return "; ".join(parts)


@app.get("/health")
def health() -> dict[str, Any]:
    return {"status": "ok", "env": config.ENV}


@app.post("/analyze", response_model=AnalyzeResponse)
def analyze_endpoint(
    payload: dict[str, Any] = Body(...),
    hold_years: int = config.IRR_HOLD_YEARS,
) -> dict[str, Any]:
    """
    FinancialInputs (snake_case or camelCase) -> full analysis.
    Bad or undefined inputs come back as 400 with every problem listed.
    """
    try:
        inputs = FinancialInputs.model_validate(payload)
        analysis = analyze_property(inputs, hold_years=hold_years)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=_validation_detail(e)) from e
    except InvalidFinancialInputError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return analysis_to_payload(analysis)


@app.post("/amortization")
def amortization_endpoint(body: AmortizationRequest) -> dict[str, Any]:
    rows = generate_amortization_schedule(body.loan_amount, body.annual_rate, body.years)
    return {
        "payments": len(rows),
        "monthly_payment": rows[0].payment if rows else 0.0,
        "total_interest": sum(r.interest for r in rows),
        "schedule": schedule_to_payload(rows),
    }


@app.post("/listings/analyze", response_model=AnalyzeResponse)
def analyze_listing_endpoint(
    payload: dict[str, Any] = Body(...),
    use_market: bool = True,
    market_client: MarketDataClient | None = Depends(get_market_client),
) -> dict[str, Any]:
    try:
        result = analyze_listing(payload, market_client=market_client if use_market else None)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=_validation_detail(e)) from e
    except InvalidFinancialInputError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return listing_analysis_to_payload(result)


@app.get("/market/{zipcode}")
def market_endpoint(
    zipcode: str,
    market_client: MarketDataClient | None = Depends(get_market_client),
) -> dict[str, Any]:
    if market_client is None:
        raise HTTPException(status_code=503, detail="market data API is not configured")
    try:
        market = market_client.get_market_data(zipcode)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except MarketDataError as e:
        logger.error("market lookup failed", extra=log_context(zipcode=zipcode, error=str(e)))
        raise HTTPException(status_code=502, detail=str(e)) from e
    return market.model_dump()
