# src/dealscope/api/schemas.py
from __future__ import annotations

import math
from dataclasses import asdict
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from dealscope.analysis.finance import FinancialAnalysis
from dealscope.domain.finance import AmortizationRow
from dealscope.services.property_analysis import ListingAnalysis


class AmortizationRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    loan_amount: float = Field(..., ge=0)
    annual_rate: float = Field(..., description="Annual rate in percent")
    years: int = Field(..., gt=0, le=50)


class AnalyzeResponse(BaseModel):
    """
    Response for /analyze and /listings/analyze.

    The analysis is a nested dict; keep it permissive so adding fields to
    the dataclasses doesn't break clients.
    """
    model_config = ConfigDict(extra="allow")


def _json_safe(value: Any) -> Any:
    # JSON has no inf/nan; undefined ratios go out as null
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, dict):
        return {k: _json_safe(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_json_safe(v) for v in value]
    return value


def analysis_to_payload(analysis: FinancialAnalysis) -> dict[str, Any]:
    return _json_safe(
        {
            "inputs": analysis.inputs.model_dump(),
            "metrics": asdict(analysis.metrics),
            "break_even": asdict(analysis.break_even),
            "irr": {**asdict(analysis.irr), "is_estimate": analysis.irr_is_estimate},
            "scenarios": asdict(analysis.scenarios),
            "loan": asdict(analysis.loan),
        }
    )


def listing_analysis_to_payload(result: ListingAnalysis) -> dict[str, Any]:
    return _json_safe(
        {
            "listing": result.listing.model_dump(),
            "market": result.market.model_dump() if result.market is not None else None,
            "analysis": analysis_to_payload(result.analysis),
            "warnings": list(result.warnings),
            "comparables": result.comparables.model_dump() if result.comparables is not None else None,
        }
    )


def schedule_to_payload(rows: list[AmortizationRow]) -> list[dict[str, Any]]:
    return [asdict(r) for r in rows]
