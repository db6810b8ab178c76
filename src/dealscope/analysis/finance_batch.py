# src/dealscope/analysis/finance_batch.py

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

import numpy as np
import pandas as pd

# Columns that may be absent from a batch file; they default to 0.
_OPTIONAL_COLUMNS = (
    "property_tax_rate",
    "insurance_cost",
    "maintenance_cost",
    "hoa_fees",
    "utility_costs",
    "vacancy_rate",
    "property_management_fee",
    "closing_costs",
    "appreciation_rate",
)
REQUIRED_COLUMNS = ("purchase_price", "down_payment", "interest_rate", "loan_term", "monthly_rent")


@dataclass
class PortfolioMetrics:
    """
    Aggregated cap rate / CoC / DSCR stats across a batch of properties.

    This is the 'reduction' result of a map-style per-property computation.
    """
    n_properties: int
    mean_cap_rate: float
    p5_cap_rate: float
    p50_cap_rate: float
    p95_cap_rate: float
    mean_coc: float
    p5_coc: float
    p50_coc: float
    p95_coc: float
    mean_dscr: float
    p50_dscr: float


def _col(df: pd.DataFrame, name: str) -> np.ndarray:
    if name in df.columns:
        return df[name].fillna(0.0).to_numpy(dtype=float)
    return np.zeros(len(df), dtype=float)


def compute_financial_metrics_df(df: pd.DataFrame) -> pd.DataFrame:
    """
    Vectorized calculate_all_metrics over a DataFrame.

    Expects the snake_case FinancialInputs fields as columns (rates in
    percent). The required ones are REQUIRED_COLUMNS; the rest default to 0.
    Returns a new frame with one column per FinancialMetrics field, same index.
    Zero denominators give inf/nan, exactly like the scalar engine.
    """
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"Missing required columns: {missing}")

    price = _col(df, "purchase_price")
    down_pct = _col(df, "down_payment")
    rate_pct = _col(df, "interest_rate")
    term = _col(df, "loan_term")
    rent = _col(df, "monthly_rent")
    c = {name: _col(df, name) for name in _OPTIONAL_COLUMNS}

    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        # --- financing ---
        down_amount = price * down_pct / 100.0
        loan = price - down_amount
        r = rate_pct / 12.0 / 100.0
        n = term * 12.0

        growth = (1.0 + r) ** n
        mortgage = np.where(
            r == 0,
            loan / n,
            loan * r * growth / (growth - 1.0),
        )

        # --- expenses / NOI ---
        monthly_expenses = (
            price * c["property_tax_rate"] / 100.0 / 12.0
            + c["insurance_cost"] / 12.0
            + c["maintenance_cost"]
            + c["hoa_fees"]
            + c["utility_costs"]
        )
        annual_rent = rent * 12.0
        vacancy_loss = annual_rent * c["vacancy_rate"] / 100.0
        noi = annual_rent - monthly_expenses * 12.0 - vacancy_loss

        # --- cash flow & returns ---
        cash_flow = rent - mortgage - monthly_expenses - rent * c["property_management_fee"] / 100.0
        annual_cf = cash_flow * 12.0
        invested = down_amount + c["closing_costs"]
        appreciation = price * c["appreciation_rate"] / 100.0

        out = pd.DataFrame(
            {
                "monthly_mortgage_payment": mortgage,
                "monthly_expenses": monthly_expenses,
                "monthly_cash_flow": cash_flow,
                "cap_rate": noi / price * 100.0,
                "cash_on_cash_return": annual_cf / invested * 100.0,
                "gross_rent_multiplier": price / annual_rent,
                "net_operating_income": noi,
                "return_on_investment": (annual_cf + appreciation) / invested * 100.0,
                "break_even_point": invested / annual_cf,
                "debt_service_coverage_ratio": noi / (mortgage * 12.0),
            },
            index=df.index,
        )
    return out


def summarize_portfolio(
    metrics: pd.DataFrame,
    mask: Optional[np.ndarray] = None,
) -> PortfolioMetrics:
    """
    Reduction step: collapse per-property metrics into summary statistics.
    Non-finite values (undefined ratios) are ignored.
    """
    if mask is not None:
        metrics = metrics[np.asarray(mask, dtype=bool)]

    def _finite(name: str) -> np.ndarray:
        x = metrics[name].to_numpy(dtype=float)
        return x[np.isfinite(x)]

    cap = _finite("cap_rate")
    coc = _finite("cash_on_cash_return")
    dscr = _finite("debt_service_coverage_ratio")

    def _stat(x: np.ndarray, q: float | None = None) -> float:
        if x.size == 0:
            return float("nan")
        return float(np.mean(x)) if q is None else float(np.quantile(x, q))

    return PortfolioMetrics(
        n_properties=int(len(metrics)),
        mean_cap_rate=_stat(cap),
        p5_cap_rate=_stat(cap, 0.05),
        p50_cap_rate=_stat(cap, 0.50),
        p95_cap_rate=_stat(cap, 0.95),
        mean_coc=_stat(coc),
        p5_coc=_stat(coc, 0.05),
        p50_coc=_stat(coc, 0.50),
        p95_coc=_stat(coc, 0.95),
        mean_dscr=_stat(dscr),
        p50_dscr=_stat(dscr, 0.50),
    )
