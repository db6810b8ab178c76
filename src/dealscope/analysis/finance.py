# src/dealscope/analysis/finance.py
from __future__ import annotations

import math
from dataclasses import dataclass, fields
from typing import Optional

from dealscope.domain.finance import (
    FinancialInputs,
    FinancialMetrics,
    IRRResult,
    ScenarioSet,
    analyze_scenarios,
    calculate_all_metrics,
    calculate_irr,
    generate_amortization_schedule,
    loan_amount,
    total_investment,
)


class InvalidFinancialInputError(ValueError):
    """Inputs that would make one of the ratios undefined."""

    def __init__(self, problems: list[str]):
        self.problems = problems
        super().__init__("Invalid financial inputs: " + "; ".join(problems))


@dataclass(frozen=True)
class BreakEven:
    """
    Years of cash flow needed to recover the cash invested.
    years is None when monthly cash flow is zero or negative: the deal
    never breaks even on cash flow alone.
    """
    years: Optional[float]
    reachable: bool


@dataclass(frozen=True)
class LoanSummary:
    loan_amount: float
    total_investment: float
    total_interest: float
    total_paid: float
    payments: int


@dataclass(frozen=True)
class FinancialAnalysis:
    inputs: FinancialInputs
    metrics: FinancialMetrics
    break_even: BreakEven
    irr: IRRResult
    scenarios: ScenarioSet
    loan: LoanSummary

    @property
    def irr_is_estimate(self) -> bool:
        return self.irr.is_estimate


def validate_inputs(inputs: FinancialInputs) -> None:
    """
    Reject inputs that leave cap rate, GRM, cash-on-cash or DSCR undefined.
    Collects every problem instead of failing on the first one.
    """
    problems: list[str] = []

    if inputs.purchase_price <= 0:
        problems.append("purchase_price must be > 0 (cap rate is undefined)")
    if inputs.monthly_rent <= 0:
        problems.append("monthly_rent must be > 0 (gross rent multiplier is undefined)")
    if total_investment(inputs) <= 0:
        problems.append("down payment plus closing costs must be > 0 (cash-on-cash is undefined)")
    if inputs.purchase_price > 0 and loan_amount(inputs) <= 0:
        problems.append("loan amount must be > 0 (DSCR is undefined without debt service)")

    if problems:
        raise InvalidFinancialInputError(problems)


def _break_even(metrics: FinancialMetrics) -> BreakEven:
    if metrics.monthly_cash_flow <= 0 or not math.isfinite(metrics.break_even_point):
        return BreakEven(years=None, reachable=False)
    return BreakEven(years=metrics.break_even_point, reachable=True)


def _ensure_finite(metrics: FinancialMetrics) -> None:
    bad = [
        f.name
        for f in fields(metrics)
        if f.name != "break_even_point" and not math.isfinite(getattr(metrics, f.name))
    ]
    if bad:
        raise InvalidFinancialInputError([f"{name} is not a finite number" for name in bad])


def summarize_loan(inputs: FinancialInputs) -> LoanSummary:
    schedule = generate_amortization_schedule(loan_amount(inputs), inputs.interest_rate, inputs.loan_term)
    total_interest = sum(row.interest for row in schedule)
    total_paid = sum(row.payment for row in schedule)
    return LoanSummary(
        loan_amount=loan_amount(inputs),
        total_investment=total_investment(inputs),
        total_interest=total_interest,
        total_paid=total_paid,
        payments=len(schedule),
    )


def analyze_property(inputs: FinancialInputs, *, hold_years: int = 5) -> FinancialAnalysis:
    """
    Validated entry point for UI / export callers.

    Raises InvalidFinancialInputError instead of letting inf/nan through.
    The IRR uses the purchase price as the year-0 outlay and the sale value,
    and the levered annual cash flow in between.
    """
    validate_inputs(inputs)

    metrics = calculate_all_metrics(inputs)
    _ensure_finite(metrics)

    irr = calculate_irr(
        initial_investment=inputs.purchase_price,
        annual_cash_flow=metrics.monthly_cash_flow * 12.0,
        appreciation_rate=inputs.appreciation_rate / 100.0,
        years=hold_years,
    )

    return FinancialAnalysis(
        inputs=inputs,
        metrics=metrics,
        break_even=_break_even(metrics),
        irr=irr,
        scenarios=analyze_scenarios(inputs, baseline=metrics),
        loan=summarize_loan(inputs),
    )
