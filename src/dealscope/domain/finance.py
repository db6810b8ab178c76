# src/dealscope/domain/finance.py
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Literal, Optional, Sequence

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

IRR_INITIAL_GUESS = 0.10
IRR_TOLERANCE = 1e-4
IRR_MAX_ITERATIONS = 100
IRR_RATE_BOUNDS = (-0.99, 10.0)
IRR_MIN_DERIVATIVE = 1e-10

_NON_NUMERIC = re.compile(r"[^0-9.\-eE]")


class FinancialInputs(BaseModel):
    """
    Purchase, loan and operating assumptions for one property.

    Every rate is a plain percentage (6.5 means 6.5%). Field names are
    snake_case; the camelCase names used by the browser-side collaborators
    (purchasePrice, downPayment, ...) are accepted as aliases.
    """
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        allow_inf_nan=False,
    )

    purchase_price: float = Field(..., ge=0, description="Asking or assumed purchase price")
    down_payment: float = Field(..., ge=0, le=100, description="Percent of price, 20 means 20%")
    interest_rate: float = Field(..., description="Annual rate in percent")
    loan_term: int = Field(..., gt=0, description="Amortization period in years")

    property_tax_rate: float = 0.0   # annual % of purchase price
    insurance_cost: float = 0.0      # annual $
    maintenance_cost: float = 0.0    # monthly $
    hoa_fees: float = 0.0            # monthly $
    utility_costs: float = 0.0       # monthly $

    vacancy_rate: float = Field(default=0.0, ge=0, le=100)
    monthly_rent: float = 0.0
    property_management_fee: float = Field(default=0.0, ge=0, le=100)
    closing_costs: float = 0.0
    appreciation_rate: float = 0.0   # annual %

    @field_validator("*", mode="before")
    @classmethod
    def _strip_money_and_percent(cls, v: Any) -> Any:
        # "$300,000" -> 300000.0, "6.5%" -> 6.5
        if isinstance(v, str):
            cleaned = _NON_NUMERIC.sub("", v.strip())
            if not cleaned:
                raise ValueError(f"not a number: {v!r}")
            try:
                return float(cleaned)
            except ValueError as err:
                raise ValueError(f"not a number: {v!r}") from err
        return v


@dataclass(frozen=True)
class FinancialMetrics:
    monthly_mortgage_payment: float
    monthly_expenses: float         # operating only, mortgage excluded
    monthly_cash_flow: float
    cap_rate: float                 # percent
    cash_on_cash_return: float      # percent
    gross_rent_multiplier: float
    net_operating_income: float     # annual
    return_on_investment: float     # percent
    break_even_point: float         # years, may be negative or inf
    debt_service_coverage_ratio: float


@dataclass(frozen=True)
class AmortizationRow:
    month: int
    payment: float
    principal: float
    interest: float
    balance: float


IRRStopReason = Literal["max_iterations", "flat_derivative", "out_of_bounds"]


@dataclass(frozen=True)
class IRRResult:
    rate: float                     # percent
    converged: bool
    iterations: int
    reason: Optional[IRRStopReason] = None

    @property
    def is_estimate(self) -> bool:
        return not self.converged


@dataclass(frozen=True)
class ScenarioSet:
    conservative: FinancialMetrics
    moderate: FinancialMetrics
    optimistic: FinancialMetrics


def _div(num: float, den: float) -> float:
    # IEEE semantics: x/0 -> +-inf, 0/0 -> nan, never ZeroDivisionError
    with np.errstate(divide="ignore", invalid="ignore"):
        return float(np.float64(num) / np.float64(den))


def calculate_monthly_mortgage(principal: float, annual_rate: float, years: float) -> float:
    """
    Standard fixed-rate amortization formula:
    M = P * [ r(1+r)^n / ((1+r)^n - 1) ]
    P = loan principal
    r = monthly interest rate (annual_rate is a percent)
    n = number of payments (months)
    """
    r = annual_rate / 12.0 / 100.0
    n = years * 12

    if r == 0:
        return _div(principal, n)

    growth = (1 + r) ** n
    return _div(principal * r * growth, growth - 1)


def calculate_cap_rate(noi: float, property_value: float) -> float:
    return _div(noi, property_value) * 100.0


def calculate_cash_on_cash_return(annual_cash_flow: float, total_investment: float) -> float:
    return _div(annual_cash_flow, total_investment) * 100.0


def calculate_noi(annual_rent: float, operating_expenses: float, vacancy_loss: float) -> float:
    return annual_rent - operating_expenses - vacancy_loss


def calculate_dscr(noi: float, annual_debt_service: float) -> float:
    return _div(noi, annual_debt_service)


def down_payment_amount(inputs: FinancialInputs) -> float:
    return inputs.purchase_price * inputs.down_payment / 100.0


def loan_amount(inputs: FinancialInputs) -> float:
    return inputs.purchase_price - down_payment_amount(inputs)


def total_investment(inputs: FinancialInputs) -> float:
    """Cash put in at purchase: down payment plus closing costs."""
    return down_payment_amount(inputs) + inputs.closing_costs


def monthly_operating_expenses(inputs: FinancialInputs) -> float:
    """
    Operating expenses do NOT include the mortgage (financing, not operations).
    Taxes and insurance are annual and get spread over 12 months.
    """
    return (
        inputs.purchase_price * inputs.property_tax_rate / 100.0 / 12.0
        + inputs.insurance_cost / 12.0
        + inputs.maintenance_cost
        + inputs.hoa_fees
        + inputs.utility_costs
    )


def calculate_all_metrics(inputs: FinancialInputs) -> FinancialMetrics:
    """
    Core underwriting math. Pure: the same inputs always give the same metrics.

    Zero denominators are not rejected here; they surface as inf/nan and the
    calling layer is responsible for validating before display.
    """
    # --- financing ---
    monthly_mortgage = calculate_monthly_mortgage(
        loan_amount(inputs),
        inputs.interest_rate,
        inputs.loan_term,
    )

    # --- income / expenses ---
    monthly_expenses = monthly_operating_expenses(inputs)
    annual_rent = inputs.monthly_rent * 12.0
    vacancy_loss = annual_rent * inputs.vacancy_rate / 100.0
    operating_expenses = monthly_expenses * 12.0

    # NOI is before debt service
    noi = calculate_noi(annual_rent, operating_expenses, vacancy_loss)

    management = inputs.monthly_rent * inputs.property_management_fee / 100.0
    monthly_cash_flow = inputs.monthly_rent - monthly_mortgage - monthly_expenses - management
    annual_cash_flow = monthly_cash_flow * 12.0

    invested = total_investment(inputs)
    appreciation = inputs.purchase_price * inputs.appreciation_rate / 100.0

    return FinancialMetrics(
        monthly_mortgage_payment=monthly_mortgage,
        monthly_expenses=monthly_expenses,
        monthly_cash_flow=monthly_cash_flow,
        cap_rate=calculate_cap_rate(noi, inputs.purchase_price),
        cash_on_cash_return=calculate_cash_on_cash_return(annual_cash_flow, invested),
        gross_rent_multiplier=_div(inputs.purchase_price, annual_rent),
        net_operating_income=noi,
        return_on_investment=_div(annual_cash_flow + appreciation, invested) * 100.0,
        break_even_point=_div(invested, annual_cash_flow),
        debt_service_coverage_ratio=calculate_dscr(noi, monthly_mortgage * 12.0),
    )


def generate_amortization_schedule(
    loan_amount: float,
    annual_rate: float,
    years: int,
) -> list[AmortizationRow]:
    """
    One row per month. Interest accrues on the running balance; the reported
    balance is floored at 0 so rounding never shows a negative payoff.
    """
    r = annual_rate / 12.0 / 100.0
    payment = calculate_monthly_mortgage(loan_amount, annual_rate, years)

    balance = loan_amount
    schedule: list[AmortizationRow] = []
    for month in range(1, int(years * 12) + 1):
        interest = balance * r
        principal = payment - interest
        balance -= principal
        schedule.append(
            AmortizationRow(
                month=month,
                payment=payment,
                principal=principal,
                interest=interest,
                balance=max(0.0, balance),
            )
        )
    return schedule


def build_irr_cash_flows(
    initial_investment: float,
    annual_cash_flow: float,
    appreciation_rate: float,
    years: int = 5,
) -> list[float]:
    """
    Year 0 is the outlay. The final year adds the sale at the appreciated
    value; appreciation_rate is fractional here (0.03 for 3%).
    """
    flows = [-initial_investment]
    property_value = initial_investment
    for year in range(1, years + 1):
        property_value *= 1 + appreciation_rate
        if year == years:
            flows.append(annual_cash_flow + property_value)
        else:
            flows.append(annual_cash_flow)
    return flows


def calculate_npv(cash_flows: Sequence[float], rate: float) -> float:
    return sum(cf / (1 + rate) ** t for t, cf in enumerate(cash_flows))


def _npv_derivative(cash_flows: Sequence[float], rate: float) -> float:
    return sum(-t * cf / (1 + rate) ** (t + 1) for t, cf in enumerate(cash_flows))


def solve_irr(cash_flows: Sequence[float]) -> IRRResult:
    """
    Newton-Raphson on NPV(rate) = 0.

    Stops early (converged=False) on a flat derivative or when an iterate
    leaves IRR_RATE_BOUNDS; the last in-bounds rate is reported as the estimate.
    """
    lo, hi = IRR_RATE_BOUNDS
    rate = IRR_INITIAL_GUESS

    for i in range(1, IRR_MAX_ITERATIONS + 1):
        npv = calculate_npv(cash_flows, rate)
        slope = _npv_derivative(cash_flows, rate)
        if abs(slope) < IRR_MIN_DERIVATIVE:
            return IRRResult(rate=rate * 100.0, converged=False, iterations=i, reason="flat_derivative")

        new_rate = rate - npv / slope
        if not (lo <= new_rate <= hi):
            return IRRResult(rate=rate * 100.0, converged=False, iterations=i, reason="out_of_bounds")

        if abs(new_rate - rate) < IRR_TOLERANCE:
            return IRRResult(rate=new_rate * 100.0, converged=True, iterations=i)
        rate = new_rate

    return IRRResult(
        rate=rate * 100.0,
        converged=False,
        iterations=IRR_MAX_ITERATIONS,
        reason="max_iterations",
    )


def calculate_irr(
    initial_investment: float,
    annual_cash_flow: float,
    appreciation_rate: float,
    years: int = 5,
) -> IRRResult:
    flows = build_irr_cash_flows(initial_investment, annual_cash_flow, appreciation_rate, years)
    return solve_irr(flows)


# Multipliers applied to (variable expenses, rent, vacancy)
_CONSERVATIVE = (1.2, 0.9, 1.2)
_OPTIMISTIC = (0.8, 1.1, 0.8)


def _perturb(inputs: FinancialInputs, factors: tuple[float, float, float]) -> FinancialInputs:
    expense_k, rent_k, vacancy_k = factors
    return inputs.model_copy(
        update={
            "maintenance_cost": inputs.maintenance_cost * expense_k,
            "utility_costs": inputs.utility_costs * expense_k,
            "monthly_rent": inputs.monthly_rent * rent_k,
            "vacancy_rate": min(100.0, inputs.vacancy_rate * vacancy_k),
        }
    )


def analyze_scenarios(
    inputs: FinancialInputs,
    baseline: FinancialMetrics | None = None,
) -> ScenarioSet:
    """
    Conservative: variable expenses x1.2, rent x0.9, vacancy x1.2.
    Optimistic:   variable expenses x0.8, rent x1.1, vacancy x0.8.
    """
    moderate = baseline if baseline is not None else calculate_all_metrics(inputs)
    return ScenarioSet(
        conservative=calculate_all_metrics(_perturb(inputs, _CONSERVATIVE)),
        moderate=moderate,
        optimistic=calculate_all_metrics(_perturb(inputs, _OPTIMISTIC)),
    )
