# tests/test_underwriting_scenarios.py

import pytest
from hypothesis import given, strategies as st

from dealscope.domain.finance import (
    FinancialInputs,
    analyze_scenarios,
    calculate_all_metrics,
    calculate_monthly_mortgage,
    calculate_noi,
)


def _baseline_inputs(**overrides):
    base = dict(
        purchase_price=250_000.0,
        down_payment=20.0,
        interest_rate=6.0,
        loan_term=30,
        property_tax_rate=1.5,
        insurance_cost=900.0,
        maintenance_cost=150.0,
        hoa_fees=0.0,
        utility_costs=50.0,
        vacancy_rate=5.0,
        monthly_rent=2000.0,
        property_management_fee=8.0,
        closing_costs=7_500.0,
        appreciation_rate=3.0,
    )
    base.update(overrides)
    return FinancialInputs(**base)


@given(
    principal=st.floats(min_value=0.0, max_value=5_000_000.0),
    years=st.integers(min_value=1, max_value=40),
)
def test_zero_rate_mortgage_is_principal_over_months(principal, years):
    assert calculate_monthly_mortgage(principal, 0, years) == principal / (years * 12)


@given(
    rent=st.floats(min_value=0.0, max_value=1e7),
    expenses=st.floats(min_value=0.0, max_value=1e7),
    vacancy=st.floats(min_value=0.0, max_value=1e7),
)
def test_noi_has_no_hidden_rounding(rent, expenses, vacancy):
    assert calculate_noi(rent, expenses, vacancy) == rent - expenses - vacancy


@given(
    rent=st.floats(min_value=500.0, max_value=4000.0),
    delta=st.floats(min_value=50.0, max_value=500.0),
)
def test_higher_rent_improves_metrics(rent, delta):
    m1 = calculate_all_metrics(_baseline_inputs(monthly_rent=rent))
    m2 = calculate_all_metrics(_baseline_inputs(monthly_rent=rent + delta))

    # With everything else fixed, more rent should not hurt NOI, DSCR, CoC, or cap rate
    assert m2.net_operating_income >= m1.net_operating_income
    assert m2.debt_service_coverage_ratio >= m1.debt_service_coverage_ratio
    assert m2.cash_on_cash_return >= m1.cash_on_cash_return
    assert m2.cap_rate >= m1.cap_rate


@given(
    price=st.floats(min_value=100_000.0, max_value=600_000.0),
    delta=st.floats(min_value=10_000.0, max_value=150_000.0),
)
def test_higher_price_reduces_cap_rate(price, delta):
    m1 = calculate_all_metrics(_baseline_inputs(purchase_price=price))
    m2 = calculate_all_metrics(_baseline_inputs(purchase_price=price + delta))

    # same rent, more expensive asset (and more tax): cap rate can only drop
    assert m2.cap_rate <= m1.cap_rate
    assert m2.monthly_cash_flow <= m1.monthly_cash_flow


def test_scenarios_bracket_the_baseline():
    inputs = _baseline_inputs()
    baseline = calculate_all_metrics(inputs)
    s = analyze_scenarios(inputs)

    assert s.moderate == baseline
    assert s.conservative.monthly_cash_flow < baseline.monthly_cash_flow < s.optimistic.monthly_cash_flow
    assert s.conservative.net_operating_income < baseline.net_operating_income < s.optimistic.net_operating_income
    # financing is untouched by the perturbation
    assert s.conservative.monthly_mortgage_payment == baseline.monthly_mortgage_payment


def test_conservative_scenario_caps_vacancy_at_100():
    s = analyze_scenarios(_baseline_inputs(vacancy_rate=95.0))
    # 95% * 1.2 would be 114%; capped, so all rent is lost
    assert s.conservative.net_operating_income == pytest.approx(-s.conservative.monthly_expenses * 12)


def test_scenarios_reuse_given_baseline():
    inputs = _baseline_inputs()
    baseline = calculate_all_metrics(inputs)
    assert analyze_scenarios(inputs, baseline=baseline).moderate is baseline
