import math

import numpy as np
import pandas as pd
import pytest

from dealscope.analysis.finance_batch import compute_financial_metrics_df, summarize_portfolio
from dealscope.domain.finance import FinancialInputs, calculate_all_metrics


def _rows():
    return [
        dict(purchase_price=300_000, down_payment=20, interest_rate=4.5, loan_term=30, monthly_rent=2500,
             property_tax_rate=1.2, insurance_cost=1200, maintenance_cost=200, vacancy_rate=5,
             property_management_fee=8, closing_costs=5000, appreciation_rate=3),
        dict(purchase_price=180_000, down_payment=25, interest_rate=0, loan_term=15, monthly_rent=1600,
             property_tax_rate=1.8, insurance_cost=900, hoa_fees=50, utility_costs=40, vacancy_rate=8),
        dict(purchase_price=450_000, down_payment=10, interest_rate=7.25, loan_term=30, monthly_rent=2900,
             closing_costs=9000, appreciation_rate=2),
    ]


def test_vectorized_matches_scalar_engine():
    df = pd.DataFrame(_rows())
    out = compute_financial_metrics_df(df)

    for i, row in enumerate(_rows()):
        expected = calculate_all_metrics(FinancialInputs(**row))
        for col in out.columns:
            assert out.iloc[i][col] == pytest.approx(getattr(expected, col), rel=1e-9), col


def test_zero_denominators_are_non_finite():
    df = pd.DataFrame([dict(purchase_price=0, down_payment=20, interest_rate=5, loan_term=30, monthly_rent=0)])
    out = compute_financial_metrics_df(df)

    assert math.isnan(out.loc[0, "cap_rate"])
    assert not np.isfinite(out.loc[0, "gross_rent_multiplier"])


def test_missing_required_columns():
    with pytest.raises(ValueError, match="monthly_rent"):
        compute_financial_metrics_df(pd.DataFrame([dict(purchase_price=1, down_payment=1, interest_rate=1, loan_term=1)]))


def test_summary_ignores_undefined_ratios():
    df = pd.DataFrame(_rows() + [dict(purchase_price=0, down_payment=0, interest_rate=5, loan_term=30, monthly_rent=0)])
    out = compute_financial_metrics_df(df)
    s = summarize_portfolio(out)

    assert s.n_properties == 4
    assert s.p5_cap_rate <= s.p50_cap_rate <= s.p95_cap_rate
    assert math.isfinite(s.mean_cap_rate)


def test_empty_summary_is_nan():
    out = compute_financial_metrics_df(pd.DataFrame(_rows()))
    s = summarize_portfolio(out, mask=np.zeros(len(out), dtype=bool))
    assert s.n_properties == 0
    assert math.isnan(s.mean_coc)
