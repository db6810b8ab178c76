import pytest

from dealscope.domain.finance import calculate_monthly_mortgage, generate_amortization_schedule


def test_schedule_length_and_payoff():
    rows = generate_amortization_schedule(240_000, 4.5, 30)

    assert len(rows) == 360
    assert rows[0].month == 1 and rows[-1].month == 360
    assert rows[-1].balance == pytest.approx(0.0, abs=1e-6)
    assert sum(r.principal for r in rows) == pytest.approx(240_000, rel=1e-9)


def test_balance_decreases_by_principal_each_month():
    rows = generate_amortization_schedule(150_000, 6.0, 15)

    prev_balance = 150_000.0
    for r in rows[:-1]:
        assert r.balance == pytest.approx(prev_balance - r.principal, abs=1e-6)
        assert r.payment == pytest.approx(r.principal + r.interest)
        prev_balance = r.balance


def test_first_month_interest_and_payment():
    rows = generate_amortization_schedule(240_000, 4.5, 30)
    first = rows[0]

    assert first.interest == pytest.approx(240_000 * 0.045 / 12)
    assert first.payment == pytest.approx(calculate_monthly_mortgage(240_000, 4.5, 30))
    # interest share shrinks over time
    assert rows[-1].interest < first.interest


def test_zero_rate_schedule_is_straight_line():
    rows = generate_amortization_schedule(12_000, 0.0, 1)

    assert [r.interest for r in rows] == [0.0] * 12
    assert all(r.principal == pytest.approx(1000.0) for r in rows)
    assert rows[5].balance == pytest.approx(6000.0)


def test_schedule_is_restartable():
    assert generate_amortization_schedule(100_000, 5.0, 10) == generate_amortization_schedule(100_000, 5.0, 10)
