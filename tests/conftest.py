# tests/conftest.py
import pytest
from fastapi.testclient import TestClient

from dealscope.api.http import app, get_market_client  # ensures imports resolve; run tests from repo root


class FakeClock:
    """Manually advanced clock; sleep() just moves time forward."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture(scope="session")
def client():
    # no outbound market calls from API tests unless a test overrides this
    app.dependency_overrides[get_market_client] = lambda: None
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def baseline_payload():
    return {
        "purchase_price": 300000,
        "down_payment": 20,
        "interest_rate": 4.5,
        "loan_term": 30,
        "monthly_rent": 2500,
        "property_tax_rate": 1.2,
        "insurance_cost": 1200,
        "maintenance_cost": 200,
        "hoa_fees": 0,
        "vacancy_rate": 5,
        "property_management_fee": 8,
        "closing_costs": 5000,
        "appreciation_rate": 3,
        "utility_costs": 0,
    }
