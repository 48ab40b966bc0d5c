"""
Pytest Configuration and Shared Fixtures for SparkSave Tests.

This module provides fixtures and configuration for all engine tests, supporting:
- Async test execution with pytest-asyncio
- Usage history builders (flat, seasonal, trending, sparse)
- Plan factories for every contract type variant
- Preference, current plan and engine configuration fixtures
- Fake explanation generators (fast, slow, failing)
- A FastAPI TestClient with dependency overrides reset after each test

Reference date for all fixtures is 2025-12-31, so a full calendar year of
monthly usage (2025-01 .. 2025-12) is on or before the as-of date.
"""

import asyncio
from datetime import date
from typing import Any, Callable, Dict, Generator, List, Optional, Sequence

import pytest
from fastapi.testclient import TestClient

from sparksave.core.config import get_settings
from sparksave.models import (
    ContractType,
    CostSavingsPriority,
    CurrentPlan,
    EnergyPlanBase,
    ExplanationInput,
    RankingConfig,
    UsagePoint,
    UserPreferences,
    parse_energy_plan,
)


# ============================================================
# PYTEST HOOKS
# ============================================================

def pytest_configure(config) -> None:
    """
    Configure custom pytest markers for test organization.

    Custom markers defined:
    - scenario: End-to-end acceptance scenarios over the whole pipeline
    - api: Tests that go through the HTTP surface
    """
    config.addinivalue_line(
        'markers',
        'scenario: end-to-end acceptance scenarios over the whole pipeline'
    )
    config.addinivalue_line(
        'markers',
        'api: tests exercising the FastAPI surface through TestClient'
    )


# ============================================================
# DATE FIXTURES
# ============================================================

AS_OF_DATE = date(2025, 12, 31)


@pytest.fixture
def as_of_date() -> date:
    """Evaluation date shared by the fixtures below."""
    return AS_OF_DATE


# ============================================================
# USAGE FIXTURES
# ============================================================

def monthly_points(
    kwh_values: Sequence[float],
    start_year: int = 2025,
    start_month: int = 1,
    rate: Optional[float] = None,
) -> List[UsagePoint]:
    """
    Build one usage point per month starting at start_year-start_month.

    Args:
        kwh_values: kWh for each consecutive month.
        rate: If given, each point carries cost = kWh x rate.
    """
    points = []
    year, month = start_year, start_month
    for kwh in kwh_values:
        points.append(UsagePoint(
            timestamp=date(year, month, 1),
            kwh=kwh,
            cost=kwh * rate if rate is not None else None,
        ))
        month += 1
        if month > 12:
            year, month = year + 1, 1
    return points


@pytest.fixture
def make_usage_points() -> Callable[..., List[UsagePoint]]:
    """Factory fixture wrapping monthly_points."""
    return monthly_points


@pytest.fixture
def flat_usage_points() -> List[UsagePoint]:
    """Twelve months of 600 kWh in 2025, no billed cost."""
    return monthly_points([600.0] * 12)


@pytest.fixture
def billed_usage_points() -> List[UsagePoint]:
    """Twelve months of 600 kWh billed at $0.13/kWh ($936/yr)."""
    return monthly_points([600.0] * 12, rate=0.13)


@pytest.fixture
def seasonal_usage_points() -> List[UsagePoint]:
    """Twelve months with a summer peak in July 2025."""
    return monthly_points([
        500.0, 450.0, 420.0, 400.0, 520.0, 780.0,
        950.0, 900.0, 700.0, 480.0, 430.0, 470.0,
    ])


@pytest.fixture
def sparse_usage_points() -> List[UsagePoint]:
    """Only two months of history."""
    return monthly_points([600.0, 650.0], start_month=11)


# ============================================================
# PLAN FIXTURES
# ============================================================

def build_plan(**overrides: Any) -> EnergyPlanBase:
    """
    Build a plan variant from defaults plus overrides.

    Defaults describe a 12-month fixed plan at $0.12/kWh from a 4.0-rated
    supplier with 50% renewable energy, no fees and no promotion.
    """
    data: Dict[str, Any] = {
        "planId": "plan-fixed",
        "supplierName": "Lone Star Power",
        "planName": "Simple 12",
        "contractType": "fixed",
        "ratePerKwh": 0.12,
        "contractLengthMonths": 12,
        "earlyTerminationFee": 0.0,
        "renewablePercentage": 50.0,
        "supplierRating": 4.0,
        "monthlyFee": 0.0,
    }
    data.update(overrides)
    return parse_energy_plan(data)


@pytest.fixture
def make_plan() -> Callable[..., EnergyPlanBase]:
    """Factory fixture wrapping build_plan."""
    return build_plan


@pytest.fixture
def candidate_plans() -> List[EnergyPlanBase]:
    """A small catalog covering every contract type."""
    return [
        build_plan(planId="fixed-green", ratePerKwh=0.12, renewablePercentage=100.0,
                   supplierRating=4.5),
        build_plan(planId="fixed-cheap", ratePerKwh=0.105, renewablePercentage=10.0,
                   supplierRating=3.8, earlyTerminationFee=150.0),
        build_plan(planId="variable-flex", contractType="variable", ratePerKwh=0.11,
                   contractLengthMonths=0, renewablePercentage=30.0, supplierRating=3.5),
        build_plan(planId="indexed-hub", contractType="indexed", ratePerKwh=0.10,
                   contractLengthMonths=0, supplierRating=3.2, indexName="ERCOT North Hub"),
        build_plan(planId="hybrid-24", contractType="hybrid", ratePerKwh=0.115,
                   contractLengthMonths=24, supplierRating=4.2, earlyTerminationFee=200.0),
    ]


# ============================================================
# PREFERENCE / CURRENT PLAN FIXTURES
# ============================================================

@pytest.fixture
def preferences() -> UserPreferences:
    """Medium cost priority, 12-month flexibility, 50% renewable, 3.0 floor."""
    return UserPreferences(
        costSavingsPriority=CostSavingsPriority.MEDIUM,
        flexibilityPreferenceMonths=12,
        renewableEnergyPreference=50.0,
        supplierRatingPreference=3.0,
        earlyTerminationFeeTolerance=100.0,
    )


@pytest.fixture
def current_plan() -> CurrentPlan:
    """$0.13/kWh fixed plan ending June 2027 (17 whole months left), $150 exit fee."""
    return CurrentPlan(
        supplierName="Legacy Power",
        ratePerKwh=0.13,
        contractEndDate=date(2027, 6, 30),
        earlyTerminationFee=150.0,
        contractType=ContractType.FIXED,
    )


@pytest.fixture
def ranking_config() -> RankingConfig:
    """Default engine configuration."""
    return RankingConfig()


# ============================================================
# EXPLANATION GENERATOR FAKES
# ============================================================

class EchoExplanationGenerator:
    """Returns a short deterministic sentence per recommendation."""

    def __init__(self):
        self.calls: List[str] = []

    async def explain(self, explanation_input: ExplanationInput) -> str:
        self.calls.append(explanation_input.planId)
        return f"Generated explanation for {explanation_input.planId}"


class SlowExplanationGenerator:
    """Sleeps past any reasonable timeout; records cancellations."""

    def __init__(self, delay_seconds: float = 5.0):
        self.delay_seconds = delay_seconds
        self.cancelled = 0

    async def explain(self, explanation_input: ExplanationInput) -> str:
        try:
            await asyncio.sleep(self.delay_seconds)
        except asyncio.CancelledError:
            self.cancelled += 1
            raise
        return "too late"


class FailingExplanationGenerator:
    """Fails for the listed plan ids, echoes for the rest."""

    def __init__(self, failing_plan_ids: Sequence[str]):
        self.failing_plan_ids = set(failing_plan_ids)

    async def explain(self, explanation_input: ExplanationInput) -> str:
        if explanation_input.planId in self.failing_plan_ids:
            raise RuntimeError("model backend unavailable")
        return f"Generated explanation for {explanation_input.planId}"


@pytest.fixture
def echo_generator() -> EchoExplanationGenerator:
    return EchoExplanationGenerator()


@pytest.fixture
def slow_generator() -> SlowExplanationGenerator:
    return SlowExplanationGenerator()


@pytest.fixture
def make_failing_generator() -> Callable[..., FailingExplanationGenerator]:
    return FailingExplanationGenerator


# ============================================================
# API FIXTURES
# ============================================================

@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    """
    TestClient for the FastAPI app.

    Dependency overrides and the settings cache are reset after each test.
    """
    from sparksave.main import app

    get_settings.cache_clear()
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
    get_settings.cache_clear()
