"""Pytest fixtures for testing"""

import pytest
from datetime import date
from finance_engine.domain.models import Budget, CardSnapshot, CategoryAmount, LoanSummary, MonthlyHistory


@pytest.fixture
def today() -> date:
    """Fixed reference date so date-dependent results are reproducible"""
    return date(2024, 3, 10)


@pytest.fixture
def steady_history() -> list[CategoryAmount]:
    """Ten months of identical Food spending"""
    return [CategoryAmount("Food", 5000) for _ in range(10)]


@pytest.fixture
def monthly_history() -> list[MonthlyHistory]:
    """Four months of spending across a stable and a growing category"""
    return [
        MonthlyHistory("2024-01", [CategoryAmount("Rent", 15000), CategoryAmount("Dining", 2000)]),
        MonthlyHistory("2024-02", [CategoryAmount("Rent", 15000), CategoryAmount("Dining", 2200)]),
        MonthlyHistory("2024-03", [CategoryAmount("Rent", 15000), CategoryAmount("Dining", 3000)]),
        MonthlyHistory("2024-04", [CategoryAmount("Rent", 15000), CategoryAmount("Dining", 3400)]),
    ]


@pytest.fixture
def budgets() -> list[Budget]:
    """Budgets with one underused, one overspent and one protected category"""
    return [
        Budget("Entertainment", 5000),
        Budget("Dining", 4000),
        Budget("House Rent", 15000),
    ]


@pytest.fixture
def loans() -> list[LoanSummary]:
    return [
        LoanSummary("Car Loan", principal=500000, monthly_amount=12000, remaining_amount=300000, interest_rate=9.5, loan_id="car"),
        LoanSummary("Personal Loan", principal=100000, monthly_amount=9000, remaining_amount=40000, interest_rate=16, loan_id="personal"),
    ]


@pytest.fixture
def cards() -> list[CardSnapshot]:
    return [
        CardSnapshot("Rewards Card", limit=100000, current_spend=10000, billing_day=5, due_day=25, rewards={"dining": 3}),
        CardSnapshot("Basic Card", limit=50000, current_spend=30000, billing_day=20, due_day=12),
    ]

