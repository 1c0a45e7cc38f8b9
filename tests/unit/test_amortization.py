"""Unit tests for EMI, rate inference and amortization schedules"""

import pytest
from datetime import date
from finance_engine.domain.amortization import (
    RATE_SEARCH_ITERATIONS,
    RATE_SEARCH_TOLERANCE,
    calculate_amortization_schedule,
    calculate_emi,
    calculate_interest_rate,
    calculate_prepayment_impact,
    prioritize_loans,
)
from finance_engine.domain.models import LoanSummary


def test_calculate_emi_reducing_balance():
    """Test standard EMI formula at 12% over 12 months"""
    # r = 0.01, E = 100000 * 0.01 * 1.01^12 / (1.01^12 - 1) = 8884.88
    assert calculate_emi(100000, 12, 12) == 8885


def test_calculate_emi_zero_rate_splits_principal():
    """Test interest-free loans fall back to principal / months"""
    assert calculate_emi(120000, 0, 12) == 10000
    assert calculate_emi(120000, -5, 12) == 10000


def test_calculate_emi_invalid_inputs_return_zero():
    """Test non-positive principal or term returns 0"""
    assert calculate_emi(0, 10, 12) == 0
    assert calculate_emi(-5000, 10, 12) == 0
    assert calculate_emi(10000, 10, 0) == 0


def test_interest_rate_round_trip():
    """Test EMI recomputed from the inferred rate matches the original EMI"""
    rate = calculate_interest_rate(100000, 9000, 12)

    assert 14 < rate < 15
    assert abs(calculate_emi(100000, rate, 12) - 9000) <= 1


@pytest.mark.parametrize("principal,emi,months", [(50000, 4500, 12), (60000, 2000, 36), (20000, 1000, 24)])
def test_interest_rate_round_trip_various_loans(principal, emi, months):
    """Test round-trip stability across loan sizes and terms"""
    rate = calculate_interest_rate(principal, emi, months)
    assert abs(calculate_emi(principal, rate, months) - emi) <= 1


def test_interest_rate_invalid_inputs_return_zero():
    """Test rate inference fails gracefully"""
    assert calculate_interest_rate(0, 9000, 12) == 0
    assert calculate_interest_rate(100000, 0, 12) == 0
    assert calculate_interest_rate(100000, 9000, 0) == 0
    assert calculate_interest_rate(-100000, 9000, 12) == 0


def test_interest_rate_search_is_bounded():
    """Test an unreachable EMI still terminates at the search ceiling"""
    rate = calculate_interest_rate(1000, 10_000_000, 12)
    assert 0 < rate <= 1200


def test_search_constants():
    """Test bisection limits are explicit"""
    assert RATE_SEARCH_ITERATIONS == 50
    assert RATE_SEARCH_TOLERANCE == 0.001


def test_schedule_with_explicit_emi():
    """Test principal 120,000 repaid at 11,000 for 12 months"""
    result = calculate_amortization_schedule(120000, None, 12, date(2024, 1, 15), emi=11000)

    assert result.total_interest == 12000
    assert result.total_payment == 132000
    assert result.monthly_emi == 11000
    assert len(result.schedule) == 12
    assert result.schedule[-1].balance == 0
    assert sum(row.principal for row in result.schedule) == pytest.approx(120000, abs=1)
    # Inferred rate is roughly 18% a year
    assert 17 < result.annual_rate < 19


def test_schedule_from_rate():
    """Test EMI is derived from the rate when none is supplied"""
    result = calculate_amortization_schedule(100000, 12, 12, date(2024, 1, 15))

    assert result.monthly_emi == pytest.approx(8884.88, abs=0.01)
    assert len(result.schedule) == 12
    assert result.schedule[0].interest == pytest.approx(1000)
    assert result.schedule[0].principal == pytest.approx(7884.88, abs=0.01)
    assert result.schedule[-1].balance == 0
    assert result.total_interest == pytest.approx(result.monthly_emi * 12 - 100000, abs=1)


@pytest.mark.parametrize(
    "principal,rate,months",
    [(100000, 10.5, 24), (500000, 8.75, 60), (25000, 0, 10), (2000000, 9, 240)],
)
def test_schedule_invariants(principal, rate, months):
    """Test schedule never overruns the term and fully repays the principal"""
    result = calculate_amortization_schedule(principal, rate, months, date(2024, 1, 1))

    assert len(result.schedule) <= months
    assert result.schedule[-1].balance == 0
    assert sum(row.principal for row in result.schedule) == pytest.approx(principal, abs=1)
    assert all(row.principal >= 0 and row.balance >= 0 for row in result.schedule)


def test_schedule_dates_clamp_to_month_end():
    """Test payment dates advance whole months from the start date"""
    result = calculate_amortization_schedule(30000, 0, 3, date(2024, 1, 31))

    assert [row.date for row in result.schedule] == [date(2024, 2, 29), date(2024, 3, 31), date(2024, 4, 30)]


def test_schedule_invalid_loan_is_empty():
    """Test a zero principal yields an empty schedule"""
    result = calculate_amortization_schedule(0, 10, 12, date(2024, 1, 1))

    assert result.schedule == []
    assert result.total_interest == 0


def test_prioritize_loans_prefers_expensive_short_loans(loans):
    """Test priority = rate × monthly / remaining"""
    result = prioritize_loans(loans)

    assert result.recommended_id == "personal"
    assert result.name == "Personal Loan"
    assert "Highest interest (16%)" in result.reason
    assert result.total_monthly == 21000
    assert result.total_remaining == 340000
    assert result.count == 2
    assert [p.loan_id for p in result.priority_order] == ["personal", "car"]
    assert result.priority_order[0].months_left == 5
    assert result.priority_order[0].interest_savable == 1333


def test_prioritize_loans_without_rate():
    """Test loans with no recorded rate assume 12% and favor closing small balances"""
    result = prioritize_loans([LoanSummary("Gold Loan", principal=50000, monthly_amount=5000)])

    top = result.priority_order[0]
    assert top.interest_rate == 12
    assert top.rate_assumed is True
    assert top.remaining_amount == 50000
    assert result.reason == "Lowest balance. Close quickly to free cash flow."


def test_prioritize_loans_empty():
    assert prioritize_loans([]) is None


def test_prepayment_impact():
    """Test lump-sum prepayment shortens the term at constant EMI"""
    # Outstanding = PV of 24 × 10,000 at 1%/month = 212,434; after 50,000 -> 18 months
    impact = calculate_prepayment_impact(10000, 24, 50000, annual_rate=12)

    assert impact.impact == "CALCULATED"
    assert impact.original_months == 24
    assert impact.new_months == 18
    assert impact.months_saved == 6
    assert impact.interest_saved > 0
    assert impact.recommendation == "Significant savings! Prepayment recommended."


def test_prepayment_clearing_the_loan():
    """Test a prepayment above the outstanding balance closes the loan"""
    impact = calculate_prepayment_impact(5000, 10, 100000, annual_rate=10)

    assert impact.new_months == 0
    assert impact.months_saved == 10


def test_prepayment_invalid_inputs():
    """Test invalid prepayment data reports no impact"""
    assert calculate_prepayment_impact(10000, 24, 0).impact == "NONE"
    assert calculate_prepayment_impact(10000, 0, 5000).impact == "NONE"
