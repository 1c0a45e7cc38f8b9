"""Loan math: EMI calculation, rate inference and amortization schedules"""

import math
from datetime import date
from typing import Iterable, List, Optional
from finance_engine.domain.models import (
    AmortizationSchedule,
    EMIOptimization,
    LoanPriority,
    LoanSummary,
    PrepaymentImpact,
    ScheduleRow,
)
from finance_engine.utils.date_utils import add_months

# Bisection bounds for implied-rate search
RATE_SEARCH_ITERATIONS = 50
RATE_SEARCH_TOLERANCE = 0.001  # max EMI mismatch accepted as a match
RATE_SEARCH_LOW = 0.0
RATE_SEARCH_HIGH = 1.0  # 100% per month

# Assumed annual rate for loans recorded without one
DEFAULT_LOAN_RATE = 12.0
DEFAULT_PREPAYMENT_RATE = 10.0

# Remaining balance below this is treated as paid off
BALANCE_EPSILON = 0.005


def _monthly_rate(annual_rate_percent: float | None) -> float:
    return (annual_rate_percent or 0.0) / 12 / 100


def _emi_for_monthly_rate(principal: float, monthly_rate: float, months: int) -> float:
    """E = P·r·(1+r)^n / ((1+r)^n − 1), or P/n when there is no interest"""
    if monthly_rate <= 0:
        return principal / months
    try:
        growth = (1 + monthly_rate) ** months
    except OverflowError:
        # (1+r)^n / ((1+r)^n - 1) -> 1 for very long terms
        return principal * monthly_rate
    return principal * monthly_rate * growth / (growth - 1)


def _solve_monthly_rate(principal: float, emi: float, months: int) -> float:
    """
    Find the monthly rate whose EMI matches `emi` by bisection.

    The search is bounded: at most RATE_SEARCH_ITERATIONS halvings of
    [RATE_SEARCH_LOW, RATE_SEARCH_HIGH], stopping early once the computed EMI
    is within RATE_SEARCH_TOLERANCE of the target.
    """
    low, high = RATE_SEARCH_LOW, RATE_SEARCH_HIGH
    guess = 0.0

    for _ in range(RATE_SEARCH_ITERATIONS):
        mid = (low + high) / 2
        calculated = _emi_for_monthly_rate(principal, mid, months)

        if abs(calculated - emi) < RATE_SEARCH_TOLERANCE:
            return mid

        if calculated > emi:
            high = mid
        else:
            low = mid
        guess = mid

    return guess


def calculate_emi(principal: float, annual_rate_percent: float, months: int) -> float:
    """
    Standard reducing-balance EMI, rounded to whole currency units.

    Falls back to an interest-free split (principal / months) when the rate
    is zero or negative. Returns 0 for a non-positive principal or term.
    """
    months = int(months or 0)
    if not principal or principal <= 0 or months <= 0:
        return 0.0

    emi = _emi_for_monthly_rate(principal, _monthly_rate(annual_rate_percent), months)
    return float(round(emi))


def calculate_interest_rate(principal: float, emi: float, months: int) -> float:
    """
    Infer the annual interest rate (percent) implied by a loan's EMI.

    Inverse of calculate_emi, solved by bounded bisection over the monthly
    rate. Returns 0 when any input is non-positive.

    Example:
        calculate_interest_rate(100000, 9000, 12) -> ~14.45
        calculate_emi(100000, 14.45, 12)          -> 9000
    """
    months = int(months or 0)
    if not principal or not emi or principal <= 0 or emi <= 0 or months <= 0:
        return 0.0

    monthly = _solve_monthly_rate(principal, emi, months)
    return round(monthly * 12 * 100, 2)


def calculate_amortization_schedule(
    principal: float,
    annual_rate: float | None,
    months: int,
    start_date: date,
    emi: float | None = None,
) -> AmortizationSchedule:
    """
    Generate a month-by-month amortization ledger.

    Requirements:
    - Explicit EMI: total interest is emi × months − principal; when no rate
      is known it is inferred with the same bisection as calculate_interest_rate
    - No EMI: computed from the rate (interest-free split when rate ≤ 0)
    - Interest = balance × monthly rate, principal part = EMI − interest
    - Final month absorbs rounding so the closing balance is exactly 0
    - Payment dates are whole calendar months after start_date

    Returns:
        AmortizationSchedule with rows of {month, date, emi, interest, principal, balance}
    """
    months = int(months or 0)
    rate_percent = annual_rate or 0.0

    if not principal or principal <= 0 or months <= 0:
        return AmortizationSchedule(
            schedule=[], total_interest=0.0, total_payment=0.0, monthly_emi=0.0, annual_rate=rate_percent
        )

    monthly_rate = _monthly_rate(rate_percent)
    explicit_emi = emi is not None and emi > 0

    if explicit_emi:
        if monthly_rate <= 0:
            monthly_rate = _solve_monthly_rate(principal, emi, months)
        installment = emi
    else:
        installment = _emi_for_monthly_rate(principal, monthly_rate, months)

    schedule = _build_schedule(principal, monthly_rate, months, installment, start_date)

    if explicit_emi:
        total_interest = installment * months - principal
    else:
        total_interest = sum(row.interest for row in schedule)

    return AmortizationSchedule(
        schedule=schedule,
        total_interest=total_interest,
        total_payment=principal + total_interest,
        monthly_emi=installment,
        annual_rate=round(monthly_rate * 12 * 100, 2),
    )


def _build_schedule(
    principal: float,
    monthly_rate: float,
    months: int,
    installment: float,
    start_date: date,
) -> List[ScheduleRow]:
    balance = principal
    rows: List[ScheduleRow] = []

    for month in range(1, months + 1):
        interest = balance * monthly_rate
        principal_part = installment - interest

        # Last installment clears whatever is left
        if month == months:
            principal_part = balance
            interest = max(installment - principal_part, 0.0)

        principal_part = min(max(principal_part, 0.0), balance)
        balance -= principal_part

        if balance < BALANCE_EPSILON:
            principal_part += balance
            balance = 0.0

        rows.append(
            ScheduleRow(
                month=month,
                date=add_months(start_date, month),
                emi=installment,
                interest=interest,
                principal=principal_part,
                balance=balance,
            )
        )

        if balance == 0.0:
            break

    return rows


def prioritize_loans(loans: Iterable[LoanSummary]) -> Optional[EMIOptimization]:
    """
    Rank loans for prepayment.

    Priority = annual rate × (monthly installment / remaining amount), so
    expensive loans close to payoff come first. Loans without a recorded
    rate are assumed to carry DEFAULT_LOAN_RATE.
    """
    loans = list(loans)
    if not loans:
        return None

    ranked: List[LoanPriority] = []
    for loan in loans:
        rate = loan.interest_rate or DEFAULT_LOAN_RATE
        remaining = loan.remaining_amount or loan.principal
        monthly = loan.monthly_amount or 0.0
        months_left = math.ceil(remaining / monthly) if remaining > 0 and monthly > 0 else 0

        # Rough estimate: half the simple interest on what is still owed
        interest_savable = remaining * (rate / 100) * (months_left / 12) * 0.5

        ranked.append(
            LoanPriority(
                name=loan.name or "EMI",
                loan_id=loan.loan_id,
                interest_rate=rate,
                remaining_amount=remaining,
                months_left=months_left,
                interest_savable=round(interest_savable),
                priority=rate * (monthly / (remaining or 1)),
                rate_assumed=not loan.interest_rate,
            )
        )

    ranked.sort(key=lambda l: l.priority, reverse=True)
    top = ranked[0]

    if not top.rate_assumed:
        reason = f"Highest interest ({top.interest_rate:g}%). Save {top.interest_savable:,.0f} by prepaying."
    else:
        reason = "Lowest balance. Close quickly to free cash flow."

    return EMIOptimization(
        recommended_id=top.loan_id,
        name=top.name,
        reason=reason,
        total_monthly=sum(l.monthly_amount or 0.0 for l in loans),
        total_remaining=sum(l.remaining_amount for l in ranked),
        count=len(loans),
        priority_order=ranked,
    )


def calculate_prepayment_impact(
    monthly_amount: float,
    remaining_months: int,
    prepayment_amount: float,
    annual_rate: float | None = None,
) -> PrepaymentImpact:
    """
    Estimate how a lump-sum prepayment shortens a loan at unchanged EMI.

    The outstanding principal is the present value of the remaining
    installments; the new term is the number of installments needed to
    clear the reduced balance.
    """
    remaining_months = int(remaining_months or 0)
    if prepayment_amount <= 0 or remaining_months <= 0 or monthly_amount <= 0:
        return PrepaymentImpact(impact="NONE", recommendation="Invalid prepayment or EMI data")

    monthly_rate = _monthly_rate(DEFAULT_PREPAYMENT_RATE if annual_rate is None else annual_rate)
    outstanding = _present_value(monthly_amount, monthly_rate, remaining_months)
    new_balance = max(0.0, outstanding - prepayment_amount)
    new_months = min(_months_to_repay(new_balance, monthly_rate, monthly_amount), remaining_months)
    months_saved = remaining_months - new_months

    interest_before = monthly_amount * remaining_months - outstanding
    interest_after = monthly_amount * new_months - new_balance if new_months > 0 else 0.0
    interest_saved = max(0.0, interest_before - max(0.0, interest_after))

    return PrepaymentImpact(
        impact="CALCULATED",
        original_months=remaining_months,
        new_months=new_months,
        months_saved=months_saved,
        interest_saved=round(interest_saved),
        recommendation=(
            "Significant savings! Prepayment recommended."
            if months_saved >= 3
            else "Minimal impact. Consider investing instead."
        ),
    )


def _present_value(payment: float, monthly_rate: float, months: int) -> float:
    if monthly_rate <= 0:
        return payment * months
    return payment * (1 - (1 + monthly_rate) ** -months) / monthly_rate


def _months_to_repay(balance: float, monthly_rate: float, payment: float) -> int:
    if balance <= BALANCE_EPSILON:
        return 0
    if monthly_rate <= 0:
        return math.ceil(balance / payment)
    # n = -ln(1 - rB/E) / ln(1 + r); payment always covers interest here
    n = -math.log(1 - monthly_rate * balance / payment) / math.log(1 + monthly_rate)
    return math.ceil(n - 1e-9)
