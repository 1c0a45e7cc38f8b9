"""Planning engine - cash-flow simulation, goals, stress tests and what-if scenarios"""

import math
from datetime import date
from typing import Iterable, List, Optional, Sequence
from finance_engine.domain.aggregation import clamp
from finance_engine.domain.models import (
    CashFlowMonth,
    CashFlowSimulation,
    CashFlowSummary,
    CurrentState,
    FreedomDate,
    FreedomPhase,
    GoalTimeline,
    IncomeChange,
    MonthOverride,
    PlannedExpense,
    StressTestResult,
    WhatIfImpact,
    WhatIfResult,
    WhatIfScenario,
    WhatIfSnapshot,
)
from finance_engine.utils.date_utils import add_months

DISCRETIONARY_SHARE = 0.5  # portion of variable spend that can be cut in an emergency


def simulate_cash_flow(
    monthly_income: float,
    fixed_expenses: float = 0.0,
    average_variable: float = 0.0,
    emi_total: float = 0.0,
    months: int = 6,
    planned_expenses: Iterable[PlannedExpense] = (),
    income_changes: Iterable[IncomeChange] = (),
    overrides: Sequence[Optional[MonthOverride]] = (),
    start: date | None = None,
) -> CashFlowSimulation:
    """
    Project month-by-month cash flow.

    Requirements:
    - Income changes apply from their month onwards
    - Planned one-off expenses add to their month's expenses
    - overrides[m - 1] replaces month m's income and/or total expenses,
      for that month only
    - Running balance starts at 0; net flow < 0 marks a NEGATIVE month
    - Summary risk: LOW with no negative months, MEDIUM up to 2, else HIGH
    """
    start = start or date.today()
    planned_expenses = list(planned_expenses or [])
    changes = {change.month: change.new_income for change in income_changes or []}
    overrides = list(overrides or [])

    simulation: List[CashFlowMonth] = []
    running_balance = 0.0
    scheduled_income = monthly_income

    for month in range(1, months + 1):
        if month in changes:
            scheduled_income = changes[month]

        planned = sum(p.amount for p in planned_expenses if p.month == month)
        income = scheduled_income
        expenses = fixed_expenses + average_variable + emi_total + planned

        override = overrides[month - 1] if month <= len(overrides) else None
        is_overridden = False
        if override is not None:
            if override.income is not None:
                income = override.income
                is_overridden = True
            if override.expenses is not None:
                # Total for the month, planned items included
                expenses = override.expenses
                planned = 0.0
                is_overridden = True

        net_flow = income - expenses
        running_balance += net_flow

        simulation.append(
            CashFlowMonth(
                month=month,
                month_label=add_months(start, month).strftime("%b %y"),
                income=income,
                expenses=expenses,
                planned=planned,
                net_flow=net_flow,
                running_balance=running_balance,
                status="POSITIVE" if net_flow >= 0 else "NEGATIVE",
                is_overridden=is_overridden,
            )
        )

    negative_months = sum(1 for m in simulation if m.status == "NEGATIVE")
    if negative_months == 0:
        risk_level = "LOW"
    elif negative_months <= 2:
        risk_level = "MEDIUM"
    else:
        risk_level = "HIGH"

    return CashFlowSimulation(
        simulation=simulation,
        summary=CashFlowSummary(
            total_months=months,
            negative_months=negative_months,
            lowest_balance=min((m.running_balance for m in simulation), default=0.0),
            final_balance=running_balance,
            risk_level=risk_level,
        ),
    )


def calculate_goal_timeline(
    target: float,
    current: float,
    monthly_contribution: float,
    as_of: date | None = None,
) -> GoalTimeline:
    """Months of contributions needed to close the gap to a savings target"""
    remaining = target - current
    percent_complete = round(current * 100 / target) if target > 0 else 100

    if remaining <= 0:
        return GoalTimeline(
            achievable=True,
            already_achieved=True,
            months_remaining=0,
            percent_complete=percent_complete,
        )

    if monthly_contribution <= 0:
        return GoalTimeline(achievable=False, percent_complete=percent_complete, reason="No monthly contribution")

    months = math.ceil(remaining / monthly_contribution)
    return GoalTimeline(
        achievable=True,
        months_remaining=months,
        target_date=add_months(as_of or date.today(), months),
        total_contribution=months * monthly_contribution,
        percent_complete=percent_complete,
    )


def calculate_financial_freedom_date(
    total_debt: float = 0.0,
    monthly_debt_payment: float = 0.0,
    monthly_savings: float = 0.0,
    target_emergency_fund: float = 0.0,
    current_emergency_fund: float = 0.0,
    as_of: date | None = None,
) -> FreedomDate:
    """
    Two sequential phases: fill the emergency fund, then clear all debt.

    A phase that cannot progress (no savings, no debt payment) counts as 0 months.
    """
    gap = target_emergency_fund - current_emergency_fund
    fund_months = math.ceil(gap / monthly_savings) if gap > 0 and monthly_savings > 0 else 0
    debt_months = math.ceil(total_debt / monthly_debt_payment) if total_debt > 0 and monthly_debt_payment > 0 else 0

    total_months = fund_months + debt_months

    return FreedomDate(
        phases=[
            FreedomPhase("Emergency Fund", fund_months, "COMPLETE" if fund_months == 0 else "PENDING"),
            FreedomPhase("Debt Freedom", debt_months, "COMPLETE" if debt_months == 0 else "PENDING"),
        ],
        total_months=total_months,
        freedom_date=add_months(as_of or date.today(), total_months),
        years_to_freedom=round(total_months / 12, 1),
        is_already_free=total_months == 0,
    )


def perform_stress_test(
    monthly_income: float,
    fixed_expenses: float = 0.0,
    variable_expenses: float = 0.0,
    emi_total: float = 0.0,
    emergency_fund: float = 0.0,
    income_drop_percent: float = 30.0,
) -> StressTestResult:
    """
    Shock income by a percentage and measure how long the emergency fund lasts.

    survival_months is None when reduced income still covers expenses.
    Risk: ≥6 months LOW, ≥3 MEDIUM, else HIGH.
    """
    reduced_income = monthly_income * (1 - income_drop_percent / 100)
    total_expenses = fixed_expenses + variable_expenses + emi_total
    shortfall = total_expenses - reduced_income

    survival_months = math.floor(emergency_fund / shortfall) if shortfall > 0 else None

    minimum_needed = fixed_expenses + emi_total + variable_expenses * (1 - DISCRETIONARY_SHARE)
    can_survive_with_cuts = reduced_income >= minimum_needed

    if survival_months is None or survival_months >= 6:
        risk_level = "LOW"
    elif survival_months >= 3:
        risk_level = "MEDIUM"
    else:
        risk_level = "HIGH"

    return StressTestResult(
        scenario=f"{income_drop_percent:g}% Income Drop",
        reduced_income=round(reduced_income),
        total_expenses=round(total_expenses),
        monthly_shortfall=max(0, round(shortfall)),
        survival_months=survival_months,
        minimum_expenses=round(minimum_needed),
        cuttable=round(variable_expenses * DISCRETIONARY_SHARE),
        can_survive_with_cuts=can_survive_with_cuts,
        risk_level=risk_level,
        recommendations=_stress_recommendations(survival_months, can_survive_with_cuts, emergency_fund),
    )


def _stress_recommendations(survival_months: Optional[int], can_survive: bool, emergency_fund: float) -> List[str]:
    recommendations = []
    indefinite = survival_months is None

    if not indefinite and survival_months < 3:
        recommendations.append("Build emergency fund to at least 3 months of expenses")
    if not indefinite and survival_months < 6:
        recommendations.append("Target 6 months of expenses in emergency fund")
    if not can_survive:
        recommendations.append("Identify discretionary expenses that can be cut in emergency")
    if emergency_fund == 0:
        recommendations.append("Start emergency fund with a small monthly auto-transfer")
    if not recommendations:
        recommendations.append("Good stress resilience! Maintain current savings rate.")
    return recommendations


def analyze_what_if(scenario: WhatIfScenario, current_state: CurrentState) -> WhatIfResult:
    """
    Compare the current month against one with the scenario's changes applied.

    Health delta approximation: savings-rate change × 50, minus the new EMI's
    share of income × 30. The resulting score is clamped to [0, 100].
    """
    income = current_state.monthly_income
    expenses = current_state.monthly_expenses
    savings = income - expenses

    new_income = income + scenario.income_change
    new_expenses = expenses + scenario.expense_change + scenario.new_emi
    new_savings = new_income - new_expenses
    net_worth = current_state.current_savings + scenario.lump_sum_savings - scenario.lump_sum_expense

    old_rate = savings / income if income > 0 else 0.0
    new_rate = new_savings / new_income if new_income > 0 else 0.0
    health_impact = (new_rate - old_rate) * 50

    if scenario.new_emi > 0 and new_income > 0:
        health_impact -= (scenario.new_emi / new_income) * 30

    new_health = clamp(round(current_state.health_score + health_impact), 0, 100)

    return WhatIfResult(
        before=WhatIfSnapshot(
            monthly_income=income,
            monthly_expenses=expenses,
            monthly_savings=savings,
            health_score=current_state.health_score,
        ),
        after=WhatIfSnapshot(
            monthly_income=new_income,
            monthly_expenses=new_expenses,
            monthly_savings=new_savings,
            health_score=new_health,
            net_worth=net_worth,
        ),
        impact=WhatIfImpact(
            income_change=scenario.income_change,
            expense_change=scenario.expense_change + scenario.new_emi,
            savings_change=new_savings - savings,
            health_score_change=new_health - current_state.health_score,
            recommendation=_what_if_recommendation(new_savings, new_health, current_state.health_score),
        ),
    )


def _what_if_recommendation(new_savings: float, new_health: float, old_health: float) -> str:
    if new_savings < 0:
        return "This scenario leads to negative cash flow. Not recommended."
    if new_health < old_health - 10:
        return "Significant health score drop. Consider alternatives."
    if new_health >= old_health:
        return "This scenario maintains or improves your financial health."
    return "Minor impact. Proceed with caution."
