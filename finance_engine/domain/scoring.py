"""Health scoring engine - composite score, dimensions and stress signals"""

from typing import Dict, List, Sequence
from finance_engine.domain.aggregation import clamp
from finance_engine.domain.models import (
    Budget,
    Dimension,
    HealthBreakdown,
    HealthDimensions,
    HealthReport,
    SafeToSpend,
    SpendingRuleAnalysis,
    SpendingRuleBucket,
    StressReport,
    StressSignal,
    Suggestion,
)

# Risk bands shared by the composite score and the dimensions view
RISK_BANDS = [(80, "EXCELLENT"), (65, "GOOD"), (50, "STABLE"), (35, "WARNING")]

EMI_RATIO_SAFE = 0.3
EMI_PENALTY_CAP = 60
VARIABLE_PENALTY_CAP = 20
BORROW_RATIO_LIMIT = 0.2
BORROW_FLAT_PENALTY = 15
CC_UTILIZATION_SAFE = 0.3
CC_PENALTY_CAP = 50
VELOCITY_RATIO_LIMIT = 0.6
VELOCITY_PENALTY = 10

LOW_SAVINGS_PENALTY = 20
SAVINGS_BONUS = 5
EXTRA_SAVINGS_BONUS = 10

DIMENSION_WEIGHTS = {
    "liquidity": 0.2,
    "stability": 0.2,
    "risk": 0.25,
    "discipline": 0.15,
    "growth": 0.2,
}

DIMENSION_LABELS = {
    "liquidity": "Emergency Fund",
    "stability": "Fixed Load",
    "risk": "Credit Risk",
    "discipline": "Budget Adherence",
    "growth": "Wealth Growth",
}


def risk_level_for_score(score: float) -> str:
    for minimum, label in RISK_BANDS:
        if score >= minimum:
            return label
    return "CRITICAL"


def calculate_financial_health(
    income: float,
    fixed_total: float,
    variable_total: float,
    emi_total: float,
    credit_card_total: float,
    pending_borrow_total: float = 0.0,
    credit_limit: float = 0.0,
    days_elapsed: int = 15,
    days_in_month: int = 30,
    stack_savings_bonuses: bool = False,
) -> HealthReport:
    """
    Calculate the composite financial health score (0-100).

    Starts at 100 and applies independent adjustments:
    - EMI ratio > 30%: quadratic penalty min(60, ((ratio - 0.3)·10)²·1.5)
    - Variable spend: linear penalty min(ratio·40, 20)
    - Pending borrows: flat 15 above 20% of income, else ratio·60
    - Savings rate: <10% costs 20; ≥20% earns 5. With stack_savings_bonuses,
      ≥30% earns another 10; otherwise the ≥30% bonus is unreachable because
      the ≥20% bonus is checked first.
    - Card utilization > 30%: min(50, ((util - 0.3)·10)^1.8)
    - Projected variable spend > 60% of income: flat 10
    """
    total_expense = fixed_total + variable_total + emi_total + credit_card_total
    savings = income - total_expense
    savings_percentage = savings * 100 / income if income > 0 else 0.0

    daily_velocity = round(variable_total / days_elapsed) if days_elapsed > 0 else 0
    projected_month_end = fixed_total + emi_total + daily_velocity * days_in_month + credit_card_total

    score = 100.0

    # No income means every EMI is unaffordable
    emi_ratio = emi_total / income if income > 0 else 1.0
    if emi_ratio > EMI_RATIO_SAFE:
        excess = emi_ratio - EMI_RATIO_SAFE
        score -= min(EMI_PENALTY_CAP, (excess * 10) ** 2 * 1.5)

    variable_ratio = variable_total / income if income > 0 else 1.0
    score -= min(variable_ratio * 40, VARIABLE_PENALTY_CAP)

    borrow_ratio = pending_borrow_total / income if income > 0 else 0.0
    score -= BORROW_FLAT_PENALTY if borrow_ratio > BORROW_RATIO_LIMIT else borrow_ratio * 60

    score += _savings_adjustment(savings_percentage, stack_savings_bonuses)

    cc_utilization = credit_card_total / credit_limit if credit_limit > 0 else 0.0
    if cc_utilization > CC_UTILIZATION_SAFE:
        excess = cc_utilization - CC_UTILIZATION_SAFE
        score -= min(CC_PENALTY_CAP, (excess * 10) ** 1.8)

    velocity_ratio = (daily_velocity * days_in_month) / income if income > 0 else 0.0
    if velocity_ratio > VELOCITY_RATIO_LIMIT:
        score -= VELOCITY_PENALTY

    health_score = int(clamp(round(score), 0, 100))

    suggestions = _health_suggestions(
        income=income,
        total_expense=total_expense,
        fixed_total=fixed_total,
        emi_total=emi_total,
        credit_card_total=credit_card_total,
        projected_month_end=projected_month_end,
        emi_ratio=emi_ratio,
        cc_utilization=cc_utilization,
        savings_percentage=savings_percentage,
        days_left=days_in_month - days_elapsed,
        health_score=health_score,
    )

    return HealthReport(
        total_income=income,
        total_expense=total_expense,
        breakdown=HealthBreakdown(
            fixed=fixed_total,
            variable=variable_total,
            emi=emi_total,
            credit_card=credit_card_total,
        ),
        savings=savings,
        savings_percentage=round(savings_percentage, 1),
        health_score=health_score,
        risk_level=risk_level_for_score(health_score),
        daily_velocity=daily_velocity,
        projected_month_end=projected_month_end,
        budget_analysis=analyze_spending_rule(
            income,
            needs=fixed_total + emi_total,
            wants=variable_total + credit_card_total,
            savings=savings,
        ),
        suggestions=suggestions,
    )


def _savings_adjustment(savings_percentage: float, stack_bonuses: bool) -> float:
    if savings_percentage < 10:
        return -LOW_SAVINGS_PENALTY

    if stack_bonuses:
        bonus = 0.0
        if savings_percentage >= 20:
            bonus += SAVINGS_BONUS
        if savings_percentage >= 30:
            bonus += EXTRA_SAVINGS_BONUS
        return bonus

    if savings_percentage >= 20:
        return SAVINGS_BONUS
    elif savings_percentage >= 30:
        return EXTRA_SAVINGS_BONUS
    return 0.0


def _health_suggestions(
    income: float,
    total_expense: float,
    fixed_total: float,
    emi_total: float,
    credit_card_total: float,
    projected_month_end: float,
    emi_ratio: float,
    cc_utilization: float,
    savings_percentage: float,
    days_left: int,
    health_score: int,
) -> List[Suggestion]:
    suggestions = []

    if total_expense > income:
        suggestions.append(
            Suggestion(
                type="CRITICAL",
                message="Expenses exceed income! Immediate action needed.",
                action=f"Reduce variable spending by {total_expense - income:,.0f}",
                priority=1,
            )
        )

    if projected_month_end > income * 0.95:
        daily_allowance = (income - fixed_total - emi_total - credit_card_total) / max(1, days_left)
        suggestions.append(
            Suggestion(
                type="WARNING",
                message=f"At current rate, you'll spend {projected_month_end:,.0f} this month.",
                action=f"Reduce daily spending to {daily_allowance:,.0f}",
                priority=2,
            )
        )

    if emi_ratio > 0.4:
        suggestions.append(
            Suggestion(
                type="WARNING",
                message=f"EMIs consuming {emi_ratio * 100:.0f}% of income.",
                action="Consider prepaying smallest loan to free up cash flow.",
                priority=3,
            )
        )

    if cc_utilization > 0.5:
        suggestions.append(
            Suggestion(
                type="WARNING",
                message=f"Credit card at {cc_utilization * 100:.0f}% utilization.",
                action="Pay down CC balance to below 30% for better credit score.",
                priority=3,
            )
        )

    if 0 <= savings_percentage < 20:
        suggestions.append(
            Suggestion(
                type="TIP",
                message=f"Savings at {savings_percentage:.0f}%. Target: 20-30%.",
                action=f"Set up auto-transfer of {income * 0.1:,.0f} to savings.",
                priority=4,
            )
        )

    if health_score >= 80 and not suggestions:
        suggestions.append(
            Suggestion(
                type="SUCCESS",
                message="Excellent financial health!",
                action="Consider investing your surplus for long-term growth.",
                priority=5,
            )
        )

    suggestions.sort(key=lambda s: s.priority)
    return suggestions


def analyze_spending_rule(income: float, needs: float, wants: float, savings: float) -> SpendingRuleAnalysis:
    """
    Measure a month against the 50/30/20 rule.

    Overall score starts at 100: needs over target costs 30, wants over
    target 20, savings under target 25. Balanced means a score of 75+.
    """

    def share(amount: float) -> float:
        return round(amount * 100 / income) if income > 0 else 0

    needs_target = income * 0.5
    wants_target = income * 0.3
    savings_target = income * 0.2

    needs_bucket = SpendingRuleBucket(
        label="Needs (50%)",
        target=needs_target,
        actual=needs,
        percentage=share(needs),
        status="OK" if needs <= needs_target else "OVER",
        difference=round(needs_target - needs),
    )
    wants_bucket = SpendingRuleBucket(
        label="Wants (30%)",
        target=wants_target,
        actual=wants,
        percentage=share(wants),
        status="OK" if wants <= wants_target else "OVER",
        difference=round(wants_target - wants),
    )
    savings_bucket = SpendingRuleBucket(
        label="Savings (20%)",
        target=savings_target,
        actual=savings,
        percentage=share(savings),
        status="OK" if savings >= savings_target else "UNDER",
        difference=round(savings - savings_target),
    )

    score = 100
    if needs_bucket.status == "OVER":
        score -= 30
    if wants_bucket.status == "OVER":
        score -= 20
    if savings_bucket.status == "UNDER":
        score -= 25

    return SpendingRuleAnalysis(
        needs=needs_bucket,
        wants=wants_bucket,
        savings=savings_bucket,
        overall_score=max(0, score),
        is_balanced=score >= 75,
    )


def calculate_health_dimensions(
    total_income: float = 0.0,
    total_expenses: float = 0.0,
    fixed_expenses: float = 0.0,
    emi_total: float = 0.0,
    credit_card_spent: float = 0.0,
    credit_limit: float = 0.0,
    account_balances: float = 0.0,
    savings_total: float = 0.0,
    budgets: Sequence[Budget] = (),
    actual_spending: Dict[str, float] | None = None,
) -> HealthDimensions:
    """
    Score five independent axes (0-100 each) and combine them.

    Weights: liquidity 0.2, stability 0.2, risk 0.25, discipline 0.15, growth 0.2
    """
    actual_spending = actual_spending or {}

    scores = {
        "liquidity": _liquidity_score(account_balances + savings_total, total_expenses),
        "stability": _stability_score(fixed_expenses + emi_total, total_income),
        "risk": _risk_score(credit_card_spent, credit_limit, emi_total, total_income),
        "discipline": _discipline_score(budgets, actual_spending),
        "growth": _growth_score(total_income, total_expenses),
    }

    overall = round(sum(scores[name] * weight for name, weight in DIMENSION_WEIGHTS.items()))

    return HealthDimensions(
        dimensions={name: Dimension(score=score, label=DIMENSION_LABELS[name]) for name, score in scores.items()},
        overall_score=overall,
        risk_level=risk_level_for_score(overall),
    )


def _liquidity_score(liquid_assets: float, monthly_expenses: float) -> int:
    # Months of expenses the liquid assets cover
    months_covered = liquid_assets / (monthly_expenses or 1)

    if months_covered >= 6:
        score = 100.0
    elif months_covered >= 3:
        score = 70 + (months_covered - 3) * 10
    elif months_covered >= 1:
        score = 40 + (months_covered - 1) * 15
    else:
        score = months_covered * 40

    return int(clamp(round(score), 0, 100))


def _stability_score(committed: float, income: float) -> int:
    fixed_ratio = committed * 100 / income if income > 0 else 100.0

    if fixed_ratio > 70:
        return 20
    if fixed_ratio > 60:
        return 40
    if fixed_ratio > 50:
        return 60
    if fixed_ratio > 40:
        return 80
    return 100


def _risk_score(cc_spent: float, credit_limit: float, emi_total: float, income: float) -> int:
    cc_utilization = cc_spent * 100 / credit_limit if credit_limit > 0 else 0.0
    emi_ratio = emi_total * 100 / income if income > 0 else 0.0

    score = 100
    if cc_utilization > 70:
        score -= 30
    elif cc_utilization > 50:
        score -= 20
    elif cc_utilization > 30:
        score -= 10

    if emi_ratio > 50:
        score -= 40
    elif emi_ratio > 40:
        score -= 25
    elif emi_ratio > 30:
        score -= 10

    return int(clamp(score, 0, 100))


def _discipline_score(budgets: Sequence[Budget], actual_spending: Dict[str, float]) -> int:
    if not budgets:
        return 100

    over_budget = 0
    adherence_total = 0.0
    for budget in budgets:
        spent = actual_spending.get(budget.category, 0.0)
        used = spent * 100 / budget.monthly_limit if budget.monthly_limit > 0 else 0.0
        if used > 100:
            over_budget += 1
        adherence_total += min(100.0, used)

    average_adherence = adherence_total / len(budgets)
    score = int(clamp(round(100 - (average_adherence - 80) * 2), 0, 100))

    if over_budget > len(budgets) / 2:
        score = min(score, 40)
    return score


def _growth_score(income: float, expenses: float) -> int:
    savings_rate = (income - expenses) * 100 / income if income > 0 else 0.0

    if savings_rate >= 30:
        score = 100.0
    elif savings_rate >= 20:
        score = 80.0
    elif savings_rate >= 10:
        score = 60.0
    elif savings_rate >= 0:
        score = savings_rate * 4
    else:
        score = 0.0

    return int(clamp(round(score), 0, 100))


def detect_financial_stress(
    total_income: float = 0.0,
    total_expenses: float = 0.0,
    account_balances: float = 0.0,
    emi_total: float = 0.0,
    credit_card_spent: float = 0.0,
    pending_borrows: float = 0.0,
    daily_velocity: float = 0.0,
    days_left: int = 15,
) -> StressReport:
    """
    Early warning system: collect stress signals and grade their total severity.

    Severity total: ≥20 CRITICAL, ≥12 HIGH, ≥6 MODERATE, >0 LOW, 0 CALM.
    """
    signals: List[StressSignal] = []

    if total_expenses > total_income:
        signals.append(
            StressSignal(
                type="CRITICAL",
                signal="OVERSPENDING",
                message=f"Expenses ({total_expenses:,.0f}) exceed income ({total_income:,.0f})",
                severity=10,
            )
        )

    if account_balances < total_expenses * 0.5:
        coverage = account_balances * 100 / total_expenses if total_expenses > 0 else 0.0
        signals.append(
            StressSignal(
                type="WARNING",
                signal="LOW_BALANCE",
                message=f"Account balance covers only {coverage:.0f}% of monthly expenses",
                severity=7,
            )
        )

    emi_ratio = emi_total * 100 / total_income if total_income > 0 else 0.0
    if emi_ratio > 50:
        signals.append(
            StressSignal(
                type="CRITICAL",
                signal="EMI_OVERLOAD",
                message=f"EMIs consuming {emi_ratio:.0f}% of income (danger zone: >50%)",
                severity=9,
            )
        )

    projected_total = daily_velocity * 30
    if projected_total > total_income * 0.9 and days_left > 5:
        signals.append(
            StressSignal(
                type="WARNING",
                signal="VELOCITY_RISK",
                message=f"At current rate, you'll spend {projected_total:,.0f} this month",
                severity=6,
            )
        )

    if credit_card_spent > total_income * 0.3:
        if total_income > 0:
            message = f"Credit card spending at {credit_card_spent * 100 / total_income:.0f}% of income"
        else:
            message = "Credit card spending with no recorded income"
        signals.append(StressSignal(type="WARNING", signal="CC_ACCUMULATION", message=message, severity=5))

    if pending_borrows > total_income * 0.5:
        signals.append(
            StressSignal(
                type="WARNING",
                signal="DEBT_BURDEN",
                message=f"Pending borrowed amount ({pending_borrows:,.0f}) is high",
                severity=6,
            )
        )

    total_severity = sum(s.severity for s in signals)
    if total_severity >= 20:
        stress_level = "CRITICAL"
    elif total_severity >= 12:
        stress_level = "HIGH"
    elif total_severity >= 6:
        stress_level = "MODERATE"
    elif total_severity > 0:
        stress_level = "LOW"
    else:
        stress_level = "CALM"

    signals.sort(key=lambda s: s.severity, reverse=True)

    return StressReport(
        stress_level=stress_level,
        total_severity=total_severity,
        signals=signals,
        is_stressed=stress_level in ("HIGH", "CRITICAL"),
    )


def calculate_safe_to_spend(
    total_income: float,
    total_committed: float,
    days_left: int,
    target_savings_percent: float = 20.0,
) -> SafeToSpend:
    """Savings-first daily allowance for the rest of the month"""
    days = int(days_left or 1)
    mandatory_savings = total_income * (target_savings_percent / 100)
    available = total_income - total_committed - mandatory_savings

    if available <= 0 or days <= 0:
        return SafeToSpend(
            daily=0,
            total=0,
            status="OVERSPENT",
            message="Budget exhausted after setting aside savings.",
        )

    daily = round(available / days)
    status = "HEALTHY"
    if daily < 200:
        status = "CRITICAL"
    elif daily < 500:
        status = "TIGHT"

    return SafeToSpend(
        daily=daily,
        total=round(available),
        status=status,
        message=f"You can spend {daily:,}/day after setting aside {mandatory_savings:,.0f} for savings.",
        target_savings=round(mandatory_savings),
    )
