"""Budget engine: history-driven limits, rebalancing and budget alerts"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Sequence, Tuple
from finance_engine.domain.aggregation import (
    classify_change,
    half_split_change,
    mean,
    percent_change,
    population_stddev,
)
from finance_engine.domain.models import (
    Budget,
    BudgetAlert,
    BudgetStatus,
    BudgetSuggestion,
    CategoryAmount,
    CategoryTrend,
    ContextualAlert,
    DynamicBudgetPlan,
    LockedBudget,
    MonthlyHistory,
    RebalanceAction,
    RebalancePlan,
    SimpleBudgetSuggestion,
)

# Categories that are never reduced by rebalancing
ESSENTIAL_CATEGORY_PATTERNS: Tuple[str, ...] = (
    "rent", "mortgage", "housing",
    "utilities", "electricity", "water", "gas",
    "insurance", "health", "medical",
    "emi", "loan", "debt",
    "groceries", "essential",
    "education", "school", "tuition",
    "childcare",
)

TREND_THRESHOLD = 15  # percent, first half vs second half
BASE_BUFFER = 10
INCREASING_BUFFER = 20
DECREASING_BUFFER = 5
VOLATILE_BUFFER_BONUS = 15
HIGH_VOLATILITY = 50  # percent stddev/mean

UNDERUSED_PERCENT = 50
SURPLUS_SHARE = 0.3  # portion of an underused limit that can be moved
MIN_REBALANCE_TOTAL = 100
MIN_ACTION_AMOUNT = 50

CAUTION_PERCENT = 60


@dataclass(frozen=True)
class ProtectedCategoryRegistry:
    """
    Case-insensitive substring patterns for categories shielded from rebalancing.

    A category is protected when any pattern occurs in its lowercased name,
    so "Home Rent" and "Car Loan EMI" both match the default vocabulary.
    """

    patterns: Tuple[str, ...] = ESSENTIAL_CATEGORY_PATTERNS

    @classmethod
    def from_patterns(cls, patterns: Iterable[str]) -> "ProtectedCategoryRegistry":
        return cls(tuple(p.strip().lower() for p in patterns if p and p.strip()))

    def matches(self, category: str | None) -> bool:
        name = (category or "").lower()
        return any(pattern in name for pattern in self.patterns)


def suggest_dynamic_budgets(monthly_history: Sequence[MonthlyHistory]) -> DynamicBudgetPlan:
    """
    Suggest adaptive limits per category from monthly spending history.

    Buffer over the average spend:
    - 10% base, 20% when spending is trending up, 5% when trending down
    - +15 points when volatility (stddev/mean) exceeds 50%

    Confidence grows 20 points per month analyzed (max 100) and drops 20
    for volatile categories.
    """
    if not monthly_history:
        return DynamicBudgetPlan(suggestions=[], confidence=0, months_analyzed=0)

    amounts_by_category: Dict[str, List[float]] = {}
    for month in monthly_history:
        for expense in month.expenses or []:
            amounts_by_category.setdefault(expense.category or "Other", []).append(expense.amount)

    month_count = len(monthly_history)
    suggestions: List[BudgetSuggestion] = []

    for category, amounts in amounts_by_category.items():
        if not amounts:
            continue

        average = mean(amounts)
        volatility = population_stddev(amounts) * 100 / average if average > 0 else 0.0
        trend = classify_change(half_split_change(amounts), TREND_THRESHOLD)

        buffer = BASE_BUFFER
        if trend == "INCREASING":
            buffer = INCREASING_BUFFER
        elif trend == "DECREASING":
            buffer = DECREASING_BUFFER

        volatile = volatility > HIGH_VOLATILITY
        if volatile:
            buffer += VOLATILE_BUFFER_BONUS

        confidence = min(100, month_count * 20)
        if volatile:
            confidence -= 20

        trend_note = {
            "INCREASING": "Spending is trending up.",
            "DECREASING": "Spending is trending down.",
        }.get(trend, "Spending is stable.")
        reasoning = f"Based on {len(amounts)} data points over {month_count} months. {trend_note}"
        if volatile:
            reasoning += " High volatility detected."

        suggestions.append(
            BudgetSuggestion(
                category=category,
                current_average=round(average),
                suggested_budget=round(average * (1 + buffer / 100)),
                buffer_percent=buffer,
                trend=trend,
                volatility=round(volatility),
                confidence=max(0, confidence),
                min=round(min(amounts)),
                max=round(max(amounts)),
                reasoning=reasoning,
            )
        )

    suggestions.sort(key=lambda s: s.suggested_budget, reverse=True)
    overall = round(sum(s.confidence for s in suggestions) / max(len(suggestions), 1))

    return DynamicBudgetPlan(suggestions=suggestions, confidence=overall, months_analyzed=month_count)


def _fill_deductions(takes: Sequence[Tuple[str, float, float]], total: float) -> List[Tuple[str, float, float]]:
    """Take `total` from sources in order, each move at least MIN_ACTION_AMOUNT"""
    deductions = []
    left = total
    for category, take, used in takes:
        amount = min(take, left)
        if amount < MIN_ACTION_AMOUNT:
            break
        deductions.append((category, amount, used))
        left -= amount
    return deductions


def rebalance_budgets(
    budgets: Iterable[Budget],
    current_spending: Dict[str, float],
    registry: ProtectedCategoryRegistry | None = None,
) -> RebalancePlan:
    """
    Move unused allowance from underused budgets to overspent ones.

    Requirements:
    - Underused: <50% used with allowance remaining, and not protected
    - Overused: >100% used
    - Pool: 30% of each underused limit; moves min(pool, total shortfall)
    - Allocations split proportionally to each category's shortfall
    - Single actions below 50 are skipped, nothing moves below 100 in total
    - Total allocated always equals total deducted
    """
    registry = registry or ProtectedCategoryRegistry()

    underused = []
    overused = []
    for budget in budgets or []:
        limit = budget.monthly_limit or 0.0
        spent = current_spending.get(budget.category, 0.0)
        used = spent * 100 / limit if limit > 0 else 0.0
        remaining = limit - spent

        if used < UNDERUSED_PERCENT and remaining > 0 and not registry.matches(budget.category):
            underused.append((budget.category, limit, used))
        elif used > 100:
            overused.append((budget.category, abs(remaining)))

    if not underused or not overused:
        return RebalancePlan(actions=[], total_reallocated=0, summary="No rebalancing needed")

    takes = [(category, round(limit * SURPLUS_SHARE), used) for category, limit, used in underused]
    takes = [t for t in takes if t[1] >= MIN_ACTION_AMOUNT]
    total_needed = sum(needed for _, needed in overused)
    reallocatable = min(sum(take for _, take, _ in takes), total_needed)

    allocations: List[Tuple[str, float, float]] = []
    if reallocatable >= MIN_REBALANCE_TOTAL:
        for category, needed in overused:
            allocation = round(reallocatable * (needed / total_needed))
            if allocation >= MIN_ACTION_AMOUNT:
                allocations.append((category, allocation, needed))

    # Shrink the last allocation until the deductions cover every allocation exactly
    deductions: List[Tuple[str, float, float]] = []
    while allocations:
        allocated = sum(amount for _, amount, _ in allocations)
        deductions = _fill_deductions(takes, allocated)
        shortfall = allocated - sum(amount for _, amount, _ in deductions)
        if not shortfall:
            break
        category, amount, needed = allocations.pop()
        if amount - shortfall >= MIN_ACTION_AMOUNT:
            allocations.append((category, amount - shortfall, needed))

    total_reallocated = sum(amount for _, amount, _ in allocations)
    if total_reallocated < MIN_REBALANCE_TOTAL:
        return RebalancePlan(actions=[], total_reallocated=0, summary="Rebalance amount too small")

    actions = [
        RebalanceAction(
            type="ALLOCATE_TO",
            category=category,
            amount=amount,
            reason=f"{category} exceeded by {needed:,.0f}",
        )
        for category, amount, needed in allocations
    ]
    actions.extend(
        RebalanceAction(
            type="DEDUCT_FROM",
            category=category,
            amount=amount,
            reason=f"{category} only {used:.0f}% used",
        )
        for category, amount, used in deductions
    )

    return RebalancePlan(
        actions=actions,
        total_reallocated=total_reallocated,
        summary=(
            f"Reallocating {total_reallocated:,.0f} from {len(deductions)} underused "
            f"to {len(allocations)} overused categories"
        ),
    )


def lock_essential_categories(
    budgets: Iterable[Budget],
    registry: ProtectedCategoryRegistry | None = None,
) -> List[LockedBudget]:
    registry = registry or ProtectedCategoryRegistry()
    locked = []
    for budget in budgets or []:
        essential = registry.matches(budget.category)
        locked.append(
            LockedBudget(
                category=budget.category,
                monthly_limit=budget.monthly_limit,
                is_locked=essential,
                lock_reason="Essential expense - protected from rebalancing" if essential else None,
            )
        )
    return locked


def _spend_by_category(expenses: Iterable[CategoryAmount]) -> Dict[str, float]:
    spent: Dict[str, float] = {}
    for expense in expenses or []:
        category = expense.category or "Other"
        spent[category] = spent.get(category, 0.0) + (expense.amount or 0.0)
    return spent


def suggest_budgets(
    incomes: Iterable[float],
    expenses: Iterable[CategoryAmount],
    months: int = 3,
) -> List[SimpleBudgetSuggestion]:
    """Average spend per category over `months`, plus a 10% buffer"""
    months = max(months, 1)
    monthly_income = sum(incomes or []) / months

    suggestions = []
    for category, total in _spend_by_category(expenses).items():
        average = total / months
        suggestions.append(
            SimpleBudgetSuggestion(
                category=category,
                average_spend=round(average),
                suggested_budget=round(average * 1.1),
                percent_of_income=round(average * 100 / monthly_income, 1) if monthly_income > 0 else 0,
            )
        )

    suggestions.sort(key=lambda s: s.average_spend, reverse=True)
    return suggestions


def check_budget_status(budgets: Iterable[Budget], current_expenses: Iterable[CategoryAmount]) -> List[BudgetStatus]:
    """
    Classify each budget by the share of its limit already spent.

    OVER at 100%, WARNING at the budget's alert threshold, CAUTION at 60%.
    """
    spent_by_category = _spend_by_category(current_expenses)

    statuses = []
    for budget in budgets or []:
        spent = spent_by_category.get(budget.category, 0.0)
        used = spent * 100 / budget.monthly_limit if budget.monthly_limit > 0 else 0.0

        if used >= 100:
            status = "OVER"
        elif used >= budget.alert_threshold:
            status = "WARNING"
        elif used >= CAUTION_PERCENT:
            status = "CAUTION"
        else:
            status = "OK"

        statuses.append(
            BudgetStatus(
                category=budget.category,
                limit=budget.monthly_limit,
                spent=round(spent),
                remaining=round(budget.monthly_limit - spent),
                percentage=round(used),
                status=status,
            )
        )
    return statuses


def generate_budget_alerts(statuses: Iterable[BudgetStatus]) -> List[BudgetAlert]:
    alerts = []
    for status in statuses:
        if status.status == "OVER":
            alerts.append(
                BudgetAlert(
                    type="CRITICAL",
                    category=status.category,
                    message=f"{status.category} budget exceeded by {abs(status.remaining):,.0f}",
                    action="Stop spending in this category immediately.",
                )
            )
        elif status.status == "WARNING":
            alerts.append(
                BudgetAlert(
                    type="WARNING",
                    category=status.category,
                    message=f"{status.category} at {status.percentage:.0f}% of budget ({status.remaining:,.0f} left)",
                    action="Slow down spending to stay within budget.",
                )
            )
    return alerts


def generate_contextual_alerts(
    statuses: Iterable[BudgetStatus],
    days_left: int = 15,
    weekend_spending: Dict[str, float] | None = None,
    category_trends: Dict[str, CategoryTrend] | None = None,
    days_in_month: int = 30,
) -> List[ContextualAlert]:
    """
    Explain budget alerts as cause / impact / recommendation.

    WARNING alerts project month-end spend from the pace so far;
    `weekend_spending` maps a category to its weekend/weekday spend ratio.
    """
    weekend_spending = weekend_spending or {}
    category_trends = category_trends or {}

    alerts = []
    for status in statuses:
        trend = category_trends.get(status.category)

        if status.status == "OVER":
            if trend and trend.trend == "INCREASING":
                cause = f"Spending has been trending up ({trend.change_percent:.0f}% increase)"
            else:
                cause = "Exceeded monthly allocation"
            alerts.append(
                ContextualAlert(
                    type="CRITICAL",
                    category=status.category,
                    title=f"{status.category} Budget Exceeded",
                    cause=cause,
                    impact=f"Over budget by {abs(status.remaining):,.0f}",
                    recommendation=(
                        "Stop spending in this category immediately. "
                        "Consider using cash-only for remainder of month."
                    ),
                )
            )
        elif status.status == "WARNING":
            days_elapsed = days_in_month - days_left
            if days_elapsed > 0:
                projected_end = status.spent + (status.spent / days_elapsed) * days_left
            else:
                projected_end = status.spent
            will_exceed = projected_end > status.limit

            if weekend_spending.get(status.category, 1.0) > 1.3:
                cause = "Weekend spending is 30%+ higher than weekdays"
            else:
                cause = f"{status.percentage:.0f}% of budget used"

            if will_exceed:
                impact = f"Projected to exceed by {projected_end - status.limit:,.0f}"
                recommendation = (
                    f"Reduce daily {status.category} spending to {status.remaining / max(1, days_left):,.0f}"
                )
            else:
                impact = f"{status.remaining:,.0f} remaining"
                recommendation = "Consider slowing down to stay within budget"

            alerts.append(
                ContextualAlert(
                    type="WARNING",
                    category=status.category,
                    title=f"{status.category} Budget Alert",
                    cause=cause,
                    impact=impact,
                    recommendation=recommendation,
                )
            )
    return alerts


def calculate_category_trends(monthly_history: Sequence[MonthlyHistory]) -> List[CategoryTrend]:
    """First-to-last month change per category; ±15% marks a trend"""
    amounts_by_category: Dict[str, List[float]] = {}
    for month in monthly_history or []:
        for expense in month.expenses or []:
            amounts_by_category.setdefault(expense.category or "Other", []).append(expense.amount)

    trends = []
    for category, amounts in amounts_by_category.items():
        change = percent_change(amounts[0], amounts[-1])
        trends.append(
            CategoryTrend(
                category=category,
                average=round(mean(amounts)),
                trend=classify_change(change, TREND_THRESHOLD),
                change_percent=round(change),
                data_points=len(amounts),
            )
        )
    return trends
