"""Unit tests for budget suggestions, rebalancing and alerts"""

from finance_engine.domain.budget import (
    ESSENTIAL_CATEGORY_PATTERNS,
    ProtectedCategoryRegistry,
    calculate_category_trends,
    check_budget_status,
    generate_budget_alerts,
    generate_contextual_alerts,
    lock_essential_categories,
    rebalance_budgets,
    suggest_budgets,
    suggest_dynamic_budgets,
)
from finance_engine.domain.models import Budget, BudgetStatus, CategoryAmount, CategoryTrend, MonthlyHistory


def test_registry_matches_substrings_case_insensitively():
    """Test the default vocabulary protects housing and debt categories"""
    registry = ProtectedCategoryRegistry()

    assert registry.matches("House Rent")
    assert registry.matches("Car Loan EMI")
    assert registry.matches("GROCERIES")
    assert not registry.matches("Dining")
    assert not registry.matches(None)
    assert registry.patterns == ESSENTIAL_CATEGORY_PATTERNS


def test_registry_from_patterns_normalizes():
    registry = ProtectedCategoryRegistry.from_patterns([" Pets ", "", "  "])

    assert registry.patterns == ("pets",)
    assert registry.matches("Pets & Vet")


def test_dynamic_budgets_buffers_by_trend(monthly_history):
    """Test a growing category gets a 20% buffer and a stable one 10%"""
    plan = suggest_dynamic_budgets(monthly_history)

    assert plan.months_analyzed == 4
    assert plan.confidence == 80
    assert [s.category for s in plan.suggestions] == ["Rent", "Dining"]

    rent, dining = plan.suggestions
    assert rent.trend == "STABLE"
    assert rent.buffer_percent == 10
    assert rent.suggested_budget == 16500

    assert dining.trend == "INCREASING"
    assert dining.buffer_percent == 20
    assert dining.current_average == 2650
    assert dining.suggested_budget == 3180
    assert dining.min == 2000
    assert dining.max == 3400


def test_dynamic_budgets_volatile_category():
    """Test high volatility widens the buffer and lowers confidence"""
    history = [
        MonthlyHistory("2024-01", [CategoryAmount("Travel", 100)]),
        MonthlyHistory("2024-02", [CategoryAmount("Travel", 1000)]),
    ]

    suggestion = suggest_dynamic_budgets(history).suggestions[0]

    assert suggestion.buffer_percent == 35
    assert suggestion.confidence == 20
    assert suggestion.reasoning.endswith("High volatility detected.")


def test_dynamic_budgets_empty_history():
    plan = suggest_dynamic_budgets([])

    assert plan.suggestions == []
    assert plan.confidence == 0


def test_rebalance_moves_surplus_to_overspent(budgets):
    """Test unused entertainment allowance covers the dining overrun"""
    plan = rebalance_budgets(budgets, {"Entertainment": 1000, "Dining": 5000, "House Rent": 5000})

    assert plan.total_reallocated == 1000
    assert [(a.type, a.category, a.amount) for a in plan.actions] == [
        ("ALLOCATE_TO", "Dining", 1000),
        ("DEDUCT_FROM", "Entertainment", 1000),
    ]
    assert plan.summary == "Reallocating 1,000 from 1 underused to 1 overused categories"


def test_rebalance_never_deducts_from_protected(budgets):
    """Test protected categories are never a source of funds"""
    plan = rebalance_budgets(budgets, {"Entertainment": 1000, "Dining": 9000, "House Rent": 0})

    deducted = {a.category for a in plan.actions if a.type == "DEDUCT_FROM"}
    assert "House Rent" not in deducted


def test_rebalance_conserves_amounts(budgets):
    plan = rebalance_budgets(budgets, {"Entertainment": 500, "Dining": 4800, "House Rent": 15000})

    allocated = sum(a.amount for a in plan.actions if a.type == "ALLOCATE_TO")
    deducted = sum(a.amount for a in plan.actions if a.type == "DEDUCT_FROM")
    assert allocated == deducted == 800


def test_rebalance_ignores_sources_below_minimum_move():
    """Test underused budgets whose 30% share is under 50 never fund an allocation"""
    budgets = [Budget(f"Hobby{i}", 150) for i in range(5)] + [Budget("Dining", 1000)]

    plan = rebalance_budgets(budgets, {"Dining": 1300})

    assert plan.actions == []
    assert plan.total_reallocated == 0
    assert plan.summary == "Rebalance amount too small"


def test_rebalance_allocates_only_what_is_deducted():
    budgets = [Budget(f"Hobby{i}", 150) for i in range(5)] + [Budget("Travel", 500), Budget("Dining", 1000)]

    plan = rebalance_budgets(budgets, {"Dining": 1300})

    assert [(a.type, a.category, a.amount) for a in plan.actions] == [
        ("ALLOCATE_TO", "Dining", 150),
        ("DEDUCT_FROM", "Travel", 150),
    ]
    assert plan.total_reallocated == 150
    assert plan.summary == "Reallocating 150 from 1 underused to 1 overused categories"


def test_rebalance_balances_rounded_splits():
    """Test proportional splits still sum to the amount deducted"""
    budgets = [Budget("Travel", 667), Budget("Dining", 1000), Budget("Fuel", 1000), Budget("Shopping", 1000)]

    plan = rebalance_budgets(budgets, {"Dining": 1100, "Fuel": 1100, "Shopping": 1100})

    allocated = sum(a.amount for a in plan.actions if a.type == "ALLOCATE_TO")
    deducted = sum(a.amount for a in plan.actions if a.type == "DEDUCT_FROM")
    assert [a.amount for a in plan.actions if a.type == "ALLOCATE_TO"] == [67, 67, 66]
    assert allocated == deducted == plan.total_reallocated == 200


def test_rebalance_with_custom_registry(budgets):
    """Test a configured vocabulary replaces the default one"""
    registry = ProtectedCategoryRegistry.from_patterns(["entertainment"])
    plan = rebalance_budgets(budgets, {"Entertainment": 0, "Dining": 5000, "House Rent": 5000}, registry)

    assert [a.category for a in plan.actions if a.type == "DEDUCT_FROM"] == ["House Rent"]


def test_rebalance_nothing_overspent(budgets):
    plan = rebalance_budgets(budgets, {"Entertainment": 1000})

    assert plan.actions == []
    assert plan.summary == "No rebalancing needed"


def test_rebalance_amount_too_small(budgets):
    plan = rebalance_budgets(budgets, {"Entertainment": 1000, "Dining": 4050})

    assert plan.actions == []
    assert plan.summary == "Rebalance amount too small"


def test_lock_essential_categories(budgets):
    locked = {b.category: b for b in lock_essential_categories(budgets)}

    assert locked["House Rent"].is_locked is True
    assert locked["House Rent"].lock_reason == "Essential expense - protected from rebalancing"
    assert locked["Dining"].is_locked is False
    assert locked["Dining"].lock_reason is None


def test_suggest_budgets_from_averages():
    """Test a 10% buffer over the monthly average"""
    expenses = [CategoryAmount("Food", 9000), CategoryAmount("Food", 6000), CategoryAmount("Rent", 45000)]
    suggestions = suggest_budgets([60000, 60000, 60000], expenses, months=3)

    assert [s.category for s in suggestions] == ["Rent", "Food"]
    assert suggestions[0].suggested_budget == 16500
    assert suggestions[0].percent_of_income == 25
    assert suggestions[1].average_spend == 5000
    assert suggestions[1].percent_of_income == 8.3


def test_check_budget_status(budgets):
    """Test status thresholds at 60%, the alert threshold and 100%"""
    expenses = [
        CategoryAmount("Entertainment", 3200),
        CategoryAmount("Dining", 4200),
        CategoryAmount("House Rent", 9000),
        CategoryAmount("Fuel", 850),
    ]
    statuses = check_budget_status(budgets + [Budget("Fuel", 1000)], expenses)

    by_category = {s.category: s for s in statuses}
    assert by_category["Entertainment"].status == "CAUTION"
    assert by_category["Dining"].status == "OVER"
    assert by_category["Dining"].remaining == -200
    assert by_category["House Rent"].status == "CAUTION"
    assert by_category["Fuel"].status == "WARNING"
    assert by_category["Fuel"].percentage == 85


def test_check_budget_status_custom_threshold():
    statuses = check_budget_status([Budget("Fuel", 1000, alert_threshold=90)], [CategoryAmount("Fuel", 850)])
    assert statuses[0].status == "CAUTION"


def test_generate_budget_alerts():
    statuses = [
        BudgetStatus("Dining", 4000, 4200, -200, 105, "OVER"),
        BudgetStatus("Fuel", 1000, 850, 150, 85, "WARNING"),
        BudgetStatus("Books", 1000, 100, 900, 10, "OK"),
    ]

    alerts = generate_budget_alerts(statuses)

    assert [a.type for a in alerts] == ["CRITICAL", "WARNING"]
    assert alerts[0].message == "Dining budget exceeded by 200"
    assert alerts[1].message == "Fuel at 85% of budget (150 left)"


def test_contextual_alert_projects_overrun():
    """Test the month-end projection drives the warning impact"""
    status = BudgetStatus("Fuel", 1000, 850, 150, 85, "WARNING")

    alert = generate_contextual_alerts([status], days_left=15, days_in_month=30)[0]

    assert alert.title == "Fuel Budget Alert"
    assert alert.cause == "85% of budget used"
    assert alert.impact == "Projected to exceed by 700"
    assert alert.recommendation == "Reduce daily Fuel spending to 10"


def test_contextual_alert_weekend_cause():
    status = BudgetStatus("Fuel", 1000, 850, 150, 85, "WARNING")

    alert = generate_contextual_alerts([status], weekend_spending={"Fuel": 1.5})[0]

    assert alert.cause == "Weekend spending is 30%+ higher than weekdays"


def test_contextual_alert_uses_trend_for_overrun():
    status = BudgetStatus("Dining", 4000, 4200, -200, 105, "OVER")
    trends = {"Dining": CategoryTrend("Dining", 2650, "INCREASING", 70, 4)}

    alert = generate_contextual_alerts([status], category_trends=trends)[0]

    assert alert.type == "CRITICAL"
    assert alert.cause == "Spending has been trending up (70% increase)"
    assert alert.impact == "Over budget by 200"


def test_calculate_category_trends(monthly_history):
    trends = {t.category: t for t in calculate_category_trends(monthly_history)}

    assert trends["Rent"].trend == "STABLE"
    assert trends["Dining"].trend == "INCREASING"
    assert trends["Dining"].change_percent == 70
    assert trends["Dining"].average == 2650
    assert trends["Dining"].data_points == 4
