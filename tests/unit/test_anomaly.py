"""Unit tests for expense leak detection"""

from finance_engine.domain.anomaly import detect_expense_leaks
from finance_engine.domain.models import CategoryAmount


def test_iqr_flags_tripled_spend_as_high(steady_history):
    """Test 3× a flat history breaches 1.5× the IQR fence"""
    leaks = detect_expense_leaks([CategoryAmount("Food", 15000)], steady_history)

    assert len(leaks) == 1
    leak = leaks[0]
    assert leak.category == "Food"
    assert leak.severity == "HIGH"
    assert leak.threshold == 5000
    assert leak.median == 5000
    assert leak.percent_change == 200
    assert leak.message == "Food spending detected as anomaly (IQR method). 15,000 vs typical 5,000"


def test_iqr_moderate_breach_is_medium(steady_history):
    leaks = detect_expense_leaks([CategoryAmount("Food", 7000)], steady_history)

    assert [l.severity for l in leaks] == ["MEDIUM"]


def test_iqr_normal_spend_not_flagged(steady_history):
    """Test spend at the historical level is never reported"""
    assert detect_expense_leaks([CategoryAmount("Food", 5000)], steady_history) == []


def test_iqr_requires_margin_over_median():
    """Test a value above the fence but within 20% of the median is ignored"""
    history = [CategoryAmount("Fuel", amount) for amount in [1000, 1000, 1000, 1000, 1000, 1000]]
    assert detect_expense_leaks([CategoryAmount("Fuel", 1150)], history) == []


def test_current_month_entries_are_summed(steady_history):
    current = [CategoryAmount("Food", 8000), CategoryAmount("Food", 7000)]
    leaks = detect_expense_leaks(current, steady_history)

    assert leaks[0].current == 15000


def test_limited_history_uses_average_fallback():
    """Test fewer than five points compares against 1.5× the average"""
    history = [CategoryAmount("Dining", 2000), CategoryAmount("Dining", 2000)]
    leaks = detect_expense_leaks([CategoryAmount("Dining", 3100)], history)

    assert len(leaks) == 1
    leak = leaks[0]
    assert leak.severity == "MEDIUM"
    assert leak.threshold == 3000
    assert leak.average == 2000
    assert leak.median is None
    assert leak.percent_change == 55
    assert leak.message == "Dining spending is higher than average (Limited history)"


def test_limited_history_ignores_small_absolute_jumps():
    """Test the fallback needs the spend to exceed the average by more than 500"""
    history = [CategoryAmount("Coffee", 500), CategoryAmount("Coffee", 500)]
    assert detect_expense_leaks([CategoryAmount("Coffee", 900)], history) == []


def test_category_without_history_is_skipped(steady_history):
    assert detect_expense_leaks([CategoryAmount("Travel", 10000)], steady_history) == []


def test_results_ordered_by_deviation(steady_history):
    """Test the largest overspend is reported first"""
    history = steady_history + [CategoryAmount("Fuel", 1000) for _ in range(6)]
    current = [CategoryAmount("Fuel", 4000), CategoryAmount("Food", 20000)]

    leaks = detect_expense_leaks(current, history)

    assert [l.category for l in leaks] == ["Food", "Fuel"]


def test_empty_inputs():
    assert detect_expense_leaks([], []) == []
    assert detect_expense_leaks(None, None) == []
