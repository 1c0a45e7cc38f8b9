"""Unit tests for health scoring logic"""

import pytest
from finance_engine.domain.models import Budget
from finance_engine.domain.scoring import (
    analyze_spending_rule,
    calculate_financial_health,
    calculate_health_dimensions,
    calculate_safe_to_spend,
    detect_financial_stress,
    risk_level_for_score,
)


def test_healthy_month_scores_excellent():
    """Test 40% savings with moderate variable spend"""
    report = calculate_financial_health(
        income=50000,
        fixed_total=20000,
        variable_total=10000,
        emi_total=0,
        credit_card_total=0,
    )

    # 100 - 8 (variable 20% of income) + 5 (savings >= 20%)
    assert report.health_score == 97
    assert report.risk_level == "EXCELLENT"
    assert report.savings == 20000
    assert report.savings_percentage == 40
    assert [s.type for s in report.suggestions] == ["SUCCESS"]


def test_healthy_month_clamps_to_100_when_bonuses_stack():
    report = calculate_financial_health(50000, 20000, 10000, 0, 0, stack_savings_bonuses=True)
    assert report.health_score == 100


def test_emi_heavy_month():
    """Test EMI at 60% of income costs the quadratic penalty"""
    report = calculate_financial_health(
        income=50000,
        fixed_total=0,
        variable_total=0,
        emi_total=30000,
        credit_card_total=0,
    )

    # 100 - ((0.6 - 0.3) * 10)^2 * 1.5 + 5 = 91.5
    assert report.health_score == 92
    assert report.risk_level == "EXCELLENT"
    assert any(s.message == "EMIs consuming 60% of income." for s in report.suggestions)


def test_emi_overload_is_warning():
    """Test EMI at 90% of income drops the score into WARNING"""
    report = calculate_financial_health(
        income=50000,
        fixed_total=0,
        variable_total=0,
        emi_total=45000,
        credit_card_total=0,
    )

    # 100 - (6^2 * 1.5) with savings at exactly 10% (no bonus, no penalty)
    assert report.health_score == 46
    assert report.risk_level == "WARNING"
    assert [s.priority for s in report.suggestions] == sorted(s.priority for s in report.suggestions)


@pytest.mark.parametrize("stack,expected", [(False, 85), (True, 95)])
def test_savings_bonus_chain(stack, expected):
    """Test 35% savings earns +5 when exclusive and +15 when bonuses stack"""
    report = calculate_financial_health(
        income=100000,
        fixed_total=15000,
        variable_total=50000,
        emi_total=0,
        credit_card_total=0,
        days_elapsed=30,
        stack_savings_bonuses=stack,
    )

    assert report.health_score == expected


@pytest.mark.parametrize("fixed,stack,expected", [(20000, True, 95), (30000, False, 85), (40000, False, 80)])
def test_savings_band_edges_are_inclusive(fixed, stack, expected):
    """Test savings of exactly 30%, 20% and 10% fall into the higher band"""
    report = calculate_financial_health(
        income=100000,
        fixed_total=fixed,
        variable_total=50000,
        emi_total=0,
        credit_card_total=0,
        days_elapsed=30,
        stack_savings_bonuses=stack,
    )

    assert report.health_score == expected


def test_no_income_is_critical():
    """Test zero income is scored as fully unaffordable"""
    report = calculate_financial_health(
        income=0,
        fixed_total=1000,
        variable_total=0,
        emi_total=0,
        credit_card_total=0,
    )

    assert report.health_score == 0
    assert report.risk_level == "CRITICAL"
    assert report.savings_percentage == 0
    assert report.suggestions[0].type == "CRITICAL"


def test_pending_borrows_flat_penalty():
    """Test borrows above 20% of income cost a flat 15 points"""
    base = calculate_financial_health(100000, 15000, 50000, 0, 0, days_elapsed=30)
    borrowed = calculate_financial_health(100000, 15000, 50000, 0, 0, pending_borrow_total=50000, days_elapsed=30)

    assert base.health_score - borrowed.health_score == 15


def test_credit_card_utilization_penalty():
    report = calculate_financial_health(100000, 10000, 0, 0, 60000, credit_limit=100000)

    assert report.health_score < 100
    assert any(s.message == "Credit card at 60% utilization." for s in report.suggestions)


def test_velocity_projection():
    """Test daily velocity and projected month-end spend"""
    report = calculate_financial_health(60000, 20000, 15000, 5000, 0, days_elapsed=10, days_in_month=30)

    assert report.daily_velocity == 1500
    assert report.projected_month_end == 20000 + 5000 + 1500 * 30


def test_health_score_always_in_range():
    """Test extreme inputs stay within 0-100"""
    for args in [(0, 0, 0, 0, 0), (1, 10**9, 10**9, 10**9, 10**9), (10**9, 0, 0, 0, 0)]:
        report = calculate_financial_health(*args, credit_limit=1)
        assert 0 <= report.health_score <= 100


@pytest.mark.parametrize(
    "score,level",
    [(100, "EXCELLENT"), (80, "EXCELLENT"), (79, "GOOD"), (65, "GOOD"), (50, "STABLE"), (35, "WARNING"), (34, "CRITICAL")],
)
def test_risk_level_bands(score, level):
    assert risk_level_for_score(score) == level


def test_spending_rule_balanced():
    analysis = analyze_spending_rule(100000, needs=50000, wants=30000, savings=20000)

    assert analysis.overall_score == 100
    assert analysis.is_balanced is True


def test_spending_rule_needs_over_target():
    """Test needs above 50% cost 30 points"""
    analysis = analyze_spending_rule(100000, needs=60000, wants=20000, savings=20000)

    assert analysis.needs.status == "OVER"
    assert analysis.needs.percentage == 60
    assert analysis.needs.difference == -10000
    assert analysis.overall_score == 70
    assert analysis.is_balanced is False


def test_health_dimensions(budgets):
    """Test strong liquidity and low leverage across all five axes"""
    result = calculate_health_dimensions(
        total_income=100000,
        total_expenses=50000,
        fixed_expenses=30000,
        emi_total=10000,
        credit_card_spent=20000,
        credit_limit=100000,
        account_balances=200000,
        savings_total=100000,
        budgets=budgets,
        actual_spending={"Entertainment": 2500, "Dining": 4000, "House Rent": 15000},
    )

    scores = {name: d.score for name, d in result.dimensions.items()}
    assert scores == {"liquidity": 100, "stability": 100, "risk": 100, "discipline": 93, "growth": 100}
    assert result.dimensions["liquidity"].label == "Emergency Fund"
    assert result.overall_score == 99
    assert result.risk_level == "EXCELLENT"


def test_health_dimensions_empty_snapshot():
    """Test an empty snapshot does not divide by zero"""
    result = calculate_health_dimensions()

    assert result.dimensions["liquidity"].score == 0
    assert result.dimensions["stability"].score == 20
    assert result.dimensions["discipline"].score == 100
    assert result.overall_score == 44
    assert result.risk_level == "WARNING"


def test_discipline_capped_when_most_budgets_broken():
    budgets = [Budget("A", 1000), Budget("B", 1000), Budget("C", 1000)]
    result = calculate_health_dimensions(
        total_income=10000,
        budgets=budgets,
        actual_spending={"A": 1500, "B": 1500, "C": 1500},
    )

    assert result.dimensions["discipline"].score == 40


def test_stress_calm():
    report = detect_financial_stress(
        total_income=100000,
        total_expenses=50000,
        account_balances=100000,
        emi_total=10000,
        credit_card_spent=10000,
        daily_velocity=1500,
    )

    assert report.stress_level == "CALM"
    assert report.total_severity == 0
    assert report.is_stressed is False


def test_stress_critical_with_every_signal():
    """Test all six signals fire and are ordered by severity"""
    report = detect_financial_stress(
        total_income=50000,
        total_expenses=60000,
        account_balances=10000,
        emi_total=30000,
        credit_card_spent=20000,
        pending_borrows=30000,
        daily_velocity=2000,
        days_left=10,
    )

    assert report.total_severity == 43
    assert report.stress_level == "CRITICAL"
    assert report.is_stressed is True
    assert [s.signal for s in report.signals[:3]] == ["OVERSPENDING", "EMI_OVERLOAD", "LOW_BALANCE"]
    assert len(report.signals) == 6


def test_stress_without_income():
    """Test zero income does not raise"""
    report = detect_financial_stress(total_income=0, total_expenses=1000, credit_card_spent=500)

    assert {s.signal for s in report.signals} == {"OVERSPENDING", "LOW_BALANCE", "CC_ACCUMULATION"}
    assert report.stress_level == "CRITICAL"


def test_safe_to_spend_healthy():
    """Test savings are set aside before the daily allowance"""
    result = calculate_safe_to_spend(100000, 50000, days_left=20)

    assert result.daily == 1500
    assert result.total == 30000
    assert result.target_savings == 20000
    assert result.status == "HEALTHY"
    assert result.message == "You can spend 1,500/day after setting aside 20,000 for savings."


@pytest.mark.parametrize(
    "committed,days_left,status",
    [(75000, 15, "TIGHT"), (78000, 20, "CRITICAL"), (90000, 10, "OVERSPENT")],
)
def test_safe_to_spend_statuses(committed, days_left, status):
    assert calculate_safe_to_spend(100000, committed, days_left).status == status
