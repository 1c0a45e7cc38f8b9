"""Analytics facade - normalize a raw snapshot, run an engine, record the outcome"""

import time
import uuid
import logging
from datetime import date
from typing import Any, Callable, Dict, List, Mapping, Optional, Type, TypeVar
from pydantic import BaseModel, ValidationError

from finance_engine.config import settings
from finance_engine.boundary.schemas import (
    BudgetHistorySnapshot,
    BudgetReviewSnapshot,
    CardPortfolioSnapshot,
    CashFlowSnapshot,
    CreditScoreSnapshot,
    DebtToIncomeSnapshot,
    ExpenseLeakSnapshot,
    FreedomSnapshot,
    GoalSnapshot,
    HealthDimensionsSnapshot,
    HealthSnapshot,
    LoanPortfolioSnapshot,
    LoanScheduleSnapshot,
    RebalanceSnapshot,
    SpendingForecastSnapshot,
    StressTestSnapshot,
    UtilizationSnapshot,
    WhatIfRequest,
)
from finance_engine.domain.amortization import calculate_amortization_schedule, prioritize_loans
from finance_engine.domain.anomaly import detect_expense_leaks
from finance_engine.domain.budget import (
    ProtectedCategoryRegistry,
    calculate_category_trends,
    check_budget_status,
    generate_contextual_alerts,
    rebalance_budgets,
    suggest_dynamic_budgets,
)
from finance_engine.domain.credit_risk import (
    calculate_credit_score_proxy,
    calculate_dti,
    forecast_utilization,
    optimize_billing_cycle,
    suggest_card_for_purchase,
)
from finance_engine.domain.exceptions import InvalidSnapshotError
from finance_engine.domain.models import (
    AmortizationSchedule,
    BillingPlan,
    CardSuggestion,
    CashFlowSimulation,
    ConfidenceForecast,
    ContextualAlert,
    CreditScoreResult,
    DTIResult,
    DynamicBudgetPlan,
    EMIOptimization,
    EventAdjustedForecast,
    ExpenseAnomaly,
    FreedomDate,
    GoalTimeline,
    HealthDimensions,
    HealthReport,
    RebalancePlan,
    StressTestResult,
    UtilizationForecast,
    WhatIfResult,
)
from finance_engine.domain.planning import (
    analyze_what_if,
    calculate_financial_freedom_date,
    calculate_goal_timeline,
    perform_stress_test,
    simulate_cash_flow,
)
from finance_engine.domain.predictive import predict_next_month, predict_next_month_with_ci, predict_with_events
from finance_engine.domain.scoring import calculate_financial_health, calculate_health_dimensions
from finance_engine.infrastructure.observability.logging import log_calculation
from finance_engine.infrastructure.observability.metrics import (
    record_anomalies,
    record_calculation,
    record_health_risk_level,
)
from finance_engine.utils.date_utils import days_left_in_cycle, get_custom_month_range

S = TypeVar("S", bound=BaseModel)
R = TypeVar("R")

Payload = Mapping[str, Any]


def _describe_errors(error: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in err['loc']) or 'snapshot'}: {err['msg']}" for err in error.errors()
    )


def _execute(
    engine: str,
    schema: Type[S],
    payload: Payload | S,
    compute: Callable[[S], R],
    request_id: Optional[str] = None,
    summarize: Optional[Callable[[R], Dict[str, Any]]] = None,
) -> R:
    """
    Run one engine over a raw snapshot.

    Flow:
    1. Validate and normalize the payload into the engine's snapshot schema
    2. Run the pure engine function
    3. Record metrics and log the outcome
    """
    start_time = time.perf_counter()
    request_id = request_id or str(uuid.uuid4())

    try:
        snapshot = schema.model_validate(payload)
    except ValidationError as e:
        record_calculation(engine, "invalid_snapshot", time.perf_counter() - start_time)
        logging.warning(
            f"Invalid snapshot: {e.error_count()} error(s)",
            extra={"request_id": request_id, "engine": engine},
        )
        raise InvalidSnapshotError(engine, _describe_errors(e)) from e

    try:
        result = compute(snapshot)
    except Exception as e:
        record_calculation(engine, "error", time.perf_counter() - start_time)
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id, "engine": engine})
        raise

    duration = time.perf_counter() - start_time
    record_calculation(engine, "success", duration)
    log_calculation(request_id, engine, duration * 1000, **(summarize(result) if summarize else {}))
    return result


def assess_financial_health(payload: Payload, request_id: Optional[str] = None) -> HealthReport:
    """Composite 0-100 health score for the month so far"""

    def compute(s: HealthSnapshot) -> HealthReport:
        report = calculate_financial_health(
            income=s.income,
            fixed_total=s.fixed_expenses,
            variable_total=s.variable_expenses,
            emi_total=s.emis,
            credit_card_total=s.credit_card_spends,
            pending_borrow_total=s.pending_borrows,
            credit_limit=s.credit_limit,
            days_elapsed=s.days_elapsed,
            days_in_month=s.days_in_month,
            stack_savings_bonuses=settings.stack_savings_bonuses,
        )
        record_health_risk_level(report.risk_level)
        return report

    return _execute(
        "health",
        HealthSnapshot,
        payload,
        compute,
        request_id,
        lambda r: {"health_score": r.health_score, "risk_level": r.risk_level},
    )


def assess_health_dimensions(payload: Payload, request_id: Optional[str] = None) -> HealthDimensions:
    def compute(s: HealthDimensionsSnapshot) -> HealthDimensions:
        return calculate_health_dimensions(
            total_income=s.total_income,
            total_expenses=s.total_expenses,
            fixed_expenses=s.fixed_expenses,
            emi_total=s.emi_total,
            credit_card_spent=s.credit_card_spent,
            credit_limit=s.credit_limit,
            account_balances=s.account_balances,
            savings_total=s.savings_total,
            budgets=[b.to_domain() for b in s.budgets],
            actual_spending=dict(s.actual_spending),
        )

    return _execute(
        "health_dimensions",
        HealthDimensionsSnapshot,
        payload,
        compute,
        request_id,
        lambda r: {"overall_score": r.overall_score, "risk_level": r.risk_level},
    )


def find_expense_leaks(payload: Payload, request_id: Optional[str] = None) -> List[ExpenseAnomaly]:
    def compute(s: ExpenseLeakSnapshot) -> List[ExpenseAnomaly]:
        anomalies = detect_expense_leaks(
            [e.to_domain() for e in s.current_month],
            [e.to_domain() for e in s.history],
        )
        record_anomalies(a.severity for a in anomalies)
        return anomalies

    return _execute(
        "anomaly", ExpenseLeakSnapshot, payload, compute, request_id, lambda r: {"anomaly_count": len(r)}
    )


def build_loan_schedule(payload: Payload, request_id: Optional[str] = None) -> AmortizationSchedule:
    def compute(s: LoanScheduleSnapshot) -> AmortizationSchedule:
        return calculate_amortization_schedule(
            principal=s.principal,
            annual_rate=s.interest_rate,
            months=s.months,
            start_date=s.start_date,
            emi=s.monthly_amount,
        )

    return _execute(
        "amortization",
        LoanScheduleSnapshot,
        payload,
        compute,
        request_id,
        lambda r: {"rows": len(r.schedule), "annual_rate": r.annual_rate},
    )


def rank_loans(payload: Payload, request_id: Optional[str] = None) -> Optional[EMIOptimization]:
    return _execute(
        "emi_optimization",
        LoanPortfolioSnapshot,
        payload,
        lambda s: prioritize_loans([loan.to_domain() for loan in s.loans]),
        request_id,
    )


def forecast_spending(payload: Payload, request_id: Optional[str] = None) -> ConfidenceForecast:
    """Next-month spending with a confidence interval"""
    return _execute(
        "forecast",
        SpendingForecastSnapshot,
        payload,
        lambda s: predict_next_month_with_ci(s.history, s.confidence),
        request_id,
        lambda r: {"data_points": r.data_points, "insufficient_data": r.insufficient_data},
    )


def forecast_with_events(payload: Payload, request_id: Optional[str] = None) -> EventAdjustedForecast:
    """Trend-adjusted EWMA forecast shifted by known upcoming events"""

    def compute(s: SpendingForecastSnapshot) -> EventAdjustedForecast:
        baseline = predict_next_month(s.history).predicted
        return predict_with_events(baseline, [e.to_domain() for e in s.events])

    return _execute("event_forecast", SpendingForecastSnapshot, payload, compute, request_id)


def estimate_credit_score(payload: Payload, request_id: Optional[str] = None) -> CreditScoreResult:
    def compute(s: CreditScoreSnapshot) -> CreditScoreResult:
        return calculate_credit_score_proxy(
            payment_history=[p.to_domain() for p in s.payment_history],
            credit_utilization=s.credit_utilization,
            credit_age_months=s.credit_age_months,
            active_accounts=s.active_accounts,
            account_mix=s.account_mix,
            recent_inquiries=s.recent_inquiries,
        )

    return _execute(
        "credit_score",
        CreditScoreSnapshot,
        payload,
        compute,
        request_id,
        lambda r: {"score": r.score, "rating": r.rating},
    )


def project_card_utilization(payload: Payload, request_id: Optional[str] = None) -> UtilizationForecast:
    def compute(s: UtilizationSnapshot) -> UtilizationForecast:
        return forecast_utilization(
            current_spend=s.current_spend,
            credit_limit=s.credit_limit,
            days_elapsed=s.days_elapsed,
            days_in_cycle=s.days_in_cycle,
            historical_daily_avg=s.historical_daily_avg,
        )

    return _execute("utilization", UtilizationSnapshot, payload, compute, request_id, lambda r: {"risk": r.risk})


def recommend_card(payload: Payload, request_id: Optional[str] = None) -> CardSuggestion:
    """Best card for `purchaseAmount` in `category`"""

    def compute(s: CardPortfolioSnapshot) -> CardSuggestion:
        return suggest_card_for_purchase(
            [card.to_domain() for card in s.cards],
            s.purchase_amount,
            s.category,
            s.today,
        )

    return _execute(
        "card_suggestion",
        CardPortfolioSnapshot,
        payload,
        compute,
        request_id,
        lambda r: {"suggestion": r.suggestion},
    )


def plan_card_payments(payload: Payload, request_id: Optional[str] = None) -> List[BillingPlan]:
    return _execute(
        "billing_cycle",
        CardPortfolioSnapshot,
        payload,
        lambda s: optimize_billing_cycle([card.to_domain() for card in s.cards]),
        request_id,
        lambda r: {"cards": len(r)},
    )


def evaluate_debt_to_income(payload: Payload, request_id: Optional[str] = None) -> DTIResult:
    return _execute(
        "dti",
        DebtToIncomeSnapshot,
        payload,
        lambda s: calculate_dti(s.monthly_debt, s.monthly_income),
        request_id,
        lambda r: {"status": r.status},
    )


def plan_budgets(payload: Payload, request_id: Optional[str] = None) -> DynamicBudgetPlan:
    return _execute(
        "dynamic_budget",
        BudgetHistorySnapshot,
        payload,
        lambda s: suggest_dynamic_budgets([m.to_domain() for m in s.monthly_history]),
        request_id,
        lambda r: {"months_analyzed": r.months_analyzed, "confidence": r.confidence},
    )


def plan_rebalance(payload: Payload, request_id: Optional[str] = None) -> RebalancePlan:
    """Rebalance budgets, protecting categories configured in settings"""
    registry = ProtectedCategoryRegistry.from_patterns(settings.protected_categories)

    return _execute(
        "rebalance",
        RebalanceSnapshot,
        payload,
        lambda s: rebalance_budgets([b.to_domain() for b in s.budgets], dict(s.current_spending), registry),
        request_id,
        lambda r: {"actions": len(r.actions), "total_reallocated": r.total_reallocated},
    )


def review_budgets(payload: Payload, request_id: Optional[str] = None) -> List[ContextualAlert]:
    """
    Budget alerts for the cycle containing `today`.

    Cycles start on `settings.default_cycle_start_day`; month-end projections
    use the days left in that cycle.
    """

    def compute(s: BudgetReviewSnapshot) -> List[ContextualAlert]:
        today = s.today or date.today()
        start_day = settings.default_cycle_start_day
        start, end, _ = get_custom_month_range(today, start_day)
        statuses = check_budget_status([b.to_domain() for b in s.budgets], [e.to_domain() for e in s.current_expenses])
        trends = calculate_category_trends([m.to_domain() for m in s.monthly_history])
        return generate_contextual_alerts(
            statuses,
            days_left=days_left_in_cycle(today, start_day),
            weekend_spending=dict(s.weekend_spending),
            category_trends={t.category: t for t in trends},
            days_in_month=(end - start).days + 1,
        )

    return _execute(
        "budget_review",
        BudgetReviewSnapshot,
        payload,
        compute,
        request_id,
        lambda r: {"alerts": len(r)},
    )


def run_cash_flow_simulation(payload: Payload, request_id: Optional[str] = None) -> CashFlowSimulation:
    def compute(s: CashFlowSnapshot) -> CashFlowSimulation:
        return simulate_cash_flow(
            monthly_income=s.monthly_income,
            fixed_expenses=s.fixed_expenses,
            average_variable=s.average_variable,
            emi_total=s.emi_total,
            months=s.months,
            planned_expenses=[p.to_domain() for p in s.planned_expenses],
            income_changes=[c.to_domain() for c in s.expected_income_changes],
            overrides=[o.to_domain() if o else None for o in s.overrides],
            start=s.start,
        )

    return _execute(
        "cash_flow",
        CashFlowSnapshot,
        payload,
        compute,
        request_id,
        lambda r: {"negative_months": r.summary.negative_months, "risk_level": r.summary.risk_level},
    )


def plan_goal(payload: Payload, request_id: Optional[str] = None) -> GoalTimeline:
    return _execute(
        "goal",
        GoalSnapshot,
        payload,
        lambda s: calculate_goal_timeline(s.target, s.current, s.monthly_contribution, s.as_of),
        request_id,
    )


def project_freedom_date(payload: Payload, request_id: Optional[str] = None) -> FreedomDate:
    def compute(s: FreedomSnapshot) -> FreedomDate:
        return calculate_financial_freedom_date(
            total_debt=s.total_debt,
            monthly_debt_payment=s.monthly_debt_payment,
            monthly_savings=s.monthly_savings,
            target_emergency_fund=s.target_emergency_fund,
            current_emergency_fund=s.current_emergency_fund,
            as_of=s.as_of,
        )

    return _execute("freedom_date", FreedomSnapshot, payload, compute, request_id, lambda r: {"total_months": r.total_months})


def run_stress_test(payload: Payload, request_id: Optional[str] = None) -> StressTestResult:
    def compute(s: StressTestSnapshot) -> StressTestResult:
        return perform_stress_test(
            monthly_income=s.monthly_income,
            fixed_expenses=s.fixed_expenses,
            variable_expenses=s.variable_expenses,
            emi_total=s.emi_total,
            emergency_fund=s.emergency_fund,
            income_drop_percent=s.income_drop_percent,
        )

    return _execute(
        "stress_test",
        StressTestSnapshot,
        payload,
        compute,
        request_id,
        lambda r: {"survival_months": r.survival_months, "risk_level": r.risk_level},
    )


def run_what_if(payload: Payload, request_id: Optional[str] = None) -> WhatIfResult:
    return _execute(
        "what_if",
        WhatIfRequest,
        payload,
        lambda s: analyze_what_if(s.scenario.to_domain(), s.current_state.to_domain()),
        request_id,
        lambda r: {"health_score_change": r.impact.health_score_change},
    )
