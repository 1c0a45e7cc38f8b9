"""Domain models - pure Python dataclasses for engine inputs and results"""

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------


@dataclass
class CategoryAmount:
    """Amount attributed to a spending category (single expense or monthly total)"""

    category: str
    amount: float


@dataclass
class Budget:
    """Monthly spending limit for a category"""

    category: str
    monthly_limit: float
    alert_threshold: float = 80.0  # percent of limit that triggers a WARNING


@dataclass
class PaymentRecord:
    """Single repayment outcome used by the credit score proxy"""

    on_time: bool
    amount: float = 0.0


@dataclass
class LoanSummary:
    """Outstanding loan as seen by the EMI prioritizer"""

    name: str
    principal: float
    monthly_amount: float
    remaining_amount: Optional[float] = None
    interest_rate: Optional[float] = None  # annual percent, None when unknown
    loan_id: Optional[str] = None


@dataclass
class CardSnapshot:
    """Credit card state for billing and purchase recommendations"""

    name: str
    limit: float
    current_spend: float = 0.0
    billing_day: int = 1
    due_day: int = 15
    rewards: Dict[str, float] = field(default_factory=dict)  # category -> multiplier


@dataclass
class PlannedExpense:
    """One-off expense scheduled for a simulated month (1-based)"""

    month: int
    amount: float
    description: str = ""


@dataclass
class IncomeChange:
    """Income level that applies from a simulated month onwards"""

    month: int
    new_income: float


@dataclass
class MonthOverride:
    """Explicit income and/or total expenses for a single simulated month"""

    income: Optional[float] = None
    expenses: Optional[float] = None


@dataclass
class ForecastEvent:
    """Known upcoming event that shifts next month's spending"""

    type: str  # FESTIVAL | VACATION | BONUS | EMI_END | MAJOR_PURCHASE | other
    amount: float = 0.0
    description: str = ""


@dataclass
class MonthlyHistory:
    """Per-category spending totals for one historical month"""

    month: str
    expenses: List[CategoryAmount] = field(default_factory=list)


@dataclass
class WhatIfScenario:
    """Signed deltas applied to the current state"""

    income_change: float = 0.0
    expense_change: float = 0.0
    new_emi: float = 0.0
    lump_sum_savings: float = 0.0
    lump_sum_expense: float = 0.0


@dataclass
class CurrentState:
    """Monthly baseline a what-if scenario is compared against"""

    monthly_income: float = 0.0
    monthly_expenses: float = 0.0
    current_savings: float = 0.0
    health_score: float = 50.0


# ---------------------------------------------------------------------------
# Amortization
# ---------------------------------------------------------------------------


@dataclass
class ScheduleRow:
    """Single month in an amortization schedule"""

    month: int
    date: date
    emi: float
    interest: float
    principal: float
    balance: float


@dataclass
class AmortizationSchedule:
    """Month-by-month loan ledger plus totals"""

    schedule: List[ScheduleRow]
    total_interest: float
    total_payment: float
    monthly_emi: float
    annual_rate: float  # given or inferred, percent


@dataclass
class LoanPriority:
    """Loan ranked for prepayment"""

    name: str
    loan_id: Optional[str]
    interest_rate: float
    remaining_amount: float
    months_left: int
    interest_savable: float
    priority: float
    rate_assumed: bool = False  # no recorded rate, DEFAULT_LOAN_RATE used


@dataclass
class EMIOptimization:
    """Which loan to prepay first and why"""

    recommended_id: Optional[str]
    name: str
    reason: str
    total_monthly: float
    total_remaining: float
    count: int
    priority_order: List[LoanPriority]


@dataclass
class PrepaymentImpact:
    """Effect of a lump-sum prepayment at unchanged EMI"""

    impact: str  # CALCULATED | NONE
    original_months: int = 0
    new_months: int = 0
    months_saved: int = 0
    interest_saved: float = 0.0
    recommendation: str = ""


# ---------------------------------------------------------------------------
# Predictive
# ---------------------------------------------------------------------------


@dataclass
class Trend:
    """Direction of recent movement"""

    direction: str  # INCREASING | DECREASING | STABLE
    change: float  # percent


@dataclass
class Forecast:
    """Trend-adjusted EWMA prediction"""

    predicted: float
    confidence: float
    base_prediction: float = 0.0
    data_points: int = 0
    trend: Trend = field(default_factory=lambda: Trend("STABLE", 0))


@dataclass
class ConfidenceForecast:
    """Prediction bounded by a confidence interval"""

    predicted: float
    low: float
    high: float
    confidence: float
    std_dev: float = 0.0
    volatility: float = 0.0  # stddev / mean, percent
    data_points: int = 0
    insufficient_data: bool = False
    message: str = ""


@dataclass
class HoltForecast:
    """Holt linear-trend smoothing state"""

    level: float
    trend: float
    forecast: float


@dataclass
class SeasonalForecast:
    predicted: float
    confidence: float
    seasonal_factor: float = 1.0


@dataclass
class CategoryForecast:
    category: str
    average: float
    predicted: float
    trend: str
    data_points: int


@dataclass
class EventImpact:
    type: str
    impact: str
    description: str


@dataclass
class EventAdjustedForecast:
    """Baseline prediction shifted by upcoming events"""

    baseline: float
    adjustment: float
    adjusted: float
    events: List[EventImpact] = field(default_factory=list)
    adjustment_reason: str = "No events"


@dataclass
class SalaryCycleForecast:
    """Spending projection until the next salary credit"""

    days_until_salary: int
    projected_expenses: float
    avg_daily_expense: float
    pre_salary_avg: float
    post_salary_avg: float
    difference: float
    insight: str


@dataclass
class SpendingSpike:
    index: int
    value: float
    z_score: float
    direction: str  # HIGH | LOW
    deviation: str


@dataclass
class SpikeReport:
    """Z-score outliers within a recent spending series"""

    spikes: List[SpendingSpike]
    has_spike: bool
    mean: float = 0.0
    std_dev: float = 0.0
    threshold: float = 2.0


@dataclass
class TrendSignal:
    """Per-category direction indicator for dashboards"""

    category: str
    trend: str
    change_percent: float
    average: float
    latest: float
    signal: str  # arrow glyph
    alert: bool


# ---------------------------------------------------------------------------
# Credit risk
# ---------------------------------------------------------------------------


@dataclass
class ScoreComponent:
    """Points contributed by one credit score factor"""

    weight: str
    points: int
    max_points: int
    detail: str = ""


@dataclass
class CreditScoreResult:
    score: int  # 300-900
    rating: str
    breakdown: Dict[str, ScoreComponent]
    tips: List[str]
    account_mix: List[str] = field(default_factory=list)
    active_accounts: int = 0


@dataclass
class UtilizationForecast:
    """End-of-cycle credit utilization projection"""

    current_spend: float
    current_utilization: float
    projected_spend: float
    projected_utilization: float
    days_remaining: int
    daily_budget: float
    recommended_payment: float  # payment that lands the projection at 30%
    risk: str  # LOW | MEDIUM | HIGH
    action: Optional[str] = None


@dataclass
class DTIResult:
    ratio: float  # percent
    status: str
    message: str
    monthly_debt: float = 0.0
    max_recommended_debt: float = 0.0
    room_for_debt: float = 0.0


@dataclass
class CardUtilization:
    usage_percentage: float
    status: str  # SAFE | CAUTION | HIGH | DANGEROUS
    optimal_payment: float
    recommendations: List[str]


@dataclass
class BillingPlan:
    name: str
    billing_day: int
    due_day: int
    current_utilization: float
    optimal_pay_day: int
    recommendation: str
    strategy: str  # PRE_STATEMENT_PAYMENT | FULL_PAYMENT_BY_DUE


@dataclass
class CardOption:
    name: str
    score: float
    new_utilization: float
    reasons: List[str] = field(default_factory=list)


@dataclass
class CardSuggestion:
    suggestion: Optional[str]
    reason: str = ""
    score: float = 0.0
    new_utilization: float = 0.0
    reasons: List[str] = field(default_factory=list)
    all_options: List[CardOption] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Anomaly detection
# ---------------------------------------------------------------------------


@dataclass
class ExpenseAnomaly:
    """Category whose current-month spend stands out against its history"""

    category: str
    current: float
    threshold: float
    percent_change: float
    severity: str  # HIGH | MEDIUM
    message: str
    median: Optional[float] = None  # set by the IQR method
    average: Optional[float] = None  # set by the limited-history fallback

    @property
    def baseline(self) -> float:
        return self.median if self.median is not None else (self.average or 0.0)

    @property
    def deviation(self) -> float:
        return self.current - self.baseline


# ---------------------------------------------------------------------------
# Health scoring
# ---------------------------------------------------------------------------


@dataclass
class Suggestion:
    type: str  # CRITICAL | WARNING | TIP | SUCCESS
    message: str
    action: str
    priority: int


@dataclass
class HealthBreakdown:
    fixed: float
    variable: float
    emi: float
    credit_card: float


@dataclass
class SpendingRuleBucket:
    label: str
    target: float
    actual: float
    percentage: float
    status: str  # OK | OVER | UNDER
    difference: float


@dataclass
class SpendingRuleAnalysis:
    """Needs/wants/savings split measured against 50-30-20"""

    needs: SpendingRuleBucket
    wants: SpendingRuleBucket
    savings: SpendingRuleBucket
    overall_score: int
    is_balanced: bool


@dataclass
class HealthReport:
    """Composite 0-100 financial health score with supporting figures"""

    total_income: float
    total_expense: float
    breakdown: HealthBreakdown
    savings: float
    savings_percentage: float
    health_score: int
    risk_level: str
    daily_velocity: float
    projected_month_end: float
    budget_analysis: SpendingRuleAnalysis
    suggestions: List[Suggestion]


@dataclass
class Dimension:
    score: int
    label: str


@dataclass
class HealthDimensions:
    dimensions: Dict[str, Dimension]
    overall_score: int
    risk_level: str


@dataclass
class StressSignal:
    type: str
    signal: str
    message: str
    severity: int


@dataclass
class StressReport:
    stress_level: str  # CALM | LOW | MODERATE | HIGH | CRITICAL
    total_severity: int
    signals: List[StressSignal]
    is_stressed: bool


@dataclass
class SafeToSpend:
    daily: float
    total: float
    status: str  # HEALTHY | TIGHT | CRITICAL | OVERSPENT
    message: str
    target_savings: float = 0.0


# ---------------------------------------------------------------------------
# Budgets
# ---------------------------------------------------------------------------


@dataclass
class BudgetSuggestion:
    """History-driven monthly limit for a category"""

    category: str
    current_average: float
    suggested_budget: float
    buffer_percent: float
    trend: str
    volatility: float
    confidence: float
    min: float
    max: float
    reasoning: str


@dataclass
class DynamicBudgetPlan:
    suggestions: List[BudgetSuggestion]
    confidence: float
    months_analyzed: int


@dataclass
class SimpleBudgetSuggestion:
    category: str
    average_spend: float
    suggested_budget: float
    percent_of_income: float


@dataclass
class RebalanceAction:
    type: str  # ALLOCATE_TO | DEDUCT_FROM
    category: str
    amount: float
    reason: str


@dataclass
class RebalancePlan:
    actions: List[RebalanceAction]
    total_reallocated: float
    summary: str


@dataclass
class BudgetStatus:
    category: str
    limit: float
    spent: float
    remaining: float
    percentage: float
    status: str  # OK | CAUTION | WARNING | OVER


@dataclass
class BudgetAlert:
    type: str
    category: str
    message: str
    action: str


@dataclass
class ContextualAlert:
    """Budget alert expressed as a cause/impact/recommendation triple"""

    type: str
    category: str
    title: str
    cause: str
    impact: str
    recommendation: str


@dataclass
class CategoryTrend:
    category: str
    average: float
    trend: str
    change_percent: float
    data_points: int


@dataclass
class LockedBudget:
    category: str
    monthly_limit: float
    is_locked: bool
    lock_reason: Optional[str] = None


# ---------------------------------------------------------------------------
# Planning
# ---------------------------------------------------------------------------


@dataclass
class CashFlowMonth:
    month: int
    month_label: str
    income: float
    expenses: float
    planned: float
    net_flow: float
    running_balance: float
    status: str  # POSITIVE | NEGATIVE
    is_overridden: bool = False


@dataclass
class CashFlowSummary:
    total_months: int
    negative_months: int
    lowest_balance: float
    final_balance: float
    risk_level: str


@dataclass
class CashFlowSimulation:
    simulation: List[CashFlowMonth]
    summary: CashFlowSummary


@dataclass
class GoalTimeline:
    achievable: bool
    already_achieved: bool = False
    months_remaining: Optional[int] = None
    target_date: Optional[date] = None
    total_contribution: float = 0.0
    percent_complete: float = 0.0
    reason: str = ""


@dataclass
class FreedomPhase:
    name: str
    months: int
    status: str  # COMPLETE | PENDING


@dataclass
class FreedomDate:
    phases: List[FreedomPhase]
    total_months: int
    freedom_date: date
    years_to_freedom: float
    is_already_free: bool


@dataclass
class StressTestResult:
    scenario: str
    reduced_income: float
    total_expenses: float
    monthly_shortfall: float
    survival_months: Optional[int]  # None means the fund is never drawn down
    minimum_expenses: float
    cuttable: float
    can_survive_with_cuts: bool
    risk_level: str
    recommendations: List[str]

    @property
    def survives_indefinitely(self) -> bool:
        return self.survival_months is None


@dataclass
class WhatIfSnapshot:
    monthly_income: float
    monthly_expenses: float
    monthly_savings: float
    health_score: float
    net_worth: Optional[float] = None


@dataclass
class WhatIfImpact:
    income_change: float
    expense_change: float
    savings_change: float
    health_score_change: float
    recommendation: str


@dataclass
class WhatIfResult:
    before: WhatIfSnapshot
    after: WhatIfSnapshot
    impact: WhatIfImpact
