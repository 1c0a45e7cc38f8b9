"""Pydantic schemas normalizing raw snapshots into engine inputs"""

import math
import re
from datetime import date
from typing import Annotated, Any, Dict, List, Optional
from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel

from finance_engine.domain.models import (
    Budget,
    CardSnapshot,
    CategoryAmount,
    CurrentState,
    ForecastEvent,
    IncomeChange,
    LoanSummary,
    MonthlyHistory,
    MonthOverride,
    PaymentRecord,
    PlannedExpense,
    WhatIfScenario,
)

# Currency symbols, thousands separators and stray text
_NON_NUMERIC = re.compile(r"[^\d.\-+eE]")

# Keys tried, in order, when summing a list of records
_AMOUNT_KEYS = ("amount", "monthlyAmount", "monthly_amount")


def to_number(value: Any) -> float:
    """Missing and unparseable values count as 0; "₹1,250.50" parses to 1250.5"""
    if value is None or isinstance(value, bool):
        return float(value or 0)
    if isinstance(value, (int, float)):
        return 0.0 if math.isnan(value) else float(value)
    if isinstance(value, str):
        try:
            return float(_NON_NUMERIC.sub("", value))
        except ValueError:
            return 0.0
    return 0.0


def _to_optional_number(value: Any) -> Optional[float]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return to_number(value)


def _to_count(value: Any) -> int:
    return int(to_number(value))


def _to_total(value: Any) -> float:
    """Accept a plain number or a list of numbers / {amount: ...} records"""
    if isinstance(value, (list, tuple)):
        total = 0.0
        for item in value:
            if isinstance(item, dict):
                item = next((item[key] for key in _AMOUNT_KEYS if key in item), 0)
            total += to_number(item)
        return total
    return to_number(value)


Amount = Annotated[float, BeforeValidator(to_number), Field(ge=0)]
SignedAmount = Annotated[float, BeforeValidator(to_number)]
OptionalAmount = Annotated[Optional[Annotated[float, Field(ge=0)]], BeforeValidator(_to_optional_number)]
Count = Annotated[int, BeforeValidator(_to_count), Field(ge=0)]
Total = Annotated[float, BeforeValidator(_to_total), Field(ge=0)]


class SnapshotModel(BaseModel):
    """Accepts camelCase or snake_case keys and ignores unknown ones"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


class CategoryAmountSchema(SnapshotModel):
    category: Optional[str] = None
    amount: Amount = 0.0

    def to_domain(self) -> CategoryAmount:
        return CategoryAmount(category=self.category or "", amount=self.amount)


class BudgetSchema(SnapshotModel):
    category: str
    monthly_limit: Amount = Field(0.0, validation_alias=AliasChoices("monthlyLimit", "monthly_limit", "amount"))
    alert_threshold: Amount = 80.0

    def to_domain(self) -> Budget:
        return Budget(self.category, self.monthly_limit, self.alert_threshold or 80.0)


class PaymentRecordSchema(SnapshotModel):
    on_time: bool = True
    amount: Amount = 0.0

    def to_domain(self) -> PaymentRecord:
        return PaymentRecord(on_time=self.on_time, amount=self.amount)


class LoanSchema(SnapshotModel):
    id: Optional[str | int] = None
    name: str = "EMI"
    principal: Amount = Field(0.0, validation_alias=AliasChoices("principal", "totalAmount", "total_amount"))
    monthly_amount: Amount = 0.0
    remaining_amount: OptionalAmount = None
    interest_rate: OptionalAmount = None

    def to_domain(self) -> LoanSummary:
        return LoanSummary(
            name=self.name,
            principal=self.principal,
            monthly_amount=self.monthly_amount,
            remaining_amount=self.remaining_amount,
            interest_rate=self.interest_rate,
            loan_id=None if self.id is None else str(self.id),
        )


class CardSchema(SnapshotModel):
    name: str = "Card"
    limit: Amount = Field(0.0, validation_alias=AliasChoices("limit", "creditLimit", "credit_limit"))
    current_spend: Amount = 0.0
    billing_day: Count = 1
    due_day: Count = 15
    rewards: Dict[str, Amount] = Field(default_factory=dict)

    def to_domain(self) -> CardSnapshot:
        return CardSnapshot(
            name=self.name,
            limit=self.limit,
            current_spend=self.current_spend,
            billing_day=self.billing_day,
            due_day=self.due_day,
            rewards=dict(self.rewards),
        )


class PlannedExpenseSchema(SnapshotModel):
    month: Count
    amount: Amount = 0.0
    description: str = ""

    def to_domain(self) -> PlannedExpense:
        return PlannedExpense(self.month, self.amount, self.description)


class IncomeChangeSchema(SnapshotModel):
    month: Count
    new_income: Amount = 0.0

    def to_domain(self) -> IncomeChange:
        return IncomeChange(self.month, self.new_income)


class MonthOverrideSchema(SnapshotModel):
    income: OptionalAmount = None
    expenses: OptionalAmount = None

    def to_domain(self) -> MonthOverride:
        return MonthOverride(income=self.income, expenses=self.expenses)


class ForecastEventSchema(SnapshotModel):
    type: str
    amount: Amount = 0.0
    description: str = ""

    def to_domain(self) -> ForecastEvent:
        return ForecastEvent(self.type, self.amount, self.description)


class MonthlyHistorySchema(SnapshotModel):
    month: str = ""
    expenses: List[CategoryAmountSchema] = Field(default_factory=list)

    def to_domain(self) -> MonthlyHistory:
        return MonthlyHistory(self.month, [e.to_domain() for e in self.expenses])


# ---------------------------------------------------------------------------
# Snapshots, one per analytics operation
# ---------------------------------------------------------------------------


class HealthSnapshot(SnapshotModel):
    """Month-to-date totals; each bucket may also be a list of {amount} records"""

    income: Total = 0.0
    fixed_expenses: Total = 0.0
    variable_expenses: Total = 0.0
    emis: Total = 0.0
    credit_card_spends: Total = 0.0
    pending_borrows: Total = 0.0
    credit_limit: Amount = 0.0
    days_elapsed: Count = 15
    days_in_month: Count = 30


class HealthDimensionsSnapshot(SnapshotModel):
    total_income: Amount = 0.0
    total_expenses: Amount = 0.0
    fixed_expenses: Amount = 0.0
    emi_total: Amount = 0.0
    credit_card_spent: Amount = 0.0
    credit_limit: Amount = 0.0
    account_balances: SignedAmount = 0.0
    savings_total: Amount = 0.0
    budgets: List[BudgetSchema] = Field(default_factory=list)
    actual_spending: Dict[str, Amount] = Field(default_factory=dict)


class ExpenseLeakSnapshot(SnapshotModel):
    current_month: List[CategoryAmountSchema] = Field(default_factory=list)
    history: List[CategoryAmountSchema] = Field(default_factory=list)


class LoanScheduleSnapshot(SnapshotModel):
    principal: Amount
    interest_rate: OptionalAmount = None
    months: Count
    start_date: date
    monthly_amount: OptionalAmount = None


class LoanPortfolioSnapshot(SnapshotModel):
    loans: List[LoanSchema] = Field(default_factory=list)


class SpendingForecastSnapshot(SnapshotModel):
    history: List[Amount] = Field(default_factory=list)
    confidence: float = Field(0.95, gt=0, lt=1)
    events: List[ForecastEventSchema] = Field(default_factory=list)


class CreditScoreSnapshot(SnapshotModel):
    payment_history: List[PaymentRecordSchema] = Field(default_factory=list)
    credit_utilization: Amount = 0.0
    credit_age_months: Count = Field(12, validation_alias=AliasChoices("creditAgeMonths", "credit_age_months", "creditAge"))
    active_accounts: Count = 0
    account_mix: List[str] = Field(default_factory=list)
    recent_inquiries: Count = 0


class UtilizationSnapshot(SnapshotModel):
    current_spend: Amount = 0.0
    credit_limit: Amount = 0.0
    days_elapsed: Count = 15
    days_in_cycle: Count = 30
    historical_daily_avg: Amount = 0.0


class CardPortfolioSnapshot(SnapshotModel):
    """Cards on file, optionally with a purchase to place on one of them"""

    cards: List[CardSchema] = Field(default_factory=list)
    purchase_amount: Amount = 0.0
    category: str = "general"
    today: Optional[date] = None


class DebtToIncomeSnapshot(SnapshotModel):
    monthly_debt: Amount = 0.0
    monthly_income: Amount = 0.0


class BudgetHistorySnapshot(SnapshotModel):
    monthly_history: List[MonthlyHistorySchema] = Field(default_factory=list)


class RebalanceSnapshot(SnapshotModel):
    budgets: List[BudgetSchema] = Field(default_factory=list)
    current_spending: Dict[str, Amount] = Field(default_factory=dict)


class BudgetReviewSnapshot(SnapshotModel):
    """Budgets against the current cycle's expenses; history feeds category trends"""

    budgets: List[BudgetSchema] = Field(default_factory=list)
    current_expenses: List[CategoryAmountSchema] = Field(default_factory=list)
    monthly_history: List[MonthlyHistorySchema] = Field(default_factory=list)
    weekend_spending: Dict[str, Amount] = Field(default_factory=dict)
    today: Optional[date] = None


class CashFlowSnapshot(SnapshotModel):
    monthly_income: Amount = 0.0
    fixed_expenses: Amount = 0.0
    average_variable: Amount = 0.0
    emi_total: Amount = 0.0
    months: Count = 6
    planned_expenses: List[PlannedExpenseSchema] = Field(default_factory=list)
    expected_income_changes: List[IncomeChangeSchema] = Field(default_factory=list)
    overrides: List[Optional[MonthOverrideSchema]] = Field(default_factory=list)
    start: Optional[date] = None


class GoalSnapshot(SnapshotModel):
    target: Amount = Field(0.0, validation_alias=AliasChoices("target", "targetAmount", "target_amount"))
    current: Amount = Field(0.0, validation_alias=AliasChoices("current", "currentAmount", "current_amount"))
    monthly_contribution: Amount = 0.0
    as_of: Optional[date] = None


class FreedomSnapshot(SnapshotModel):
    total_debt: Amount = 0.0
    monthly_debt_payment: Amount = 0.0
    monthly_savings: SignedAmount = 0.0
    target_emergency_fund: Amount = 0.0
    current_emergency_fund: Amount = 0.0
    as_of: Optional[date] = None


class StressTestSnapshot(SnapshotModel):
    monthly_income: Amount = 0.0
    fixed_expenses: Amount = 0.0
    variable_expenses: Amount = 0.0
    emi_total: Amount = 0.0
    emergency_fund: Amount = 0.0
    income_drop_percent: Annotated[float, BeforeValidator(to_number), Field(ge=0, le=100)] = 30.0


class ScenarioSchema(SnapshotModel):
    income_change: SignedAmount = 0.0
    expense_change: SignedAmount = 0.0
    new_emi: Amount = Field(0.0, validation_alias=AliasChoices("newEmi", "newEMI", "new_emi"))
    lump_sum_savings: Amount = 0.0
    lump_sum_expense: Amount = 0.0

    def to_domain(self) -> WhatIfScenario:
        return WhatIfScenario(
            income_change=self.income_change,
            expense_change=self.expense_change,
            new_emi=self.new_emi,
            lump_sum_savings=self.lump_sum_savings,
            lump_sum_expense=self.lump_sum_expense,
        )


class CurrentStateSchema(SnapshotModel):
    monthly_income: Amount = 0.0
    monthly_expenses: Amount = 0.0
    current_savings: SignedAmount = 0.0
    health_score: Annotated[float, BeforeValidator(to_number), Field(ge=0, le=100)] = 50.0

    def to_domain(self) -> CurrentState:
        return CurrentState(
            monthly_income=self.monthly_income,
            monthly_expenses=self.monthly_expenses,
            current_savings=self.current_savings,
            health_score=self.health_score,
        )


class WhatIfRequest(SnapshotModel):
    scenario: ScenarioSchema = Field(default_factory=ScenarioSchema)
    current_state: CurrentStateSchema = Field(default_factory=CurrentStateSchema)
