"""Credit risk: score proxy, utilization forecasting, DTI and card recommendations"""

from datetime import date
from typing import Dict, Iterable, List, Sequence
from finance_engine.domain.models import (
    BillingPlan,
    CardOption,
    CardSnapshot,
    CardSuggestion,
    CardUtilization,
    CreditScoreResult,
    DTIResult,
    PaymentRecord,
    ScoreComponent,
    UtilizationForecast,
)

SCORE_FLOOR = 300
SCORE_CEILING = 900

PAYMENT_HISTORY_MAX = 210
UTILIZATION_MAX = 180
CREDIT_AGE_MAX = 90
CREDIT_MIX_MAX = 60
INQUIRIES_MAX = 60

# (exclusive lower bound on utilization %, points)
UTILIZATION_TIERS = [(80, 0), (60, 40), (40, 90), (10, 150)]
# (minimum months of history, points)
CREDIT_AGE_TIERS = [(84, 90), (60, 75), (36, 60), (24, 45), (12, 30)]
# (minimum inquiries, points)
INQUIRY_TIERS = [(5, 0), (3, 20), (1, 40)]
ACCOUNT_TYPE_POINTS = {"LOAN_SECURED": 30, "CC": 10, "LOAN_UNSECURED": 5}

RATING_BANDS = [(800, "EXCELLENT"), (740, "VERY_GOOD"), (670, "GOOD"), (580, "FAIR")]

# Utilization level every recommendation steers towards
TARGET_UTILIZATION = 0.3

DTI_CEILING = 0.36


def calculate_credit_score_proxy(
    payment_history: Sequence[PaymentRecord] = (),
    credit_utilization: float = 0.0,
    credit_age_months: int = 12,
    active_accounts: int = 0,
    account_mix: Sequence[str] = (),
    recent_inquiries: int = 0,
) -> CreditScoreResult:
    """
    Estimate a 300-900 credit score from five weighted factors.

    Scoring weights (points on top of the 300 base):
    - 35% Payment history (210): on-time rate squared, 105 when there is no history
    - 30% Utilization (180): tiered, >80% scores nothing
    - 15% Credit age (90): tiered by months since the oldest account opened
    - 10% Credit mix (60): secured loans weigh most; falls back to account count
    - 10% Recent inquiries (60): every hard inquiry band costs 20 points
    """
    payment_history = list(payment_history or [])
    account_mix = list(account_mix or [])

    if payment_history:
        on_time_rate = sum(1 for p in payment_history if p.on_time) / len(payment_history)
        payment_points = round(on_time_rate**2 * PAYMENT_HISTORY_MAX)
    else:
        payment_points = PAYMENT_HISTORY_MAX // 2

    utilization_points = UTILIZATION_MAX
    for bound, points in UTILIZATION_TIERS:
        if credit_utilization > bound:
            utilization_points = points
            break

    age_points = 15
    for minimum, points in CREDIT_AGE_TIERS:
        if credit_age_months >= minimum:
            age_points = points
            break

    if account_mix:
        mix_points = sum(ACCOUNT_TYPE_POINTS.get(t, 0) for t in set(account_mix))
    else:
        mix_points = active_accounts * 10
    mix_points = min(CREDIT_MIX_MAX, mix_points)

    inquiry_points = INQUIRIES_MAX
    for minimum, points in INQUIRY_TIERS:
        if recent_inquiries >= minimum:
            inquiry_points = points
            break

    score = SCORE_FLOOR + payment_points + utilization_points + age_points + mix_points + inquiry_points
    score = max(SCORE_FLOOR, min(SCORE_CEILING, round(score)))

    rating = "POOR"
    for minimum, label in RATING_BANDS:
        if score >= minimum:
            rating = label
            break

    breakdown = {
        "payment_history": ScoreComponent("35%", payment_points, PAYMENT_HISTORY_MAX, f"{len(payment_history)} payments"),
        "utilization": ScoreComponent("30%", utilization_points, UTILIZATION_MAX, f"{credit_utilization:g}%"),
        "credit_age": ScoreComponent("15%", age_points, CREDIT_AGE_MAX, f"{credit_age_months} months"),
        "credit_mix": ScoreComponent("10%", mix_points, CREDIT_MIX_MAX, ", ".join(account_mix) or f"{active_accounts} accounts"),
        "inquiries": ScoreComponent("10%", inquiry_points, INQUIRIES_MAX, f"{recent_inquiries} inquiries"),
    }

    return CreditScoreResult(
        score=score,
        rating=rating,
        breakdown=breakdown,
        tips=_credit_tips(credit_utilization, payment_history, credit_age_months),
        account_mix=account_mix,
        active_accounts=active_accounts,
    )


def _credit_tips(utilization: float, history: Sequence[PaymentRecord], age_months: int) -> List[str]:
    tips = []
    if utilization > 30:
        tips.append(f"Reduce utilization to under 30% (currently {utilization:g}%)")
    if any(not p.on_time for p in history):
        tips.append("Set up autopay to never miss payments")
    if age_months < 24:
        tips.append("Keep old accounts open to increase credit age")
    if not tips:
        tips.append("Excellent credit habits! Keep it up.")
    return tips


def forecast_utilization(
    current_spend: float,
    credit_limit: float,
    days_elapsed: int = 15,
    days_in_cycle: int = 30,
    historical_daily_avg: float = 0.0,
) -> UtilizationForecast:
    """
    Project end-of-cycle utilization from the spend rate so far.

    Risk bands on projected utilization: >70% HIGH, >50% MEDIUM, else LOW
    (30% and below is the healthy zone). The recommended payment is what
    brings the projected spend down to 30% of the limit.
    """
    current_utilization = current_spend * 100 / credit_limit if credit_limit > 0 else 0.0

    daily_rate = current_spend / days_elapsed if days_elapsed > 0 else historical_daily_avg
    projected_spend = daily_rate * days_in_cycle
    projected_utilization = projected_spend * 100 / credit_limit if credit_limit > 0 else 0.0

    target_spend = credit_limit * TARGET_UTILIZATION
    recommended_payment = max(0.0, projected_spend - target_spend) if credit_limit > 0 else 0.0

    risk = "LOW"
    action = None
    if projected_utilization > 70:
        risk = "HIGH"
        action = f"Make a payment of {recommended_payment:,.0f} before cycle end"
    elif projected_utilization > 50:
        risk = "MEDIUM"
        action = "Consider mid-cycle payment to keep utilization low"
    elif projected_utilization > 30:
        action = "On track for healthy utilization"

    days_remaining = max(0, days_in_cycle - days_elapsed)

    return UtilizationForecast(
        current_spend=round(current_spend),
        current_utilization=round(current_utilization),
        projected_spend=round(projected_spend),
        projected_utilization=round(projected_utilization),
        days_remaining=days_remaining,
        daily_budget=round((target_spend - current_spend) / max(1, days_remaining)),
        recommended_payment=round(recommended_payment),
        risk=risk,
        action=action,
    )


def calculate_dti(monthly_debt: float, monthly_income: float) -> DTIResult:
    """
    Debt-to-income ratio with lending-style bands.

    28% and below EXCELLENT, 36% GOOD, 43% MODERATE, 50% HIGH, above CRITICAL.
    Room for more debt is measured against a 36% ceiling.
    """
    if monthly_income <= 0:
        return DTIResult(ratio=0, status="UNKNOWN", message="Income required", monthly_debt=monthly_debt)

    dti = monthly_debt * 100 / monthly_income

    if dti > 50:
        status, message = "CRITICAL", "Dangerous debt level - avoid new debt"
    elif dti > 43:
        status, message = "HIGH", "May have trouble getting approved for loans"
    elif dti > 36:
        status, message = "MODERATE", "Acceptable but try to reduce"
    elif dti > 28:
        status, message = "GOOD", "Healthy debt level"
    else:
        status, message = "EXCELLENT", "Very healthy debt level"

    ceiling = monthly_income * DTI_CEILING
    return DTIResult(
        ratio=round(dti),
        status=status,
        message=message,
        monthly_debt=monthly_debt,
        max_recommended_debt=round(ceiling),
        room_for_debt=max(0, round(ceiling - monthly_debt)),
    )


def assess_card_utilization(credit_limit: float, total_spent: float) -> CardUtilization:
    """Current-cycle card status: SAFE up to 30%, then CAUTION, HIGH (>50%), DANGEROUS (>70%)"""
    usage = total_spent * 100 / credit_limit if credit_limit > 0 else 0.0

    status = "SAFE"
    if usage > 70:
        status = "DANGEROUS"
    elif usage > 50:
        status = "HIGH"
    elif usage > 30:
        status = "CAUTION"

    optimal_payment = max(0.0, total_spent - credit_limit * TARGET_UTILIZATION)

    recommendations = []
    if usage > 30:
        recommendations.append(f"Pay {optimal_payment:,.0f} to reach optimal 30% utilization.")
    if total_spent > 0:
        recommendations.append(f"Full payment: {total_spent:,.0f} to avoid interest charges.")

    return CardUtilization(
        usage_percentage=round(usage, 1),
        status=status,
        optimal_payment=optimal_payment,
        recommendations=recommendations,
    )


def optimize_billing_cycle(cards: Iterable[CardSnapshot]) -> List[BillingPlan]:
    """
    Suggest when to pay each card.

    Cards above 30% utilization should be paid down to 10% before the
    statement is generated; the rest can be paid in full by the due date.
    """
    plans = []
    for card in cards or []:
        optimal_day = card.billing_day + 3
        if optimal_day > 28:
            optimal_day -= 28

        pay_before_billing = card.current_spend > card.limit * TARGET_UTILIZATION
        if pay_before_billing:
            recommendation = (
                f"Pay {card.current_spend - card.limit * 0.1:,.0f} before the "
                f"{card.billing_day}th to reduce statement balance"
            )
        else:
            recommendation = f"Pay full balance by the {card.due_day}th"

        plans.append(
            BillingPlan(
                name=card.name,
                billing_day=card.billing_day,
                due_day=card.due_day,
                current_utilization=round(card.current_spend * 100 / card.limit) if card.limit > 0 else 0,
                optimal_pay_day=optimal_day,
                recommendation=recommendation,
                strategy="PRE_STATEMENT_PAYMENT" if pay_before_billing else "FULL_PAYMENT_BY_DUE",
            )
        )
    return plans


def suggest_card_for_purchase(
    cards: Iterable[CardSnapshot],
    purchase_amount: float,
    category: str = "general",
    today: date | None = None,
) -> CardSuggestion:
    """
    Pick the card that best absorbs a purchase.

    Cards without enough available credit are excluded. Remaining cards score
    on utilization impact (50/30/10), reward multiplier (×20) and days left
    until the due date.
    """
    cards = list(cards or [])
    if not cards:
        return CardSuggestion(suggestion=None, reason="No cards available")

    today = today or date.today()
    options: List[CardOption] = []

    for card in cards:
        if card.limit - card.current_spend < purchase_amount:
            continue

        new_utilization = (card.current_spend + purchase_amount) * 100 / card.limit if card.limit > 0 else 100.0
        score = 0.0
        reasons = []

        if new_utilization <= 30:
            score += 50
            reasons.append("Low utilization impact")
        elif new_utilization <= 50:
            score += 30
        else:
            score += 10
            reasons.append("High utilization impact")

        reward = _reward_multiplier(card.rewards, category)
        score += reward * 20
        if reward > 1:
            reasons.append(f"{reward:g}x rewards on {category}")

        days_until_due = card.due_day - today.day if card.due_day >= today.day else 30 - today.day + card.due_day
        score += days_until_due
        if days_until_due > 15:
            reasons.append("Long interest-free period")

        options.append(CardOption(name=card.name, score=score, new_utilization=round(new_utilization), reasons=reasons))

    if not options:
        return CardSuggestion(suggestion=None, reason="No card has sufficient credit")

    options.sort(key=lambda o: o.score, reverse=True)
    best = options[0]

    return CardSuggestion(
        suggestion=best.name,
        reason="; ".join(best.reasons),
        score=best.score,
        new_utilization=best.new_utilization,
        reasons=best.reasons,
        all_options=options,
    )


def _reward_multiplier(rewards: Dict[str, float], category: str) -> float:
    return rewards.get(category) or rewards.get("general") or 1.0
