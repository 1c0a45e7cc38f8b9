"""Forecasting: EWMA with trend adjustment, confidence intervals and event-aware projections"""

import logging
import math
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Sequence
from finance_engine.domain.aggregation import (
    classify_change,
    half_split_change,
    mean,
    percent_change,
    population_stddev,
    values_by_category,
)
from finance_engine.domain.models import (
    CategoryAmount,
    CategoryForecast,
    ConfidenceForecast,
    EventAdjustedForecast,
    EventImpact,
    Forecast,
    ForecastEvent,
    HoltForecast,
    SalaryCycleForecast,
    SeasonalForecast,
    SpendingSpike,
    SpikeReport,
    Trend,
    TrendSignal,
)
from finance_engine.utils.date_utils import add_months, day_in_month

EWMA_ALPHA = 0.3
HOLT_BETA = 0.1

# Trend over the last TREND_WINDOW points; ±TREND_THRESHOLD percent
TREND_WINDOW = 3
TREND_THRESHOLD = 10
TREND_MULTIPLIERS = {"INCREASING": 1.05, "DECREASING": 0.95, "STABLE": 1.0}

# Category forecasts compare first/second half averages instead
CATEGORY_TREND_THRESHOLD = 15
CATEGORY_TREND_MULTIPLIERS = {"INCREASING": 1.1, "DECREASING": 0.9, "STABLE": 1.0}

MIN_CI_POINTS = 3
Z_SCORES = {0.80: 1.282, 0.90: 1.645, 0.95: 1.96, 0.99: 2.576}
DEFAULT_Z = 1.96


def _clean(values: Optional[Iterable[float]]) -> List[float]:
    """Drop None/NaN entries so callers can pass sparse series"""
    if not values:
        return []
    return [float(v) for v in values if v is not None and not (isinstance(v, float) and math.isnan(v))]


def calculate_ewma(values: Sequence[float], alpha: float = EWMA_ALPHA) -> float:
    """ewma_t = α·x_t + (1−α)·ewma_{t−1}, seeded with the first observation"""
    if not values:
        return 0.0
    ewma = values[0]
    for value in values[1:]:
        ewma = alpha * value + (1 - alpha) * ewma
    return ewma


def detect_trend(values: Sequence[float]) -> Trend:
    """
    Compare the first and last of the most recent TREND_WINDOW points.

    >+10% is INCREASING, <-10% DECREASING, anything else STABLE.
    """
    if len(values) < 2:
        return Trend(direction="STABLE", change=0)

    recent = values[-TREND_WINDOW:]
    change = percent_change(recent[0], recent[-1])
    return Trend(direction=classify_change(change, TREND_THRESHOLD), change=round(change))


def predict_next_month(monthly_totals: Iterable[float]) -> Forecast:
    """
    Trend-adjusted EWMA forecast for next month's total.

    Confidence is 100 minus the dispersion of history around the EWMA,
    expressed as a percentage of the prediction.
    """
    values = _clean(monthly_totals)
    if not values:
        return Forecast(predicted=0, confidence=0)

    base = round(calculate_ewma(values))
    trend = detect_trend(values)
    predicted = round(base * TREND_MULTIPLIERS[trend.direction])

    std_dev = population_stddev(values, center=base) if len(values) > 1 else 0.0
    confidence = max(0.0, min(100.0, 100 - std_dev * 100 / base)) if base > 0 else 0.0

    return Forecast(
        predicted=predicted,
        confidence=round(confidence),
        base_prediction=base,
        data_points=len(values),
        trend=trend,
    )


def predict_next_month_with_ci(history: Iterable[float], confidence: float = 0.95) -> ConfidenceForecast:
    """
    Forecast next month with a [low, high] confidence interval.

    Requirements:
    - At least MIN_CI_POINTS observations, otherwise a zeroed result flagged
      insufficient_data
    - Population mean and standard deviation over the whole history
    - Interval = prediction ± z × stddev / √n (z = 1.96 at 95%)
    - Volatility = stddev / mean as a percentage
    """
    values = _clean(history)
    if len(values) < MIN_CI_POINTS:
        logging.debug("Confidence forecast skipped", extra={"data_points": len(values)})
        return ConfidenceForecast(
            predicted=0,
            low=0,
            high=0,
            confidence=0,
            data_points=len(values),
            insufficient_data=True,
            message=f"Insufficient data for prediction (need {MIN_CI_POINTS}+ months)",
        )

    n = len(values)
    average = mean(values)
    std_dev = population_stddev(values)

    trend = detect_trend(values)
    predicted = calculate_ewma(values) * TREND_MULTIPLIERS[trend.direction]

    z = Z_SCORES.get(round(confidence, 2), DEFAULT_Z)
    margin = z * std_dev / math.sqrt(n)

    return ConfidenceForecast(
        predicted=round(predicted),
        low=round(max(0.0, predicted - margin)),
        high=round(predicted + margin),
        confidence=round(confidence * 100),
        std_dev=round(std_dev),
        volatility=round(std_dev * 100 / average) if average > 0 else 0,
        data_points=n,
        message=f"Trend {trend.direction.lower()} ({trend.change:+.0f}%)",
    )


def holt_forecast(history: Iterable[float], alpha: float = EWMA_ALPHA, beta: float = HOLT_BETA) -> HoltForecast:
    """Holt's linear trend method: smoothed level plus smoothed slope"""
    values = _clean(history)
    if not values:
        return HoltForecast(level=0, trend=0, forecast=0)

    level = values[0]
    slope = values[1] - values[0] if len(values) > 1 else 0.0

    for value in values[1:]:
        previous_level = level
        level = alpha * value + (1 - alpha) * (previous_level + slope)
        slope = beta * (level - previous_level) + (1 - beta) * slope

    return HoltForecast(level=level, trend=slope, forecast=round(level + slope))


def seasonal_ewma(history: Iterable[float], alpha: float = EWMA_ALPHA) -> SeasonalForecast:
    """
    EWMA scaled by a seasonal factor once a full year of history exists.

    The factor is the average of the observations twelve, twenty-four, ...
    months before the forecast month divided by the overall average.
    """
    values = _clean(history)
    if not values:
        return SeasonalForecast(predicted=0, confidence=0)

    n = len(values)
    factor = 1.0
    if n >= 12:
        same_month = [v for idx, v in enumerate(values) if (n - idx) % 12 == 0]
        overall = mean(values)
        if same_month and overall > 0:
            factor = mean(same_month) / overall

    return SeasonalForecast(
        predicted=round(calculate_ewma(values, alpha) * factor),
        confidence=min(95, 50 + n * 5),
        seasonal_factor=round(factor, 2),
    )


def predict_by_category(category_history: Dict[str, Sequence[float]]) -> List[CategoryForecast]:
    """Average per category, nudged ±10% by a first-half/second-half trend"""
    forecasts = []
    for category, history in (category_history or {}).items():
        values = _clean(history)
        if not values:
            continue

        average = mean(values)
        trend = classify_change(half_split_change(values), CATEGORY_TREND_THRESHOLD)
        forecasts.append(
            CategoryForecast(
                category=category,
                average=round(average),
                predicted=round(average * CATEGORY_TREND_MULTIPLIERS[trend]),
                trend=trend,
                data_points=len(values),
            )
        )

    return sorted(forecasts, key=lambda f: f.predicted, reverse=True)


def predict_with_events(baseline: float, events: Iterable[ForecastEvent]) -> EventAdjustedForecast:
    """
    Shift a baseline prediction for known upcoming events.

    FESTIVAL and VACATION add their amount, or 20% / 50% of baseline when no
    amount is given; BONUS saves 10% of the bonus; EMI_END removes the
    finished installment; MAJOR_PURCHASE and unknown types add their amount.
    """
    events = list(events or [])
    if not events:
        return EventAdjustedForecast(baseline=baseline, adjustment=0, adjusted=baseline)

    adjustment = 0.0
    impacts: List[EventImpact] = []

    for event in events:
        kind = (event.type or "").upper()
        amount = event.amount or 0.0

        if kind == "FESTIVAL":
            delta = amount or baseline * 0.2
            impacts.append(EventImpact(kind, f"+{delta:,.0f}", event.description or "Festival spending"))
        elif kind == "VACATION":
            delta = amount or baseline * 0.5
            impacts.append(EventImpact(kind, f"+{delta:,.0f}", event.description or "Vacation expenses"))
        elif kind == "BONUS":
            delta = -amount * 0.1
            impacts.append(EventImpact(kind, "Savings boost", event.description or "Bonus month"))
        elif kind == "EMI_END":
            delta = -amount
            impacts.append(EventImpact(kind, f"-{amount:,.0f}", event.description or "EMI ending"))
        elif kind == "MAJOR_PURCHASE":
            delta = amount
            impacts.append(EventImpact(kind, f"+{amount:,.0f}", event.description or "Major purchase"))
        else:
            delta = amount
        adjustment += delta

    return EventAdjustedForecast(
        baseline=baseline,
        adjustment=round(adjustment),
        adjusted=round(baseline + adjustment),
        events=impacts,
        adjustment_reason=", ".join(i.description for i in impacts) or "No events",
    )


def predict_salary_cycle(salary_day: int, daily_expenses: Sequence[float], today: date) -> SalaryCycleForecast:
    """
    Project spending until the next salary credit.

    `daily_expenses` holds one total per day, the last entry being today.
    Days before the salary day of their month count as pre-salary spending.
    """
    values = _clean(daily_expenses)
    salary_day = max(1, min(31, int(salary_day or 1)))

    next_salary = day_in_month(today.year, today.month, salary_day)
    if next_salary < today:
        next_month = add_months(date(today.year, today.month, 1), 1)
        next_salary = day_in_month(next_month.year, next_month.month, salary_day)
    days_until_salary = (next_salary - today).days

    average_daily = mean(values)

    pre_salary: List[float] = []
    post_salary: List[float] = []
    for idx, amount in enumerate(values):
        day = today - timedelta(days=len(values) - 1 - idx)
        (pre_salary if day.day < salary_day else post_salary).append(amount)

    pre_avg = mean(pre_salary) if pre_salary else average_daily
    post_avg = mean(post_salary) if post_salary else average_daily

    return SalaryCycleForecast(
        days_until_salary=days_until_salary,
        projected_expenses=round(average_daily * days_until_salary),
        avg_daily_expense=round(average_daily),
        pre_salary_avg=round(pre_avg),
        post_salary_avg=round(post_avg),
        difference=round(post_avg - pre_avg),
        insight=(
            "Higher spending right after salary - consider setting aside savings first"
            if post_avg > pre_avg * 1.3
            else "Consistent spending pattern - good discipline"
        ),
    )


def detect_spending_spikes(
    recent: Iterable[float],
    historical_avg: Optional[float] = None,
    threshold: float = 2.0,
) -> SpikeReport:
    """Flag values whose z-score against the historical average exceeds `threshold`"""
    values = _clean(recent)
    if not values:
        return SpikeReport(spikes=[], has_spike=False, threshold=threshold)

    center = historical_avg or mean(values)
    std_dev = population_stddev(values, center=center)

    spikes = []
    for idx, value in enumerate(values):
        z_score = (value - center) / std_dev if std_dev > 0 else 0.0
        if abs(z_score) > threshold:
            direction = "HIGH" if z_score > 0 else "LOW"
            spikes.append(
                SpendingSpike(
                    index=idx,
                    value=value,
                    z_score=round(z_score, 2),
                    direction=direction,
                    deviation=f"{abs(z_score):.1f} std devs {'above' if z_score > 0 else 'below'} normal",
                )
            )

    return SpikeReport(
        spikes=spikes,
        has_spike=bool(spikes),
        mean=round(center),
        std_dev=round(std_dev),
        threshold=threshold,
    )


def generate_trend_signals(history: Iterable[CategoryAmount]) -> List[TrendSignal]:
    """Per-category trend arrows, strongest movement first"""
    arrows = {"INCREASING": "↑", "DECREASING": "↓", "STABLE": "→"}
    signals = []

    for category, amounts in values_by_category(history or []).items():
        if len(amounts) < 2:
            continue
        trend = detect_trend(amounts)
        signals.append(
            TrendSignal(
                category=category,
                trend=trend.direction,
                change_percent=trend.change,
                average=round(mean(amounts)),
                latest=round(amounts[-1]),
                signal=arrows[trend.direction],
                alert=trend.direction == "INCREASING" and trend.change > 25,
            )
        )

    return sorted(signals, key=lambda s: abs(s.change_percent), reverse=True)
