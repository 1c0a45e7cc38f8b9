"""Expense leak detection: per-category outliers against spending history"""

import logging
from typing import Iterable, List
from finance_engine.domain.aggregation import mean, totals_by_category, values_by_category
from finance_engine.domain.models import CategoryAmount, ExpenseAnomaly

MIN_IQR_POINTS = 5
IQR_MULTIPLIER = 1.5
MEDIAN_MARGIN = 1.2  # current must also exceed the median by 20%
HIGH_SEVERITY_FENCE_MULTIPLIER = 1.5

# Limited-history fallback
FALLBACK_AVERAGE_MULTIPLIER = 1.5
FALLBACK_ABSOLUTE_FLOOR = 500


def detect_expense_leaks(
    current_month: Iterable[CategoryAmount],
    history: Iterable[CategoryAmount],
) -> List[ExpenseAnomaly]:
    """
    Flag categories whose current-month total stands out against history.

    Detection method per category:
    - ≥5 historical points: IQR fence (Q3 + 1.5×IQR) and 20% above the median.
      HIGH when above 1.5× the fence, else MEDIUM.
    - 1-4 points: above 1.5× the average AND more than 500 over it (MEDIUM)
    - No history: skipped

    Results are ordered by deviation from the baseline, largest first.
    """
    current_totals = totals_by_category(current_month or [])
    history_by_category = values_by_category(history or [])

    anomalies: List[ExpenseAnomaly] = []
    for category, current in current_totals.items():
        values = history_by_category.get(category, [])

        if not values:
            continue

        if len(values) < MIN_IQR_POINTS:
            logging.debug(
                "Limited history, using average fallback",
                extra={"category": category, "data_points": len(values)},
            )
            anomaly = _check_against_average(category, current, values)
        else:
            anomaly = _check_against_iqr(category, current, values)

        if anomaly:
            anomalies.append(anomaly)

    anomalies.sort(key=lambda a: a.deviation, reverse=True)
    return anomalies


def _check_against_average(category: str, current: float, values: List[float]) -> ExpenseAnomaly | None:
    average = mean(values)
    threshold = average * FALLBACK_AVERAGE_MULTIPLIER

    if current <= threshold or current - average <= FALLBACK_ABSOLUTE_FLOOR:
        return None

    return ExpenseAnomaly(
        category=category,
        current=current,
        threshold=round(threshold),
        percent_change=round((current - average) * 100 / average) if average > 0 else 100,
        severity="MEDIUM",
        message=f"{category} spending is higher than average (Limited history)",
        average=round(average),
    )


def _check_against_iqr(category: str, current: float, values: List[float]) -> ExpenseAnomaly | None:
    ordered = sorted(values)
    n = len(ordered)
    q1 = ordered[int(n * 0.25)]
    q3 = ordered[int(n * 0.75)]
    median = ordered[n // 2]
    upper_fence = q3 + IQR_MULTIPLIER * (q3 - q1)

    if current <= upper_fence or current <= median * MEDIAN_MARGIN:
        return None

    return ExpenseAnomaly(
        category=category,
        current=current,
        threshold=round(upper_fence),
        percent_change=round((current - median) * 100 / median) if median > 0 else 100,
        severity="HIGH" if current > upper_fence * HIGH_SEVERITY_FENCE_MULTIPLIER else "MEDIUM",
        message=(
            f"{category} spending detected as anomaly (IQR method). "
            f"{current:,.0f} vs typical {median:,.0f}"
        ),
        median=round(median),
    )
