"""Shared aggregation and descriptive statistics helpers"""

import math
from typing import Dict, Iterable, List, Sequence
from finance_engine.domain.models import CategoryAmount


def totals_by_category(entries: Iterable[CategoryAmount]) -> Dict[str, float]:
    """Sum amounts per category, skipping entries with no category or amount"""
    totals: Dict[str, float] = {}
    for entry in entries:
        if entry.category and entry.amount:
            totals[entry.category] = totals.get(entry.category, 0.0) + entry.amount
    return totals


def values_by_category(entries: Iterable[CategoryAmount]) -> Dict[str, List[float]]:
    """Group amounts per category, preserving input order"""
    grouped: Dict[str, List[float]] = {}
    for entry in entries:
        if entry.category and entry.amount:
            grouped.setdefault(entry.category, []).append(entry.amount)
    return grouped


def mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def population_stddev(values: Sequence[float], center: float | None = None) -> float:
    """Population standard deviation around `center` (default: the mean)"""
    if not values:
        return 0.0
    center = mean(values) if center is None else center
    variance = sum((v - center) ** 2 for v in values) / len(values)
    return math.sqrt(variance)


def percent_change(old: float, new: float) -> float:
    """Relative change in percent; 0 when there is no positive base"""
    return (new - old) * 100 / old if old > 0 else 0.0


def half_split_change(values: Sequence[float]) -> float:
    """Percent change between the average of the first and second halves"""
    if len(values) < 2:
        return 0.0
    split = len(values) // 2
    return percent_change(mean(values[:split]), mean(values[split:]))


def classify_change(change: float, threshold: float) -> str:
    if change > threshold:
        return "INCREASING"
    if change < -threshold:
        return "DECREASING"
    return "STABLE"


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))
