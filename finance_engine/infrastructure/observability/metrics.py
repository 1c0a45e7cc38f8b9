"""Prometheus metrics for monitoring calculation volume, outcomes and latency"""

from typing import Iterable
from prometheus_client import Counter, Histogram

# Calculation metrics
calculation_counter = Counter(
    "finance_engine_calculations_total",
    "Total analytics calculations run",
    ["engine", "outcome"],  # outcome: success | invalid_snapshot | error
)

calculation_duration_histogram = Histogram(
    "finance_engine_calculation_duration_seconds",
    "Analytics calculation latency",
    ["engine"],
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 1.0],
)

# Result distribution metrics
health_risk_level_counter = Counter(
    "finance_engine_health_risk_level_total",
    "Health scores issued by risk level",
    ["risk_level"],  # EXCELLENT | GOOD | STABLE | WARNING | CRITICAL
)

expense_anomaly_counter = Counter(
    "finance_engine_expense_anomalies_total",
    "Expense anomalies flagged by severity",
    ["severity"],  # HIGH | MEDIUM
)


def record_calculation(engine: str, outcome: str, duration_seconds: float) -> None:
    """Record one calculation for volume and latency monitoring"""
    calculation_counter.labels(engine=engine, outcome=outcome).inc()
    calculation_duration_histogram.labels(engine=engine).observe(duration_seconds)


def record_health_risk_level(risk_level: str) -> None:
    health_risk_level_counter.labels(risk_level=risk_level).inc()


def record_anomalies(severities: Iterable[str]) -> None:
    for severity in severities:
        expense_anomaly_counter.labels(severity=severity).inc()
