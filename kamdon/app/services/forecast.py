"""Conservative daily revenue projection for the analytics dashboard.

Least-squares trend over the last 30 days of the (3-day smoothed) revenue
trend, with day-of-week seasonality damped halfway towards neutral. The
projection is capped at 5% growth per day, never negative, and held flat when
the trend slope is below 1% of mean daily revenue.
"""
from __future__ import annotations

import math
from collections.abc import Sequence
from datetime import timedelta

from kamdon.app.schemas.analytics import ForecastPoint, TrendPoint

MIN_HISTORY_DAYS = 14
HISTORY_WINDOW_DAYS = 30
MAX_DAILY_GROWTH = 1.05
SEASONALITY_DAMPING = 0.5
FLAT_SLOPE_RATIO = 0.01
Z_95 = 1.96
BAND_WIDENING_PER_DAY = 0.1


def _round(value: float) -> int:
    return int(math.floor(value + 0.5))


def predict_revenue(
    history: Sequence[TrendPoint], days_to_forecast: int = 14,
) -> tuple[ForecastPoint, ...] | None:
    """Project revenue *days_to_forecast* days past the end of *history*.

    Returns ``None`` when there are fewer than 14 days of history or every
    day is zero.
    """
    if len(history) < MIN_HISTORY_DAYS:
        return None
    values = [float(p.revenue) for p in history]
    if not any(values):
        return None
    mean = sum(values) / len(values)

    ordered = sorted(history, key=lambda p: p.date)[-HISTORY_WINDOW_DAYS:]
    raw = [float(p.revenue) for p in ordered]
    smoothed = [
        raw[i] if i < 2 else (raw[i] + raw[i - 1] + raw[i - 2]) / 3
        for i in range(len(raw))
    ]

    # ── Least squares ────────────────────────────────────────────────────
    n = len(smoothed)
    sum_x = sum(range(n))
    sum_y = sum(smoothed)
    sum_xy = sum(x * y for x, y in enumerate(smoothed))
    sum_xx = sum(x * x for x in range(n))
    slope = (n * sum_xy - sum_x * sum_y) / (n * sum_xx - sum_x * sum_x)
    intercept = (sum_y - slope * sum_x) / n

    # ── Damped day-of-week seasonality ───────────────────────────────────
    ratio_sums = [0.0] * 7
    day_counts = [0] * 7
    for x, (point, y) in enumerate(zip(ordered, smoothed)):
        trend = max(slope * x + intercept, 1.0)
        weekday = point.date.weekday()
        ratio_sums[weekday] += y / trend
        day_counts[weekday] += 1
    season = []
    for weekday in range(7):
        factor = ratio_sums[weekday] / day_counts[weekday] if day_counts[weekday] else 1.0
        season.append(1.0 + (factor - 1.0) * SEASONALITY_DAMPING)

    residuals = 0.0
    for x, (point, y) in enumerate(zip(ordered, smoothed)):
        fitted = (slope * x + intercept) * season[point.date.weekday()]
        residuals += (y - fitted) ** 2
    std_dev = math.sqrt(residuals / n)

    # ── Projection ───────────────────────────────────────────────────────
    forecast: list[ForecastPoint] = []
    last_date = ordered[-1].date
    last_value = smoothed[-1]
    is_flat = abs(slope) < mean * FLAT_SLOPE_RATIO
    show_band = std_dev > mean * FLAT_SLOPE_RATIO

    for i in range(1, days_to_forecast + 1):
        future = last_date + timedelta(days=i)
        predicted = (slope * (n - 1 + i) + intercept) * season[future.weekday()]
        predicted = min(predicted, last_value * MAX_DAILY_GROWTH)
        predicted = max(predicted, 0.0)
        if is_flat:
            predicted = last_value
        last_value = predicted

        if show_band:
            margin = Z_95 * std_dev * (1 + i * BAND_WIDENING_PER_DAY)
            lower, upper = max(0.0, predicted - margin), predicted + margin
        else:
            lower = upper = predicted

        forecast.append(ForecastPoint(
            date=future,
            value=_round(predicted),
            lower_bound=_round(lower),
            upper_bound=_round(upper),
        ))

    return tuple(forecast)
