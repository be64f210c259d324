"""
Trend Forecaster - least-squares trend extrapolation over a monthly count series.

This is a straight-line fit on the month index, not a Box-Jenkins model. The
confidence band is ``1.96 * sigma`` of the fit residuals applied to every
horizon step whatever the sample size, so treat it as a rough visual guide
rather than a 95% guarantee.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .historical import MonthlyBucket, load_history
from .utils.exceptions import InsufficientData
from .utils.logger_config import setup_logger

logger = setup_logger(__name__)

MIN_TREND_POINTS = 3
CONFIDENCE_Z = 1.96


def round_half_up(value: float) -> int:
    """Round .5 away from zero on the positive side, the way the dashboard charts do."""
    return int(math.floor(value + 0.5))


@dataclass(frozen=True)
class LinearFit:
    slope: float
    intercept: float
    r_squared: Optional[float]
    residual_std: float

    def predict(self, x: float) -> float:
        return self.slope * x + self.intercept


@dataclass(frozen=True)
class TrendForecastPoint:
    label: Optional[str]
    predicted: int
    upper: int
    lower: int

    def to_dict(self) -> dict:
        return {'label': self.label, 'predicted': self.predicted, 'upper': self.upper, 'lower': self.lower}


@dataclass(frozen=True)
class TrendForecast:
    points: Tuple[TrendForecastPoint, ...]
    trend: Optional[float]
    intercept: Optional[float]
    r_squared: Optional[float]
    method: str

    @property
    def labels(self) -> List[Optional[str]]:
        return [p.label for p in self.points]

    @property
    def forecast(self) -> List[int]:
        return [p.predicted for p in self.points]

    @property
    def confidence_upper(self) -> List[int]:
        return [p.upper for p in self.points]

    @property
    def confidence_lower(self) -> List[int]:
        return [p.lower for p in self.points]

    def to_dict(self) -> dict:
        return {
            'forecast': self.forecast,
            'confidence_upper': self.confidence_upper,
            'confidence_lower': self.confidence_lower,
            'trend': self.trend,
            'intercept': self.intercept,
            'r_squared': self.r_squared,
            'method': self.method,
        }


def fit_linear_trend(counts: Sequence[float]) -> LinearFit:
    """
    Ordinary least squares of counts against their index 0..n-1.

    Args:
    counts (Sequence[float]): Monthly counts, oldest first

    Returns:
    LinearFit: slope, intercept, R^2 (None when the series has zero variance)
    and the population standard deviation of the residuals

    Raises:
    InsufficientData: Fewer than 3 points
    """
    n = len(counts)
    if n < MIN_TREND_POINTS:
        raise InsufficientData(f'A trend fit needs at least {MIN_TREND_POINTS} monthly points, got {n}')

    y = np.asarray(counts, dtype=float)
    x = np.arange(n, dtype=float)

    sum_x = x.sum()
    sum_y = y.sum()
    sum_xy = (x * y).sum()
    sum_xx = (x * x).sum()

    slope = (n * sum_xy - sum_x * sum_y) / (n * sum_xx - sum_x * sum_x)
    intercept = (sum_y - slope * sum_x) / n

    residuals = y - (slope * x + intercept)
    ss_res = float((residuals ** 2).sum())
    ss_tot = float(((y - y.mean()) ** 2).sum())
    # Flat history: R^2 is undefined rather than 1 - x/0
    r_squared = None if ss_tot == 0 else 1 - ss_res / ss_tot

    return LinearFit(
        slope=float(slope),
        intercept=float(intercept),
        r_squared=r_squared,
        residual_std=float(np.sqrt(ss_res / n)),
    )


def forecast_trend(
    counts: Sequence[float],
    months: int = 6,
    labels: Optional[Sequence[str]] = None,
    require_history: bool = False,
) -> TrendForecast:
    """
    Extrapolate the monthly series ``months`` steps ahead with symmetric confidence bands.

    Fewer than 3 points is not an error: the last known value (0 if none) is
    carried forward flat with zero-width bands.

    Args:
    counts (Sequence[float]): Monthly counts, oldest first
    months (int): Horizon in months
    labels (Sequence[str]): Optional labels for the forecast points
    require_history (bool): Raise instead of returning zeros on an empty series

    Raises:
    InsufficientData: require_history is set and counts is empty
    ValueError: months is negative
    """
    if months < 0:
        raise ValueError(f'months must be non-negative, got {months}')
    if labels is not None and len(labels) != months:
        raise ValueError(f'Expected {months} labels, got {len(labels)}')
    if require_history and len(counts) == 0:
        raise InsufficientData('No monthly history to forecast from')

    labels = list(labels) if labels is not None else [None] * months

    if len(counts) < MIN_TREND_POINTS:
        last_value = max(0, round_half_up(counts[-1])) if len(counts) else 0
        logger.info(f'Only {len(counts)} monthly points, carrying {last_value} forward flat')
        points = tuple(TrendForecastPoint(label, last_value, last_value, last_value) for label in labels)
        return TrendForecast(points=points, trend=None, intercept=None, r_squared=None, method='flat')

    fit = fit_linear_trend(counts)
    n = len(counts)
    half_width = CONFIDENCE_Z * fit.residual_std

    points = []
    for i, label in enumerate(labels):
        predicted = max(0, round_half_up(fit.predict(n + i)))
        points.append(TrendForecastPoint(
            label=label,
            predicted=predicted,
            upper=max(0, round_half_up(predicted + half_width)),
            lower=max(0, round_half_up(predicted - half_width)),
        ))

    logger.debug(f'Linear trend slope={fit.slope:.4f} intercept={fit.intercept:.4f} r2={fit.r_squared}')
    return TrendForecast(
        points=tuple(points),
        trend=fit.slope,
        intercept=fit.intercept,
        r_squared=fit.r_squared,
        method='linear',
    )


def generate_forecast_labels(last_label: Optional[str], months: int = 6, as_of: Optional[datetime] = None) -> List[str]:
    """
    The ``months`` labels following ``last_label`` (``YYYY-MM``).

    With no history the labels start the month after ``as_of`` (now by default).
    """
    if last_label:
        year, month = (int(part) for part in last_label.split('-'))
    else:
        now = as_of or datetime.now(timezone.utc)
        year, month = now.year, now.month

    labels = []
    for i in range(1, months + 1):
        index = (month - 1) + i
        labels.append(f'{year + index // 12}-{index % 12 + 1:02d}')
    return labels


@dataclass(frozen=True)
class TrendReport:
    crime_type: str
    location: Optional[str]
    history: Tuple[MonthlyBucket, ...]
    forecast: TrendForecast
    sample_size: int

    @property
    def last_known_value(self) -> Optional[int]:
        return self.history[-1].count if self.history else None

    def to_dict(self) -> dict:
        return {
            'success': True,
            'crime_type': self.crime_type,
            'location': self.location,
            'forecast_months': len(self.forecast.points),
            'raw_data': {
                'history': {
                    'labels': [b.label for b in self.history],
                    'data': [b.count for b in self.history],
                },
                'forecast': {
                    'labels': self.forecast.labels,
                    'data': self.forecast.forecast,
                    'confidence_upper': self.forecast.confidence_upper,
                    'confidence_lower': self.forecast.confidence_lower,
                },
            },
            'statistics': {
                'trend': self.forecast.trend,
                'r_squared': self.forecast.r_squared,
                'data_points': len(self.history),
                'last_known_value': self.last_known_value,
                'method': self.forecast.method,
            },
        }


def build_trend_report(records, crime_type: str, location: Optional[str] = None, months: int = 6) -> TrendReport:
    """
    Aggregate, fit and label a monthly trend forecast for one category / location.

    Raises:
    DataUnavailable: Nothing matches the category / location filter
    """
    logger.info(f'Performing trend forecasting for {crime_type!r} in {location!r}')
    history = load_history(records, crime_type, location)
    labels = generate_forecast_labels(history.labels[-1], months)
    forecast = forecast_trend(history.counts, months, labels=labels, require_history=True)

    report = TrendReport(
        crime_type=crime_type,
        location=location,
        history=history.buckets,
        forecast=forecast,
        sample_size=history.sample_size,
    )
    logger.info(f'Trend forecast done: method={forecast.method} points={len(history.buckets)}')
    return report
