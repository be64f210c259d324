"""
Pattern-Based Daily Forecaster - multiplicative seasonal model.

Each future day starts from the historical baseline rate (incidents per day)
and is scaled by how over/under-represented its weekday and week-of-month are
in the history, times a uniform 0.8-1.2 jitter. The day is then spread over 24
hours in proportion to the historical hour-of-day profile.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional, Tuple

import numpy as np

from .historical import DAY_NAMES, PatternTables, build_pattern_tables, day_of_week_index, week_of_month
from .records import as_records
from .trend import round_half_up
from .utils.exceptions import InsufficientData
from .utils.logger_config import setup_logger

logger = setup_logger(__name__)

MIN_DAILY_RECORDS = 10
HIGH_RISK_RATIO = 1.5
MEDIUM_RISK_RATIO = 1.2
JITTER_LOW = 0.8
JITTER_HIGH = 1.2

FORECAST_PERIODS: Dict[str, int] = {
    '1week': 7,
    '2weeks': 14,
    '1month': 30,
}


@dataclass(frozen=True)
class DailyForecast:
    date: str
    day_of_week: str
    predicted: int
    risk_level: str
    hourly_breakdown: Dict[int, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            'date': self.date,
            'day_of_week': self.day_of_week,
            'predicted': self.predicted,
            'hourly_breakdown': dict(self.hourly_breakdown),
            'risk_level': self.risk_level,
        }


@dataclass(frozen=True)
class DailyForecastResult:
    days: Tuple[DailyForecast, ...]
    base_rate: float
    sample_size: int

    def to_dict(self) -> dict:
        return {
            'days': [d.to_dict() for d in self.days],
            'base_rate': self.base_rate,
            'sample_size': self.sample_size,
        }


def resolve_horizon(period) -> int:
    """Named period ('1week', '2weeks', '1month') or a positive day count."""
    if isinstance(period, str):
        if period in FORECAST_PERIODS:
            return FORECAST_PERIODS[period]
        raise ValueError(f'Unknown forecast period {period!r}; expected one of {sorted(FORECAST_PERIODS)}')
    days = int(period)
    if days <= 0:
        raise ValueError(f'Forecast horizon must be positive, got {period!r}')
    return days


def classify_risk(prediction: float, base_rate: float) -> str:
    if prediction > base_rate * HIGH_RISK_RATIO:
        return 'High'
    if prediction > base_rate * MEDIUM_RISK_RATIO:
        return 'Medium'
    return 'Low'


def _multiplier(tally: Dict[int, int], key: int, expected: float) -> float:
    # Unseen bucket or zero expectation -> neutral
    observed = tally.get(key, 0)
    if expected <= 0 or observed == 0:
        return 1.0
    return observed / expected


def split_into_hours(predicted: int, hourly_tally: Dict[int, int], total: int) -> Dict[int, int]:
    """
    Spread a day's integer prediction over hours 0-23 following the hour-of-day profile.

    Shares follow ``hourly_tally[h] / (total/24)`` (neutral 1 for unseen hours)
    and are apportioned by largest remainder so the 24 counts add up to
    ``predicted`` exactly. Equal remainders go to the earlier hour.
    """
    expected = total / 24
    weights = np.array([_multiplier(hourly_tally, h, expected) for h in range(24)], dtype=float)
    raw = predicted * weights / weights.sum()

    floors = np.floor(raw).astype(int)
    remainder = max(0, predicted - int(floors.sum()))
    fractions = raw - floors
    # stable sort on -fraction keeps lower hours first among ties
    order = np.argsort(-fractions, kind='stable')
    for h in order[:remainder]:
        floors[h] += 1

    return {h: int(floors[h]) for h in range(24)}


def _forecast_day(moment: datetime, patterns: PatternTables, base_rate: float, jitter: float) -> DailyForecast:
    total = patterns.total
    dow = day_of_week_index(moment)

    prediction = base_rate
    prediction *= _multiplier(patterns.day_of_week, dow, total / 7)
    prediction *= _multiplier(patterns.week_of_month, week_of_month(moment), total / 4)
    prediction *= jitter

    predicted = max(0, round_half_up(prediction))
    return DailyForecast(
        date=moment.date().isoformat(),
        day_of_week=DAY_NAMES[dow],
        predicted=predicted,
        risk_level=classify_risk(prediction, base_rate),
        hourly_breakdown=split_into_hours(predicted, patterns.hourly, total),
    )


def forecast_daily(
    records,
    horizon_days=14,
    crime_type: Optional[str] = None,
    as_of: Optional[datetime] = None,
    rng: Optional[np.random.Generator] = None,
    lookback_days: Optional[int] = None,
) -> DailyForecastResult:
    """
    Forecast one count per day for the next ``horizon_days`` days.

    Args:
    records: IncidentRecords or a raw snapshot
    horizon_days: Day count or a named period ('1week', '2weeks', '1month')
    crime_type (str): Exact category to keep, None for all
    as_of (datetime): Reference "now"; forecast days start the day after
    rng (np.random.Generator): Jitter source. Pass a seeded generator for repeatable output
    lookback_days (int): Only use history from the last N days before as_of

    Returns:
    DailyForecastResult: The per-day forecasts plus the baseline rate they were classified against

    Raises:
    InsufficientData: Fewer than 10 qualifying records
    """
    horizon = resolve_horizon(horizon_days)
    as_of = as_of or datetime.now(timezone.utc)
    if as_of.tzinfo is None:
        as_of = as_of.replace(tzinfo=timezone.utc)
    rng = rng if rng is not None else np.random.default_rng()

    cutoff = as_of - timedelta(days=lookback_days) if lookback_days is not None else None
    qualifying = [
        r for r in as_records(records)
        if r.timestamp is not None
        and (crime_type is None or r.category == crime_type)
        and (cutoff is None or r.timestamp >= cutoff)
    ]
    if len(qualifying) < MIN_DAILY_RECORDS:
        raise InsufficientData(
            f'Insufficient historical data for accurate forecasting '
            f'(minimum {MIN_DAILY_RECORDS} records required, found {len(qualifying)})'
        )

    patterns = build_pattern_tables(qualifying)
    days_in_history = max(1.0, (as_of - patterns.earliest).total_seconds() / 86400)
    base_rate = patterns.total / days_in_history

    days = []
    for i in range(1, horizon + 1):
        jitter = float(rng.uniform(JITTER_LOW, JITTER_HIGH))
        days.append(_forecast_day(as_of + timedelta(days=i), patterns, base_rate, jitter))

    logger.info(f'Pattern forecast: {horizon} days from {len(qualifying)} records, base rate {base_rate:.3f}/day')
    return DailyForecastResult(days=tuple(days), base_rate=base_rate, sample_size=len(qualifying))
