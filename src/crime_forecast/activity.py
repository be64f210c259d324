"""Recent-activity buckets, chart stats and dispatch response metrics for the live dashboard panels."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Sequence

import pandas as pd

from .records import as_records
from .utils.logger_config import setup_logger

logger = setup_logger(__name__)

ACTIVITY_WINDOWS: Dict[str, timedelta] = {
    '1h': timedelta(hours=1),
    '6h': timedelta(hours=6),
    '24h': timedelta(hours=24),
    '7d': timedelta(days=7),
}


@dataclass(frozen=True)
class ActivityPoint:
    time: datetime
    value: int

    def to_dict(self) -> dict:
        return {'time': self.time.isoformat(), 'value': self.value}


@dataclass(frozen=True)
class ActivityStats:
    current_value: int
    peak: int
    average: float
    trend_percent: Optional[float]

    def to_dict(self) -> dict:
        return {
            'current_value': self.current_value,
            'peak': self.peak,
            'average': self.average,
            'trend_percent': self.trend_percent,
        }


@dataclass(frozen=True)
class ResponseMetrics:
    average_response_minutes: float
    dispatch_efficiency: float
    resolution_rate: float

    def to_dict(self) -> dict:
        return {
            'average_response_minutes': self.average_response_minutes,
            'dispatch_efficiency': self.dispatch_efficiency,
            'resolution_rate': self.resolution_rate,
        }


def _aware(moment: Optional[datetime]) -> datetime:
    moment = moment or datetime.now(timezone.utc)
    return moment if moment.tzinfo else moment.replace(tzinfo=timezone.utc)


def bucket_activity(records, window: str = '24h', crime_type: Optional[str] = None, as_of: Optional[datetime] = None) -> List[ActivityPoint]:
    """
    Count recent reports per hour (per day for the 7d window).

    Args:
    records: IncidentRecords or a raw snapshot
    window (str): One of '1h', '6h', '24h', '7d'
    crime_type (str): Case-insensitive exact category match, None for all
    as_of (datetime): Reference "now"

    Returns:
    list[ActivityPoint]: Non-empty buckets, oldest first
    """
    if window not in ACTIVITY_WINDOWS:
        raise ValueError(f'Unknown activity window {window!r}; expected one of {list(ACTIVITY_WINDOWS)}')
    cutoff = _aware(as_of) - ACTIVITY_WINDOWS[window]
    wanted = crime_type.lower() if crime_type else None

    stamps = [
        r.timestamp for r in as_records(records)
        if r.timestamp is not None
        and r.timestamp >= cutoff
        and (wanted is None or r.category.lower() == wanted)
    ]
    if not stamps:
        return []

    ts = pd.Series(pd.to_datetime(stamps, utc=True))
    buckets = ts.dt.normalize() if window == '7d' else ts.dt.floor(pd.offsets.Hour(1))
    counts = ts.groupby(buckets).size().sort_index()
    return [ActivityPoint(time=stamp.to_pydatetime(), value=int(count)) for stamp, count in counts.items()]


def summarize_activity(points: Sequence[ActivityPoint]) -> ActivityStats:
    """Current / peak / average of the buckets and the second-half vs first-half change in percent."""
    if not points:
        return ActivityStats(current_value=0, peak=0, average=0.0, trend_percent=None)

    values = [p.value for p in points]
    average = sum(values) / len(values)

    mid = len(values) // 2
    first, second = values[:mid], values[mid:]
    trend = None
    if first and second:
        first_avg = sum(first) / len(first)
        second_avg = sum(second) / len(second)
        trend = round((second_avg - first_avg) / first_avg * 100, 1) if first_avg else None

    return ActivityStats(
        current_value=values[-1],
        peak=max(values),
        average=round(average, 1),
        trend_percent=trend,
    )


def compute_response_metrics(records, as_of: Optional[datetime] = None) -> ResponseMetrics:
    """
    Average response time (minutes) of resolved reports, plus resolution and dispatch shares in percent.

    Reports resolved without a ``resolvedAt`` stamp are measured up to ``as_of``.
    """
    records = as_records(records)
    total = len(records)
    if total == 0:
        return ResponseMetrics(0.0, 0.0, 0.0)

    now = _aware(as_of)
    resolved = [r for r in records if r.status == 'Resolved']
    dispatched = sum(1 for r in records if r.status == 'Dispatched')

    minutes = [
        ((r.resolved_at or now) - r.timestamp).total_seconds() / 60
        for r in resolved
        if r.timestamp is not None
    ]
    average = sum(minutes) / len(minutes) if minutes else 0.0

    return ResponseMetrics(
        average_response_minutes=round(average, 1),
        dispatch_efficiency=round(dispatched / total * 100, 1),
        resolution_rate=round(len(resolved) / total * 100, 1),
    )
