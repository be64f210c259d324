"""
Historical Aggregator - monthly buckets and time-of-day / calendar pattern tallies.

Produces the two inputs every forecaster needs:
- a chronologically ordered ``YYYY-MM`` count series for one category (and
  optionally one location), used by the trend forecaster
- hour / day-of-week / week-of-month occurrence tallies, used by the daily
  pattern forecaster

Day-of-week is indexed Sunday=0 .. Saturday=6 and week-of-month is
``day_of_month // 7`` (0..4). All clock fields are read in UTC.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

import pandas as pd

from .records import IncidentRecord, as_records
from .utils.exceptions import DataUnavailable
from .utils.logger_config import setup_logger

logger = setup_logger(__name__)

DAY_NAMES = ('Sunday', 'Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday')


@dataclass(frozen=True)
class MonthlyBucket:
    label: str
    count: int

    def to_dict(self) -> dict:
        return {'label': self.label, 'count': self.count}


@dataclass(frozen=True)
class PatternTables:
    hourly: Dict[int, int] = field(default_factory=dict)
    day_of_week: Dict[int, int] = field(default_factory=dict)
    week_of_month: Dict[int, int] = field(default_factory=dict)
    total: int = 0
    earliest: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            'hourly': dict(self.hourly),
            'day_of_week': dict(self.day_of_week),
            'week_of_month': dict(self.week_of_month),
            'total': self.total,
            'earliest': self.earliest.isoformat() if self.earliest else None,
        }


@dataclass(frozen=True)
class HistoricalSeries:
    buckets: Tuple[MonthlyBucket, ...]
    patterns: PatternTables
    sample_size: int

    @property
    def labels(self) -> List[str]:
        return [b.label for b in self.buckets]

    @property
    def counts(self) -> List[int]:
        return [b.count for b in self.buckets]

    def to_dict(self) -> dict:
        return {
            'labels': self.labels,
            'data': self.counts,
            'sample_size': self.sample_size,
            'patterns': self.patterns.to_dict(),
        }


def week_of_month(moment: datetime) -> int:
    return moment.day // 7


def day_of_week_index(moment: datetime) -> int:
    # datetime.weekday() is Monday=0; tallies are Sunday=0
    return (moment.weekday() + 1) % 7


def records_to_frame(records: Iterable[IncidentRecord]) -> pd.DataFrame:
    """Timestamped records as a frame with category / location / timestamp columns."""
    rows = [
        {'category': r.category, 'location': r.location, 'timestamp': r.timestamp}
        for r in records
        if r.timestamp is not None
    ]
    df = pd.DataFrame(rows, columns=['category', 'location', 'timestamp'])
    df['timestamp'] = pd.to_datetime(df['timestamp'], utc=True)
    return df


def _tally(series: pd.Series) -> Dict[int, int]:
    return {int(k): int(v) for k, v in series.value_counts().sort_index().items()}


def build_pattern_tables(records) -> PatternTables:
    """
    Hour / day-of-week / week-of-month tallies over every timestamped record given.

    Args:
    records: IncidentRecords or a raw snapshot

    Returns:
    PatternTables: Empty tables (total 0) when nothing is timestamped
    """
    df = records_to_frame(as_records(records))
    if df.empty:
        return PatternTables()

    ts = df['timestamp']
    return PatternTables(
        hourly=_tally(ts.dt.hour),
        day_of_week=_tally((ts.dt.dayofweek + 1) % 7),
        week_of_month=_tally(ts.dt.day // 7),
        total=len(df),
        earliest=ts.min().to_pydatetime(),
    )


def aggregate_monthly_counts(records, crime_type: str, location: Optional[str] = None) -> Tuple[MonthlyBucket, ...]:
    """
    Count records of one category (optionally one location) per calendar month.

    Args:
    records: IncidentRecords or a raw snapshot
    crime_type (str): Exact category label to keep
    location (str): Exact location label to keep, or None for every location

    Returns:
    tuple[MonthlyBucket]: Ascending by label, only months with records

    Raises:
    DataUnavailable: The snapshot is empty or the filters leave no dated records
    """
    records = as_records(records)
    if not records:
        raise DataUnavailable('No crime reports found in the record snapshot')

    df = records_to_frame(records)
    mask = df['category'] == crime_type
    if location is not None:
        mask &= df['location'] == location
    filtered = df[mask]

    if filtered.empty:
        available = sorted(set(df['category']) - {''})
        logger.info(f'No reports for {crime_type!r} in {location!r}. Available types: {available}')
        where = f' in {location}' if location is not None else ''
        raise DataUnavailable(f'No historical data found for {crime_type}{where}')

    monthly = filtered.groupby(filtered['timestamp'].dt.strftime('%Y-%m')).size().sort_index()
    buckets = tuple(MonthlyBucket(label=str(label), count=int(count)) for label, count in monthly.items())
    logger.debug(f'{crime_type!r}/{location!r}: {len(filtered)} reports over {len(buckets)} months')
    return buckets


def load_history(records, crime_type: str, location: Optional[str] = None) -> HistoricalSeries:
    """Monthly buckets for the filtered records plus pattern tables over the full snapshot."""
    records = as_records(records)
    buckets = aggregate_monthly_counts(records, crime_type, location)
    return HistoricalSeries(
        buckets=buckets,
        patterns=build_pattern_tables(records),
        sample_size=sum(b.count for b in buckets),
    )


def monthly_category_trends(records) -> List[dict]:
    """Per-month counts broken down by category, ascending by month."""
    df = records_to_frame(as_records(records))
    if df.empty:
        return []
    df['month'] = df['timestamp'].dt.strftime('%Y-%m')
    df['category'] = df['category'].replace('', 'Unknown')
    grouped = df.groupby(['month', 'category']).size()

    trends: Dict[str, Dict[str, int]] = {}
    for (month, category), count in grouped.items():
        trends.setdefault(str(month), {})[str(category)] = int(count)
    return [{'month': month, 'data': trends[month]} for month in sorted(trends)]
