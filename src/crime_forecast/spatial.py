"""
Spatial Density Aggregator - coordinate-grid counts and bounded intensities for the heat map.

Reports are snapped to a ~11 m grid by rounding latitude/longitude to 4
decimal places. Each grid cell's intensity is ``min(1, count/10)`` scaled by
the user's intensity dial (1-10) and clamped to [0, 1]. The render radius is
passed through untouched for the map layer.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

import pandas as pd

from .config import DEFAULT_HEAT_BOUNDS
from .records import IncidentRecord, as_records
from .utils.crime_taxonomy import matches_category
from .utils.exceptions import InvalidCoordinate
from .utils.logger_config import setup_logger

logger = setup_logger(__name__)

GRID_DECIMALS = 4
SATURATION_COUNT = 10
MIN_DIAL = 1
MAX_DIAL = 10


@dataclass(frozen=True)
class HeatCell:
    key: str
    latitude: float
    longitude: float
    count: int
    intensity: float

    def to_dict(self) -> dict:
        return {
            'key': self.key,
            'latitude': self.latitude,
            'longitude': self.longitude,
            'count': self.count,
            'intensity': self.intensity,
        }

    def as_point(self) -> Tuple[float, float, float]:
        """[lat, lng, intensity] triple as consumed by leaflet.heat."""
        return self.latitude, self.longitude, self.intensity


@dataclass(frozen=True)
class HeatMap:
    cells: Tuple[HeatCell, ...]
    intensity: int
    radius: int
    report_count: int

    def to_dict(self) -> dict:
        return {
            'cells': [c.to_dict() for c in self.cells],
            'points': [list(c.as_point()) for c in self.cells],
            'intensity': self.intensity,
            'radius': self.radius,
            'report_count': self.report_count,
        }


def grid_key(latitude: float, longitude: float) -> str:
    return f'{latitude:.{GRID_DECIMALS}f},{longitude:.{GRID_DECIMALS}f}'


def validate_coordinate(latitude: Optional[float], longitude: Optional[float], bounds=DEFAULT_HEAT_BOUNDS) -> Tuple[float, float]:
    """
    Return the coordinate if usable for the heat map.

    Raises:
    InvalidCoordinate: Missing, NaN, exactly zero, or outside ``bounds``
    """
    if latitude is None or longitude is None:
        raise InvalidCoordinate('missing coordinate')
    if math.isnan(latitude) or math.isnan(longitude) or latitude == 0 or longitude == 0:
        raise InvalidCoordinate(f'degenerate coordinate ({latitude}, {longitude})')
    lat_min, lat_max, lng_min, lng_max = bounds
    if not (lat_min <= latitude <= lat_max and lng_min <= longitude <= lng_max):
        raise InvalidCoordinate(f'({latitude}, {longitude}) outside bounds {bounds}')
    return latitude, longitude


def cell_intensity(count: int, dial: int) -> float:
    base = min(1.0, count / SATURATION_COUNT)
    return max(0.0, min(1.0, base * (dial / MAX_DIAL)))


def filter_reports(
    records,
    time_window_days: Optional[int] = 30,
    crime_type: Optional[str] = None,
    as_of: Optional[datetime] = None,
) -> Tuple[IncidentRecord, ...]:
    """Reports matching the heat map's category filter and time window (None = all time)."""
    records = as_records(records)
    if crime_type:
        records = tuple(r for r in records if matches_category(r.category, crime_type))

    if time_window_days is not None:
        as_of = as_of or datetime.now(timezone.utc)
        if as_of.tzinfo is None:
            as_of = as_of.replace(tzinfo=timezone.utc)
        cutoff = as_of - timedelta(days=time_window_days)
        records = tuple(r for r in records if r.timestamp is not None and r.timestamp >= cutoff)
    return records


def build_heat_map(
    records,
    time_window_days: Optional[int] = 30,
    crime_type: Optional[str] = None,
    intensity: int = 5,
    radius: int = 25,
    as_of: Optional[datetime] = None,
    bounds=DEFAULT_HEAT_BOUNDS,
) -> HeatMap:
    """
    Group geolocated reports into 4-decimal grid cells with a bounded intensity.

    Args:
    records: IncidentRecords or a raw snapshot
    time_window_days (int): Keep reports from the last N days; None keeps everything
    crime_type (str): Loose category filter (see ``matches_category``)
    intensity (int): User dial 1-10
    radius (int): Render radius in pixels, passed through
    as_of (datetime): Reference "now" for the time window
    bounds (tuple): lat_min, lat_max, lng_min, lng_max of the valid area

    Returns:
    HeatMap: One cell per distinct rounded coordinate, ordered by key.
    Reports with unusable coordinates are dropped, never raised.

    Raises:
    ValueError: intensity outside 1-10 or non-positive radius
    """
    if not MIN_DIAL <= intensity <= MAX_DIAL:
        raise ValueError(f'intensity must be between {MIN_DIAL} and {MAX_DIAL}, got {intensity}')
    if radius <= 0:
        raise ValueError(f'radius must be positive, got {radius}')

    filtered = filter_reports(records, time_window_days, crime_type, as_of)

    rows = []
    for record in filtered:
        if not record.has_coordinates:
            logger.debug(f'Dropping report {record.record_id!r} from heat map: no coordinates')
            continue
        try:
            lat, lng = validate_coordinate(record.latitude, record.longitude, bounds)
        except InvalidCoordinate as e:
            logger.debug(f'Dropping report {record.record_id!r} from heat map: {e}')
            continue
        rows.append({'key': grid_key(lat, lng)})

    df = pd.DataFrame(rows, columns=['key'])
    counts = df.groupby('key').size().sort_index()

    cells = []
    for key, count in counts.items():
        lat_str, lng_str = key.split(',')
        cells.append(HeatCell(
            key=key,
            latitude=float(lat_str),
            longitude=float(lng_str),
            count=int(count),
            intensity=cell_intensity(int(count), intensity),
        ))

    logger.info(f'Heat map: {len(filtered)} reports -> {len(cells)} cells (dial {intensity}/10)')
    return HeatMap(cells=tuple(cells), intensity=intensity, radius=radius, report_count=len(rows))
