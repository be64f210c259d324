"""
Record normalization - the one place that knows how incident reports look on the wire.

Reports reach us from several app versions, so the same field can live under
different keys (``type`` / ``crimeType`` / ``crime_type``), the location can be
a plain string or a nested object, and some documents wrap their payload under
their own ``reportId``. Everything downstream works on ``IncidentRecord`` only.
"""

from __future__ import annotations

import math
import warnings
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Optional, Tuple, Union

import pandas as pd

from .utils.logger_config import setup_logger

logger = setup_logger(__name__)

CATEGORY_KEYS = ('type', 'crimeType', 'crime_type')
LOCATION_KEYS = ('location', 'location_address', 'address')
TIMESTAMP_KEYS = ('dateTime', 'createdAt', 'timestamp', 'date')
LATITUDE_KEYS = ('latitude', 'lat')
LONGITUDE_KEYS = ('longitude', 'lng')

Snapshot = Union[Mapping[str, Mapping[str, Any]], Iterable[Mapping[str, Any]]]


@dataclass(frozen=True)
class IncidentRecord:
    record_id: str
    category: str
    timestamp: Optional[datetime]
    status: Optional[str] = None
    location: str = ''
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    resolved_at: Optional[datetime] = None

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    def to_dict(self) -> dict:
        return {
            'id': self.record_id,
            'category': self.category,
            'timestamp': self.timestamp.isoformat() if self.timestamp else None,
            'status': self.status,
            'location': self.location,
            'latitude': self.latitude,
            'longitude': self.longitude,
            'resolved_at': self.resolved_at.isoformat() if self.resolved_at else None,
        }


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Accept ISO8601 or any other date string pandas understands, UNIX seconds/ms, or datetime.
    Returns aware UTC datetime or None if invalid.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return None
        # treat large numbers as ms
        unit = 'ms' if value > 1e12 else 's'
        try:
            ts = pd.to_datetime(value, unit=unit, utc=True, errors='coerce')
        except (OverflowError, ValueError):
            return None
    elif isinstance(value, (str, datetime)):
        if isinstance(value, str) and not value.strip():
            return None
        with warnings.catch_warnings():
            # free-form strings fall back to dateutil, which pandas warns about
            warnings.simplefilter('ignore', UserWarning)
            try:
                ts = pd.to_datetime(value, utc=True, errors='coerce')
            except (OverflowError, ValueError):
                return None
    else:
        return None

    if pd.isna(ts):
        return None
    return ts.to_pydatetime().astimezone(timezone.utc)


def _first_present(raw: Mapping[str, Any], keys: Tuple[str, ...]) -> Any:
    for key in keys:
        value = raw.get(key)
        if value not in (None, ''):
            return value
    return None


def _to_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _unwrap(raw: Mapping[str, Any]) -> Mapping[str, Any]:
    # Some documents are stored as {reportId: X, X: {...payload...}}
    report_id = raw.get('reportId')
    if report_id is not None:
        nested = raw.get(str(report_id))
        if isinstance(nested, Mapping):
            return nested
    return raw


def _resolve_location_label(raw: Mapping[str, Any]) -> str:
    location = _first_present(raw, LOCATION_KEYS)
    if isinstance(location, Mapping):
        location = location.get('address') or location.get('name') or 'Unknown'
    return str(location) if location is not None else ''


def _resolve_coordinates(raw: Mapping[str, Any]) -> Tuple[Optional[float], Optional[float]]:
    nested = raw.get('location')
    source = nested if isinstance(nested, Mapping) else raw
    lat = _to_float(_first_present(source, LATITUDE_KEYS))
    lng = _to_float(_first_present(source, LONGITUDE_KEYS))
    if source is not raw and (lat is None or lng is None):
        lat = lat if lat is not None else _to_float(_first_present(raw, LATITUDE_KEYS))
        lng = lng if lng is not None else _to_float(_first_present(raw, LONGITUDE_KEYS))
    return lat, lng


def normalize_record(raw: Mapping[str, Any], key: Optional[str] = None) -> IncidentRecord:
    """
    Map one raw report onto the canonical ``IncidentRecord`` shape.

    Args:
    raw (Mapping): Report as stored by the record supplier
    key (str): Document key, used as the id when the payload carries none

    Returns:
    IncidentRecord: Unresolved text fields come back as empty strings,
    unresolved timestamps / coordinates as None
    """
    payload = _unwrap(raw)
    category = _first_present(payload, CATEGORY_KEYS)
    status = payload.get('status')
    latitude, longitude = _resolve_coordinates(payload)

    return IncidentRecord(
        record_id=str(payload.get('id') or key or ''),
        category=str(category) if category is not None else '',
        timestamp=parse_timestamp(_first_present(payload, TIMESTAMP_KEYS)),
        status=str(status) if status is not None else None,
        location=_resolve_location_label(payload),
        latitude=latitude,
        longitude=longitude,
        resolved_at=parse_timestamp(payload.get('resolvedAt')),
    )


def normalize_snapshot(snapshot: Optional[Snapshot]) -> Tuple[IncidentRecord, ...]:
    """Normalize a whole snapshot, either a list of reports or a {key: report} mapping."""
    if not snapshot:
        return ()
    if isinstance(snapshot, Mapping):
        items = [(str(k), v) for k, v in snapshot.items()]
    else:
        items = [(None, v) for v in snapshot]

    records = []
    for key, raw in items:
        if not isinstance(raw, Mapping):
            logger.debug(f'Skipping non-object report {key!r}')
            continue
        records.append(normalize_record(raw, key))

    undated = sum(1 for r in records if r.timestamp is None)
    logger.debug(f'Normalized {len(records)} reports ({undated} without a usable timestamp)')
    return tuple(records)


def as_records(records: Union[Snapshot, Iterable[IncidentRecord], None]) -> Tuple[IncidentRecord, ...]:
    """Accept either already-normalized records or a raw snapshot."""
    if not records:
        return ()
    if isinstance(records, Mapping):
        return normalize_snapshot(records)
    items = tuple(records)
    if all(isinstance(r, IncidentRecord) for r in items):
        return items
    return normalize_snapshot(items)
