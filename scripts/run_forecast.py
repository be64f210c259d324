#!/usr/bin/env python3
"""Run the forecasting engine over a JSON snapshot of incident reports.

Usage:
    python scripts/run_forecast.py SNAPSHOT.json [crime_type] [location]

Prints a JSON document with the categories seen, the monthly trend report (when a crime type is
given), the daily forecast with insights, and the heat map cells.
"""
from pathlib import Path
import json
import sys

ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = ROOT / 'src'
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from crime_forecast import (
    EngineSettings,
    MLPredictionClient,
    build_heat_map,
    build_trend_report,
    generate_crime_forecast,
    normalize_snapshot,
)
from crime_forecast.utils import ForecastEngineError, extract_crime_types


def main():
    if len(sys.argv) < 2:
        print(__doc__, file=sys.stderr)
        return 2

    snapshot_path = Path(sys.argv[1])
    crime_type = sys.argv[2] if len(sys.argv) > 2 else None
    location = sys.argv[3] if len(sys.argv) > 3 else None

    try:
        with open(snapshot_path) as f:
            snapshot = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        print(f'Could not read snapshot {snapshot_path}: {e}', file=sys.stderr)
        return 2

    settings = EngineSettings.from_env()
    records = normalize_snapshot(snapshot)
    output = {'crime_types': extract_crime_types(r.category for r in records)}

    if crime_type:
        try:
            output['trend'] = build_trend_report(records, crime_type, location).to_dict()
        except ForecastEngineError as e:
            output['trend'] = {'success': False, 'error': str(e)}

    try:
        forecast = generate_crime_forecast(
            records,
            crime_type=crime_type,
            ml_client=MLPredictionClient.from_settings(settings),
        )
        output['forecast'] = forecast.to_dict()
    except ForecastEngineError as e:
        output['forecast'] = {'success': False, 'error': str(e)}

    output['heat_map'] = build_heat_map(
        records, time_window_days=None, crime_type=crime_type, bounds=settings.heat_bounds
    ).to_dict()

    print(json.dumps(output, indent=2))
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
