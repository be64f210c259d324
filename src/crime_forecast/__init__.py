"""Crime forecasting and risk-scoring engine for the incident dispatch dashboard."""

from .records import IncidentRecord, normalize_record, normalize_snapshot, parse_timestamp
from .historical import (
    MonthlyBucket,
    PatternTables,
    HistoricalSeries,
    aggregate_monthly_counts,
    build_pattern_tables,
    load_history,
    monthly_category_trends,
)
from .trend import (
    LinearFit,
    TrendForecastPoint,
    TrendForecast,
    TrendReport,
    fit_linear_trend,
    forecast_trend,
    generate_forecast_labels,
    build_trend_report,
)
from .daily import DailyForecast, DailyForecastResult, classify_risk, forecast_daily, resolve_horizon
from .insights import ForecastInsight, PeakHour, PeakDay, synthesize_insights
from .spatial import HeatCell, HeatMap, build_heat_map
from .ml_client import MLPredictionClient, prepare_training_payload
from .forecast_service import ForecastResult, generate_crime_forecast
from .activity import bucket_activity, summarize_activity, compute_response_metrics
from .config import EngineSettings

__version__ = '0.1.0'

__all__ = [
    'IncidentRecord',
    'normalize_record',
    'normalize_snapshot',
    'parse_timestamp',
    'MonthlyBucket',
    'PatternTables',
    'HistoricalSeries',
    'aggregate_monthly_counts',
    'build_pattern_tables',
    'load_history',
    'monthly_category_trends',
    'LinearFit',
    'TrendForecastPoint',
    'TrendForecast',
    'TrendReport',
    'fit_linear_trend',
    'forecast_trend',
    'generate_forecast_labels',
    'build_trend_report',
    'DailyForecast',
    'DailyForecastResult',
    'classify_risk',
    'forecast_daily',
    'resolve_horizon',
    'ForecastInsight',
    'PeakHour',
    'PeakDay',
    'synthesize_insights',
    'HeatCell',
    'HeatMap',
    'build_heat_map',
    'MLPredictionClient',
    'prepare_training_payload',
    'ForecastResult',
    'generate_crime_forecast',
    'bucket_activity',
    'summarize_activity',
    'compute_response_metrics',
    'EngineSettings',
]
