"""
Forecast orchestration: ML service first, statistical pattern model as fallback.

The ML service is optional. When no client is configured, when it reports no
trained models, or when any call to it fails, the daily forecast is produced
locally by ``forecast_daily`` and the caller never sees the ML error.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple

import numpy as np

from .daily import DailyForecast, forecast_daily, resolve_horizon
from .insights import ForecastInsight, synthesize_insights
from .ml_client import MLPredictionClient
from .records import as_records
from .utils.exceptions import DataUnavailable, MLServiceUnavailable
from .utils.logger_config import setup_logger

logger = setup_logger(__name__)

# Statistical fallback only looks at the most recent three months
DEFAULT_LOOKBACK_DAYS = 90


@dataclass(frozen=True)
class ForecastResult:
    source: str
    days: Tuple[DailyForecast, ...]
    insights: ForecastInsight
    base_rate: Optional[float] = None

    def to_dict(self) -> dict:
        return {
            'source': self.source,
            'days': [d.to_dict() for d in self.days],
            'insights': self.insights.to_dict(),
            'base_rate': self.base_rate,
        }


def _try_ml_forecast(client: MLPredictionClient, crime_type: Optional[str], horizon: int) -> Optional[Tuple[DailyForecast, ...]]:
    try:
        if not client.has_trained_models():
            logger.info('ML service has no trained models, using statistical model')
            return None
        return tuple(client.predict(crime_type, horizon))
    except MLServiceUnavailable as e:
        logger.warning(f'ML prediction failed, falling back to statistical model: {e}')
        return None


def generate_crime_forecast(
    records,
    period='2weeks',
    crime_type: Optional[str] = None,
    ml_client: Optional[MLPredictionClient] = None,
    as_of: Optional[datetime] = None,
    rng: Optional[np.random.Generator] = None,
    lookback_days: Optional[int] = DEFAULT_LOOKBACK_DAYS,
) -> ForecastResult:
    """
    Produce the daily forecast and its insights for the dashboard.

    Args:
    records: IncidentRecords or a raw snapshot
    period: '1week' / '2weeks' / '1month' or a day count
    crime_type (str): Exact category, None for all
    ml_client (MLPredictionClient): Optional external model; skipped when None
    as_of (datetime): Reference "now"
    rng (np.random.Generator): Jitter source for the statistical model
    lookback_days (int): History window for the statistical model

    Returns:
    ForecastResult: ``source`` says which model answered

    Raises:
    DataUnavailable: Empty snapshot and no ML answer
    InsufficientData: Fewer than 10 qualifying records for the statistical model
    """
    horizon = resolve_horizon(period)

    if ml_client is not None:
        ml_days = _try_ml_forecast(ml_client, crime_type, horizon)
        if ml_days is not None:
            logger.info(f'ML forecast generated: {len(ml_days)} days')
            return ForecastResult(source='ml', days=ml_days, insights=synthesize_insights(ml_days, 0))

    records = as_records(records)
    if not records:
        raise DataUnavailable('No historical crime data available for forecasting')

    logger.info('Using statistical model')
    result = forecast_daily(
        records,
        horizon,
        crime_type=crime_type,
        as_of=as_of,
        rng=rng,
        lookback_days=lookback_days,
    )
    insights = synthesize_insights(result.days, result.sample_size)
    logger.info(f'Statistical forecast generated: {len(result.days)} days, overall risk {insights.risk_level}')
    return ForecastResult(source='statistical', days=result.days, insights=insights, base_rate=result.base_rate)
