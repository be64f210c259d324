"""
Client for the optional external ML prediction service.

The service is a separate process (default http://127.0.0.1:5001) that trains
per-category models and returns per-day predictions. This module only
consumes it: every failure mode (timeouts, connection errors, non-2xx,
``success: false``, payloads of the wrong shape) surfaces as
``MLServiceUnavailable`` so callers can fall back to the statistical model.
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import requests

from .config import EngineSettings
from .daily import DailyForecast
from .historical import DAY_NAMES
from .records import as_records
from .trend import round_half_up
from .utils.exceptions import InsufficientData, MLServiceUnavailable
from .utils.logger_config import setup_logger

logger = setup_logger(__name__)

MIN_TRAINING_RECORDS = 50
TRAINING_LOOKBACK_DAYS = 180
RISK_LEVELS = ('Low', 'Medium', 'High')


class MLPredictionClient:
    """
    Thin HTTP wrapper around the prediction service.

    Attributes:
    base_url (str): Service root, no trailing slash
    timeout (float): Per-request timeout in seconds
    session (requests.Session): Injected for connection reuse and tests

    Example:
        >>> client = MLPredictionClient.from_settings(EngineSettings.from_env())
        >>> client.has_trained_models()
    """

    def __init__(self, base_url: str, timeout: float = 5.0, session: Optional[requests.Session] = None) -> None:
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings: EngineSettings, session: Optional[requests.Session] = None) -> 'MLPredictionClient':
        return cls(settings.ml_api_url, settings.ml_timeout, session)

    def _request(self, method: str, path: str, payload: Optional[dict] = None) -> Dict[str, Any]:
        """
        Issue a request and return the decoded body of a successful answer.

        Raises:
        MLServiceUnavailable: Network error, timeout, non-2xx, non-JSON body or success != true
        """
        url = f'{self.base_url}{path}'
        try:
            logger.debug(f'{method} {url}')
            response = self.session.request(method, url, json=payload, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise MLServiceUnavailable(f'{method} {path} failed: {e}')

        if not 200 <= response.status_code < 300:
            raise MLServiceUnavailable(f'{method} {path} returned HTTP {response.status_code}')

        try:
            body = response.json()
        except ValueError as e:
            raise MLServiceUnavailable(f'{method} {path} returned a non-JSON body: {e}')

        if not isinstance(body, dict):
            raise MLServiceUnavailable(f'{method} {path} returned {type(body).__name__}, expected an object')
        if body.get('success') is not True:
            raise MLServiceUnavailable(f"{method} {path} reported failure: {body.get('error', 'unknown error')}")
        return body

    def model_status(self) -> Dict[str, Any]:
        return self._request('GET', '/api/model-status')

    def has_trained_models(self) -> bool:
        total = self.model_status().get('total_models', 0)
        if not isinstance(total, (int, float)) or isinstance(total, bool):
            raise MLServiceUnavailable(f'total_models is not a number: {total!r}')
        return total > 0

    def predict(self, crime_type: Optional[str], days: int) -> List[DailyForecast]:
        """
        Per-day predictions for ``crime_type`` ('All' when None) over ``days`` days.

        Raises:
        MLServiceUnavailable: Service failure or predictions of the wrong shape
        """
        body = self._request('POST', '/api/predict-crimes', {
            'crime_type': crime_type or 'All',
            'prediction_days': days,
        })
        predictions = body.get('predictions')
        if not isinstance(predictions, list) or not predictions:
            raise MLServiceUnavailable('predict-crimes returned no predictions list')
        forecast = [parse_prediction(item) for item in predictions]
        logger.info(f'ML predictions received for {crime_type or "All"}: {len(forecast)} days')
        return forecast

    def train(self, records, as_of: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Send the last six months of reports for training; returns per-category accuracy figures.

        Raises:
        InsufficientData: Fewer than 50 reports in the training window
        MLServiceUnavailable: Service failure
        """
        payload = prepare_training_payload(records, as_of)
        body = self._request('POST', '/api/train-models', {'firebase_data': payload})
        results = body.get('results', {})
        logger.info(f'ML models trained on {len(payload)} reports')
        return results


def parse_prediction(item: Any) -> DailyForecast:
    """Convert one service prediction into a DailyForecast (empty hourly breakdown)."""
    if not isinstance(item, dict):
        raise MLServiceUnavailable(f'prediction is not an object: {item!r}')
    try:
        date = str(item['date'])
        day_of_week = str(item['day_of_week'])
        predicted = float(item['predicted_crimes'])
        risk_level = str(item['risk_level'])
    except (KeyError, TypeError, ValueError) as e:
        raise MLServiceUnavailable(f'malformed prediction {item!r}: {e}')

    if not math.isfinite(predicted) or predicted < 0:
        raise MLServiceUnavailable(f'invalid predicted_crimes {item["predicted_crimes"]!r}')
    if day_of_week not in DAY_NAMES or risk_level not in RISK_LEVELS:
        raise MLServiceUnavailable(f'unexpected day/risk in prediction {item!r}')

    return DailyForecast(
        date=date,
        day_of_week=day_of_week,
        predicted=round_half_up(predicted),
        risk_level=risk_level,
        hourly_breakdown={},
    )


def prepare_training_payload(records, as_of: Optional[datetime] = None, lookback_days: int = TRAINING_LOOKBACK_DAYS) -> List[dict]:
    """
    Reports from the training window in the shape the service expects.

    Raises:
    InsufficientData: Fewer than 50 reports in the window
    """
    as_of = as_of or datetime.now(timezone.utc)
    if as_of.tzinfo is None:
        as_of = as_of.replace(tzinfo=timezone.utc)
    cutoff = as_of - timedelta(days=lookback_days)

    payload = [
        {
            'id': r.record_id,
            'timestamp': r.timestamp.isoformat(),
            'crimeType': r.category or 'Unknown',
            'location': r.location,
            'latitude': r.latitude,
            'longitude': r.longitude,
            'value': 1,
        }
        for r in as_records(records)
        if r.timestamp is not None and r.timestamp >= cutoff
    ]
    if len(payload) < MIN_TRAINING_RECORDS:
        raise InsufficientData(
            f'Insufficient historical data for ML training '
            f'(minimum {MIN_TRAINING_RECORDS} records required, found {len(payload)})'
        )
    return payload
