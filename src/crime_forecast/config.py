"""Runtime settings for the forecasting engine, read from the environment / .env file."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional, Tuple

from dotenv import load_dotenv

from .utils.exceptions import ConfigError


DEFAULT_ML_API_URL = 'http://127.0.0.1:5001'
DEFAULT_ML_TIMEOUT = 5.0
# lat_min, lat_max, lng_min, lng_max (Philippines)
DEFAULT_HEAT_BOUNDS: Tuple[float, float, float, float] = (4.0, 22.0, 116.0, 127.0)


@dataclass(frozen=True)
class EngineSettings:
    ml_api_url: str = DEFAULT_ML_API_URL
    ml_timeout: float = DEFAULT_ML_TIMEOUT
    heat_bounds: Tuple[float, float, float, float] = DEFAULT_HEAT_BOUNDS

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> 'EngineSettings':
        """
        Build settings from environment variables, loading a .env file first if present.

        Raises:
        ConfigError: A variable is set but cannot be parsed
        """
        load_dotenv(dotenv_path)

        ml_api_url = os.getenv('CRIME_FORECAST_ML_API_URL', DEFAULT_ML_API_URL).strip().rstrip('/')
        if not ml_api_url.startswith(('http://', 'https://')):
            raise ConfigError(f'CRIME_FORECAST_ML_API_URL must be an http(s) URL, got {ml_api_url!r}')

        raw_timeout = os.getenv('CRIME_FORECAST_ML_TIMEOUT', str(DEFAULT_ML_TIMEOUT))
        try:
            ml_timeout = float(raw_timeout)
        except ValueError:
            raise ConfigError(f'CRIME_FORECAST_ML_TIMEOUT is not a number: {raw_timeout!r}')
        if ml_timeout <= 0:
            raise ConfigError('CRIME_FORECAST_ML_TIMEOUT must be positive')

        return cls(
            ml_api_url=ml_api_url,
            ml_timeout=ml_timeout,
            heat_bounds=_parse_bounds(os.getenv('CRIME_FORECAST_HEAT_BOUNDS')),
        )


def _parse_bounds(raw: Optional[str]) -> Tuple[float, float, float, float]:
    if not raw:
        return DEFAULT_HEAT_BOUNDS
    try:
        lat_min, lat_max, lng_min, lng_max = (float(part) for part in raw.split(','))
    except ValueError:
        raise ConfigError(f'CRIME_FORECAST_HEAT_BOUNDS must be "lat_min,lat_max,lng_min,lng_max", got {raw!r}')
    if lat_min >= lat_max or lng_min >= lng_max:
        raise ConfigError(f'CRIME_FORECAST_HEAT_BOUNDS has an empty box: {raw!r}')
    return lat_min, lat_max, lng_min, lng_max
