"""Insight Synthesizer - reduce a daily forecast into headline numbers and patrol recommendations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

from .daily import DailyForecast

TOP_N = 3
HIGH_DAY_SHARE = 0.3
MEDIUM_DAY_SHARE = 0.1
NIGHT_START_HOUR = 18
NIGHT_END_HOUR = 6
WEEKEND_DAYS = ('Friday', 'Saturday')
COMMUNITY_AWARENESS_SHARE = 0.5


@dataclass(frozen=True)
class PeakHour:
    hour: int
    count: int

    def to_dict(self) -> dict:
        return {'hour': self.hour, 'count': self.count}


@dataclass(frozen=True)
class PeakDay:
    date: str
    day_of_week: str
    count: int

    def to_dict(self) -> dict:
        return {'date': self.date, 'day_of_week': self.day_of_week, 'count': self.count}


@dataclass(frozen=True)
class ForecastInsight:
    total_predicted: int
    risk_level: str
    peak_hours: Tuple[PeakHour, ...]
    peak_days: Tuple[PeakDay, ...]
    recommendations: Tuple[str, ...]

    def to_dict(self) -> dict:
        return {
            'predicted_crime_count': self.total_predicted,
            'risk_level': self.risk_level,
            'peak_hours': [h.to_dict() for h in self.peak_hours],
            'peak_days': [d.to_dict() for d in self.peak_days],
            'recommendations': list(self.recommendations),
        }


EMPTY_INSIGHT = ForecastInsight(0, 'Low', (), (), ())


def find_peak_hours(forecast: Sequence[DailyForecast], top: int = TOP_N) -> Tuple[PeakHour, ...]:
    """Hours with the largest summed counts; equal counts are ordered by ascending hour."""
    totals: Dict[int, int] = {}
    for day in forecast:
        for hour, count in day.hourly_breakdown.items():
            totals[int(hour)] = totals.get(int(hour), 0) + count
    ranked = sorted(totals.items(), key=lambda item: (-item[1], item[0]))
    return tuple(PeakHour(hour, count) for hour, count in ranked[:top])


def find_peak_days(forecast: Sequence[DailyForecast], top: int = TOP_N) -> Tuple[PeakDay, ...]:
    """Days with the largest predictions; ties keep forecast order."""
    ranked = sorted(forecast, key=lambda day: -day.predicted)
    return tuple(PeakDay(d.date, d.day_of_week, d.predicted) for d in ranked[:top])


def overall_risk(forecast: Sequence[DailyForecast]) -> str:
    if not forecast:
        return 'Low'
    high_days = sum(1 for day in forecast if day.risk_level == 'High')
    if high_days > len(forecast) * HIGH_DAY_SHARE:
        return 'High'
    if high_days > len(forecast) * MEDIUM_DAY_SHARE:
        return 'Medium'
    return 'Low'


def build_recommendations(
    risk_level: str,
    peak_hours: Sequence[PeakHour],
    peak_days: Sequence[PeakDay],
    total_predicted: int,
    historical_sample_size: int,
) -> List[str]:
    recommendations = []
    if risk_level == 'High':
        recommendations.append('Increase police patrols during peak hours')
        recommendations.append('Deploy additional resources in high-risk areas')
    if any(h.hour >= NIGHT_START_HOUR or h.hour <= NIGHT_END_HOUR for h in peak_hours):
        recommendations.append('Enhance night-time security measures')
    if any(d.day_of_week in WEEKEND_DAYS for d in peak_days):
        recommendations.append('Prepare for weekend crime surge')
    if total_predicted > historical_sample_size * COMMUNITY_AWARENESS_SHARE:
        recommendations.append('Consider community awareness campaigns')
    return recommendations


def synthesize_insights(forecast: Sequence[DailyForecast], historical_sample_size: int = 0) -> ForecastInsight:
    """
    Summarize a daily forecast for the dashboard cards.

    Args:
    forecast (Sequence[DailyForecast]): Output of the pattern forecaster or the ML service
    historical_sample_size (int): Number of records the forecast was built from
        (0 for ML forecasts)

    Returns:
    ForecastInsight: zero / Low / empty for an empty forecast
    """
    if not forecast:
        return EMPTY_INSIGHT

    total_predicted = sum(day.predicted for day in forecast)
    peak_hours = find_peak_hours(forecast)
    peak_days = find_peak_days(forecast)
    risk_level = overall_risk(forecast)

    return ForecastInsight(
        total_predicted=total_predicted,
        risk_level=risk_level,
        peak_hours=peak_hours,
        peak_days=peak_days,
        recommendations=tuple(build_recommendations(
            risk_level, peak_hours, peak_days, total_predicted, historical_sample_size
        )),
    )
