"""Predictive hotspots: locations whose daily incident counts are trending up."""

from __future__ import annotations

from datetime import timedelta
from typing import List, Sequence

from crime_patterns.detectors.base import AnalysisContext, PatternDetector
from crime_patterns.filtering import IncidentIndex, group_by_location, hourly_time_pattern
from crime_patterns.models import Incident, Pattern
from crime_patterns.scoring import categorize_risk_level
from crime_patterns.stats import TrendFit, build_daily_series, fit_linear_trend
from crime_patterns.utils.logger_config import setup_logger

logger = setup_logger(__name__)

MIN_GROUP_SIZE = 2
EMIT_THRESHOLD = 0.6
PREDICTION_DISCOUNT = 0.8
PREDICTION_WINDOW_LABEL = '7-14 days'


def trend_confidence(count: int, fit: TrendFit) -> float:
    return min(0.95, 0.6 * min(1.0, count / 5) + 0.4 * max(0.0, fit.r_value))


def predictive_recommendations(location: str) -> List[str]:
    return [
        f'Proactive deployment to {location} recommended',
        'Monitor area closely for emerging patterns',
        'Implement preventive measures before escalation',
        'Coordinate with local businesses and residents',
    ]


class PredictiveHotspotDetector(PatternDetector):
    """
    Fits a least-squares line through each location's daily counts over the
    last `prediction_window_days` and flags locations with a rising trend.
    """

    name = 'predictive-modeling'

    def detect(self, index: IncidentIndex, context: AnalysisContext) -> List[Pattern]:
        days = context.config.prediction_window_days
        window = timedelta(days=days)
        window_start = context.now - window
        recent = [inc for inc in index.incidents if context.now - inc.timestamp <= window]

        patterns = []
        for location, members in group_by_location(recent).items():
            if len(members) < MIN_GROUP_SIZE:
                continue
            pattern = self._assess(location, members, window_start, days, index)
            if pattern is not None:
                patterns.append(pattern)
        return patterns

    def _assess(self, location: str, members: Sequence[Incident], window_start, days: int,
                index: IncidentIndex):
        series = build_daily_series((inc.timestamp for inc in members), window_start, days)
        fit = fit_linear_trend(series.to_numpy())
        confidence = trend_confidence(len(members), fit)
        logger.debug(f'{location!r}: slope={fit.slope:.4f} r={fit.r_value:.3f} trend confidence={confidence:.3f}')

        if not fit.is_increasing or confidence < EMIT_THRESHOLD:
            return None

        mean_daily = float(series.mean())
        growth_rate = fit.slope / mean_daily if mean_daily > 0 else 0.0
        return Pattern(
            kind='predictive-hotspot',
            subtype=None,
            description=f'Predicted future hotspot at {location}',
            confidence=confidence * PREDICTION_DISCOUNT,
            location=location,
            coordinates=index.location_points.get(location),
            statistics={
                'currentIncidents': len(members),
                'trendDirection': 'increasing',
                'growthRate': growth_rate,
                'slope': fit.slope,
                'rValue': fit.r_value,
                'pValue': fit.p_value,
                'predictionWindow': PREDICTION_WINDOW_LABEL,
            },
            time_pattern=hourly_time_pattern(members),
            related_incidents=[inc.id for inc in members],
            recommendations=predictive_recommendations(location),
            risk_level=categorize_risk_level(confidence),
            detector=self.name,
        )
