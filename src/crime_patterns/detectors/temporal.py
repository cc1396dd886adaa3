"""Temporal patterns: peak hours of the day, days of the week and months."""

from __future__ import annotations

from typing import List, Mapping, Sequence, Tuple

from crime_patterns.detectors.base import AnalysisContext, PatternDetector
from crime_patterns.filtering import DAY_NAMES, MONTH_NAMES, IncidentIndex
from crime_patterns.models import MULTIPLE_LOCATIONS, Incident, Pattern
from crime_patterns.scoring import categorize_risk_level
from crime_patterns.stats import wilson_interval
from crime_patterns.utils.logger_config import setup_logger

logger = setup_logger(__name__)


def top_buckets(buckets: Mapping[int, Sequence[Incident]], limit: int) -> List[Tuple[int, Sequence[Incident]]]:
    """Largest buckets first; equal counts keep the lower bucket index first."""
    ranked = sorted(buckets.items(), key=lambda item: (-len(item[1]), item[0]))
    return ranked[:limit]


def _share_statistics(count: int, total: int) -> dict:
    low, high = wilson_interval(count, total)
    return {
        'incidentCount': count,
        'percentage': f'{count / total * 100:.1f}',
        'shareCi95': [low, high],
    }


class TemporalPatternDetector(PatternDetector):
    """
    Emits up to three hourly, two daily and one seasonal pattern.

    Attributes:
        hourly_limit / daily_limit: Number of top buckets examined
        hourly_min / daily_min / seasonal_min: Minimum bucket size to emit
    """

    name = 'temporal-analysis'

    hourly_limit = 3
    hourly_min = 3
    daily_limit = 2
    daily_min = 3
    seasonal_min = 4

    def detect(self, index: IncidentIndex, context: AnalysisContext) -> List[Pattern]:
        total = len(index.incidents)
        if total == 0:
            return []
        patterns = []
        patterns.extend(self._hourly(index, total))
        patterns.extend(self._daily(index, total))
        patterns.extend(self._seasonal(index, total))
        return patterns

    def _emit(self, subtype: str, description: str, confidence: float, members: Sequence[Incident],
              statistics: dict, time_pattern: dict, recommendation: str) -> Pattern:
        return Pattern(
            kind='temporal-pattern',
            subtype=subtype,
            description=description,
            confidence=confidence,
            location=MULTIPLE_LOCATIONS,
            statistics=statistics,
            time_pattern=time_pattern,
            related_incidents=[inc.id for inc in members],
            recommendations=[recommendation],
            risk_level=categorize_risk_level(confidence),
            detector=self.name,
        )

    def _hourly(self, index: IncidentIndex, total: int) -> List[Pattern]:
        patterns = []
        for hour, members in top_buckets(index.by_hour, self.hourly_limit):
            count = len(members)
            if count < self.hourly_min:
                continue
            confidence = min(0.9, count / total * 4)
            patterns.append(self._emit(
                'hourly',
                f'Peak crime activity at {hour}:00 hour',
                confidence,
                members,
                {'peakHour': hour, **_share_statistics(count, total)},
                {'peakHour': hour, 'frequency': count},
                f'Increase patrol presence during {hour}:00-{(hour + 1) % 24}:00',
            ))
        return patterns

    def _daily(self, index: IncidentIndex, total: int) -> List[Pattern]:
        patterns = []
        for day, members in top_buckets(index.by_day_of_week, self.daily_limit):
            count = len(members)
            if count < self.daily_min:
                continue
            confidence = min(0.85, count / total * 3)
            day_name = DAY_NAMES[day]
            patterns.append(self._emit(
                'daily',
                f'Increased crime activity on {day_name}',
                confidence,
                members,
                {'peakDay': day_name, **_share_statistics(count, total)},
                {'peakDay': day_name, 'frequency': count},
                f'Focus resources on {day_name} operations',
            ))
        return patterns

    def _seasonal(self, index: IncidentIndex, total: int) -> List[Pattern]:
        ranked = top_buckets(index.by_month, 1)
        if not ranked:
            return []
        month, members = ranked[0]
        count = len(members)
        if count < self.seasonal_min:
            return []
        confidence = min(0.8, count / total * 2)
        month_name = MONTH_NAMES[month - 1]
        return [self._emit(
            'seasonal',
            f'Seasonal crime peak in {month_name}',
            confidence,
            members,
            {'peakMonth': month_name, **_share_statistics(count, total)},
            {'peakMonth': month_name, 'frequency': count},
            f'Prepare enhanced security measures for {month_name}',
        )]
