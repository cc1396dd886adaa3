"""Area risk assessment: severity, volume and recency per location."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import List, Sequence

from crime_patterns.detectors.base import AnalysisContext, PatternDetector
from crime_patterns.filtering import IncidentIndex, average_severity, hourly_time_pattern, severity_distribution
from crime_patterns.models import Incident, Pattern
from crime_patterns.scoring import categorize_risk_level
from crime_patterns.utils.logger_config import setup_logger

logger = setup_logger(__name__)

EMIT_THRESHOLD = 0.5


def recent_activity_level(incidents: Sequence[Incident], now: datetime, days: int = 7) -> float:
    """Share of incidents in the last `days`, doubled and capped at 1."""
    if not incidents:
        return 0.0
    window = timedelta(days=days)
    recent = sum(1 for inc in incidents if now - inc.timestamp <= window)
    return min(1.0, recent / len(incidents) * 2)


def risk_score(incidents: Sequence[Incident], now: datetime, recent_days: int = 7) -> float:
    severity_score = average_severity(incidents) / 4
    frequency_score = min(1.0, len(incidents) / 10)
    return severity_score * 0.4 + frequency_score * 0.4 + recent_activity_level(incidents, now, recent_days) * 0.2


def risk_recommendations(location: str, risk_level: str) -> List[str]:
    recs = [f'Implement {risk_level} risk protocols for {location}']
    if risk_level == 'high':
        recs.append('Consider establishing permanent security presence')
        recs.append('Implement comprehensive crime prevention strategies')
    return recs


class AreaRiskAssessor(PatternDetector):
    name = 'risk-assessment'

    def detect(self, index: IncidentIndex, context: AnalysisContext) -> List[Pattern]:
        recent_days = context.config.recent_activity_days
        patterns = []
        for location, members in index.by_location.items():
            score = risk_score(members, context.now, recent_days)
            if score < EMIT_THRESHOLD:
                continue
            level = categorize_risk_level(score)
            patterns.append(Pattern(
                kind='risk-assessment',
                subtype=None,
                description=f'{level} risk area identified at {location}',
                confidence=min(0.9, score + 0.1),
                location=location,
                coordinates=index.location_points.get(location),
                statistics={
                    'riskScore': score,
                    'riskLevel': level,
                    'incidentCount': len(members),
                    'severityDistribution': severity_distribution(members),
                    'recentActivity': recent_activity_level(members, context.now, recent_days),
                },
                time_pattern=hourly_time_pattern(members),
                related_incidents=[inc.id for inc in members],
                recommendations=risk_recommendations(location, level),
                risk_level=level,
                detector=self.name,
            ))
        return patterns
