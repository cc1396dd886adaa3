"""Location hotspots: places with repeated, dense and severe activity."""

from __future__ import annotations

from typing import List, Sequence

from crime_patterns.detectors.base import AnalysisContext, PatternDetector
from crime_patterns.filtering import (
    IncidentIndex,
    average_severity,
    crime_type_distribution,
    days_spanned,
    dominant_crime_type,
    hourly_time_pattern,
)
from crime_patterns.models import Incident, Pattern, Severity
from crime_patterns.scoring import categorize_risk_level, clamp_unit
from crime_patterns.stats import MS_PER_DAY, time_span_ms
from crime_patterns.utils.crime_taxonomy import category_distribution
from crime_patterns.utils.logger_config import setup_logger

logger = setup_logger(__name__)

MIN_GROUP_SIZE = 3
EMIT_THRESHOLD = 0.4


def hotspot_confidence(count: int, density: float, avg_severity: float, spread_ms: float) -> float:
    count_score = min(1.0, count / 10)
    density_score = min(1.0, density / 2)
    severity_score = avg_severity / 4
    time_score = min(1.0, spread_ms / (30 * MS_PER_DAY)) if spread_ms > 0 else 0.0
    return clamp_unit(count_score * 0.4 + density_score * 0.3 + severity_score * 0.2 + time_score * 0.1)


def hotspot_risk_level(confidence: float, avg_severity: float, count: int) -> str:
    score = confidence * 0.4 + avg_severity / 4 * 0.4 + min(1.0, count / 10) * 0.2
    return categorize_risk_level(score)


def hotspot_recommendations(incidents: Sequence[Incident], confidence: float) -> List[str]:
    recs = ['Increase patrol frequency in this area']
    if confidence > 0.7:
        recs.append('Install additional surveillance equipment')
        recs.append('Coordinate with community watch programs')
    if any(inc.severity in (Severity.HIGH, Severity.CRITICAL) for inc in incidents):
        recs.append('Deploy specialized units for high-risk incidents')
    return recs


class HotspotDetector(PatternDetector):
    name = 'hotspot-density'

    def detect(self, index: IncidentIndex, context: AnalysisContext) -> List[Pattern]:
        patterns = []
        for location, members in index.by_location.items():
            if len(members) < MIN_GROUP_SIZE:
                continue

            count = len(members)
            density = count / max(1.0, days_spanned(members))
            avg_severity = average_severity(members)
            spread_ms = time_span_ms(inc.timestamp for inc in members)

            confidence = hotspot_confidence(count, density, avg_severity, spread_ms)
            if confidence < EMIT_THRESHOLD:
                logger.debug(f'Hotspot candidate {location!r} below threshold ({confidence:.3f})')
                continue

            patterns.append(Pattern(
                kind='hotspot',
                subtype=dominant_crime_type(members),
                description=f'Crime hotspot detected at {location}',
                confidence=confidence,
                location=location,
                coordinates=index.location_points.get(location),
                statistics={
                    'incidentCount': count,
                    'density': density,
                    'averageSeverity': avg_severity,
                    'timeSpread': spread_ms,
                    'crimeTypes': crime_type_distribution(members),
                    'crimeCategories': category_distribution(inc.crime_type for inc in members),
                },
                time_pattern=hourly_time_pattern(members),
                related_incidents=[inc.id for inc in members],
                recommendations=hotspot_recommendations(members, confidence),
                risk_level=hotspot_risk_level(confidence, avg_severity, count),
                detector=self.name,
            ))
        return patterns
