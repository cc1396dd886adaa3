"""
Crime series: incidents of one crime type linked by proximity in time and space.

Two incidents are linked when they occurred within `series_time_window_days`
of each other and either share a location key or lie within
`series_distance_m`. A series is a connected component of that link graph.
"""

from __future__ import annotations

from typing import List, Sequence

import numpy as np
from scipy.sparse import csr_matrix
from scipy.sparse.csgraph import connected_components

from crime_patterns.detectors.base import AnalysisContext, PatternDetector
from crime_patterns.filtering import IncidentIndex, hourly_time_pattern
from crime_patterns.models import MULTIPLE_LOCATIONS, Coordinates, Incident, Pattern
from crime_patterns.scoring import categorize_risk_level
from crime_patterns.stats import centroid, fit_linear_trend, max_pairwise_distance_m, pairwise_haversine_m, time_span_ms
from crime_patterns.utils.logger_config import setup_logger

logger = setup_logger(__name__)

MIN_GROUP_SIZE = 3
MIN_SERIES_SIZE = 3
EMIT_THRESHOLD = 0.5
ESCALATION_TOLERANCE = 0.05


def series_confidence(size: int) -> float:
    return min(0.9, size / 5 * 0.8)


def escalation_pattern(incidents: Sequence[Incident]) -> str:
    """Sign of the severity trend in chronological order, with a small dead band."""
    ordered = sorted(incidents, key=lambda inc: inc.timestamp)
    fit = fit_linear_trend([inc.severity.score for inc in ordered])
    if fit.slope > ESCALATION_TOLERANCE:
        return 'escalating'
    if fit.slope < -ESCALATION_TOLERANCE:
        return 'de-escalating'
    return 'stable'


def link_incidents(incidents: Sequence[Incident], index: IncidentIndex,
                   window_days: float, distance_m: float) -> List[List[Incident]]:
    """
    Partition incidents into linked clusters.

    Returns clusters ordered by their first member, members in input order.
    """
    n = len(incidents)
    if n == 0:
        return []

    seconds = np.array([inc.timestamp.timestamp() for inc in incidents], dtype=float)
    close_in_time = np.abs(seconds[:, None] - seconds[None, :]) <= window_days * 86400.0

    keys = np.array([inc.location_key for inc in incidents], dtype=object)
    same_place = keys[:, None] == keys[None, :]

    near = np.zeros((n, n), dtype=bool)
    located = [i for i, inc in enumerate(incidents) if index.point_of(inc) is not None]
    if len(located) > 1:
        dist = pairwise_haversine_m([index.point_of(incidents[i]) for i in located])
        idx = np.array(located)
        near[np.ix_(idx, idx)] = dist <= distance_m

    adjacency = close_in_time & (same_place | near)
    _, labels = connected_components(csr_matrix(adjacency), directed=False)

    # first-seen label order == order of each cluster's first member
    clusters = {}
    for i, label in enumerate(labels):
        clusters.setdefault(int(label), []).append(incidents[i])
    return list(clusters.values())


def series_recommendations(crime_type: str) -> List[str]:
    return [
        f'Focus investigation resources on {crime_type} cases',
        'Look for common suspects or methods',
        'Increase preventive measures for this crime type',
        'Coordinate with detective units for pattern analysis',
    ]


def _series_time_pattern(members: Sequence[Incident]) -> dict:
    ordered = sorted(inc.timestamp for inc in members)
    pattern = hourly_time_pattern(members)
    pattern['firstIncident'] = ordered[0].isoformat()
    pattern['lastIncident'] = ordered[-1].isoformat()
    if len(ordered) > 1:
        gaps = [(b - a).total_seconds() / 3600 for a, b in zip(ordered, ordered[1:])]
        pattern['averageIntervalHours'] = float(np.mean(gaps))
    return pattern


class CrimeSeriesDetector(PatternDetector):
    name = 'crime-series'

    def detect(self, index: IncidentIndex, context: AnalysisContext) -> List[Pattern]:
        config = context.config
        patterns = []
        for crime_type, members in index.by_crime_type.items():
            if len(members) < MIN_GROUP_SIZE:
                continue
            clusters = link_incidents(members, index, config.series_time_window_days, config.series_distance_m)
            logger.debug(f'{crime_type}: {len(members)} incidents in {len(clusters)} linked clusters')

            for cluster in clusters:
                if len(cluster) < MIN_SERIES_SIZE:
                    continue
                confidence = series_confidence(len(cluster))
                if confidence < EMIT_THRESHOLD:
                    continue

                points = [index.point_of(inc) for inc in cluster if index.point_of(inc) is not None]
                patterns.append(Pattern(
                    kind='crime-series',
                    subtype=crime_type,
                    description=f'Potential {crime_type} crime series detected',
                    confidence=confidence,
                    location=MULTIPLE_LOCATIONS,
                    coordinates=Coordinates(*centroid(points)) if points else None,
                    statistics={
                        'incidentCount': len(cluster),
                        'timeSpan': time_span_ms(inc.timestamp for inc in cluster),
                        'geographicSpread': max_pairwise_distance_m(points),
                        'escalationPattern': escalation_pattern(cluster),
                    },
                    time_pattern=_series_time_pattern(cluster),
                    related_incidents=[inc.id for inc in cluster],
                    recommendations=series_recommendations(crime_type),
                    risk_level=categorize_risk_level(confidence),
                    detector=self.name,
                ))
        return patterns
