"""
Geographic clusters: single-link groups of incidents within a fixed haversine distance.

DBSCAN with min_samples=1 makes every point a core point, so its clusters are
exactly the connected components of the "within eps" graph.
"""

from __future__ import annotations

import math
from typing import List, Sequence, Tuple

import h3
import numpy as np
from sklearn.cluster import DBSCAN

from crime_patterns.detectors.base import AnalysisContext, PatternDetector
from crime_patterns.filtering import IncidentIndex, crime_type_distribution, hourly_time_pattern
from crime_patterns.models import MULTIPLE_LOCATIONS, Coordinates, Incident, Pattern
from crime_patterns.scoring import categorize_risk_level
from crime_patterns.stats import EARTH_RADIUS_M, centroid, haversine_m
from crime_patterns.utils.logger_config import setup_logger

logger = setup_logger(__name__)

MIN_CLUSTER_SIZE = 4
EMIT_THRESHOLD = 0.4
MIN_RADIUS_M = 100.0
H3_RESOLUTION = 9


def cluster_confidence(size: int) -> float:
    return min(0.8, size / 8)


def cluster_density(size: int, radius_m: float) -> float:
    """Members per km² of the disc of the cluster radius (radius floored at 100 m)."""
    radius_km = max(radius_m, MIN_RADIUS_M) / 1000.0
    return size / (math.pi * radius_km ** 2)


def cluster_points(points: Sequence[Tuple[float, float]], distance_m: float) -> List[List[int]]:
    """Indices of `points` grouped into single-link clusters, in first-member order."""
    if not points:
        return []
    coords = np.radians(np.asarray(points, dtype=float))
    labels = DBSCAN(
        eps=distance_m / EARTH_RADIUS_M,
        min_samples=1,
        metric='haversine',
        algorithm='ball_tree',
    ).fit_predict(coords)

    clusters = {}
    for i, label in enumerate(labels):
        clusters.setdefault(int(label), []).append(i)
    return list(clusters.values())


def cluster_location(members: Sequence[Incident]) -> str:
    keys = {inc.location_key for inc in members}
    if len(keys) == 1:
        return keys.pop()
    return MULTIPLE_LOCATIONS


def cluster_recommendations() -> List[str]:
    return [
        'Establish temporary command post in the area',
        'Increase foot patrol presence',
        'Engage with local community leaders',
        'Review and enhance lighting and security infrastructure',
    ]


class GeographicClusterDetector(PatternDetector):
    name = 'geographic-clustering'

    def detect(self, index: IncidentIndex, context: AnalysisContext) -> List[Pattern]:
        located = [inc for inc in index.incidents if index.point_of(inc) is not None]
        skipped = len(index.incidents) - len(located)
        if skipped:
            logger.debug(f'Geographic clustering skipped {skipped} incidents without coordinates')
        if len(located) < MIN_CLUSTER_SIZE:
            return []

        points = [index.point_of(inc) for inc in located]
        patterns = []
        for member_idx in cluster_points(points, context.config.cluster_distance_m):
            if len(member_idx) < MIN_CLUSTER_SIZE:
                continue
            confidence = cluster_confidence(len(member_idx))
            if confidence < EMIT_THRESHOLD:
                continue

            members = [located[i] for i in member_idx]
            member_points = [points[i] for i in member_idx]
            center = Coordinates(*centroid(member_points))
            radius = max(haversine_m(center, p) for p in member_points)

            patterns.append(Pattern(
                kind='geographic-cluster',
                subtype=None,
                description='Geographic crime cluster identified',
                confidence=confidence,
                location=cluster_location(members),
                coordinates=center,
                statistics={
                    'incidentCount': len(members),
                    'center': center.to_dict(),
                    'radius': radius,
                    'density': cluster_density(len(members), radius),
                    'crimeTypes': crime_type_distribution(members),
                    'h3Cell': h3.latlng_to_cell(center.lat, center.lng, H3_RESOLUTION),
                },
                time_pattern=hourly_time_pattern(members),
                related_incidents=[inc.id for inc in members],
                recommendations=cluster_recommendations(),
                risk_level=categorize_risk_level(confidence),
                detector=self.name,
            ))
        return patterns
