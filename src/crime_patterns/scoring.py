"""
Scoring & ranking: risk categorization, minimum-confidence filtering, the
total stable ordering of the merged pattern list, and the summary
distributions reported with every successful run.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Sequence

from crime_patterns.models import PATTERN_KINDS, Pattern
from crime_patterns.utils.exceptions import PatternValidationError
from crime_patterns.utils.logger_config import setup_logger

logger = setup_logger(__name__)

HIGH_THRESHOLD = 0.7
MEDIUM_THRESHOLD = 0.5


def categorize_risk_level(score: float) -> str:
    """Shared threshold pair: >= 0.7 high, >= 0.5 medium, else low."""
    if score >= HIGH_THRESHOLD:
        return 'high'
    if score >= MEDIUM_THRESHOLD:
        return 'medium'
    return 'low'


def clamp_unit(value: float) -> float:
    return max(0.0, min(1.0, float(value)))


def filter_by_confidence(patterns: Iterable[Pattern], min_confidence: float) -> List[Pattern]:
    return [p for p in patterns if p.confidence >= min_confidence]


def rank_patterns(patterns: Iterable[Pattern]) -> List[Pattern]:
    """Confidence descending, then related-incident count descending; stable otherwise."""
    return sorted(patterns, key=lambda p: (-p.confidence, -len(p.related_incidents)))


def filter_and_rank(patterns: Iterable[Pattern], min_confidence: float) -> List[Pattern]:
    kept = filter_by_confidence(patterns, min_confidence)
    return rank_patterns(kept)


def validate_patterns(patterns: Sequence[Pattern], incident_ids: Iterable[str]) -> None:
    """
    Check a merged pattern list against the incidents of the run.

    Raises:
        PatternValidationError: A pattern references an incident outside the run
            or carries a confidence outside [0, 1]
    """
    known = set(incident_ids)
    for pattern in patterns:
        if not 0.0 <= pattern.confidence <= 1.0:
            raise PatternValidationError(f'{pattern.kind} confidence {pattern.confidence} outside [0, 1]')
        foreign = [i for i in pattern.related_incidents if i not in known]
        if foreign:
            raise PatternValidationError(
                f'{pattern.kind} pattern at {pattern.location!r} references unknown incidents {foreign[:5]}'
            )


def patterns_detected(patterns: Iterable[Pattern]) -> Dict[str, int]:
    counts = {kind: 0 for kind in PATTERN_KINDS}
    for p in patterns:
        counts[p.kind] += 1
    return {
        'hotspots': counts['hotspot'],
        'temporalPatterns': counts['temporal-pattern'],
        'crimeSeries': counts['crime-series'],
        'geographicClusters': counts['geographic-cluster'],
        'predictiveHotspots': counts['predictive-hotspot'],
        'riskAssessments': counts['risk-assessment'],
    }


def confidence_distribution(patterns: Iterable[Pattern]) -> Dict[str, int]:
    dist = {'high': 0, 'medium': 0, 'low': 0}
    for p in patterns:
        dist[categorize_risk_level(p.confidence)] += 1
    return dist


def risk_level_distribution(patterns: Iterable[Pattern]) -> Dict[str, int]:
    dist = {'high': 0, 'medium': 0, 'low': 0}
    for p in patterns:
        dist[p.risk_level] += 1
    return dist
