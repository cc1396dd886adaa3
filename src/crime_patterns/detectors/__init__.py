"""Pattern detectors. default_detectors() fixes the order patterns are merged in."""

from .base import AnalysisContext, PatternDetector
from .hotspot import HotspotDetector
from .temporal import TemporalPatternDetector
from .series import CrimeSeriesDetector
from .geographic import GeographicClusterDetector
from .predictive import PredictiveHotspotDetector
from .risk import AreaRiskAssessor


def default_detectors():
    return [
        HotspotDetector(),
        TemporalPatternDetector(),
        CrimeSeriesDetector(),
        GeographicClusterDetector(),
        PredictiveHotspotDetector(),
        AreaRiskAssessor(),
    ]


__all__ = [
    'AnalysisContext',
    'PatternDetector',
    'HotspotDetector',
    'TemporalPatternDetector',
    'CrimeSeriesDetector',
    'GeographicClusterDetector',
    'PredictiveHotspotDetector',
    'AreaRiskAssessor',
    'default_detectors',
]
