"""Statistical helper utilities for the crime pattern detectors."""

from .analysis_utils import (
    EARTH_RADIUS_M,
    MS_PER_DAY,
    haversine_m,
    pairwise_haversine_m,
    max_pairwise_distance_m,
    centroid,
    time_span_ms,
    build_daily_series,
    TrendFit,
    fit_linear_trend,
    wilson_interval,
)

__all__ = [
    'EARTH_RADIUS_M',
    'MS_PER_DAY',
    'haversine_m',
    'pairwise_haversine_m',
    'max_pairwise_distance_m',
    'centroid',
    'time_span_ms',
    'build_daily_series',
    'TrendFit',
    'fit_linear_trend',
    'wilson_interval',
]
