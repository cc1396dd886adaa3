"""Reusable numeric helpers for the pattern detectors (distances, trends, intervals)."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Sequence, Tuple

import numpy as np
import pandas as pd
from scipy import stats
from statsmodels.stats.proportion import proportion_confint


EARTH_RADIUS_M = 6_371_000.0
MS_PER_DAY = 24 * 60 * 60 * 1000


def haversine_m(a: Tuple[float, float], b: Tuple[float, float]) -> float:
    """Haversine distance in metres between two (lat, lng) points in degrees."""
    lat1, lon1 = np.radians(a[0]), np.radians(a[1])
    lat2, lon2 = np.radians(b[0]), np.radians(b[1])
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    h = np.sin(dlat / 2) ** 2 + np.cos(lat1) * np.cos(lat2) * np.sin(dlon / 2) ** 2
    return float(EARTH_RADIUS_M * 2 * np.arctan2(np.sqrt(h), np.sqrt(1 - h)))


def pairwise_haversine_m(points: Sequence[Tuple[float, float]]) -> np.ndarray:
    """
    Vectorized haversine distances (metres) between every pair of points.
    points: (N, 2) in degrees -> returns (N, N)
    """
    arr = np.radians(np.asarray(points, dtype=float).reshape(-1, 2))
    lat1 = arr[:, 0][:, None]
    lon1 = arr[:, 1][:, None]
    lat2 = arr[:, 0][None, :]
    lon2 = arr[:, 1][None, :]
    h = np.sin((lat2 - lat1) / 2.0) ** 2 + np.cos(lat1) * np.cos(lat2) * np.sin((lon2 - lon1) / 2.0) ** 2
    h = np.clip(h, 0.0, 1.0)
    return EARTH_RADIUS_M * 2 * np.arctan2(np.sqrt(h), np.sqrt(1 - h))


def max_pairwise_distance_m(points: Sequence[Tuple[float, float]]) -> float:
    if len(points) < 2:
        return 0.0
    return float(pairwise_haversine_m(points).max())


def centroid(points: Sequence[Tuple[float, float]]) -> Tuple[float, float]:
    """Arithmetic mean of (lat, lng); adequate at city scale."""
    arr = np.asarray(points, dtype=float).reshape(-1, 2)
    return float(arr[:, 0].mean()), float(arr[:, 1].mean())


def time_span_ms(timestamps: Iterable[datetime]) -> int:
    """Latest minus earliest timestamp, in milliseconds (0 for fewer than two)."""
    ordered = sorted(timestamps)
    if len(ordered) < 2:
        return 0
    return int((ordered[-1] - ordered[0]) / timedelta(milliseconds=1))


def build_daily_series(timestamps: Iterable[datetime], window_start: datetime, days: int) -> pd.Series:
    """
    Count events per day offset from window_start; days without events are 0.
    Offsets are clamped into [0, days - 1], so an event at the window end (or
    past it) lands in the last day and every timestamp is counted once.
    """
    offsets = [int((ts - window_start) // timedelta(days=1)) for ts in timestamps]
    offsets = np.clip(np.asarray(offsets, dtype='int64'), 0, max(days - 1, 0))
    counts = pd.Series(offsets, dtype='int64').value_counts()
    return counts.reindex(range(days), fill_value=0).sort_index().astype('int64')


@dataclass(frozen=True)
class TrendFit:
    slope: float
    intercept: float
    r_value: float
    p_value: float

    @property
    def is_increasing(self) -> bool:
        return self.slope > 0


def fit_linear_trend(values: Sequence[float]) -> TrendFit:
    """Least-squares line through `values` indexed 0..n-1."""
    y = np.asarray(values, dtype=float)
    if y.size < 2 or np.ptp(y) == 0:
        intercept = float(y.mean()) if y.size else 0.0
        return TrendFit(slope=0.0, intercept=intercept, r_value=0.0, p_value=1.0)
    x = np.arange(y.size, dtype=float)
    result = stats.linregress(x, y)
    p_value = float(result.pvalue) if np.isfinite(result.pvalue) else 1.0
    return TrendFit(
        slope=float(result.slope),
        intercept=float(result.intercept),
        r_value=float(result.rvalue),
        p_value=p_value,
    )


def wilson_interval(count: int, nobs: int, alpha: float = 0.05) -> Tuple[float, float]:
    """Wilson score interval for a share count/nobs."""
    if nobs <= 0:
        return 0.0, 0.0
    low, high = proportion_confint(count, nobs, alpha=alpha, method='wilson')
    return float(max(0.0, low)), float(min(1.0, high))
