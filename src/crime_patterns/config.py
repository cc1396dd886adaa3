"""Runtime configuration for the pattern engine, read from the environment (and `.env`)."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from crime_patterns.utils.exceptions import ConfigError


@dataclass(frozen=True)
class AnalysisConfig:
    """
    Tunables shared by the orchestrator and the detectors.

    Attributes:
        min_confidence (float): Default minimum confidence for returned patterns
        cluster_distance_m (float): Single-link distance threshold for geographic clusters
        series_time_window_days (float): Max gap between two linked incidents of a series
        series_distance_m (float): Max distance between two linked incidents of a series
        prediction_window_days (int): Look-back window of the predictive detector
        recent_activity_days (int): Window counted as "recent" by the area risk assessor
        fetch_timeout_seconds (float): Bound on the incident source query
        deadline_seconds (float | None): Run budget checked before each detector
        nominatim_url (str): Endpoint used by the HTTP geocoder
        geocoder_user_agent (str): User-Agent sent to the geocoder
    """

    min_confidence: float = 0.5
    cluster_distance_m: float = 1000.0
    series_time_window_days: float = 14.0
    series_distance_m: float = 2000.0
    prediction_window_days: int = 14
    recent_activity_days: int = 7
    fetch_timeout_seconds: float = 30.0
    deadline_seconds: Optional[float] = None
    nominatim_url: str = "https://nominatim.openstreetmap.org/search"
    geocoder_user_agent: str = "crime-patterns/1.0"

    def __post_init__(self) -> None:
        if not 0.0 <= self.min_confidence <= 1.0:
            raise ConfigError(f'min_confidence must be within [0, 1], got {self.min_confidence}')
        for name in ('cluster_distance_m', 'series_time_window_days', 'series_distance_m',
                     'prediction_window_days', 'recent_activity_days', 'fetch_timeout_seconds'):
            if getattr(self, name) <= 0:
                raise ConfigError(f'{name} must be positive, got {getattr(self, name)}')
        if self.deadline_seconds is not None and self.deadline_seconds <= 0:
            raise ConfigError(f'deadline_seconds must be positive, got {self.deadline_seconds}')


def _env_float(name: str, default: Optional[float]) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == '':
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f'{name} must be a number, got {raw!r}')


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == '':
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f'{name} must be an integer, got {raw!r}')


def load_config(dotenv_path: Optional[str] = None) -> AnalysisConfig:
    """
    Build an AnalysisConfig from environment variables.

    Args:
        dotenv_path (str | None): Optional explicit .env file. Defaults to python-dotenv's lookup.

    Returns:
        AnalysisConfig: Validated configuration

    Raises:
        ConfigError: A variable is present but not parseable or out of range
    """
    load_dotenv(dotenv_path)
    defaults = AnalysisConfig()
    return AnalysisConfig(
        min_confidence=_env_float('AI_PATTERN_CONFIDENCE_THRESHOLD', defaults.min_confidence),
        cluster_distance_m=_env_float('AI_CLUSTER_DISTANCE_M', defaults.cluster_distance_m),
        series_time_window_days=_env_float('AI_SERIES_TIME_WINDOW_DAYS', defaults.series_time_window_days),
        series_distance_m=_env_float('AI_SERIES_DISTANCE_M', defaults.series_distance_m),
        prediction_window_days=_env_int('AI_PREDICTION_WINDOW_DAYS', defaults.prediction_window_days),
        recent_activity_days=_env_int('AI_RECENT_ACTIVITY_DAYS', defaults.recent_activity_days),
        fetch_timeout_seconds=_env_float('AI_FETCH_TIMEOUT_SECONDS', defaults.fetch_timeout_seconds),
        deadline_seconds=_env_float('AI_DEADLINE_SECONDS', None),
        nominatim_url=os.getenv('NOMINATIM_URL', defaults.nominatim_url),
        geocoder_user_agent=os.getenv('GEOCODER_USER_AGENT', defaults.geocoder_user_agent),
    )
