"""Crime pattern analysis engine: hotspots, temporal trends, series, clusters, predictions and area risk."""

from .config import AnalysisConfig, load_config
from .models import (
    Severity,
    Coordinates,
    Incident,
    Pattern,
    AnalysisOptions,
    AnalysisResult,
)
from .data import (
    InMemoryIncidentSource,
    DataFrameIncidentSource,
    ParquetIncidentSource,
    StaticGeocoder,
    HashGeocoder,
    NominatimGeocoder,
)
from .analyzer import CrimePatternAnalyzer, run_analysis

__version__ = '0.1.0'

__all__ = [
    'AnalysisConfig',
    'load_config',
    'Severity',
    'Coordinates',
    'Incident',
    'Pattern',
    'AnalysisOptions',
    'AnalysisResult',
    'InMemoryIncidentSource',
    'DataFrameIncidentSource',
    'ParquetIncidentSource',
    'StaticGeocoder',
    'HashGeocoder',
    'NominatimGeocoder',
    'CrimePatternAnalyzer',
    'run_analysis',
]
